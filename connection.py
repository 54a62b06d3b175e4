"""
Database session gateway.

Resolves user supplied connection strings into named targets and opens
psycopg sessions against them, preferring TLS and falling back to a
plaintext connection when the encrypted attempt fails.
"""

import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence

import psycopg

DEFAULT_SCHEME = "postgresql"
STANDARD_SCHEMES = ("postgres", "postgresql")


class ConnectionFailedError(Exception):
    """Both the encrypted and the plaintext connection attempts failed"""


@dataclass(frozen=True)
class ConnectionTarget:
    """A named database endpoint"""

    name: str
    conninfo: str


def parse_connection_target(value: str, ordinal: int) -> ConnectionTarget:
    """
    Normalize one connection string.

    Without a scheme, or with a standard postgres scheme, the target is named
    ``postgres-<ordinal>``. A custom scheme becomes the display name and is
    replaced by the postgresql scheme, keeping the rest of the address.
    """
    value = value.strip()
    scheme, sep, remainder = value.partition("://")
    if not sep:
        return ConnectionTarget(f"postgres-{ordinal}", f"{DEFAULT_SCHEME}://{value}")

    if scheme.lower() in STANDARD_SCHEMES:
        name = f"postgres-{ordinal}"
    else:
        name = scheme
    return ConnectionTarget(name, f"{DEFAULT_SCHEME}://{remainder}")


def parse_connection_targets(values: Iterable[str]) -> List[ConnectionTarget]:
    """Normalize connection strings in order, numbering them from 1"""
    return [
        parse_connection_target(value, ordinal)
        for ordinal, value in enumerate(values, start=1)
    ]


class DatabaseSession:
    """
    Thin wrapper around a psycopg connection in autocommit mode.

    Transaction boundaries are explicit: nothing is wrapped in a transaction
    unless transaction() is used.
    """

    def __init__(self, conn: psycopg.Connection, target: ConnectionTarget):
        self.conn = conn
        self.target = target

    @property
    def name(self) -> str:
        return self.target.name

    def execute(self, query: str, params: Optional[Sequence] = None, prepare: bool = False):
        """Execute a statement with positional parameters.

        With prepare=True the statement is prepared server side on first use
        and the prepared statement is reused for every later execution of the
        same query text on this session.
        """
        with self.conn.cursor() as cur:
            cur.execute(query, params, prepare=prepare)

    def execute_admin(self, statement: str):
        """Run a raw statement outside the parameterized path"""
        self.conn.execute(statement)

    @contextmanager
    def copy(self, statement: str) -> Iterator[psycopg.Copy]:
        """Open a COPY FROM STDIN channel, finalized when the block exits"""
        with self.conn.cursor() as cur:
            with cur.copy(statement) as copy:
                yield copy

    def transaction(self):
        """BEGIN on enter, COMMIT on exit, ROLLBACK if the block raises"""
        return self.conn.transaction()

    def close(self):
        if self.conn:
            self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def connect(target: ConnectionTarget) -> DatabaseSession:
    """
    Open a session, trying TLS without certificate verification first and
    plaintext second. Raises ConnectionFailedError if both attempts fail.
    """
    try:
        conn = psycopg.connect(target.conninfo, sslmode="require", autocommit=True)
        print(f"  ✓ Connected to {target.name} (TLS)", file=sys.stderr)
        return DatabaseSession(conn, target)
    except Exception as e:
        print(
            f"  ⚠ TLS connection to {target.name} failed ({e}), retrying without TLS",
            file=sys.stderr,
        )

    try:
        conn = psycopg.connect(target.conninfo, sslmode="disable", autocommit=True)
    except Exception as e:
        raise ConnectionFailedError(
            f"Could not connect to {target.name} with or without TLS: {e}"
        ) from e

    print(f"  ✓ Connected to {target.name} (plaintext)", file=sys.stderr)
    return DatabaseSession(conn, target)
