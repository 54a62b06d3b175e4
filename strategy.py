import sys
from contextlib import nullcontext
from enum import Enum
from typing import Iterator, Optional, Sequence

from data_generation import SensorRecord
from results import RunResult
from timer import BenchmarkTimer

TABLE_NAME = "power_generation"
COLUMN_COUNT = 7

CREATE_TABLE = f"""
    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
        generator_id INTEGER,               -- Unique identifier for the generator or energy source
        timestamp TIMESTAMP WITH TIME ZONE, -- Timestamp of the reading
        power_output_kw DOUBLE PRECISION,   -- Real-time power output in kilowatts (kW)
        voltage DOUBLE PRECISION,           -- Voltage in volts (V)
        current DOUBLE PRECISION,           -- Current in amperes (A)
        frequency DOUBLE PRECISION,         -- Electrical frequency in hertz (Hz)
        temperature DOUBLE PRECISION        -- Equipment temperature in degrees Celsius (°C)
    )
"""

RESET_STATEMENTS = (
    CREATE_TABLE,
    f"TRUNCATE TABLE {TABLE_NAME}",
    f"ALTER TABLE {TABLE_NAME} SET (autovacuum_enabled = false)",
    "CHECKPOINT",
)


class IngestMethod(Enum):
    INSERT_VALUES = "insert-values"
    PREPARED_INSERT_VALUES = "prepared-insert-values"
    INSERT_UNNEST = "insert-unnest"
    PREPARED_INSERT_UNNEST = "prepared-insert-unnest"
    COPY = "copy"
    BINARY_COPY = "binary-copy"

    @classmethod
    def parse(cls, value: str) -> "IngestMethod":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"unknown method {value!r} (choose from {choices})")


def reset_table(session):
    """Bring the target table to an empty, checkpointed state"""
    for statement in RESET_STATEMENTS:
        session.execute_admin(statement)


def chunked(records: Sequence[SensorRecord], batch_size: int) -> Iterator[Sequence[SensorRecord]]:
    """Yield consecutive slices of at most batch_size records, in order"""
    if batch_size < 1:
        raise ValueError(f"batch size must be positive, got {batch_size}")
    for start in range(0, len(records), batch_size):
        yield records[start : start + batch_size]


class IngestionStrategy:
    """
    Base class for one bulk-loading technique.

    Subclasses set ``method`` and ``label`` and implement ingest_chunk().
    run() owns the parts every technique shares: storage reset, the optional
    transaction, chunking and timing.
    """

    method: IngestMethod = None
    label: str = None

    def __init__(self, session):
        self.session = session

    def rejection_reason(self, batch_size: int) -> Optional[str]:
        """Return why batch_size cannot be run, or None if it can"""
        return None

    def ingest_chunk(self, chunk: Sequence[SensorRecord]):
        raise NotImplementedError("Subclasses must implement this method")

    def run(self, records: Sequence[SensorRecord], batch_size: int, use_transaction: bool) -> RunResult:
        reset_table(self.session)

        reason = self.rejection_reason(batch_size)
        if reason:
            print(
                f"    ⚠ {self.label} with batch size of {batch_size} skipped: {reason}",
                file=sys.stderr,
            )
            return RunResult.sentinel(
                self.session.name, self.label, batch_size, use_transaction
            )

        transaction = self.session.transaction() if use_transaction else nullcontext()

        with BenchmarkTimer(self.label) as timer:
            with transaction:
                for chunk in chunked(records, batch_size):
                    self.ingest_chunk(chunk)

        return RunResult(
            connection=self.session.name,
            method=self.label,
            batch_size=batch_size,
            transaction=use_transaction,
            duration=timer.elapsed,
            rows_per_sec=timer.rows_per_sec(len(records)),
        )
