from functools import lru_cache
from operator import attrgetter
from typing import List, Optional, Sequence

from data_generation import COLUMNS, SensorRecord
from strategy import COLUMN_COUNT, TABLE_NAME, IngestionStrategy, IngestMethod

# Upper bound on positional parameters in one VALUES statement
MAX_PARAMETERS = 4000


@lru_cache(maxsize=None)
def values_statement(row_count: int) -> str:
    """Multi-row INSERT with one placeholder group per row"""
    row = "(" + ", ".join(["%s"] * COLUMN_COUNT) + ")"
    return f"INSERT INTO {TABLE_NAME} VALUES " + ", ".join([row] * row_count)


def flatten(chunk: Sequence[SensorRecord], binding_order: Sequence[str]) -> List:
    """Concatenate every record's values, each in binding_order"""
    getter = attrgetter(*binding_order)
    params = []
    for record in chunk:
        params.extend(getter(record))
    return params


class InsertValuesStrategy(IngestionStrategy):
    """INSERT ... VALUES (...), (...) re-sent as text for every chunk"""

    method = IngestMethod.INSERT_VALUES
    label = "Insert VALUES"
    binding_order = tuple(COLUMNS)
    prepared = False

    def rejection_reason(self, batch_size: int) -> Optional[str]:
        needed = batch_size * COLUMN_COUNT
        if needed > MAX_PARAMETERS:
            return f"too many parameters ({needed} > {MAX_PARAMETERS})"
        return None

    def ingest_chunk(self, chunk: Sequence[SensorRecord]):
        self.session.execute(
            values_statement(len(chunk)),
            flatten(chunk, self.binding_order),
            prepare=self.prepared,
        )


class PreparedInsertValuesStrategy(InsertValuesStrategy):
    """
    Same statement as InsertValuesStrategy, prepared server side.

    The full-size statement is prepared by the first chunk and reused by every
    following one; a shorter final chunk gets its own prepared statement.
    Parameters are bound in table column order, id first.
    """

    method = IngestMethod.PREPARED_INSERT_VALUES
    label = "Prepared Insert VALUES"
    # id first; a timestamp-first order would bind a timestamptz to the
    # integer generator_id column
    binding_order = tuple(COLUMNS)
    prepared = True
