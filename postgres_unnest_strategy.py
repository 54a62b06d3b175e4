from typing import List, Sequence

from data_generation import SensorRecord
from strategy import TABLE_NAME, IngestionStrategy, IngestMethod

UNNEST_STATEMENT = f"""
    INSERT INTO {TABLE_NAME}
    SELECT * FROM unnest(
        %s::int4[], %s::timestamptz[], %s::float8[], %s::float8[],
        %s::float8[], %s::float8[], %s::float8[]
    )
"""


def column_arrays(chunk: Sequence[SensorRecord]) -> List[list]:
    """Transpose a chunk into seven equal-length column arrays"""
    return [list(column) for column in zip(*(record.as_row() for record in chunk))]


class InsertUnnestStrategy(IngestionStrategy):
    """One INSERT ... SELECT FROM unnest(arrays) per chunk"""

    method = IngestMethod.INSERT_UNNEST
    label = "UNNEST insert"
    prepared = False

    def ingest_chunk(self, chunk: Sequence[SensorRecord]):
        self.session.execute(UNNEST_STATEMENT, column_arrays(chunk), prepare=self.prepared)


class PreparedInsertUnnestStrategy(InsertUnnestStrategy):
    """The unnest statement prepared on the first chunk and reused"""

    method = IngestMethod.PREPARED_INSERT_UNNEST
    label = "Prepared Insert UNNEST"
    prepared = True
