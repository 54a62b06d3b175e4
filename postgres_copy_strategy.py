from typing import Sequence

from data_generation import SensorRecord
from strategy import TABLE_NAME, IngestionStrategy, IngestMethod

COPY_TEXT = f"COPY {TABLE_NAME} FROM STDIN"
COPY_BINARY = f"COPY {TABLE_NAME} FROM STDIN WITH (FORMAT binary)"
BINARY_TYPES = ["int4", "timestamptz", "float8", "float8", "float8", "float8", "float8"]


def copy_line(record: SensorRecord) -> str:
    """Tab-delimited text-format line for one record"""
    return (
        f"{record.id}\t{record.timestamp.isoformat()}\t{record.voltage!r}\t"
        f"{record.current!r}\t{record.temperature!r}\t{record.state_of_charge!r}\t"
        f"{record.internal_resistance!r}\n"
    )


class CopyStrategy(IngestionStrategy):
    """Text COPY, one channel opened and finished per chunk"""

    method = IngestMethod.COPY
    label = "Copy"

    def ingest_chunk(self, chunk: Sequence[SensorRecord]):
        with self.session.copy(COPY_TEXT) as copy:
            for record in chunk:
                copy.write(copy_line(record))


class BinaryCopyStrategy(IngestionStrategy):
    """Binary COPY typed to the table schema, one channel per chunk"""

    method = IngestMethod.BINARY_COPY
    label = "Binary Copy"

    def ingest_chunk(self, chunk: Sequence[SensorRecord]):
        with self.session.copy(COPY_BINARY) as copy:
            copy.set_types(BINARY_TYPES)
            for record in chunk:
                copy.write_row(record.as_row())
