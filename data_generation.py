import random
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

import pandas as pd
from faker import Faker

fake = Faker()

COLUMNS = [
    "id",
    "timestamp",
    "voltage",
    "current",
    "temperature",
    "state_of_charge",
    "internal_resistance",
]
MEASUREMENT_COLUMNS = COLUMNS[2:]
# date, time and an explicit offset are all mandatory
RFC3339_PATTERN = r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})"


class DatasetError(Exception):
    """The dataset source is missing or malformed"""


@dataclass(frozen=True)
class SensorRecord:
    """One sensor observation"""

    id: int
    timestamp: datetime
    voltage: float
    current: float
    temperature: float
    state_of_charge: float
    internal_resistance: float

    def as_row(self) -> tuple:
        """Return the values in table column order"""
        return (
            self.id,
            self.timestamp,
            self.voltage,
            self.current,
            self.temperature,
            self.state_of_charge,
            self.internal_resistance,
        )


# ============================================================================
# DATASET LOADER
# ============================================================================
def load_dataset(path: str) -> List[SensorRecord]:
    """
    Read the CSV dataset into memory, preserving source order.

    The file must have a header row followed by rows of exactly seven columns:
    integer id, RFC-3339 timestamp and five decimal measurements. Any problem
    raises DatasetError before a single record is returned.
    """
    csv_path = Path(path)
    if not csv_path.is_file():
        raise DatasetError(f"Input file {path} does not exist")

    try:
        df = pd.read_csv(csv_path, header=0, dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DatasetError(f"Could not parse {path}: {e}") from e

    if len(df.columns) != len(COLUMNS):
        raise DatasetError(
            f"Expected {len(COLUMNS)} columns in {path}, found {len(df.columns)}"
        )
    df.columns = COLUMNS

    if df.empty:
        raise DatasetError(f"No records found in {path}")

    # short rows come back as NaN, empty cells as ""
    blank = df.isna() | df.apply(lambda col: col.str.strip() == "")
    if blank.any().any():
        row = int(blank.any(axis=1).idxmax())
        # +2: header line plus 1-based numbering
        raise DatasetError(f"Empty value on line {row + 2} of {path}")

    rfc3339 = df["timestamp"].str.strip().str.fullmatch(RFC3339_PATTERN)
    if not rfc3339.all():
        row = int((~rfc3339).idxmax())
        raise DatasetError(
            f"Timestamp {df['timestamp'][row]!r} on line {row + 2} of {path} is not RFC 3339"
        )

    try:
        ids = pd.to_numeric(df["id"], errors="raise")
        timestamps = pd.to_datetime(
            df["timestamp"].str.strip(), utc=True, format="ISO8601"
        ).dt.floor("us")
        measurements = df[MEASUREMENT_COLUMNS].apply(pd.to_numeric, errors="raise")
    except (ValueError, TypeError) as e:
        raise DatasetError(f"Malformed row in {path}: {e}") from e

    if not pd.api.types.is_integer_dtype(ids):
        raise DatasetError(f"Non-integer id found in {path}")

    records = []
    for record_id, ts, values in zip(
        ids.tolist(),
        [ts.to_pydatetime() for ts in timestamps],
        measurements.itertuples(index=False, name=None),
    ):
        records.append(SensorRecord(int(record_id), ts, *(float(v) for v in values)))

    return records


# ============================================================================
# DATASET GENERATOR
# ============================================================================
def generate_dataset(path: str, count: int, seed: Optional[int] = None) -> bool:
    """
    Write a synthetic dataset of `count` records in the loader's format.

    Returns False without touching anything when the file already exists.
    """
    csv_path = Path(path)
    if csv_path.exists():
        print(f"Data file {path} exists, skipping generation...", file=sys.stderr)
        return False

    if seed is not None:
        random.seed(seed)
        Faker.seed(seed)

    print(f"Generating {count:,} sensor records into {path}...", file=sys.stderr)

    start = fake.date_time_between(start_date="-30d", end_date="-1d", tzinfo=timezone.utc)
    generators = max(1, min(100, count // 1000))

    rows = []
    for i in range(count):
        ts = start + timedelta(seconds=i)
        rows.append(
            {
                "id": i % generators + 1,
                "timestamp": ts.isoformat().replace("+00:00", "Z"),
                "voltage": round(random.uniform(3.0, 4.2), 4),
                "current": round(random.uniform(-50.0, 50.0), 4),
                "temperature": round(random.uniform(15.0, 45.0), 2),
                "state_of_charge": round(random.uniform(0.0, 100.0), 2),
                "internal_resistance": round(random.uniform(0.001, 0.05), 5),
            }
        )

    df = pd.DataFrame(rows, columns=COLUMNS)
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(csv_path, index=False)

    print(f"✓ Wrote {count:,} records to {path}", file=sys.stderr)
    return True
