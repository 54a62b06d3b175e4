from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

import pytest

from data_generation import SensorRecord


def make_records(count, start_id=1):
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        SensorRecord(
            id=start_id + i,
            timestamp=start + timedelta(seconds=i),
            voltage=3.7 + i / 100,
            current=1.5 * i,
            temperature=25.0,
            state_of_charge=80.0 - i,
            internal_resistance=0.01,
        )
        for i in range(count)
    ]


class FakeCopy:
    def __init__(self, statement):
        self.statement = statement
        self.data = []
        self.rows = []
        self.types = None
        self.finished = False

    def write(self, data):
        self.data.append(data)

    def set_types(self, types):
        self.types = list(types)

    def write_row(self, row):
        self.rows.append(tuple(row))


class FakeSession:
    """Records every call and keeps a count of rows in the simulated table"""

    def __init__(self, name="postgres-1", fail=None):
        self.name = name
        self.fail = fail
        self.calls = []
        self.copies = []
        self.row_count = 0
        self.resets = 0
        self.closed = False

    def _check(self, statement):
        if self.fail is not None and self.fail(self, statement):
            raise RuntimeError(f"simulated failure on {statement.split()[0]}")

    def execute_admin(self, statement):
        self._check(statement)
        self.calls.append(("admin", " ".join(statement.split())))
        if statement.startswith("TRUNCATE"):
            self.row_count = 0
            self.resets += 1

    def execute(self, query, params=None, prepare=False):
        self._check(query)
        self.calls.append(("execute", query, params, prepare))
        if "unnest" in query:
            self.row_count += len(params[0])
        else:
            self.row_count += len(params) // 7

    @contextmanager
    def copy(self, statement):
        self._check(statement)
        copy = FakeCopy(statement)
        self.calls.append(("copy", statement))
        self.copies.append(copy)
        yield copy
        copy.finished = True
        self.row_count += len(copy.rows) + sum(d.count("\n") for d in copy.data)

    @contextmanager
    def transaction(self):
        self.calls.append(("begin",))
        try:
            yield
        except Exception:
            self.calls.append(("rollback",))
            raise
        self.calls.append(("commit",))

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def executed(self):
        return [c for c in self.calls if c[0] == "execute"]


class SteppingClock:
    """Stands in for the time module inside timer.py"""

    def __init__(self, step):
        self.step = step
        self.now = 0.0

    def perf_counter(self):
        self.now += self.step
        return self.now


@pytest.fixture
def records():
    return make_records(10)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def clock(monkeypatch):
    """Make every timed block take exactly 1.25 seconds"""
    import timer

    fake = SteppingClock(1.25)
    monkeypatch.setattr(timer, "time", fake)
    return fake
