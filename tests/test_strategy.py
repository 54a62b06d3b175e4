import pytest

from conftest import FakeSession, make_records
from strategy import RESET_STATEMENTS, IngestionStrategy, IngestMethod, chunked, reset_table


class RecordingStrategy(IngestionStrategy):
    label = "Recording"

    def __init__(self, session):
        super().__init__(session)
        self.chunks = []

    def ingest_chunk(self, chunk):
        self.chunks.append(list(chunk))


class TestChunked:
    @pytest.mark.parametrize("batch_size", range(1, 12))
    def test_chunks_reproduce_records_in_order(self, batch_size):
        records = make_records(10)
        chunks = list(chunked(records, batch_size))

        assert [r for chunk in chunks for r in chunk] == records
        assert all(len(chunk) <= batch_size for chunk in chunks)

    def test_only_last_chunk_is_short(self):
        sizes = [len(c) for c in chunked(make_records(10), 4)]
        assert sizes == [4, 4, 2]

    def test_empty_records_yield_nothing(self):
        assert list(chunked([], 5)) == []

    def test_rejects_non_positive_batch_size(self):
        with pytest.raises(ValueError):
            list(chunked(make_records(3), 0))


class TestResetTable:
    def test_issues_statements_in_order(self, session):
        reset_table(session)

        statements = [c[1] for c in session.calls]
        assert statements[0].startswith("CREATE TABLE IF NOT EXISTS power_generation")
        assert statements[1:] == [
            "TRUNCATE TABLE power_generation",
            "ALTER TABLE power_generation SET (autovacuum_enabled = false)",
            "CHECKPOINT",
        ]

    def test_table_has_seven_columns(self):
        create = RESET_STATEMENTS[0]
        assert create.count("DOUBLE PRECISION") == 5
        assert "INTEGER" in create
        assert "TIMESTAMP WITH TIME ZONE" in create


class TestIngestMethod:
    def test_parse_is_exact_and_case_insensitive(self):
        assert IngestMethod.parse("binary-copy") is IngestMethod.BINARY_COPY
        assert IngestMethod.parse(" Copy ") is IngestMethod.COPY

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="unknown method"):
            IngestMethod.parse("insert")

    def test_six_methods(self):
        assert len(IngestMethod) == 6


class TestRun:
    def test_reset_happens_before_timed_work(self, session, records, clock):
        strategy = RecordingStrategy(session)
        strategy.run(records, 3, use_transaction=False)

        assert session.calls[0][0] == "admin"
        assert session.resets == 1
        assert len(strategy.chunks) == 4

    def test_rows_per_sec_is_records_over_elapsed(self, session, records, clock):
        result = RecordingStrategy(session).run(records, 5, use_transaction=False)

        assert result.duration == 1.25
        assert result.rows_per_sec == len(records) / 1.25
        assert result.connection == "postgres-1"
        assert result.method == "Recording"
        assert result.batch_size == 5
        assert result.transaction is False

    def test_transaction_wraps_all_chunks(self, records):
        session = FakeSession()
        RecordingStrategy(session).run(records, 5, use_transaction=True)

        kinds = [c[0] for c in session.calls]
        assert kinds.count("begin") == 1
        assert kinds[-1] == "commit"
        assert kinds.index("begin") > max(i for i, k in enumerate(kinds) if k == "admin")

    def test_no_transaction_when_disabled(self, session, records):
        RecordingStrategy(session).run(records, 5, use_transaction=False)
        assert ("begin",) not in session.calls

    def test_failing_chunk_rolls_back_and_propagates(self, records):
        class Failing(RecordingStrategy):
            def ingest_chunk(self, chunk):
                raise RuntimeError("boom")

        session = FakeSession()
        with pytest.raises(RuntimeError):
            Failing(session).run(records, 5, use_transaction=True)
        assert session.calls[-1] == ("rollback",)

    def test_reset_failure_propagates(self, records):
        session = FakeSession(fail=lambda s, stmt: stmt == "CHECKPOINT")
        strategy = RecordingStrategy(session)

        with pytest.raises(RuntimeError):
            strategy.run(records, 5, use_transaction=False)
        assert strategy.chunks == []
