"""
Ingestion Benchmark - measures bulk loading throughput into PostgreSQL

This benchmark:
1. Connects to every configured target (TLS first, plaintext as fallback)
2. For every batch size and method, resets the target table and times one
   full ingestion of the in-memory dataset
3. Collects one RunResult per successful run; a failing run is reported and
   skipped without stopping the remaining ones
"""

import sys
from typing import Callable, Dict, List, Optional, Sequence, Type

from connection import ConnectionTarget, DatabaseSession, connect
from data_generation import SensorRecord
from postgres_copy_strategy import BinaryCopyStrategy, CopyStrategy
from postgres_unnest_strategy import InsertUnnestStrategy, PreparedInsertUnnestStrategy
from postgres_values_strategy import InsertValuesStrategy, PreparedInsertValuesStrategy
from results import RunResult, format_duration
from strategy import IngestionStrategy, IngestMethod

STRATEGIES: Dict[IngestMethod, Type[IngestionStrategy]] = {
    IngestMethod.INSERT_VALUES: InsertValuesStrategy,
    IngestMethod.PREPARED_INSERT_VALUES: PreparedInsertValuesStrategy,
    IngestMethod.INSERT_UNNEST: InsertUnnestStrategy,
    IngestMethod.PREPARED_INSERT_UNNEST: PreparedInsertUnnestStrategy,
    IngestMethod.COPY: CopyStrategy,
    IngestMethod.BINARY_COPY: BinaryCopyStrategy,
}

ALL_METHODS: List[IngestMethod] = list(STRATEGIES)


def run_strategy(
    method: IngestMethod,
    session,
    records: Sequence[SensorRecord],
    batch_size: int,
    use_transaction: bool,
) -> RunResult:
    """Run one method against an open session and return its measured result"""
    strategy = STRATEGIES[method](session)
    return strategy.run(records, batch_size, use_transaction)


class IngestionBenchmark:
    """Drive every (connection, batch size, method) combination in sequence"""

    def __init__(
        self,
        connections: Sequence[ConnectionTarget],
        methods: Sequence[IngestMethod],
        batch_sizes: Sequence[int],
        use_transactions: bool = False,
        connector: Optional[Callable[[ConnectionTarget], DatabaseSession]] = None,
    ):
        """
        Initialize the ingestion benchmark.

        Args:
            connections: Targets to benchmark, at least one
            methods: Methods to run for each batch size, in order
            batch_sizes: Batch sizes to run, in order
            use_transactions: Wrap each run in a single transaction
            connector: Opens a session for a target, connection.connect by default
        """
        self.connections = list(connections)
        self.methods = list(methods)
        self.batch_sizes = list(batch_sizes)
        self.use_transactions = use_transactions
        self.connector = connector or connect

    @property
    def total_runs(self) -> int:
        return len(self.connections) * len(self.batch_sizes) * len(self.methods)

    def run(self, records: Sequence[SensorRecord]) -> List[RunResult]:
        """
        Run every combination and return the collected results.

        ConnectionFailedError propagates: a target that cannot be reached
        aborts the benchmark.
        """
        results: List[RunResult] = []

        print(
            f"\nRunning {self.total_runs} benchmark(s) over {len(records):,} records",
            file=sys.stderr,
        )

        for target in self.connections:
            print(f"\n--- Benchmarking: {target.name} ---", file=sys.stderr)
            with self.connector(target) as session:
                results.extend(self._run_connection(session, records))

        return results

    def _run_connection(self, session, records: Sequence[SensorRecord]) -> List[RunResult]:
        results: List[RunResult] = []

        for batch_size in self.batch_sizes:
            for method in self.methods:
                try:
                    result = run_strategy(
                        method, session, records, batch_size, self.use_transactions
                    )
                except Exception as e:
                    print(
                        f"  ✗ Error running {method.value} on {session.name} "
                        f"(batch size {batch_size}): {e}",
                        file=sys.stderr,
                    )
                    continue

                results.append(result)
                if not result.is_sentinel:
                    print(
                        f"  ✓ {result.method} (batch size {batch_size}): "
                        f"{format_duration(result.duration)}, "
                        f"{result.rows_per_sec:,.0f} rows/sec",
                        file=sys.stderr,
                    )

        return results
