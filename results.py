"""
Benchmark results: the per-run record, ranking, and report rendering.
"""

import io
from dataclasses import dataclass
from typing import Iterable, List

import pandas as pd
from tabulate import tabulate

BOLD = "\033[1m"
RESET = "\033[0m"

HEADERS = [
    "Connection",
    "Method",
    "Batch Size",
    "Transaction",
    "Duration",
    "Rows/sec",
    "Relative Speed",
]


@dataclass(frozen=True)
class RunResult:
    """Outcome of one (connection, method, batch size, transaction) run."""

    connection: str
    method: str
    batch_size: int
    transaction: bool
    duration: float
    rows_per_sec: float

    @classmethod
    def sentinel(cls, connection: str, method: str, batch_size: int, transaction: bool) -> "RunResult":
        """Placeholder for a run that was rejected before executing"""
        return cls(connection, method, batch_size, transaction, 0.0, 0.0)

    @property
    def is_sentinel(self) -> bool:
        return self.duration == 0


def rank_results(results: Iterable[RunResult]) -> List[RunResult]:
    """Sort slowest first and drop runs that never executed"""
    ranked = sorted(results, key=lambda r: r.rows_per_sec)
    return [r for r in ranked if not r.is_sentinel]


def max_speed(results: List[RunResult]) -> float:
    if not results:
        return 1.0
    return max(r.rows_per_sec for r in results)


def relative_speed(result: RunResult, fastest: float) -> float:
    """How many times faster the fastest run was than this one"""
    if result.rows_per_sec <= 0:
        return float("inf")
    return fastest / result.rows_per_sec


def format_duration(seconds: float) -> str:
    """Format an elapsed time with two decimals in the largest fitting unit"""
    if seconds >= 1:
        return f"{seconds:.2f}s"
    if seconds >= 1e-3:
        return f"{seconds * 1e3:.2f}ms"
    if seconds >= 1e-6:
        return f"{seconds * 1e6:.2f}µs"
    return f"{seconds * 1e9:.2f}ns"


def results_frame(results: List[RunResult]) -> pd.DataFrame:
    """
    Build the report rows from already ranked results.

    Every column is pre-formatted text so that CSV and table output agree.
    """
    fastest = max_speed(results)
    rows = [
        [
            r.connection,
            r.method,
            str(r.batch_size),
            "Yes" if r.transaction else "No",
            format_duration(r.duration),
            f"{r.rows_per_sec:.0f}",
            f"x{relative_speed(r, fastest):.2f}",
        ]
        for r in results
    ]
    return pd.DataFrame(rows, columns=HEADERS)


def render_csv(results: List[RunResult]) -> str:
    buffer = io.StringIO()
    results_frame(results).to_csv(buffer, index=False, lineterminator="\n")
    return buffer.getvalue()


def render_table(results: List[RunResult], total_records: int) -> str:
    df = results_frame(results)
    headers = [f"{BOLD}{h}{RESET}" for h in HEADERS]
    table = tabulate(
        df.values.tolist(),
        headers=headers,
        tablefmt="simple",
        disable_numparse=True,
    )
    return f"\n{BOLD} Results for import of {total_records} records{RESET}\n{table}\n"
