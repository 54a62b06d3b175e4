import time


class BenchmarkTimer:
    """Context manager timing one ingestion run with a monotonic clock"""

    def __init__(self, label: str):
        self.label = label
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.end_time = None
        return self

    def __exit__(self, *args):
        self.end_time = time.perf_counter()

    @property
    def elapsed(self) -> float:
        """Seconds between enter and exit, 0.0 until the block has finished"""
        if self.start_time is None or self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    def rows_per_sec(self, row_count: int) -> float:
        """Throughput of the timed block; 0.0 when nothing was measured"""
        elapsed = self.elapsed
        if elapsed <= 0:
            return 0.0
        return row_count / elapsed
