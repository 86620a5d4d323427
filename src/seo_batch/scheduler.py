"""
Bounded worker pool running one task per target.

Rows are collected by joining futures in submission order, so the report
order never depends on which page finished first.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Sequence

from .constants import DEFAULT_NUMBER_OF_THREADS, DEFAULT_SHUTDOWN_TIMEOUT_SECONDS
from .models import ReportRow

logger = logging.getLogger(__name__)

Task = Callable[[str], ReportRow]


class BatchScheduler:
    """Runs a per-target task across a fixed-size thread pool."""

    def __init__(
        self,
        task: Task,
        max_workers: int = DEFAULT_NUMBER_OF_THREADS,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT_SECONDS,
    ):
        """
        Initialize the scheduler.

        Args:
            task: Processes one target and returns its row
            max_workers: Pool size
            shutdown_timeout: Seconds to wait for running tasks on exit
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.task = task
        self.max_workers = max_workers
        self.shutdown_timeout = shutdown_timeout

        self._lock = threading.Lock()
        self.completed = 0
        self.total = 0

    def _run_one(self, target: str) -> ReportRow:
        try:
            return self.task(target)
        finally:
            with self._lock:
                self.completed += 1
                done = self.completed
            logger.info(f"[{done}/{self.total}] Finished {target}")

    def run(
        self,
        targets: Sequence[str],
        on_row: Optional[Callable[[ReportRow], None]] = None,
    ) -> List[ReportRow]:
        """Process every target and return rows in submission order.

        Args:
            targets: Unique targets, in the order rows should appear
            on_row: Called with each row as it is joined, in submission order

        Returns:
            One ReportRow per target
        """
        self.total = len(targets)
        self.completed = 0
        rows: List[ReportRow] = []
        if not targets:
            return rows

        logger.info(f"Processing {self.total} targets with {self.max_workers} worker(s)")
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="seo-worker")
        futures: List[Future] = []
        try:
            futures = [executor.submit(self._run_one, target) for target in targets]

            for target, future in zip(targets, futures):
                try:
                    row = future.result()
                except Exception as e:
                    logger.error(f"Task for {target} raised: {e}", exc_info=True)
                    row = ReportRow.failed(target, error=f"Unexpected Error: {e}", attempts=0)
                rows.append(row)
                if on_row is not None:
                    on_row(row)
        finally:
            self._shutdown(executor, futures)

        return rows

    def _shutdown(self, executor: ThreadPoolExecutor, futures: List[Future]) -> None:
        executor.shutdown(wait=False, cancel_futures=True)
        _, not_done = wait(futures, timeout=self.shutdown_timeout)
        if not_done:
            logger.warning(
                f"{len(not_done)} task(s) still running after {self.shutdown_timeout:.0f}s, forcing shutdown"
            )
