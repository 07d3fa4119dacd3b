"""
Worker pool for concurrent file processing.

A fixed number of workers pull paths from a bounded job queue and push
exactly one Result per path onto the results queue. A ``None`` job tells
a worker the pool is closed; the shared cancellation event stops all of
them early.
"""

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, Future
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, List

from .errors import RunCancelled
from .stats import Progress


@dataclass(frozen=True)
class Result:
    """Outcome of processing one job."""

    path: str
    target: Optional[Path] = None
    error: Optional[Exception] = None
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.cancelled


class Worker:
    """Processes jobs one at a time until the pool closes or the run is cancelled."""

    def __init__(self, worker_id: int, jobs: queue.Queue, results: queue.Queue,
                 organizer, progress: Progress, cancel_event: threading.Event,
                 poll_interval: float = 0.1):
        self.logger = logging.getLogger(__name__)
        self.worker_id = worker_id
        self.jobs = jobs
        self.results = results
        self.organizer = organizer
        self.progress = progress
        self.cancel_event = cancel_event
        self.poll_interval = poll_interval
        self.processed = 0

    def run(self) -> int:
        """
        Worker loop.

        Returns:
            Number of jobs this worker processed
        """
        self.logger.debug(f"Worker {self.worker_id} started")
        while True:
            if self.cancel_event.is_set():
                self.logger.debug(f"Worker {self.worker_id} stopped by cancellation")
                return self.processed

            try:
                path = self.jobs.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            if path is None:
                self.logger.debug(f"Worker {self.worker_id} finished all jobs")
                return self.processed

            self.results.put(self.process(path))
            self.processed += 1
            self.progress.update()

    def process(self, path: str) -> Result:
        """Process one job; never raises."""
        self.logger.debug(f"Worker {self.worker_id} processing: {path}")
        try:
            target = self.organizer.process_file(path, self.cancel_event)
        except RunCancelled as e:
            self.logger.debug(f"Worker {self.worker_id} abandoned {path}: {e}")
            return Result(path=path, error=e, cancelled=True)
        except Exception as e:
            self.logger.error(f"Worker {self.worker_id} failed on {path}: {e}")
            return Result(path=path, error=e)

        self.logger.debug(f"Worker {self.worker_id} done: {path} -> {target}")
        return Result(path=path, target=target)


class WorkerPool:
    """
    Fixed-size pool of workers running on a thread pool executor.

    Usage: ``start()``, feed the job queue, ``close()``, then ``join()``.
    """

    def __init__(self, size: int, jobs: queue.Queue, results: queue.Queue,
                 organizer, progress: Progress, cancel_event: threading.Event,
                 poll_interval: float = 0.1):
        """
        Initialize the pool.

        Args:
            size: Number of workers
            jobs: Job queue shared with the dispatcher
            results: Queue receiving one Result per job
            organizer: FileOrganizer doing the per-file work
            progress: Progress counter updated after each job
            cancel_event: Shared cancellation signal
            poll_interval: Seconds between cancellation checks while idle
        """
        if size < 1:
            raise ValueError(f"Pool size must be at least 1, got {size}")

        self.logger = logging.getLogger(__name__)
        self.size = size
        self.jobs = jobs
        self.cancel_event = cancel_event
        self.poll_interval = poll_interval
        self.workers = [
            Worker(i, jobs, results, organizer, progress, cancel_event, poll_interval)
            for i in range(size)
        ]
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: List[Future] = []

    def start(self):
        self._executor = ThreadPoolExecutor(max_workers=self.size, thread_name_prefix="sorter-worker")
        self._futures = [self._executor.submit(worker.run) for worker in self.workers]
        self.logger.info(f"Started {self.size} workers")

    def close(self):
        """Tell every worker that no more jobs are coming."""
        for _ in self.workers:
            while True:
                if self.cancel_event.is_set():
                    # Workers exit on their own
                    return
                try:
                    self.jobs.put(None, timeout=self.poll_interval)
                    break
                except queue.Full:
                    continue

    def join(self) -> int:
        """
        Wait for all workers to exit.

        Returns:
            Total number of jobs processed
        """
        if self._executor is None:
            return 0
        self._executor.shutdown(wait=True)
        return sum(future.result() for future in self._futures)
