"""
Source tree scanning and job dispatch.

The source tree is walked twice: once to count the work for progress
reporting, once to feed the worker queue. The destination directory is
pruned from both walks, which matters when it is nested in the source.
"""

import logging
import os
import queue
import threading
from dataclasses import dataclass
from typing import Iterator, Optional

from .config import Config
from .errors import CopyError, ScanError
from .stats import StatsAggregator, Progress


@dataclass(frozen=True)
class ScanCount:
    total: int
    ignored: int


class Scanner:
    """
    Walks the source tree and classifies every file.

    Each file is either ignored, queued for a worker (supported format),
    or handed to the unsupported-file handler.
    """

    def __init__(self, config: Config, put_timeout: float = 0.1):
        """
        Initialize the scanner.

        Args:
            config: Run configuration
            put_timeout: How long a blocked queue put waits before
                re-checking for cancellation
        """
        self.logger = logging.getLogger(__name__)
        self.config = config
        self.source_root = os.path.abspath(config.src_dir)
        self.destination_root = os.path.abspath(config.dst_dir)
        self.put_timeout = put_timeout

    def is_under_destination(self, path: str) -> bool:
        path = os.path.abspath(path)
        return path == self.destination_root or path.startswith(self.destination_root + os.sep)

    @staticmethod
    def _raise_scan_error(error: OSError):
        raise ScanError(f"Failed to scan {error.filename}: {error}") from error

    def walk(self) -> Iterator[str]:
        """
        Yield every file path under the source root, outside the destination.

        Raises:
            ScanError: On any traversal error
        """
        if not os.path.isdir(self.source_root):
            raise ScanError(f"Source directory does not exist: {self.source_root}")
        if self.is_under_destination(self.source_root):
            self.logger.warning(f"Source {self.source_root} is inside the destination, nothing to scan")
            return

        for root, dirs, files in os.walk(self.source_root, onerror=self._raise_scan_error):
            # Prune in place so os.walk never descends into the destination
            dirs[:] = sorted(d for d in dirs if not self.is_under_destination(os.path.join(root, d)))
            for name in sorted(files):
                path = os.path.join(root, name)
                if self.is_under_destination(path):
                    continue
                yield path

    def count(self) -> ScanCount:
        """
        Count eligible and ignored files.

        Returns:
            ScanCount where ``total`` covers supported and unsupported files
        """
        total, ignored = 0, 0
        for path in self.walk():
            if self.config.should_ignore(path):
                self.logger.debug(f"Ignored: {path}")
                ignored += 1
            else:
                total += 1
        return ScanCount(total=total, ignored=ignored)

    def dispatch(self, jobs: "queue.Queue[Optional[str]]", stats: StatsAggregator,
                 organizer, progress: Optional[Progress] = None,
                 cancel_event: Optional[threading.Event] = None) -> int:
        """
        Walk the source tree and route every file.

        Args:
            jobs: Bounded queue feeding the worker pool
            stats: Run statistics
            organizer: FileOrganizer used for unsupported files
            progress: Progress counter, updated for unsupported files
            cancel_event: Stops dispatch when set

        Returns:
            Number of jobs put on the queue

        Raises:
            ScanError: On any traversal error
        """
        enqueued = 0
        for path in self.walk():
            if cancel_event is not None and cancel_event.is_set():
                self.logger.info("Cancellation requested, stopping dispatch")
                break

            ext = os.path.splitext(path)[1]

            if self.config.should_ignore(path):
                stats.increment_ignored(ext or os.path.basename(path))
                continue

            if self.config.is_supported_format(path):
                if not self._put(jobs, path, cancel_event):
                    self.logger.info("Cancellation requested, stopping dispatch")
                    break
                enqueued += 1
                continue

            stats.increment_unsupported(ext or "<none>")
            try:
                organizer.handle_unsupported_file(path)
            except (CopyError, OSError) as e:
                self.logger.error(f"Failed to handle unsupported file {path}: {e}")
                stats.increment_failure()
            else:
                self.logger.debug(f"Unsupported format copied: {path}")
                stats.increment_success()
            if progress is not None:
                progress.update()

        return enqueued

    def _put(self, jobs: queue.Queue, path: str,
             cancel_event: Optional[threading.Event]) -> bool:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                return False
            try:
                jobs.put(path, timeout=self.put_timeout)
                return True
            except queue.Full:
                continue
