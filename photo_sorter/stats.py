"""
Run statistics and progress tracking.

Both objects are written by many threads at once. Each has its own lock
so the progress reporter never waits on result aggregation.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time copy of the run statistics."""

    total_files: int = 0
    success_count: int = 0
    failure_count: int = 0
    unsupported_count: int = 0
    ignored_count: int = 0
    unsupported_exts: Dict[str, int] = field(default_factory=dict)
    ignored_exts: Dict[str, int] = field(default_factory=dict)


class StatsAggregator:
    """Thread-safe counters for one run."""

    def __init__(self):
        self._lock = threading.Lock()
        self._total_files = 0
        self._success_count = 0
        self._failure_count = 0
        self._unsupported_exts: Dict[str, int] = {}
        self._ignored_exts: Dict[str, int] = {}

    def set_total_files(self, total: int):
        with self._lock:
            self._total_files = total

    def increment_success(self):
        with self._lock:
            self._success_count += 1

    def increment_failure(self):
        with self._lock:
            self._failure_count += 1

    def increment_unsupported(self, ext: str):
        ext = ext.lower()
        with self._lock:
            self._unsupported_exts[ext] = self._unsupported_exts.get(ext, 0) + 1

    def increment_ignored(self, ext: str):
        ext = ext.lower()
        with self._lock:
            self._ignored_exts[ext] = self._ignored_exts.get(ext, 0) + 1

    def record(self, succeeded: bool):
        """Count one finished file."""
        with self._lock:
            if succeeded:
                self._success_count += 1
            else:
                self._failure_count += 1

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return StatsSnapshot(
                total_files=self._total_files,
                success_count=self._success_count,
                failure_count=self._failure_count,
                unsupported_count=sum(self._unsupported_exts.values()),
                ignored_count=sum(self._ignored_exts.values()),
                unsupported_exts=dict(self._unsupported_exts),
                ignored_exts=dict(self._ignored_exts),
            )


class Progress:
    """Processed/total counter polled by the progress reporter."""

    def __init__(self):
        self._lock = threading.Lock()
        self._processed = 0
        self._total = 0

    def set_total(self, total: int):
        with self._lock:
            self._total = total

    def update(self, count: int = 1):
        with self._lock:
            self._processed += count

    def status(self) -> Tuple[int, int]:
        """Return (processed, total) read under one lock."""
        with self._lock:
            return self._processed, self._total

    def percentage(self) -> float:
        processed, total = self.status()
        if total <= 0:
            return 0.0
        return processed / total * 100
