"""
Main application module for the photo sorter.

Wires the scanner, the worker pool, result aggregation and the progress
reporter together for one sorting run, then reports and optionally
verifies the outcome.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import Config
from .directory_stats import DirectoryStats
from .errors import GeocodingError, ScanError
from .file_organizer import FileOrganizer
from .geocoder import GeoStateGeocoder, create_geocoder
from .logger import Logger
from .metadata_extractor import MetadataExtractor
from .path_resolver import PathResolver
from .scanner import Scanner, ScanCount
from .stats import StatsAggregator, StatsSnapshot, Progress
from .tagger import Tagger, NullTagger, create_tagger
from .verify import CompareResult, compare_directories
from .worker import WorkerPool, Result


class RunStatus(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class RunReport:
    """Everything the final summary shows."""

    status: RunStatus
    stats: StatsSnapshot
    duration: float
    jobs_enqueued: int = 0
    results_received: int = 0
    ignored_files: int = 0
    verification: Optional[CompareResult] = None
    verification_match: Optional[bool] = None
    error: Optional[Exception] = None

    @property
    def cancelled(self) -> bool:
        return self.status is RunStatus.CANCELLED

    @property
    def ok(self) -> bool:
        return (self.status is RunStatus.COMPLETED
                and self.stats.failure_count == 0
                and self.verification_match is not False)


class PhotoSorter:
    """
    Orchestrates one sorting run.

    Collaborators can be injected; by default they are built from the
    configuration.
    """

    def __init__(self, config: Config, extractor: Optional[MetadataExtractor] = None,
                 geocoder: Optional[GeoStateGeocoder] = None, tagger: Optional[Tagger] = None):
        """
        Initialize the sorter.

        Args:
            config: Run configuration
            extractor: Metadata source (defaults to exiftool based extraction)
            geocoder: Region lookup (loaded from ``config.geojson_path`` when
                geotagging is enabled)
            tagger: File labeler (platform default when geotagging is enabled)
        """
        self.log = logging.getLogger(__name__)
        self.config = config

        self.stats = StatsAggregator()
        self.progress = Progress()

        if geocoder is None and config.enable_geotag:
            geocoder = self._load_geocoder()
        if tagger is None:
            tagger = create_tagger() if config.enable_geotag else NullTagger()

        self.extractor = extractor or MetadataExtractor()
        self.resolver = PathResolver(config, geocoder)
        self.organizer = FileOrganizer(config, self.resolver, self.extractor, tagger)
        self.scanner = Scanner(config)

        self._results_received = 0

    def _load_geocoder(self) -> Optional[GeoStateGeocoder]:
        try:
            return create_geocoder(self.config.geocoder_type, json_path=self.config.geojson_path)
        except GeocodingError as e:
            self.log.error(f"Geotagging disabled: {e}")
            return None

    def _log_config(self):
        cfg = self.config
        self.log.info(f"Source: {cfg.src_dir}")
        self.log.info(f"Destination: {cfg.dst_dir}")
        self.log.info(f"Workers: {cfg.workers}, dry run: {cfg.dry_run}")
        self.log.info(f"Formats: {cfg.formats}")
        self.log.info(f"Ignored: {cfg.ignore}")
        self.log.info(f"Date format: {cfg.date_format}")
        self.log.info(f"Geotagging: {cfg.enable_geotag} ({cfg.geocoder_type}), verify: {cfg.enable_verify}")

    def _log_directory_stats(self, directory: str, exclude: Optional[str] = None):
        try:
            DirectoryStats.build(directory, exclude=exclude).log(self.log)
        except OSError as e:
            self.log.error(f"Failed to collect directory statistics for {directory}: {e}")

    def run(self, cancel_event: Optional[threading.Event] = None) -> RunReport:
        """
        Run the sorter.

        Args:
            cancel_event: Setting it cancels the run

        Returns:
            RunReport with status ``completed``, ``cancelled``, or ``failed``
            when the source walk broke off after files were dispatched

        Raises:
            ScanError: If the source tree cannot be counted
        """
        cancel_event = cancel_event or threading.Event()
        start_time = time.monotonic()

        self._log_config()
        self._log_directory_stats(self.config.src_dir, exclude=self.config.dst_dir)

        try:
            Path(self.config.dst_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ScanError(f"Failed to create destination {self.config.dst_dir}: {e}") from e

        count = self.scanner.count()
        self.progress.set_total(count.total)
        self.stats.set_total_files(count.total)
        self.log.info(f"Workers: {self.config.workers}, files to process: {count.total}, "
                      f"ignored: {count.ignored}")

        jobs: queue.Queue = queue.Queue(maxsize=self.config.queue_size)
        results: queue.Queue = queue.Queue()

        pool = WorkerPool(self.config.workers, jobs, results, self.organizer,
                          self.progress, cancel_event)

        reporter_stop = threading.Event()
        reporter = threading.Thread(target=self._report_progress, args=(reporter_stop,),
                                    name="sorter-progress", daemon=True)
        aggregator = threading.Thread(target=self._aggregate, args=(results,),
                                      name="sorter-aggregator")

        dispatch_state = {"enqueued": 0, "error": None}
        dispatcher = threading.Thread(target=self._dispatch,
                                      args=(jobs, pool, cancel_event, dispatch_state),
                                      name="sorter-dispatcher")

        reporter.start()
        aggregator.start()
        pool.start()
        dispatcher.start()

        try:
            dispatcher.join()
            processed = pool.join()
        finally:
            results.put(None)
            aggregator.join()
            reporter_stop.set()
            reporter.join()

        report = self._build_report(cancel_event, start_time, count,
                                    dispatch_state["enqueued"], dispatch_state["error"])
        if report.status is RunStatus.COMPLETED and report.jobs_enqueued != report.results_received:
            self.log.error(f"Job/result mismatch: {report.jobs_enqueued} jobs, "
                           f"{report.results_received} results, {processed} processed")
        Logger.log_run_report(report)
        return report

    def _dispatch(self, jobs: queue.Queue, pool: WorkerPool,
                  cancel_event: threading.Event, state: dict):
        try:
            state["enqueued"] = self.scanner.dispatch(jobs, self.stats, self.organizer,
                                                      self.progress, cancel_event)
        except ScanError as e:
            self.log.error(f"Scan failed: {e}")
            state["error"] = e
        finally:
            pool.close()

    def _aggregate(self, results: queue.Queue):
        while True:
            result: Optional[Result] = results.get()
            if result is None:
                return
            self._results_received += 1
            if result.cancelled:
                continue
            self.stats.record(result.succeeded)

    def _report_progress(self, stop_event: threading.Event):
        _, total = self.progress.status()
        progress_bar = Logger.create_progress_bar(total, "Sorting")
        shown = 0

        def refresh():
            nonlocal shown
            processed, total = self.progress.status()
            if progress_bar is not None:
                progress_bar.update(processed - shown)
            if total > 0:
                self.log.debug(f"Progress: {processed}/{total} ({self.progress.percentage():.1f}%)")
            shown = processed

        while not stop_event.wait(self.config.progress_interval):
            refresh()
        refresh()
        if progress_bar is not None:
            progress_bar.close()

    def _build_report(self, cancel_event: threading.Event, start_time: float,
                      count: ScanCount, enqueued: int,
                      error: Optional[Exception] = None) -> RunReport:
        if error is not None:
            status = RunStatus.FAILED
        elif cancel_event.is_set():
            status = RunStatus.CANCELLED
        else:
            status = RunStatus.COMPLETED

        report = RunReport(
            status=status,
            stats=self.stats.snapshot(),
            duration=time.monotonic() - start_time,
            jobs_enqueued=enqueued,
            results_received=self._results_received,
            ignored_files=count.ignored,
            error=error,
        )

        self._log_directory_stats(self.config.dst_dir)

        if self.config.enable_verify and report.status is RunStatus.COMPLETED:
            try:
                report.verification = compare_directories(self.config.src_dir, self.config.dst_dir)
            except OSError as e:
                self.log.error(f"Verification failed: {e}")
                report.verification_match = False
            else:
                report.verification_match = self._differences_ignored(report.verification)

        return report

    def _differences_ignored(self, result: CompareResult) -> bool:
        # Same case-insensitive rule the scanner used to skip these files
        return all(self.config.should_ignore(name)
                   for name in result.only_in_source + result.only_in_target)
