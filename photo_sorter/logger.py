"""
Logging module for the photo sorter.

This module provides centralized logging functionality with configurable
log levels and output formats, plus the end-of-run summary and the
progress bar used by the progress reporter.
"""

import logging
import sys
from typing import Optional, TYPE_CHECKING

from tqdm import tqdm

if TYPE_CHECKING:
    from .app import RunReport


class Logger:
    """
    Centralized logging configuration for the photo sorter.

    Provides consistent logging across all modules with configurable
    log levels and output formats.
    """

    def __init__(self, log_level: str = "INFO", log_file: Optional[str] = None):
        """
        Initialize the logger.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Optional log file path
        """
        self.log_level = getattr(logging, log_level.upper(), logging.INFO)
        self.log_file = log_file
        self._setup_logging()

    def _setup_logging(self):
        """Set up logging configuration."""
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level)

        # Clear existing handlers
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        if self.log_file:
            try:
                file_handler = logging.FileHandler(self.log_file, mode='a', encoding='utf-8')
                file_handler.setLevel(self.log_level)
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)
                logging.info(f"Logging to file: {self.log_file}")
            except OSError as e:
                logging.error(f"Failed to set up file logging: {e}")

        # exifread and hachoir are chatty at DEBUG
        logging.getLogger('exifread').setLevel(logging.WARNING)
        logging.getLogger('PIL').setLevel(logging.WARNING)

        logging.debug("Logging system initialized")

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get a logger instance for a specific module.

        Args:
            name: Logger name (usually __name__)

        Returns:
            Configured logger instance
        """
        return logging.getLogger(name)

    def close(self):
        """Flush and detach all handlers."""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            handler.flush()
            root_logger.removeHandler(handler)
            handler.close()

    @staticmethod
    def log_run_report(report: "RunReport"):
        """
        Log the summary of a finished run.

        Args:
            report: Final run report
        """
        logger = logging.getLogger(__name__)
        stats = report.stats

        logger.info("=" * 50)
        logger.info("RUN SUMMARY")
        logger.info("=" * 50)
        logger.info(f"Status: {report.status.value}")
        if report.error is not None:
            logger.error(f"Run stopped early: {report.error}")
        logger.info(f"Total files: {stats.total_files}")
        logger.info(f"Successful: {stats.success_count}")
        logger.info(f"Failed: {stats.failure_count}")

        if stats.unsupported_exts:
            logger.info(f"Unsupported formats: {dict(sorted(stats.unsupported_exts.items()))}")
        if stats.ignored_exts:
            logger.info(f"Ignored formats: {dict(sorted(stats.ignored_exts.items()))}")

        if report.verification is not None:
            if report.verification_match:
                logger.info("Verification: directories match")
            else:
                logger.error("Verification: directories do not match")
                for name in report.verification.only_in_source:
                    logger.error(f"  only in source: {name}")
                for name in report.verification.only_in_target:
                    logger.error(f"  only in destination: {name}")

        logger.info(f"Duration: {report.duration:.2f}s")
        logger.info("=" * 50)

    @staticmethod
    def create_progress_bar(total: int, desc: str = "Sorting") -> Optional[tqdm]:
        """
        Create a progress bar for tracking operations.

        Args:
            total: Total number of items to process
            desc: Description for the progress bar

        Returns:
            tqdm progress bar instance, or None when there is nothing to track
        """
        if total > 0:
            return tqdm(total=total, desc=desc, unit="files", ncols=80)
        return None
