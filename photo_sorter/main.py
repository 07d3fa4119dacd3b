"""
Main entry point for the photo sorter.

This module parses the command line, loads the configuration, installs
signal handlers for graceful cancellation and runs the sorter. It also
provides the stand-alone ``photo-sorter-verify`` command.
"""

import argparse
import signal
import sys
import threading
from typing import Optional, List

from . import __version__
from .app import PhotoSorter
from .config import load_config, write_default_config
from .errors import PhotoSorterError
from .logger import Logger
from .verify import compare_directories, is_match, print_result


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photo-sorter",
        description="Sort photos and videos into date/device folders using their metadata.",
    )
    parser.add_argument("--src", help="Source folder with the original media")
    parser.add_argument("--dst", help="Destination folder for the sorted copies")
    parser.add_argument("--workers", type=int, help="Number of concurrent workers")
    parser.add_argument("--dry-run", action="store_true",
                        help="Only report where files would go, do not copy")
    parser.add_argument("-c", "--config", default="config.yaml", help="Path to the YAML config file")
    parser.add_argument("--init-config", action="store_true",
                        help="Write a default config file to --config and exit")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-file", help="Also write the log to this file")
    parser.add_argument("--date-format", help="strftime pattern for date folders, e.g. %%Y-%%m-%%d")
    parser.add_argument("--geotag", dest="enable_geotag", action="store_const", const=True,
                        help="Add the region of GPS tagged files to folder names and labels")
    parser.add_argument("--geojson", dest="geojson_path", help="GeoJSON boundary dataset for geotagging")
    parser.add_argument("--verify", dest="enable_verify", action="store_const", const=True,
                        help="Compare source and destination file names after the run")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def install_signal_handlers(cancel_event: threading.Event):
    """Turn SIGINT/SIGTERM into a cancellation request."""

    def handle_signal(signum, frame):
        if not cancel_event.is_set():
            print("\nShutdown requested, finishing current files...", file=sys.stderr)
        cancel_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, handle_signal)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the ``photo-sorter`` command."""
    args = build_parser().parse_args(argv)

    try:
        if args.init_config:
            write_default_config(args.config)
            print(f"Default config written to {args.config}")
            return EXIT_OK

        config = load_config(args.config)
        config.apply_overrides(
            src_dir=args.src,
            dst_dir=args.dst,
            workers=args.workers,
            dry_run=args.dry_run,
            log_level=args.log_level,
            log_file=args.log_file,
            date_format=args.date_format,
            enable_geotag=args.enable_geotag,
            geojson_path=args.geojson_path,
            enable_verify=args.enable_verify,
        )
        config.validate()
    except PhotoSorterError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    logger = Logger(config.log_level, config.log_file)
    log = logger.get_logger(__name__)

    cancel_event = threading.Event()
    install_signal_handlers(cancel_event)

    try:
        report = PhotoSorter(config).run(cancel_event)
    except PhotoSorterError as e:
        log.error(f"Run aborted: {e}")
        return EXIT_FAILURE
    finally:
        logger.close()

    stats = report.stats
    print("\n========== Sorting finished ==========")
    print(f"Status: {report.status.value}")
    if report.error is not None:
        print(f"Error: {report.error}")
    print(f"Total files: {stats.total_files}")
    print(f"Succeeded: {stats.success_count}")
    print(f"Failed: {stats.failure_count}")
    if report.verification_match is not None:
        print(f"Verification: {'match' if report.verification_match else 'MISMATCH'}")
    print(f"Duration: {report.duration:.2f}s")
    print("======================================")

    if report.cancelled:
        return EXIT_CANCELLED
    return EXIT_OK if report.ok else EXIT_FAILURE


def verify_main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the ``photo-sorter-verify`` command."""
    parser = argparse.ArgumentParser(
        prog="photo-sorter-verify",
        description="Compare the file names found in two directory trees.",
    )
    parser.add_argument("--source", required=True, help="Source directory")
    parser.add_argument("--target", required=True, help="Target directory")
    parser.add_argument("--ignore", action="append", default=[],
                        help="Name pattern to accept as a difference (name, *.ext, prefix*, *suffix)")
    args = parser.parse_args(argv)

    try:
        result = compare_directories(args.source, args.target)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    print(f"Source: {args.source}")
    print(f"Target: {args.target}")
    print_result(result)
    return EXIT_OK if is_match(result, args.ignore) else EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
