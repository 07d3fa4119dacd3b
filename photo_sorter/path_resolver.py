"""
Target path resolution for sorted files.

A file lands in ``<dst>/<date>[-<region>]/<device>/<name>``, where the
date comes from the capture timestamp, the device from the camera model
and the optional region from an offline point lookup of the GPS tags.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from .config import Config
from .errors import ResolutionError
from .geocoder import GeoStateGeocoder, Region
from .metadata_extractor import ExifData, EXIF_DATE_FORMAT, parse_gps_string


UNKNOWN_DATE = "unknown_date"
UNKNOWN_DEVICE = "unknown_device"

# exiftool prints this when the tag exists but was never set
_ZERO_DATE = "0000:00:00 00:00:00"

_DEVICE_PATTERN = re.compile(r"[^A-Za-z0-9_]")


def unique_path(directory: Path, name: str, reserve: bool = False) -> Path:
    """
    Get a path in ``directory`` that does not exist yet.

    Args:
        directory: Target directory
        name: Desired file name
        reserve: Claim the path by creating an empty file, so concurrent
            callers never receive the same path

    Returns:
        ``directory/name``, or ``stem_1.ext``, ``stem_2.ext``, ... when taken
    """
    base = Path(name)
    stem, suffix = base.stem, base.suffix
    counter = 0
    while True:
        candidate = directory / (name if counter == 0 else f"{stem}_{counter}{suffix}")
        counter += 1
        if not reserve:
            if not candidate.exists():
                return candidate
            continue
        try:
            with open(candidate, "xb"):
                pass
        except FileExistsError:
            continue
        return candidate


def sanitize_device(model: str) -> str:
    """Turn a camera model into a folder name: ``Pixel 7`` -> ``Pixel_7``."""
    if not model:
        return UNKNOWN_DEVICE
    device = _DEVICE_PATTERN.sub("", model.replace(" ", "_"))
    return device or UNKNOWN_DEVICE


class PathResolver:
    """
    Computes collision-free destination paths.

    Holds no per-file state, so one instance is shared by all workers.
    """

    def __init__(self, config: Config, geocoder: Optional[GeoStateGeocoder] = None):
        """
        Initialize the resolver.

        Args:
            config: Run configuration (destination root, date format, geotag flag)
            geocoder: Loaded geocoder, or None to disable region lookup
        """
        self.logger = logging.getLogger(__name__)
        self.config = config
        self.geocoder = geocoder
        self.destination_root = Path(config.dst_dir)

    def date_bucket(self, exif: ExifData) -> str:
        """
        Format the capture date of a file.

        The primary capture date wins over the container date. A date that
        is present but malformed is an error rather than ``unknown_date``.

        Raises:
            ResolutionError: If a present date does not parse
        """
        date = exif.create_date
        if not date or date == _ZERO_DATE:
            date = exif.media_create_date
        if not date or date == _ZERO_DATE:
            return UNKNOWN_DATE

        try:
            parsed = datetime.strptime(date, EXIF_DATE_FORMAT)
        except ValueError as e:
            raise ResolutionError(f"Failed to parse date '{date}': {e}") from e
        return parsed.strftime(self.config.date_format)

    def locate(self, exif: ExifData) -> Optional[Region]:
        """
        Look up the region a file was taken in.

        Returns None when geotagging is off, GPS tags are missing or zero,
        or nothing matches. GPS parse errors are logged, not raised.
        """
        if not self.config.enable_geotag or self.geocoder is None or not exif.has_gps():
            return None

        try:
            lat = parse_gps_string(exif.gps_latitude)
            lon = parse_gps_string(exif.gps_longitude)
        except ValueError as e:
            self.logger.warning(f"Ignoring GPS tags ({exif.gps_latitude}, {exif.gps_longitude}): {e}")
            return None

        if lat == 0 or lon == 0:
            return None

        try:
            return self.geocoder.locate(lat, lon)
        except Exception as e:
            self.logger.warning(f"Region lookup failed for ({lat:.6f}, {lon:.6f}): {e}")
            return None

    def resolve(self, path: str, exif: ExifData) -> Tuple[Path, Optional[Region]]:
        """
        Compute the destination of a file and create its directory.

        Args:
            path: Source file path
            exif: Metadata of the file

        Returns:
            Tuple of (target path, region or None)

        Raises:
            ResolutionError: If the date does not parse or the directory
                cannot be created
        """
        date = self.date_bucket(exif)

        region = self.locate(exif)
        if region is not None:
            date = f"{date}-{region.tag}"

        target_dir = self.destination_root / date / sanitize_device(exif.model)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ResolutionError(f"Failed to create directory {target_dir}: {e}") from e

        try:
            target = unique_path(target_dir, Path(path).name, reserve=not self.config.dry_run)
        except OSError as e:
            raise ResolutionError(f"Failed to claim a file name in {target_dir}: {e}") from e
        return target, region
