"""
Metadata extraction module for media files.

This module reads the capture date, device model and GPS position of a
media file. exiftool is used when it is installed; otherwise Pillow and
exifread read image EXIF and hachoir reads video container dates. Every
path produces the same string shapes exiftool prints, so the rest of the
sorter does not care where the values came from.
"""

import json
import logging
import re
import subprocess
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple, Dict, Any, Sequence

import exifread
from PIL import Image
from PIL.ExifTags import IFD
from hachoir.metadata import extractMetadata
from hachoir.parser import createParser

from .errors import MetadataError


EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"

EXIFTOOL_TAGS = ["-CreateDate", "-MediaCreateDate", "-Model", "-GPSLatitude", "-GPSLongitude"]

# EXIF tag ids used by the Pillow path
_TAG_MODEL = 0x0110
_TAG_DATETIME_ORIGINAL = 0x9003
_TAG_DATETIME_DIGITIZED = 0x9004
_GPS_LATITUDE_REF = 1
_GPS_LATITUDE = 2
_GPS_LONGITUDE_REF = 3
_GPS_LONGITUDE = 4

_GPS_PATTERN = re.compile(
    r"""^\s*
    (?P<deg>\d+(?:\.\d+)?)\s*(?:deg|°)?\s*
    (?P<min>\d+(?:\.\d+)?)\s*'\s*
    (?P<sec>\d+(?:\.\d+)?)\s*"?\s*
    (?P<ref>[NSEW])?\s*$""",
    re.VERBOSE | re.IGNORECASE,
)


@dataclass(frozen=True)
class ExifData:
    """Raw per-file attributes, as strings in exiftool's print format."""

    create_date: str = ""
    media_create_date: str = ""
    model: str = ""
    gps_latitude: str = ""
    gps_longitude: str = ""

    @classmethod
    def from_exiftool(cls, record: Dict[str, Any]) -> "ExifData":
        def text(key: str) -> str:
            value = record.get(key)
            return "" if value is None else str(value).strip()

        return cls(
            create_date=text("CreateDate"),
            media_create_date=text("MediaCreateDate"),
            model=text("Model"),
            gps_latitude=text("GPSLatitude"),
            gps_longitude=text("GPSLongitude"),
        )

    def has_gps(self) -> bool:
        return bool(self.gps_latitude and self.gps_longitude)


def parse_gps_string(gps_str: str) -> float:
    """
    Convert a sexagesimal GPS string to decimal degrees.

    Args:
        gps_str: Value such as ``22 deg 41' 58.80" N``

    Returns:
        Decimal degrees, negative for S and W; 0.0 for an empty string

    Raises:
        ValueError: If the string is not in degree/minute/second form
    """
    if not gps_str:
        return 0.0

    cleaned = gps_str.strip().strip('"').strip()
    if not cleaned:
        return 0.0

    match = _GPS_PATTERN.match(cleaned)
    if not match:
        raise ValueError(f"Invalid GPS format: {gps_str}")

    decimal = (float(match.group("deg"))
               + float(match.group("min")) / 60.0
               + float(match.group("sec")) / 3600.0)

    ref = (match.group("ref") or "").upper()
    if ref in ("S", "W"):
        decimal = -decimal
    return decimal


def format_dms(values: Sequence[Any], ref: str) -> str:
    """
    Format a degree/minute/second triple the way exiftool prints it.

    Args:
        values: Three numbers (or rationals) for degrees, minutes, seconds
        ref: Hemisphere reference (N, S, E or W)

    Returns:
        String such as ``22 deg 41' 58.80" N``
    """
    degrees, minutes, seconds = (_to_float(v) for v in values[:3])
    total = degrees + minutes / 60.0 + seconds / 3600.0

    whole_degrees = int(total)
    remainder = (total - whole_degrees) * 60.0
    whole_minutes = int(remainder)
    secs = (remainder - whole_minutes) * 60.0
    # Rounding can push seconds to 60.00
    if round(secs, 2) >= 60.0:
        secs = 0.0
        whole_minutes += 1
    if whole_minutes >= 60:
        whole_minutes -= 60
        whole_degrees += 1

    ref = (ref or "").strip().upper()
    formatted = f"{whole_degrees} deg {whole_minutes}' {secs:.2f}\""
    return f"{formatted} {ref}" if ref else formatted


def _to_float(value: Any) -> float:
    # exifread ratios have num/den, Pillow uses IFDRational
    if hasattr(value, "num") and hasattr(value, "den"):
        return float(value.num) / float(value.den) if value.den else 0.0
    return float(value)


class MetadataExtractor:
    """
    Extracts capture date, device and GPS metadata from media files.

    Tries exiftool first and falls back to the Python readers when the
    executable is not available.
    """

    def __init__(self, exiftool_path: str = "exiftool"):
        """
        Initialize the metadata extractor.

        Args:
            exiftool_path: exiftool executable name or path
        """
        self.logger = logging.getLogger(__name__)
        self.exiftool_path = exiftool_path
        self._exiftool_available = True

    def extract(self, file_path: str) -> ExifData:
        """
        Extract metadata from a media file.

        Args:
            file_path: Path to the media file

        Returns:
            ExifData for the file

        Raises:
            MetadataError: If no metadata could be extracted
        """
        if self._exiftool_available:
            try:
                return self._extract_with_exiftool(file_path)
            except FileNotFoundError:
                self.logger.warning("exiftool not found, falling back to Pillow/exifread/hachoir")
                self._exiftool_available = False

        return self._extract_with_libraries(file_path)

    def _extract_with_exiftool(self, file_path: str) -> ExifData:
        cmd = [self.exiftool_path, "-json", *EXIFTOOL_TAGS, file_path]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            raise MetadataError(f"exiftool failed for {file_path}: {e.stderr.strip() or e}") from e

        return self.parse_exiftool_output(result.stdout, file_path)

    @staticmethod
    def parse_exiftool_output(output: str, file_path: str = "") -> ExifData:
        """
        Decode ``exiftool -json`` output.

        Args:
            output: JSON text printed by exiftool
            file_path: File the output belongs to, for error messages

        Returns:
            ExifData built from the first record

        Raises:
            MetadataError: If the output is not valid JSON or is empty
        """
        try:
            records = json.loads(output)
        except json.JSONDecodeError as e:
            raise MetadataError(f"Failed to parse exiftool output for {file_path}: {e}") from e

        if not isinstance(records, list) or not records or not isinstance(records[0], dict):
            raise MetadataError(f"No metadata returned for {file_path}")

        return ExifData.from_exiftool(records[0])

    def _extract_with_libraries(self, file_path: str) -> ExifData:
        for reader in (self._extract_with_pillow, self._extract_with_exifread, self._extract_with_hachoir):
            try:
                data = reader(file_path)
            except Exception as e:
                self.logger.debug(f"{reader.__name__} failed for {file_path}: {e}")
                continue
            if data is not None:
                return data

        raise MetadataError(f"Could not extract metadata from {file_path}")

    def _extract_with_pillow(self, file_path: str) -> Optional[ExifData]:
        with Image.open(file_path) as img:
            exif = img.getexif()
            if not exif:
                return None

            exif_ifd = exif.get_ifd(IFD.Exif)
            gps_ifd = exif.get_ifd(IFD.GPSInfo)

            create_date = (exif_ifd.get(_TAG_DATETIME_ORIGINAL)
                           or exif_ifd.get(_TAG_DATETIME_DIGITIZED) or "")
            latitude, longitude = self._gps_strings(
                gps_ifd.get(_GPS_LATITUDE), gps_ifd.get(_GPS_LATITUDE_REF),
                gps_ifd.get(_GPS_LONGITUDE), gps_ifd.get(_GPS_LONGITUDE_REF),
            )

            return ExifData(
                create_date=str(create_date).strip(),
                model=str(exif.get(_TAG_MODEL) or "").strip().strip("\x00"),
                gps_latitude=latitude,
                gps_longitude=longitude,
            )

    def _extract_with_exifread(self, file_path: str) -> Optional[ExifData]:
        with open(file_path, "rb") as f:
            tags = exifread.process_file(f, details=False)
        if not tags:
            return None

        def text(key: str) -> str:
            value = tags.get(key)
            return "" if value is None else str(value).strip()

        def values(key: str):
            value = tags.get(key)
            return None if value is None else value.values

        latitude, longitude = self._gps_strings(
            values("GPS GPSLatitude"), text("GPS GPSLatitudeRef"),
            values("GPS GPSLongitude"), text("GPS GPSLongitudeRef"),
        )

        return ExifData(
            create_date=text("EXIF DateTimeOriginal") or text("EXIF DateTimeDigitized"),
            model=text("Image Model"),
            gps_latitude=latitude,
            gps_longitude=longitude,
        )

    def _extract_with_hachoir(self, file_path: str) -> Optional[ExifData]:
        parser = createParser(file_path)
        if not parser:
            return None

        with parser:
            metadata = extractMetadata(parser)
        if not metadata:
            return None

        media_date = ""
        if metadata.has("creation_date"):
            created = metadata.get("creation_date")
            if isinstance(created, datetime):
                media_date = created.strftime(EXIF_DATE_FORMAT)

        model = ""
        for key in ("producer", "camera_model"):
            if metadata.has(key):
                model = str(metadata.get(key))
                break

        return ExifData(media_create_date=media_date, model=model)

    @staticmethod
    def _gps_strings(lat_values, lat_ref, lon_values, lon_ref) -> Tuple[str, str]:
        if not lat_values or not lon_values or len(lat_values) < 3 or len(lon_values) < 3:
            return "", ""
        if isinstance(lat_ref, bytes):
            lat_ref = lat_ref.decode("ascii", "ignore")
        if isinstance(lon_ref, bytes):
            lon_ref = lon_ref.decode("ascii", "ignore")
        return format_dms(lat_values, lat_ref or "N"), format_dms(lon_values, lon_ref or "E")
