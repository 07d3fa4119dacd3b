"""
Photo Sorter Package

A Python package for sorting photos and videos into folders by capture
date, camera model and, optionally, the region the GPS tags point to.
Files are processed concurrently by a worker pool and the result can be
verified against the source tree.
"""

__version__ = "1.0.0"
__author__ = "Photo Sorter Team"

from .config import Config, load_config
from .metadata_extractor import MetadataExtractor, ExifData
from .geocoder import GeoStateGeocoder, Region, create_geocoder
from .path_resolver import PathResolver
from .file_organizer import FileOrganizer
from .app import PhotoSorter, RunReport, RunStatus
from .verify import compare_directories, is_match
from .logger import Logger

__all__ = [
    "Config",
    "load_config",
    "MetadataExtractor",
    "ExifData",
    "GeoStateGeocoder",
    "Region",
    "create_geocoder",
    "PathResolver",
    "FileOrganizer",
    "PhotoSorter",
    "RunReport",
    "RunStatus",
    "compare_directories",
    "is_match",
    "Logger",
]
