"""
Exception hierarchy for the photo sorter.

Only ScanError and RunCancelled stop a run. Everything else is contained
to the file being processed.
"""


class PhotoSorterError(Exception):
    """Base error for the project."""


class ConfigError(PhotoSorterError):
    pass


class ScanError(PhotoSorterError):
    """Walking the source tree failed."""


class MetadataError(PhotoSorterError):
    """Metadata could not be extracted from a file."""


class ResolutionError(PhotoSorterError):
    """A destination path could not be computed for a file."""


class CopyError(PhotoSorterError):
    pass


class GeocodingError(PhotoSorterError):
    pass


class TaggingError(PhotoSorterError):
    pass


class RunCancelled(PhotoSorterError):
    pass
