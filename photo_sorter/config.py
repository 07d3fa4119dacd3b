"""
Configuration module for the photo sorter.

Settings come from built-in defaults, optionally overlaid by a YAML file,
and finally by command line overrides.
"""

import os
import logging
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Optional, List, Dict, Any

import yaml

from .errors import ConfigError
from .geocoder import GEOCODER_TYPES


DEFAULT_IGNORE = [
    ".git", ".gitignore",
    ".go", ".mod", ".sum",
    ".md", ".log", ".yaml",
    ".sample", ".DS_Store",
]

DEFAULT_FORMATS = [
    ".jpg", ".jpeg", ".heic", ".png",
    ".mp4", ".mov",
]


@dataclass
class Config:
    """Run settings consumed by the sorter."""

    src_dir: str = "."
    dst_dir: str = "sorted_media"
    workers: int = 4
    dry_run: bool = False
    ignore: List[str] = field(default_factory=lambda: list(DEFAULT_IGNORE))
    formats: List[str] = field(default_factory=lambda: list(DEFAULT_FORMATS))
    date_format: str = "%Y-%m"
    enable_geotag: bool = False
    geocoder_type: str = "geo_state"
    geojson_path: str = ""
    enable_verify: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None
    queue_size: int = 100
    progress_interval: float = 5.0

    def __post_init__(self):
        self.normalize()

    def normalize(self):
        """Make both roots absolute so prefix checks are reliable."""
        self.src_dir = os.path.abspath(os.path.expanduser(self.src_dir))
        self.dst_dir = os.path.abspath(os.path.expanduser(self.dst_dir))

    def apply_overrides(self, src_dir: Optional[str] = None, dst_dir: Optional[str] = None,
                        workers: Optional[int] = None, dry_run: bool = False,
                        **extra: Any):
        """
        Override file values with command line values that were actually given.

        Args:
            src_dir: Source directory
            dst_dir: Destination directory
            workers: Worker count
            dry_run: Enable simulate-only mode
            **extra: Any other Config field; None values are skipped
        """
        if src_dir is not None:
            self.src_dir = src_dir
        if dst_dir is not None:
            self.dst_dir = dst_dir
        if workers is not None:
            self.workers = workers
        if dry_run:
            self.dry_run = True

        known = {f.name for f in fields(self)}
        for key, value in extra.items():
            if key not in known:
                raise ConfigError(f"Unknown setting: {key}")
            if value is not None:
                setattr(self, key, value)

        self.normalize()

    def validate(self):
        """Raise ConfigError if the settings cannot drive a run."""
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        if self.queue_size < 1:
            raise ConfigError(f"queue_size must be at least 1, got {self.queue_size}")
        if not os.path.isdir(self.src_dir):
            raise ConfigError(f"Source directory does not exist: {self.src_dir}")
        if self.enable_geotag:
            if self.geocoder_type not in GEOCODER_TYPES:
                raise ConfigError(f"Unsupported geocoder type: {self.geocoder_type}")
            if not self.geojson_path:
                raise ConfigError("geojson_path is required when geotagging is enabled")

    def should_ignore(self, path: str) -> bool:
        """
        Check whether a file is on the ignore list.

        Entries starting with a dot match the extension, anything else
        must match the whole file name. Matching is case-insensitive.
        """
        ext = os.path.splitext(path)[1].lower()
        base_name = os.path.basename(path).lower()

        for ignore in self.ignore:
            ignore = ignore.lower()
            if ignore.startswith("."):
                if ext == ignore or base_name == ignore:
                    return True
            elif base_name == ignore:
                return True
        return False

    def is_supported_format(self, path: str) -> bool:
        ext = os.path.splitext(path)[1].lower()
        return any(ext == fmt.lower() for fmt in self.formats)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_path: Optional[str] = "config.yaml") -> Config:
    """
    Load settings from a YAML file on top of the defaults.

    Args:
        config_path: Path to the YAML file; a missing file yields the defaults

    Returns:
        Config instance

    Raises:
        ConfigError: If the file cannot be read or contains unknown keys
    """
    logger = logging.getLogger(__name__)

    if not config_path or not Path(config_path).exists():
        logger.debug(f"No config file at {config_path}, using defaults")
        return Config()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    known = {f.name for f in fields(Config)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown settings in {config_path}: {', '.join(unknown)}")

    logger.info(f"Loaded config file: {config_path}")
    return Config(**data)


def write_default_config(config_path: str = "config.yaml"):
    """Write the default settings as YAML."""
    data = Config().to_dict()
    # Roots stay relative in the template.
    data["src_dir"] = "."
    data["dst_dir"] = "sorted_media"
    try:
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
    except OSError as e:
        raise ConfigError(f"Failed to write default config {config_path}: {e}") from e
