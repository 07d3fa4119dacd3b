"""
File organization module for media files.

This module handles the per-file work of a sorting run: reading
metadata, resolving the destination, copying the file and labeling it
with its region. Files that cannot be classified are copied into the
``failed_files`` and ``unknown_format`` folders instead.
"""

import logging
import os
import shutil
import threading
from pathlib import Path
from typing import Optional

from .config import Config
from .errors import CopyError, MetadataError, RunCancelled, TaggingError
from .geocoder import Region
from .metadata_extractor import MetadataExtractor
from .path_resolver import PathResolver, unique_path
from .tagger import Tagger, NullTagger


UNKNOWN_FORMAT_DIR = "unknown_format"
FAILED_FILES_DIR = "failed_files"

# Files above this size are streamed instead of read whole
LARGE_FILE_THRESHOLD = 100 * 1024 * 1024


def _buffer_size(file_size: int) -> int:
    if file_size < 1024 * 1024:
        return 32 * 1024
    if file_size < 10 * 1024 * 1024:
        return 256 * 1024
    if file_size < 100 * 1024 * 1024:
        return 1024 * 1024
    return 4 * 1024 * 1024


def copy_file_with_buffer(src: str, dst: str, file_size: Optional[int] = None):
    """Stream a file through a fixed-size buffer."""
    if file_size is None:
        file_size = os.path.getsize(src)
    buffer_size = _buffer_size(file_size)

    with open(src, "rb") as source, open(dst, "wb") as destination:
        while True:
            chunk = source.read(buffer_size)
            if not chunk:
                break
            destination.write(chunk)


def copy_file_direct(src: str, dst: str):
    """Read the whole file, then write it."""
    with open(src, "rb") as source:
        data = source.read()
    with open(dst, "wb") as destination:
        destination.write(data)


def copy_file(src: str, dst: str):
    """
    Copy a file, picking the strategy by size, and keep its timestamps.

    Args:
        src: Source file path
        dst: Destination file path; an existing file is overwritten

    Raises:
        CopyError: If reading or writing fails; a partial destination is removed
    """
    try:
        file_size = os.path.getsize(src)
        if file_size > LARGE_FILE_THRESHOLD:
            copy_file_with_buffer(src, dst, file_size)
        else:
            copy_file_direct(src, dst)
        shutil.copystat(src, dst)
    except OSError as e:
        try:
            os.remove(dst)
        except OSError:
            pass
        raise CopyError(f"Failed to copy {src} -> {dst}: {e}") from e


class FileOrganizer:
    """
    Handles file organization operations for a sorting run.

    Shared by all workers; it keeps no per-file state.
    """

    def __init__(self, config: Config, resolver: PathResolver,
                 extractor: MetadataExtractor, tagger: Optional[Tagger] = None):
        """
        Initialize the file organizer.

        Args:
            config: Run configuration
            resolver: Destination path resolver
            extractor: Metadata source
            tagger: Platform file labeler; defaults to a no-op
        """
        self.logger = logging.getLogger(__name__)
        self.config = config
        self.resolver = resolver
        self.extractor = extractor
        self.tagger = tagger or NullTagger()
        self.destination_root = Path(config.dst_dir)

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], path: str):
        if cancel_event is not None and cancel_event.is_set():
            raise RunCancelled(f"Processing cancelled: {path}")

    def process_file(self, path: str, cancel_event: Optional[threading.Event] = None) -> Path:
        """
        Sort a single supported media file.

        Args:
            path: Source file path
            cancel_event: Run cancellation signal

        Returns:
            Destination path (the planned one in dry-run mode)

        Raises:
            RunCancelled: If the run was cancelled before the copy
            MetadataError: If metadata is missing; the file was routed to
                ``failed_files``
            ResolutionError: If no destination could be computed
            CopyError: If the copy failed
        """
        self._check_cancelled(cancel_event, path)

        try:
            exif = self.extractor.extract(path)
        except MetadataError as e:
            self.logger.info(f"Metadata unavailable, moving to {FAILED_FILES_DIR}: {path} ({e})")
            try:
                self.handle_failed_file(path)
            except (CopyError, OSError) as copy_error:
                self.logger.error(f"Failed to route {path} to {FAILED_FILES_DIR}: {copy_error}")
            raise

        self._check_cancelled(cancel_event, path)

        target, region = self.resolver.resolve(path, exif)

        if self.config.dry_run:
            self.logger.info(f"DRY RUN: {path} -> {target}")
            if region is not None:
                self.logger.info(f"DRY RUN: would tag {target} with {region.tag}")
            return target

        try:
            self._check_cancelled(cancel_event, path)
        except RunCancelled:
            # Give back the name reserved by the resolver
            self._discard_placeholder(target)
            raise

        copy_file(path, str(target))
        self.logger.debug(f"COPY: {path} -> {target}")

        if region is not None:
            self._tag_file(target, region)

        return target

    def _tag_file(self, target: Path, region: Region):
        try:
            self.tagger.add_tag(str(target), region.tag)
        except (TaggingError, OSError) as e:
            self.logger.warning(f"Failed to tag {target} with {region.tag}: {e}")

    def _discard_placeholder(self, target: Path):
        try:
            if target.exists() and target.stat().st_size == 0:
                target.unlink()
        except OSError as e:
            self.logger.debug(f"Could not remove placeholder {target}: {e}")

    def _copy_into(self, path: str, folder: str) -> Path:
        target_dir = self.destination_root / folder
        target_dir.mkdir(parents=True, exist_ok=True)

        target = unique_path(target_dir, Path(path).name, reserve=not self.config.dry_run)
        if self.config.dry_run:
            self.logger.info(f"DRY RUN: {path} -> {target}")
            return target

        copy_file(path, str(target))
        self.logger.debug(f"COPY: {path} -> {target}")
        return target

    def handle_unsupported_file(self, path: str) -> Path:
        """
        Copy a file with an unsupported format into ``unknown_format``.

        Raises:
            CopyError: If the copy failed
            OSError: If the folder cannot be created
        """
        return self._copy_into(path, UNKNOWN_FORMAT_DIR)

    def handle_failed_file(self, path: str) -> Path:
        """
        Copy a file whose metadata could not be read into ``failed_files``.

        Raises:
            CopyError: If the copy failed
            OSError: If the folder cannot be created
        """
        return self._copy_into(path, FAILED_FILES_DIR)
