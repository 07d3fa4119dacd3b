"""
File labeling module.

Attaches descriptive tags (the region of a photo) to sorted files using
whatever the platform offers: Finder tags via the ``tag`` command on
macOS, the ``user.xdg.tags`` extended attribute on Linux, nothing
elsewhere.
"""

import errno
import logging
import os
import platform
import subprocess
from typing import List

from .errors import TaggingError


XDG_TAGS_ATTR = "user.xdg.tags"


class Tagger:
    """Capability set every platform tagger provides."""

    def add_tag(self, path: str, tag: str):
        raise NotImplementedError

    def remove_tag(self, path: str, tag: str):
        raise NotImplementedError

    def list_tags(self, path: str) -> List[str]:
        raise NotImplementedError


class NullTagger(Tagger):
    """Used where the platform has no file labels."""

    def add_tag(self, path: str, tag: str):
        return None

    def remove_tag(self, path: str, tag: str):
        return None

    def list_tags(self, path: str) -> List[str]:
        return []


class MacOSTagger(Tagger):
    """Finder tags through the ``tag`` command line tool."""

    def __init__(self, tag_command: str = "tag"):
        self.tag_command = tag_command

    def _run(self, *args: str) -> str:
        try:
            result = subprocess.run([self.tag_command, *args], capture_output=True,
                                    text=True, check=True)
        except (OSError, subprocess.CalledProcessError) as e:
            raise TaggingError(f"{self.tag_command} {' '.join(args)} failed: {e}") from e
        return result.stdout

    def add_tag(self, path: str, tag: str):
        self._run("-a", tag, path)

    def remove_tag(self, path: str, tag: str):
        self._run("-r", tag, path)

    def list_tags(self, path: str) -> List[str]:
        output = self._run("-l", "--no-name", path).strip()
        if not output:
            return []
        return [t.strip() for t in output.replace("\n", ",").split(",") if t.strip()]


class LinuxTagger(Tagger):
    """
    Tags stored as a comma separated list in the ``user.xdg.tags`` xattr.

    Filesystems without user xattr support make every call a no-op.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def list_tags(self, path: str) -> List[str]:
        try:
            raw = os.getxattr(path, XDG_TAGS_ATTR)
        except OSError as e:
            if e.errno in (errno.ENODATA, errno.ENOTSUP, errno.EOPNOTSUPP):
                return []
            raise TaggingError(f"Failed to read tags of {path}: {e}") from e
        return [t for t in raw.decode("utf-8").split(",") if t]

    def _write(self, path: str, tags: List[str]):
        try:
            if tags:
                os.setxattr(path, XDG_TAGS_ATTR, ",".join(tags).encode("utf-8"))
            else:
                os.removexattr(path, XDG_TAGS_ATTR)
        except OSError as e:
            if e.errno in (errno.ENODATA, errno.ENOTSUP, errno.EOPNOTSUPP):
                self.logger.debug(f"Extended attributes not available for {path}")
                return
            raise TaggingError(f"Failed to write tags of {path}: {e}") from e

    def add_tag(self, path: str, tag: str):
        tags = self.list_tags(path)
        if tag not in tags:
            self._write(path, tags + [tag])

    def remove_tag(self, path: str, tag: str):
        tags = self.list_tags(path)
        if tag in tags:
            self._write(path, [t for t in tags if t != tag])


def create_tagger() -> Tagger:
    """Pick the tagger for the running platform."""
    system = platform.system()
    if system == "Darwin":
        return MacOSTagger()
    if system == "Linux":
        return LinuxTagger()
    logging.getLogger(__name__).debug(f"No file tagging support on {system}")
    return NullTagger()
