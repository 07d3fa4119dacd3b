"""
Directory verification.

Compares source and destination by file name only. Sorting moves files
into new folders, so only whether a name exists matters, not where.
"""

import os
from dataclasses import dataclass
from typing import Iterable, Optional, Set, Tuple


@dataclass(frozen=True)
class CompareResult:
    only_in_source: Tuple[str, ...] = ()
    only_in_target: Tuple[str, ...] = ()

    @property
    def identical(self) -> bool:
        return not self.only_in_source and not self.only_in_target


def _file_names(directory: str, exclude: Optional[str] = None) -> Set[str]:
    names = set()
    exclude = os.path.abspath(exclude) if exclude else None

    def on_error(error: OSError):
        raise error

    for root, dirs, files in os.walk(directory, onerror=on_error):
        if exclude is not None:
            dirs[:] = [d for d in dirs if os.path.abspath(os.path.join(root, d)) != exclude]
        names.update(files)
    return names


def compare_directories(source_dir: str, target_dir: str) -> CompareResult:
    """
    Compare the file names found under two directories.

    Args:
        source_dir: Source directory
        target_dir: Target directory

    Returns:
        CompareResult with sorted names present on one side only

    Raises:
        FileNotFoundError: If either directory does not exist
        OSError: If a directory cannot be read
    """
    for directory in (source_dir, target_dir):
        if not os.path.isdir(directory):
            raise FileNotFoundError(f"Directory '{directory}' does not exist")

    # The destination may live inside the source tree
    source_names = _file_names(source_dir, exclude=target_dir)
    target_names = _file_names(target_dir)

    return CompareResult(
        only_in_source=tuple(sorted(source_names - target_names)),
        only_in_target=tuple(sorted(target_names - source_names)),
    )


def should_ignore(name: str, patterns: Iterable[str]) -> bool:
    """
    Check a file name against ignore patterns.

    Supported: exact name, ``*.ext``, ``prefix*`` and ``*suffix``.
    """
    for pattern in patterns:
        if name == pattern:
            return True
        if pattern.startswith("*") and len(pattern) > 1 and name.endswith(pattern[1:]):
            return True
        if pattern.endswith("*") and len(pattern) > 1 and name.startswith(pattern[:-1]):
            return True
    return False


def is_match(result: CompareResult, ignore_patterns: Iterable[str] = ()) -> bool:
    """
    Treat the directories as matching if every difference is ignorable.

    Args:
        result: Comparison result
        ignore_patterns: Patterns accepted by should_ignore

    Returns:
        True when all differing names match at least one pattern
    """
    patterns = list(ignore_patterns)
    return all(should_ignore(name, patterns)
               for name in result.only_in_source + result.only_in_target)


def format_result(result: CompareResult) -> str:
    lines = ["File differences:", "-" * 40]

    if result.only_in_source:
        lines.append("")
        lines.append("Only in source:")
        lines.extend(f"  {name}" for name in result.only_in_source)

    if result.only_in_target:
        lines.append("")
        lines.append("Only in target:")
        lines.extend(f"  {name}" for name in result.only_in_target)

    if result.identical:
        lines.append("Both directories contain the same files")

    return "\n".join(lines)


def print_result(result: CompareResult):
    print(format_result(result))
