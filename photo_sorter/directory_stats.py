"""
Per-directory file counts, logged before and after a run.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class DirNode:
    rel_path: str
    file_count: int = 0
    children: List[str] = field(default_factory=list)


class DirectoryStats:
    """
    Directory tree with file counts.

    Nodes live in a dict keyed by path relative to the root ("" is the
    root itself); children are referenced by key.
    """

    def __init__(self, root: str):
        self.root = os.path.abspath(root)
        self.nodes: Dict[str, DirNode] = {"": DirNode("")}

    @classmethod
    def build(cls, root: str, exclude: Optional[str] = None) -> "DirectoryStats":
        """
        Walk ``root`` and count files per directory.

        Args:
            root: Directory to summarize
            exclude: Directory to leave out (e.g. a nested destination)
        """
        stats = cls(root)
        exclude = os.path.abspath(exclude) if exclude else None

        def on_error(error: OSError):
            raise error

        for current, dirs, files in os.walk(stats.root, onerror=on_error):
            dirs[:] = sorted(d for d in dirs
                             if exclude is None or os.path.join(current, d) != exclude)
            rel = os.path.relpath(current, stats.root)
            rel = "" if rel == "." else rel
            node = stats.nodes.setdefault(rel, DirNode(rel))
            node.file_count = len(files)
            for d in dirs:
                child = os.path.join(rel, d) if rel else d
                stats.nodes.setdefault(child, DirNode(child))
                node.children.append(child)
        return stats

    def total_files(self) -> int:
        return sum(node.file_count for node in self.nodes.values())

    def lines(self) -> List[str]:
        """Render the tree as indented lines."""
        output = []

        def render(key: str, level: int):
            node = self.nodes[key]
            name = os.path.basename(key) if key else os.path.basename(self.root)
            indent = "  " * level
            if node.file_count:
                output.append(f"{indent}{name}/ ({node.file_count} files)")
            else:
                output.append(f"{indent}{name}/")
            for child in node.children:
                render(child, level + 1)

        render("", 0)
        return output

    def log(self, logger: Optional[logging.Logger] = None):
        logger = logger or logging.getLogger(__name__)
        logger.info(f"Directory statistics: {self.root}")
        for line in self.lines():
            logger.info(line)
        logger.info(f"Total: {self.total_files()} files")
