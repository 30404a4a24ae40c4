"""Bounded file-tree construction for the visualisation payload."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import List

from ..config import LimitsConfig
from ..logging import get_logger
from ..models import FileNode
from .utils import relative_posix

logger = get_logger("analyzers.tree")

_EXCLUDED_DIRS = {"node_modules", "dist", "build"}


def _is_hidden(name: str) -> bool:
    return name in _EXCLUDED_DIRS or name.startswith(".")


class FileTreeBuilder:
    """Walks a project root into a depth- and fan-out-capped ``FileNode`` tree."""

    def __init__(self, limits: LimitsConfig | None = None) -> None:
        limits = limits or LimitsConfig()
        self.max_depth = limits.max_tree_depth
        self.max_entries = limits.max_entries_per_dir

    def build(self, root: Path) -> List[FileNode]:
        return self._build_level(root, root, depth=0)

    def _build_level(self, directory: Path, root: Path, depth: int) -> List[FileNode]:
        if depth > self.max_depth:
            return []

        try:
            names = sorted(os.listdir(directory))
        except OSError as exc:
            logger.debug("Skipping unreadable directory %s: %s", directory, exc)
            return []

        entries = [name for name in names if not _is_hidden(name)]
        nodes: List[FileNode] = []
        for index, name in enumerate(entries):
            # Only emitted nodes use up the fan-out budget.
            if len(nodes) >= self.max_entries:
                nodes.append(FileNode.placeholder(len(entries) - index))
                break

            path = directory / name
            try:
                stat_result = path.lstat()
            except OSError as exc:
                logger.debug("Skipping unreadable entry %s: %s", path, exc)
                continue

            rel_path = relative_posix(path, root)
            # lstat reports symlinks as links, so linked directories are listed but not followed.
            if stat.S_ISDIR(stat_result.st_mode):
                children = self._build_level(path, root, depth + 1)
                nodes.append(FileNode.directory(name, rel_path, children))
            else:
                nodes.append(FileNode.file(name, rel_path, stat_result.st_size, path.suffix))
        return nodes


__all__ = ["FileTreeBuilder"]
