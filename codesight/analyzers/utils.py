"""Shared helper utilities for analyzer implementations."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator

SOURCE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")

# Directory and file names never analysed, in addition to any dot-prefixed name.
EXCLUDED_NAMES = frozenset({"node_modules"})


def is_excluded(name: str) -> bool:
    return name in EXCLUDED_NAMES or name.startswith(".")


def is_source_file(path: Path) -> bool:
    return path.suffix in SOURCE_EXTENSIONS


def relative_posix(path: Path, root: Path) -> str:
    """Root-relative path using ``/`` separators regardless of the host OS."""
    return Path(os.path.relpath(path, root)).as_posix()


def iter_source_files(root: Path) -> Iterator[Path]:
    """Yield every JS/TS source under ``root`` in a stable order.

    Skips ``node_modules`` and dot entries, and does not follow symlinked
    directories.
    """
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if not is_excluded(name))
        current = Path(dirpath)
        for filename in sorted(filenames):
            if is_excluded(filename):
                continue
            path = current / filename
            if is_source_file(path) and path.is_file():
                yield path


def read_source(path: Path) -> str:
    return path.read_text(encoding="utf-8")


__all__ = [
    "EXCLUDED_NAMES",
    "SOURCE_EXTENSIONS",
    "is_excluded",
    "is_source_file",
    "iter_source_files",
    "read_source",
    "relative_posix",
]
