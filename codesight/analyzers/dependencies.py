"""Dependency graph extraction with a module-graph strategy and a manual-scan fallback."""

from __future__ import annotations

from collections import deque
from pathlib import Path
from typing import Deque, List, Optional, Sequence, Set

from ..logging import get_logger
from ..models import DependencyGraph
from .base import GraphStrategy
from .imports import ast_import_specifiers, resolve_all, scan_import_specifiers
from .tree_sitter import parse_source
from .utils import is_source_file, iter_source_files, relative_posix

logger = get_logger("analyzers.dependencies")

ENTRY_POINT_CANDIDATES: tuple[str, ...] = (
    "index.js",
    "index.ts",
    "src/index.js",
    "src/index.tsx",
    "src/main.tsx",
    "App.js",
    "App.tsx",
    "main.js",
    "main.ts",
)


class NoEntryPointError(LookupError):
    """None of the conventional entry points exist in the project."""


def find_entry_point(root: Path, candidates: Sequence[str] = ENTRY_POINT_CANDIDATES) -> Optional[str]:
    for candidate in candidates:
        if (root / candidate).is_file():
            return candidate
    return None


class ModuleGraphStrategy(GraphStrategy):
    """Walks the import graph breadth-first from a conventional entry point.

    Every module reached becomes a key, including leaves with no imports.
    """

    name = "module-graph"

    def __init__(self, candidates: Sequence[str] = ENTRY_POINT_CANDIDATES) -> None:
        self.candidates = tuple(candidates)

    def extract(self, root: Path) -> DependencyGraph:
        entry = find_entry_point(root, self.candidates)
        if entry is None:
            raise NoEntryPointError("No entry point found")
        logger.debug("Found entry point: %s", entry)

        graph: DependencyGraph = {}
        queue: Deque[str] = deque([entry])
        seen: Set[str] = {entry}
        while queue:
            rel_path = queue.popleft()
            path = root / rel_path
            imports = self._module_imports(path, root)
            graph[rel_path] = imports
            for target in imports:
                if target not in seen and is_source_file(Path(target)):
                    seen.add(target)
                    queue.append(target)
        return graph

    @staticmethod
    def _module_imports(path: Path, root: Path) -> List[str]:
        source_bytes = path.read_bytes()
        tree = parse_source(path, source_bytes)
        if tree is None:
            return []
        specifiers = ast_import_specifiers(tree.root_node, source_bytes)
        return [target for target in resolve_all(path, specifiers, root) if is_source_file(Path(target))]


class ManualScanStrategy(GraphStrategy):
    """Regex scan of every source file; tolerant of layouts without an entry point."""

    name = "manual-scan"

    def extract(self, root: Path) -> DependencyGraph:
        graph: DependencyGraph = {}
        for path in iter_source_files(root):
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            imports = resolve_all(path, scan_import_specifiers(text), root)
            if imports:
                graph[relative_posix(path, root)] = imports
        logger.debug("Manual scan found %d files with imports", len(graph))
        return graph


class DependencyGraphExtractor:
    """Uses the primary strategy's graph unless it has no keys or fails, else the fallback's.

    A module graph holding only an edgeless entry point is kept as-is.
    """

    def __init__(
        self,
        primary: GraphStrategy | None = None,
        fallback: GraphStrategy | None = None,
    ) -> None:
        self.primary = primary or ModuleGraphStrategy()
        self.fallback = fallback or ManualScanStrategy()

    def extract(self, root: Path) -> DependencyGraph:
        try:
            graph = self.primary.extract(root)
        except Exception as exc:
            logger.warning(
                "Graph extraction degraded: %s failed (%s), falling back to %s",
                self.primary.name,
                exc,
                self.fallback.name,
            )
        else:
            if graph:
                return graph
            logger.warning(
                "Graph extraction degraded: %s returned empty, falling back to %s",
                self.primary.name,
                self.fallback.name,
            )

        return self.fallback.extract(root)


__all__ = [
    "DependencyGraphExtractor",
    "ENTRY_POINT_CANDIDATES",
    "ManualScanStrategy",
    "ModuleGraphStrategy",
    "NoEntryPointError",
    "find_entry_point",
]
