"""Import specifier extraction and filesystem-probed resolution."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable, List, Optional

from tree_sitter import Node

from .tree_sitter import node_text, string_value, walk
from .utils import is_excluded, relative_posix

# Order matters: the first candidate that exists on disk wins.
RESOLUTION_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")

_IMPORT_FROM = re.compile(r"""import\s+.*?from\s+['"](.+?)['"]""")


def is_relative(specifier: str) -> bool:
    return specifier.startswith(".")


def scan_import_specifiers(text: str) -> List[str]:
    """Line-oriented ``import ... from '<path>'`` matches, in source order."""
    return [match.group(1) for match in _IMPORT_FROM.finditer(text)]


def ast_import_specifiers(root_node: Node, source_bytes: bytes) -> List[str]:
    """Collect static, re-export, ``require`` and dynamic ``import()`` sources from a parse tree."""
    specifiers: List[str] = []
    for node in walk(root_node):
        if node.type in {"import_statement", "export_statement"}:
            source = node.child_by_field_name("source")
            value = string_value(source, source_bytes) if source is not None else None
            if value:
                specifiers.append(value)
        elif node.type == "call_expression":
            function = node.child_by_field_name("function")
            if function is None:
                continue
            if function.type != "import" and not (
                function.type == "identifier" and node_text(function, source_bytes) == "require"
            ):
                continue
            arguments = node.child_by_field_name("arguments")
            if arguments is None or not arguments.named_children:
                continue
            value = string_value(arguments.named_children[0], source_bytes)
            if value:
                specifiers.append(value)
    return specifiers


def resolution_candidates(base: Path) -> Iterable[Path]:
    yield base
    for ext in RESOLUTION_EXTENSIONS:
        yield base.with_name(base.name + ext)
    for ext in RESOLUTION_EXTENSIONS:
        yield base / f"index{ext}"


def resolve_import(importer: Path, specifier: str, root: Path) -> Optional[str]:
    """Resolve a relative specifier to a root-relative file path, or None.

    Tries the literal path, then the literal path plus each extension, then an
    ``index`` file inside it. Targets outside ``root`` or under excluded
    directories never resolve.
    """
    if not is_relative(specifier):
        return None
    base = Path(os.path.normpath(importer.parent / specifier))
    for candidate in resolution_candidates(base):
        if not candidate.is_file():
            continue
        rel_path = relative_posix(candidate, root)
        parts = rel_path.split("/")
        if parts[0] == "..":
            return None
        if any(is_excluded(part) for part in parts):
            return None
        return rel_path
    return None


def resolve_all(importer: Path, specifiers: Iterable[str], root: Path) -> List[str]:
    """Resolve every specifier, dropping unresolved ones and duplicates (first seen wins)."""
    resolved: List[str] = []
    for specifier in specifiers:
        target = resolve_import(importer, specifier, root)
        if target is not None and target not in resolved:
            resolved.append(target)
    return resolved


__all__ = [
    "RESOLUTION_EXTENSIONS",
    "ast_import_specifiers",
    "is_relative",
    "resolution_candidates",
    "resolve_all",
    "resolve_import",
    "scan_import_specifiers",
]
