"""Tree-sitter powered discovery of UI-component-like declarations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from tree_sitter import Node

from ..errors import ParseFailure
from ..logging import get_logger
from ..models import CLASS, FUNCTIONAL, ComponentInfo
from .tree_sitter import node_text, parse_source, walk
from .utils import iter_source_files, relative_posix

logger = get_logger("analyzers.components")

_FUNCTION_VALUES = {"arrow_function", "function_expression", "function"}
_CLASS_NODES = {"class_declaration", "abstract_class_declaration"}


@dataclass(frozen=True)
class FunctionDeclaration:
    name: str


@dataclass(frozen=True)
class VariableBinding:
    name: str
    value_type: Optional[str]


@dataclass(frozen=True)
class ClassDeclaration:
    name: str
    has_superclass: bool


Declaration = Union[FunctionDeclaration, VariableBinding, ClassDeclaration]


def _is_component_name(name: str) -> bool:
    return bool(name) and name[0].isupper() and name[0].isascii()


def is_functional_declaration(decl: Declaration) -> bool:
    return isinstance(decl, FunctionDeclaration) and _is_component_name(decl.name)


def is_functional_binding(decl: Declaration) -> bool:
    return (
        isinstance(decl, VariableBinding)
        and _is_component_name(decl.name)
        and decl.value_type in _FUNCTION_VALUES
    )


def is_class_component(decl: Declaration) -> bool:
    return isinstance(decl, ClassDeclaration) and _is_component_name(decl.name) and decl.has_superclass


def classify(decl: Declaration) -> Optional[str]:
    """Component kind for a declaration, or None when no rule matches."""
    if is_functional_declaration(decl) or is_functional_binding(decl):
        return FUNCTIONAL
    if is_class_component(decl):
        return CLASS
    return None


def iter_declarations(root_node: Node, source_bytes: bytes) -> Iterator[Declaration]:
    """Visit every node and yield the declarations the component rules look at."""
    for node in walk(root_node):
        if node.type == "function_declaration":
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                yield FunctionDeclaration(node_text(name_node, source_bytes))
        elif node.type == "variable_declarator":
            name_node = node.child_by_field_name("name")
            if name_node is None or name_node.type != "identifier":
                continue
            value = node.child_by_field_name("value")
            yield VariableBinding(
                node_text(name_node, source_bytes),
                value.type if value is not None else None,
            )
        elif node.type in _CLASS_NODES:
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                yield ClassDeclaration(node_text(name_node, source_bytes), _has_superclass(node))


def _has_superclass(class_node: Node) -> bool:
    for child in class_node.children:
        if child.type != "class_heritage":
            continue
        # TypeScript wraps `extends X` in an extends_clause; `implements` alone is not a superclass.
        if any(grandchild.type == "extends_clause" for grandchild in child.children):
            return True
        if child.children and child.children[0].type == "extends":
            return True
    return False


def parse_components(path: Path, rel_path: str) -> List[ComponentInfo]:
    """Components declared in one file; raises ParseFailure when the file cannot be parsed."""
    try:
        source_bytes = path.read_bytes()
        source_bytes.decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseFailure(f"{rel_path}: {exc}") from exc

    tree = parse_source(path, source_bytes)
    if tree is None:
        return []
    if tree.root_node.has_error:
        raise ParseFailure(f"{rel_path}: syntax error")

    components: List[ComponentInfo] = []
    for decl in iter_declarations(tree.root_node, source_bytes):
        kind = classify(decl)
        if kind is not None:
            components.append(ComponentInfo(name=decl.name, file_path=rel_path, kind=kind))
    return components


class ComponentExtractor:
    """Collects component declarations across every source file of a project."""

    def extract(self, root: Path) -> List[ComponentInfo]:
        return list(self._iter_components(iter_source_files(root), root))

    def _iter_components(self, paths: Iterable[Path], root: Path) -> Iterator[ComponentInfo]:
        for path in paths:
            rel_path = relative_posix(path, root)
            try:
                yield from parse_components(path, rel_path)
            except ParseFailure as exc:
                logger.debug("Skipping components in %s", exc)


__all__ = [
    "ClassDeclaration",
    "ComponentExtractor",
    "Declaration",
    "FunctionDeclaration",
    "VariableBinding",
    "classify",
    "is_class_component",
    "is_functional_binding",
    "is_functional_declaration",
    "iter_declarations",
    "parse_components",
]
