"""Tree-sitter parsers for JavaScript and TypeScript sources."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, Iterator

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

# .ts files use the plain TypeScript grammar because `<T>value` casts clash with JSX.
_GRAMMAR_BY_SUFFIX = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".jsx": "tsx",
    ".js": "tsx",
}

_LANGUAGES: Dict[str, Language] = {}
_LANGUAGES_LOCK = threading.Lock()
_local = threading.local()


def _language(grammar: str) -> Language:
    with _LANGUAGES_LOCK:
        language = _LANGUAGES.get(grammar)
        if language is None:
            if grammar == "typescript":
                language = Language(tree_sitter_typescript.language_typescript())
            else:
                language = Language(tree_sitter_typescript.language_tsx())
            _LANGUAGES[grammar] = language
        return language


def grammar_for(path: Path) -> str | None:
    return _GRAMMAR_BY_SUFFIX.get(path.suffix)


def get_parser(grammar: str) -> Parser:
    """Return a parser for ``grammar``; parsers are not thread-safe so each thread gets its own."""
    parsers: Dict[str, Parser] | None = getattr(_local, "parsers", None)
    if parsers is None:
        parsers = {}
        _local.parsers = parsers
    parser = parsers.get(grammar)
    if parser is None:
        parser = Parser(_language(grammar))
        parsers[grammar] = parser
    return parser


def parse_source(path: Path, source: bytes) -> Tree | None:
    grammar = grammar_for(path)
    if grammar is None:
        return None
    return get_parser(grammar).parse(source)


def node_text(node: Node, source_bytes: bytes) -> str:
    return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal without recursion so deeply nested files cannot blow the stack."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def string_value(node: Node, source_bytes: bytes) -> str | None:
    """Contents of a plain string literal node, or None for anything else."""
    if node.type != "string":
        return None
    text = node_text(node, source_bytes)
    if len(text) >= 2 and text[0] in {"'", '"'} and text[-1] == text[0]:
        return text[1:-1]
    return None


__all__ = ["get_parser", "grammar_for", "node_text", "parse_source", "string_value", "walk"]
