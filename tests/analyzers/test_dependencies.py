"""Tests for dependency graph strategies and the fallback policy."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from codesight.analyzers.base import GraphStrategy
from codesight.analyzers.dependencies import (
    DependencyGraphExtractor,
    ManualScanStrategy,
    ModuleGraphStrategy,
    NoEntryPointError,
    find_entry_point,
)
from codesight.models import DependencyGraph


class _FixedStrategy(GraphStrategy):
    def __init__(self, name: str, graph: DependencyGraph | None = None, error: Exception | None = None) -> None:
        self.name = name
        self.graph = graph or {}
        self.error = error
        self.calls = 0

    def extract(self, root: Path) -> DependencyGraph:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.graph


def test_find_entry_point_respects_candidate_order(project_builder) -> None:
    project_builder.write("src/index.tsx", "")
    project_builder.write("main.ts", "")

    assert find_entry_point(project_builder.root) == "src/index.tsx"


def test_module_graph_walks_from_entry_point(project_builder) -> None:
    project_builder.write(
        "src/index.tsx",
        "import App from './App';\nimport './styles.css';\n",
    )
    project_builder.write(
        "src/App.tsx",
        "import { Button } from './components/Button';\nimport React from 'react';\n",
    )
    project_builder.write("src/components/Button.tsx", "export const Button = () => null;\n")
    project_builder.write("src/styles.css", "body {}\n")
    project_builder.write("src/orphan.ts", "import './App';\n")

    graph = ModuleGraphStrategy().extract(project_builder.root)

    assert graph == {
        "src/index.tsx": ["src/App.tsx"],
        "src/App.tsx": ["src/components/Button.tsx"],
        "src/components/Button.tsx": [],
    }


def test_module_graph_requires_an_entry_point(project_builder) -> None:
    project_builder.write("lib/widget.js", "")

    with pytest.raises(NoEntryPointError):
        ModuleGraphStrategy().extract(project_builder.root)


def test_manual_scan_only_records_files_with_imports(project_builder) -> None:
    project_builder.write("lib/a.js", "import { b } from './b';\nimport fs from 'fs';\n")
    project_builder.write("lib/b.js", "export const b = 1;\n")
    project_builder.write("node_modules/pkg/index.js", "import x from './x';\n")
    project_builder.write("node_modules/pkg/x.js", "")

    graph = ManualScanStrategy().extract(project_builder.root)

    assert graph == {"lib/a.js": ["lib/b.js"]}


def test_extractor_without_entry_point_uses_manual_scan(project_builder, caplog) -> None:
    project_builder.write("lib/a.ts", "import { b } from './b';\n")
    project_builder.write("lib/b.ts", "export const b = 1;\n")

    with caplog.at_level(logging.WARNING, logger="codesight.analyzers.dependencies"):
        graph = DependencyGraphExtractor().extract(project_builder.root)

    assert graph == {"lib/a.ts": ["lib/b.ts"]}
    assert any("degraded" in record.getMessage() for record in caplog.records)


def test_extractor_keeps_primary_graph_with_edges(tmp_path: Path) -> None:
    primary = _FixedStrategy("primary", {"index.js": ["a.js"]})
    fallback = _FixedStrategy("fallback", {"other.js": ["b.js"]})

    graph = DependencyGraphExtractor(primary, fallback).extract(tmp_path)

    assert graph == {"index.js": ["a.js"]}
    assert fallback.calls == 0


def test_extractor_falls_back_when_primary_is_empty(tmp_path: Path) -> None:
    primary = _FixedStrategy("primary", {})
    fallback = _FixedStrategy("fallback", {"other.js": ["b.js"]})

    graph = DependencyGraphExtractor(primary, fallback).extract(tmp_path)

    assert graph == {"other.js": ["b.js"]}
    assert fallback.calls == 1


def test_extractor_keeps_edgeless_module_graph(tmp_path: Path) -> None:
    primary = _FixedStrategy("primary", {"index.js": []})
    fallback = _FixedStrategy("fallback", {"other.js": ["b.js"]})

    graph = DependencyGraphExtractor(primary, fallback).extract(tmp_path)

    assert graph == {"index.js": []}
    assert fallback.calls == 0


def test_entry_point_without_imports_is_not_rescanned(project_builder) -> None:
    project_builder.write("index.js", "console.log('standalone');\n")
    project_builder.write("lib/a.js", "import { b } from './b';\n")
    project_builder.write("lib/b.js", "export const b = 1;\n")

    graph = DependencyGraphExtractor().extract(project_builder.root)

    assert graph == {"index.js": []}


def test_extractor_falls_back_when_primary_raises(tmp_path: Path) -> None:
    primary = _FixedStrategy("primary", error=RuntimeError("boom"))
    fallback = _FixedStrategy("fallback", {"other.js": ["b.js"]})

    assert DependencyGraphExtractor(primary, fallback).extract(tmp_path) == {"other.js": ["b.js"]}


def test_fallback_failure_propagates(tmp_path: Path) -> None:
    primary = _FixedStrategy("primary", error=RuntimeError("boom"))
    fallback = _FixedStrategy("fallback", error=OSError("disk gone"))

    with pytest.raises(OSError):
        DependencyGraphExtractor(primary, fallback).extract(tmp_path)


def test_every_target_is_a_real_file_outside_node_modules(project_builder) -> None:
    project_builder.write("index.js", "import a from './a';\nimport m from './node_modules/m';\n")
    project_builder.write("a.js", "import b from './b';\n")
    project_builder.write("b.js", "")
    project_builder.write("node_modules/m/index.js", "")

    graph = DependencyGraphExtractor().extract(project_builder.root)

    for source, targets in graph.items():
        assert "node_modules" not in source
        for target in targets:
            assert (project_builder.root / target).is_file()
            assert "node_modules" not in target
