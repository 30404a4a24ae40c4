"""Tests for relevant-file selection and the context digest."""

from __future__ import annotations

from pathlib import Path

from codesight.config import LimitsConfig
from codesight.models import AnalysisResult, ComponentInfo, FUNCTIONAL
from codesight.prompting import RelevantFileSelector
from codesight.prompting.selector import candidate_files, score_file


def _analysis(components, dependencies) -> AnalysisResult:
    return AnalysisResult(
        project_id="p1",
        timestamp="2024-05-01T12:00:00Z",
        structure=(),
        dependencies=dependencies,
        components=tuple(ComponentInfo(name, path, FUNCTIONAL) for name, path in components),
    )


def test_candidates_put_component_files_first() -> None:
    analysis = _analysis(
        [("Cart", "src/components/Cart.tsx")],
        {"src/index.tsx": ["src/components/Cart.tsx"], "src/components/Cart.tsx": []},
    )

    assert candidate_files(analysis) == ["src/components/Cart.tsx", "src/index.tsx"]


def test_score_file_weights() -> None:
    assert score_file("src/components/Cart.tsx", ["cart"]) == 3
    assert score_file("src/pages/Checkout.tsx", ["cart"]) == 1
    assert score_file("src/App.tsx", []) == 3
    assert score_file("src/utils/format.ts", ["cart"]) == 0


def test_rank_drops_zero_scores_and_caps(tmp_path: Path) -> None:
    components = [(f"Cart{i}", f"src/components/Cart{i}.tsx") for i in range(8)]
    analysis = _analysis(components, {"src/utils/format.ts": []})
    selector = RelevantFileSelector(LimitsConfig(max_context_files=5))

    ranked = selector.rank("cart", analysis)

    assert len(ranked) == 5
    assert [path for path, _ in ranked] == [f"src/components/Cart{i}.tsx" for i in range(5)]


def test_select_reads_files_and_skips_unreadable(tmp_path: Path) -> None:
    (tmp_path / "src" / "components").mkdir(parents=True)
    (tmp_path / "src" / "components" / "Cart.tsx").write_text("export const Cart = 1;\n", encoding="utf-8")
    analysis = _analysis(
        [("Cart", "src/components/Cart.tsx"), ("Ghost", "src/components/Ghost.tsx")],
        {},
    )

    files = RelevantFileSelector().select("cart", analysis, tmp_path)

    assert [(item.path, item.score) for item in files] == [("src/components/Cart.tsx", 3)]
    assert files[0].content == "export const Cart = 1;\n"


def test_select_ignores_paths_outside_the_root(tmp_path: Path) -> None:
    root = tmp_path / "project"
    root.mkdir()
    (tmp_path / "secret.tsx").write_text("secret", encoding="utf-8")
    analysis = _analysis([("Secret", "../secret.tsx")], {})

    assert RelevantFileSelector().select("secret", analysis, root) == []


def test_digest_truncates_excerpts(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "App.tsx").write_text("x" * 50, encoding="utf-8")
    analysis = _analysis([("App", "src/App.tsx")], {"src/App.tsx": ["src/api.ts"]})
    selector = RelevantFileSelector(LimitsConfig(max_excerpt_chars=10))

    files = selector.select("add login", analysis, tmp_path)
    digest = selector.build_context_digest("add login", analysis, files)

    assert "- Total Components: 1" in digest
    assert "- src/App.tsx -> src/api.ts" in digest
    assert "### src/App.tsx\n```\n" + "x" * 10 + "\n```" in digest
    assert "x" * 11 not in digest
    assert digest.rstrip().endswith('"add login"')
