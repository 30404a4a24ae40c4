"""Keyword-scored selection of source files to forward as LLM context."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from jinja2 import Environment, FileSystemLoader

from ..config import LimitsConfig
from ..logging import get_logger
from ..models import AnalysisResult

logger = get_logger("prompting.selector")

_ENTRY_MARKERS = ("App.", "index.", "main.")


@dataclass(frozen=True)
class RelevantFile:
    path: str
    score: int
    content: str


def candidate_files(analysis: AnalysisResult) -> List[str]:
    """Component files first, then dependency-graph keys, without duplicates."""
    files: List[str] = []
    for component in analysis.components:
        if component.file_path and component.file_path not in files:
            files.append(component.file_path)
    for path in analysis.dependencies:
        if path not in files:
            files.append(path)
    return files


def score_file(path: str, keywords: List[str]) -> int:
    lowered = path.lower()
    score = 2 * sum(1 for keyword in keywords if keyword and keyword in lowered)
    if "/components/" in path:
        score += 1
    if "/pages/" in path:
        score += 1
    if any(marker in path for marker in _ENTRY_MARKERS):
        score += 3
    return score


class RelevantFileSelector:
    """Ranks analysed files against a feature request and reads the top few."""

    def __init__(self, limits: LimitsConfig | None = None) -> None:
        limits = limits or LimitsConfig()
        self.max_files = limits.max_context_files
        self.max_excerpt_chars = limits.max_excerpt_chars
        self._env = Environment(
            loader=FileSystemLoader(str(Path(__file__).with_name("templates"))),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def rank(self, feature_description: str, analysis: AnalysisResult) -> List[tuple[str, int]]:
        keywords = feature_description.lower().split()
        scores: Dict[str, int] = {}
        for path in candidate_files(analysis):
            score = score_file(path, keywords)
            if score > 0:
                scores[path] = score
        # sorted() is stable, so equal scores keep candidate order.
        ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
        return ranked[: self.max_files]

    def select(
        self, feature_description: str, analysis: AnalysisResult, project_root: Path
    ) -> List[RelevantFile]:
        selected: List[RelevantFile] = []
        root = project_root.resolve()
        for path, score in self.rank(feature_description, analysis):
            file_path = (root / path).resolve()
            if root not in file_path.parents:
                continue
            try:
                content = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed to read file %s: %s", path, exc)
                continue
            selected.append(RelevantFile(path=path, score=score, content=content))
        return selected

    def build_context_digest(
        self,
        feature_description: str,
        analysis: AnalysisResult,
        files: List[RelevantFile],
    ) -> str:
        """Compact text handed to the feature-suggestion collaborator."""
        template = self._env.get_template("feature_context.j2")
        return template.render(
            feature=feature_description,
            component_count=len(analysis.components),
            file_count=len(analysis.dependencies),
            dependencies=analysis.dependencies,
            files=[
                {"path": item.path, "excerpt": item.content[: self.max_excerpt_chars]}
                for item in files
            ],
        )


__all__ = ["RelevantFile", "RelevantFileSelector", "candidate_files", "score_file"]
