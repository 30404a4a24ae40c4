"""Pipeline orchestration for project analysis runs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Callable, List, Optional, Tuple, TypeVar

from .analyzers import ComponentExtractor, DependencyGraphExtractor, FileTreeBuilder
from .cleanup import ProjectLeases
from .config import CodeSightConfig, load_config
from .errors import (
    AccessDeniedError,
    AnalysisError,
    AnalysisTimeoutError,
    InvalidRequestError,
    ProjectFileNotFoundError,
    ProjectNotFoundError,
)
from .logging import ErrorLog, get_logger
from .materialize import CloneOutcome, GitCloner, effective_root, extract_archive
from .models import AnalysisResult
from .prompting import RelevantFile, RelevantFileSelector
from .stores import AnalysisStore, validate_project_id

T = TypeVar("T")


class AnalysisState(str, Enum):
    INITIALIZING = "initializing"
    MATERIALIZING = "materializing"
    BUILDING_TREE = "building_tree"
    EXTRACTING = "extracting"
    ASSEMBLING = "assembling"
    PERSISTED = "persisted"
    FAILED = "failed"


@dataclass
class AnalysisRun:
    """Tracks the state machine of a single analysis invocation."""

    project_id: str
    state: AnalysisState = AnalysisState.INITIALIZING
    history: List[AnalysisState] = field(default_factory=lambda: [AnalysisState.INITIALIZING])
    failure: Optional[str] = None

    def transition(self, state: AnalysisState) -> None:
        self.state = state
        self.history.append(state)

    def fail(self, reason: str) -> None:
        self.failure = reason
        self.transition(AnalysisState.FAILED)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class AnalysisOrchestrator:
    """Sequences materialisation, tree building, graph and component extraction."""

    def __init__(
        self,
        config: CodeSightConfig | None = None,
        *,
        tree_builder: FileTreeBuilder | None = None,
        graph_extractor: DependencyGraphExtractor | None = None,
        component_extractor: ComponentExtractor | None = None,
        store: AnalysisStore | None = None,
        cloner: GitCloner | None = None,
        selector: RelevantFileSelector | None = None,
        leases: ProjectLeases | None = None,
        error_log: ErrorLog | None = None,
    ) -> None:
        self.config = config or load_config(Path.cwd())
        storage = self.config.storage
        self.tree_builder = tree_builder or FileTreeBuilder(self.config.limits)
        self.graph_extractor = graph_extractor or DependencyGraphExtractor()
        self.component_extractor = component_extractor or ComponentExtractor()
        self.store = store or AnalysisStore(storage.projects_dir)
        self.cloner = cloner or GitCloner(self.config.clone)
        self.selector = selector or RelevantFileSelector(self.config.limits)
        self.leases = leases or ProjectLeases()
        self.error_log = error_log or ErrorLog(storage.error_log)
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Public operations

    def project_dir(self, project_id: str) -> Path:
        try:
            validate_project_id(project_id)
        except ValueError as exc:
            raise InvalidRequestError("Invalid project ID", details=str(exc)) from exc
        return self.config.storage.projects_dir / project_id

    def upload_path(self, project_id: str) -> Path:
        self.project_dir(project_id)
        return self.config.storage.uploads_dir / f"{project_id}.zip"

    async def analyze(
        self,
        project_id: str,
        zip_path: Path | None = None,
        *,
        run: AnalysisRun | None = None,
    ) -> AnalysisResult:
        """Analyse a project from ``zip_path`` or from its already-materialised directory."""
        run = run or AnalysisRun(project_id)
        try:
            project_dir = self.project_dir(project_id)
            with self.leases.hold(project_id):
                self.logger.info("Starting analysis for %s", project_id)
                try:
                    result = await asyncio.wait_for(
                        self._pipeline(run, project_dir, zip_path),
                        timeout=self.config.analysis_timeout,
                    )
                except TimeoutError as exc:
                    raise AnalysisTimeoutError(
                        details=f"Analysis exceeded {self.config.analysis_timeout:.0f} seconds"
                    ) from exc
                await self._in_thread(self.store.save, result)
        except AnalysisError as exc:
            self._abort(run, "analyze", exc)
            raise
        except Exception as exc:
            self._abort(run, "analyze", exc)
            raise AnalysisError(details=str(exc)) from exc

        run.transition(AnalysisState.PERSISTED)
        self.logger.info(
            "Analysis complete for %s: %d dependency entries, %d components",
            project_id,
            len(result.dependencies),
            len(result.components),
        )
        return result

    async def clone(
        self, project_id: str, git_url: str, access_token: Optional[str] = None
    ) -> CloneOutcome:
        """Materialise a remote repository into the project directory."""
        try:
            project_dir = self.project_dir(project_id)
            with self.leases.hold(project_id):
                return await self.cloner.clone(git_url, project_dir, access_token)
        except AnalysisError as exc:
            self.error_log.record("clone", project_id, exc)
            raise
        except Exception as exc:
            self.error_log.record("clone", project_id, exc)
            raise AnalysisError("Failed to clone repository", details=str(exc)) from exc

    async def load_analysis(self, project_id: str) -> AnalysisResult:
        self.project_dir(project_id)
        return await self._in_thread(self.store.load, project_id)

    async def feature_context(
        self, project_id: str, feature_description: str
    ) -> Tuple[List[RelevantFile], str]:
        """Select files relevant to a feature request and render the LLM digest."""
        project_dir = self.project_dir(project_id)
        return await self._in_thread(
            self._build_feature_context, project_id, project_dir, feature_description
        )

    async def read_file(self, project_id: str, rel_path: str) -> str:
        """Return one project file's text for the UI side panel.

        Paths resolve against the project directory first and then, when the
        file is missing there, against the nested root. Anything resolving
        outside the project directory is refused.
        """
        project_dir = self.project_dir(project_id)
        return await self._in_thread(self._read_project_file, project_dir, rel_path)

    # ------------------------------------------------------------------
    # Blocking helpers (run in executor threads)

    def _build_feature_context(
        self, project_id: str, project_dir: Path, feature_description: str
    ) -> Tuple[List[RelevantFile], str]:
        if not project_dir.is_dir():
            raise ProjectNotFoundError()
        analysis = self.store.load(project_id)
        root = effective_root(project_dir)
        files = self.selector.select(feature_description, analysis, root)
        self.logger.info("Selected %d relevant files for %s", len(files), project_id)
        digest = self.selector.build_context_digest(feature_description, analysis, files)
        return files, digest

    def _read_project_file(self, project_dir: Path, rel_path: str) -> str:
        if not project_dir.is_dir():
            raise ProjectNotFoundError()
        root = project_dir.resolve()
        target = (root / rel_path).resolve()
        if target != root and root not in target.parents:
            raise AccessDeniedError(details=rel_path)

        if not target.exists():
            nested = effective_root(root)
            if nested != root:
                candidate = (nested / rel_path).resolve()
                if root in candidate.parents and candidate.exists():
                    self.logger.debug("Found %s in nested root %s", rel_path, nested.name)
                    target = candidate

        if not target.exists():
            raise ProjectFileNotFoundError(details=rel_path)
        if target.is_dir():
            raise InvalidRequestError("Cannot read a directory", details=rel_path)
        return target.read_text(encoding="utf-8", errors="replace")

    # ------------------------------------------------------------------
    # Pipeline

    async def _pipeline(
        self, run: AnalysisRun, project_dir: Path, zip_path: Path | None
    ) -> AnalysisResult:
        run.transition(AnalysisState.MATERIALIZING)
        if zip_path is not None:
            await self._in_thread(extract_archive, zip_path, project_dir, self.config.limits)
        elif not project_dir.is_dir():
            raise ProjectNotFoundError(
                details="Project directory does not exist and no ZIP file provided."
            )
        root = await self._in_thread(effective_root, project_dir)
        if root != project_dir:
            self.logger.debug("Detected nested root: %s", root.name)

        run.transition(AnalysisState.BUILDING_TREE)
        structure = await self._in_thread(self.tree_builder.build, root)

        run.transition(AnalysisState.EXTRACTING)
        dependencies, components = await asyncio.gather(
            self._in_thread(self.graph_extractor.extract, root),
            self._in_thread(self.component_extractor.extract, root),
        )

        run.transition(AnalysisState.ASSEMBLING)
        return AnalysisResult(
            project_id=run.project_id,
            timestamp=_timestamp(),
            structure=tuple(structure),
            dependencies=dependencies,
            components=tuple(components),
        )

    @staticmethod
    async def _in_thread(func: Callable[..., T], *args: object) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args))

    def _abort(self, run: AnalysisRun, operation: str, exc: BaseException) -> None:
        run.fail(str(exc))
        self.logger.error("Analysis failed for %s: %s", run.project_id, exc)
        self.error_log.record(operation, run.project_id, exc)


__all__ = ["AnalysisOrchestrator", "AnalysisRun", "AnalysisState"]
