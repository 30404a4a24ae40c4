"""FastAPI application entrypoint for codesight service mode."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..cleanup import ProjectCleanup
from ..config import CodeSightConfig
from ..errors import AnalysisError
from ..logging import get_logger
from ..orchestrator import AnalysisOrchestrator

logger = get_logger("service")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AnalyzeRequest(_CamelModel):
    project_id: str = Field(alias="projectId", min_length=1)


class CloneRequest(_CamelModel):
    project_id: str = Field(alias="projectId", min_length=1)
    git_url: str = Field(alias="gitUrl", min_length=1)
    access_token: Optional[str] = Field(default=None, alias="accessToken")


class CloneResponse(BaseModel):
    projectId: str
    attempts: int


class ContextRequest(_CamelModel):
    project_id: str = Field(alias="projectId", min_length=1)
    feature_description: str = Field(alias="featureDescription", min_length=1)


class ContextFile(BaseModel):
    path: str
    score: int


class ContextResponse(BaseModel):
    projectId: str
    files: List[ContextFile]
    digest: str


class FileContentResponse(BaseModel):
    content: str


class HealthResponse(BaseModel):
    status: str


def create_app(
    orchestrator_factory: Callable[[], AnalysisOrchestrator] = AnalysisOrchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing codesight operations."""

    app = FastAPI(title="CodeSight Analysis Service", version="1.0.0")
    orchestrator = orchestrator_factory()

    async def get_orchestrator() -> AnalysisOrchestrator:
        # One orchestrator per app so every request shares the same lease registry.
        return orchestrator

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/analyze")
    async def analyze(
        payload: AnalyzeRequest,
        orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        zip_path = orchestrator.upload_path(payload.project_id)
        result = await orchestrator.analyze(
            payload.project_id, zip_path if zip_path.is_file() else None
        )
        return result.to_dict()

    @app.post("/clone", response_model=CloneResponse)
    async def clone(
        payload: CloneRequest,
        orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    ) -> CloneResponse:
        outcome = await orchestrator.clone(
            payload.project_id, payload.git_url, payload.access_token
        )
        return CloneResponse(projectId=payload.project_id, attempts=outcome.attempts)

    @app.get("/analysis/{project_id}")
    async def get_analysis(
        project_id: str,
        orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        result = await orchestrator.load_analysis(project_id)
        return result.to_dict()

    @app.post("/context", response_model=ContextResponse)
    async def feature_context(
        payload: ContextRequest,
        orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    ) -> ContextResponse:
        files, digest = await orchestrator.feature_context(
            payload.project_id, payload.feature_description
        )
        return ContextResponse(
            projectId=payload.project_id,
            files=[ContextFile(path=item.path, score=item.score) for item in files],
            digest=digest,
        )

    @app.get("/files/{project_id}", response_model=FileContentResponse)
    async def read_file(
        project_id: str,
        path: str = Query(..., min_length=1),
        orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    ) -> FileContentResponse:
        content = await orchestrator.read_file(project_id, path)
        return FileContentResponse(content=content)

    @app.exception_handler(AnalysisError)
    async def analysis_error_handler(_: Any, exc: AnalysisError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Any, exc: RequestValidationError) -> JSONResponse:
        fields = sorted(
            {".".join(str(part) for part in error.get("loc", ())[1:]) for error in exc.errors()}
        )
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request",
                "details": f"Missing or invalid fields: {', '.join(fields)}",
            },
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(_: Any, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled service error: %s", exc)
        return JSONResponse(
            status_code=500, content={"error": "Analysis failed", "details": str(exc)}
        )

    return app


def run_service(
    host: str = "0.0.0.0", port: int = 8000, config: CodeSightConfig | None = None
) -> None:  # pragma: no cover - integration path
    import uvicorn

    orchestrator = AnalysisOrchestrator(config)
    storage = orchestrator.config.storage
    cleanup = ProjectCleanup(
        storage.projects_dir, storage.retention_hours, leases=orchestrator.leases
    )
    cleanup.start(storage.sweep_interval)
    try:
        uvicorn.run(create_app(lambda: orchestrator), host=host, port=port)
    finally:
        cleanup.stop()
