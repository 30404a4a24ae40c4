"""Persistence helpers."""

from .analysis_store import AnalysisStore, validate_project_id

__all__ = ["AnalysisStore", "validate_project_id"]
