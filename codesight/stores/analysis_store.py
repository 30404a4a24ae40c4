"""Persistent store for analysis results keyed by project id."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Optional

from ..errors import AnalysisNotFoundError
from ..models import AnalysisResult

_STORE_VERSION = 1
_SAFE_PROJECT_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def validate_project_id(project_id: str) -> str:
    """Reject ids that could escape the projects directory."""
    if not project_id or not _SAFE_PROJECT_ID.match(project_id) or ".." in project_id:
        raise ValueError(f"Invalid project id: {project_id!r}")
    return project_id


class AnalysisStore:
    """Stores one JSON document per project next to the project directories."""

    SUFFIX = "_analysis.json"

    def __init__(self, projects_dir: Path) -> None:
        self.projects_dir = projects_dir

    def path_for(self, project_id: str) -> Path:
        return self.projects_dir / f"{validate_project_id(project_id)}{self.SUFFIX}"

    def exists(self, project_id: str) -> bool:
        return self.path_for(project_id).is_file()

    def save(self, result: AnalysisResult) -> Path:
        path = self.path_for(result.project_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"version": _STORE_VERSION, "analysis": result.to_dict()}
        # Write then rename so readers never observe a half-written document.
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp_path, path)
        return path

    def load(self, project_id: str) -> AnalysisResult:
        result = self.get(project_id)
        if result is None:
            raise AnalysisNotFoundError()
        return result

    def get(self, project_id: str) -> Optional[AnalysisResult]:
        path = self.path_for(project_id)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError):
            return None
        if not isinstance(data, dict) or data.get("version") != _STORE_VERSION:
            return None
        analysis = data.get("analysis")
        if not isinstance(analysis, dict):
            return None
        return AnalysisResult.from_dict(analysis)

    @classmethod
    def project_id_for(cls, path: Path) -> Optional[str]:
        """Project id owning a stored document, or None for other files."""
        if path.name.endswith(cls.SUFFIX):
            return path.name[: -len(cls.SUFFIX)]
        return None


__all__ = ["AnalysisStore", "validate_project_id"]
