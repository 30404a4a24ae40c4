"""Configuration loading for codesight (.codesight.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

CONFIG_FILENAME = ".codesight.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LimitsConfig:
    """Bounds enforced on untrusted project input."""

    max_archive_bytes: int = 50 * 1024 * 1024
    max_archive_files: int = 5000
    archive_validation_timeout: float = 10.0
    max_tree_depth: int = 10
    max_entries_per_dir: int = 50
    max_context_files: int = 5
    max_excerpt_chars: int = 1200


@dataclass
class CloneConfig:
    """Shallow-clone transport and retry settings."""

    max_attempts: int = 3
    base_delay: float = 2.0
    attempt_timeout: float = 60.0
    known_hosts: List[str] = field(default_factory=lambda: ["github.com"])


@dataclass
class StorageConfig:
    """Where projects, uploads and diagnostics live on disk."""

    projects_dir: Path = Path("projects")
    uploads_dir: Path = Path("uploads")
    error_log: Path = Path("logs/analysis_errors.jsonl")
    retention_hours: float = 24.0
    sweep_interval: float = 3600.0


@dataclass
class CodeSightConfig:
    """Represents the settings defined in .codesight.yml."""

    root: Path
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    clone: CloneConfig = field(default_factory=CloneConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    analysis_timeout: float = 60.0


def load_config(
    config_path: Path, *, environ: Optional[Mapping[str, str]] = None
) -> CodeSightConfig:
    """Load configuration from disk, then apply environment overrides."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()
    env = os.environ if environ is None else environ

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)
        if not isinstance(data, dict):
            raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    limits = LimitsConfig()
    limits_data = _as_dict(data.get("limits"))
    if limits_data:
        limits.max_archive_bytes = _as_int(limits_data.get("max_archive_bytes"), limits.max_archive_bytes)
        limits.max_archive_files = _as_int(limits_data.get("max_archive_files"), limits.max_archive_files)
        limits.archive_validation_timeout = _as_float(
            limits_data.get("archive_validation_timeout"), limits.archive_validation_timeout
        )
        limits.max_tree_depth = _as_int(limits_data.get("max_tree_depth"), limits.max_tree_depth)
        limits.max_entries_per_dir = _as_int(
            limits_data.get("max_entries_per_dir"), limits.max_entries_per_dir
        )
        limits.max_context_files = _as_int(limits_data.get("max_context_files"), limits.max_context_files)
        limits.max_excerpt_chars = _as_int(limits_data.get("max_excerpt_chars"), limits.max_excerpt_chars)

    clone = CloneConfig()
    clone_data = _as_dict(data.get("clone"))
    if clone_data:
        clone.max_attempts = _as_int(clone_data.get("max_attempts"), clone.max_attempts)
        clone.base_delay = _as_float(clone_data.get("base_delay"), clone.base_delay)
        clone.attempt_timeout = _as_float(clone_data.get("attempt_timeout"), clone.attempt_timeout)
        hosts = _as_str_list(clone_data.get("known_hosts"))
        if hosts:
            clone.known_hosts = hosts

    storage = StorageConfig()
    storage_data = _as_dict(data.get("storage"))
    if storage_data:
        storage.projects_dir = _as_path(storage_data.get("projects_dir"), storage.projects_dir)
        storage.uploads_dir = _as_path(storage_data.get("uploads_dir"), storage.uploads_dir)
        storage.error_log = _as_path(storage_data.get("error_log"), storage.error_log)
        storage.retention_hours = _as_float(storage_data.get("retention_hours"), storage.retention_hours)
        storage.sweep_interval = _as_float(storage_data.get("sweep_interval"), storage.sweep_interval)

    analysis_data = _as_dict(data.get("analysis"))
    analysis_timeout = _as_float(analysis_data.get("timeout"), 60.0)

    if env.get("CODESIGHT_PROJECTS_DIR"):
        storage.projects_dir = Path(env["CODESIGHT_PROJECTS_DIR"])
    if env.get("CODESIGHT_UPLOADS_DIR"):
        storage.uploads_dir = Path(env["CODESIGHT_UPLOADS_DIR"])
    analysis_timeout = _as_float(env.get("CODESIGHT_ANALYSIS_TIMEOUT"), analysis_timeout)

    storage.projects_dir = _anchor(root, storage.projects_dir)
    storage.uploads_dir = _anchor(root, storage.uploads_dir)
    storage.error_log = _anchor(root, storage.error_log)

    return CodeSightConfig(
        root=root,
        limits=limits,
        clone=clone,
        storage=storage,
        analysis_timeout=analysis_timeout,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _anchor(root: Path, path: Path) -> Path:
    path = path.expanduser()
    return path if path.is_absolute() else root / path


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_path(value: Any, default: Path) -> Path:
    return Path(value) if isinstance(value, str) and value.strip() else default


def _as_float(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return default
    return default


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []
