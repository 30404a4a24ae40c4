"""Core data models shared across codesight components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

DependencyGraph = Dict[str, List[str]]

FILE = "file"
DIRECTORY = "directory"

FUNCTIONAL = "functional"
CLASS = "class"


@dataclass(frozen=True)
class FileNode:
    """One entry of the project file tree (metadata only)."""

    name: str
    path: str
    kind: str
    size: Optional[int] = None
    extension: Optional[str] = None
    children: Optional[Tuple["FileNode", ...]] = None

    @classmethod
    def file(cls, name: str, path: str, size: int, extension: str) -> "FileNode":
        return cls(name=name, path=path, kind=FILE, size=size, extension=extension)

    @classmethod
    def directory(cls, name: str, path: str, children: Sequence["FileNode"]) -> "FileNode":
        return cls(name=name, path=path, kind=DIRECTORY, children=tuple(children))

    @classmethod
    def placeholder(cls, remaining: int) -> "FileNode":
        """Synthetic node standing in for entries beyond the fan-out cap."""
        return cls(
            name=f"...and {remaining} more files",
            path="",
            kind=FILE,
            size=0,
            extension="",
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "path": self.path, "type": self.kind}
        if self.kind == DIRECTORY:
            data["children"] = [child.to_dict() for child in self.children or ()]
        else:
            data["size"] = self.size
            data["extension"] = self.extension
        return data

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FileNode":
        kind = payload.get("type", FILE)
        if kind == DIRECTORY:
            children = [cls.from_dict(child) for child in payload.get("children") or []]
            return cls.directory(str(payload.get("name", "")), str(payload.get("path", "")), children)
        return cls.file(
            str(payload.get("name", "")),
            str(payload.get("path", "")),
            int(payload.get("size") or 0),
            str(payload.get("extension") or ""),
        )


@dataclass(frozen=True)
class ComponentInfo:
    """A UI-component-like declaration discovered in one source file."""

    name: str
    file_path: str
    kind: str
    hooks: Tuple[str, ...] = ()
    props: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "filePath": self.file_path,
            "type": self.kind,
            "hooks": list(self.hooks),
            "props": list(self.props),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ComponentInfo":
        return cls(
            name=str(payload.get("name", "")),
            file_path=str(payload.get("filePath", "")),
            kind=str(payload.get("type", FUNCTIONAL)),
            hooks=tuple(payload.get("hooks") or ()),
            props=tuple(payload.get("props") or ()),
        )


@dataclass(frozen=True)
class AnalysisResult:
    """The document persisted per project and returned to callers."""

    project_id: str
    timestamp: str
    structure: Tuple[FileNode, ...]
    dependencies: DependencyGraph = field(default_factory=dict)
    components: Tuple[ComponentInfo, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectId": self.project_id,
            "timestamp": self.timestamp,
            "structure": [node.to_dict() for node in self.structure],
            "dependencies": {key: list(values) for key, values in self.dependencies.items()},
            "components": [component.to_dict() for component in self.components],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AnalysisResult":
        dependencies = payload.get("dependencies") or {}
        return cls(
            project_id=str(payload.get("projectId", "")),
            timestamp=str(payload.get("timestamp", "")),
            structure=tuple(FileNode.from_dict(node) for node in payload.get("structure") or []),
            dependencies={
                str(key): [str(value) for value in values]
                for key, values in dependencies.items()
                if isinstance(values, list)
            },
            components=tuple(
                ComponentInfo.from_dict(item) for item in payload.get("components") or []
            ),
        )
