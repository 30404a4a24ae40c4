"""Static analysers that turn a project tree into structure, graph and component data."""

from __future__ import annotations

from .base import GraphStrategy
from .components import ComponentExtractor
from .dependencies import (
    DependencyGraphExtractor,
    ManualScanStrategy,
    ModuleGraphStrategy,
    NoEntryPointError,
)
from .tree import FileTreeBuilder

__all__ = [
    "ComponentExtractor",
    "DependencyGraphExtractor",
    "FileTreeBuilder",
    "GraphStrategy",
    "ManualScanStrategy",
    "ModuleGraphStrategy",
    "NoEntryPointError",
]
