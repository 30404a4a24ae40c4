"""Base classes for dependency graph strategies."""

from abc import ABC, abstractmethod
from pathlib import Path

from ..models import DependencyGraph


class GraphStrategy(ABC):
    """Contract for strategies that derive source-to-source import edges."""

    name: str = "strategy"

    @abstractmethod
    def extract(self, root: Path) -> DependencyGraph:
        """Return the import graph for ``root``; may raise when the strategy cannot apply."""
