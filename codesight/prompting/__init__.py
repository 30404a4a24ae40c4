"""Bounded context selection for the feature-suggestion collaborator."""

from .selector import RelevantFile, RelevantFileSelector

__all__ = ["RelevantFile", "RelevantFileSelector"]
