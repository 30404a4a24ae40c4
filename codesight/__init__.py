"""Static project analysis: file tree, import graph and component inventory."""

__version__ = "1.0.0"
