"""Turn an uploaded archive or a remote repository into a local project tree."""

from .archive import effective_root, extract_archive, validate_archive
from .clone import CloneOutcome, GitCloner, classify_clone_error
from .retry import RetryPolicy

__all__ = [
    "CloneOutcome",
    "GitCloner",
    "RetryPolicy",
    "classify_clone_error",
    "effective_root",
    "extract_archive",
    "validate_archive",
]
