"""Error taxonomy for the analysis pipeline.

Every error that aborts a run derives from :class:`AnalysisError` and carries a
sanitised, user-facing message plus an HTTP-style status code. Raw diagnostic
detail goes to the durable error log, not to the caller.
"""

from __future__ import annotations

from typing import Dict, Optional


class AnalysisError(RuntimeError):
    """Base class for failures that abort an analysis run."""

    status_code = 500
    default_message = "Analysis failed"

    def __init__(self, message: Optional[str] = None, *, details: Optional[str] = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, str]:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidRequestError(AnalysisError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(AnalysisError):
    status_code = 404
    default_message = "ZIP file not found. Please try uploading again."


class ProjectNotFoundError(NotFoundError):
    """The project directory is gone; the caller must re-upload rather than retry."""

    default_message = "Project files not found. Please upload the project again."


class AnalysisNotFoundError(NotFoundError):
    default_message = "Project analysis not found. Please analyze the project first."


class AccessDeniedError(AnalysisError):
    status_code = 403
    default_message = "Access denied: Invalid file path"


class ProjectFileNotFoundError(NotFoundError):
    default_message = "File not found"


class InvalidArchiveError(AnalysisError):
    status_code = 400
    default_message = (
        "Invalid ZIP file. Please ensure you are uploading a standard .zip file, not RAR or 7z."
    )


class ArchiveLimitError(AnalysisError):
    status_code = 413
    default_message = "ZIP archive exceeds the allowed limits."


class ResourceExhaustedError(AnalysisError):
    status_code = 507
    default_message = "Not enough disk space or memory to extract ZIP file."


class AnalysisTimeoutError(AnalysisError):
    status_code = 504
    default_message = "Analysis timed out"


# Clone classifications
NETWORK_ERROR = "network_error"
TIMEOUT = "timeout"
REPO_NOT_FOUND = "not_found"
AUTH_FAILED = "auth_failed"
CONNECTION_RESET = "connection_reset"
UNKNOWN = "unknown"

_CLONE_MESSAGES = {
    NETWORK_ERROR: "Network error: Unable to resolve host. Please check your internet connection and try again.",
    TIMEOUT: "Clone operation timed out. The repository may be too large. Please try uploading as a ZIP file instead.",
    REPO_NOT_FOUND: "Repository not found. Please verify the URL and ensure the repository is public.",
    AUTH_FAILED: "Authentication failed. Private repositories are not supported.",
    CONNECTION_RESET: "Network connection failed after multiple attempts. Please check your internet connection and try again.",
}

_CLONE_STATUS = {
    TIMEOUT: 504,
    REPO_NOT_FOUND: 404,
    AUTH_FAILED: 401,
}


class CloneFailedError(AnalysisError):
    """A remote fetch that failed on every attempt."""

    status_code = 502

    def __init__(self, classification: str, raw_message: str = "") -> None:
        self.classification = classification
        if classification in _CLONE_MESSAGES:
            message = _CLONE_MESSAGES[classification]
        else:
            message = f"Failed to clone repository: {raw_message or 'Unknown error'}"
        super().__init__(message)
        self.status_code = _CLONE_STATUS.get(classification, CloneFailedError.status_code)


class ParseFailure(Exception):
    """A single file could not be parsed; never escapes the component pass."""


__all__ = [
    "AUTH_FAILED",
    "AccessDeniedError",
    "AnalysisError",
    "AnalysisNotFoundError",
    "AnalysisTimeoutError",
    "ArchiveLimitError",
    "CONNECTION_RESET",
    "CloneFailedError",
    "InvalidArchiveError",
    "InvalidRequestError",
    "NETWORK_ERROR",
    "NotFoundError",
    "ParseFailure",
    "ProjectFileNotFoundError",
    "ProjectNotFoundError",
    "REPO_NOT_FOUND",
    "ResourceExhaustedError",
    "TIMEOUT",
    "UNKNOWN",
]
