from __future__ import annotations

import pytest

from codesight.errors import (
    AUTH_FAILED,
    CONNECTION_RESET,
    CloneFailedError,
    InvalidArchiveError,
    NETWORK_ERROR,
    ProjectNotFoundError,
    TIMEOUT,
    UNKNOWN,
)


def test_payload_includes_details_only_when_present() -> None:
    assert InvalidArchiveError("bad zip").to_payload() == {"error": "bad zip"}
    assert ProjectNotFoundError(details="gone").to_payload() == {
        "error": "Project files not found. Please upload the project again.",
        "details": "gone",
    }


@pytest.mark.parametrize(
    "classification, status",
    [
        (NETWORK_ERROR, 502),
        (TIMEOUT, 504),
        (AUTH_FAILED, 401),
        (CONNECTION_RESET, 502),
        (UNKNOWN, 502),
    ],
)
def test_clone_failure_status_codes(classification: str, status: int) -> None:
    assert CloneFailedError(classification, "raw").status_code == status


def test_unknown_clone_failure_surfaces_raw_message() -> None:
    error = CloneFailedError(UNKNOWN, "fatal: early EOF")

    assert error.message == "Failed to clone repository: fatal: early EOF"
    assert error.classification == UNKNOWN
