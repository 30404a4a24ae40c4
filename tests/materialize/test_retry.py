from __future__ import annotations

from codesight.materialize.retry import RetryPolicy


def test_delays_double_from_base() -> None:
    policy = RetryPolicy(max_attempts=4, base_delay=2.0)

    assert [policy.delay(attempt) for attempt in (1, 2, 3)] == [2.0, 4.0, 8.0]


def test_no_retry_after_last_attempt() -> None:
    policy = RetryPolicy(max_attempts=3)
    error = RuntimeError("boom")

    assert policy.allows_retry(1, error)
    assert policy.allows_retry(2, error)
    assert not policy.allows_retry(3, error)


def test_should_retry_predicate_can_veto() -> None:
    policy = RetryPolicy(should_retry=lambda exc: not isinstance(exc, PermissionError))

    assert not policy.allows_retry(1, PermissionError("denied"))
    assert policy.allows_retry(1, ConnectionResetError("reset"))
