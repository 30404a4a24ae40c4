"""Bounded retry policy with exponential backoff."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable


def _always_retry(_: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """Describes how many attempts to make and how long to wait between them.

    ``delay(attempt)`` is the wait after the given failed attempt (1-based), so the
    defaults produce 2s then 4s between three attempts.
    """

    max_attempts: int = 3
    base_delay: float = 2.0
    should_retry: Callable[[BaseException], bool] = field(default=_always_retry)

    def delay(self, attempt: int) -> float:
        return self.base_delay * (2 ** (attempt - 1))

    def allows_retry(self, attempt: int, error: BaseException) -> bool:
        return attempt < self.max_attempts and self.should_retry(error)


__all__ = ["RetryPolicy"]
