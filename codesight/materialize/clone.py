"""Shallow git clone with per-attempt timeout, retry and failure classification."""

from __future__ import annotations

import asyncio
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from ..config import CloneConfig
from ..errors import (
    AUTH_FAILED,
    CONNECTION_RESET,
    CloneFailedError,
    NETWORK_ERROR,
    REPO_NOT_FOUND,
    TIMEOUT,
    UNKNOWN,
)
from ..logging import get_logger
from .retry import RetryPolicy

logger = get_logger("materialize.clone")

GIT_OPTIONS: tuple[str, ...] = (
    "--depth", "1",
    "-c", "http.version=HTTP/1.1",
    "-c", "http.postBuffer=524288000",
    "-c", "http.lowSpeedLimit=1000",
    "-c", "http.lowSpeedTime=60",
)

Runner = Callable[..., Awaitable[None]]
Sleeper = Callable[[float], Awaitable[None]]


class GitCommandError(RuntimeError):
    """A single clone attempt failed; the message holds git's stderr."""


@dataclass
class CloneOutcome:
    """What happened while materialising a repository."""

    path: Path
    attempts: int
    delays: List[float] = field(default_factory=list)


def classify_clone_error(message: str) -> str:
    """Map raw git/transport error text onto a clone failure classification."""
    lowered = message.lower()
    if "could not resolve host" in lowered:
        return NETWORK_ERROR
    if "timeout" in lowered or "timed out" in lowered:
        return TIMEOUT
    if "repository not found" in lowered or "404" in lowered:
        return REPO_NOT_FOUND
    if "authentication failed" in lowered or "403" in lowered:
        return AUTH_FAILED
    if "connection was reset" in lowered or "recv failure" in lowered:
        return CONNECTION_RESET
    return UNKNOWN


def authenticated_url(git_url: str, token: Optional[str], known_hosts: Sequence[str]) -> str:
    """Embed ``token`` in ``git_url`` when it targets a known https git host."""
    if not token:
        return git_url
    parts = urlsplit(git_url)
    host = (parts.hostname or "").lower()
    if parts.scheme != "https" or host not in {known.lower() for known in known_hosts}:
        return git_url
    netloc = f"x-access-token:{token}@{host}"
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


class GitCloner:
    """Clones a repository into a project directory, retrying transient failures."""

    def __init__(
        self,
        config: CloneConfig | None = None,
        *,
        runner: Runner | None = None,
        sleep: Sleeper | None = None,
        policy: RetryPolicy | None = None,
    ) -> None:
        self.config = config or CloneConfig()
        self._runner = runner or self._default_runner
        self._sleep = sleep or asyncio.sleep
        self.policy = policy or RetryPolicy(
            max_attempts=self.config.max_attempts,
            base_delay=self.config.base_delay,
        )

    async def clone(
        self, git_url: str, target_dir: Path, access_token: Optional[str] = None
    ) -> CloneOutcome:
        clone_url = authenticated_url(git_url, access_token, self.config.known_hosts)
        if clone_url != git_url:
            logger.debug("Using authenticated clone URL for %s", git_url)
        args = ["git", "clone", *GIT_OPTIONS, clone_url, str(target_dir)]

        delays: List[float] = []
        last_error: BaseException | None = None
        attempt = 0
        while attempt < self.policy.max_attempts:
            attempt += 1
            _empty_dir(target_dir)
            logger.info("Clone attempt %d/%d for %s", attempt, self.policy.max_attempts, git_url)
            try:
                await self._runner(
                    args,
                    timeout=self.config.attempt_timeout,
                    attempt=attempt,
                )
            except (GitCommandError, OSError) as exc:
                last_error = exc
                logger.warning(
                    "Clone attempt %d failed: %s", attempt, _scrub(str(exc), access_token)
                )
                _empty_dir(target_dir)
                if not self.policy.allows_retry(attempt, exc):
                    break
                delay = self.policy.delay(attempt)
                delays.append(delay)
                logger.info("Retrying clone in %.0fs", delay)
                await self._sleep(delay)
            else:
                logger.info("Clone complete after %d attempt(s)", attempt)
                return CloneOutcome(path=target_dir, attempts=attempt, delays=delays)

        raw = _scrub(str(last_error) if last_error else "Unknown error", access_token)
        classification = classify_clone_error(raw)
        raise CloneFailedError(classification, raw) from last_error

    @staticmethod
    async def _default_runner(args: Sequence[str], *, timeout: float, attempt: int) -> None:
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise GitCommandError(
                f"Git clone timeout after {timeout:.0f} seconds (attempt {attempt})"
            ) from exc
        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise GitCommandError(message or f"git exited with status {process.returncode}")


def _empty_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def _scrub(message: str, token: Optional[str]) -> str:
    if token:
        return message.replace(token, "***")
    return message


__all__ = [
    "CloneOutcome",
    "GIT_OPTIONS",
    "GitCloner",
    "GitCommandError",
    "authenticated_url",
    "classify_clone_error",
]
