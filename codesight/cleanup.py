"""Retention sweep for stored projects, coordinated with in-flight analyses."""

from __future__ import annotations

import shutil
import threading
import time
from collections import Counter
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from .logging import get_logger
from .stores import AnalysisStore


class ProjectLeases:
    """Thread-safe registry of project ids that an analysis is currently using."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: Counter[str] = Counter()

    @contextmanager
    def hold(self, project_id: str) -> Iterator[None]:
        with self._lock:
            self._active[project_id] += 1
        try:
            yield
        finally:
            with self._lock:
                self._active[project_id] -= 1
                if self._active[project_id] <= 0:
                    del self._active[project_id]

    def is_held(self, project_id: str) -> bool:
        with self._lock:
            return self._active.get(project_id, 0) > 0


class ProjectCleanup:
    """Deletes project directories and analysis documents older than ``max_age_hours``."""

    def __init__(
        self,
        projects_dir: Path,
        max_age_hours: float = 24.0,
        *,
        leases: Optional[ProjectLeases] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.projects_dir = projects_dir
        self.max_age_hours = max_age_hours
        self.leases = leases or ProjectLeases()
        self._clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.logger = get_logger("cleanup")

    def sweep(self) -> List[str]:
        """Run one pass; returns the names of deleted entries."""
        if not self.projects_dir.is_dir():
            self.logger.info("Projects directory does not exist")
            return []

        now = self._clock()
        max_age = self.max_age_hours * 3600
        deleted: List[str] = []
        for entry in sorted(self.projects_dir.iterdir()):
            project_id = AnalysisStore.project_id_for(entry) or entry.name
            if self.leases.is_held(project_id):
                self.logger.debug("Skipping %s: analysis in progress", entry.name)
                continue
            try:
                age = now - entry.stat().st_mtime
                if age <= max_age:
                    continue
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            except OSError as exc:
                self.logger.error("Error processing %s: %s", entry.name, exc)
                continue
            deleted.append(entry.name)
            self.logger.info("Deleted old project: %s (age: %.1fh)", entry.name, age / 3600)
        return deleted

    def start(self, interval: float = 3600.0) -> None:
        """Sweep now, then every ``interval`` seconds in a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self.logger.info(
            "Starting cleanup scheduler (every %.0fs, deletes projects older than %sh)",
            interval,
            self.max_age_hours,
        )
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, args=(interval,), name="codesight-cleanup", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
            self.logger.info("Cleanup scheduler stopped")

    def _run(self, interval: float) -> None:
        while True:
            try:
                self.sweep()
            except OSError as exc:
                self.logger.error("Cleanup failed: %s", exc)
            if self._stop.wait(interval):
                return


__all__ = ["ProjectCleanup", "ProjectLeases"]
