"""ZIP validation, extraction and nested-root normalisation."""

from __future__ import annotations

import errno
import shutil
import zipfile
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from pathlib import Path

from ..config import LimitsConfig
from ..errors import (
    ArchiveLimitError,
    InvalidArchiveError,
    NotFoundError,
    ResourceExhaustedError,
)
from ..logging import get_logger

logger = get_logger("materialize.archive")

_EXHAUSTION_ERRNOS = {errno.ENOSPC, errno.ENOMEM}
_ENCRYPTED_FLAG = 0x1
_SUPPORTED_COMPRESSION = frozenset(
    {zipfile.ZIP_STORED, zipfile.ZIP_DEFLATED, zipfile.ZIP_BZIP2, zipfile.ZIP_LZMA}
)


@dataclass(frozen=True)
class ArchiveStats:
    """Figures gathered from the archive's central directory before extraction."""

    size_bytes: int
    file_count: int


def inspect_archive(zip_path: Path) -> ArchiveStats:
    """Count file entries (directories excluded) without extracting anything.

    Encrypted entries and compression methods ``zipfile`` cannot decode are
    rejected here, before anything is written.
    """
    if not zip_path.exists():
        raise NotFoundError()
    size = zip_path.stat().st_size
    count = 0
    try:
        with zipfile.ZipFile(zip_path) as archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                if info.flag_bits & _ENCRYPTED_FLAG:
                    raise InvalidArchiveError(
                        "Password-protected ZIP files are not supported.",
                        details=info.filename,
                    )
                if info.compress_type not in _SUPPORTED_COMPRESSION:
                    raise InvalidArchiveError(
                        details=f"{info.filename}: unsupported compression method {info.compress_type}"
                    )
                count += 1
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
        raise InvalidArchiveError(details=str(exc)) from exc
    return ArchiveStats(size_bytes=size, file_count=count)


def validate_archive(zip_path: Path, limits: LimitsConfig) -> ArchiveStats:
    """Enforce the archive size and file-count limits within a bounded time."""
    if not zip_path.exists():
        raise NotFoundError()

    size = zip_path.stat().st_size
    if size > limits.max_archive_bytes:
        raise ArchiveLimitError(
            f"File size exceeds maximum limit of {_megabytes(limits.max_archive_bytes)}MB. "
            f"Your file: {size / (1024 * 1024):.2f}MB"
        )

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="zip-validate")
    try:
        future = executor.submit(inspect_archive, zip_path)
        try:
            stats = future.result(timeout=limits.archive_validation_timeout)
        except FutureTimeout as exc:
            raise InvalidArchiveError(
                "ZIP validation timed out. The file may be too large or corrupted."
            ) from exc
    finally:
        executor.shutdown(wait=False)

    if stats.file_count > limits.max_archive_files:
        raise ArchiveLimitError(
            f"ZIP contains too many files ({stats.file_count}). "
            f"Maximum allowed: {limits.max_archive_files}"
        )
    return stats


def extract_archive(zip_path: Path, target_dir: Path, limits: LimitsConfig) -> Path:
    """Validate then extract ``zip_path`` into ``target_dir``, overwriting existing files."""
    stats = validate_archive(zip_path, limits)
    logger.info(
        "Unzipping %s (%.2f MB, %d files)",
        zip_path.name,
        stats.size_bytes / (1024 * 1024),
        stats.file_count,
    )

    target_dir.mkdir(parents=True, exist_ok=True)
    destination = target_dir.resolve()
    try:
        with zipfile.ZipFile(zip_path) as archive:
            for info in archive.infolist():
                member = (destination / info.filename).resolve()
                if member != destination and destination not in member.parents:
                    raise InvalidArchiveError(
                        "ZIP archive contains entries outside the project directory.",
                        details=info.filename,
                    )
            archive.extractall(destination)
    except InvalidArchiveError:
        raise
    # zipfile reports encrypted members as RuntimeError and unknown codecs as NotImplementedError.
    except (zipfile.BadZipFile, zipfile.LargeZipFile, RuntimeError) as exc:
        raise InvalidArchiveError(details=str(exc)) from exc
    except MemoryError as exc:
        raise ResourceExhaustedError(
            "Not enough memory to extract ZIP file. The file may be too large."
        ) from exc
    except OSError as exc:
        if exc.errno in _EXHAUSTION_ERRNOS:
            raise ResourceExhaustedError(details=exc.strerror) from exc
        if exc.errno == errno.ENOENT:
            raise NotFoundError() from exc
        raise

    _remove_node_modules(destination)
    _remove_node_modules(effective_root(destination))
    logger.info("Unzip complete")
    return destination


def effective_root(materialized_root: Path) -> Path:
    """Return the directory that actually holds the project.

    Archives and clones often wrap everything in one folder named after the
    repository; when the root holds exactly one entry and it is a directory,
    that directory is the project root.
    """
    try:
        entries = list(materialized_root.iterdir())
    except OSError:
        return materialized_root
    if len(entries) == 1 and entries[0].is_dir() and not entries[0].is_symlink():
        return entries[0]
    return materialized_root


def _remove_node_modules(root: Path) -> None:
    node_modules = root / "node_modules"
    if node_modules.is_dir() and not node_modules.is_symlink():
        logger.info("Removing node_modules from uploaded project")
        shutil.rmtree(node_modules, ignore_errors=True)


def _megabytes(value: int) -> int:
    return value // (1024 * 1024)


__all__ = [
    "ArchiveStats",
    "effective_root",
    "extract_archive",
    "inspect_archive",
    "validate_archive",
]
