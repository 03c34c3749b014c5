"""In-memory file snapshots used to roll back a multi-file write."""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import structlog

from stackctl.errors import BackupError, RestoreError
from stackctl.fileio import atomic_write_text, read_text

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Backup:
    """Full content of a file captured right before it is rewritten."""

    file_path: Path
    original_content: str
    timestamp: float


def create_backup(path: Path) -> Backup:
    """Snapshot a single file.

    Raises:
        BackupError: If the file does not exist or cannot be read
    """
    try:
        content = read_text(path)
    except OSError as e:
        logger.error("backup.failed", path=str(path), error=str(e))
        raise BackupError(path, e.strerror or str(e)) from e

    logger.info("backup.created", path=str(path), size=len(content))
    return Backup(file_path=path, original_content=content, timestamp=time.time())


def create_backups(paths: Iterable[Path]) -> list[Backup]:
    """Snapshot several files, failing fast on the first unreadable one.

    Nothing has been written when this runs, so a failure leaves no state
    to undo.
    """
    return [create_backup(path) for path in paths]


def restore_backup(backup: Backup) -> None:
    """Write a snapshot's content back verbatim."""
    atomic_write_text(backup.file_path, backup.original_content)
    logger.info("backup.restored", path=str(backup.file_path))


def restore_backups(backups: Iterable[Backup]) -> None:
    """Restore every snapshot, attempting all of them even if some fail.

    Raises:
        RestoreError: Listing every file that could not be restored
    """
    failures: list[tuple[Path, str]] = []

    for backup in backups:
        try:
            restore_backup(backup)
        except OSError as e:
            logger.error("backup.restore_failed", path=str(backup.file_path), error=str(e))
            failures.append((backup.file_path, str(e)))

    if failures:
        raise RestoreError(failures)
