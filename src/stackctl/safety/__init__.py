"""Pre-write safety: git working tree gate and in-memory file backups."""

from stackctl.safety.backup import (
    Backup,
    create_backup,
    create_backups,
    restore_backup,
    restore_backups,
)
from stackctl.safety.git import (
    GitStatusResult,
    check_directories_committed,
    check_files_committed,
    ensure_directories_committed,
)

__all__ = [
    "Backup",
    "GitStatusResult",
    "check_directories_committed",
    "check_files_committed",
    "create_backup",
    "create_backups",
    "ensure_directories_committed",
    "restore_backup",
    "restore_backups",
]
