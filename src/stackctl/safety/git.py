"""Git working tree safety checks.

A provider switch rewrites several files across packages. When the repo is
under git, uncommitted changes in those packages must be committed first so
git, not only the in-memory backups, can undo the switch.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from stackctl.errors import DirtyWorkingTreeError, GitError
from stackctl.system.exec import run_capture

logger = structlog.get_logger(__name__)


@dataclass
class ChangedFiles:
    """Paths git reports as changed, relative to the git top level."""

    is_git_repo: bool
    toplevel: Path | None = None
    paths: set[str] = field(default_factory=set)


@dataclass
class GitStatusResult:
    """Outcome of checking a set of files or directories against git status."""

    is_git_repo: bool
    uncommitted_files: list[str] = field(default_factory=list)

    @property
    def all_committed(self) -> bool:
        return self.is_git_repo and not self.uncommitted_files


def parse_porcelain(output: str) -> set[str]:
    """Parse ``git status --porcelain=v1 -z`` output into changed paths.

    Every record counts: modified, staged, untracked, deleted and conflicted
    entries. Renames and copies contribute their target path only.
    """
    paths: set[str] = set()
    records = output.split("\0")
    i = 0
    while i < len(records):
        record = records[i]
        i += 1
        if len(record) < 4:
            continue
        status, path = record[:2], record[3:]
        paths.add(path)
        if "R" in status or "C" in status:
            # -z puts the source path in the following record
            i += 1
    return paths


def get_changed_files(cwd: Path) -> ChangedFiles:
    """Collect changed paths for the repository containing ``cwd``.

    Raises:
        GitError: If git status fails inside a repository
    """
    top = run_capture(["git", "rev-parse", "--show-toplevel"], cwd=cwd)
    if not top.ok:
        return ChangedFiles(is_git_repo=False)

    toplevel = Path(top.stdout.strip()).resolve()
    status = run_capture(
        ["git", "status", "--porcelain=v1", "-z", "--untracked-files=all"],
        cwd=toplevel,
    )
    if not status.ok:
        raise GitError(f"Git status check failed: {status.stderr.strip()}")

    return ChangedFiles(
        is_git_repo=True,
        toplevel=toplevel,
        paths=parse_porcelain(status.stdout),
    )


def _repo_relative(path: Path, toplevel: Path) -> str | None:
    try:
        return path.resolve().relative_to(toplevel).as_posix()
    except ValueError:
        return None


def check_directories_committed(
    directories: Iterable[Path], cwd: Path
) -> GitStatusResult:
    """Find changed files that live inside any of the given directories.

    A changed path belongs to a directory when it equals the directory or
    starts with the directory followed by a separator, so ``packages/db``
    never matches ``packages/db-utils``.
    """
    changed = get_changed_files(cwd)
    if not changed.is_git_repo or changed.toplevel is None:
        logger.warning("git.not_a_repository", cwd=str(cwd))
        return GitStatusResult(is_git_repo=False)

    prefixes = [
        rel
        for rel in (_repo_relative(d, changed.toplevel) for d in directories)
        if rel is not None
    ]

    uncommitted = sorted(
        path
        for path in changed.paths
        if any(path == rel or path.startswith(rel + "/") for rel in prefixes)
    )
    return GitStatusResult(is_git_repo=True, uncommitted_files=uncommitted)


def check_files_committed(files: Iterable[Path], cwd: Path) -> GitStatusResult:
    """Find which of the given files have uncommitted changes."""
    changed = get_changed_files(cwd)
    if not changed.is_git_repo or changed.toplevel is None:
        logger.warning("git.not_a_repository", cwd=str(cwd))
        return GitStatusResult(is_git_repo=False)

    relative = (_repo_relative(f, changed.toplevel) for f in files)
    uncommitted = sorted(rel for rel in relative if rel in changed.paths)
    return GitStatusResult(is_git_repo=True, uncommitted_files=uncommitted)


def ensure_directories_committed(
    directories: Iterable[Path], cwd: Path
) -> GitStatusResult:
    """Require every file under the protected directories to be committed.

    Outside a git repository the check is skipped and the caller proceeds
    with only the backup mechanism as a safety net.

    Args:
        directories: Absolute directory paths to protect
        cwd: Directory used to locate the repository

    Returns:
        The status result (``is_git_repo`` is False when the check was skipped)

    Raises:
        DirtyWorkingTreeError: Listing every uncommitted path found
        GitError: If git status fails inside a repository
    """
    result = check_directories_committed(directories, cwd)
    if result.is_git_repo and result.uncommitted_files:
        logger.error("git.uncommitted_changes", files=result.uncommitted_files)
        raise DirtyWorkingTreeError(result.uncommitted_files)
    return result
