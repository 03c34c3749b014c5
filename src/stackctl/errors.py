"""Exceptions for stackctl operations."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stackctl.system.dependencies import SystemDependency


class StackctlError(Exception):
    """Base exception for stackctl operations."""

    pass


class GitError(StackctlError):
    """Raised when git status cannot be determined inside a repository."""

    pass


class DirtyWorkingTreeError(StackctlError):
    """Raised when protected directories contain uncommitted changes."""

    def __init__(self, paths: Sequence[str]) -> None:
        self.paths = list(paths)
        listing = "\n".join(f"  - {p}" for p in self.paths)
        super().__init__(
            "The following files have uncommitted changes:\n"
            f"{listing}\n\n"
            "Please commit all changes in the affected packages before proceeding."
        )


class MissingDependencyError(StackctlError):
    """Raised when required system commands are not on PATH."""

    def __init__(self, missing: Sequence[SystemDependency]) -> None:
        self.missing = list(missing)
        lines = []
        for dep in self.missing:
            lines.append(f"  - {dep.name} ({dep.command})")
            lines.append(f"      Why: {dep.reason}")
            lines.append(f"      Install: {dep.install_hint}")
        super().__init__(
            "Missing required system dependencies:\n"
            + "\n".join(lines)
            + "\n\nPlease install them and try again."
        )


class ProviderNotFoundError(StackctlError):
    """Raised when a provider id is not in the registry."""

    def __init__(self, provider_id: str, known: Sequence[str] = ()) -> None:
        self.provider_id = provider_id
        message = f"Invalid provider: {provider_id}"
        if known:
            message += f" (choose from: {', '.join(known)})"
        super().__init__(message)


class LocalDevOptionError(StackctlError):
    """Raised when a provider has no local-dev option of the requested type."""

    def __init__(self, provider_id: str, option: str, known: Sequence[str] = ()) -> None:
        self.provider_id = provider_id
        self.option = option
        message = f"Invalid local dev option for {provider_id}: {option}"
        if known:
            message += f" (choose from: {', '.join(known)})"
        super().__init__(message)


class SchemaParseError(StackctlError):
    """Raised when the env schema declaration block cannot be located."""

    pass


class PatchError(StackctlError):
    """Raised when a source file lacks the structure a patch requires."""

    pass


class BackupError(StackctlError):
    """Raised when a file slated for modification cannot be snapshotted."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Failed to create backup for {path}: {reason}")


class RestoreError(StackctlError):
    """Raised after a rollback in which one or more files failed to restore."""

    def __init__(self, failures: Sequence[tuple[Path, str]]) -> None:
        self.failures = list(failures)
        listing = "\n".join(f"  - {path}: {reason}" for path, reason in self.failures)
        super().__init__(f"Failed to restore {len(self.failures)} files:\n{listing}")


class DependencyInstallError(StackctlError):
    """Raised when a package manager step required for the switch fails."""

    pass


class ManifestError(StackctlError):
    """Raised when the global-env manifest cannot be read or parsed."""

    pass


class SymlinkError(StackctlError):
    """Raised when .env symlinks cannot be created."""

    pass


class SwitchCancelled(StackctlError):
    """Raised when the operator declines a confirmation prompt."""

    pass
