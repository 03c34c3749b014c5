"""Per-package .env symlinks pointing at a root env file."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import structlog

from stackctl.errors import SymlinkError

logger = structlog.get_logger(__name__)

ENV_FILE_NAME = ".env"
WORKSPACE_GLOBS = ("apps/*", "packages/*")


@dataclass
class SymlinkResult:
    """Outcome of linking or unlinking one package."""

    target: str
    success: bool
    error: str | None = None


@dataclass
class SymlinkStatus:
    """Current .env state of one package."""

    package_path: str
    exists: bool
    is_symlink: bool
    target: str | None = None
    is_valid: bool | None = None


def discover_env_files(root: Path) -> list[str]:
    """Root-level ``.env*`` files, excluding example templates."""
    return sorted(
        p.name
        for p in root.glob(".env*")
        if p.is_file() and ".example" not in p.name
    )


def discover_packages(root: Path) -> list[str]:
    """Workspace package directories (those containing a package.json)."""
    packages = []
    for pattern in WORKSPACE_GLOBS:
        for entry in root.glob(pattern):
            if entry.is_dir() and (entry / "package.json").is_file():
                packages.append(entry.relative_to(root).as_posix())
    return sorted(packages)


def create_symlinks(root: Path, source_file: str, targets: Iterable[str]) -> list[SymlinkResult]:
    """Link ``<target>/.env`` to the root env file for every target.

    Existing files or links at the destination are replaced. Links are
    relative so the repo can be moved.

    Raises:
        SymlinkError: If the source file does not exist in the repo root
    """
    source_path = root / source_file
    if not source_path.exists():
        raise SymlinkError(f"Source file {source_file} does not exist in repo root")

    results: list[SymlinkResult] = []
    for target in targets:
        target_dir = root / target
        link_path = target_dir / ENV_FILE_NAME
        try:
            if not target_dir.is_dir():
                raise FileNotFoundError(f"Directory not found: {target}")
            if link_path.is_symlink() or link_path.exists():
                link_path.unlink()
            link_path.symlink_to(os.path.relpath(source_path, target_dir))
        except OSError as e:
            logger.warning("symlinks.create_failed", target=target, error=str(e))
            results.append(SymlinkResult(target=target, success=False, error=str(e)))
            continue

        logger.info("symlinks.created", target=target, source=source_file)
        results.append(SymlinkResult(target=target, success=True))

    return results


def get_symlink_status(root: Path) -> list[SymlinkStatus]:
    """Report the .env state of every discovered package."""
    root_env = (root / ENV_FILE_NAME).resolve()
    statuses = []

    for package in discover_packages(root):
        env_path = root / package / ENV_FILE_NAME
        if env_path.is_symlink():
            target = os.readlink(env_path)
            resolved = (env_path.parent / target).resolve()
            statuses.append(
                SymlinkStatus(
                    package_path=package,
                    exists=True,
                    is_symlink=True,
                    target=target,
                    is_valid=resolved == root_env,
                )
            )
        elif env_path.exists():
            statuses.append(SymlinkStatus(package_path=package, exists=True, is_symlink=False))
        else:
            statuses.append(SymlinkStatus(package_path=package, exists=False, is_symlink=False))

    return statuses


def remove_symlinks(root: Path, targets: Iterable[str]) -> list[SymlinkResult]:
    """Delete ``<target>/.env`` for every target. Already absent counts as success."""
    results = []
    for target in targets:
        try:
            (root / target / ENV_FILE_NAME).unlink(missing_ok=True)
        except OSError as e:
            results.append(SymlinkResult(target=target, success=False, error=str(e)))
            continue
        results.append(SymlinkResult(target=target, success=True))
    return results
