"""Candidate file contents for a switch and their all-or-nothing write.

Planning only reads files. Applying snapshots every existing target first,
then writes; if anything goes wrong before the last write lands (including
Ctrl-C), every snapshot is restored and files the run created are deleted.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from stackctl.config import ProjectPaths, local_sqlite_path
from stackctl.diff import generate_diff
from stackctl.env.dotenv import generate_env
from stackctl.env.manifest import render_manifest
from stackctl.env.schema import extract_var_names, parse_env_schema, update_for_provider
from stackctl.errors import PatchError, RestoreError
from stackctl.fileio import atomic_write_text, read_text, read_text_or_empty
from stackctl.providers import LocalDevOption, ProviderDefinition
from stackctl.safety.backup import Backup, create_backups, restore_backups
from stackctl.schema.patch import (
    patch_auth_adapter,
    patch_package_scripts,
    patch_schema_for_provider,
    render_readme,
)

logger = structlog.get_logger(__name__)


@dataclass
class PlannedChange:
    """Proposed new content for one file."""

    path: Path
    label: str
    new_content: str
    diff: str


@dataclass
class AppliedChanges:
    """What a successful write touched, kept so it can still be undone."""

    written: list[Path] = field(default_factory=list)
    backups: list[Backup] = field(default_factory=list)
    created: list[Path] = field(default_factory=list)

    def rollback(self) -> None:
        """Restore every snapshot and delete files the write created.

        Raises:
            RestoreError: Listing every file that could not be put back
        """
        _rollback(self.backups, self.created)


def _read_required(path: Path, paths: ProjectPaths) -> str:
    try:
        return read_text(path)
    except FileNotFoundError as e:
        raise PatchError(f"Required file not found: {paths.relative(path)}") from e


def plan_changes(
    provider: ProviderDefinition,
    option: LocalDevOption,
    env_vars: Mapping[str, str],
    paths: ProjectPaths,
    generated_by: str = "stackctl",
    sqlite_path: Path | None = None,
) -> list[PlannedChange]:
    """Compute the new content and diff of every file a switch rewrites.

    Files whose content would not change are left out. sqlite_path defaults
    to the XDG location and only shows up in the generated README.

    Raises:
        PatchError: If a file that must be patched is missing or malformed
        SchemaParseError: If the env schema server block cannot be located
        ManifestError: If the global-env manifest is not a JSON object
    """
    env_schema = update_for_provider(_read_required(paths.env_schema, paths), provider)
    env_content = generate_env(
        parse_env_schema(env_schema),
        read_text_or_empty(paths.env_file),
        env_vars,
        generated_by=generated_by,
    )
    manifest, _ = render_manifest(
        _read_required(paths.global_env_manifest, paths), extract_var_names(env_schema)
    )

    candidates: list[tuple[Path, str]] = [
        (paths.db_client, provider.templates.client_ts),
        (paths.db_migration_config, provider.templates.prisma_config_ts),
        (
            paths.auth_adapter,
            patch_auth_adapter(
                _read_required(paths.auth_adapter, paths), provider.auth_adapter_provider
            ),
        ),
        (
            paths.db_package_json,
            patch_package_scripts(_read_required(paths.db_package_json, paths), provider, option),
        ),
        (paths.env_file, env_content),
        (
            paths.db_schema,
            patch_schema_for_provider(
                _read_required(paths.db_schema, paths), provider.data_model_provider
            ),
        ),
        (paths.db_readme, render_readme(provider, option, sqlite_path or local_sqlite_path())),
    ]
    if provider.templates.docker_compose_yml is not None:
        candidates.append((paths.db_compose, provider.templates.docker_compose_yml))
    candidates.append((paths.env_schema, env_schema))
    candidates.append((paths.global_env_manifest, manifest))

    changes = []
    for path, new_content in candidates:
        label = paths.relative(path)
        diff = generate_diff(read_text_or_empty(path), new_content, label)
        if diff:
            changes.append(PlannedChange(path=path, label=label, new_content=new_content, diff=diff))

    logger.info("switch.planned", provider=provider.id, files=[c.label for c in changes])
    return changes


def _rollback(backups: Sequence[Backup], created: Sequence[Path]) -> None:
    failures: list[tuple[Path, str]] = []
    try:
        restore_backups(backups)
    except RestoreError as e:
        failures.extend(e.failures)

    for path in created:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            failures.append((path, str(e)))

    if failures:
        raise RestoreError(failures)
    logger.info("switch.rolled_back", restored=len(backups), deleted=len(created))


def apply_changes(changes: Sequence[PlannedChange]) -> AppliedChanges:
    """Write every planned change, or none of them.

    Raises:
        BackupError: If a snapshot cannot be taken (nothing written yet)
        RestoreError: If a failed write could not be fully rolled back
        OSError: The write failure, after a complete rollback
    """
    existing = [c.path for c in changes if c.path.exists()]
    created = [c.path for c in changes if not c.path.exists()]
    applied = AppliedChanges(backups=create_backups(existing), created=created)

    try:
        for change in changes:
            atomic_write_text(change.path, change.new_content)
            applied.written.append(change.path)
    except BaseException as exc:
        logger.error("switch.write_failed", error=str(exc) or type(exc).__name__)
        try:
            applied.rollback()
        except RestoreError as restore_error:
            raise restore_error from exc
        raise

    logger.info("switch.applied", files=len(applied.written))
    return applied
