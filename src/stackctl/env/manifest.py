"""Global-env manifest synchronization.

Turborepo only passes variables listed in ``turbo.json``'s ``globalEnv`` to
tasks. The list is regenerated in full from the env schema on every sync
rather than patched, so it cannot drift.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from stackctl.env.schema import extract_var_names
from stackctl.errors import ManifestError
from stackctl.fileio import atomic_write_text, dump_json, read_text

logger = structlog.get_logger(__name__)

GLOBAL_ENV_KEY = "globalEnv"


@dataclass
class SyncResult:
    """Names added to and removed from the manifest by a sync."""

    added: set[str] = field(default_factory=set)
    removed: set[str] = field(default_factory=set)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def render_manifest(manifest_text: str, names: Iterable[str]) -> tuple[str, SyncResult]:
    """Replace the manifest's globalEnv list with the sorted names.

    Args:
        manifest_text: Current turbo.json content
        names: Authoritative variable names

    Returns:
        (new manifest text, what was added and removed)

    Raises:
        ManifestError: If the manifest is not a JSON object
    """
    try:
        data = json.loads(manifest_text)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON in global-env manifest: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError("Global-env manifest must be a JSON object")

    current = data.get(GLOBAL_ENV_KEY)
    current_names = {str(n) for n in current} if isinstance(current, list) else set()
    wanted = sorted(set(names))

    data[GLOBAL_ENV_KEY] = wanted
    result = SyncResult(
        added=set(wanted) - current_names,
        removed=current_names - set(wanted),
    )
    return dump_json(data), result


def sync_global_env_manifest(schema_path: Path, manifest_path: Path) -> SyncResult:
    """Regenerate the manifest's globalEnv from the env schema source.

    Raises:
        SchemaParseError: If the schema's server block cannot be located
        ManifestError: If the manifest cannot be read or parsed
    """
    names = extract_var_names(read_text(schema_path))
    try:
        current = read_text(manifest_path)
    except OSError as e:
        raise ManifestError(f"Failed to read {manifest_path}: {e}") from e

    rendered, result = render_manifest(current, names)
    if rendered != current:
        atomic_write_text(manifest_path, rendered)
    logger.info(
        "manifest.synced",
        path=str(manifest_path),
        added=sorted(result.added),
        removed=sorted(result.removed),
    )
    return result
