"""Text patches for the data-model schema and the files that depend on it.

Every function is a pure string transform that touches only the fragment it
is responsible for, so the diffs shown before a switch stay reviewable.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

import structlog

from stackctl.errors import PatchError
from stackctl.fileio import dump_json
from stackctl.providers.base import (
    FIXED_SCRIPTS,
    MANAGED_SCRIPT_KEYS,
    NOOP_SCRIPT,
    SQLITE_PATH_TOKEN,
    DataModelProvider,
    LocalDevOption,
    ProviderDefinition,
)

logger = structlog.get_logger(__name__)

_DATASOURCE_BLOCK = re.compile(r"datasource\s+\w+\s*\{[^}]*\}")
_GENERATOR_BLOCK = re.compile(r"generator\s+\w+\s*\{[^}]*\}")
_PROVIDER_FIELD = re.compile(r'(provider\s*=\s*)"[^"]*"')
_LEGACY_GENERATOR = re.compile(r'(provider\s*=\s*)"prisma-client-js"')
_URL_FIELD = re.compile(r"^[ \t]*(?:url|directUrl)\s*=.*(?:\r?\n|$)", re.MULTILINE)
_AUTH_PROVIDER = re.compile(r"""provider:\s*["'](?:sqlite|postgresql)["']""")

LEGACY_CLIENT_GENERATOR = "prisma-client-js"
CLIENT_GENERATOR = "prisma-client"


def _single_datasource(source: str) -> re.Match[str]:
    blocks = list(_DATASOURCE_BLOCK.finditer(source))
    if len(blocks) != 1:
        raise PatchError(
            f"Expected exactly one datasource block in schema, found {len(blocks)}"
        )
    return blocks[0]


def update_datasource_provider(source: str, provider: DataModelProvider) -> str:
    """Set the datasource's provider literal.

    Raises:
        PatchError: Unless there is exactly one datasource block with a provider field
    """
    block = _single_datasource(source)
    text = block.group(0)
    if not _PROVIDER_FIELD.search(text):
        raise PatchError("Could not find datasource provider in schema")

    patched = _PROVIDER_FIELD.sub(lambda m: f'{m.group(1)}"{provider}"', text, count=1)
    return source[: block.start()] + patched + source[block.end() :]


def ensure_generator_compat(source: str) -> str:
    """Switch generator blocks from the legacy client generator to the current one."""

    def patch_block(match: re.Match[str]) -> str:
        return _LEGACY_GENERATOR.sub(lambda m: f'{m.group(1)}"{CLIENT_GENERATOR}"', match.group(0))

    patched = _GENERATOR_BLOCK.sub(patch_block, source)
    if patched != source:
        logger.info("schema.generator_updated", generator=CLIENT_GENERATOR)
    return patched


def remove_deprecated_url_field(source: str) -> str:
    """Drop ``url``/``directUrl`` lines from the datasource block.

    Connection strings live in the migration config instead.
    """
    return _DATASOURCE_BLOCK.sub(lambda m: _URL_FIELD.sub("", m.group(0)), source)


def patch_schema_for_provider(source: str, provider: DataModelProvider) -> str:
    """Apply every data-model patch a provider switch needs."""
    patched = update_datasource_provider(source, provider)
    patched = ensure_generator_compat(patched)
    return remove_deprecated_url_field(patched)


def patch_auth_adapter(source: str, provider: DataModelProvider) -> str:
    """Rewrite only the auth adapter's ``provider: "..."`` literal.

    Sources without such a line come back unchanged.
    """
    if not _AUTH_PROVIDER.search(source):
        logger.warning("auth_adapter.provider_not_found")
        return source
    return _AUTH_PROVIDER.sub(f'provider: "{provider}"', source)


def managed_scripts(provider: ProviderDefinition, option: LocalDevOption) -> dict[str, str]:
    """Full set of scripts the db package should carry for this selection."""
    return {
        **FIXED_SCRIPTS,
        "db:migrate:deploy": provider.migrate_deploy_script,
        **option.package_scripts,
    }


def patch_package_scripts(
    package_json: str, provider: ProviderDefinition, option: LocalDevOption
) -> str:
    """Rewrite the managed entries of the manifest's ``scripts`` object.

    Managed scripts keep their position, stale managed keys are dropped, new
    ones are appended, and user scripts are left untouched.

    Raises:
        PatchError: If the manifest is not a JSON object
    """
    try:
        data = json.loads(package_json)
    except json.JSONDecodeError as e:
        raise PatchError(f"Invalid JSON in package manifest: {e}") from e
    if not isinstance(data, dict):
        raise PatchError("Package manifest must be a JSON object")

    wanted = managed_scripts(provider, option)
    current = data.get("scripts") or {}
    scripts: dict[str, str] = {}

    for key, command in current.items():
        if key not in MANAGED_SCRIPT_KEYS:
            scripts[key] = command
        elif key in wanted:
            scripts[key] = wanted[key]

    for key, command in wanted.items():
        scripts.setdefault(key, command)

    data["scripts"] = scripts
    return dump_json(data)


def render_readme(
    provider: ProviderDefinition, option: LocalDevOption, sqlite_path: Path
) -> str:
    """Build the database package README for a provider and local-dev option.

    sqlite_path is the local SQLite file this run writes into `.env`.
    """
    env_rows = "\n".join(
        f"| `{v.name}` | {v.description} | {'Yes' if v.required else 'No'} |"
        for v in provider.production_env_vars
    )

    commands = [
        "pnpm db:generate    # Regenerate Prisma client",
        "pnpm db:migrate:dev # Run migrations",
        "pnpm db:studio      # Open Prisma Studio",
    ]
    if option.package_scripts.get("db:start", NOOP_SCRIPT) != NOOP_SCRIPT:
        commands.append("pnpm db:start       # Start the local database")
        commands.append("pnpm db:stop        # Stop the local database")
    command_block = "\n".join(commands)
    quickstart = provider.readme.quickstart.replace(SQLITE_PATH_TOKEN, str(sqlite_path))
    troubleshooting = provider.readme.troubleshooting.replace(SQLITE_PATH_TOKEN, str(sqlite_path))

    return f"""\
# Database Package (@_/infra.db)

This package uses **{provider.display_name}** with Prisma 7.

{quickstart}

## Environment Variables

| Variable | Description | Required |
|----------|-------------|----------|
{env_rows}

## Local Development

**Selected method:** {option.label}

{option.description}

## Commands

```bash
{command_block}
```

## Official Documentation

- [Prisma + {provider.display_name}]({provider.docs.prisma})
- [{provider.display_name} Docs]({provider.docs.provider})

{troubleshooting}
"""
