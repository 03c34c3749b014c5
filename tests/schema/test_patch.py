"""Tests for data-model schema and source patching."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stackctl.errors import PatchError
from stackctl.providers import require_local_dev_option, require_provider
from stackctl.schema.patch import (
    ensure_generator_compat,
    patch_auth_adapter,
    patch_package_scripts,
    patch_schema_for_provider,
    remove_deprecated_url_field,
    render_readme,
    update_datasource_provider,
)

SCHEMA = """\
generator client {
  provider = "prisma-client-js"
}

datasource db {
  provider  = "postgresql"
  url       = env("DATABASE_URL")
  directUrl = env("DIRECT_URL")
}

model Link {
  id  String @id
  url String
}
"""


class TestDatasource:
    """Tests for update_datasource_provider."""

    def test_only_literal_changes(self) -> None:
        patched = update_datasource_provider(SCHEMA, "sqlite")
        assert 'provider  = "sqlite"' in patched
        assert 'provider = "prisma-client-js"' in patched
        assert patched.replace('"sqlite"', '"postgresql"') == SCHEMA

    def test_no_datasource(self) -> None:
        with pytest.raises(PatchError, match="found 0"):
            update_datasource_provider("model A {\n  id Int @id\n}\n", "sqlite")

    def test_two_datasources(self) -> None:
        source = SCHEMA + '\ndatasource other {\n  provider = "sqlite"\n}\n'
        with pytest.raises(PatchError, match="found 2"):
            update_datasource_provider(source, "sqlite")

    def test_missing_provider_field(self) -> None:
        with pytest.raises(PatchError, match="provider"):
            update_datasource_provider('datasource db {\n  url = "x"\n}\n', "sqlite")


class TestGeneratorAndUrls:
    """Tests for ensure_generator_compat and remove_deprecated_url_field."""

    def test_generator_idempotent(self) -> None:
        once = ensure_generator_compat(SCHEMA)
        assert 'provider = "prisma-client"' in once
        assert ensure_generator_compat(once) == once

    def test_url_fields_removed_only_in_datasource(self) -> None:
        stripped = remove_deprecated_url_field(SCHEMA)
        assert "env(\"DATABASE_URL\")" not in stripped
        assert "directUrl" not in stripped
        assert "  url String\n" in stripped
        assert remove_deprecated_url_field(stripped) == stripped

    def test_composed(self) -> None:
        patched = patch_schema_for_provider(SCHEMA, "sqlite")
        assert patch_schema_for_provider(patched, "sqlite") == patched
        assert 'datasource db {\n  provider  = "sqlite"\n}' in patched


class TestAuthAdapter:
    """Tests for patch_auth_adapter."""

    def test_replaces_provider_literal(self) -> None:
        source = "prismaAdapter(prisma, {\n  provider: 'postgresql',\n})\n"
        assert 'provider: "sqlite"' in patch_auth_adapter(source, "sqlite")

    def test_no_match_unchanged(self) -> None:
        source = "export const auth = betterAuth({})\n"
        assert patch_auth_adapter(source, "sqlite") == source


class TestPackageScripts:
    """Tests for patch_package_scripts."""

    def test_managed_keys_rewritten_user_scripts_kept(self) -> None:
        provider = require_provider("sqlite")
        option = require_local_dev_option(provider, "local-file")
        original = json.dumps(
            {
                "name": "@_/infra.db",
                "scripts": {
                    "build": "tsc",
                    "db:start": "docker compose up -d",
                    "db:seed": "tsx seed.ts",
                },
            }
        )

        data = json.loads(patch_package_scripts(original, provider, option))
        scripts = data["scripts"]

        assert list(scripts)[:3] == ["build", "db:start", "db:seed"]
        assert scripts["db:start"] == "true"
        assert scripts["db:seed"] == "tsx seed.ts"
        assert scripts["db:migrate:deploy"] == "prisma migrate deploy"
        assert scripts["dev"] == "prisma studio"
        assert data["name"] == "@_/infra.db"

    def test_turso_deploy_script(self) -> None:
        provider = require_provider("turso")
        option = provider.local_dev_options[0]
        scripts = json.loads(patch_package_scripts("{}", provider, option))["scripts"]
        assert "turso db shell" in scripts["db:migrate:deploy"]

    def test_invalid_json(self) -> None:
        provider = require_provider("sqlite")
        with pytest.raises(PatchError):
            patch_package_scripts("{", provider, provider.local_dev_options[0])


class TestReadme:
    """Tests for render_readme."""

    def test_container_lists_start_stop(self, tmp_path: Path) -> None:
        provider = require_provider("postgres")
        readme = render_readme(provider, provider.local_dev_options[0], tmp_path / "dev.db")
        assert "PostgreSQL (Unmanaged)" in readme
        assert "pnpm db:start" in readme
        assert "| `DATABASE_URL` |" in readme

    def test_local_file_omits_start_stop(self, tmp_path: Path) -> None:
        provider = require_provider("sqlite")
        readme = render_readme(provider, provider.local_dev_options[0], tmp_path / "dev.db")
        assert "pnpm db:start" not in readme
        assert "XDG file (recommended)" in readme

    @pytest.mark.parametrize("provider_id", ["sqlite", "turso"])
    def test_sqlite_path_comes_from_the_run(self, provider_id: str) -> None:
        provider = require_provider(provider_id)
        db_file = Path("/srv/run-specific/dev.db")
        readme = render_readme(provider, provider.local_dev_options[0], db_file)
        assert f"file:{db_file}" in readme
        assert "{sqlite_path}" not in readme
        assert str(db_file) not in provider.local_dev_options[0].description
