"""Tests for env schema parsing and patching."""

from __future__ import annotations

import pytest

from stackctl.env.schema import (
    EnvVarDefinition,
    add_vars,
    extract_var_names,
    is_valid_var_name,
    parse_env_schema,
    remove_vars,
    update_for_provider,
)
from stackctl.errors import SchemaParseError
from stackctl.providers.base import ProviderDefinition
from stackctl.providers.neon import NEON
from stackctl.providers.postgres import POSTGRES
from stackctl.providers.sqlite import SQLITE
from stackctl.providers.turso import TURSO

SOURCE = """\
export const serverEnv = createEnv({
  server: {
    // Database
    DATABASE_URL: z.string(),

    // Better Auth
    BETTER_AUTH_SECRET: z.string().min(32),
    // OLD_VAR: z.string(),
    /* DISABLED_VAR: z.string(), */
    STRIPE_SECRET_KEY: z.string().optional(),
    NODE_ENV: z
      .enum(['development', 'production', 'test'])
      .default('development'),
  },
  runtimeEnv: process.env,
})
"""


class TestExtractVarNames:
    """Tests for extract_var_names/parse_env_schema."""

    def test_sorted_and_skips_comments(self) -> None:
        assert extract_var_names(SOURCE) == [
            "BETTER_AUTH_SECRET",
            "DATABASE_URL",
            "NODE_ENV",
            "STRIPE_SECRET_KEY",
        ]

    def test_multiline_declaration(self) -> None:
        defs = {d.name: d for d in parse_env_schema(SOURCE)}
        assert defs["NODE_ENV"].validator == (
            "z.enum(['development', 'production', 'test']).default('development')"
        )
        assert not defs["NODE_ENV"].optional

    def test_optional_and_comment(self) -> None:
        defs = {d.name: d for d in parse_env_schema(SOURCE)}
        assert defs["STRIPE_SECRET_KEY"].optional
        assert defs["STRIPE_SECRET_KEY"].validator == "z.string()"
        assert defs["DATABASE_URL"].comment == "Database"

    def test_missing_block(self) -> None:
        with pytest.raises(SchemaParseError):
            extract_var_names("export const x = 1\n")


class TestAddVars:
    """Tests for add_vars."""

    def test_appends_with_separator_and_comment(self) -> None:
        updated = add_vars(
            SOURCE,
            [EnvVarDefinition("API_KEY", "z.string().min(1)", optional=True, comment="Api")],
        )
        assert "      .default('development'),\n\n    // Api\n    API_KEY: z.string().min(1).optional(),\n  }," in updated
        assert "API_KEY" in extract_var_names(updated)

    def test_duplicate_raises(self) -> None:
        with pytest.raises(ValueError, match="already exists"):
            add_vars(SOURCE, [EnvVarDefinition("DATABASE_URL", "z.string()")])

    def test_nothing_to_add(self) -> None:
        assert add_vars(SOURCE, []) == SOURCE

    def test_adds_missing_trailing_comma(self) -> None:
        source = "createEnv({\n  server: {\n    A: z.string()\n  },\n})\n"
        updated = add_vars(source, [EnvVarDefinition("B", "z.string()")])
        assert "    A: z.string(),\n\n    B: z.string(),\n  }," in updated

    def test_preserves_text_outside_block(self) -> None:
        updated = add_vars(SOURCE, [EnvVarDefinition("API_KEY", "z.string()")])
        assert updated.startswith("export const serverEnv = createEnv({\n  server: {\n")
        assert updated.endswith("  },\n  runtimeEnv: process.env,\n})\n")


class TestRemoveVars:
    """Tests for remove_vars."""

    def test_removes_declaration_and_comment(self) -> None:
        updated = remove_vars(SOURCE, ["DATABASE_URL"])
        assert "DATABASE_URL" not in updated
        assert "// Database" not in updated
        # Leading blank left behind is trimmed
        assert "  server: {\n    // Better Auth\n" in updated

    def test_removes_continuation_lines(self) -> None:
        updated = remove_vars(SOURCE, ["NODE_ENV"])
        assert ".enum(" not in updated
        assert ".default(" not in updated
        assert "STRIPE_SECRET_KEY: z.string().optional(),\n  }," in updated

    def test_unknown_name_is_noop(self) -> None:
        assert remove_vars(SOURCE, ["NOPE"]) == SOURCE

    def test_collapses_blank_runs(self) -> None:
        source = "server: {\n  A: z.string(),\n\n  B: z.string(),\n\n  C: z.string(),\n}\n"
        assert remove_vars(source, ["B"]) == "server: {\n  A: z.string(),\n\n  C: z.string(),\n}\n"

    def test_comment_goes_with_declaration_before_next_var(self) -> None:
        source = "server: {\n  // comment\n  FOO: z.string(),\n  BAR: z.string(),\n}\n"
        assert remove_vars(source, ["FOO"]) == "server: {\n  BAR: z.string(),\n}\n"


class TestUpdateForProvider:
    """Tests for update_for_provider."""

    @pytest.mark.parametrize("provider", [SQLITE, POSTGRES, TURSO, NEON])
    def test_idempotent(self, provider: ProviderDefinition) -> None:
        once = update_for_provider(SOURCE, provider)
        assert update_for_provider(once, provider) == once

    def test_swaps_database_vars(self) -> None:
        turso = update_for_provider(SOURCE, TURSO)
        names = extract_var_names(turso)
        assert {"TURSO_DATABASE_URL", "TURSO_AUTH_TOKEN", "TURSO_DB_NAME"} <= set(names)

        back = update_for_provider(turso, POSTGRES)
        names = extract_var_names(back)
        assert "TURSO_AUTH_TOKEN" not in names
        assert {"DATABASE_URL", "DIRECT_URL", "BETTER_AUTH_SECRET"} <= set(names)


class TestVarNames:
    """Tests for is_valid_var_name."""

    @pytest.mark.parametrize("name", ["API_KEY", "A", "S3_BUCKET"])
    def test_valid(self, name: str) -> None:
        assert is_valid_var_name(name)

    @pytest.mark.parametrize("name", ["api_key", "1ABC", "API-KEY", ""])
    def test_invalid(self, name: str) -> None:
        assert not is_valid_var_name(name)
