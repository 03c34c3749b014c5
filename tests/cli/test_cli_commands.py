"""Tests for the stackctl CLI commands.

Verifies that:
1. Every command produces valid --help output
2. Bad arguments fail cleanly with a usage error
3. Commands run against the configured repo root
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

import pytest
from click.testing import CliRunner

from stackctl.cli.main import cli
from stackctl.config import StackctlSettings
from stackctl.system.exec import CommandResult


@pytest.fixture
def bound(monkeypatch: pytest.MonkeyPatch, repo_settings: StackctlSettings, commands):
    """Point the CLI at the fake monorepo with git and subprocesses faked."""

    def not_a_repo(args: Sequence[str], cwd: Path | None = None) -> CommandResult:
        return CommandResult(128, "", "fatal: not a git repository")

    monkeypatch.setattr("stackctl.config.settings", repo_settings)
    monkeypatch.setattr("stackctl.safety.git.run_capture", not_a_repo)
    monkeypatch.setattr("shutil.which", lambda command: f"/usr/bin/{command}")
    monkeypatch.setattr("stackctl.switch.steps.run_streaming", commands)
    return repo_settings


class TestHelp:
    """Tests for --help and --version output."""

    def test_top_level_help(self) -> None:
        """Test stackctl --help lists every command."""
        result = CliRunner().invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ["db-switch", "env-config", "env-links"]:
            assert command in result.output, f"Missing command: {command}"

    def test_version(self) -> None:
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "stackctl" in result.output
        assert "0.1.0" in result.output

    @pytest.mark.parametrize("command", ["db-switch", "env-config", "env-links"])
    def test_command_help(self, command: str) -> None:
        result = CliRunner().invoke(cli, [command, "--help"])
        assert result.exit_code == 0
        assert "Usage:" in result.output

    def test_db_switch_help_lists_providers(self) -> None:
        result = CliRunner().invoke(cli, ["db-switch", "--help"])
        for provider in ["sqlite", "prisma-postgres", "postgres", "turso", "supabase", "neon"]:
            assert provider in result.output


class TestDbSwitchCommand:
    """Tests for stackctl db-switch."""

    def test_invalid_provider(self) -> None:
        """Test an unknown provider is a usage error, not a traceback."""
        result = CliRunner().invoke(cli, ["db-switch", "--provider", "mongodb"])

        assert result.exit_code == 2
        assert "Traceback" not in result.output

    def test_invalid_local_option(self) -> None:
        result = CliRunner().invoke(cli, ["db-switch", "--local", "cloud"])
        assert result.exit_code == 2

    def test_dry_run(self, bound: StackctlSettings, monorepo: Path) -> None:
        before = (monorepo / "packages/db/src/client.ts").read_text()

        result = CliRunner().invoke(cli, ["db-switch", "--provider", "postgres", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "=== Preview Changes ===" in result.output
        assert "File: packages/db/docker-compose.yml" in result.output
        assert "Dry run mode - no changes applied" in result.output
        assert (monorepo / "packages/db/src/client.ts").read_text() == before

    def test_yes_runs_to_completion(self, bound: StackctlSettings, monorepo: Path, commands) -> None:
        result = CliRunner().invoke(cli, ["db-switch", "--provider", "sqlite", "--yes"])

        assert result.exit_code == 0, result.output
        assert "Database provider switch complete!" in result.output
        assert (monorepo / "apps/web/.env").is_symlink()
        assert ["pnpm", "install"] in commands.calls

    def test_declined_confirmation(self, bound: StackctlSettings, monorepo: Path) -> None:
        before = (monorepo / ".env").read_text()

        result = CliRunner().invoke(cli, ["db-switch", "--provider", "sqlite"], input="n\n")

        assert result.exit_code == 0
        assert "Operation cancelled by user" in result.output
        assert (monorepo / ".env").read_text() == before

    def test_failure_is_reported_cleanly(
        self, bound: StackctlSettings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("shutil.which", lambda command: None)

        result = CliRunner().invoke(cli, ["db-switch", "--provider", "postgres", "--yes"])

        assert result.exit_code == 1
        assert "Missing required system dependencies" in result.output
        assert "Traceback" not in result.output


class TestEnvConfigCommand:
    """Tests for stackctl env-config."""

    def test_exit_immediately(self, bound: StackctlSettings) -> None:
        result = CliRunner().invoke(cli, ["env-config"], input="6\n")

        assert result.exit_code == 0, result.output
        assert "Current environment variables:" in result.output
        assert "BETTER_AUTH_SECRET" in result.output

    def test_add_and_apply(self, bound: StackctlSettings, monorepo: Path) -> None:
        # add, name, String type, not optional, no comment, apply, confirm
        keys = ["2", "WEBHOOK_SECRET", "1", "n", "n", "5", "y"]

        result = CliRunner().invoke(cli, ["env-config"], input="\n".join(keys) + "\n")

        assert result.exit_code == 0, result.output
        assert "WEBHOOK_SECRET: z.string()," in (monorepo / "packages/platform/src/server.ts").read_text()
        turbo = json.loads((monorepo / "turbo.json").read_text())
        assert "WEBHOOK_SECRET" in turbo["globalEnv"]

    def test_missing_schema(self, bound: StackctlSettings, monorepo: Path) -> None:
        (monorepo / "packages/platform/src/server.ts").unlink()

        result = CliRunner().invoke(cli, ["env-config"])

        assert result.exit_code == 1
        assert "File not found" in result.output


class TestEnvLinksCommand:
    """Tests for stackctl env-links."""

    def test_non_interactive(self, bound: StackctlSettings, monorepo: Path) -> None:
        result = CliRunner().invoke(
            cli, ["env-links", "--source", ".env", "--targets", "apps/web, packages/db/"]
        )

        assert result.exit_code == 0, result.output
        assert (monorepo / "apps/web/.env").is_symlink()
        assert (monorepo / "packages/db/.env").is_symlink()
        assert "Create these symlinks?" not in result.output

    def test_invalid_target(self, bound: StackctlSettings) -> None:
        result = CliRunner().invoke(
            cli, ["env-links", "--source", ".env", "--targets", "apps/mobile"]
        )

        assert result.exit_code == 1
        assert "Invalid target packages: apps/mobile" in result.output

    def test_remove(self, bound: StackctlSettings, monorepo: Path) -> None:
        runner = CliRunner()
        runner.invoke(cli, ["env-links", "--source", ".env", "--targets", "apps/web"])

        result = runner.invoke(cli, ["env-links", "--remove", "--targets", "apps/web"])

        assert result.exit_code == 0, result.output
        assert not (monorepo / "apps/web/.env").exists()
        assert (monorepo / ".env").exists()

    def test_remove_requires_targets(self, bound: StackctlSettings) -> None:
        result = CliRunner().invoke(cli, ["env-links", "--remove"])
        assert result.exit_code == 2
