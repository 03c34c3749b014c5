"""Tests for switch planning and the all-or-nothing write."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stackctl.config import ProjectPaths
from stackctl.errors import PatchError
from stackctl.providers import require_provider
from stackctl.switch.plan import apply_changes, plan_changes


def snapshot(root: Path) -> dict[str, str]:
    """Every regular file under root, keyed by relative path."""
    return {
        p.relative_to(root).as_posix(): p.read_text(encoding="utf-8")
        for p in sorted(root.rglob("*"))
        if p.is_file() and not p.is_symlink()
    }


def plan_for(provider_id: str, paths: ProjectPaths, env: dict[str, str] | None = None):
    provider = require_provider(provider_id)
    return plan_changes(provider, provider.local_dev_options[0], env or {}, paths)


class TestPlanChanges:
    """Tests for plan_changes."""

    def test_postgres_plan_order(self, paths: ProjectPaths) -> None:
        labels = [c.label for c in plan_for("postgres", paths, {"DATABASE_URL": "postgresql://x"})]
        assert labels == [
            "packages/db/src/client.ts",
            "packages/db/prisma.config.ts",
            "packages/db/package.json",
            ".env",
            "packages/db/prisma/schema.prisma",
            "packages/db/README.md",
            "packages/db/docker-compose.yml",
            "packages/platform/src/server.ts",
            "turbo.json",
        ]

    def test_unchanged_files_are_dropped(self, paths: ProjectPaths) -> None:
        labels = [c.label for c in plan_for("postgres", paths)]
        # auth adapter already says postgresql
        assert "packages/features/src/auth/auth.ts" not in labels

    def test_sqlite_patches_auth_and_env_schema(self, paths: ProjectPaths) -> None:
        changes = {c.label: c for c in plan_for("sqlite", paths, {"DATABASE_URL": "file:/tmp/dev.db"})}

        assert 'provider: "sqlite"' in changes["packages/features/src/auth/auth.ts"].new_content
        assert "packages/db/docker-compose.yml" not in changes

        server = changes["packages/platform/src/server.ts"].new_content
        assert "DATABASE_URL: z.string()" in server
        assert "DIRECT_URL" not in server

        turbo = json.loads(changes["turbo.json"].new_content)
        assert turbo["globalEnv"] == [
            "BETTER_AUTH_SECRET",
            "BETTER_AUTH_URL",
            "DATABASE_URL",
            "NODE_ENV",
            "STRIPE_SECRET_KEY",
        ]
        assert "DATABASE_URL=file:/tmp/dev.db" in changes[".env"].new_content

    def test_existing_secret_is_kept(self, paths: ProjectPaths) -> None:
        changes = {c.label: c for c in plan_for("sqlite", paths)}
        assert "existing-secret-value-that-is-long-enough-123" in changes[".env"].new_content

    def test_planning_writes_nothing(self, monorepo: Path, paths: ProjectPaths) -> None:
        before = snapshot(monorepo)
        plan_for("turso", paths)
        assert snapshot(monorepo) == before

    def test_missing_required_file(self, paths: ProjectPaths) -> None:
        paths.auth_adapter.unlink()
        with pytest.raises(PatchError, match="packages/features/src/auth/auth.ts"):
            plan_for("sqlite", paths)


class TestApplyChanges:
    """Tests for apply_changes and rollback."""

    def test_writes_everything(self, paths: ProjectPaths) -> None:
        changes = plan_for("postgres", paths)
        applied = apply_changes(changes)

        assert applied.written == [c.path for c in changes]
        assert applied.created == [paths.db_compose]
        for change in changes:
            assert change.path.read_text(encoding="utf-8") == change.new_content

    def test_write_failure_restores_and_deletes_created(
        self, monorepo: Path, paths: ProjectPaths, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from stackctl.fileio import atomic_write_text

        before = snapshot(monorepo)
        changes = plan_for("postgres", paths)

        def failing_write(path: Path, text: str) -> None:
            if path.name == "turbo.json":
                raise OSError("disk full")
            atomic_write_text(path, text)

        monkeypatch.setattr("stackctl.switch.plan.atomic_write_text", failing_write)

        with pytest.raises(OSError, match="disk full"):
            apply_changes(changes)

        assert not paths.db_compose.exists()
        assert snapshot(monorepo) == before

    def test_interrupt_rolls_back(
        self, monorepo: Path, paths: ProjectPaths, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from stackctl.fileio import atomic_write_text

        before = snapshot(monorepo)
        changes = plan_for("sqlite", paths)
        calls = []

        def interrupted_write(path: Path, text: str) -> None:
            calls.append(path)
            if len(calls) == 3:
                raise KeyboardInterrupt
            atomic_write_text(path, text)

        monkeypatch.setattr("stackctl.switch.plan.atomic_write_text", interrupted_write)

        with pytest.raises(KeyboardInterrupt):
            apply_changes(changes)

        assert snapshot(monorepo) == before

    def test_rollback_after_success(self, monorepo: Path, paths: ProjectPaths) -> None:
        before = snapshot(monorepo)
        applied = apply_changes(plan_for("postgres", paths))

        applied.rollback()

        assert snapshot(monorepo) == before

    def test_crlf_survives_rollback(self, paths: ProjectPaths) -> None:
        original = paths.auth_adapter.read_text(encoding="utf-8").replace("\n", "\r\n")
        paths.auth_adapter.write_bytes(original.encode("utf-8"))

        applied = apply_changes(plan_for("sqlite", paths))
        applied.rollback()

        assert paths.auth_adapter.read_bytes() == original.encode("utf-8")
