"""Tests for global-env manifest sync."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stackctl.env.manifest import render_manifest, sync_global_env_manifest
from stackctl.errors import ManifestError


class TestRenderManifest:
    """Tests for render_manifest."""

    def test_replaces_global_env(self) -> None:
        text = json.dumps({"tasks": {}, "globalEnv": ["B", "OLD"]})
        rendered, result = render_manifest(text, ["C", "A", "B", "A"])

        data = json.loads(rendered)
        assert data["globalEnv"] == ["A", "B", "C"]
        assert data["tasks"] == {}
        assert result.added == {"A", "C"}
        assert result.removed == {"OLD"}
        assert result.changed

    def test_format(self) -> None:
        rendered, _ = render_manifest('{"globalEnv": []}', ["A"])
        assert rendered == '{\n  "globalEnv": [\n    "A"\n  ]\n}\n'

    def test_key_created_when_absent(self) -> None:
        rendered, result = render_manifest("{}", ["A"])
        assert json.loads(rendered) == {"globalEnv": ["A"]}
        assert result.added == {"A"}

    def test_unchanged(self) -> None:
        _, result = render_manifest('{"globalEnv": ["A"]}', ["A"])
        assert not result.changed

    @pytest.mark.parametrize("text", ["not json", "[1, 2]"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(ManifestError):
            render_manifest(text, ["A"])


class TestSyncGlobalEnvManifest:
    """Tests for sync_global_env_manifest."""

    def test_sync_from_schema(self, monorepo: Path) -> None:
        schema = monorepo / "packages/platform/src/server.ts"
        manifest = monorepo / "turbo.json"

        result = sync_global_env_manifest(schema, manifest)

        data = json.loads(manifest.read_text())
        assert data["globalEnv"] == [
            "BETTER_AUTH_SECRET",
            "BETTER_AUTH_URL",
            "DATABASE_URL",
            "DIRECT_URL",
            "NODE_ENV",
            "STRIPE_SECRET_KEY",
        ]
        assert result.removed == {"OLD_VAR"}
        assert data["tasks"] == {"build": {"dependsOn": ["^build"]}}

    def test_missing_manifest(self, monorepo: Path) -> None:
        with pytest.raises(ManifestError):
            sync_global_env_manifest(
                monorepo / "packages/platform/src/server.ts", monorepo / "nope.json"
            )
