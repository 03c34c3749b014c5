"""stackctl Configuration Module.

Provides centralized configuration for the settings CLI.
All settings support environment variable overrides with STACKCTL_ prefix.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

WORKSPACE_MARKER = "pnpm-workspace.yaml"


def find_repo_root(start: Path | None = None) -> Path:
    """Find the monorepo root by walking up to the pnpm workspace file.

    Args:
        start: Directory to start from (defaults to the current directory)

    Returns:
        The first ancestor containing pnpm-workspace.yaml, or ``start`` itself
    """
    origin = (start or Path.cwd()).resolve()
    for candidate in (origin, *origin.parents):
        if (candidate / WORKSPACE_MARKER).exists():
            return candidate
    return origin


def xdg_data_dir(app_name: str) -> Path:
    """XDG data directory for the app ($XDG_DATA_HOME or ~/.local/share)."""
    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        return Path(xdg_data_home) / app_name
    return Path.home() / ".local" / "share" / app_name


def local_sqlite_path(app_name: str = "template-stack") -> Path:
    """Location of the local development SQLite database."""
    return xdg_data_dir(app_name) / "dev.db"


@dataclass(frozen=True)
class ProjectPaths:
    """Absolute locations of every file the CLI reads or rewrites."""

    root: Path
    db_package_dir: Path
    db_package_json: Path
    db_client: Path
    db_schema: Path
    db_migration_config: Path
    db_migrations: Path
    db_readme: Path
    db_compose: Path
    auth_adapter: Path
    env_schema: Path
    global_env_manifest: Path
    env_file: Path
    protected_dirs: tuple[Path, ...]

    def relative(self, path: Path) -> str:
        """Render a path relative to the repo root for display."""
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return str(path)


class StackctlSettings(BaseSettings):
    """Settings CLI configuration.

    All settings can be overridden via environment variables with STACKCTL_
    prefix. For example, STACKCTL_PACKAGE_MANAGER=npm sets package_manager.
    """

    model_config = SettingsConfigDict(
        env_prefix="STACKCTL_",
        env_nested_delimiter="__",
    )

    repo_root: Path | None = Field(
        default=None,
        description="Monorepo root (auto-detected from pnpm-workspace.yaml)",
    )

    # Tooling
    package_manager: str = Field(
        default="pnpm",
        description="Package manager binary used for add/remove/install",
    )
    db_package: str = Field(
        default="@_/infra.db",
        description="Workspace filter name of the database package",
    )

    # Files, relative to the repo root
    db_package_dir: str = Field(
        default="packages/db",
        description="Database package directory",
    )
    db_client: str = Field(
        default="packages/db/src/client.ts",
        description="Client bootstrap source",
    )
    db_schema: str = Field(
        default="packages/db/prisma/schema.prisma",
        description="Data-model definition source",
    )
    db_migration_config: str = Field(
        default="packages/db/prisma.config.ts",
        description="Migration tool config",
    )
    db_migrations: str = Field(
        default="packages/db/prisma/migrations",
        description="Migration history directory",
    )
    db_readme: str = Field(
        default="packages/db/README.md",
        description="Database package README",
    )
    db_compose: str = Field(
        default="packages/db/docker-compose.yml",
        description="Container compose descriptor",
    )
    auth_adapter: str = Field(
        default="packages/features/src/auth/auth.ts",
        description="Auth adapter bootstrap source",
    )
    env_schema: str = Field(
        default="packages/platform/src/server.ts",
        description="Environment variable declaration source",
    )
    global_env_manifest: str = Field(
        default="turbo.json",
        description="Build orchestrator config holding globalEnv",
    )
    env_file: str = Field(
        default=".env",
        description="Consolidated environment values file",
    )

    protected_dirs: list[str] = Field(
        default=["packages/db", "packages/features", "packages/platform"],
        description="Directories that must be committed before a switch",
    )
    symlink_targets: list[str] = Field(
        default=["apps/web", "packages/db", "packages/features"],
        description="Packages that receive a .env symlink after a switch",
    )

    app_data_name: str = Field(
        default="template-stack",
        description="XDG data directory name for local databases",
    )

    # Logging
    log_level: str = Field(
        default="warning",
        description="Logging level (debug, info, warning, error)",
    )
    log_format: str = Field(
        default="console",
        description="Log output format (console or json)",
    )

    @property
    def root(self) -> Path:
        """Resolved monorepo root."""
        if self.repo_root is not None:
            return self.repo_root.resolve()
        return find_repo_root()

    @property
    def sqlite_path(self) -> Path:
        """Local development SQLite file."""
        return local_sqlite_path(self.app_data_name)

    def paths(self) -> ProjectPaths:
        """Build the absolute path set for the configured repo root."""
        root = self.root
        db_dir = root / self.db_package_dir
        return ProjectPaths(
            root=root,
            db_package_dir=db_dir,
            db_package_json=db_dir / "package.json",
            db_client=root / self.db_client,
            db_schema=root / self.db_schema,
            db_migration_config=root / self.db_migration_config,
            db_migrations=root / self.db_migrations,
            db_readme=root / self.db_readme,
            db_compose=root / self.db_compose,
            auth_adapter=root / self.auth_adapter,
            env_schema=root / self.env_schema,
            global_env_manifest=root / self.global_env_manifest,
            env_file=root / self.env_file,
            protected_dirs=tuple(root / d for d in self.protected_dirs),
        )


# Module-level singleton
settings = StackctlSettings()
