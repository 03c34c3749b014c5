"""Provider record types.

Providers are plain data: a fixed pipeline consumes them, and the only
behavior a provider carries is its ``setup`` callable.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Literal

from stackctl.config import ProjectPaths
from stackctl.env.schema import EnvVarDefinition
from stackctl.system.dependencies import SystemDependency

DataModelProvider = Literal["sqlite", "postgresql"]

NOOP_SCRIPT = "true"
MIGRATE_DEPLOY_SCRIPT = "prisma migrate deploy"

# Same for every provider, rewritten on every switch
FIXED_SCRIPTS: dict[str, str] = {
    "db:generate": "prisma generate",
    "db:migrate:dev": "prisma migrate dev",
    "db:studio": "prisma studio",
    "db:push": "prisma db push",
    "typecheck": "tsc --noEmit",
}

# Anything outside this set is a user script and is left alone
MANAGED_SCRIPT_KEYS: frozenset[str] = frozenset(
    {*FIXED_SCRIPTS, "db:migrate:deploy", "dev", "db:start", "db:stop"}
)


class LocalDevType(str, Enum):
    """How the database runs on a developer machine."""

    LOCAL_FILE = "local-file"
    MANAGED_DEV_SERVER = "managed-dev-server"
    CONTAINER = "container"
    VENDOR_LOCAL_STACK = "vendor-local-stack"
    REMOTE = "remote"


@dataclass(frozen=True)
class LocalDevOption:
    """One way of running a provider's database locally.

    ``package_scripts`` always holds ``dev``, ``db:start`` and ``db:stop`` so
    every provider leaves the same script set behind.
    """

    type: LocalDevType
    label: str
    description: str
    package_scripts: Mapping[str, str]
    env_vars: Mapping[str, str] = field(default_factory=dict)
    system_deps: tuple[SystemDependency, ...] = ()


@dataclass(frozen=True)
class ProductionEnvVar:
    """A variable documented in the generated README."""

    name: str
    description: str
    required: bool
    example: str


@dataclass(frozen=True)
class Dependencies:
    """Packages the db package gains (name -> version range) and drops."""

    add: Mapping[str, str]
    remove: tuple[str, ...] = ()

    def add_specs(self) -> list[str]:
        return [f"{name}@{version}" for name, version in self.add.items()]


@dataclass(frozen=True)
class ProviderDocs:
    prisma: str
    provider: str


SQLITE_PATH_TOKEN = "{sqlite_path}"


@dataclass(frozen=True)
class ProviderReadme:
    """README sections; SQLITE_PATH_TOKEN is filled in with the run's SQLite file."""

    quickstart: str
    troubleshooting: str


@dataclass(frozen=True)
class ProviderTemplates:
    """Generated file bodies."""

    client_ts: str
    prisma_config_ts: str
    docker_compose_yml: str | None = None


@dataclass
class SetupContext:
    """What a provider's setup routine may use.

    Attributes:
        paths: Resolved project paths
        sqlite_path: Local development SQLite file
        skip_prompts: Use placeholders instead of asking (``--yes``)
        dry_run: Do not start or initialize anything external
        output: Progress line sink
        ask: Free-text prompt returning the entered value ("" when skipped)
        package_manager: Binary used to run package-local tools
    """

    paths: ProjectPaths
    sqlite_path: Path
    skip_prompts: bool = False
    dry_run: bool = False
    output: Callable[[str], None] = print
    ask: Callable[[str], str] = lambda _message: ""
    package_manager: str = "pnpm"

    @property
    def sqlite_url(self) -> str:
        return f"file:{self.sqlite_path}"


@dataclass
class SetupResult:
    """Environment values a provider produced for the .env file."""

    env_vars: dict[str, str] = field(default_factory=dict)


SetupFn = Callable[[LocalDevOption, SetupContext], SetupResult]


@dataclass(frozen=True)
class ProviderDefinition:
    """A supported database backend."""

    id: str
    display_name: str
    description: str
    data_model_provider: DataModelProvider
    auth_adapter_provider: DataModelProvider
    dependencies: Dependencies
    local_dev_options: tuple[LocalDevOption, ...]
    production_env_vars: tuple[ProductionEnvVar, ...]
    schema_env_vars: tuple[EnvVarDefinition, ...]
    docs: ProviderDocs
    templates: ProviderTemplates
    readme: ProviderReadme
    setup: SetupFn
    migrate_deploy_script: str = MIGRATE_DEPLOY_SCRIPT

    @property
    def local_dev_types(self) -> list[str]:
        return [option.type.value for option in self.local_dev_options]
