"""System dependency checking.

Verifies that external binaries a local-dev option relies on (container
runtime, vendor CLIs) are available on PATH.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from stackctl.errors import MissingDependencyError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SystemDependency:
    """An external command a local-dev option needs."""

    command: str
    name: str
    reason: str
    install_hint: str


@dataclass
class DependencyCheck:
    """Result of a single dependency probe."""

    dependency: SystemDependency
    available: bool
    found_path: str | None = None


@dataclass
class DependencyReport:
    """Results of probing a set of dependencies."""

    results: list[DependencyCheck] = field(default_factory=list)

    @property
    def missing(self) -> list[SystemDependency]:
        return [r.dependency for r in self.results if not r.available]

    @property
    def all_satisfied(self) -> bool:
        return not self.missing


SYSTEM_DEPS: dict[str, SystemDependency] = {
    "docker": SystemDependency(
        command="docker",
        name="Docker",
        reason="Required to run PostgreSQL in a container",
        install_hint=(
            "https://docs.docker.com/get-docker/ "
            "(or try https://orbstack.dev for a lighter experience on Mac)"
        ),
    ),
    "supabase": SystemDependency(
        command="supabase",
        name="Supabase CLI",
        reason="Required to run the local Supabase development stack",
        install_hint="npm install -g supabase or brew install supabase/tap/supabase",
    ),
}


def command_exists(command: str) -> bool:
    """Check whether a command resolves on PATH.

    Not cached: local environments change between runs.
    """
    return shutil.which(command) is not None


def check_system_dependency(dep: SystemDependency) -> DependencyCheck:
    """Probe a single dependency."""
    found = shutil.which(dep.command)
    return DependencyCheck(dependency=dep, available=found is not None, found_path=found)


def check_system_dependencies(deps: Iterable[SystemDependency]) -> DependencyReport:
    """Probe several dependencies, checking each command once."""
    report = DependencyReport()
    seen: set[str] = set()
    for dep in deps:
        if dep.command in seen:
            continue
        seen.add(dep.command)
        report.results.append(check_system_dependency(dep))
    return report


def ensure_system_dependencies(deps: Iterable[SystemDependency]) -> DependencyReport:
    """Require every dependency to be installed.

    Returns:
        The report, when everything is available

    Raises:
        MissingDependencyError: Listing every missing command with install hints
    """
    report = check_system_dependencies(deps)
    if not report.all_satisfied:
        logger.error(
            "dependencies.missing",
            commands=[d.command for d in report.missing],
        )
        raise MissingDependencyError(report.missing)
    return report
