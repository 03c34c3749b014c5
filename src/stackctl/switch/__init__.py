"""Database provider switch.

Runs the switch as a fixed sequence of steps: git check, provider and
local-dev selection, system dependency check, provider setup, diff
generation, preview and confirmation, backup and write, dependency install,
migration, and next steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from stackctl.config import ProjectPaths
    from stackctl.prompts import Prompter
    from stackctl.switch.plan import PlannedChange


class SwitchStep(str, Enum):
    """Switch steps for progress tracking."""

    GIT_CHECK = "git_check"
    SELECT_PROVIDER = "select_provider"
    SELECT_LOCAL_DEV = "select_local_dev"
    CHECK_SYSTEM_DEPS = "check_system_deps"
    PROVIDER_SETUP = "provider_setup"
    GENERATE_DIFFS = "generate_diffs"
    PREVIEW_CONFIRM = "preview_confirm"
    BACKUP = "backup"
    APPLY_WRITES = "apply_writes"
    INSTALL_DEPS = "install_dependencies"
    MIGRATE = "migrate"
    NEXT_STEPS = "next_steps"


@dataclass
class SwitchResult:
    """Result of a switch attempt."""

    status: Literal["success", "dry_run", "cancelled", "failed"] = "success"
    steps_completed: list[SwitchStep] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    provider_id: str | None = None
    local_dev_type: str | None = None
    env_vars: dict[str, str] = field(default_factory=dict)
    planned: list[PlannedChange] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)
    migration_ran: bool = False
    next_steps: list[str] = field(default_factory=list)

    def add_completed(self, step: SwitchStep) -> None:
        """Mark a step as completed."""
        self.steps_completed.append(step)

    def add_error(self, step: SwitchStep, error: str) -> None:
        """Record an error for a step."""
        self.errors.append(f"{step.value}: {error}")
        self.status = "failed"

    def add_warning(self, warning: str) -> None:
        """Add a warning message."""
        self.warnings.append(warning)


@dataclass
class SwitchOptions:
    """Options controlling a switch."""

    paths: ProjectPaths
    sqlite_path: Path
    provider: str | None = None
    local: str | None = None
    dry_run: bool = False
    yes: bool = False
    package_manager: str = "pnpm"
    db_package: str = "@_/infra.db"
    symlink_targets: tuple[str, ...] = ()
    generated_by: str = "stackctl"


def switch(options: SwitchOptions, prompter: Prompter | None = None) -> SwitchResult:
    """Run a provider switch.

    Args:
        options: Switch options
        prompter: Prompt callables (click-based when None)

    Returns:
        SwitchResult with status and details
    """
    from stackctl.prompts import Prompter
    from stackctl.switch.steps import run_switch

    return run_switch(options, prompter or Prompter())


__all__ = [
    "SwitchOptions",
    "SwitchResult",
    "SwitchStep",
    "switch",
]
