"""Subprocess execution.

All external commands (git, package manager, vendor CLIs) run through this
module so tests can replace a single seam.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

COMMAND_NOT_FOUND = 127


@dataclass
class CommandResult:
    """Captured result of a finished command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run_capture(args: Sequence[str], cwd: Path | None = None) -> CommandResult:
    """Run a command to completion and capture its output.

    A missing executable is reported as exit code 127 rather than raised.
    """
    logger.debug("exec.capture", args=list(args), cwd=str(cwd) if cwd else None)
    try:
        result = subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            cwd=cwd,
        )
    except FileNotFoundError as e:
        logger.warning("exec.command_not_found", command=args[0], error=str(e))
        return CommandResult(returncode=COMMAND_NOT_FOUND, stdout="", stderr=str(e))

    return CommandResult(
        returncode=result.returncode,
        stdout=result.stdout,
        stderr=result.stderr,
    )


def run_streaming(args: Sequence[str], cwd: Path | None = None) -> int:
    """Run a command with inherited stdio and block until it exits.

    Returns:
        The process exit code (127 if the executable does not exist)
    """
    logger.info("exec.streaming", args=list(args), cwd=str(cwd) if cwd else None)
    try:
        completed = subprocess.run(list(args), cwd=cwd)
    except FileNotFoundError as e:
        logger.warning("exec.command_not_found", command=args[0], error=str(e))
        return COMMAND_NOT_FOUND

    if completed.returncode != 0:
        logger.warning("exec.nonzero_exit", args=list(args), code=completed.returncode)
    return completed.returncode
