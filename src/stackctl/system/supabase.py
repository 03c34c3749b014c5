"""Supabase local development automation.

Handles initialization, starting, and status parsing for the Supabase
local stack.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import structlog

from stackctl.system.dependencies import command_exists
from stackctl.system.exec import run_capture, run_streaming

logger = structlog.get_logger(__name__)

_STATUS_PATTERNS = {
    "api_url": re.compile(r"API URL:\s+(\S+)"),
    "graphql_url": re.compile(r"GraphQL URL:\s+(\S+)"),
    "database_url": re.compile(r"(?:Database|DB) URL:\s+(\S+)"),
    "studio_url": re.compile(r"Studio URL:\s+(\S+)"),
}


@dataclass
class SupabaseStatus:
    """URLs reported by ``supabase status``."""

    api_url: str
    database_url: str
    studio_url: str
    graphql_url: str | None = None


class SupabaseError(RuntimeError):
    """Raised when a Supabase CLI step fails."""

    pass


def parse_supabase_status(output: str) -> SupabaseStatus:
    """Extract URLs from ``supabase status`` output.

    Raises:
        ValueError: If the Database URL, API URL or Studio URL is missing
    """
    found: dict[str, str] = {}
    for key, pattern in _STATUS_PATTERNS.items():
        match = pattern.search(output)
        if match:
            found[key] = match.group(1).strip()

    if "database_url" not in found:
        raise ValueError("Failed to parse Supabase status - Database URL not found")
    if "api_url" not in found or "studio_url" not in found:
        raise ValueError("Failed to parse Supabase status - missing required URLs")

    return SupabaseStatus(
        api_url=found["api_url"],
        database_url=found["database_url"],
        studio_url=found["studio_url"],
        graphql_url=found.get("graphql_url"),
    )


def init_supabase(cwd: Path) -> None:
    """Initialize Supabase in ``cwd``, overwriting any existing config."""
    code = run_streaming(
        [
            "supabase",
            "init",
            "--force",
            "--with-intellij-settings=false",
            "--with-vscode-settings=false",
        ],
        cwd=cwd,
    )
    if code != 0:
        raise SupabaseError(f"Supabase init failed with exit code {code}")


def start_supabase(cwd: Path) -> None:
    """Start the local stack (pulls images on first run)."""
    code = run_streaming(["supabase", "start"], cwd=cwd)
    if code != 0:
        raise SupabaseError(f"Supabase start failed with exit code {code}")


def get_supabase_status(cwd: Path) -> SupabaseStatus:
    """Query and parse the running stack's status."""
    result = run_capture(["supabase", "status"], cwd=cwd)
    if not result.stdout.strip():
        raise SupabaseError("No output from supabase status command")
    return parse_supabase_status(result.stdout)


def stop_supabase(cwd: Path) -> bool:
    """Stop the local stack. Returns False if the CLI reported a failure."""
    code = run_streaming(["supabase", "stop"], cwd=cwd)
    if code != 0:
        logger.warning("supabase.stop_failed", code=code)
        return False
    return True


def setup_supabase(cwd: Path) -> SupabaseStatus:
    """Initialize and start the local stack, then read its connection URLs.

    Raises:
        SupabaseError: If the CLI is missing or any step fails
        ValueError: If the status output cannot be parsed
    """
    if not command_exists("supabase"):
        raise SupabaseError(
            "Supabase CLI is not installed. Install with: npm install -g supabase"
        )

    init_supabase(cwd)
    start_supabase(cwd)
    status = get_supabase_status(cwd)
    logger.info("supabase.ready", database_url=status.database_url)
    return status
