"""Ephemeral Prisma Dev server management.

Launches ``prisma dev`` (a local PgLite-backed Postgres), captures the
connection strings it prints, and always stops it again. The server never
outlives the step that started it.
"""

from __future__ import annotations

import re
import subprocess
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import structlog

from stackctl.system.exec import run_capture

logger = structlog.get_logger(__name__)

DEFAULT_INSTANCE = "template"
STOP_TIMEOUT_SECONDS = 10

_PRISMA_URL = re.compile(r"prisma\+postgres://[^\s\"']+")
_DIRECT_URL = re.compile(r"(?<![+\w])postgres(?:ql)?://[^\s\"']+")


@dataclass(frozen=True)
class PrismaDevServer:
    """Connection strings of a running Prisma Dev instance."""

    database_url: str
    direct_url: str


class PrismaDevError(RuntimeError):
    """Raised when Prisma Dev does not report its connection strings."""

    pass


def scan_connection_urls(lines: Iterator[str]) -> PrismaDevServer:
    """Read server output until both connection strings have appeared.

    Raises:
        PrismaDevError: If the output ends before both URLs are seen
    """
    database_url: str | None = None
    direct_url: str | None = None

    for line in lines:
        if database_url is None:
            match = _PRISMA_URL.search(line)
            if match:
                database_url = match.group(0)
        if direct_url is None:
            match = _DIRECT_URL.search(line)
            if match:
                direct_url = match.group(0)
        if database_url and direct_url:
            return PrismaDevServer(database_url=database_url, direct_url=direct_url)

    raise PrismaDevError("Prisma Dev exited before reporting its connection strings")


def _stop(process: subprocess.Popen[str], runner: Sequence[str], name: str, cwd: Path) -> None:
    if process.poll() is None:
        process.terminate()
        try:
            process.wait(timeout=STOP_TIMEOUT_SECONDS)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

    result = run_capture([*runner, "prisma", "dev", "stop", name], cwd=cwd)
    if not result.ok:
        logger.warning("prisma_dev.stop_failed", name=name, stderr=result.stderr.strip())
    else:
        logger.info("prisma_dev.stopped", name=name)


@contextmanager
def prisma_dev_server(
    cwd: Path,
    name: str = DEFAULT_INSTANCE,
    runner: Sequence[str] = ("pnpm", "exec"),
) -> Iterator[PrismaDevServer]:
    """Run a Prisma Dev instance for the duration of the ``with`` block.

    Args:
        cwd: Database package directory (where prisma is installed)
        name: Instance name
        runner: Command prefix used to invoke the prisma CLI

    Yields:
        The captured connection strings

    Raises:
        PrismaDevError: If the server cannot be started or reports no URLs
    """
    logger.info("prisma_dev.starting", name=name, cwd=str(cwd))
    try:
        process = subprocess.Popen(
            [*runner, "prisma", "dev", "--name", name],
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
        )
    except FileNotFoundError as e:
        raise PrismaDevError(f"Cannot launch Prisma Dev: {e}") from e

    try:
        assert process.stdout is not None
        server = scan_connection_urls(iter(process.stdout.readline, ""))
        logger.info("prisma_dev.started", name=name)
        yield server
    finally:
        _stop(process, runner, name, cwd)
