"""Unified diff generation and colored terminal display."""

from __future__ import annotations

import difflib
from collections.abc import Callable, Iterable
from pathlib import Path

import click

from stackctl.fileio import read_text_or_empty

CONTEXT_LINES = 3
NO_NEWLINE_MARKER = "\\ No newline at end of file\n"


def _diff_lines(text: str) -> list[str]:
    lines = text.splitlines(keepends=True)
    if lines and not lines[-1].endswith("\n"):
        lines[-1] = lines[-1] + "\n" + NO_NEWLINE_MARKER
    return lines


def generate_diff(old: str, new: str, label: str) -> str:
    """Generate a unified diff between two versions of a file.

    Args:
        old: Current content ("" for a file that does not exist yet)
        new: Proposed content
        label: Path shown in the ---/+++ headers

    Returns:
        Unified diff with 3 lines of context, or "" when the contents are identical
    """
    if old == new:
        return ""

    return "".join(
        difflib.unified_diff(
            _diff_lines(old),
            _diff_lines(new),
            fromfile=label,
            tofile=label,
            n=CONTEXT_LINES,
        )
    )


def generate_file_diff(path: Path, new: str, label: str | None = None) -> str:
    """Diff a file's on-disk content against proposed content."""
    return generate_diff(read_text_or_empty(path), new, label or str(path))


def _style(line: str) -> str:
    if line.startswith(("---", "+++", "@@")):
        return click.style(line, fg="cyan")
    if line.startswith("+"):
        return click.style(line, fg="green")
    if line.startswith("-"):
        return click.style(line, fg="red")
    return click.style(line, dim=True)


def display_diff(diff: str, output: Callable[[str], None] = click.echo) -> None:
    """Print a unified diff with colored headers, hunks and changed lines."""
    if not diff.strip():
        return

    for line in diff.splitlines():
        output(_style(line))


def display_diffs(
    diffs: Iterable[tuple[str, str]], output: Callable[[str], None] = click.echo
) -> None:
    """Print several (label, diff) pairs with a header and separator per file.

    Lines are styled with ANSI codes; click.echo strips them when stdout is
    not a terminal.
    """
    shown = [(label, diff) for label, diff in diffs if diff.strip()]

    for index, (label, diff) in enumerate(shown):
        output("")
        output(click.style(f"File: {label}", bold=True, underline=True))
        output("")
        display_diff(diff, output)
        if index < len(shown) - 1:
            output("")
            output(click.style("-" * 80, dim=True))

    if shown:
        output("")
