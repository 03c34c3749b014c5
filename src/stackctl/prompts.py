"""Interactive prompts.

Flows take a ``Prompter`` instead of calling click directly so tests can
script the answers.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

import click


@dataclass(frozen=True)
class Choice:
    """One entry in a numbered selection list."""

    value: str
    label: str
    description: str = ""


def click_confirm(message: str, default: bool = True) -> bool:
    return click.confirm(message, default=default)


def click_ask(message: str) -> str:
    """Free-text prompt; an empty answer is allowed."""
    return click.prompt(message, default="", show_default=False)


def click_choose(message: str, choices: Sequence[Choice]) -> str:
    """Numbered single-choice selection. Returns the chosen value."""
    click.echo(message)
    for index, choice in enumerate(choices, start=1):
        line = f"  {index}. {choice.label}"
        if choice.description:
            line += f" - {choice.description}"
        click.echo(line)
    picked = click.prompt("Select", type=click.IntRange(1, len(choices)), default=1)
    return choices[picked - 1].value


def click_choose_many(message: str, choices: Sequence[Choice]) -> list[str]:
    """Comma-separated multi selection by number. Returns the chosen values."""
    click.echo(message)
    for index, choice in enumerate(choices, start=1):
        click.echo(f"  {index}. {choice.label}")

    while True:
        raw = click.prompt("Select (comma-separated numbers)", default="", show_default=False)
        picked = [part.strip() for part in raw.split(",") if part.strip()]
        if not picked:
            click.echo("Select at least one entry")
            continue
        if all(p.isdigit() and 1 <= int(p) <= len(choices) for p in picked):
            return [choices[int(p) - 1].value for p in dict.fromkeys(picked)]
        click.echo(f"Enter numbers between 1 and {len(choices)}")


@dataclass
class Prompter:
    """The prompt callables an interactive flow may use."""

    confirm: Callable[[str, bool], bool] = click_confirm
    ask: Callable[[str], str] = click_ask
    choose: Callable[[str, Sequence[Choice]], str] = click_choose
    choose_many: Callable[[str, Sequence[Choice]], list[str]] = click_choose_many
