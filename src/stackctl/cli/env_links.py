"""stackctl env-links command."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import click

from stackctl.env.symlinks import (
    ENV_FILE_NAME,
    SymlinkStatus,
    create_symlinks,
    discover_env_files,
    discover_packages,
    get_symlink_status,
    remove_symlinks,
)
from stackctl.errors import SymlinkError
from stackctl.prompts import Choice, Prompter

TOTAL_STEPS = 4

Output = Callable[[str], None]


def describe_status(status: SymlinkStatus) -> str:
    if not status.exists:
        return "no .env file"
    if status.is_symlink:
        if status.is_valid:
            return f"linked -> {status.target}"
        return f"linked elsewhere -> {status.target}"
    return "local file (not symlink, will be replaced)"


def _parse_targets(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [t.strip().strip("/") for t in value.split(",") if t.strip()]


def run_env_links(
    root: Path,
    prompter: Prompter,
    source: str | None = None,
    targets: Sequence[str] | None = None,
    default_targets: Sequence[str] = (),
    output: Output = click.echo,
) -> list[str]:
    """Pick a root env file and the packages to link, then create the links.

    Prompts for whatever was not passed in. Confirmation is skipped only when
    both ``source`` and ``targets`` were given.

    Returns:
        Targets that were linked successfully ([] when cancelled)

    Raises:
        SymlinkError: If no env file or package exists, or a passed source or
            target is not among the discovered ones
    """
    output("=== Environment Symlink Management ===")
    output("")

    output(f"[1/{TOTAL_STEPS}] Discovering .env files...")
    env_files = discover_env_files(root)
    if not env_files:
        raise SymlinkError("No .env files found in repository root. Run: stackctl db-switch")
    output(f"  [OK] Found {len(env_files)} .env file(s)")

    output(f"[2/{TOTAL_STEPS}] Selecting source file...")
    source_file = source
    if source_file is None:
        if len(env_files) == 1:
            source_file = env_files[0]
        else:
            ordered = sorted(env_files, key=lambda f: f != ENV_FILE_NAME)
            source_file = prompter.choose(
                "Which .env file should be the source?",
                [Choice(f, f, f"Use {f} as the source for symlinks") for f in ordered],
            )
    elif source_file not in env_files:
        raise SymlinkError(
            f"Source file {source_file} not found. Available files: {', '.join(env_files)}"
        )
    output(f"  [OK] Source: {source_file}")

    output(f"[3/{TOTAL_STEPS}] Discovering packages...")
    packages = discover_packages(root)
    if not packages:
        raise SymlinkError("No packages found in monorepo")
    output(f"  [OK] Found {len(packages)} package(s)")

    statuses = {s.package_path: s for s in get_symlink_status(root)}
    output("")
    output("Current symlink status:")
    for package in packages:
        output(f"  {package}: {describe_status(statuses[package])}")
    output("")

    selected = list(targets) if targets is not None else None
    if selected is None:
        defaults = [p for p in packages if p in default_targets]
        ordered = defaults + [p for p in packages if p not in defaults]
        selected = prompter.choose_many(
            "Select packages for symlink creation:",
            [
                Choice(p, f"{p} ({describe_status(statuses[p])})")
                for p in ordered
            ],
        )
    else:
        invalid = [t for t in selected if t not in packages]
        if invalid:
            raise SymlinkError(
                f"Invalid target packages: {', '.join(invalid)}. "
                f"Available packages: {', '.join(packages)}"
            )

    if not selected:
        output("  [WARN] No packages selected")
        return []
    output(f"  [OK] Selected {len(selected)} package(s)")

    output(f"[4/{TOTAL_STEPS}] Creating symlinks...")
    if source is None or targets is None:
        output("")
        output("Will create symlinks:")
        for package in selected:
            output(f"  {package}/{ENV_FILE_NAME} -> {source_file}")
        output("")
        if not prompter.confirm("Create these symlinks?", True):
            output("  [WARN] Operation cancelled")
            return []

    results = create_symlinks(root, source_file, selected)
    linked = [r.target for r in results if r.success]
    failed = [r for r in results if not r.success]

    output("")
    output("=== Results ===")
    if linked:
        output(f"  [OK] Created {len(linked)} symlink(s):")
        for target in linked:
            output(f"    {target}/{ENV_FILE_NAME}")
    if failed:
        output(f"  [ERROR] Failed to create {len(failed)} symlink(s):")
        for result in failed:
            output(f"    {result.target}: {result.error}")

    output("")
    output("Next steps:")
    output(f"  1. Verify symlinks: ls -la {selected[0]}/{ENV_FILE_NAME}")
    output(f"  2. Update {source_file} with your environment variables")
    output("  3. Changes to the source file are reflected in all linked packages")
    return linked


@click.command("env-links")
@click.option(
    "--source",
    default=None,
    help="Root env file to link to (e.g. .env)",
)
@click.option(
    "--targets",
    default=None,
    help="Comma-separated package paths (e.g. apps/web,packages/db)",
)
@click.option(
    "--remove",
    is_flag=True,
    help="Remove the .env links from the given targets instead",
)
def env_links(source: str | None, targets: str | None, remove: bool) -> None:
    """Link package .env files to a root env file.

    Examples:

        # Interactive
        stackctl env-links

        # Non-interactive
        stackctl env-links --source .env --targets apps/web,packages/db

        # Remove links
        stackctl env-links --remove --targets apps/web
    """
    from stackctl.config import settings

    root = settings.root
    target_list = _parse_targets(targets)

    if remove:
        if not target_list:
            raise click.UsageError("--remove requires --targets")
        failed = False
        for result in remove_symlinks(root, target_list):
            if result.success:
                click.echo(f"  [OK] Removed {result.target}/{ENV_FILE_NAME}")
            else:
                failed = True
                click.echo(f"  [ERROR] {result.target}: {result.error}")
        if failed:
            raise click.ClickException("Some links could not be removed")
        return

    try:
        run_env_links(
            root,
            Prompter(),
            source=source,
            targets=target_list,
            default_targets=settings.symlink_targets,
        )
    except SymlinkError as e:
        raise click.ClickException(str(e)) from e
