"""stackctl db-switch command."""

from __future__ import annotations

import sys

import click

from stackctl.providers import LocalDevType, get_provider_ids


@click.command("db-switch")
@click.option(
    "--provider",
    type=click.Choice(get_provider_ids()),
    default=None,
    help="Database provider to switch to (prompted if omitted)",
)
@click.option(
    "--local",
    type=click.Choice([t.value for t in LocalDevType]),
    default=None,
    help="Local development option (prompted if omitted)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would change without writing anything",
)
@click.option(
    "-y",
    "--yes",
    is_flag=True,
    help="Skip confirmation prompts",
)
def db_switch(provider: str | None, local: str | None, dry_run: bool, yes: bool) -> None:
    """Switch the monorepo's database provider.

    Rewrites the client bootstrap, migration config, data-model schema, auth
    adapter, package scripts, env schema and .env, after previewing every
    change as a diff. All files are restored if any write fails.

    Examples:

        # Interactive
        stackctl db-switch

        # Preview a switch to Postgres in Docker
        stackctl db-switch --provider postgres --local container --dry-run

        # Non-interactive
        stackctl db-switch --provider sqlite --yes
    """
    from stackctl.config import settings
    from stackctl.errors import StackctlError
    from stackctl.switch import SwitchOptions, switch

    options = SwitchOptions(
        paths=settings.paths(),
        sqlite_path=settings.sqlite_path,
        provider=provider,
        local=local,
        dry_run=dry_run,
        yes=yes,
        package_manager=settings.package_manager,
        db_package=settings.db_package,
        symlink_targets=tuple(settings.symlink_targets),
    )

    try:
        result = switch(options)
    except StackctlError as e:
        raise click.ClickException(str(e)) from e

    if result.status == "failed":
        sys.exit(1)
    sys.exit(0)
