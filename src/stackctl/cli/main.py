"""stackctl CLI main entry point.

This module provides the main CLI interface for stackctl.
"""

import click

from stackctl import __version__
from stackctl.config import settings
from stackctl.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="stackctl")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Diagnostic log level (written to stderr)",
)
def cli(log_level: str | None) -> None:
    """stackctl - settings tool for the product monorepo.

    Switches the database provider and manages environment variables.
    """
    configure_logging(log_level or settings.log_level, settings.log_format)


# Import and register subcommands
from stackctl.cli.db_switch import db_switch  # noqa: E402
from stackctl.cli.env_config import env_config  # noqa: E402
from stackctl.cli.env_links import env_links  # noqa: E402

cli.add_command(db_switch)
cli.add_command(env_config)
cli.add_command(env_links)
