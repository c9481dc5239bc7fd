"""
Main CLI entry point for ymmp.

This module defines the Click command group and registers all subcommands.
"""

import click

from ymmp.cli.cache import cache
from ymmp.cli.check import check
from ymmp.cli.config import config
from ymmp.cli.info import info
from ymmp.cli.patch import patch
from ymmp.cli.update import update
from ymmp.models.settings import Settings
from ymmp.utils.app_info import AppInfo


@click.group()
@click.version_option(version=AppInfo().app_version, prog_name="ymmp")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """YandexMusicModPatcher CLI

    Installs the Yandex Music mod client by replacing the application's
    resource archive with the latest release from GitHub.

    Set the DEBUG environment variable to write debug output to the log file.
    """
    # Settings may already be provided through the context object
    if ctx.obj is None:
        ctx.obj = Settings().load()


# Register subcommands
cli.add_command(patch)
cli.add_command(check)
cli.add_command(info)
cli.add_command(update)
cli.add_command(cache)
cli.add_command(config)


if __name__ == "__main__":
    cli()
