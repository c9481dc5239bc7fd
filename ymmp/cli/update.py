"""
update subcommand: compare the installed mod with the latest release and
install it on confirmation.
"""

import time
from datetime import datetime
from typing import Optional

import click
from loguru import logger
from packaging.version import InvalidVersion, Version

from ymmp.cli.common import (
    ConsoleProgress,
    build_orchestrator,
    execute_patch,
    fail,
    nested_value,
    token_option,
)
from ymmp.models.patch_request import PatchRequest
from ymmp.models.settings import Settings


def parse_version(value: Optional[str]) -> Optional[Version]:
    """
    Parse a release tag or mod version such as ``v5.2.1``.

    :return: the version, or None if it is missing or not PEP 440 compatible
    """
    if not value:
        return None
    try:
        return Version(value.strip().lstrip("vV"))
    except InvalidVersion:
        logger.debug(f"Cannot compare version string: {value}")
        return None


def format_published(published_at: str) -> str:
    try:
        return datetime.fromisoformat(published_at.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return published_at or "Unknown"


@click.command("update")
@token_option
@click.option(
    "-f",
    "--force",
    is_flag=True,
    help="Close Yandex Music if it is running.",
)
@click.option("-y", "--yes", is_flag=True, help="Install without asking for confirmation.")
@click.pass_obj
def update(settings: Settings, token: Optional[str], force: bool, yes: bool) -> None:
    """Check for updates and install the latest release."""
    request = PatchRequest.from_options(settings, auth_token=token, force_stop=force)
    progress = ConsoleProgress()
    try:
        orchestrator = build_orchestrator(request, settings, progress)
        click.echo("Checking for updates...", err=True)
        release = orchestrator.fetch_release_info()
        settings.set("last_update_check", int(time.time()))

        click.echo(
            click.style("\nLatest Release: ", bold=True)
            + click.style(release.name, fg="green")
        )
        click.secho(f"Published: {format_published(release.published_at)}", fg="bright_black")

        metadata = orchestrator.get_installed_metadata() or {}
        installed = parse_version(nested_value(metadata, "modification", "version"))
        latest = parse_version(release.tag_name) or parse_version(release.name)
        if installed is not None and latest is not None and installed >= latest:
            click.echo(f"Installed mod version {installed} is up to date.")
            question, default = "Reinstall it anyway?", False
        else:
            if installed is not None:
                click.echo(f"Installed mod version: {installed}")
            question, default = "Install this update now?", True

        if not yes and not click.confirm(question, default=default):
            click.echo("Update skipped.")
            return

        execute_patch(orchestrator, progress)
        click.secho("Update installed!", fg="green")
    except click.Abort:
        raise
    except Exception as e:
        fail(e, "Update failed")
