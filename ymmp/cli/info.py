"""
info subcommand: show the versions recorded in the installed archive.
"""

from pathlib import Path
from typing import Optional

import click

from ymmp.cli.common import build_orchestrator, fail, nested_value, path_option, rule
from ymmp.models.patch_request import PatchRequest
from ymmp.models.settings import Settings


@click.command("info")
@path_option
@click.pass_obj
def info(settings: Settings, path: Optional[Path]) -> None:
    """Show information about the installed mod."""
    try:
        request = PatchRequest.from_options(settings, install_root=path)
        metadata = build_orchestrator(request, settings).get_installed_metadata()
    except Exception as e:
        fail(e, "Info retrieval failed")

    if metadata is None:
        click.secho("No installation information found", fg="yellow", err=True)
        return

    fields = (
        ("Yandex Music:", nested_value(metadata, "buildInfo", "version"), "Unknown"),
        ("Mod Version:", nested_value(metadata, "modification", "version"), "Not installed"),
        ("Last Patch Date:", nested_value(metadata, "lastPatchInfo", "date"), "Unknown"),
    )
    click.secho("\nInstalled Version Info:", bold=True)
    rule()
    for label, value, fallback in fields:
        click.echo(f"{click.style(label, fg='cyan')} {value or fallback}")
    rule()
