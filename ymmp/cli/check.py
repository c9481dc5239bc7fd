"""
check subcommand: report whether Yandex Music can be patched.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from ymmp.cli.common import build_orchestrator, fail, path_option
from ymmp.models.patch_request import PatchRequest
from ymmp.models.settings import Settings
from ymmp.utils.exception import InstallRequest


def _check(settings: Settings, path: Optional[Path | str]) -> bool:
    request = PatchRequest.from_options(settings, install_root=path)
    orchestrator = build_orchestrator(request, settings)
    result = orchestrator.check_install_possible()
    if result.status:
        click.secho(
            f"✓ Yandex Music found and ready to patch ({orchestrator.profile.install_root})",
            fg="green",
        )
        return True

    click.secho(f"✗ Cannot patch: {result.message}", fg="red", err=True)
    if result.request is InstallRequest.REQUEST_PERMISSIONS:
        click.secho(
            "Run the command again from an elevated shell (Administrator / sudo).",
            fg="yellow",
            err=True,
        )
    elif result.request is InstallRequest.REQUEST_YM_PATH and path is None:
        entered = click.prompt(
            "Enter path to Yandex Music installation",
            default="",
            show_default=False,
        ).strip()
        if entered and _check(settings, entered):
            click.echo(
                f'Use this path with --path, or save it with: ymmp config set path "{entered}"'
            )
            return True
    return False


@click.command("check")
@path_option
@click.pass_obj
def check(settings: Settings, path: Optional[Path]) -> None:
    """Check if patching is possible.

    When no installation is found at the default location you are asked for
    the install path. Exits with status 1 when the installation cannot be patched.
    """
    try:
        ready = _check(settings, path)
    except click.Abort:
        raise
    except Exception as e:
        fail(e, "Check failed")
    if not ready:
        sys.exit(1)
