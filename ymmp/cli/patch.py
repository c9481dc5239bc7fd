"""
patch subcommand: install the latest mod release over Yandex Music.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from ymmp.cli.common import (
    ConsoleProgress,
    build_orchestrator,
    execute_patch,
    fail,
    path_option,
    token_option,
)
from ymmp.models.patch_request import PatchRequest
from ymmp.models.settings import Settings
from ymmp.utils.constants import PatchVariant


@click.command("patch")
@click.option(
    "-t",
    "--type",
    "patch_variant",
    type=click.Choice([variant.value for variant in PatchVariant]),
    default=PatchVariant.DEFAULT.value,
    show_default=True,
    help="Build of the mod to install.",
)
@path_option
@token_option
@click.option(
    "-f",
    "--force",
    is_flag=True,
    help="Close Yandex Music without prompting if it is running.",
)
@click.option(
    "--no-cache",
    is_flag=True,
    help="Download the asset again even if a cached copy exists.",
)
@click.option(
    "--keep-cache/--no-keep-cache",
    default=True,
    show_default=True,
    help="Keep downloaded files after patching.",
)
@click.pass_obj
def patch(
    settings: Settings,
    patch_variant: str,
    path: Optional[Path],
    token: Optional[str],
    force: bool,
    no_cache: bool,
    keep_cache: bool,
) -> None:
    """Install the mod on Yandex Music.

    The original resource archive is backed up to the cache folder before it
    is replaced. If Yandex Music was closed with --force it is started again
    once the patch is applied.

    Examples:

    \b
      # Install the default build
      ymmp patch

    \b
      # Install the devtools-only build into a custom location
      ymmp patch -t devtoolsOnly -p "D:\\Apps\\YandexMusic" --force
    """
    request = PatchRequest.from_options(
        settings,
        patch_variant=patch_variant,
        install_root=path,
        use_cache=not no_cache,
        keep_cache=keep_cache,
        auth_token=token,
        force_stop=force,
    )
    progress = ConsoleProgress()
    progress.status("Initializing...")
    try:
        orchestrator = build_orchestrator(request, settings, progress)
        execute_patch(orchestrator, progress)
    except KeyboardInterrupt:
        click.echo("\n\nInterrupted by user.", err=True)
        sys.exit(2)
    except Exception as e:
        fail(e, "Patch failed")
