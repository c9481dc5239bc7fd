"""
Helpers shared by the ymmp subcommands: common options, console progress
output and translation of patcher errors into remediation hints.
"""

import sys
from pathlib import Path
from typing import Any, NoReturn, Optional

import click
from loguru import logger

from ymmp.controllers.patch_orchestrator import PatchOrchestrator, PatchResult
from ymmp.models.patch_request import PatchRequest
from ymmp.models.settings import Settings
from ymmp.utils.exception import (
    InstallNotFoundError,
    InstallPermissionError,
    PatchInProgressError,
    ProcessRunningError,
    RateLimitError,
)

path_option = click.option(
    "-p",
    "--path",
    type=click.Path(file_okay=False, path_type=Path),
    help="Custom path to the Yandex Music installation.",
)

token_option = click.option(
    "--token",
    help="GitHub token. Overrides the configured token and GITHUB_TOKEN.",
)


class ConsoleProgress:
    """
    Prints orchestrator status messages and a single rewritten
    ``Downloading... N%`` line to stderr.
    """

    def __init__(self) -> None:
        self._percent: Optional[int] = None

    def status(self, message: str) -> None:
        self.finish()
        click.echo(message, err=True)

    def update(self, fraction: float) -> None:
        percent = int(fraction * 100)
        if percent == self._percent:
            return
        self._percent = percent
        click.echo(f"\rDownloading... {percent}%", nl=False, err=True)

    def finish(self) -> None:
        # Terminate the progress line before anything else is printed
        if self._percent is not None:
            click.echo(err=True)
            self._percent = None


def build_orchestrator(
    request: PatchRequest,
    settings: Settings,
    progress: Optional[ConsoleProgress] = None,
) -> PatchOrchestrator:
    return PatchOrchestrator(
        request,
        settings,
        on_status=progress.status if progress else None,
        on_progress=progress.update if progress else None,
    )


def execute_patch(
    orchestrator: PatchOrchestrator, progress: Optional[ConsoleProgress] = None
) -> PatchResult:
    try:
        result = orchestrator.patch()
    finally:
        if progress is not None:
            progress.finish()

    click.secho(f"✓ Patch completed successfully! ({result.release_name})", fg="green")
    click.echo(f"Original archive backed up to {result.backup_path}")
    return result


def remediation_hint(error: BaseException) -> Optional[str]:
    """
    Map a patcher error to a hint telling the user how to fix it.

    Returns:
        The hint, or None when the error message speaks for itself.
    """
    if isinstance(error, RateLimitError):
        return "Fix it permanently: ymmp config set token YOUR_TOKEN_HERE"
    if isinstance(error, ProcessRunningError):
        return "Yandex Music is running. Use --force to close it automatically."
    if isinstance(error, InstallNotFoundError):
        return "Point ymmp at your installation with --path (or ymmp config set path PATH)."
    if isinstance(error, InstallPermissionError):
        return "Run the command again from an elevated shell (Administrator / sudo)."
    if isinstance(error, PatchInProgressError):
        return "Wait for the other ymmp run to finish and try again."
    return None


def fail(error: BaseException, prefix: str = "Error") -> NoReturn:
    """Report an error on stderr and exit with status 1."""
    logger.debug(f"Command failed with {type(error).__name__}: {error}")
    click.secho(f"✗ {prefix}: {error}", fg="red", err=True)
    hint = remediation_hint(error)
    if hint:
        click.secho(hint, fg="yellow", err=True)
    sys.exit(1)


def nested_value(data: dict[str, Any], *keys: str) -> Any:
    """Walk nested dictionaries, returning None as soon as a key is missing."""
    node: Any = data
    for key in keys:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def rule() -> None:
    click.secho("━" * 50, fg="bright_black")
