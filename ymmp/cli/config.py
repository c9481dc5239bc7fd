"""
config subcommand: read and write the persisted ymmp configuration.
"""

import sys
from typing import Any, Optional

import click
import msgspec

from ymmp.models.settings import Settings

# Command line names of the settings that can be managed from the CLI
CONFIG_KEYS = {
    "token": "github_token",
    "path": "custom_path",
}


def mask_token(token: Optional[str]) -> Optional[str]:
    if not token:
        return token
    return token[:4] + "***"


def _display_value(setting: str, value: Any) -> Any:
    return mask_token(value) if setting == "github_token" else value


@click.command("config")
@click.argument(
    "action", type=click.Choice(["list", "get", "set"]), default="list", required=False
)
@click.argument("key", type=click.Choice(list(CONFIG_KEYS)), required=False)
@click.argument("value", required=False)
@click.pass_obj
def config(settings: Settings, action: str, key: Optional[str], value: Optional[str]) -> None:
    """Manage configuration (token, path).

    \b
      ymmp config list
      ymmp config get path
      ymmp config set token YOUR_TOKEN_HERE
      ymmp config set path     # clears the custom path
    """
    if action == "list":
        data = {
            name: _display_value(name, value)
            for name, value in settings.as_dict().items()
        }
        click.secho("\nCurrent Configuration:", bold=True)
        click.echo(msgspec.json.format(msgspec.json.encode(data), indent=2).decode())
        click.echo(f"Stored in {settings.settings_file}")
        return

    if key is None:
        raise click.UsageError(f"{action} needs a KEY: {' or '.join(CONFIG_KEYS)}")
    setting = CONFIG_KEYS[key]

    if action == "get":
        current = settings.get(setting)
        click.echo(_display_value(setting, current) if current else "(not set)")
        return

    try:
        settings.set(setting, value or None)
    except OSError as e:
        click.secho(f"✗ Failed to save {settings.settings_file}: {e}", fg="red", err=True)
        sys.exit(1)
    label = "GitHub Token" if key == "token" else "Custom path"
    click.secho(f"✓ {label} {'updated' if value else 'cleared'}.", fg="green")
