"""
cache subcommand: inspect or clear the download cache.
"""

import click

from ymmp.cli.common import build_orchestrator, fail, rule
from ymmp.models.patch_request import PatchRequest
from ymmp.models.settings import Settings


@click.command("cache")
@click.option("-c", "--clear", is_flag=True, help="Clear the cache, backups included.")
@click.option("-s", "--stats", is_flag=True, help="Show cache statistics.")
@click.pass_context
def cache(ctx: click.Context, clear: bool, stats: bool) -> None:
    """Manage the download cache."""
    if not clear and not stats:
        click.echo(ctx.get_help())
        return

    settings: Settings = ctx.obj
    try:
        orchestrator = build_orchestrator(PatchRequest.from_options(settings), settings)
        if clear:
            click.echo("Clearing cache...", err=True)
            removed = orchestrator.clear_caches(include_backups=True)
            click.secho(f"✓ Cache cleared ({len(removed)} file(s) removed)", fg="green")

        if stats:
            cache_stats = orchestrator.cache_stats()
            click.secho("\nCache Statistics:", bold=True)
            rule()
            click.echo(f"{click.style('Location:', fg='cyan')} {orchestrator.cache_dir}")
            click.echo(f"{click.style('Files:', fg='cyan')} {cache_stats.file_count}")
            click.echo(
                f"{click.style('Total Size:', fg='cyan')} {cache_stats.human_size}"
            )
            rule()
    except Exception as e:
        fail(e, "Cache operation failed")
