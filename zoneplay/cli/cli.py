import asyncio

import click
from rich.console import Console
from rich.table import Table

from zoneplay import Zoneplay, ZoneplayError
from zoneplay.config import load_settings
from zoneplay.episodes import pick_latest

CONTEXT_SETTINGS = {
    "max_content_width": 100,
    "help_option_names": ["--help"],
}


def run_zoneplay(ctx: click.Context, operation):
    """Run an async operation against a Zoneplay built from the CLI options."""

    async def runner():
        async with Zoneplay(ctx.obj["settings"]) as zoneplay:
            return await operation(zoneplay)

    try:
        return asyncio.run(runner())
    except ZoneplayError as e:
        raise click.ClickException(str(e))


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--host",
    "-h",
    help="Address of any speaker in the household.",
    metavar="HOST",
    type=click.STRING,
    default=None,
)
@click.option(
    "--config",
    "-c",
    help="Path to a JSON settings file.",
    metavar="FILE",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
)
@click.pass_context
def cli(ctx, host, config):
    """
    A commandline interface for playing favorites on Sonos speakers.

    Speakers are identified by their UUID (e.g. RINCON_000E58A0123401400);
    see "zoneplay speakers". Favorites are identified by their id; see
    "zoneplay favorites".
    """
    ctx.ensure_object(dict)

    try:
        ctx.obj["settings"] = load_settings(config, bootstrap_address=host)
    except ZoneplayError as e:
        raise click.ClickException(str(e))


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.pass_context
def speakers(ctx):
    """
    List the speakers in the household.
    """
    results = run_zoneplay(ctx, lambda zoneplay: zoneplay.speakers(refresh=True))

    console = Console()

    table = Table(show_header=True, header_style="bold")
    table.add_column("UUID", style="dim")
    table.add_column("Address")
    table.add_column("Zone")

    for speaker in sorted(results, key=lambda speaker: speaker.zone_name):
        table.add_row(speaker.uuid, speaker.address, speaker.zone_name)

    console.print(table)


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.pass_context
def favorites(ctx):
    """
    List the household's favorites.
    """
    results = run_zoneplay(ctx, lambda zoneplay: zoneplay.refresh_favorites())

    console = Console()

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Container", justify="right")
    table.add_column("Title")
    table.add_column("Object ID", style="dim")

    for favorite in results:
        table.add_row(
            favorite.id,
            "True" if favorite.is_container else "False",
            favorite.title,
            favorite.canonical_object_id,
        )

    console.print(table)


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.argument("favorite")
@click.option(
    "--device",
    "-d",
    help="UUID of the speaker to browse with (defaults to the --host speaker).",
    metavar="UUID",
    type=click.STRING,
    default=None,
)
@click.pass_context
def browse(ctx, favorite, device):
    """
    Browse the children of a container favorite. The latest item is starred.
    """
    results = run_zoneplay(
        ctx, lambda zoneplay: zoneplay.browse_favorite(favorite, device)
    )
    latest = pick_latest([item for item in results if item.uri])

    console = Console()

    if not results:
        console.print(f"No items found for favorite {favorite}")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("", justify="center")
    table.add_column("ID", style="dim")
    table.add_column("Date")
    table.add_column("Title")

    for item in results:
        table.add_row(
            "*" if item is latest else "",
            item.id,
            item.date or "",
            item.title,
        )

    console.print(table)


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.argument("favorite")
@click.option(
    "--device",
    "-d",
    "devices",
    help="Speaker UUID; repeat for a group. The first speaker coordinates.",
    metavar="UUID",
    type=click.STRING,
    multiple=True,
    required=True,
)
@click.pass_context
def play(ctx, favorite, devices):
    """
    Play a favorite on one or more speakers.
    """
    result = run_zoneplay(
        ctx, lambda zoneplay: zoneplay.play_favorite(favorite, list(devices))
    )

    console = Console()
    console.print(result.message)

    if result.group:
        for failure in result.group.failures:
            console.print(
                f"[yellow]{failure.device_id} did not join: {failure.reason}[/yellow]"
            )

    if result.status != "playing":
        raise click.exceptions.Exit(1)


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.argument("level", type=click.IntRange(0, 100))
@click.option(
    "--device",
    "-d",
    "devices",
    help="Speaker UUID; repeat for more speakers.",
    metavar="UUID",
    type=click.STRING,
    multiple=True,
    required=True,
)
@click.pass_context
def volume(ctx, level, devices):
    """
    Set the volume (0-100) on one or more speakers.
    """
    results = run_zoneplay(
        ctx, lambda zoneplay: zoneplay.set_volume(level, list(devices))
    )

    console = Console()

    for device in devices:
        if device in results:
            console.print(f"{device}: {results[device]}")
        else:
            console.print(f"[red]{device}: volume not set[/red]")


if __name__ == "__main__":
    cli()
