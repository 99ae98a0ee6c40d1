"""Status command: offline view of the relay state."""

import asyncio

import click
from rich.table import Table

from . import cli
from .shared import console, load_settings_or_exit


async def _load_store(settings):
    from anonrelay.db.backing import create_backing
    from anonrelay.store import StateStore

    backing = create_backing(settings)
    store = StateStore(backing)
    try:
        await store.load()
    finally:
        close = getattr(backing, "close", None)
        if close:
            await close()
    return store


@cli.command()
@click.option("--users", "show_users", is_flag=True, help="List every alias with its ban flag")
def status(show_users):
    """Show users, roles and the bound channel."""
    from anonrelay.errors import StoreUnavailable
    from anonrelay.models import Role

    settings = load_settings_or_exit()
    try:
        store = asyncio.run(_load_store(settings))
    except StoreUnavailable as e:
        raise click.ClickException(f"Relay state unavailable: {e}")

    records = [record for _, record in store.records()]
    by_role = {role: sum(1 for r in records if r.role == role) for role in Role}
    banned = sum(1 for r in records if r.banned)

    console.print(f"[bold]Backing:[/bold] {store.backing!r}")
    if store.channel_id:
        console.print(f"[bold]Channel:[/bold] {store.channel_id}")
    elif settings.channel_id:
        console.print(f"[bold]Channel:[/bold] {settings.channel_id} [dim](fallback from config)[/dim]")
    else:
        console.print("[bold]Channel:[/bold] [yellow]not bound[/yellow]")
    console.print(
        f"[bold]Users:[/bold] {len(records)} "
        f"(IT: {by_role[Role.IT]}, CN: {by_role[Role.CN]}, banned: {banned})"
    )

    if show_users and records:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Alias")
        table.add_column("Role")
        table.add_column("Banned")
        for record in sorted(records, key=lambda r: r.alias or ""):
            table.add_row(record.alias or "-", record.role.value if record.role else "-", "yes" if record.banned else "")
        console.print(table)
