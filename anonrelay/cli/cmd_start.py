"""Start command."""

import asyncio
import logging

import click

from . import cli
from .shared import console, load_settings_or_exit


@cli.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def start(debug):
    """Start the relay bot."""
    from anonrelay.errors import StoreUnavailable
    from anonrelay.main import run, setup_logging

    settings = load_settings_or_exit()
    setup_logging("DEBUG" if debug else settings.log_level, settings.log_file)

    console.print("[bold blue]Starting relay bot...[/bold blue]")
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass
    except StoreUnavailable as e:
        logging.getLogger("anonrelay").critical(f"Cannot load relay state: {e}")
        raise click.ClickException(f"Relay state unavailable: {e}")
