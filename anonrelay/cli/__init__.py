"""anonrelay CLI — command line interface."""

import click
from anonrelay import __version__
from .shared import console


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="anonrelay")
@click.pass_context
def cli(ctx):
    """anonrelay — anonymous Telegram relay"""
    if ctx.invoked_subcommand is None:
        _show_help()


def _show_help():
    """Print the command overview."""
    console.print(f"[bold]anonrelay v{__version__}[/bold] — anonymous Telegram relay\n")

    commands = [
        ("start", "Start the relay bot"),
        ("status", "Show users, roles and the bound channel (--users for the alias table)"),
    ]
    for name, desc in commands:
        console.print(f"    [bold]anonrelay {name:10s}[/bold] {desc}")
    console.print()
    console.print("[dim]Configuration is read from RELAY_* environment variables or .env.[/dim]")


# Command modules register themselves on the group when imported
from . import cmd_start  # noqa: E402, F401
from . import cmd_status  # noqa: E402, F401


@cli.command(name="help", hidden=True)
def help_cmd():
    """Show all available commands."""
    _show_help()


def main():
    """Console script entry point for `anonrelay`."""
    try:
        cli(prog_name="anonrelay", standalone_mode=False)
    except click.UsageError as e:
        e.show()
        console.print("[dim]Run 'anonrelay help' to list commands.[/dim]")
        raise SystemExit(e.exit_code)
    except click.ClickException as e:
        e.show()
        raise SystemExit(e.exit_code)
    except click.Abort:
        raise SystemExit(1)
    except click.exceptions.Exit as e:
        raise SystemExit(e.exit_code)
