"""Shared utilities for anonrelay CLI commands."""

import click
from pydantic import ValidationError
from rich.console import Console

console = Console()


def load_settings_or_exit():
    """Load settings, turning validation errors into a readable CLI error."""
    from anonrelay.config import load_settings
    try:
        return load_settings()
    except ValidationError as e:
        problems = "; ".join(err["msg"] for err in e.errors())
        raise click.ClickException(f"Invalid configuration: {problems}")
