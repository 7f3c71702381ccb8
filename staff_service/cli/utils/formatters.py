"""Output formatting utilities for CLI commands."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import click


def success(message: str) -> None:
    """Print a success message in green."""
    click.secho(f"✓ {message}", fg="green")


def error(message: str) -> None:
    """Print an error message in red."""
    click.secho(f"✗ {message}", fg="red", err=True)


def warning(message: str) -> None:
    """Print a warning message in yellow."""
    click.secho(f"⚠ {message}", fg="yellow")


def info(message: str) -> None:
    """Print an info message in blue."""
    click.secho(f"ℹ {message}", fg="blue")


def header(message: str) -> None:
    """Print a header message in cyan bold."""
    click.secho(f"\n{message}", fg="cyan", bold=True)


def key_values(values: Mapping[str, Any], indent: int = 2) -> None:
    """Print aligned ``key: value`` lines; None prints as a dash."""
    if not values:
        return
    width = max(len(key) for key in values)
    pad = " " * indent
    for key, value in values.items():
        shown = "-" if value is None else value
        click.echo(f"{pad}{key:<{width}}  {shown}")
