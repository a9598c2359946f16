"""CLI entry point for docwatch."""

from __future__ import annotations

import click

from docwatch.cli.commands import (
    cancel,
    diff,
    init_db,
    list_watches,
    match,
    run,
    watch,
)


@click.group()
def cli() -> None:
    """Document change monitoring with keyword notifications."""


cli.add_command(init_db)
cli.add_command(watch)
cli.add_command(cancel)
cli.add_command(list_watches)
cli.add_command(run)
cli.add_command(diff)
cli.add_command(match)
