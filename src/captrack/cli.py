"""Main CLI dispatcher for captrack."""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from captrack.core.settings import settings


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
def cli(verbose: bool) -> None:
    """Captrack - AI-assisted work attribution for software capitalization.

    Turns coding sessions, commits and tool events into per-project daily hour
    entries, flagging anything that needs human review.
    """
    level = logging.DEBUG if verbose or settings.debug_mode else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


from captrack.attribution.cli.commands import backfill, generate, model_health

cli.add_command(generate)
cli.add_command(backfill)
cli.add_command(model_health)


if __name__ == "__main__":
    cli()
