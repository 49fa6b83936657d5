"""CLI commands for daily entry generation and model monitoring."""

import sys
from datetime import date

import click

from captrack.attribution.services.entry_attribution import EntryAttributionEngine
from captrack.attribution.services.model_health_service import ModelHealthService
from captrack.display.console import console
from captrack.display.formatters import (
    display_gap_detection_result,
    display_generation_result,
    display_model_health,
)


def validate_date(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    """Accept YYYY-MM-DD dates only."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError as e:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {value!r}") from e


@click.command()
@click.option("--date", "target_date", default=None, callback=validate_date, help="Date to generate (default: yesterday)")
def generate(target_date: str | None) -> None:
    """Generate daily entries for every active developer."""
    engine = EntryAttributionEngine()
    result = engine.generate_entries_for_date(target_date)
    display_generation_result(result)

    if result.errors:
        sys.exit(1)


@click.command()
def backfill() -> None:
    """Generate yesterday's entries, then fill recent dates that have activity but no entries."""
    engine = EntryAttributionEngine()
    result = engine.generate_with_gap_detection()
    display_gap_detection_result(result)

    if result.primary.errors or any(r.errors for r in result.backfilled):
        sys.exit(1)


@click.command("model-health")
@click.option("--hours", default=24.0, type=float, show_default=True, help="Telemetry window in hours")
def model_health(hours: float) -> None:
    """Show local model success rates, fallbacks and circuit breaker state."""
    if hours <= 0:
        console.print("[red]--hours must be positive[/red]")
        sys.exit(2)

    service = ModelHealthService()
    display_model_health(service.get_health_summary(hours))
