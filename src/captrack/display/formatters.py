"""Rich formatting for generation runs and model health."""

from rich.table import Table

from captrack.core.company_time import format_local_time
from captrack.core.models import CircuitState, GapDetectionResult, GenerationRunResult, ModelHealthSummary
from captrack.display.console import console

CIRCUIT_STYLES = {
    CircuitState.NORMAL: "green",
    CircuitState.PROBE: "yellow",
    CircuitState.SKIP: "red",
}


def create_generation_table(results: list[GenerationRunResult], title: str = "Entry Generation") -> Table:
    """Create a Rich table with one row per generated date."""
    table = Table(title=title)
    table.add_column("Date", style="cyan")
    table.add_column("Developers", justify="right")
    table.add_column("Entries", justify="right", style="green")
    table.add_column("Errors", justify="right")

    for result in results:
        error_style = "red" if result.errors else "dim"
        table.add_row(
            result.date,
            str(result.developers),
            str(result.entries_created),
            f"[{error_style}]{len(result.errors)}[/]",
        )

    return table


def display_run_errors(results: list[GenerationRunResult]) -> None:
    for result in results:
        for error in result.errors:
            console.print(f"[red]{result.date}: {error}[/red]")


def display_generation_result(result: GenerationRunResult) -> None:
    console.print(create_generation_table([result]))
    display_run_errors([result])


def display_gap_detection_result(result: GapDetectionResult) -> None:
    """Show the daily run and any backfilled dates."""
    console.print(create_generation_table([result.primary], title="Daily Run"))
    if result.backfilled:
        console.print(create_generation_table(result.backfilled, title="Backfilled Dates"))
    else:
        console.print("[dim]No gaps found in the lookback window[/dim]")
    display_run_errors([result.primary, *result.backfilled])


def create_model_health_table(summary: ModelHealthSummary) -> Table:
    """Create a Rich table of model telemetry per prompt type."""
    table = Table(title=f"Model Health (last {summary.window_hours:g}h)")
    table.add_column("Prompt", style="cyan")
    table.add_column("Circuit", style="bold")
    table.add_column("Success", justify="right", style="green")
    table.add_column("Retry", justify="right", style="yellow")
    table.add_column("Fallback", justify="right", style="red")
    table.add_column("Error", justify="right", style="red")
    table.add_column("Success Rate", justify="right")
    table.add_column("Avg Latency", justify="right")
    table.add_column("Last Event", style="dim")

    for health in summary.by_prompt:
        style = CIRCUIT_STYLES[health.circuit_state]
        rate = f"{health.success_rate:.0%}" if health.success_rate is not None else "N/A"
        latency = f"{health.avg_latency_ms / 1000:.1f}s" if health.avg_latency_ms is not None else "N/A"
        last = format_local_time(health.last_event_at) if health.last_event_at else "N/A"
        table.add_row(
            health.prompt.value,
            f"[{style}]{health.circuit_state.value}[/]",
            str(health.successes),
            str(health.retries),
            str(health.fallbacks),
            str(health.errors),
            rate,
            latency,
            last,
        )

    return table


def display_model_health(summary: ModelHealthSummary) -> None:
    local_status = "[green]enabled[/green]" if summary.local_enabled else "[yellow]disabled[/yellow]"
    console.print(f"Local model: [magenta]{summary.local_model}[/] ({local_status})")
    console.print(f"Fallback model: [magenta]{summary.fallback_model}[/]")
    console.print(create_model_health_table(summary))
