"""Tests for the captrack command line."""

from datetime import datetime, timezone
from unittest.mock import patch

from click.testing import CliRunner

from captrack.cli import cli
from captrack.core.models import (
    CircuitState,
    GapDetectionResult,
    GenerationRunResult,
    ModelHealthSummary,
    PromptType,
    PromptTypeHealth,
)

COMMANDS = "captrack.attribution.cli.commands"


def test_cli__lists_commands() -> None:
    result = CliRunner().invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("generate", "backfill", "model-health"):
        assert command in result.output


def test_generate__runs_engine_for_requested_date() -> None:
    with patch(f"{COMMANDS}.EntryAttributionEngine") as engine_cls:
        engine_cls.return_value.generate_entries_for_date.return_value = GenerationRunResult(
            date="2026-02-10", developers=2, entries_created=3
        )

        result = CliRunner().invoke(cli, ["generate", "--date", "2026-02-10"])

    assert result.exit_code == 0
    engine_cls.return_value.generate_entries_for_date.assert_called_once_with("2026-02-10")
    assert "2026-02-10" in result.output


def test_generate__defaults_to_engine_chosen_date() -> None:
    with patch(f"{COMMANDS}.EntryAttributionEngine") as engine_cls:
        engine_cls.return_value.generate_entries_for_date.return_value = GenerationRunResult(date="2026-02-09")

        result = CliRunner().invoke(cli, ["generate"])

    assert result.exit_code == 0
    engine_cls.return_value.generate_entries_for_date.assert_called_once_with(None)


def test_generate__exits_nonzero_on_developer_errors() -> None:
    with patch(f"{COMMANDS}.EntryAttributionEngine") as engine_cls:
        engine_cls.return_value.generate_entries_for_date.return_value = GenerationRunResult(
            date="2026-02-10", developers=1, errors=["Failed to generate entries for ada@example.com: down"]
        )

        result = CliRunner().invoke(cli, ["generate", "--date", "2026-02-10"])

    assert result.exit_code == 1
    assert "ada@example.com" in result.output


def test_generate__rejects_malformed_date() -> None:
    with patch(f"{COMMANDS}.EntryAttributionEngine") as engine_cls:
        result = CliRunner().invoke(cli, ["generate", "--date", "02/10/2026"])

    assert result.exit_code == 2
    assert "YYYY-MM-DD" in result.output
    engine_cls.assert_not_called()


def test_backfill__reports_backfilled_dates() -> None:
    with patch(f"{COMMANDS}.EntryAttributionEngine") as engine_cls:
        engine_cls.return_value.generate_with_gap_detection.return_value = GapDetectionResult(
            primary=GenerationRunResult(date="2026-02-11", developers=1),
            backfilled=[GenerationRunResult(date="2026-02-08", developers=1, entries_created=2)],
        )

        result = CliRunner().invoke(cli, ["backfill"])

    assert result.exit_code == 0
    assert "Backfilled Dates" in result.output
    assert "2026-02-08" in result.output


def test_backfill__reports_no_gaps() -> None:
    with patch(f"{COMMANDS}.EntryAttributionEngine") as engine_cls:
        engine_cls.return_value.generate_with_gap_detection.return_value = GapDetectionResult(
            primary=GenerationRunResult(date="2026-02-11")
        )

        result = CliRunner().invoke(cli, ["backfill"])

    assert result.exit_code == 0
    assert "No gaps found" in result.output


def test_backfill__exits_nonzero_when_a_backfilled_date_failed() -> None:
    with patch(f"{COMMANDS}.EntryAttributionEngine") as engine_cls:
        engine_cls.return_value.generate_with_gap_detection.return_value = GapDetectionResult(
            primary=GenerationRunResult(date="2026-02-11"),
            backfilled=[GenerationRunResult(date="2026-02-08", errors=["database is locked"])],
        )

        result = CliRunner().invoke(cli, ["backfill"])

    assert result.exit_code == 1


def test_model_health__prints_models_and_window() -> None:
    summary = ModelHealthSummary(
        window_hours=12,
        local_model="qwen/qwen3-32b",
        local_enabled=True,
        fallback_model="claude-haiku-4-5-20251001",
        by_prompt=[
            PromptTypeHealth(
                prompt=PromptType.GENERATION,
                circuit_state=CircuitState.SKIP,
                successes=1,
                fallbacks=3,
                avg_latency_ms=2500.0,
                last_event_at=datetime(2026, 2, 10, 14, 0, tzinfo=timezone.utc),
            )
        ],
    )
    with patch(f"{COMMANDS}.ModelHealthService") as service_cls:
        service_cls.return_value.get_health_summary.return_value = summary

        result = CliRunner().invoke(cli, ["model-health", "--hours", "12"])

    assert result.exit_code == 0
    service_cls.return_value.get_health_summary.assert_called_once_with(12.0)
    assert "Local model: qwen/qwen3-32b (enabled)" in result.output
    assert "Fallback model: claude-haiku-4-5-20251001" in result.output


def test_model_health__rejects_non_positive_window() -> None:
    with patch(f"{COMMANDS}.ModelHealthService") as service_cls:
        result = CliRunner().invoke(cli, ["model-health", "--hours", "0"])

    assert result.exit_code == 2
    service_cls.assert_not_called()
