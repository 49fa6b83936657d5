"""Shared test fixtures and helpers."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import httpx
import pytest

from captrack.core.database import AttributionDatabase
from captrack.core.models import (
    ActivitySession,
    ClaudePathMapping,
    CommitRecord,
    DailyBreakdown,
    Developer,
    Project,
    ProjectPhase,
    ToolEvent,
)
from captrack.core.settings import Settings

# 2026-02-10 in America/New_York runs 05:00Z to 04:59:59Z the next day
TARGET_DATE = "2026-02-10"


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def make_settings(**overrides) -> Settings:
    """Settings isolated from .env files, with no retry delay."""
    values = {
        "timezone": "America/New_York",
        "model_retry_delay_seconds": 0.0,
        "lock_timeout_seconds": 1.0,
        "classification_workers": 2,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_developer(**overrides) -> Developer:
    values = {"id": "dev-1", "email": "ada@example.com", "display_name": "Ada"}
    values.update(overrides)
    return Developer(**values)


def make_project(**overrides) -> Project:
    values = {
        "id": "proj-acme",
        "name": "Acme Portal",
        "phase": ProjectPhase.APPLICATION_DEVELOPMENT,
        "repo_paths": ["/home/ada/acme"],
        "claude_paths": [ClaudePathMapping(claude_path="-home-ada-acme", local_path="/home/ada/acme")],
    }
    values.update(overrides)
    return Project(**values)


def make_breakdown(date: str = TARGET_DATE, **overrides) -> DailyBreakdown:
    values = {
        "date": date,
        "first_timestamp": utc(2026, 2, 10, 14, 0),
        "last_timestamp": utc(2026, 2, 10, 17, 0),
        "active_minutes": 120.0,
        "wall_clock_minutes": 180.0,
        "message_count": 40,
        "tool_use_count": 25,
        "user_prompt_count": 6,
    }
    values.update(overrides)
    return DailyBreakdown(**values)


def make_session(**overrides) -> ActivitySession:
    values = {
        "id": "sess-row-1",
        "developer_id": "dev-1",
        "session_id": "a1b2c3d4e5f6",
        "project_path": "-home-ada-acme",
        "started_at": utc(2026, 2, 10, 14, 0),
        "ended_at": utc(2026, 2, 10, 17, 0),
        "duration_seconds": 3 * 3600,
        "total_input_tokens": 1000,
        "total_output_tokens": 500,
        "message_count": 40,
        "tool_use_count": 25,
        "model": "claude-sonnet",
        "tool_breakdown": {"Edit": 10, "Read": 8, "Bash": 7},
        "files_referenced": ["/home/ada/acme/src/app.py"],
        "daily_breakdown": [make_breakdown()],
    }
    values.update(overrides)
    return ActivitySession(**values)


def make_commit(**overrides) -> CommitRecord:
    values = {
        "id": "commit-row-1",
        "developer_id": "dev-1",
        "commit_hash": "0123456789abcdef",
        "repo_path": "/home/ada/acme",
        "committed_at": utc(2026, 2, 10, 16, 30),
        "message": "Add invoice export",
        "files_changed": 3,
        "insertions": 25,
        "deletions": 10,
    }
    values.update(overrides)
    return CommitRecord(**values)


def make_tool_event(**overrides) -> ToolEvent:
    values = {
        "id": "tool-1",
        "developer_id": "dev-1",
        "tool_name": "Edit",
        "project_path": "/home/ada/acme",
        "timestamp": utc(2026, 2, 10, 15, 0),
        "tool_input": {"file_path": "/home/ada/acme/src/app.py"},
    }
    values.update(overrides)
    return ToolEvent(**values)


def candidate_json(**overrides) -> dict:
    """One entry as the model would return it."""
    values = {
        "projectId": "proj-acme",
        "projectName": "Acme Portal",
        "summary": "Built invoice export",
        "hoursEstimate": 3.0,
        "phaseSuggestion": "application_development",
        "confidence": 0.9,
        "reasoning": "One session, one commit",
    }
    values.update(overrides)
    return values


def chat_response(content: str, status_code: int = 200, prompt_tokens: int = 120, completion_tokens: int = 40):
    """An OpenAI-compatible chat completions response."""
    if status_code != 200:
        return httpx.Response(status_code, text=content)
    return httpx.Response(
        200,
        json={
            "choices": [{"message": {"role": "assistant", "content": content}}],
            "usage": {"prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens},
        },
    )


def make_fallback_agent(output: str = "[]", input_tokens: int = 300, output_tokens: int = 80) -> MagicMock:
    """A stand-in for the pydantic-ai fallback agent."""
    run_result = MagicMock()
    run_result.output = output
    run_result.usage.return_value = MagicMock(input_tokens=input_tokens, output_tokens=output_tokens)
    agent = MagicMock()
    agent.run_sync.return_value = run_result
    return agent


def entries_text(*candidates: dict) -> str:
    return f"```json\n{json.dumps(list(candidates))}\n```"


@pytest.fixture
def db(tmp_path) -> AttributionDatabase:
    return AttributionDatabase(tmp_path / "captrack.db")
