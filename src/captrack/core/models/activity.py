"""Raw developer activity records: sessions, commits and hook tool events."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TimestampedPrompt(BaseModel):
    """A single human prompt from a session transcript."""

    time: datetime
    text: str


class DailyBreakdown(BaseModel):
    """Per-day slice of a session that may span several calendar days."""

    date: str = Field(description="Calendar date (YYYY-MM-DD) in the company timezone")
    first_timestamp: datetime | None = None
    last_timestamp: datetime | None = None
    active_minutes: float = Field(default=0.0, description="Gap-aware active minutes on this date")
    wall_clock_minutes: float = Field(default=0.0, description="First-to-last message span, breaks included")
    message_count: int = 0
    tool_use_count: int = 0
    user_prompt_count: int = 0
    user_prompt_samples: list[str] = Field(default_factory=list)
    user_prompts: list[TimestampedPrompt] = Field(default_factory=list)

    @property
    def has_activity(self) -> bool:
        return self.message_count > 0 or self.active_minutes > 0


class ActivitySession(BaseModel):
    """A Claude Code session as synced by the ingestion agent."""

    id: str
    developer_id: str
    session_id: str
    project_path: str = Field(description="Claude project path (e.g. -home-dev-repo) or local path")
    started_at: datetime
    ended_at: datetime | None = None
    duration_seconds: int | None = None
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    message_count: int = 0
    tool_use_count: int = 0
    model: str | None = None
    tool_breakdown: dict[str, int] | None = None
    files_referenced: list[str] = Field(default_factory=list)
    first_user_prompt: str | None = None
    user_prompt_count: int | None = None
    daily_breakdown: list[DailyBreakdown] | None = None

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    def breakdown_for(self, date_str: str) -> DailyBreakdown | None:
        """Return the per-day slice for a date, if the session carries one."""
        for day in self.daily_breakdown or []:
            if day.date == date_str:
                return day
        return None

    def day_view(self, date_str: str) -> DailyBreakdown:
        """Metrics for one date, falling back to session totals when there is no breakdown."""
        day = self.breakdown_for(date_str)
        if day is not None:
            return day
        return DailyBreakdown(
            date=date_str,
            message_count=self.message_count,
            tool_use_count=self.tool_use_count,
            user_prompt_count=self.user_prompt_count or 0,
        )

    def is_active_on(self, date_str: str) -> bool:
        """Whether the session did real work on the date.

        Sessions without any breakdown are trusted on time overlap alone. When a
        breakdown exists, the date must be present and show messages or active time,
        so a long multi-day session cannot inflate an idle day.
        """
        if not self.daily_breakdown:
            return True
        day = self.breakdown_for(date_str)
        return day is not None and day.has_activity


class CommitRecord(BaseModel):
    """A git commit synced from a developer machine."""

    id: str
    developer_id: str
    commit_hash: str
    repo_path: str
    committed_at: datetime
    message: str
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0

    @property
    def lines_changed(self) -> int:
        return self.insertions + self.deletions


class ToolEvent(BaseModel):
    """A single real-time tool invocation captured by hooks."""

    id: str
    developer_id: str
    tool_name: str
    project_path: str | None = None
    timestamp: datetime
    tool_input: dict[str, Any] = Field(default_factory=dict, description="Sanitized tool input")
    response_preview: str | None = None

    @property
    def file_path(self) -> str | None:
        value = self.tool_input.get("file_path")
        return value if isinstance(value, str) else None


class ActiveTimeSource(str, Enum):
    """Where an active-time figure came from."""

    TOOL_EVENTS = "tool_events"
    SESSION_DURATION = "session_duration"
    ESTIMATE = "estimate"


class ActiveTimeResult(BaseModel):
    """Gap-aware active time computed from event timestamps."""

    active_minutes: int = 0
    total_minutes: int = 0
    idle_minutes: int = 0
    event_count: int = 0
    source: ActiveTimeSource = ActiveTimeSource.TOOL_EVENTS
