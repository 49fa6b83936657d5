"""Daily entries, model-proposed candidates and the statistics attached to them."""

from datetime import date, datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from captrack.core.models.project import ProjectPhase


class EntryStatus(str, Enum):
    """Lifecycle of a daily entry. The pipeline only ever creates PENDING or FLAGGED."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    APPROVED = "approved"
    DISPUTED = "disputed"
    FLAGGED = "flagged"


class WorkType(str, Enum):
    """Nature of the work performed."""

    CODING = "coding"
    DEBUGGING = "debugging"
    REFACTORING = "refactoring"
    RESEARCH = "research"
    CODE_REVIEW = "code_review"
    TESTING = "testing"
    DOCUMENTATION = "documentation"
    DEVOPS = "devops"


class PeriodStatus(str, Enum):
    """Accounting period lock state. Only LOCKED blocks generation."""

    OPEN = "open"
    SOFT_CLOSE = "soft_close"
    LOCKED = "locked"


LOW_ACTIVITY_FLAG = "low_activity"


class EntryCandidate(BaseModel):
    """One per-project estimate proposed by the model for a developer's day.

    Decoded strictly from the model's JSON: unknown phases, negative hours or
    out-of-range confidence reject the whole response.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    project_id: str | None = Field(default=None, validation_alias=AliasChoices("projectId", "project_id"))
    project_name: str = Field(validation_alias=AliasChoices("projectName", "project_name"))
    summary: str
    hours_estimate: float = Field(ge=0, le=24, validation_alias=AliasChoices("hoursEstimate", "hours_estimate"))
    confidence: float = Field(ge=0, le=1)
    reasoning: str = ""
    phase_suggestion: ProjectPhase | None = Field(
        default=None, validation_alias=AliasChoices("phaseSuggestion", "phase_suggestion", "phase")
    )
    enhancement_suggested: bool = Field(
        default=False, validation_alias=AliasChoices("enhancementSuggested", "enhancement_suggested")
    )
    enhancement_reason: str | None = Field(
        default=None, validation_alias=AliasChoices("enhancementReason", "enhancement_reason")
    )

    @field_validator("project_id", mode="before")
    @classmethod
    def normalize_missing_project(cls, v: object) -> object:
        if isinstance(v, str) and v.strip().lower() in ("", "null", "none", "unmatched"):
            return None
        return v


class DailyEntry(BaseModel):
    """A generated per-project, per-day hour attribution."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    developer_id: str
    date: str = Field(description="Calendar date (YYYY-MM-DD) in the company timezone")
    project_id: str | None = None
    hours_raw: float = Field(ge=0)
    adjustment_factor: float = 1.0
    hours_estimated: float = Field(ge=0)
    phase_auto: ProjectPhase | None = None
    description_auto: str = ""
    confidence_score: float = Field(default=0.0, ge=0, le=1)
    model_used: str | None = None
    model_fallback: bool = False
    source_session_ids: list[str] = Field(default_factory=list)
    source_commit_ids: list[str] = Field(default_factory=list)
    status: EntryStatus = EntryStatus.PENDING
    work_type: WorkType | None = None
    outlier_flag: str | None = None
    hours_confirmed: float | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def unassigned_entries_are_flagged(self) -> "DailyEntry":
        if self.project_id is None and self.status != EntryStatus.FLAGGED:
            raise ValueError("entries without a project must be flagged for review")
        return self


class HistoricalEntry(BaseModel):
    """Confirmed hours from a past entry, the input to cross-validation."""

    date: date
    hours_confirmed: float | None = None
    project_id: str | None = None


class HistoricalStats(BaseModel):
    """Trailing baseline summary shown to the model as calibration context."""

    avg_hours_per_day: float
    avg_projects_per_day: float
    confirmed_days: int
    period_days: int


class CrossValidationResult(BaseModel):
    """Outcome of comparing an estimate against the developer's history."""

    is_outlier: bool = False
    flag: str | None = None
    z_score: float = 0.0
    avg_hours_per_day: float = 0.0
    std_dev: float = 0.0


class ClassificationInput(BaseModel):
    """Evidence used to classify the work behind one entry."""

    tool_breakdown: dict[str, int] | None = None
    files_referenced: list[str] = Field(default_factory=list)
    user_prompt_samples: list[str] = Field(default_factory=list)
    commit_messages: list[str] = Field(default_factory=list)
    summary: str = ""


class ClassificationResult(BaseModel):
    """A work type with the classifier's confidence in it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    work_type: WorkType = Field(validation_alias=AliasChoices("workType", "work_type"))
    confidence: float = Field(ge=0, le=1, strict=True)


class GenerationRunResult(BaseModel):
    """Counts and per-developer errors from generating one date."""

    date: str
    developers: int = 0
    entries_created: int = 0
    errors: list[str] = Field(default_factory=list)


class GapDetectionResult(BaseModel):
    """The daily run plus any backfilled dates."""

    primary: GenerationRunResult
    backfilled: list[GenerationRunResult] = Field(default_factory=list)
