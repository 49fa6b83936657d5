"""Models package for captrack.

Re-exports all model types from submodules for convenience.
"""

from captrack.core.models.activity import (
    ActiveTimeResult,
    ActiveTimeSource,
    ActivitySession,
    CommitRecord,
    DailyBreakdown,
    TimestampedPrompt,
    ToolEvent,
)
from captrack.core.models.entry import (
    LOW_ACTIVITY_FLAG,
    ClassificationInput,
    ClassificationResult,
    CrossValidationResult,
    DailyEntry,
    EntryCandidate,
    EntryStatus,
    GapDetectionResult,
    GenerationRunResult,
    HistoricalEntry,
    HistoricalStats,
    PeriodStatus,
    WorkType,
)
from captrack.core.models.errors import (
    CaptrackError,
    DuplicateEntryError,
    ModelResponseError,
    ModelUnavailableError,
    PeriodLockedError,
)
from captrack.core.models.model_event import (
    CircuitState,
    CompletionOptions,
    CompletionResult,
    ModelEvent,
    ModelEventType,
    ModelHealthSummary,
    PromptType,
    PromptTypeHealth,
)
from captrack.core.models.project import (
    ClaudePathMapping,
    Developer,
    Project,
    ProjectPhase,
    local_path_to_claude_path,
)

__all__ = [
    # Activity
    "ActiveTimeResult",
    "ActiveTimeSource",
    "ActivitySession",
    "CommitRecord",
    "DailyBreakdown",
    "TimestampedPrompt",
    "ToolEvent",
    # Entries
    "LOW_ACTIVITY_FLAG",
    "ClassificationInput",
    "ClassificationResult",
    "CrossValidationResult",
    "DailyEntry",
    "EntryCandidate",
    "EntryStatus",
    "GapDetectionResult",
    "GenerationRunResult",
    "HistoricalEntry",
    "HistoricalStats",
    "PeriodStatus",
    "WorkType",
    # Errors
    "CaptrackError",
    "DuplicateEntryError",
    "ModelResponseError",
    "ModelUnavailableError",
    "PeriodLockedError",
    # Model telemetry
    "CircuitState",
    "CompletionOptions",
    "CompletionResult",
    "ModelEvent",
    "ModelEventType",
    "ModelHealthSummary",
    "PromptType",
    "PromptTypeHealth",
    # Projects
    "ClaudePathMapping",
    "Developer",
    "Project",
    "ProjectPhase",
    "local_path_to_claude_path",
]
