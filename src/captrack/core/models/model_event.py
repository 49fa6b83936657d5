"""Model invocation options, results and telemetry."""

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class ModelEventType(str, Enum):
    """Outcome of a single model attempt."""

    SUCCESS = "success"
    RETRY = "retry"
    FALLBACK = "fallback"
    ERROR = "error"


class PromptType(str, Enum):
    """Which pipeline stage issued the prompt. The circuit breaker is tracked per type."""

    GENERATION = "generation"
    CLASSIFICATION = "classification"


class CircuitState(str, Enum):
    """How the gateway should treat the local model on the next call.

    NORMAL: full retry budget.
    SKIP: recent calls all fell back and the cooldown has not elapsed; go straight to the fallback model.
    PROBE: same failure streak but cooldown elapsed; a single attempt tests recovery.
    """

    NORMAL = "normal"
    SKIP = "skip"
    PROBE = "probe"


class ModelEvent(BaseModel):
    """Telemetry record for one model attempt. Append-only."""

    id: int | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: ModelEventType
    model_attempted: str
    model_used: str | None = None
    target_date: str | None = None
    error_message: str | None = None
    attempt: int | None = None
    latency_ms: int | None = None
    prompt: PromptType = PromptType.GENERATION


class CompletionOptions(BaseModel):
    """Per-call options for ModelGateway.complete."""

    max_tokens: int = 2048
    json_mode: bool = True
    target_date: str | None = None
    prompt_type: PromptType = PromptType.GENERATION
    response_check: Callable[[str], bool] | None = Field(
        default=None,
        exclude=True,
        description="Strict decode applied to local-model output; False is treated as a failed attempt",
    )


class CompletionResult(BaseModel):
    """Text returned by whichever model answered, with provenance."""

    text: str
    model_used: str
    fallback: bool
    input_tokens: int = 0
    output_tokens: int = 0
    retry_count: int = Field(default=0, description="Retries needed before success (0 = first attempt worked)")


class PromptTypeHealth(BaseModel):
    """Model health for one prompt type."""

    prompt: PromptType
    circuit_state: CircuitState
    successes: int = 0
    retries: int = 0
    fallbacks: int = 0
    errors: int = 0
    avg_latency_ms: float | None = None
    last_event_at: datetime | None = None

    @property
    def success_rate(self) -> float | None:
        attempts = self.successes + self.fallbacks
        if attempts == 0:
            return None
        return self.successes / attempts


class ModelHealthSummary(BaseModel):
    """Summary of recent model telemetry."""

    window_hours: float
    local_model: str
    local_enabled: bool
    fallback_model: str
    by_prompt: list[PromptTypeHealth] = Field(default_factory=list)
