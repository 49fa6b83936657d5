"""Summaries of recent model telemetry for operators."""

from datetime import datetime, timedelta, timezone

from captrack.attribution.services.model_gateway import ModelGateway
from captrack.core.database import AttributionDatabase
from captrack.core.models import ModelEventType, ModelHealthSummary, PromptType, PromptTypeHealth


class ModelHealthService:
    """Reports how the local model has been doing, per prompt type."""

    def __init__(self, db: AttributionDatabase | None = None, gateway: ModelGateway | None = None):
        self.db = db or AttributionDatabase()
        self.gateway = gateway or ModelGateway(db=self.db)

    def get_health_summary(self, hours: float = 24, now: datetime | None = None) -> ModelHealthSummary:
        """Count model events in the window and report the current circuit state."""
        now = now or datetime.now(timezone.utc)
        events = self.db.get_model_events_since(now - timedelta(hours=hours))

        by_prompt = []
        for prompt in PromptType:
            prompt_events = [e for e in events if e.prompt == prompt]
            counts = {event_type: 0 for event_type in ModelEventType}
            for event in prompt_events:
                counts[event.event_type] += 1

            latencies = [
                e.latency_ms for e in prompt_events if e.event_type == ModelEventType.SUCCESS and e.latency_ms is not None
            ]
            by_prompt.append(
                PromptTypeHealth(
                    prompt=prompt,
                    circuit_state=self.gateway.get_circuit_state(prompt, now=now),
                    successes=counts[ModelEventType.SUCCESS],
                    retries=counts[ModelEventType.RETRY],
                    fallbacks=counts[ModelEventType.FALLBACK],
                    errors=counts[ModelEventType.ERROR],
                    avg_latency_ms=sum(latencies) / len(latencies) if latencies else None,
                    last_event_at=max((e.timestamp for e in prompt_events), default=None),
                )
            )

        return ModelHealthSummary(
            window_hours=hours,
            local_model=self.gateway.local_model,
            local_enabled=self.gateway.config.local_model_enabled,
            fallback_model=self.gateway.fallback_model,
            by_prompt=by_prompt,
        )
