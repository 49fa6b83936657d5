"""Completion gateway: local model first, hosted fallback second.

The local model is an OpenAI-compatible chat completions endpoint (LM Studio,
Ollama, vLLM). It gets a bounded number of attempts, governed by a circuit
breaker reconstructed from the stored model events on every call. When it is
disabled, failing or skipped, the hosted Anthropic model answers instead.
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import httpx
from pydantic import BaseModel, Field, ValidationError
from pydantic_ai import Agent
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.providers.anthropic import AnthropicProvider

from captrack.attribution.services.response_parser import looks_like_json, strip_reasoning
from captrack.core.database import AttributionDatabase
from captrack.core.models import (
    CircuitState,
    CompletionOptions,
    CompletionResult,
    ModelEvent,
    ModelEventType,
    ModelResponseError,
    ModelUnavailableError,
    PromptType,
)
from captrack.core.settings import Settings, settings

logger = logging.getLogger(__name__)

CIRCUIT_SKIP_MESSAGE = "Circuit breaker open, skipped retries"

LOCAL_MODEL_ERRORS = (httpx.HTTPError, ModelResponseError, ValueError)


class ChatMessage(BaseModel):
    content: str | None = None


class ChatChoice(BaseModel):
    message: ChatMessage


class ChatUsage(BaseModel):
    prompt_tokens: int | None = None
    completion_tokens: int | None = None


class ChatCompletionResponse(BaseModel):
    """The subset of an OpenAI-compatible chat completions body the gateway reads."""

    choices: list[ChatChoice] = Field(min_length=1)
    usage: ChatUsage | None = None


def get_fallback_agent(config: Settings | None = None) -> Agent:
    """Build the hosted fallback agent from settings."""
    config = config or settings
    provider = AnthropicProvider(api_key=config.anthropic_api_key or None)
    return Agent(model=AnthropicModel(config.fallback_model, provider=provider))


class ModelGateway:
    """Single entry point for model completions used by the attribution pipeline."""

    def __init__(
        self,
        db: AttributionDatabase | None = None,
        http_client: httpx.Client | None = None,
        fallback_agent: Agent | None = None,
        config: Settings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.db = db or AttributionDatabase()
        self.config = config or settings
        self.http_client = http_client or httpx.Client(timeout=self.config.model_request_timeout_seconds)
        self._fallback_agent = fallback_agent
        self._sleep = sleep

    @property
    def local_model(self) -> str:
        return self.config.local_model_name

    @property
    def fallback_model(self) -> str:
        return self.config.fallback_model

    def get_circuit_state(self, prompt_type: PromptType, now: datetime | None = None) -> CircuitState:
        """Derive the breaker state from the latest success/fallback events for a prompt type."""
        try:
            events = self.db.get_recent_model_events(
                prompt_type,
                self.config.circuit_breaker_window,
                (ModelEventType.SUCCESS, ModelEventType.FALLBACK),
            )
        except Exception as e:
            logger.warning(f"Could not read model events, assuming circuit closed: {e}")
            return CircuitState.NORMAL

        if len(events) < self.config.circuit_breaker_min_failures:
            return CircuitState.NORMAL

        if not all(event.event_type == ModelEventType.FALLBACK for event in events):
            return CircuitState.NORMAL

        now = now or datetime.now(timezone.utc)
        newest = max(event.timestamp for event in events)
        if newest.tzinfo is None:
            newest = newest.replace(tzinfo=timezone.utc)

        if now - newest >= timedelta(minutes=self.config.circuit_breaker_cooldown_minutes):
            return CircuitState.PROBE
        return CircuitState.SKIP

    def complete(self, prompt: str, options: CompletionOptions | None = None) -> CompletionResult:
        """Get a completion, falling back to the hosted model when the local one fails.

        Raises:
            ModelUnavailableError: If the fallback model fails too
        """
        options = options or CompletionOptions()

        if not self.config.local_model_enabled:
            return self._call_fallback_model(prompt, options)

        state = self.get_circuit_state(options.prompt_type)
        if state == CircuitState.SKIP:
            logger.warning(f"Circuit open for {options.prompt_type.value} prompts, using {self.fallback_model}")
            self._log_event(
                ModelEvent(
                    event_type=ModelEventType.FALLBACK,
                    model_attempted=self.local_model,
                    model_used=self.fallback_model,
                    target_date=options.target_date,
                    error_message=CIRCUIT_SKIP_MESSAGE,
                    prompt=options.prompt_type,
                )
            )
            return self._call_fallback_model(prompt, options)

        max_attempts = 1 if state == CircuitState.PROBE else max(1, self.config.model_max_retries)
        if state == CircuitState.PROBE:
            logger.info(f"Probing {self.local_model} for {options.prompt_type.value} prompts after cooldown")

        for attempt in range(1, max_attempts + 1):
            started = time.monotonic()
            try:
                result = self._call_local_model(prompt, options)
                if options.response_check is not None and not options.response_check(result.text):
                    raise ModelResponseError("Response failed schema validation")
            except LOCAL_MODEL_ERRORS as e:
                is_last = attempt == max_attempts
                self._log_event(
                    ModelEvent(
                        event_type=ModelEventType.FALLBACK if is_last else ModelEventType.RETRY,
                        model_attempted=self.local_model,
                        model_used=self.fallback_model if is_last else None,
                        target_date=options.target_date,
                        error_message=str(e),
                        attempt=attempt,
                        prompt=options.prompt_type,
                    )
                )
                logger.warning(f"Local model attempt {attempt}/{max_attempts} failed: {e}")
                if not is_last:
                    self._sleep(self.config.model_retry_delay_seconds)
                continue

            latency_ms = int((time.monotonic() - started) * 1000)
            self._log_event(
                ModelEvent(
                    event_type=ModelEventType.SUCCESS,
                    model_attempted=self.local_model,
                    model_used=self.local_model,
                    target_date=options.target_date,
                    attempt=attempt,
                    latency_ms=latency_ms,
                    prompt=options.prompt_type,
                )
            )
            return result.model_copy(update={"retry_count": attempt - 1})

        logger.warning(f"Local model exhausted {max_attempts} attempt(s), falling back to {self.fallback_model}")
        return self._call_fallback_model(prompt, options)

    def _call_local_model(self, prompt: str, options: CompletionOptions) -> CompletionResult:
        url = f"{self.config.local_model_url.rstrip('/')}/v1/chat/completions"
        response = self.http_client.post(
            url,
            json={
                "model": self.local_model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.1,
                "max_tokens": options.max_tokens,
            },
            timeout=self.config.model_request_timeout_seconds,
        )
        if not response.is_success:
            raise ModelResponseError(f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            data = ChatCompletionResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise ModelResponseError(f"Malformed chat completions body: {e.error_count()} error(s)") from e

        text = strip_reasoning(data.choices[0].message.content or "")
        if not text:
            raise ModelResponseError("Empty response from local model")

        if options.json_mode and not looks_like_json(text):
            raise ModelResponseError("Response does not contain JSON")

        usage = data.usage or ChatUsage()
        return CompletionResult(
            text=text,
            model_used=self.local_model,
            fallback=False,
            input_tokens=usage.prompt_tokens or 0,
            output_tokens=usage.completion_tokens or 0,
        )

    def _get_fallback_agent(self) -> Agent:
        if self._fallback_agent is None:
            self._fallback_agent = get_fallback_agent(self.config)
        return self._fallback_agent

    def _call_fallback_model(self, prompt: str, options: CompletionOptions) -> CompletionResult:
        try:
            agent = self._get_fallback_agent()
            result = agent.run_sync(prompt, model_settings={"max_tokens": options.max_tokens})
        except Exception as e:
            logger.error(f"Fallback model {self.fallback_model} failed: {e}")
            raise ModelUnavailableError(f"Fallback model {self.fallback_model} failed: {e}") from e

        usage = result.usage()
        return CompletionResult(
            text=strip_reasoning(str(result.output)),
            model_used=self.fallback_model,
            fallback=True,
            input_tokens=usage.input_tokens or 0,
            output_tokens=usage.output_tokens or 0,
        )

    def _log_event(self, event: ModelEvent) -> None:
        try:
            self.db.save_model_event(event)
        except Exception as e:
            logger.debug(f"Failed to record model event: {e}")
