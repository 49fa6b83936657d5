"""Configuration settings for captrack."""

import os
import sys
from pathlib import Path

import pytz
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_default_data_dir() -> Path:
    """Get platform-specific default data directory."""
    app_name = "captrack"

    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA")
        if not base:
            base = Path.home() / "AppData" / "Local"
        return Path(base) / app_name
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / app_name
    else:
        xdg_data_home = os.environ.get("XDG_DATA_HOME")
        if xdg_data_home:
            return Path(xdg_data_home) / app_name
        return Path.home() / ".local" / "share" / app_name


def get_default_config_dir() -> Path:
    """Get platform-specific default config directory."""
    app_name = "captrack"

    if sys.platform in ("win32", "darwin"):
        return get_default_data_dir()

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / app_name
    return Path.home() / ".config" / app_name


class Settings(BaseSettings):
    """Application settings with support for .env files."""

    model_config = SettingsConfigDict(
        env_file=[
            get_default_config_dir() / ".env",
            ".env",
        ],
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="CAPTRACK_",
        extra="ignore",
    )

    database_path: Path | None = None

    debug_mode: bool = False

    local_model_url: str = Field(
        default="http://localhost:11434", description="Base URL of the OpenAI-compatible local completion endpoint"
    )
    local_model_name: str = "qwen/qwen3-32b"
    local_model_enabled: bool = True

    fallback_model: str = Field(
        default="claude-haiku-4-5-20251001", description="Hosted model used when the local model is unavailable"
    )
    anthropic_api_key: str = ""

    timezone: str = Field(
        default="America/New_York", description="Company timezone; defines where a calendar day starts and ends"
    )

    model_max_retries: int = Field(default=3, description="Attempts against the local model before falling back")
    model_retry_delay_seconds: float = 2.0
    model_request_timeout_seconds: float = 180.0

    circuit_breaker_window: int = Field(default=5, description="Number of recent model events inspected")
    circuit_breaker_min_failures: int = Field(
        default=3, description="Consecutive fallbacks required before the circuit opens"
    )
    circuit_breaker_cooldown_minutes: float = 30.0

    generation_max_tokens: int = 4096
    classification_max_tokens: int = 128
    classification_workers: int = Field(default=4, description="Thread pool size for per-entry classification")

    transcript_char_budget: int = Field(
        default=12_000, description="Character budget for the timestamped prompt transcript in the generation prompt"
    )

    history_window_days: int = Field(default=30, description="Trailing window for the confirmed-hours baseline")
    gap_lookback_days: int = Field(default=7, description="Days scanned for missed runs after the daily generation")

    lock_timeout_seconds: float = 5.0

    @field_validator("database_path", mode="before")
    @classmethod
    def validate_database_path(cls, v: str | Path | None) -> Path | None:
        """Convert string paths to Path objects."""
        if v is None:
            return None
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @property
    def resolved_database_path(self) -> Path:
        """Get the resolved database path, using default if not set."""
        if self.database_path is not None:
            return self.database_path.resolve()

        return get_default_data_dir() / "captrack.db"


settings = Settings()
