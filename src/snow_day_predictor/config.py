"""Typed settings loader for the snow day predictor."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AnyUrl, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")

    geocoding_api_url: AnyUrl = Field(
        default="https://geocoding-api.open-meteo.com/v1/search",
        alias="GEOCODING_API_URL",
    )
    forecast_api_url: AnyUrl = Field(
        default="https://api.open-meteo.com/v1/forecast",
        alias="FORECAST_API_URL",
    )
    nws_alerts_url: AnyUrl = Field(
        default="https://api.weather.gov/alerts/active",
        alias="NWS_ALERTS_URL",
    )
    nws_user_agent: str = Field(
        default="snow-day-predictor/0.1 (contact: forecasts@example.com)",
        alias="NWS_USER_AGENT",
    )
    weather_timeout_seconds: float = Field(default=15.0, alias="WEATHER_TIMEOUT_SECONDS")
    forecast_days: int = Field(default=3, alias="FORECAST_DAYS")

    analysis_window_hours: int = Field(default=72, alias="ANALYSIS_WINDOW_HOURS")
    radar_window_hours: int = Field(default=48, alias="RADAR_WINDOW_HOURS")
    score_local_weight: float = Field(default=0.7, alias="SCORE_LOCAL_WEIGHT")

    advisory_enabled: bool = Field(default=False, alias="ADVISORY_ENABLED")
    advisory_api_url: AnyUrl = Field(
        default="https://api.groq.com/openai/v1/chat/completions",
        alias="ADVISORY_API_URL",
    )
    advisory_api_key: str | None = Field(default=None, alias="ADVISORY_API_KEY", repr=False)
    advisory_models: str = Field(
        default=(
            "llama-3.3-70b-versatile,llama-3.1-70b-versatile,"
            "mixtral-8x7b-32768,llama-3.1-8b-instant"
        ),
        alias="ADVISORY_MODELS",
    )
    advisory_timeout_seconds: float = Field(default=20.0, alias="ADVISORY_TIMEOUT_SECONDS")
    advisory_temperature: float = Field(default=0.3, alias="ADVISORY_TEMPERATURE")
    advisory_max_tokens: int = Field(default=500, alias="ADVISORY_MAX_TOKENS")

    journal_dir: Path = Field(default=Path("./data/journal"), alias="JOURNAL_DIR")
    raw_payload_dir: Path = Field(default=Path("./data/raw"), alias="RAW_PAYLOAD_DIR")
    journal_raw_payloads: bool = Field(default=True, alias="JOURNAL_RAW_PAYLOADS")
    max_print_reasons: int = Field(default=12, alias="MAX_PRINT_REASONS")

    @field_validator("advisory_api_key", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat empty env-string values as unset."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @model_validator(mode="after")
    def validate_ranges(self) -> Settings:
        """Validate numeric ranges and advisory prerequisites."""
        if not self.nws_user_agent.strip():
            raise ValueError("NWS_USER_AGENT must not be empty.")
        if self.weather_timeout_seconds <= 0:
            raise ValueError("WEATHER_TIMEOUT_SECONDS must be > 0.")
        if not (1 <= self.forecast_days <= 16):
            raise ValueError("FORECAST_DAYS must be between 1 and 16.")
        if self.analysis_window_hours <= 0:
            raise ValueError("ANALYSIS_WINDOW_HOURS must be > 0.")
        if self.radar_window_hours <= 0:
            raise ValueError("RADAR_WINDOW_HOURS must be > 0.")
        if not (0.5 <= self.score_local_weight <= 1.0):
            raise ValueError(
                "SCORE_LOCAL_WEIGHT must be between 0.5 and 1.0 so the local "
                "heuristic dominates the blend."
            )
        if self.advisory_timeout_seconds <= 0:
            raise ValueError("ADVISORY_TIMEOUT_SECONDS must be > 0.")
        if not (0 <= self.advisory_temperature <= 2):
            raise ValueError("ADVISORY_TEMPERATURE must be between 0 and 2.")
        if self.advisory_max_tokens <= 0:
            raise ValueError("ADVISORY_MAX_TOKENS must be > 0.")
        if not self.advisory_model_list:
            raise ValueError("ADVISORY_MODELS must list at least one model.")
        if self.advisory_enabled and not self.advisory_api_key:
            raise ValueError("ADVISORY_API_KEY is required when ADVISORY_ENABLED=true.")
        if self.max_print_reasons <= 0:
            raise ValueError("MAX_PRINT_REASONS must be > 0.")
        return self

    @property
    def advisory_model_list(self) -> list[str]:
        """Ordered advisory model fallback list."""
        return [model.strip() for model in self.advisory_models.split(",") if model.strip()]

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for journaling (no credentials)."""
        return {
            "app_env": self.app_env,
            "geocoding_api_url": str(self.geocoding_api_url),
            "forecast_api_url": str(self.forecast_api_url),
            "nws_alerts_url": str(self.nws_alerts_url),
            "weather_timeout_seconds": self.weather_timeout_seconds,
            "forecast_days": self.forecast_days,
            "analysis_window_hours": self.analysis_window_hours,
            "radar_window_hours": self.radar_window_hours,
            "score_local_weight": self.score_local_weight,
            "advisory_enabled": self.advisory_enabled,
            "advisory_models": self.advisory_model_list,
            "advisory_timeout_seconds": self.advisory_timeout_seconds,
            "journal_raw_payloads": self.journal_raw_payloads,
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc

    settings.journal_dir.mkdir(parents=True, exist_ok=True)
    settings.raw_payload_dir.mkdir(parents=True, exist_ok=True)
    return settings
