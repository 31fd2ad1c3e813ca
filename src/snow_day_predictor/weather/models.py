"""Typed models for forecast, current-conditions and alert inputs."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from ..exceptions import InvalidInputError

FEET_PER_MILE = 5280.0
DEFAULT_VISIBILITY_MILES = 10.0

AlertSeverity = Literal["Extreme", "Severe", "Moderate", "Minor", "Unknown"]


class CurrentConditions(BaseModel):
    """Single-valued "now" observation."""

    time: datetime | None = None
    temperature: float = 0.0
    apparent_temperature: float | None = None
    snowfall: float = Field(default=0.0, ge=0.0)
    precipitation: float = Field(default=0.0, ge=0.0)
    precipitation_probability: float = Field(default=0.0, ge=0.0, le=100.0)
    weather_code: int = 0
    wind_speed: float = 0.0
    wind_gust: float = 0.0
    visibility: float = DEFAULT_VISIBILITY_MILES
    humidity: float = Field(default=0.0, ge=0.0, le=100.0)
    cloud_cover: float = Field(default=0.0, ge=0.0, le=100.0)


class ForecastSample(BaseModel):
    """One hour of forecast data with nulls already resolved."""

    time: datetime | None = None
    temperature: float = 0.0
    snowfall: float = Field(default=0.0, ge=0.0)
    precipitation: float = Field(default=0.0, ge=0.0)
    precipitation_probability: float = Field(default=0.0, ge=0.0, le=100.0)
    weather_code: int = 0
    wind_speed: float = 0.0
    wind_gust: float = 0.0
    visibility: float = DEFAULT_VISIBILITY_MILES
    humidity: float = Field(default=0.0, ge=0.0, le=100.0)
    cloud_cover: float = Field(default=0.0, ge=0.0, le=100.0)


class HourlyForecast(BaseModel):
    """Parallel hourly sequences indexed by hour offset from now.

    Visibility is in feet, as delivered by the forecast source.
    """

    time: list[datetime | None] = Field(default_factory=list)
    temperature: list[float | None] = Field(default_factory=list)
    snowfall: list[float | None] = Field(default_factory=list)
    precipitation: list[float | None] = Field(default_factory=list)
    precipitation_probability: list[float | None] = Field(default_factory=list)
    weather_code: list[int | None] = Field(default_factory=list)
    wind_speed: list[float | None] = Field(default_factory=list)
    wind_gust: list[float | None] = Field(default_factory=list)
    visibility: list[float | None] = Field(default_factory=list)
    humidity: list[float | None] = Field(default_factory=list)
    cloud_cover: list[float | None] = Field(default_factory=list)

    @property
    def hours(self) -> int:
        return len(self.temperature)

    def series_lengths(self) -> dict[str, int]:
        """Lengths of every non-empty series."""
        lengths = {
            name: len(getattr(self, name))
            for name in type(self).model_fields
        }
        return {name: length for name, length in lengths.items() if length}

    def to_samples(
        self,
        current: CurrentConditions,
        *,
        drop_past: bool = False,
    ) -> list[ForecastSample]:
        """Convert the parallel series into per-hour samples.

        Optional series (time, humidity, cloud cover, ...) may be omitted
        entirely; any series that is present must match the others in length.
        With ``drop_past``, hours that ended before the hour containing
        ``current.time`` are skipped so index 0 is the current hour.
        """
        lengths = self.series_lengths()
        if len(set(lengths.values())) > 1:
            detail = ", ".join(f"{name}={length}" for name, length in sorted(lengths.items()))
            raise InvalidInputError(f"Hourly forecast series have mismatched lengths: {detail}")
        hours = max(lengths.values(), default=0)
        first = _first_upcoming(self.time, current.time) if drop_past else 0

        samples: list[ForecastSample] = []
        for i in range(first, hours):
            visibility_ft = _at(self.visibility, i)
            samples.append(
                ForecastSample(
                    time=_at(self.time, i),
                    temperature=_or_zero(_at(self.temperature, i)),
                    snowfall=max(0.0, _or_zero(_at(self.snowfall, i))),
                    precipitation=max(0.0, _or_zero(_at(self.precipitation, i))),
                    precipitation_probability=_clamp_pct(
                        _at(self.precipitation_probability, i)
                    ),
                    weather_code=int(_or_zero(_at(self.weather_code, i))),
                    wind_speed=_or_default(_at(self.wind_speed, i), current.wind_speed),
                    wind_gust=_or_default(_at(self.wind_gust, i), current.wind_gust),
                    visibility=(
                        visibility_ft / FEET_PER_MILE
                        if visibility_ft is not None
                        else current.visibility
                    ),
                    humidity=_clamp_pct(_at(self.humidity, i)),
                    cloud_cover=_clamp_pct(_at(self.cloud_cover, i)),
                )
            )
        return samples


class AlertRecord(BaseModel):
    """Normalized government alert."""

    event: str
    severity: AlertSeverity = "Unknown"
    urgency: str = "Unknown"
    headline: str | None = None
    description: str | None = None


class ExternalAdvisory(BaseModel):
    """Already-resolved LLM opinion handed to the scoring engine."""

    probability: float = Field(ge=0.0, le=100.0)
    key_factors: list[str] = Field(default_factory=list)
    confidence: str | None = None
    total_accumulation: str | None = None
    radar_insight: str | None = None
    alert_impact: str | None = None
    recommendations: str | None = None
    model: str | None = None


class GeoLocation(BaseModel):
    """Geocoded location."""

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    name: str
    country: str | None = None
    state: str | None = None
    timezone: str | None = None

    @property
    def display_name(self) -> str:
        parts = [self.name]
        if self.state:
            parts.append(self.state)
        if self.country:
            parts.append(self.country)
        return ", ".join(parts)


class ForecastFetchResult(BaseModel):
    """Raw + normalized forecast returned by forecast providers."""

    provider: str
    retrieval_timestamp: datetime
    source_url: str
    timezone: str | None = None
    current: CurrentConditions
    hourly: HourlyForecast
    daily: dict[str, list[Any]] = Field(default_factory=dict)
    raw_payload: dict[str, Any] = Field(default_factory=dict)


def _first_upcoming(times: list[datetime | None], now: datetime | None) -> int:
    if now is None or not times:
        return 0
    hour_start = now.replace(minute=0, second=0, microsecond=0)
    for i, moment in enumerate(times):
        if moment is None:
            return i
        if (moment.tzinfo is None) != (hour_start.tzinfo is None):
            moment = moment.replace(tzinfo=hour_start.tzinfo)
        if moment >= hour_start:
            return i
    return len(times)


def _at(series: list[Any], index: int) -> Any:
    if index < len(series):
        return series[index]
    return None


def _or_zero(value: float | None) -> float:
    return float(value) if value is not None else 0.0


def _or_default(value: float | None, default: float) -> float:
    return float(value) if value is not None else default


def _clamp_pct(value: float | None) -> float:
    return max(0.0, min(100.0, _or_zero(value)))
