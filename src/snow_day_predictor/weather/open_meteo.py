"""Open-Meteo geocoding and forecast provider."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..exceptions import InvalidInputError, WeatherProviderError
from .base import ForecastProvider, Geocoder
from .http import JsonHttpSource
from .models import (
    DEFAULT_VISIBILITY_MILES,
    CurrentConditions,
    ForecastFetchResult,
    GeoLocation,
    HourlyForecast,
)

METERS_TO_FEET = 3.28084

CURRENT_FIELDS = (
    "temperature_2m",
    "relative_humidity_2m",
    "apparent_temperature",
    "precipitation",
    "weather_code",
    "cloud_cover",
    "wind_speed_10m",
    "wind_gusts_10m",
)
HOURLY_FIELDS = (
    "temperature_2m",
    "relative_humidity_2m",
    "precipitation_probability",
    "precipitation",
    "weather_code",
    "visibility",
    "wind_speed_10m",
    "wind_gusts_10m",
    "snowfall",
    "cloud_cover",
)
DAILY_FIELDS = (
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "snowfall_sum",
)

# Open-Meteo series name -> HourlyForecast attribute.
_HOURLY_MAP = {
    "time": "time",
    "temperature_2m": "temperature",
    "snowfall": "snowfall",
    "precipitation": "precipitation",
    "precipitation_probability": "precipitation_probability",
    "weather_code": "weather_code",
    "wind_speed_10m": "wind_speed",
    "wind_gusts_10m": "wind_gust",
    "visibility": "visibility",
    "relative_humidity_2m": "humidity",
    "cloud_cover": "cloud_cover",
}


class OpenMeteoClient(JsonHttpSource, Geocoder, ForecastProvider):
    """Geocodes place names and fetches imperial-unit forecasts from Open-Meteo."""

    source_name = "open_meteo"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger | None = None,
        max_retries: int = 1,
        retry_delay_seconds: float = 1.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(
            timeout_seconds=settings.weather_timeout_seconds,
            headers={"Accept": "application/json"},
            logger=logger,
            max_retries=max_retries,
            retry_delay_seconds=retry_delay_seconds,
            transport=transport,
        )
        self.settings = settings

    def geocode(self, query: str) -> GeoLocation:
        """Resolve a free-text location to its first Open-Meteo match."""
        cleaned = query.strip()
        if not cleaned:
            raise WeatherProviderError("Location query must not be empty.")

        payload = self._request_json(
            str(self.settings.geocoding_api_url),
            context="geocoding lookup",
            params={"name": cleaned, "count": 1, "language": "en", "format": "json"},
        )
        results = payload.get("results")
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            raise WeatherProviderError(
                f"Location not found: {cleaned!r}. Try 'City, State' or 'City, Country'."
            )
        first = results[0]
        lat = first.get("latitude")
        lon = first.get("longitude")
        if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
            raise WeatherProviderError("Geocoding result is missing coordinates.")
        return GeoLocation(
            latitude=float(lat),
            longitude=float(lon),
            name=_as_str(first.get("name")) or cleaned,
            country=_as_str(first.get("country")),
            state=_as_str(first.get("admin1")),
            timezone=_as_str(first.get("timezone")),
        )

    def fetch_forecast(self, *, lat: float, lon: float) -> ForecastFetchResult:
        """Fetch current, hourly and daily data for a point."""
        if not (-90 <= lat <= 90):
            raise WeatherProviderError(f"Invalid latitude {lat}; expected between -90 and 90.")
        if not (-180 <= lon <= 180):
            raise WeatherProviderError(f"Invalid longitude {lon}; expected between -180 and 180.")

        url = str(self.settings.forecast_api_url)
        params = {
            "latitude": lat,
            "longitude": lon,
            "current": ",".join(CURRENT_FIELDS),
            "hourly": ",".join(HOURLY_FIELDS),
            "daily": ",".join(DAILY_FIELDS),
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "precipitation_unit": "inch",
            "timezone": "auto",
            "forecast_days": self.settings.forecast_days,
        }
        payload = self._request_json(url, context="forecast fetch", params=params)
        return normalize_forecast_payload(payload, source_url=url)


def normalize_forecast_payload(
    payload: dict[str, Any],
    *,
    source_url: str = "file",
    provider: str = "open_meteo",
) -> ForecastFetchResult:
    """Normalize an Open-Meteo forecast response body."""
    raw_hourly = payload.get("hourly")
    if not isinstance(raw_hourly, dict):
        raise WeatherProviderError("Forecast payload missing 'hourly' object.")
    raw_current = payload.get("current")
    if raw_current is not None and not isinstance(raw_current, dict):
        raise WeatherProviderError("Forecast payload 'current' must be an object.")

    current = _normalize_current(raw_current or {})
    hourly = _normalize_hourly(raw_hourly, units=payload.get("hourly_units"))

    daily: dict[str, list[Any]] = {}
    raw_daily = payload.get("daily")
    if isinstance(raw_daily, dict):
        daily = {key: value for key, value in raw_daily.items() if isinstance(value, list)}

    return ForecastFetchResult(
        provider=provider,
        retrieval_timestamp=datetime.now(UTC),
        source_url=source_url,
        timezone=_as_str(payload.get("timezone")),
        current=current,
        hourly=hourly,
        daily=daily,
        raw_payload=payload,
    )


def _normalize_current(raw: dict[str, Any]) -> CurrentConditions:
    return CurrentConditions(
        time=_parse_time(raw.get("time")),
        temperature=_as_float(raw.get("temperature_2m")) or 0.0,
        apparent_temperature=_as_float(raw.get("apparent_temperature")),
        precipitation=max(0.0, _as_float(raw.get("precipitation")) or 0.0),
        weather_code=int(_as_float(raw.get("weather_code")) or 0),
        wind_speed=_as_float(raw.get("wind_speed_10m")) or 0.0,
        wind_gust=_as_float(raw.get("wind_gusts_10m")) or 0.0,
        visibility=DEFAULT_VISIBILITY_MILES,
        humidity=max(0.0, min(100.0, _as_float(raw.get("relative_humidity_2m")) or 0.0)),
        cloud_cover=max(0.0, min(100.0, _as_float(raw.get("cloud_cover")) or 0.0)),
    )


def _normalize_hourly(raw: dict[str, Any], units: Any) -> HourlyForecast:
    series: dict[str, list[Any]] = {}
    for source_key, target in _HOURLY_MAP.items():
        values = raw.get(source_key)
        if values is None:
            continue
        if not isinstance(values, list):
            raise WeatherProviderError(f"Hourly series '{source_key}' must be a list.")
        series[target] = values

    if "time" in series:
        series["time"] = [_parse_time(value) for value in series["time"]]

    visibility_unit = units.get("visibility") if isinstance(units, dict) else None
    if visibility_unit == "m" and "visibility" in series:
        series["visibility"] = [
            value * METERS_TO_FEET if isinstance(value, (int, float)) else value
            for value in series["visibility"]
        ]
    try:
        return HourlyForecast.model_validate(series)
    except ValidationError as exc:
        raise InvalidInputError(f"Hourly forecast series are malformed: {exc}") from exc


def _parse_time(value: Any) -> datetime | None:
    # Open-Meteo with timezone=auto returns naive local ISO strings; keep them local.
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _as_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
