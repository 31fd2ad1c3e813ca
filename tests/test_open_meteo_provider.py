"""Tests for Open-Meteo geocoding, forecast fetch and payload normalization."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from snow_day_predictor.exceptions import InvalidInputError, WeatherProviderError
from snow_day_predictor.weather.open_meteo import OpenMeteoClient, normalize_forecast_payload

FIXTURES = Path(__file__).parent / "fixtures"


def _make_settings(**overrides: Any) -> Any:
    defaults = {
        "weather_timeout_seconds": 5.0,
        "geocoding_api_url": "https://geocoding.example.com/v1/search",
        "forecast_api_url": "https://forecast.example.com/v1/forecast",
        "forecast_days": 3,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _make_client(transport: httpx.BaseTransport | None = None) -> OpenMeteoClient:
    return OpenMeteoClient(
        settings=_make_settings(),
        logger=logging.getLogger("test_open_meteo"),
        retry_delay_seconds=0.0,
        transport=transport,
    )


def _storm_payload() -> dict[str, Any]:
    return json.loads((FIXTURES / "open_meteo_storm.json").read_text(encoding="utf-8"))


def test_fixture_payload_normalizes_to_imperial_samples() -> None:
    result = normalize_forecast_payload(_storm_payload(), source_url="fixture")

    assert result.provider == "open_meteo"
    assert result.timezone == "America/New_York"
    assert result.current.temperature == pytest.approx(22.0)
    assert result.current.wind_gust == pytest.approx(45.0)
    assert result.hourly.hours == 24
    assert result.daily["snowfall_sum"] == [12.8]

    samples = result.hourly.to_samples(result.current)
    assert samples[0].time == datetime(2026, 1, 15, 0, 0)
    assert samples[0].visibility == pytest.approx(10.0)
    assert samples[4].visibility == pytest.approx(0.3)
    assert samples[4].snowfall == pytest.approx(0.8)
    assert samples[4].weather_code == 75


def test_metre_visibility_is_converted_to_feet() -> None:
    payload = {
        "hourly_units": {"visibility": "m"},
        "hourly": {"temperature_2m": [30.0], "visibility": [1609.344]},
    }

    result = normalize_forecast_payload(payload)
    samples = result.hourly.to_samples(result.current)

    assert samples[0].visibility == pytest.approx(1.0, rel=1e-4)


def test_missing_hourly_block_is_a_provider_error() -> None:
    with pytest.raises(WeatherProviderError, match="hourly"):
        normalize_forecast_payload({"current": {"temperature_2m": 30}})


def test_malformed_hourly_values_are_invalid_input() -> None:
    payload = {"hourly": {"temperature_2m": ["cold", 30.0]}}

    with pytest.raises(InvalidInputError):
        normalize_forecast_payload(payload)


def test_geocode_uses_first_result() -> None:
    client = _make_client()
    calls: list[dict[str, Any]] = []

    def fake_request(url: str, context: str, params: dict[str, Any] | None = None) -> Any:
        calls.append({"url": url, "context": context, "params": params})
        return {
            "results": [
                {
                    "name": "Buffalo",
                    "latitude": 42.8864,
                    "longitude": -78.8784,
                    "country": "United States",
                    "admin1": "New York",
                    "timezone": "America/New_York",
                },
                {"name": "Buffalo", "latitude": 44.0, "longitude": -103.0},
            ]
        }

    client._request_json = fake_request  # type: ignore[assignment]

    location = client.geocode("  Buffalo, NY ")

    assert calls[0]["params"]["name"] == "Buffalo, NY"
    assert calls[0]["params"]["count"] == 1
    assert location.latitude == pytest.approx(42.8864)
    assert location.display_name == "Buffalo, New York, United States"


def test_geocode_not_found_raises() -> None:
    client = _make_client()
    client._request_json = lambda url, context, params=None: {"generationtime_ms": 0.2}  # type: ignore[assignment]

    with pytest.raises(WeatherProviderError, match="Location not found"):
        client.geocode("Atlantis")
    with pytest.raises(WeatherProviderError):
        client.geocode("   ")


def test_fetch_forecast_requests_imperial_units() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_storm_payload())

    with _make_client(httpx.MockTransport(handler)) as client:
        result = client.fetch_forecast(lat=42.36, lon=-71.06)

    params = seen[0].url.params
    assert params["temperature_unit"] == "fahrenheit"
    assert params["wind_speed_unit"] == "mph"
    assert params["precipitation_unit"] == "inch"
    assert params["timezone"] == "auto"
    assert params["forecast_days"] == "3"
    assert "snowfall" in params["hourly"].split(",")
    assert result.source_url == "https://forecast.example.com/v1/forecast"


def test_server_error_is_retried_once() -> None:
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) == 1:
            return httpx.Response(503, text="unavailable")
        return httpx.Response(200, json=_storm_payload())

    with _make_client(httpx.MockTransport(handler)) as client:
        result = client.fetch_forecast(lat=42.36, lon=-71.06)

    assert len(attempts) == 2
    assert result.hourly.hours == 24


def test_client_error_fails_fast() -> None:
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        return httpx.Response(400, json={"error": True, "reason": "Latitude must be in range"})

    with _make_client(httpx.MockTransport(handler)) as client:
        with pytest.raises(WeatherProviderError, match="status 400"):
            client.fetch_forecast(lat=42.36, lon=-71.06)

    assert len(attempts) == 1


def test_invalid_coordinates_are_rejected_before_request() -> None:
    client = _make_client()
    client._request_json = lambda *args, **kwargs: pytest.fail("no request expected")  # type: ignore[assignment]

    with pytest.raises(WeatherProviderError, match="latitude"):
        client.fetch_forecast(lat=95.0, lon=0.0)
