"""Tests for end-to-end analysis orchestration with fake providers."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from types import SimpleNamespace
from typing import Any

from snow_day_predictor.exceptions import AdvisoryError, WeatherProviderError
from snow_day_predictor.pipeline import SnowDayAnalyzer
from snow_day_predictor.weather.base import AlertProvider, ForecastProvider, Geocoder
from snow_day_predictor.weather.models import (
    AlertRecord,
    CurrentConditions,
    ExternalAdvisory,
    ForecastFetchResult,
    GeoLocation,
    HourlyForecast,
)
from snow_day_predictor.weather.nws import normalize_alert_payload
from snow_day_predictor.weather.open_meteo import normalize_forecast_payload

FIXTURES = Path(__file__).parent / "fixtures"


def _make_settings(**overrides: Any) -> Any:
    defaults = {
        "analysis_window_hours": 72,
        "radar_window_hours": 48,
        "score_local_weight": 0.7,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _storm_forecast() -> ForecastFetchResult:
    payload = json.loads((FIXTURES / "open_meteo_storm.json").read_text(encoding="utf-8"))
    return normalize_forecast_payload(payload, source_url="fixture")


def _storm_alerts() -> list[AlertRecord]:
    payload = json.loads((FIXTURES / "nws_alerts_winter_storm.json").read_text(encoding="utf-8"))
    return normalize_alert_payload(payload)


class FakeOpenMeteo(Geocoder, ForecastProvider):
    def __init__(self) -> None:
        self.requests: list[tuple[float, float]] = []
        self.closed = 0

    def geocode(self, query: str) -> GeoLocation:
        return GeoLocation(latitude=42.36, longitude=-71.06, name="Boston", state="Massachusetts")

    def fetch_forecast(self, *, lat: float, lon: float) -> ForecastFetchResult:
        self.requests.append((lat, lon))
        return _storm_forecast()

    def close(self) -> None:
        self.closed += 1


class FakeAlerts(AlertProvider):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    def fetch_active_alerts(self, *, lat: float, lon: float) -> list[AlertRecord]:
        if self.fail:
            raise WeatherProviderError("NWS active alerts failed with status 503")
        return _storm_alerts()

    def close(self) -> None:
        return None


class FakeAdvisory:
    def __init__(self, probability: float | None) -> None:
        self.probability = probability
        self.calls = 0

    def fetch_advisory(self, **kwargs: Any) -> ExternalAdvisory:
        self.calls += 1
        if self.probability is None:
            raise AdvisoryError("All advisory models failed")
        return ExternalAdvisory(probability=self.probability, key_factors=["Heavy snow"])

    def close(self) -> None:
        return None


def test_location_analysis_geocodes_fetches_and_scores() -> None:
    open_meteo = FakeOpenMeteo()
    analyzer = SnowDayAnalyzer(
        _make_settings(),
        geocoder=open_meteo,
        forecast_provider=open_meteo,
        alert_provider=FakeAlerts(),
    )

    with analyzer:
        report = analyzer.analyze_location("Boston")

    assert open_meteo.requests == [(42.36, -71.06)]
    assert open_meteo.closed == 1
    assert report.location == "Boston, Massachusetts"
    assert report.latitude == 42.36
    assert report.result.is_snow_day is True
    assert report.alert_analysis.has_winter_storm_warning is True
    assert report.metrics.snow.total_accumulation > 12
    assert report.narrative.advisory_band == "extreme"
    assert report.result.missing_data_flags == []


def test_alert_failure_degrades_to_flag() -> None:
    open_meteo = FakeOpenMeteo()
    analyzer = SnowDayAnalyzer(
        _make_settings(),
        forecast_provider=open_meteo,
        alert_provider=FakeAlerts(fail=True),
    )

    report = analyzer.analyze_coordinates(42.36, -71.06)

    assert report.location == "42.3600, -71.0600"
    assert "alerts_unavailable" in report.result.missing_data_flags
    assert report.alert_analysis.total_alerts == 0


def test_advisory_is_blended_and_failure_is_flagged() -> None:
    blended = SnowDayAnalyzer(_make_settings(), advisory_client=FakeAdvisory(20.0))  # type: ignore[arg-type]
    failing = SnowDayAnalyzer(_make_settings(), advisory_client=FakeAdvisory(None))  # type: ignore[arg-type]

    with_advisory = blended.analyze_forecast(_storm_forecast(), alerts=_storm_alerts())
    without = failing.analyze_forecast(_storm_forecast(), alerts=_storm_alerts())

    assert with_advisory.advisory is not None
    assert with_advisory.result.external_probability == 20.0
    assert with_advisory.result.percentage < without.result.percentage
    assert without.advisory is None
    assert without.result.external_probability is None
    assert "advisory_unavailable" in without.result.missing_data_flags


def test_supplied_advisory_skips_client_and_unknown_alerts_are_flagged() -> None:
    client = FakeAdvisory(90.0)
    analyzer = SnowDayAnalyzer(_make_settings(), advisory_client=client)  # type: ignore[arg-type]

    report = analyzer.analyze_forecast(
        _storm_forecast(),
        advisory=ExternalAdvisory(probability=70.0),
        location_name="Boston",
        window_hours=12,
    )

    assert client.calls == 0
    assert report.result.external_probability == 70.0
    assert report.metrics.window_hours == 12
    assert "alerts_unavailable" in report.result.missing_data_flags
    assert "forecast" not in report.model_dump()


def test_hours_before_now_are_not_scored() -> None:
    start = datetime(2026, 1, 15, 0, 0)
    snowing = range(2, 9)
    hourly = HourlyForecast(
        time=[start + timedelta(hours=i) for i in range(48)],
        temperature=[25.0] * 48,
        snowfall=[1.0 if i in snowing else 0.0 for i in range(48)],
        weather_code=[75 if i in snowing else 3 for i in range(48)],
    )
    fetch_result = ForecastFetchResult(
        provider="file",
        retrieval_timestamp=datetime(2026, 1, 16, 3, 0, tzinfo=UTC),
        source_url="fixture",
        current=CurrentConditions(time=datetime(2026, 1, 15, 22, 15), temperature=25.0),
        hourly=hourly,
    )

    report = SnowDayAnalyzer(_make_settings()).analyze_forecast(fetch_result, alerts=[])

    assert report.metrics.snow.total_accumulation == 0.0
    assert report.metrics.snow.detected is False
    assert report.metrics.window_hours == 26
    assert report.radar.precipitation_intensity == "none"
