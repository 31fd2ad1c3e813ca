"""End-to-end snow day analysis: fetch, derive, score and narrate."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from .advisory.client import LLMAdvisoryClient
from .config import Settings
from .engine import alerts as alert_classifier
from .engine import metrics as metrics_extractor
from .engine import radar as radar_synthesizer
from .engine.models import AlertAnalysis, DerivedMetrics, Narrative, RadarSynthesis, ScoreResult
from .engine.narrative import narrate
from .engine.scorer import SnowDayScorer
from .exceptions import AdvisoryError, WeatherProviderError
from .weather.base import AlertProvider, ForecastProvider, Geocoder
from .weather.models import AlertRecord, ExternalAdvisory, ForecastFetchResult

FLAG_ALERTS_UNAVAILABLE = "alerts_unavailable"
FLAG_ADVISORY_UNAVAILABLE = "advisory_unavailable"


class SnowDayReport(BaseModel):
    """Everything one analysis produced, ready for display or journaling."""

    location: str
    latitude: float | None = None
    longitude: float | None = None
    generated_at: datetime
    result: ScoreResult
    narrative: Narrative
    metrics: DerivedMetrics
    alert_analysis: AlertAnalysis
    radar: RadarSynthesis
    advisory: ExternalAdvisory | None = None
    forecast: ForecastFetchResult = Field(exclude=True)


class SnowDayAnalyzer:
    """Wires providers, the engine and the optional advisory into one call."""

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger | None = None,
        geocoder: Geocoder | None = None,
        forecast_provider: ForecastProvider | None = None,
        alert_provider: AlertProvider | None = None,
        advisory_client: LLMAdvisoryClient | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger or logging.getLogger("snow_day_predictor.pipeline")
        self.geocoder = geocoder
        self.forecast_provider = forecast_provider
        self.alert_provider = alert_provider
        self.advisory_client = advisory_client
        self.scorer = SnowDayScorer(local_weight=settings.score_local_weight)

    def __enter__(self) -> SnowDayAnalyzer:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        closed: set[int] = set()
        for resource in (
            self.geocoder,
            self.forecast_provider,
            self.alert_provider,
            self.advisory_client,
        ):
            # One client may serve as both geocoder and forecast provider.
            if resource is None or id(resource) in closed:
                continue
            closed.add(id(resource))
            close = getattr(resource, "close", None)
            if close is not None:
                close()

    def analyze_location(self, query: str, *, window_hours: int | None = None) -> SnowDayReport:
        if self.geocoder is None:
            raise WeatherProviderError("No geocoder configured for location lookup.")
        location = self.geocoder.geocode(query)
        self.logger.info(
            "Resolved %r to %s (%.4f, %.4f)",
            query,
            location.display_name,
            location.latitude,
            location.longitude,
        )
        return self.analyze_coordinates(
            location.latitude,
            location.longitude,
            name=location.display_name,
            window_hours=window_hours,
        )

    def analyze_coordinates(
        self,
        lat: float,
        lon: float,
        *,
        name: str | None = None,
        window_hours: int | None = None,
    ) -> SnowDayReport:
        if self.forecast_provider is None:
            raise WeatherProviderError("No forecast provider configured.")
        fetch_result = self.forecast_provider.fetch_forecast(lat=lat, lon=lon)

        alerts: list[AlertRecord] | None = None
        if self.alert_provider is not None:
            try:
                alerts = self.alert_provider.fetch_active_alerts(lat=lat, lon=lon)
            except WeatherProviderError as exc:
                self.logger.warning("Alert fetch failed; scoring without alerts: %s", exc)

        report = self.analyze_forecast(
            fetch_result,
            alerts=alerts,
            location_name=name or f"{lat:.4f}, {lon:.4f}",
            window_hours=window_hours,
        )
        return report.model_copy(update={"latitude": lat, "longitude": lon})

    def analyze_forecast(
        self,
        fetch_result: ForecastFetchResult,
        *,
        alerts: list[AlertRecord] | None = None,
        advisory: ExternalAdvisory | None = None,
        location_name: str = "Unknown location",
        window_hours: int | None = None,
    ) -> SnowDayReport:
        """Score an already-fetched forecast; ``alerts=None`` means alerts are unknown."""
        window = window_hours or self.settings.analysis_window_hours
        current = fetch_result.current
        samples = fetch_result.hourly.to_samples(current, drop_past=True)
        flags: list[str] = []

        derived = metrics_extractor.extract(samples, window, current)
        radar = radar_synthesizer.synthesize(samples, self.settings.radar_window_hours)
        if alerts is None:
            flags.append(FLAG_ALERTS_UNAVAILABLE)
        alert_analysis = alert_classifier.classify(alerts or [])

        if advisory is None and self.advisory_client is not None:
            try:
                advisory = self.advisory_client.fetch_advisory(
                    location_name=location_name,
                    current=current,
                    samples=samples,
                    radar=radar,
                    alert_analysis=alert_analysis,
                )
            except AdvisoryError as exc:
                self.logger.warning("Advisory unavailable; scoring locally: %s", exc)
                flags.append(FLAG_ADVISORY_UNAVAILABLE)

        result = self.scorer.score(
            current,
            derived,
            alert_analysis,
            radar,
            external_advisory=advisory,
            samples=samples,
            extra_flags=flags,
        )
        self.logger.info(
            "Snow day analysis for %s: %s (%s, outcome=%s)",
            location_name,
            result.display_percentage,
            result.confidence,
            result.outcome,
            extra={"location": location_name, "outcome": result.outcome},
        )
        return SnowDayReport(
            location=location_name,
            generated_at=datetime.now(UTC),
            result=result,
            narrative=narrate(result, derived, radar, samples),
            metrics=derived,
            alert_analysis=alert_analysis,
            radar=radar,
            advisory=advisory,
            forecast=fetch_result,
        )
