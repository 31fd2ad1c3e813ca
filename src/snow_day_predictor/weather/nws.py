"""NWS (api.weather.gov) active-alert provider."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..exceptions import WeatherProviderError
from .base import AlertProvider
from .http import JsonHttpSource
from .models import AlertRecord

_KNOWN_SEVERITIES = {"Extreme", "Severe", "Moderate", "Minor"}


class NWSAlertProvider(JsonHttpSource, AlertProvider):
    """Fetches and normalizes active alerts for a point from api.weather.gov."""

    source_name = "nws"

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
            headers={
                "Accept": "application/geo+json",
                "User-Agent": settings.nws_user_agent,
            },
            logger=logger,
            max_retries=max_retries,
            retry_delay_seconds=retry_delay_seconds,
            transport=transport,
        )
        self.settings = settings

    def fetch_active_alerts(self, *, lat: float, lon: float) -> list[AlertRecord]:
        """Return active alerts; NWS only covers US points, elsewhere this is empty."""
        if not (-90 <= lat <= 90):
            raise WeatherProviderError(f"Invalid latitude {lat}; expected between -90 and 90.")
        if not (-180 <= lon <= 180):
            raise WeatherProviderError(f"Invalid longitude {lon}; expected between -180 and 180.")

        payload = self._request_json(
            str(self.settings.nws_alerts_url),
            context="active alerts",
            params={"point": f"{lat:.4f},{lon:.4f}"},
        )
        return normalize_alert_payload(payload)


def normalize_alert_payload(payload: dict[str, Any]) -> list[AlertRecord]:
    """Normalize a GeoJSON alert collection (or a bare list of features)."""
    features = payload.get("features")
    if features is None:
        return []
    if not isinstance(features, list):
        raise WeatherProviderError("NWS alert payload 'features' must be a list.")

    alerts: list[AlertRecord] = []
    for feature in features:
        if not isinstance(feature, dict):
            continue
        props = feature.get("properties", feature)
        if not isinstance(props, dict):
            continue
        alert = normalize_alert(props)
        if alert is not None:
            alerts.append(alert)
    return alerts


def normalize_alert(props: dict[str, Any]) -> AlertRecord | None:
    """Normalize one alert ``properties`` object; alerts without an event are dropped."""
    event = _as_str(props.get("event"))
    if event is None:
        return None
    severity = _as_str(props.get("severity"))
    return AlertRecord(
        event=event,
        severity=severity if severity in _KNOWN_SEVERITIES else "Unknown",
        urgency=_as_str(props.get("urgency")) or "Unknown",
        headline=_as_str(props.get("headline")),
        description=_as_str(props.get("description")),
    )


def _as_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
