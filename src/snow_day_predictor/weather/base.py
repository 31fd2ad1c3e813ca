"""Provider-agnostic interfaces for the data sources feeding the engine."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import AlertRecord, ForecastFetchResult, GeoLocation


class Geocoder(ABC):
    """Resolves free-text location queries to coordinates."""

    @abstractmethod
    def geocode(self, query: str) -> GeoLocation:
        """Return the best match for ``query``."""


class ForecastProvider(ABC):
    """Fetches current conditions and hourly forecast series."""

    @abstractmethod
    def fetch_forecast(self, *, lat: float, lon: float) -> ForecastFetchResult:
        """Fetch and normalize a forecast for a point."""

    @abstractmethod
    def close(self) -> None:
        """Release provider resources."""


class AlertProvider(ABC):
    """Fetches active government weather alerts."""

    @abstractmethod
    def fetch_active_alerts(self, *, lat: float, lon: float) -> list[AlertRecord]:
        """Return alerts currently in effect for a point."""

    @abstractmethod
    def close(self) -> None:
        """Release provider resources."""
