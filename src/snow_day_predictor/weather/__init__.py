"""Weather data sources feeding the scoring engine."""

from .base import AlertProvider, ForecastProvider, Geocoder
from .models import (
    AlertRecord,
    CurrentConditions,
    ExternalAdvisory,
    ForecastFetchResult,
    ForecastSample,
    GeoLocation,
    HourlyForecast,
)
from .nws import NWSAlertProvider
from .open_meteo import OpenMeteoClient

__all__ = [
    "AlertProvider",
    "AlertRecord",
    "CurrentConditions",
    "ExternalAdvisory",
    "ForecastFetchResult",
    "ForecastProvider",
    "ForecastSample",
    "GeoLocation",
    "Geocoder",
    "HourlyForecast",
    "NWSAlertProvider",
    "OpenMeteoClient",
]
