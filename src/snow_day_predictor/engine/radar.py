"""Radar-pattern synthesizer: a precipitation-structure proxy from hourly data."""

from __future__ import annotations

from collections.abc import Sequence

from ..exceptions import InvalidInputError
from ..weather.models import ForecastSample
from .metrics import FLAG_TREND_WINDOW_SHORT
from .models import IntensityTrend, MovementPattern, PrecipIntensity, RadarSynthesis, SnowBand
from .tables import (
    RADAR_HEAVY_RATE,
    RADAR_INTENSIFYING_RATIO,
    RADAR_MODERATE_RATE,
    RADAR_PRECIP_PROBABILITY_PCT,
    RADAR_SLOW_MOVING_HOURS,
    RADAR_STEADY_HOURS,
    RADAR_WEAKENING_RATIO,
    TREND_HALF_HOURS,
)


def synthesize(samples: Sequence[ForecastSample], window_hours: int) -> RadarSynthesis:
    """Derive intensity, movement and trend descriptors for the first ``window_hours``."""
    if window_hours <= 0:
        raise InvalidInputError(f"window_hours must be > 0, got {window_hours}.")
    window = samples[: min(window_hours, len(samples))]

    precip_hours = 0
    total_precip = 0.0
    coverage = 0.0
    run = 0
    longest_run = 0
    bands: list[SnowBand] = []

    for i, hour in enumerate(window):
        coverage = max(coverage, hour.precipitation_probability)
        if hour.precipitation > 0 or hour.precipitation_probability > RADAR_PRECIP_PROBABILITY_PCT:
            precip_hours += 1
            total_precip += hour.precipitation

        if hour.snowfall > 0:
            run += 1
            bands.append(
                SnowBand(
                    hour=i,
                    intensity=hour.snowfall,
                    probability=hour.precipitation_probability,
                )
            )
        else:
            longest_run = max(longest_run, run)
            run = 0
    longest_run = max(longest_run, run)

    rate = total_precip / precip_hours if precip_hours else 0.0
    trend, flags = _intensity_trend(window)
    return RadarSynthesis(
        precipitation_intensity=_intensity(rate),
        precipitation_rate=rate,
        movement_pattern=_movement(longest_run),
        intensity_trend=trend,
        coverage=coverage,
        continuous_hours=longest_run,
        snow_bands=bands,
        missing_data_flags=flags,
    )


def _intensity(rate: float) -> PrecipIntensity:
    if rate >= RADAR_HEAVY_RATE:
        return "heavy"
    if rate >= RADAR_MODERATE_RATE:
        return "moderate"
    if rate > 0:
        return "light"
    return "none"


def _movement(longest_run: int) -> MovementPattern:
    if longest_run >= RADAR_SLOW_MOVING_HOURS:
        return "slow-moving system"
    if longest_run >= RADAR_STEADY_HOURS:
        return "steady progression"
    if longest_run > 0:
        return "fast-moving"
    return "static"


def _intensity_trend(window: Sequence[ForecastSample]) -> tuple[IntensityTrend, list[str]]:
    if len(window) < 2 * TREND_HALF_HOURS:
        return "stable", [FLAG_TREND_WINDOW_SHORT] if window else []

    first = sum(hour.snowfall for hour in window[:TREND_HALF_HOURS])
    second = sum(hour.snowfall for hour in window[TREND_HALF_HOURS : 2 * TREND_HALF_HOURS])
    if first == 0:
        return ("intensifying" if second > 0 else "stable"), []
    if second >= first * RADAR_INTENSIFYING_RATIO:
        return "intensifying", []
    if second <= first * RADAR_WEAKENING_RATIO:
        return "weakening", []
    return "stable", []
