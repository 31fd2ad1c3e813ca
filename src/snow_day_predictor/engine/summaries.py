"""One-line condition summaries attached to every score result."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from ..weather.models import CurrentConditions, ForecastSample
from .formulas import describe_weather_code, feels_like, wind_chill
from .models import ConditionSummary, DerivedMetrics

NOT_AVAILABLE = "N/A"


def format_clock(moment: datetime, *, long_weekday: bool = False) -> str:
    """'Tue 3:00 PM' (or 'Tuesday 3:00 PM'), independent of platform strftime flags."""
    weekday = f"{moment:%A}" if long_weekday else f"{moment:%a}"
    hour = moment.hour % 12 or 12
    return f"{weekday} {hour}:{moment:%M} {moment:%p}"


def sample_time(samples: Sequence[ForecastSample] | None, index: int) -> datetime | None:
    if samples is None or index < 0 or index >= len(samples):
        return None
    return samples[index].time


def build_summaries(
    current: CurrentConditions,
    metrics: DerivedMetrics,
    samples: Sequence[ForecastSample] | None = None,
) -> ConditionSummary:
    snow = metrics.snow
    temp = metrics.temperature
    wind = metrics.wind
    vis = metrics.visibility

    return ConditionSummary(
        accumulation=_accumulation(snow.total_accumulation, snow.detected),
        snow_rate=_snow_rate(snow.max_rate),
        temperature=_temperature(current.temperature, temp.lowest, temp.highest),
        feels_like=_feels_like(current),
        wind=_wind(wind.max_speed, wind.max_gust),
        wind_chill=_wind_chill(wind_chill(temp.lowest, wind.max_speed)),
        precipitation=(
            f"{metrics.precip.avg_probability:.0f}% avg, "
            f"{metrics.precip.max_probability:.0f}% peak"
            if snow.detected
            else "None expected"
        ),
        visibility=_visibility(vis.minimum),
        sky_conditions=describe_weather_code(current.weather_code),
        humidity=f"{current.humidity:.0f}%",
        peak_time=_peak_time(sample_time(samples, snow.peak_hour)),
        duration=(
            f"{snow.end_hour - snow.start_hour + 1} hours total, "
            f"{snow.max_consecutive} consecutive"
            if snow.start_hour >= 0
            else NOT_AVAILABLE
        ),
    )


def _accumulation(total: float, detected: bool) -> str:
    for threshold, label in ((18, "Crippling/Historic"), (12, "Major/Extreme"), (8, "Heavy"),
                             (4, "Moderate"), (1, "Light")):
        if total >= threshold:
            return f'{total:.1f}" ({label})'
    if detected:
        return 'Trace to 1"'
    return "None expected"


def _snow_rate(rate: float) -> str:
    for threshold, label in ((2.0, "Extreme"), (1.0, "Very Heavy"), (0.5, "Heavy"),
                             (0.2, "Moderate")):
        if rate >= threshold:
            return f'{rate:.1f}"/hr ({label})'
    if rate > 0:
        return f'{rate:.1f}"/hr (Light)'
    return NOT_AVAILABLE


def _temperature(current: float, lowest: float, highest: float) -> str:
    text = f"{current:.0f}°F now"
    if lowest != current:
        text += f", low {lowest:.0f}°F"
    if highest > current + 5:
        text += f", high {highest:.0f}°F"
    return text


def _feels_like(current: CurrentConditions) -> str:
    apparent = feels_like(current.temperature, current.humidity, current.wind_speed)
    text = f"{apparent:.0f}°F"
    diff = abs(current.temperature - apparent)
    if diff > 15:
        text += " (Extreme)"
    elif diff > 10:
        text += " (Very Cold)"
    elif diff > 5:
        text += " (Cold)"
    return text


def _wind(max_speed: float, max_gust: float) -> str:
    text = f"{max_speed:.0f} mph sustained"
    if max_gust > max_speed + 10:
        text += f", {max_gust:.0f} mph gusts"
    return text


def _wind_chill(value: float) -> str:
    text = f"{value:.0f}°F"
    if value < -20:
        text += " (Frostbite: <10 min)"
    elif value < 0:
        text += " (Frostbite: <30 min)"
    elif value < 20:
        text += " (Very Cold)"
    return text


def _visibility(minimum: float) -> str:
    text = f"{minimum:.1f} mi minimum"
    for threshold, label in ((0.25, "Whiteout"), (0.5, "Extreme"), (1, "Very Poor"),
                             (2, "Poor"), (5, "Reduced")):
        if minimum < threshold:
            return f"{text} ({label})"
    return text


def _peak_time(moment: datetime | None) -> str:
    if moment is None:
        return NOT_AVAILABLE
    return format_clock(moment)
