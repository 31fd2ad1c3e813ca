"""Narrative generator: deterministic prose views of a score result."""

from __future__ import annotations

from collections.abc import Sequence

from ..weather.models import ForecastSample
from .formulas import wind_chill
from .models import AdvisoryBand, DerivedMetrics, Narrative, RadarSynthesis, ScoreResult
from .summaries import format_clock, sample_time
from .tables import (
    ADVISORY_BANDS,
    MORNING_COMMUTE,
    OVERNIGHT_END_HOUR,
    OVERNIGHT_START_HOUR,
)

# Onset hours that run into the evening commute.
AFTERNOON_ONSET = (15, 18)

NO_REASONING = "No significant snow-producing factors identified"


def narrate(
    result: ScoreResult,
    metrics: DerivedMetrics,
    radar: RadarSynthesis,
    samples: Sequence[ForecastSample] | None = None,
) -> Narrative:
    band: AdvisoryBand = ADVISORY_BANDS[result.confidence]  # type: ignore[assignment]
    return Narrative(
        reasoning=_reasoning(result.reasoning),
        radar_text=_radar_text(result, metrics, radar, samples),
        timing_text=_timing_text(result, metrics, samples),
        advisory=_advisory(band, metrics),
        advisory_band=band,
    )


def _reasoning(reasons: Sequence[str]) -> str:
    if not reasons:
        return NO_REASONING + "."
    return ". ".join(reasons) + "."


def _window(metrics: DerivedMetrics) -> str:
    return f"{metrics.window_hours}-hour"


def _radar_text(
    result: ScoreResult,
    metrics: DerivedMetrics,
    radar: RadarSynthesis,
    samples: Sequence[ForecastSample] | None,
) -> str:
    snow = metrics.snow
    if not snow.detected:
        return (
            "Multi-model analysis of precipitation systems: no organized precipitation "
            f"systems detected within the {_window(metrics)} forecast window. "
            "Current atmospheric patterns do not support snow development."
        )

    parts = ["Multi-model analysis of precipitation systems:"]
    start = sample_time(samples, snow.start_hour)
    end = sample_time(samples, snow.end_hour)
    if start is not None and end is not None:
        parts.append(
            f"Snow is expected to develop around {format_clock(start)} "
            f"and continue through {format_clock(end)}."
        )
    else:
        parts.append(
            f"Snow is expected to develop {snow.start_hour} hours into the forecast "
            f"and continue through hour {snow.end_hour}."
        )

    if snow.heavy_snow_hours >= 6:
        parts.append(
            f'Radar indicates intense precipitation cores with snow rates exceeding '
            f'{snow.max_rate:.1f}"/hour for {snow.heavy_snow_hours} hours.'
        )
    elif snow.max_rate >= 0.5:
        parts.append(
            f'Moderate to heavy snow bands will produce rates of {snow.max_rate:.1f}"/hour '
            "at peak intensity."
        )
    else:
        parts.append(f'Light to moderate snow with maximum rates of {snow.max_rate:.1f}"/hour.')

    parts.append(
        f"Precipitation is {radar.precipitation_intensity} and {radar.intensity_trend}, "
        f"organized as a {radar.movement_pattern} with {radar.coverage:.0f}% peak coverage."
    )

    if snow.max_consecutive >= 18:
        parts.append(
            f"This will be a prolonged event with {snow.max_consecutive} consecutive hours "
            "of steady snowfall, allowing for substantial accumulation."
        )
    elif snow.max_consecutive >= 8:
        parts.append(
            f"Sustained snowfall for {snow.max_consecutive} hours will allow accumulation "
            "to build steadily."
        )

    if metrics.wind.max_speed >= 30:
        parts.append(
            "Strong winds will cause significant drifting, with drifts 2-4x deeper than "
            "base accumulation in exposed areas."
        )
    elif metrics.wind.max_speed >= 20:
        parts.append("Moderate winds will cause drifting and uneven accumulation patterns.")
    else:
        parts.append("Light winds will allow for relatively uniform accumulation.")

    if metrics.visibility.poor_hours >= 12:
        parts.append(
            f"Extended periods of poor visibility ({metrics.visibility.poor_hours} hours) "
            "indicate dense snowfall with high water content."
        )

    parts.append(f"Forecast confidence is {result.confidence}.")
    return " ".join(parts)


def _timing_text(
    result: ScoreResult,
    metrics: DerivedMetrics,
    samples: Sequence[ForecastSample] | None,
) -> str:
    snow = metrics.snow
    temps = metrics.temperature
    if not snow.detected:
        return (
            f"No snow events are forecast within the {_window(metrics)} analysis period. "
            f"Current conditions ({result.summaries.temperature}, "
            f"{result.summaries.sky_conditions.lower()}) remain stable."
        )

    start = sample_time(samples, snow.start_hour)
    peak = sample_time(samples, snow.peak_hour)
    end = sample_time(samples, snow.end_hour)
    duration = snow.end_hour - snow.start_hour + 1

    parts = [f"Snow begins approximately {snow.start_hour} hours from now"]
    if start is not None:
        parts[0] += f" ({format_clock(start, long_weekday=True)})."
    else:
        parts[0] += "."
    if peak is not None:
        parts.append(
            f"Peak intensity occurs around {format_clock(peak, long_weekday=True)} "
            f'with accumulation rates of {snow.max_rate:.1f}"/hour.'
        )
    if end is not None:
        parts.append(
            f"Snow continues through {format_clock(end, long_weekday=True)} "
            f"for a total duration of {duration} hours."
        )
    else:
        parts.append(f"Total duration is {duration} hours.")

    if temps.lowest_hour < snow.start_hour:
        parts.append(
            f"Coldest temperatures ({temps.lowest:.0f}°F) occur before snow arrival, "
            "favoring high snow-to-liquid ratios."
        )
    elif temps.lowest_hour > snow.end_hour:
        parts.append(
            "Coldest temperatures do not arrive until after snow ends, which may limit "
            "initial accumulation."
        )
    else:
        parts.append("Peak cold coincides with active snowfall.")

    if temps.below_freezing_hours >= 48:
        parts.append(
            f"Temperatures stay below freezing for {temps.below_freezing_hours} hours, "
            "so accumulation will persist."
        )
    elif temps.below_freezing_hours >= 24:
        parts.append(
            f"Extended below-freezing period ({temps.below_freezing_hours} hours) "
            "supports accumulation."
        )
    elif temps.warming_trend:
        parts.append("A warming trend during or after the event may cause settling or melting.")

    if start is not None:
        hour = start.hour
        if hour >= OVERNIGHT_START_HOUR or hour <= OVERNIGHT_END_HOUR:
            parts.append(
                "Overnight development means snow will accumulate before the morning commute."
            )
        elif MORNING_COMMUTE[0] <= hour <= MORNING_COMMUTE[1]:
            parts.append("Morning rush hour timing creates maximum disruption to commuters.")
        elif AFTERNOON_ONSET[0] <= hour <= AFTERNOON_ONSET[1]:
            parts.append("Afternoon timing will create challenging evening commute conditions.")

    if metrics.visibility.dangerous_hours >= 6:
        parts.append(
            f"Extended whiteout conditions ({metrics.visibility.dangerous_hours} hours below "
            "0.5 mi visibility) will make travel extremely hazardous."
        )
    if metrics.wind.sustained_high_wind_hours >= 12:
        parts.append(
            f"Sustained high winds for {metrics.wind.sustained_high_wind_hours} hours will "
            "keep snow blowing and drifting after precipitation ends."
        )
    return " ".join(parts)


def _advisory(band: AdvisoryBand, metrics: DerivedMetrics) -> str:
    wind = metrics.wind
    temps = metrics.temperature

    if band == "extreme":
        parts = [
            "EXTREME WINTER STORM - LIFE-THREATENING CONDITIONS.",
            "Do not travel unless there is a life-threatening emergency. Roads will be impassable.",
            "Stock at least 3 days of food, water and medication, charge all devices, "
            "and have an alternative heat source ready.",
        ]
        if wind_chill(temps.lowest, wind.max_speed) < -20:
            parts.append("Extreme cold: frostbite possible in under 10 minutes.")
        if wind.max_gust >= 40:
            parts.append("Blizzard conditions with life-threatening whiteouts expected.")
        parts.append("Plan for extended power outages and impassable roads for 24-48+ hours.")
    elif band == "dangerous":
        parts = [
            "DANGEROUS WINTER STORM - MAJOR IMPACTS EXPECTED.",
            "A snow day is highly likely. Travel strongly discouraged.",
            "Finish shopping and prescriptions today, fuel vehicles and stock emergency supplies.",
        ]
        if metrics.visibility.minimum < 0.5:
            parts.append("Whiteout conditions expected; navigation will be extremely difficult.")
        if wind.max_gust >= 35:
            parts.append("High winds will create large drifts and may cause power outages.")
        parts.append("Schools and businesses are likely to close.")
    elif band == "significant":
        parts = [
            "SIGNIFICANT WINTER WEATHER - SNOW DAY LIKELY.",
            "Major disruptions expected. Avoid travel if possible.",
            "If traveling, carry emergency supplies and allow twice the normal travel time.",
        ]
        if metrics.snow.max_rate >= 1.0:
            parts.append("Rapid accumulation rates will quickly make roads impassable.")
        parts.append("Monitor weather updates closely; conditions may deteriorate rapidly.")
    elif band == "likely":
        parts = [
            "WINTER WEATHER LIKELY - PLAN AHEAD.",
            "Travel will be difficult with hazardous road conditions.",
            "Avoid unnecessary travel, reduce speed and increase following distance.",
        ]
        if temps.lowest <= 20:
            parts.append("Extreme cold: warm up vehicles before driving and dress in layers.")
        parts.append("Have backup arrangements for school and work.")
    elif band == "minor":
        parts = [
            "MINOR WINTER WEATHER POSSIBLE.",
            "Some accumulation possible but major disruptions unlikely.",
            "Allow extra time for the morning commute; untreated roads and bridges may be slippery.",
        ]
    else:
        parts = [
            "NO SIGNIFICANT WINTER WEATHER EXPECTED.",
            "Normal conditions forecast. No special preparations needed.",
        ]
    return " ".join(parts)
