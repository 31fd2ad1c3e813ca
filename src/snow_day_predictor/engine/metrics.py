"""Derived-metrics extractor: one pass over the hourly window."""

from __future__ import annotations

from collections.abc import Sequence

from ..exceptions import InvalidInputError
from ..weather.models import CurrentConditions, ForecastSample
from .models import (
    DerivedMetrics,
    HumidityMetrics,
    PrecipMetrics,
    SnowMetrics,
    TemperatureMetrics,
    VisibilityMetrics,
    WindMetrics,
)
from .tables import (
    CERTAIN_PRECIP_PCT,
    DANGEROUS_VISIBILITY_MI,
    DEEP_FREEZE_F,
    EXTREME_GUST_MPH,
    FREEZING_F,
    HEAVY_SNOW_CODES,
    HEAVY_SNOW_RATE,
    HIGH_HUMIDITY_PCT,
    HIGH_PRECIP_PCT,
    MODERATE_SNOW_CODE,
    MODERATE_SNOW_RATE,
    POOR_VISIBILITY_MI,
    SUSTAINED_HIGH_WIND_MPH,
    TREND_DELTA_F,
    TREND_HALF_HOURS,
    VISIBILITY_CEILING_MI,
)

FLAG_TREND_WINDOW_SHORT = "trend_window_short"
FLAG_NO_FORECAST_HOURS = "no_forecast_hours"


def is_snowing(sample: ForecastSample) -> bool:
    """Snow falls this hour by amount or by WMO snow code (71-77, 85-86)."""
    code = sample.weather_code
    return sample.snowfall > 0 or 71 <= code <= 77 or 85 <= code <= 86


def extract(
    samples: Sequence[ForecastSample],
    window_hours: int,
    current: CurrentConditions | None = None,
) -> DerivedMetrics:
    """Scan up to ``window_hours`` samples and aggregate snow/wind/visibility/etc."""
    if window_hours <= 0:
        raise InvalidInputError(f"window_hours must be > 0, got {window_hours}.")
    if current is None:
        # Without a "now" observation the first forecast hour stands in for it.
        current = CurrentConditions(**samples[0].model_dump()) if samples else CurrentConditions()
    hours = min(window_hours, len(samples))
    window = samples[:hours]
    flags: list[str] = []
    if hours == 0:
        flags.append(FLAG_NO_FORECAST_HOURS)

    snow = SnowMetrics()
    wind = WindMetrics(max_speed=current.wind_speed, max_gust=current.wind_gust)
    visibility = VisibilityMetrics(minimum=VISIBILITY_CEILING_MI)
    temperature = TemperatureMetrics(
        lowest=current.temperature,
        highest=current.temperature,
    )
    precip = PrecipMetrics()
    humidity = HumidityMetrics(minimum=100.0 if hours else 0.0)

    run = 0
    rate_sum = 0.0
    wind_sum = visibility_sum = temp_sum = prob_sum = humidity_sum = 0.0

    for i, hour in enumerate(window):
        if is_snowing(hour):
            snow.detected = True
            snow.total_accumulation += hour.snowfall
            snow.total_snow_hours += 1
            run += 1
            if snow.start_hour == -1:
                snow.start_hour = i
            snow.end_hour = i
            if hour.snowfall > snow.max_rate:
                snow.max_rate = hour.snowfall
                snow.peak_hour = i
            rate_sum += hour.snowfall
            snow.hourly_rates.append(hour.snowfall)

            if hour.weather_code in HEAVY_SNOW_CODES or hour.snowfall >= HEAVY_SNOW_RATE:
                snow.heavy_snow_hours += 1
            elif hour.weather_code == MODERATE_SNOW_CODE or hour.snowfall >= MODERATE_SNOW_RATE:
                snow.moderate_snow_hours += 1
            else:
                snow.light_snow_hours += 1

            if 71 <= hour.weather_code <= 77:
                snow.snow_code_hours += 1
            if hour.weather_code in HEAVY_SNOW_CODES:
                snow.heavy_snow_code_hours += 1
        else:
            snow.max_consecutive = max(snow.max_consecutive, run)
            run = 0

        wind.max_speed = max(wind.max_speed, hour.wind_speed)
        wind.max_gust = max(wind.max_gust, hour.wind_gust)
        wind_sum += hour.wind_speed
        if hour.wind_speed >= SUSTAINED_HIGH_WIND_MPH:
            wind.sustained_high_wind_hours += 1
        if hour.wind_gust >= EXTREME_GUST_MPH:
            wind.extreme_gust_hours += 1

        visibility.minimum = min(visibility.minimum, hour.visibility)
        visibility_sum += hour.visibility
        if hour.visibility < DANGEROUS_VISIBILITY_MI:
            visibility.dangerous_hours += 1
        if hour.visibility < POOR_VISIBILITY_MI:
            visibility.poor_hours += 1

        if hour.temperature < temperature.lowest:
            temperature.lowest = hour.temperature
            temperature.lowest_hour = i
        temperature.highest = max(temperature.highest, hour.temperature)
        temp_sum += hour.temperature
        if hour.temperature <= FREEZING_F:
            temperature.below_freezing_hours += 1
        if hour.temperature <= DEEP_FREEZE_F:
            temperature.deep_freeze_hours += 1

        precip.max_probability = max(precip.max_probability, hour.precipitation_probability)
        prob_sum += hour.precipitation_probability
        if hour.precipitation_probability >= HIGH_PRECIP_PCT:
            precip.high_probability_hours += 1
        if hour.precipitation_probability >= CERTAIN_PRECIP_PCT:
            precip.certain_hours += 1
        precip.total_precipitation += hour.precipitation

        humidity_sum += hour.humidity
        humidity.maximum = max(humidity.maximum, hour.humidity)
        humidity.minimum = min(humidity.minimum, hour.humidity)
        if hour.humidity >= HIGH_HUMIDITY_PCT:
            humidity.high_humidity_hours += 1

    # A run touching the window edge never hit the reset branch.
    snow.consecutive_hours = run
    snow.max_consecutive = max(snow.max_consecutive, run)

    if hours:
        wind.avg_speed = wind_sum / hours
        visibility.average = visibility_sum / hours
        temperature.average = temp_sum / hours
        precip.avg_probability = prob_sum / hours
        humidity.average = humidity_sum / hours
    else:
        visibility.minimum = min(visibility.minimum, current.visibility)
        temperature.average = current.temperature
    if snow.total_snow_hours:
        snow.avg_rate = rate_sum / snow.total_snow_hours

    first_day = [hour.temperature for hour in window[: 2 * TREND_HALF_HOURS]]
    if first_day:
        temperature.average_24h = sum(first_day) / len(first_day)
        temperature.high_24h = max(first_day)
    else:
        temperature.average_24h = current.temperature
        temperature.high_24h = current.temperature

    if len(window) >= 2 * TREND_HALF_HOURS:
        first_half = sum(first_day[:TREND_HALF_HOURS]) / TREND_HALF_HOURS
        second_half = sum(first_day[TREND_HALF_HOURS:]) / TREND_HALF_HOURS
        temperature.warming_trend = second_half > first_half + TREND_DELTA_F
        temperature.cooling_trend = second_half < first_half - TREND_DELTA_F
    elif hours:
        flags.append(FLAG_TREND_WINDOW_SHORT)

    return DerivedMetrics(
        window_hours=hours,
        snow=snow,
        wind=wind,
        visibility=visibility,
        temperature=temperature,
        precip=precip,
        humidity=humidity,
        missing_data_flags=flags,
    )
