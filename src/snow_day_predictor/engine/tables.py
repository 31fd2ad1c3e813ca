"""Scoring tables and thresholds.

Each factor is data: a factor holds independent rules whose points are summed,
a rule holds ordered tiers where the first matching tier wins, and a tier is a
conjunction of ``(metric, comparison, threshold)`` conditions with its points
and an optional reason template. Templates are ``str.format`` strings over the
metric context built by :mod:`snow_day_predictor.engine.scorer`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Comparison = Literal[">=", ">", "<=", "<", "=="]

# Hourly thresholds used by the extractor.
FREEZING_F = 32.0
DEEP_FREEZE_F = 20.0
HEAVY_SNOW_CODES = frozenset({75, 86})
MODERATE_SNOW_CODE = 73
HEAVY_SNOW_RATE = 0.5
MODERATE_SNOW_RATE = 0.2
SUSTAINED_HIGH_WIND_MPH = 20.0
EXTREME_GUST_MPH = 35.0
DANGEROUS_VISIBILITY_MI = 0.5
POOR_VISIBILITY_MI = 2.0
VISIBILITY_CEILING_MI = 10.0
HIGH_PRECIP_PCT = 70.0
CERTAIN_PRECIP_PCT = 90.0
HIGH_HUMIDITY_PCT = 80.0
TREND_HALF_HOURS = 12
TREND_DELTA_F = 3.0

# Radar proxy.
RADAR_PRECIP_PROBABILITY_PCT = 50.0
RADAR_HEAVY_RATE = 0.5
RADAR_MODERATE_RATE = 0.2
RADAR_SLOW_MOVING_HOURS = 12
RADAR_STEADY_HOURS = 6
RADAR_INTENSIFYING_RATIO = 1.5
RADAR_WEAKENING_RATIO = 0.5

# Outcome thresholds.
SNOW_DAY_THRESHOLD = 55.0
IMPOSSIBLE_TEMP_F = 60.0
MARGINAL_CURRENT_TEMP_F = 40.0
MARGINAL_AVG_TEMP_F = 38.0
MARGINAL_SCORE = 0.5
DEFAULT_LOCAL_WEIGHT = 0.7

# Local clock hours.
OVERNIGHT_START_HOUR = 22
OVERNIGHT_END_HOUR = 6
MORNING_COMMUTE = (6, 9)
EVENING_COMMUTE = (16, 19)

# Highest score first; every band edge is shared with the advisory text.
CONFIDENCE_TIERS: tuple[tuple[float, str], ...] = (
    (85.0, "very high"),
    (70.0, "high"),
    (55.0, "medium-high"),
    (40.0, "medium"),
    (25.0, "low"),
)
LOWEST_CONFIDENCE = "very low"

ADVISORY_BANDS: dict[str, str] = {
    "very high": "extreme",
    "high": "dangerous",
    "medium-high": "significant",
    "medium": "likely",
    "low": "minor",
    "very low": "minimal",
}


@dataclass(frozen=True)
class Condition:
    metric: str
    op: Comparison
    threshold: float | bool


@dataclass(frozen=True)
class Tier:
    when: tuple[Condition, ...]
    points: float
    reason: str | None = None


@dataclass(frozen=True)
class Rule:
    name: str
    tiers: tuple[Tier, ...]


@dataclass(frozen=True)
class Factor:
    name: str
    rules: tuple[Rule, ...]


def when(*conditions: tuple[str, Comparison, float | bool]) -> tuple[Condition, ...]:
    return tuple(Condition(metric, op, threshold) for metric, op, threshold in conditions)


def always() -> tuple[Condition, ...]:
    return ()


TEMPERATURE = Factor(
    name="temperature",
    rules=(
        Rule(
            "current_temperature",
            (
                Tier(when(("current_temp", "<=", 20)), 35,
                     "Extreme cold: {current_temp:.0f}°F - all precipitation will be snow"),
                Tier(when(("current_temp", "<=", 28)), 30,
                     "Very cold: {current_temp:.0f}°F - heavy snow accumulation likely"),
                Tier(when(("current_temp", "<=", 32)), 25,
                     "At freezing point: {current_temp:.0f}°F - optimal for snow"),
                Tier(when(("current_temp", "<=", 34)), 18,
                     "Just above freezing: {current_temp:.0f}°F - snow possible but may mix"),
                Tier(when(("current_temp", "<=", 36)), 10,
                     "Marginal temperature: {current_temp:.0f}°F - rain/snow mix likely"),
                Tier(when(("current_temp", "<=", 40)), 0),
                Tier(always(), -15,
                     "Too warm: {current_temp:.0f}°F - snow unlikely to accumulate"),
            ),
        ),
        Rule(
            "wind_chill_depression",
            (
                Tier(when(("wind_chill_depression", ">", 15)), 10,
                     "Extreme wind chill: feels like {wind_chill:.0f}°F "
                     "({wind_chill_depression:.0f}° colder) - dangerous conditions"),
                Tier(when(("wind_chill_depression", ">", 10)), 6,
                     "Severe wind chill: feels like {wind_chill:.0f}°F"),
                Tier(when(("wind_chill_depression", ">", 5)), 3),
            ),
        ),
        Rule(
            "freeze_persistence",
            (
                Tier(when(("deep_freeze_hours", ">=", 48)), 12,
                     "Extreme prolonged cold: {deep_freeze_hours} hours below 20°F"),
                Tier(when(("below_freezing_hours", ">=", 48)), 10,
                     "Long-duration freeze: {below_freezing_hours} hours at/below 32°F"),
                Tier(when(("below_freezing_hours", ">=", 36)), 8,
                     "Extended freezing period: {below_freezing_hours} hours"),
                Tier(when(("below_freezing_hours", ">=", 24)), 6,
                     "Sustained freezing: {below_freezing_hours} hours"),
                Tier(when(("below_freezing_hours", ">=", 12)), 3),
            ),
        ),
        Rule(
            "warming_trend",
            (
                Tier(when(("warming_trend", "==", True), ("snow_detected", "==", True)), -5,
                     "Warming trend may reduce accumulation"),
            ),
        ),
    ),
)

ACCUMULATION = Factor(
    name="accumulation",
    rules=(
        Rule(
            "total_snowfall",
            (
                Tier(when(("total_accumulation", ">=", 18)), 35,
                     'EXTREME snowfall: {total_accumulation:.1f}" (crippling storm)'),
                Tier(when(("total_accumulation", ">=", 12)), 32,
                     'Major snowfall: {total_accumulation:.1f}" (major disruption)'),
                Tier(when(("total_accumulation", ">=", 8)), 28,
                     'Heavy snow: {total_accumulation:.1f}" (significant impact)'),
                Tier(when(("total_accumulation", ">=", 6)), 22,
                     'Significant snow: {total_accumulation:.1f}" (high impact)'),
                Tier(when(("total_accumulation", ">=", 4)), 18,
                     'Moderate snow: {total_accumulation:.1f}" (moderate impact)'),
                Tier(when(("total_accumulation", ">=", 2)), 12,
                     'Light-moderate snow: {total_accumulation:.1f}"'),
                Tier(when(("total_accumulation", ">=", 1)), 8,
                     'Light snow: {total_accumulation:.1f}"'),
                Tier(when(("total_accumulation", ">", 0)), 4,
                     'Trace snow: {total_accumulation:.1f}"'),
                Tier(always(), -10,
                     "No measurable snow in the {window_hours}-hour forecast"),
            ),
        ),
    ),
)

INTENSITY = Factor(
    name="intensity",
    rules=(
        Rule(
            "peak_rate",
            (
                Tier(when(("max_rate", ">=", 2.0)), 18,
                     'EXTREME snow rate: {max_rate:.1f}"/hr (rapid accumulation)'),
                Tier(when(("max_rate", ">=", 1.0)), 15,
                     'Very heavy snow rate: {max_rate:.1f}"/hr'),
                Tier(when(("max_rate", ">=", 0.5)), 10,
                     'Heavy snow rate: {max_rate:.1f}"/hr'),
                Tier(when(("max_rate", ">=", 0.25)), 6,
                     'Moderate snow rate: {max_rate:.1f}"/hr'),
                Tier(when(("max_rate", ">", 0)), 3),
            ),
        ),
        Rule(
            "sustained_heavy_snow",
            (
                Tier(when(("heavy_snow_hours", ">=", 8)), 10,
                     "Prolonged heavy snow: {heavy_snow_hours} hours of heavy intensity"),
                Tier(when(("heavy_snow_hours", ">=", 4)), 6,
                     "Extended heavy snow: {heavy_snow_hours} hours"),
            ),
        ),
    ),
)

DURATION = Factor(
    name="duration",
    rules=(
        Rule(
            "longest_run",
            (
                Tier(when(("max_consecutive", ">=", 18)), 15,
                     "Very long duration: {max_consecutive} consecutive hours"),
                Tier(when(("max_consecutive", ">=", 12)), 12,
                     "Long duration event: {max_consecutive} consecutive hours"),
                Tier(when(("max_consecutive", ">=", 8)), 9,
                     "Extended snowfall: {max_consecutive} consecutive hours"),
                Tier(when(("max_consecutive", ">=", 4)), 6,
                     "Sustained snowfall: {max_consecutive} consecutive hours"),
            ),
        ),
        Rule(
            "multiple_waves",
            (
                Tier(when(("extra_snow_hours", ">=", 6)), 4,
                     "Multiple snow bands/waves expected"),
            ),
        ),
    ),
)

WIND = Factor(
    name="wind",
    rules=(
        Rule(
            "peak_wind",
            (
                Tier(when(("max_gust", ">=", 50)), 20,
                     "EXTREME winds: {max_gust:.0f} mph gusts (blizzard conditions)"),
                Tier(when(("max_gust", ">=", 40)), 16,
                     "Dangerous winds: {max_gust:.0f} mph gusts (severe blowing snow)"),
                Tier(when(("max_gust", ">=", 30)), 13,
                     "Strong gusts: {max_gust:.0f} mph (significant drifting)"),
                Tier(when(("max_speed", ">=", 25)), 10,
                     "High winds: {max_speed:.0f} mph sustained"),
                Tier(when(("max_speed", ">=", 20)), 7,
                     "Strong winds: {max_speed:.0f} mph (blowing snow)"),
                Tier(when(("max_speed", ">=", 15)), 4,
                     "Moderate winds: {max_speed:.0f} mph"),
            ),
        ),
        Rule(
            "sustained_high_wind",
            (
                Tier(when(("sustained_high_wind_hours", ">=", 12)), 8,
                     "Prolonged high winds: {sustained_high_wind_hours} hours above 20 mph"),
                Tier(when(("sustained_high_wind_hours", ">=", 6)), 5),
            ),
        ),
        Rule(
            "extreme_gusts",
            (
                Tier(when(("extreme_gust_hours", ">=", 6)), 7,
                     "Extended period of dangerous gusts"),
            ),
        ),
    ),
)

VISIBILITY = Factor(
    name="visibility",
    rules=(
        Rule(
            "minimum_visibility",
            (
                Tier(when(("min_visibility", "<", 0.1)), 15,
                     "ZERO visibility: {min_visibility:.2f} mi (whiteout conditions)"),
                Tier(when(("min_visibility", "<", 0.25)), 13,
                     "Near-zero visibility: {min_visibility:.2f} mi (extremely dangerous)"),
                Tier(when(("min_visibility", "<", 0.5)), 10,
                     "Very poor visibility: {min_visibility:.1f} mi (hazardous)"),
                Tier(when(("min_visibility", "<", 1)), 7,
                     "Poor visibility: {min_visibility:.1f} mi (dangerous)"),
                Tier(when(("min_visibility", "<", 2)), 4,
                     "Reduced visibility: {min_visibility:.1f} mi"),
            ),
        ),
        Rule(
            "visibility_persistence",
            (
                Tier(when(("dangerous_vis_hours", ">=", 8)), 8,
                     "Extended dangerous visibility: {dangerous_vis_hours} hours below 0.5 mi"),
                Tier(when(("poor_vis_hours", ">=", 12)), 5,
                     "Prolonged poor visibility: {poor_vis_hours} hours below 2 mi"),
            ),
        ),
    ),
)

PRECIPITATION = Factor(
    name="precipitation",
    rules=(
        Rule(
            "precipitation_certainty",
            (
                Tier(when(("certain_precip_hours", ">=", 12)), 8,
                     "Very high certainty: {certain_precip_hours} hours with 90%+ probability"),
                Tier(when(("high_precip_hours", ">=", 12)), 6,
                     "High probability: {high_precip_hours} hours with 70%+ chance"),
                Tier(when(("max_precip_probability", ">=", 80)), 4,
                     "Peak probability: {max_precip_probability:.0f}%"),
                Tier(when(("max_precip_probability", ">=", 60)), 2),
            ),
        ),
    ),
)

TIMING = Factor(
    name="timing",
    rules=(
        Rule(
            "onset",
            (
                Tier(when(("onset_overnight", "==", True)), 6,
                     "Overnight snow (starting ~{onset_hour}:00) - harder to manage"),
                Tier(when(("onset_morning_commute", "==", True)), 8,
                     "Morning rush hour snow (starting ~{onset_hour}:00) - maximum disruption"),
            ),
        ),
        Rule(
            "peak_in_commute",
            (
                Tier(when(("peak_in_commute", "==", True)), 5,
                     "Peak intensity during commute hours (~{peak_local_hour}:00)"),
            ),
        ),
    ),
)

COMPOUNDING = Factor(
    name="compounding",
    rules=(
        Rule(
            "humid_and_cold",
            (
                Tier(when(("avg_humidity", ">=", 80), ("current_temp", "<=", 32)), 6,
                     "Optimal conditions: High humidity ({avg_humidity:.0f}%) + cold temps"),
            ),
        ),
        Rule(
            "blizzard",
            (
                Tier(when(("heavy_snow_hours", ">=", 3), ("max_speed", ">=", 35)), 8,
                     "BLIZZARD CONDITIONS: Heavy snow + high winds"),
            ),
        ),
        Rule(
            "whiteout",
            (
                Tier(
                    when(
                        ("min_visibility", "<", 0.5),
                        ("max_gust", ">=", 30),
                        ("snow_detected", "==", True),
                    ),
                    7,
                    "WHITEOUT CONDITIONS likely",
                ),
            ),
        ),
        Rule(
            "icing",
            (
                Tier(
                    when(
                        ("current_temp", ">=", 30),
                        ("current_temp", "<=", 34),
                        ("snow_detected", "==", True),
                    ),
                    5,
                    "Icing concerns: Temp near freezing with precipitation",
                ),
            ),
        ),
        Rule(
            "long_and_steady",
            (
                Tier(when(("max_consecutive", ">=", 12), ("avg_rate", ">=", 0.2)), 5,
                     "Sustained moderate-heavy snow will produce substantial totals"),
            ),
        ),
    ),
)


@dataclass(frozen=True)
class AlertCategory:
    key: str
    patterns: tuple[str, ...]
    label: str | None
    severity: str
    points: int
    reason: str


# Ordered most to least severe; the first matching category wins per alert.
ALERT_CATEGORIES: tuple[AlertCategory, ...] = (
    AlertCategory("blizzard_warning", ("blizzard warning",), "Blizzard Warning",
                  "Extreme", 30, "BLIZZARD WARNING ISSUED"),
    AlertCategory("winter_storm_warning", ("winter storm warning",), "Winter Storm Warning",
                  "Severe", 25, "WINTER STORM WARNING ISSUED"),
    AlertCategory("ice_storm_warning", ("ice storm warning",), "Ice Storm Warning",
                  "Severe", 25, "ICE STORM WARNING ISSUED"),
    AlertCategory("winter_storm_watch", ("winter storm watch",), "Winter Storm Watch",
                  "Moderate", 15, "Winter Storm Watch in effect"),
    AlertCategory("winter_weather_advisory", ("winter weather advisory",),
                  "Winter Weather Advisory", "Moderate", 12, "Winter Weather Advisory issued"),
    AlertCategory("winter_mention", ("snow", "ice", "freeze"), None,
                  "Minor", 8, "{event} in effect"),
)
