"""Snow day scoring engine (deterministic, table-driven heuristics)."""

from __future__ import annotations

import logging
import operator
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import Any

from ..exceptions import InvalidInputError
from ..weather.models import CurrentConditions, ExternalAdvisory, ForecastSample
from .formulas import wind_chill
from .models import (
    AlertAnalysis,
    Confidence,
    DerivedMetrics,
    FactorScore,
    RadarSynthesis,
    ScoreResult,
)
from .summaries import build_summaries, sample_time
from .tables import (
    ACCUMULATION,
    ALERT_CATEGORIES,
    COMPOUNDING,
    CONFIDENCE_TIERS,
    DEFAULT_LOCAL_WEIGHT,
    DURATION,
    EVENING_COMMUTE,
    IMPOSSIBLE_TEMP_F,
    INTENSITY,
    LOWEST_CONFIDENCE,
    MARGINAL_AVG_TEMP_F,
    MARGINAL_CURRENT_TEMP_F,
    MARGINAL_SCORE,
    MORNING_COMMUTE,
    OVERNIGHT_END_HOUR,
    OVERNIGHT_START_HOUR,
    PRECIPITATION,
    SNOW_DAY_THRESHOLD,
    TEMPERATURE,
    TIMING,
    VISIBILITY,
    WIND,
    Condition,
    Factor,
)

FLAG_TIMING_UNAVAILABLE = "timing_unavailable"

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    ">=": operator.ge,
    ">": operator.gt,
    "<=": operator.le,
    "<": operator.lt,
    "==": operator.eq,
}

_ALERT_REASONS = {category.key: category.reason for category in ALERT_CATEGORIES}

# Factors evaluated before alerts, then the compounding factor after them.
_LEADING_FACTORS: tuple[Factor, ...] = (
    TEMPERATURE,
    ACCUMULATION,
    INTENSITY,
    DURATION,
    WIND,
    VISIBILITY,
    PRECIPITATION,
    TIMING,
)


def confidence_for(percentage: float) -> Confidence:
    for floor, label in CONFIDENCE_TIERS:
        if percentage >= floor:
            return label  # type: ignore[return-value]
    return LOWEST_CONFIDENCE  # type: ignore[return-value]


def display_percentage(percentage: float) -> str:
    if 0 < percentage < 1:
        return "<1%"
    return f"{percentage:.0f}%"


def evaluate_factor(factor: Factor, context: dict[str, Any]) -> FactorScore:
    """Sum every rule's first matching tier and render its reason template."""
    points = 0.0
    reasons: list[str] = []
    for rule in factor.rules:
        for tier in rule.tiers:
            if all(_holds(condition, context) for condition in tier.when):
                points += tier.points
                if tier.reason:
                    reasons.append(tier.reason.format(**context))
                break
    return FactorScore(name=factor.name, points=points, reasons=reasons)


def _holds(condition: Condition, context: dict[str, Any]) -> bool:
    return _OPERATORS[condition.op](context[condition.metric], condition.threshold)


class SnowDayScorer:
    """Turn derived metrics, alerts and an optional advisory into a bounded probability."""

    def __init__(
        self,
        local_weight: float = DEFAULT_LOCAL_WEIGHT,
        logger: logging.Logger | None = None,
    ) -> None:
        if not 0.5 <= local_weight <= 1.0:
            raise InvalidInputError(f"local_weight must be within [0.5, 1.0], got {local_weight}.")
        self.local_weight = local_weight
        self.logger = logger or logging.getLogger("snow_day_predictor.engine.scorer")

    def score(
        self,
        current: CurrentConditions,
        metrics: DerivedMetrics,
        alert_analysis: AlertAnalysis,
        radar: RadarSynthesis,
        external_advisory: ExternalAdvisory | None = None,
        samples: Sequence[ForecastSample] | None = None,
        extra_flags: Iterable[str] = (),
    ) -> ScoreResult:
        summaries = build_summaries(current, metrics, samples)
        active_alerts = list(alert_analysis.types)
        temps = metrics.temperature

        if current.temperature >= IMPOSSIBLE_TEMP_F and temps.high_24h >= IMPOSSIBLE_TEMP_F:
            self.logger.debug(
                "Snow physically impossible: current=%.0f high_24h=%.0f",
                current.temperature,
                temps.high_24h,
            )
            return ScoreResult(
                percentage=0.0,
                display_percentage="0%",
                is_snow_day=False,
                confidence="very high",
                outcome="impossible",
                reasoning=[
                    f"Snow is physically impossible: {current.temperature:.0f}°F now with a "
                    f"24-hour high of {temps.high_24h:.0f}°F"
                ],
                factors=[],
                local_percentage=0.0,
                summaries=summaries,
                active_alerts=active_alerts,
                missing_data_flags=_merge_flags(metrics.missing_data_flags, extra_flags),
            )

        flags = _merge_flags(metrics.missing_data_flags, radar.missing_data_flags)
        context, timing_known = self._context(current, metrics, samples)
        if metrics.snow.detected and not timing_known:
            flags = _merge_flags(flags, [FLAG_TIMING_UNAVAILABLE])

        factors = [evaluate_factor(factor, context) for factor in _LEADING_FACTORS]
        factors.append(_alert_factor(alert_analysis))
        factors.append(evaluate_factor(COMPOUNDING, context))

        local = min(100.0, max(0.0, sum(factor.points for factor in factors)))
        reasoning = [reason for factor in factors for reason in factor.reasons]

        external_probability: float | None = None
        external_weight = 0.0
        advisory_factors: list[str] = []
        percentage = local
        if external_advisory is not None:
            external_probability = external_advisory.probability
            external_weight = round(1.0 - self.local_weight, 4)
            percentage = local * self.local_weight + external_probability * external_weight
            advisory_factors = list(external_advisory.key_factors)
            reasoning.append(
                f"AI weather analysis: {external_probability:.0f}% snow day probability"
            )
        percentage = round(min(100.0, max(0.0, percentage)), 1)

        outcome = "scored"
        if (
            current.temperature >= MARGINAL_CURRENT_TEMP_F
            and temps.average_24h >= MARGINAL_AVG_TEMP_F
        ):
            outcome = "marginal"
            percentage = MARGINAL_SCORE
            reasoning.append(
                f"Too warm for accumulating snow: {current.temperature:.0f}°F now, "
                f"{temps.average_24h:.0f}°F average over the next 24 hours"
            )

        self.logger.debug(
            "Score breakdown: %s local=%.1f final=%.1f outcome=%s",
            {factor.name: factor.points for factor in factors},
            local,
            percentage,
            outcome,
        )
        return ScoreResult(
            percentage=percentage,
            display_percentage=display_percentage(percentage),
            is_snow_day=percentage >= SNOW_DAY_THRESHOLD,
            confidence=confidence_for(percentage),
            outcome=outcome,
            reasoning=reasoning,
            factors=factors,
            local_percentage=round(local, 1),
            external_probability=external_probability,
            external_weight=external_weight,
            advisory_factors=advisory_factors,
            summaries=summaries,
            active_alerts=active_alerts,
            missing_data_flags=_merge_flags(flags, extra_flags),
        )

    def _context(
        self,
        current: CurrentConditions,
        metrics: DerivedMetrics,
        samples: Sequence[ForecastSample] | None,
    ) -> tuple[dict[str, Any], bool]:
        snow = metrics.snow
        chill = wind_chill(current.temperature, current.wind_speed)
        onset = sample_time(samples, snow.start_hour)
        peak = sample_time(samples, snow.peak_hour)
        onset_hour = onset.hour if onset is not None else -1
        peak_hour = peak.hour if peak is not None else -1

        context: dict[str, Any] = {
            "current_temp": current.temperature,
            "wind_chill": chill,
            "wind_chill_depression": current.temperature - chill,
            "deep_freeze_hours": metrics.temperature.deep_freeze_hours,
            "below_freezing_hours": metrics.temperature.below_freezing_hours,
            "warming_trend": metrics.temperature.warming_trend,
            "snow_detected": snow.detected,
            "total_accumulation": snow.total_accumulation,
            "window_hours": metrics.window_hours,
            "max_rate": snow.max_rate,
            "avg_rate": snow.avg_rate,
            "heavy_snow_hours": snow.heavy_snow_hours,
            "max_consecutive": snow.max_consecutive,
            "extra_snow_hours": snow.total_snow_hours - snow.max_consecutive,
            "max_gust": metrics.wind.max_gust,
            "max_speed": metrics.wind.max_speed,
            "sustained_high_wind_hours": metrics.wind.sustained_high_wind_hours,
            "extreme_gust_hours": metrics.wind.extreme_gust_hours,
            "min_visibility": metrics.visibility.minimum,
            "dangerous_vis_hours": metrics.visibility.dangerous_hours,
            "poor_vis_hours": metrics.visibility.poor_hours,
            "certain_precip_hours": metrics.precip.certain_hours,
            "high_precip_hours": metrics.precip.high_probability_hours,
            "max_precip_probability": metrics.precip.max_probability,
            "avg_humidity": metrics.humidity.average,
            "onset_hour": onset_hour,
            "onset_overnight": onset is not None and _overnight(onset),
            "onset_morning_commute": onset is not None and _in_window(onset, MORNING_COMMUTE),
            "peak_local_hour": peak_hour,
            "peak_in_commute": peak is not None
            and (_in_window(peak, MORNING_COMMUTE) or _in_window(peak, EVENING_COMMUTE)),
        }
        return context, onset is not None


def _overnight(moment: datetime) -> bool:
    return moment.hour >= OVERNIGHT_START_HOUR or moment.hour <= OVERNIGHT_END_HOUR


def _in_window(moment: datetime, window: tuple[int, int]) -> bool:
    start, end = window
    return start <= moment.hour <= end


def _alert_factor(alert_analysis: AlertAnalysis) -> FactorScore:
    reasons = [
        _ALERT_REASONS[alert.category].format(event=alert.event)
        for alert in alert_analysis.winter_alerts
    ]
    return FactorScore(name="alerts", points=float(alert_analysis.impact_score), reasons=reasons)


def _merge_flags(*groups: Iterable[str]) -> list[str]:
    merged: list[str] = []
    for group in groups:
        for flag in group:
            if flag not in merged:
                merged.append(flag)
    return merged


def score(
    current: CurrentConditions,
    metrics: DerivedMetrics,
    alert_analysis: AlertAnalysis,
    radar: RadarSynthesis,
    external_advisory: ExternalAdvisory | None = None,
    samples: Sequence[ForecastSample] | None = None,
) -> ScoreResult:
    """Score with the default local/advisory weighting."""
    return SnowDayScorer().score(
        current,
        metrics,
        alert_analysis,
        radar,
        external_advisory=external_advisory,
        samples=samples,
    )
