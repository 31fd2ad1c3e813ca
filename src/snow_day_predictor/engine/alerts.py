"""Alert classifier: raw NWS alerts -> normalized winter severity/impact."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..weather.models import AlertRecord
from .models import AlertAnalysis, AlertLevel, WinterAlert
from .tables import ALERT_CATEGORIES, AlertCategory

logger = logging.getLogger("snow_day_predictor.engine.alerts")

_SEVERITY_RANK: dict[str, int] = {"Extreme": 3, "Severe": 2, "Moderate": 1}
_LEVEL_BY_RANK: dict[int, AlertLevel] = {3: "extreme", 2: "severe", 1: "moderate"}

_CATEGORY_FLAGS = {
    "blizzard_warning": "has_blizzard_warning",
    "winter_storm_warning": "has_winter_storm_warning",
    "ice_storm_warning": "has_ice_storm_warning",
    "winter_storm_watch": "has_winter_storm_watch",
    "winter_weather_advisory": "has_winter_weather_advisory",
}


def match_category(event: str) -> AlertCategory | None:
    """Return the first (most severe) category whose pattern occurs in ``event``."""
    lowered = event.lower()
    for category in ALERT_CATEGORIES:
        if any(pattern in lowered for pattern in category.patterns):
            return category
    return None


def classify(alerts: Iterable[AlertRecord] | None) -> AlertAnalysis:
    """Summarize alerts; an empty or missing list yields a zeroed result."""
    analysis = AlertAnalysis()
    if not alerts:
        return analysis

    best_rank = 0
    for alert in alerts:
        analysis.total_alerts += 1
        analysis.types.append(alert.event)

        category = match_category(alert.event)
        if category is not None:
            analysis.impact_score += category.points
            flag = _CATEGORY_FLAGS.get(category.key)
            if flag is not None:
                setattr(analysis, flag, True)
            analysis.winter_alerts.append(
                WinterAlert(
                    category=category.key,
                    label=category.label or alert.event,
                    event=alert.event,
                    severity=category.severity,
                    points=category.points,
                    description=alert.headline or alert.description,
                )
            )

        # Strictly greater: on ties the first alert seen keeps severity/urgency.
        rank = _SEVERITY_RANK.get(alert.severity, 0)
        if rank > best_rank:
            best_rank = rank
            analysis.severity = _LEVEL_BY_RANK[rank]
            analysis.urgency = "immediate" if rank == 3 else alert.urgency.lower()

    logger.debug(
        "Classified %d alerts: severity=%s impact=%d winter=%d",
        analysis.total_alerts,
        analysis.severity,
        analysis.impact_score,
        len(analysis.winter_alerts),
    )
    return analysis
