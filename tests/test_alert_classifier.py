"""Tests for winter alert classification."""

from __future__ import annotations

from snow_day_predictor.engine.alerts import classify, match_category
from snow_day_predictor.weather.models import AlertRecord


def test_no_alerts_yield_zeroed_analysis() -> None:
    for alerts in (None, []):
        analysis = classify(alerts)
        assert analysis.severity == "none"
        assert analysis.urgency == "none"
        assert analysis.impact_score == 0
        assert analysis.total_alerts == 0
        assert analysis.winter_alerts == []


def test_winter_storm_warning_sets_flag_and_severity() -> None:
    alerts = [
        AlertRecord(
            event="Winter Storm Warning",
            severity="Severe",
            urgency="Expected",
            headline="Winter Storm Warning until Friday morning",
        ),
        AlertRecord(event="Wind Advisory", severity="Moderate", urgency="Immediate"),
    ]

    analysis = classify(alerts)

    assert analysis.total_alerts == 2
    assert analysis.types == ["Winter Storm Warning", "Wind Advisory"]
    assert analysis.impact_score == 25
    assert analysis.has_winter_storm_warning is True
    assert analysis.has_blizzard_warning is False
    assert analysis.severity == "severe"
    assert analysis.urgency == "expected"
    assert len(analysis.winter_alerts) == 1
    winter = analysis.winter_alerts[0]
    assert winter.label == "Winter Storm Warning"
    assert winter.description == "Winter Storm Warning until Friday morning"


def test_extreme_severity_is_immediate() -> None:
    analysis = classify(
        [AlertRecord(event="Blizzard Warning", severity="Extreme", urgency="Expected")]
    )

    assert analysis.severity == "extreme"
    assert analysis.urgency == "immediate"
    assert analysis.impact_score == 30
    assert analysis.has_blizzard_warning is True


def test_generic_winter_mention_uses_event_as_label() -> None:
    analysis = classify(
        [AlertRecord(event="Lake Effect Snow Warning", severity="Moderate", urgency="Future")]
    )

    assert analysis.impact_score == 8
    assert analysis.winter_alerts[0].category == "winter_mention"
    assert analysis.winter_alerts[0].label == "Lake Effect Snow Warning"


def test_first_alert_keeps_severity_on_ties() -> None:
    analysis = classify(
        [
            AlertRecord(event="Winter Weather Advisory", severity="Moderate", urgency="Expected"),
            AlertRecord(event="Winter Storm Watch", severity="Moderate", urgency="Future"),
        ]
    )

    assert analysis.severity == "moderate"
    assert analysis.urgency == "expected"
    assert analysis.impact_score == 12 + 15
    assert analysis.has_winter_weather_advisory is True
    assert analysis.has_winter_storm_watch is True


def test_each_alert_matches_a_single_category() -> None:
    assert match_category("Blizzard Warning").key == "blizzard_warning"
    assert match_category("Ice Storm Warning").key == "ice_storm_warning"
    assert match_category("Hard Freeze Warning").key == "winter_mention"
    assert match_category("Heat Advisory") is None

    analysis = classify([AlertRecord(event="Blizzard Warning", severity="Extreme")])
    assert analysis.impact_score == 30
    assert len(analysis.winter_alerts) == 1
