"""Snow day scoring engine: metrics, alerts, radar proxy, scoring and narrative."""

from .alerts import classify
from .metrics import extract
from .models import (
    AlertAnalysis,
    ConditionSummary,
    DerivedMetrics,
    FactorScore,
    Narrative,
    RadarSynthesis,
    ScoreResult,
)
from .narrative import narrate
from .radar import synthesize
from .scorer import SnowDayScorer, score

__all__ = [
    "AlertAnalysis",
    "ConditionSummary",
    "DerivedMetrics",
    "FactorScore",
    "Narrative",
    "RadarSynthesis",
    "ScoreResult",
    "SnowDayScorer",
    "classify",
    "extract",
    "narrate",
    "score",
    "synthesize",
]
