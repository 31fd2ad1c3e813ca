"""Typed models for the derived-metrics, scoring and narrative pipeline."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

AlertLevel = Literal["none", "moderate", "severe", "extreme"]
PrecipIntensity = Literal["none", "light", "moderate", "heavy"]
MovementPattern = Literal["static", "fast-moving", "steady progression", "slow-moving system"]
IntensityTrend = Literal["stable", "intensifying", "weakening"]
Confidence = Literal["very low", "low", "medium", "medium-high", "high", "very high"]
ScoreOutcome = Literal["scored", "impossible", "marginal"]
AdvisoryBand = Literal["extreme", "dangerous", "significant", "likely", "minor", "minimal"]


class SnowMetrics(BaseModel):
    """Snow detection, accumulation, rate and run-length statistics."""

    detected: bool = False
    total_accumulation: float = 0.0
    max_rate: float = 0.0
    avg_rate: float = 0.0
    start_hour: int = -1
    end_hour: int = -1
    peak_hour: int = -1
    consecutive_hours: int = 0
    max_consecutive: int = 0
    total_snow_hours: int = 0
    heavy_snow_hours: int = 0
    moderate_snow_hours: int = 0
    light_snow_hours: int = 0
    snow_code_hours: int = 0
    heavy_snow_code_hours: int = 0
    hourly_rates: list[float] = Field(default_factory=list)


class WindMetrics(BaseModel):
    max_speed: float = 0.0
    max_gust: float = 0.0
    avg_speed: float = 0.0
    sustained_high_wind_hours: int = 0
    extreme_gust_hours: int = 0


class VisibilityMetrics(BaseModel):
    minimum: float = 10.0
    average: float = 0.0
    poor_hours: int = 0
    dangerous_hours: int = 0


class TemperatureMetrics(BaseModel):
    lowest: float = 0.0
    lowest_hour: int = 0
    highest: float = 0.0
    average: float = 0.0
    average_24h: float = 0.0
    high_24h: float = 0.0
    below_freezing_hours: int = 0
    deep_freeze_hours: int = 0
    warming_trend: bool = False
    cooling_trend: bool = False


class PrecipMetrics(BaseModel):
    max_probability: float = 0.0
    avg_probability: float = 0.0
    high_probability_hours: int = 0
    certain_hours: int = 0
    total_precipitation: float = 0.0


class HumidityMetrics(BaseModel):
    average: float = 0.0
    maximum: float = 0.0
    minimum: float = 0.0
    high_humidity_hours: int = 0


class DerivedMetrics(BaseModel):
    """Everything the extractor derives from one pass over the hourly window."""

    window_hours: int
    snow: SnowMetrics
    wind: WindMetrics
    visibility: VisibilityMetrics
    temperature: TemperatureMetrics
    precip: PrecipMetrics
    humidity: HumidityMetrics
    missing_data_flags: list[str] = Field(default_factory=list)


class WinterAlert(BaseModel):
    """Alert matched to a winter category."""

    category: str
    label: str
    event: str
    severity: str
    points: int
    description: str | None = None


class AlertAnalysis(BaseModel):
    """Normalized severity/impact view over the active alert list."""

    severity: AlertLevel = "none"
    urgency: str = "none"
    impact_score: int = 0
    total_alerts: int = 0
    types: list[str] = Field(default_factory=list)
    has_blizzard_warning: bool = False
    has_winter_storm_warning: bool = False
    has_ice_storm_warning: bool = False
    has_winter_storm_watch: bool = False
    has_winter_weather_advisory: bool = False
    winter_alerts: list[WinterAlert] = Field(default_factory=list)


class SnowBand(BaseModel):
    hour: int
    intensity: float
    probability: float


class RadarSynthesis(BaseModel):
    """Coarse precipitation intensity/movement/trend proxy for radar imagery."""

    precipitation_intensity: PrecipIntensity = "none"
    precipitation_rate: float = 0.0
    movement_pattern: MovementPattern = "static"
    intensity_trend: IntensityTrend = "stable"
    coverage: float = 0.0
    continuous_hours: int = 0
    snow_bands: list[SnowBand] = Field(default_factory=list)
    missing_data_flags: list[str] = Field(default_factory=list)


class FactorScore(BaseModel):
    """Signed contribution of one scoring factor."""

    name: str
    points: float
    reasons: list[str] = Field(default_factory=list)


class ConditionSummary(BaseModel):
    """Display-ready one-line summaries of the analyzed conditions."""

    accumulation: str
    snow_rate: str
    temperature: str
    feels_like: str
    wind: str
    wind_chill: str
    precipitation: str
    visibility: str
    sky_conditions: str
    humidity: str
    peak_time: str
    duration: str


class ScoreResult(BaseModel):
    """Engine output: bounded probability plus everything needed to explain it."""

    percentage: float = Field(ge=0.0, le=100.0)
    display_percentage: str
    is_snow_day: bool
    confidence: Confidence
    outcome: ScoreOutcome = "scored"
    reasoning: list[str] = Field(default_factory=list)
    factors: list[FactorScore] = Field(default_factory=list)
    local_percentage: float = Field(ge=0.0, le=100.0)
    external_probability: float | None = Field(default=None, ge=0.0, le=100.0)
    external_weight: float = 0.0
    advisory_factors: list[str] = Field(default_factory=list)
    summaries: ConditionSummary
    active_alerts: list[str] = Field(default_factory=list)
    missing_data_flags: list[str] = Field(default_factory=list)

    @property
    def breakdown(self) -> dict[str, float]:
        """Factor name -> points, in evaluation order."""
        return {factor.name: factor.points for factor in self.factors}


class Narrative(BaseModel):
    """Natural-language views of a score result."""

    reasoning: str
    radar_text: str
    timing_text: str
    advisory: str
    advisory_band: AdvisoryBand
