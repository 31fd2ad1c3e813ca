"""OpenAI-compatible chat-completions client producing an external snow day opinion."""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..engine.models import AlertAnalysis, RadarSynthesis
from ..exceptions import AdvisoryError
from ..redaction import sanitize_text
from ..weather.models import CurrentConditions, ExternalAdvisory, ForecastSample

SYSTEM_PROMPT = (
    "Expert meteorologist. Factor in radar patterns and NWS alerts heavily. "
    "Respond only with valid JSON."
)
PROMPT_HOURS = 24

_FENCE_RE = re.compile(r"```(?:json)?\s*")
# Provider errors that mean "this model is exhausted, try the next one".
_ROTATE_CODES = frozenset({"rate_limit_exceeded", "tokens_limit_exceeded", "insufficient_quota"})
_ROTATE_RE = re.compile(
    r"rate[ _-]limit|tokens per (?:minute|day)|token limit|too many tokens",
    re.IGNORECASE,
)


class LLMAdvisoryClient:
    """Asks an LLM for a snow day probability, falling back across an ordered model list."""

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not settings.advisory_api_key:
            raise AdvisoryError("ADVISORY_API_KEY is required for the advisory client.")
        self.settings = settings
        self.logger = logger or logging.getLogger("snow_day_predictor.advisory")
        self.models = settings.advisory_model_list
        self._model_index = 0
        self._client = httpx.Client(
            timeout=settings.advisory_timeout_seconds,
            headers={
                "Authorization": f"Bearer {settings.advisory_api_key}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    def __enter__(self) -> LLMAdvisoryClient:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @property
    def current_model(self) -> str | None:
        if self._model_index >= len(self.models):
            return None
        return self.models[self._model_index]

    def fetch_advisory(
        self,
        *,
        location_name: str,
        current: CurrentConditions,
        samples: Sequence[ForecastSample],
        radar: RadarSynthesis,
        alert_analysis: AlertAnalysis,
    ) -> ExternalAdvisory:
        """Return the first parseable model answer within the overall deadline."""
        prompt = build_prompt(location_name, current, samples, radar, alert_analysis)
        deadline = time.monotonic() + self.settings.advisory_timeout_seconds
        last_error: AdvisoryError | None = None

        index = self._model_index
        while index < len(self.models):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise AdvisoryError(
                    f"Advisory deadline of {self.settings.advisory_timeout_seconds}s exceeded.",
                    model=self.models[index],
                )
            model = self.models[index]
            try:
                advisory = self._ask(model, prompt, timeout=remaining)
            except _ModelExhausted as exc:
                self.logger.warning("Advisory model %s exhausted (%s); rotating", model, exc)
                last_error = AdvisoryError(str(exc), model=model)
                index += 1
                self._model_index = index
                continue
            except AdvisoryError as exc:
                self.logger.warning("Advisory model %s failed: %s", model, exc)
                last_error = exc
                index += 1
                continue
            self._model_index = index
            self.logger.info("Advisory received from %s: %.0f%%", model, advisory.probability)
            return advisory

        raise AdvisoryError(
            f"All advisory models failed: {last_error or 'no models available'}",
            model=last_error.model if last_error else None,
        )

    def _ask(self, model: str, prompt: str, *, timeout: float) -> ExternalAdvisory:
        body = {
            "model": model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.settings.advisory_temperature,
            "max_tokens": self.settings.advisory_max_tokens,
        }
        try:
            response = self._client.post(
                str(self.settings.advisory_api_url), json=body, timeout=timeout
            )
        except httpx.HTTPError as exc:
            raise AdvisoryError(
                f"Advisory request failed: {sanitize_text(str(exc))}", model=model
            ) from exc

        if response.status_code >= 400:
            message, code = _error_message(response)
            if (
                response.status_code == 429
                or code in _ROTATE_CODES
                or _ROTATE_RE.search(message)
            ):
                raise _ModelExhausted(message or f"HTTP {response.status_code}")
            raise AdvisoryError(
                f"Advisory API error {response.status_code}: {sanitize_text(message[:300])}",
                model=model,
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise AdvisoryError("Advisory response missing message content.", model=model) from exc
        return parse_advisory(content, model=model)


class _ModelExhausted(Exception):
    """Rate-limit or token-budget refusal for one model."""


def _error_message(response: httpx.Response) -> tuple[str, str | None]:
    """Return the provider's error message and machine-readable code, if any."""
    try:
        payload = response.json()
    except ValueError:
        return response.text, None
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        code = error.get("code") or error.get("type")
        return str(error.get("message", "")), str(code) if code else None
    return str(error or ""), None


def parse_advisory(content: str, *, model: str | None = None) -> ExternalAdvisory:
    """Parse a (possibly code-fenced) JSON reply into an ExternalAdvisory."""
    cleaned = _FENCE_RE.sub("", content).strip()
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise AdvisoryError("Advisory reply is not valid JSON.", model=model) from exc
    if not isinstance(payload, dict) or "snowDayProbability" not in payload:
        raise AdvisoryError("Advisory reply lacks snowDayProbability.", model=model)

    try:
        return ExternalAdvisory(
            probability=payload["snowDayProbability"],
            key_factors=[str(item) for item in payload.get("keyFactors") or []],
            confidence=payload.get("confidence"),
            total_accumulation=payload.get("totalAccumulation"),
            radar_insight=payload.get("radarInsight"),
            alert_impact=payload.get("alertImpact"),
            recommendations=payload.get("recommendations"),
            model=model,
        )
    except ValidationError as exc:
        raise AdvisoryError(f"Advisory reply failed validation: {exc}", model=model) from exc


def build_prompt(
    location_name: str,
    current: CurrentConditions,
    samples: Sequence[ForecastSample],
    radar: RadarSynthesis,
    alert_analysis: AlertAnalysis,
) -> str:
    day = list(samples[:PROMPT_HOURS])
    snow = sum(hour.snowfall for hour in day)
    avg_temp = sum(hour.temperature for hour in day) / len(day) if day else current.temperature
    max_wind = max((hour.wind_speed for hour in day), default=current.wind_speed)
    min_vis = min((hour.visibility for hour in day), default=current.visibility)
    alerts = ", ".join(alert.label for alert in alert_analysis.winter_alerts) or "None"

    return f"""Weather analysis for {location_name}:

CURRENT: {current.temperature:.0f}°F, {current.wind_speed:.0f}mph wind, {current.cloud_cover:.0f}% clouds
24HR FORECAST: Avg {avg_temp:.0f}°F, {snow:.1f}" snow, {max_wind:.0f}mph wind, {min_vis:.1f}mi visibility

RADAR ANALYSIS:
- Intensity: {radar.precipitation_intensity}
- Pattern: {radar.movement_pattern}
- Duration: {radar.continuous_hours} hours continuous
- Trend: {radar.intensity_trend}
- Coverage: {radar.coverage:.0f}%

ACTIVE ALERTS: {alerts}
Alert Impact Score: {alert_analysis.impact_score}/30

Analyze and respond with ONLY valid JSON:
{{
  "snowDayProbability": 75,
  "confidence": "high",
  "isSnowDay": true,
  "keyFactors": ["Blizzard Warning issued", "Heavy snow 8+ inches", "25mph winds"],
  "totalAccumulation": "8-10 inches",
  "radarInsight": "Slow-moving storm producing sustained heavy snow",
  "alertImpact": "Blizzard Warning indicates life-threatening conditions",
  "recommendations": "Do not travel. Roads impassable."
}}"""
