"""Append-only JSONL journal of snow day analysis runs."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .exceptions import JournalError
from .redaction import sanitize_for_logging, sanitize_text

if TYPE_CHECKING:
    from .pipeline import SnowDayReport
    from .weather.models import ForecastFetchResult

EVENT_TYPES = frozenset(
    {
        "analysis_startup",
        "analysis_request_start",
        "forecast_raw_snapshot",
        "analysis_result",
        "analysis_failure",
        "analysis_shutdown",
    }
)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.isoformat()
        return value.astimezone(UTC).isoformat()
    if isinstance(value, Path):
        return str(value)
    # pydantic AnyUrl and similar carry a meaningful __str__.
    if type(value).__str__ is not object.__str__:
        return sanitize_text(str(value))
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def summarize_report(report: SnowDayReport) -> dict[str, Any]:
    """Headline fields of one analysis, small enough to grep a day's journal by."""
    result = report.result
    return {
        "location": report.location,
        "latitude": report.latitude,
        "longitude": report.longitude,
        "percentage": result.percentage,
        "display_percentage": result.display_percentage,
        "is_snow_day": result.is_snow_day,
        "confidence": result.confidence,
        "outcome": result.outcome,
        "local_percentage": result.local_percentage,
        "external_probability": result.external_probability,
        "active_alerts": result.active_alerts,
        "missing_data_flags": result.missing_data_flags,
        "breakdown": result.breakdown,
    }


class JournalWriter:
    """One JSONL file per UTC day; every line belongs to a single CLI session."""

    def __init__(self, journal_dir: Path, raw_payload_dir: Path, session_id: str) -> None:
        self.journal_dir = journal_dir
        self.raw_payload_dir = raw_payload_dir
        self.session_id = session_id
        try:
            self.journal_dir.mkdir(parents=True, exist_ok=True)
            self.raw_payload_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise JournalError(f"Failed creating journal directories: {exc}") from exc
        self.events_path = self.journal_dir / f"{datetime.now(UTC):%Y%m%d}.jsonl"

    def write_event(
        self,
        event_type: str,
        payload: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if event_type not in EVENT_TYPES:
            raise JournalError(f"Unknown journal event type: {event_type}")
        record: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "event_type": event_type,
            "session_id": self.session_id,
            "payload": sanitize_for_logging(payload),
            "metadata": sanitize_for_logging(metadata or {"session_id": self.session_id}),
        }
        try:
            with self.events_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record, default=_json_default))
                fh.write("\n")
        except (OSError, TypeError, ValueError) as exc:
            raise JournalError(f"Failed writing event journal: {exc}") from exc

    def write_raw_snapshot(self, name: str, payload: Any) -> Path:
        timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        safe_name = "".join(ch if ch.isalnum() or ch in {"-", "_"} else "_" for ch in name)
        output_path = self.raw_payload_dir / f"{timestamp}_{self.session_id}_{safe_name}.json"
        try:
            output_path.write_text(
                json.dumps(
                    sanitize_for_logging(payload),
                    ensure_ascii=False,
                    indent=2,
                    default=_json_default,
                )
                + "\n",
                encoding="utf-8",
            )
        except (OSError, TypeError, ValueError) as exc:
            raise JournalError(f"Failed writing raw payload snapshot: {exc}") from exc
        return output_path

    def record_forecast_snapshot(self, forecast: ForecastFetchResult) -> Path | None:
        """Persist the provider's raw forecast; forecasts built in code have none."""
        if not forecast.raw_payload:
            return None
        path = self.write_raw_snapshot(f"{forecast.provider}_forecast", forecast.raw_payload)
        self.write_event(
            "forecast_raw_snapshot",
            payload={
                "forecast_raw_path": str(path),
                "provider": forecast.provider,
                "source": forecast.source_url,
                "hours": forecast.hourly.hours,
                "timezone": forecast.timezone,
            },
        )
        return path

    def record_result(self, report: SnowDayReport) -> None:
        self.write_event(
            "analysis_result",
            payload={
                "summary": summarize_report(report),
                "report": report.model_dump(mode="json"),
            },
            metadata={"session_id": self.session_id, "location": report.location},
        )

    def record_failure(self, exc: Exception, *, exit_code: int) -> None:
        self.write_event(
            "analysis_failure",
            payload={
                "error": str(exc),
                "type": type(exc).__name__,
                "exit_code": exit_code,
            },
        )
