"""Settings validation, credential redaction and journal serialization tests."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

import pytest
from pydantic import ValidationError

from snow_day_predictor.config import Settings, load_settings
from snow_day_predictor.exceptions import ConfigError, JournalError
from snow_day_predictor.journal import JournalWriter, _json_default
from snow_day_predictor.log_setup import JsonConsoleFormatter, SessionContextFilter, setup_logger
from snow_day_predictor.redaction import REDACTED, sanitize_for_logging, sanitize_text
from snow_day_predictor.weather.models import CurrentConditions, ForecastFetchResult, HourlyForecast

# ===========================================================================
# 1. Settings
# ===========================================================================


class TestSettings:
    """Verify defaults and range validation for environment settings."""

    def _base_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("APP_ENV", "dev")
        monkeypatch.setenv("NWS_USER_AGENT", "test-agent")
        monkeypatch.setenv("JOURNAL_DIR", str(tmp_path / "journal"))
        monkeypatch.setenv("RAW_PAYLOAD_DIR", str(tmp_path / "raw"))
        for name in ("ADVISORY_ENABLED", "ADVISORY_API_KEY", "SCORE_LOCAL_WEIGHT"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        self._base_env(monkeypatch, tmp_path)

        settings = Settings(_env_file=None)

        assert settings.analysis_window_hours == 72
        assert settings.radar_window_hours == 48
        assert settings.score_local_weight == pytest.approx(0.7)
        assert settings.advisory_enabled is False
        assert settings.advisory_model_list[0] == "llama-3.3-70b-versatile"
        assert len(settings.advisory_model_list) == 4

    def test_local_weight_must_dominate(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        self._base_env(monkeypatch, tmp_path)
        monkeypatch.setenv("SCORE_LOCAL_WEIGHT", "0.4")

        with pytest.raises(ValidationError, match="SCORE_LOCAL_WEIGHT"):
            Settings(_env_file=None)

    def test_advisory_requires_api_key(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        self._base_env(monkeypatch, tmp_path)
        monkeypatch.setenv("ADVISORY_ENABLED", "true")
        monkeypatch.setenv("ADVISORY_API_KEY", "   ")

        with pytest.raises(ValidationError, match="ADVISORY_API_KEY"):
            Settings(_env_file=None)

    def test_model_list_is_parsed_in_order(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        self._base_env(monkeypatch, tmp_path)
        monkeypatch.setenv("ADVISORY_MODELS", " first-model , ,second-model")

        settings = Settings(_env_file=None)

        assert settings.advisory_model_list == ["first-model", "second-model"]

    def test_safe_summary_omits_api_key(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        self._base_env(monkeypatch, tmp_path)
        monkeypatch.setenv("ADVISORY_ENABLED", "true")
        monkeypatch.setenv("ADVISORY_API_KEY", "gsk_supersecretvalue123456")

        settings = Settings(_env_file=None)

        assert "gsk_supersecretvalue123456" not in json.dumps(settings.safe_summary())
        assert "gsk_supersecretvalue123456" not in repr(settings)

    def test_load_settings_wraps_errors_and_creates_dirs(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        self._base_env(monkeypatch, tmp_path)
        monkeypatch.chdir(tmp_path)

        settings = load_settings()
        assert settings.journal_dir.is_dir()
        assert settings.raw_payload_dir.is_dir()

        monkeypatch.setenv("ANALYSIS_WINDOW_HOURS", "0")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_settings()


# ===========================================================================
# 2. Redaction and log formatting
# ===========================================================================


class TestRedaction:
    """Verify credentials never reach logs or journals."""

    def test_bearer_and_provider_keys(self) -> None:
        text = "Authorization: Bearer abc.def-123 failed for gsk_ABCDEFGHIJKLMNOPQRSTUV"

        sanitized = sanitize_text(text)

        assert "abc.def-123" not in sanitized
        assert "gsk_ABCDEFGHIJKLMNOPQRSTUV" not in sanitized
        assert REDACTED in sanitized

    def test_key_value_pairs(self) -> None:
        assert sanitize_text("retry with api_key=hunter2 now") == f"retry with api_key={REDACTED} now"

    def test_nested_structures(self) -> None:
        payload = {
            "settings": {"advisory_api_key": "secret", "window": 72},
            "errors": ["Bearer token123"],
        }

        sanitized = sanitize_for_logging(payload)

        assert sanitized["settings"]["advisory_api_key"] == REDACTED
        assert sanitized["settings"]["window"] == 72
        assert sanitized["errors"] == [f"Bearer {REDACTED}"]

    def test_json_formatter_redacts_message(self) -> None:
        record = logging.LogRecord(
            name="snow_day_predictor.advisory",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="Advisory request failed: %s",
            args=("Bearer sk-live1234567890abcdefgh",),
            exc_info=None,
        )

        event = json.loads(JsonConsoleFormatter().format(record))

        assert event["level"] == "WARNING"
        assert event["logger"] == "snow_day_predictor.advisory"
        assert "sk-live1234567890abcdefgh" not in event["message"]


# ===========================================================================
# 3. Journal
# ===========================================================================


class TestJournalWriter:
    """Verify journal write operations and error handling."""

    def test_json_default_handles_datetimes_and_paths(self) -> None:
        assert _json_default(datetime(2026, 1, 15, 6, 0)) == "2026-01-15T06:00:00"
        assert "2026-01-15T06:00:00" in _json_default(datetime(2026, 1, 15, 6, tzinfo=UTC))
        assert _json_default(Path("/data/raw/x.json")) == "/data/raw/x.json"

    def test_write_event_creates_valid_jsonl(self, tmp_path: Path) -> None:
        jw = JournalWriter(tmp_path / "journal", tmp_path / "raw", session_id="test123")
        jw.write_event("analysis_result", {"percentage": 72.5, "api_key": "leak"})
        jw.write_event("analysis_shutdown", {"exit_code": 0})

        lines = jw.events_path.read_text(encoding="utf-8").strip().split("\n")
        assert len(lines) == 2
        record = json.loads(lines[0])
        assert record["event_type"] == "analysis_result"
        assert record["session_id"] == "test123"
        assert record["payload"]["percentage"] == 72.5
        assert record["payload"]["api_key"] == REDACTED
        assert record["metadata"] == {"session_id": "test123"}

    def test_write_raw_snapshot(self, tmp_path: Path) -> None:
        jw = JournalWriter(tmp_path / "journal", tmp_path / "raw", session_id="s1")

        path = jw.write_raw_snapshot("open_meteo/forecast", {"hourly": {"snowfall": [0.4]}})

        assert path.name.endswith("_s1_open_meteo_forecast.json")
        assert json.loads(path.read_text(encoding="utf-8"))["hourly"]["snowfall"] == [0.4]

    def test_non_serializable_payload_raises_journal_error(self, tmp_path: Path) -> None:
        jw = JournalWriter(tmp_path / "journal", tmp_path / "raw", session_id="s1")

        with pytest.raises(JournalError, match="Failed writing event journal"):
            jw.write_event("analysis_result", {"obj": object()})

    def test_unwritable_directory_raises_journal_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")

        with pytest.raises(JournalError, match="Failed creating journal directories"):
            JournalWriter(blocker / "journal", tmp_path / "raw", session_id="s1")

    def test_unknown_event_type_is_rejected(self, tmp_path: Path) -> None:
        jw = JournalWriter(tmp_path / "journal", tmp_path / "raw", session_id="s1")

        with pytest.raises(JournalError, match="Unknown journal event type"):
            jw.write_event("order_submitted", {})

    def test_forecast_without_raw_payload_writes_no_snapshot(self, tmp_path: Path) -> None:
        jw = JournalWriter(tmp_path / "journal", tmp_path / "raw", session_id="s1")
        forecast = ForecastFetchResult(
            provider="file",
            retrieval_timestamp=datetime(2026, 1, 15, tzinfo=UTC),
            source_url="fixture",
            current=CurrentConditions(),
            hourly=HourlyForecast(temperature=[20.0, 21.0]),
        )

        assert jw.record_forecast_snapshot(forecast) is None

        with_raw = forecast.model_copy(update={"raw_payload": {"hourly": {"snowfall": [0.2]}}})
        path = jw.record_forecast_snapshot(with_raw)

        assert path is not None and path.name.endswith("_s1_file_forecast.json")
        record = json.loads(jw.events_path.read_text(encoding="utf-8").strip())
        assert record["event_type"] == "forecast_raw_snapshot"
        assert record["payload"]["hours"] == 2

    def test_failure_event_carries_exit_code(self, tmp_path: Path) -> None:
        jw = JournalWriter(tmp_path / "journal", tmp_path / "raw", session_id="s1")

        jw.record_failure(ConfigError("bad window"), exit_code=2)

        record = json.loads(jw.events_path.read_text(encoding="utf-8").strip())
        assert record["payload"] == {"error": "bad window", "type": "ConfigError", "exit_code": 2}


class TestSessionLogging:
    """Verify log lines carry the session id and structured context."""

    def test_session_and_context_fields_are_emitted(self) -> None:
        record = logging.LogRecord(
            name="snow_day_predictor.pipeline",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Snow day analysis for %s",
            args=("Boston",),
            exc_info=None,
        )
        record.location = "Boston"

        assert SessionContextFilter("abc123").filter(record) is True
        event = json.loads(JsonConsoleFormatter().format(record))

        assert event["session_id"] == "abc123"
        assert event["location"] == "Boston"
        assert "model" not in event

    def test_setup_logger_replaces_session_filter(self) -> None:
        logger = setup_logger("snow_day_predictor.test_session", session_id="first")
        logger = setup_logger("snow_day_predictor.test_session", logging.DEBUG, session_id="second")

        filters = [
            f
            for handler in logger.handlers
            for f in handler.filters
            if isinstance(f, SessionContextFilter)
        ]
        assert [f.session_id for f in filters] == ["second"]
        assert logger.level == logging.DEBUG
