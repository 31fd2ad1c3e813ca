"""snow-day CLI offline smoke tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from snow_day_predictor.cli import main as snow_day_main

FIXTURES = Path(__file__).parent / "fixtures"


def _set_required_env(monkeypatch: Any, tmp_path: Path) -> None:
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("NWS_USER_AGENT", "test-agent")
    monkeypatch.setenv("ADVISORY_ENABLED", "false")
    monkeypatch.setenv("JOURNAL_DIR", str(tmp_path / "journal"))
    monkeypatch.setenv("RAW_PAYLOAD_DIR", str(tmp_path / "raw"))


def _journal_events(tmp_path: Path) -> list[dict[str, Any]]:
    journal_files = list((tmp_path / "journal").glob("*.jsonl"))
    assert journal_files
    return [
        json.loads(line)
        for line in journal_files[0].read_text(encoding="utf-8").strip().splitlines()
    ]


def test_cli_offline_smoke(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_required_env(monkeypatch, tmp_path)
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "snow-day",
            "--input-forecast-file",
            str(FIXTURES / "open_meteo_storm.json"),
            "--input-alerts-file",
            str(FIXTURES / "nws_alerts_winter_storm.json"),
            "--name",
            "Boston",
            "--max-reasons",
            "3",
        ],
    )

    exit_code = snow_day_main()
    assert exit_code == 0

    output = capsys.readouterr().out
    assert "location=Boston" in output
    assert "snow_day=100%" in output
    assert "Factor Breakdown" in output
    assert "Reasoning" in output
    assert "Active alerts: Winter Storm Warning, Wind Advisory" in output

    events = _journal_events(tmp_path)
    event_types = [event["event_type"] for event in events]
    assert event_types[0] == "analysis_startup"
    assert "analysis_request_start" in event_types
    assert "forecast_raw_snapshot" in event_types
    assert "analysis_result" in event_types
    assert event_types[-1] == "analysis_shutdown"
    result_event = next(e for e in events if e["event_type"] == "analysis_result")
    assert result_event["payload"]["summary"]["is_snow_day"] is True
    assert result_event["payload"]["summary"]["location"] == "Boston"
    assert result_event["payload"]["report"]["result"]["confidence"] == "very high"
    assert result_event["metadata"]["location"] == "Boston"
    assert list((tmp_path / "raw").glob("*_file_forecast.json"))


def test_cli_json_output_with_advisory_file(
    monkeypatch: Any, tmp_path: Path, capsys: Any
) -> None:
    _set_required_env(monkeypatch, tmp_path)
    monkeypatch.setenv("JOURNAL_RAW_PAYLOADS", "false")
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "snow-day",
            "--input-forecast-file",
            str(FIXTURES / "open_meteo_storm.json"),
            "--input-advisory-file",
            str(FIXTURES / "advisory_reply.txt"),
            "--json",
        ],
    )

    exit_code = snow_day_main()
    assert exit_code == 0

    report = json.loads(capsys.readouterr().out)
    assert report["location"] == "open_meteo_storm"
    assert report["result"]["external_probability"] == 80.0
    assert "alerts_unavailable" in report["result"]["missing_data_flags"]
    assert "forecast_raw_snapshot" not in [e["event_type"] for e in _journal_events(tmp_path)]


def test_cli_rejects_conflicting_inputs(monkeypatch: Any, tmp_path: Path) -> None:
    _set_required_env(monkeypatch, tmp_path)
    monkeypatch.setattr(
        sys,
        "argv",
        ["snow-day", "--location", "Boston", "--lat", "42.3", "--lon", "-71.0"],
    )
    assert snow_day_main() == 2

    monkeypatch.setattr(sys, "argv", ["snow-day", "--lat", "42.3"])
    assert snow_day_main() == 2

    monkeypatch.setattr(sys, "argv", ["snow-day", "--location", "Boston", "--window-hours", "0"])
    assert snow_day_main() == 2


def test_cli_invalid_config_exits_2(monkeypatch: Any, tmp_path: Path) -> None:
    _set_required_env(monkeypatch, tmp_path)
    monkeypatch.setenv("SCORE_LOCAL_WEIGHT", "0.2")
    monkeypatch.setattr(sys, "argv", ["snow-day", "--location", "Boston"])

    assert snow_day_main() == 2


def test_cli_malformed_forecast_exits_5(monkeypatch: Any, tmp_path: Path) -> None:
    _set_required_env(monkeypatch, tmp_path)
    forecast = tmp_path / "broken.json"
    forecast.write_text(
        json.dumps({"hourly": {"temperature_2m": [30, 31, 32], "snowfall": [0.1]}}),
        encoding="utf-8",
    )
    monkeypatch.setattr(sys, "argv", ["snow-day", "--input-forecast-file", str(forecast)])

    assert snow_day_main() == 5

    events = _journal_events(tmp_path)
    failure = next(e for e in events if e["event_type"] == "analysis_failure")
    assert failure["payload"]["type"] == "InvalidInputError"
    assert failure["payload"]["exit_code"] == 5
    assert events[-1]["event_type"] == "analysis_shutdown"
