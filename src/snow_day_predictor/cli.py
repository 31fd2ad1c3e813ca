"""snow-day CLI: score the chance of a snow day for a place or a saved forecast."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import uuid
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from .advisory.client import LLMAdvisoryClient, parse_advisory
from .config import Settings, load_settings
from .exceptions import (
    AdvisoryError,
    ConfigError,
    InvalidInputError,
    JournalError,
    WeatherProviderError,
)
from .journal import JournalWriter
from .log_setup import setup_logger
from .pipeline import SnowDayAnalyzer, SnowDayReport
from .weather.models import AlertRecord, ExternalAdvisory
from .weather.nws import NWSAlertProvider, normalize_alert_payload
from .weather.open_meteo import OpenMeteoClient, normalize_forecast_payload


def parse_args() -> argparse.Namespace:
    """Parse snow-day CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Estimate the probability of a snow day from forecast, alerts and radar proxy."
    )
    parser.add_argument("--location", type=str, default=None, help="Place name to geocode.")
    parser.add_argument("--lat", type=float, default=None, help="Latitude.")
    parser.add_argument("--lon", type=float, default=None, help="Longitude.")
    parser.add_argument(
        "--input-forecast-file",
        type=Path,
        default=None,
        help="Score a saved Open-Meteo forecast JSON instead of fetching one.",
    )
    parser.add_argument(
        "--input-alerts-file",
        type=Path,
        default=None,
        help="NWS alerts GeoJSON to use with --input-forecast-file.",
    )
    parser.add_argument(
        "--input-advisory-file",
        type=Path,
        default=None,
        help="Saved advisory JSON reply (snowDayProbability, keyFactors).",
    )
    parser.add_argument("--name", type=str, default=None, help="Display name for the location.")
    parser.add_argument(
        "--window-hours",
        type=int,
        default=None,
        help="Hours of forecast to analyze (defaults to ANALYSIS_WINDOW_HOURS).",
    )
    parser.add_argument(
        "--no-advisory",
        action="store_true",
        help="Skip the external LLM advisory even when ADVISORY_ENABLED=true.",
    )
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log the per-factor score breakdown at DEBUG level.",
    )
    parser.add_argument(
        "--max-reasons",
        type=int,
        default=None,
        help="Number of scoring reasons to print.",
    )
    return parser.parse_args()


def _validate_args(args: argparse.Namespace) -> str | None:
    """Return an error message for invalid argument combinations."""
    coords = args.lat is not None or args.lon is not None
    modes = sum([args.location is not None, coords, args.input_forecast_file is not None])
    if modes != 1:
        return "Use exactly one of --location, --lat/--lon or --input-forecast-file."
    if coords and (args.lat is None or args.lon is None):
        return "--lat and --lon must be passed together."
    if args.input_alerts_file is not None and args.input_forecast_file is None:
        return "--input-alerts-file requires --input-forecast-file."
    if args.window_hours is not None and args.window_hours <= 0:
        return "--window-hours must be > 0."
    if args.max_reasons is not None and args.max_reasons <= 0:
        return "--max-reasons must be > 0."
    return None


def _load_json_file(path: Path) -> Any:
    if not path.exists():
        raise InvalidInputError(f"File not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise InvalidInputError(f"Failed reading JSON file {path}: {exc}") from exc


def _load_alerts(path: Path) -> list[AlertRecord]:
    payload = _load_json_file(path)
    if not isinstance(payload, dict):
        raise InvalidInputError(f"Alerts file {path} must contain a GeoJSON object.")
    try:
        return normalize_alert_payload(payload)
    except WeatherProviderError as exc:
        raise InvalidInputError(f"Invalid alerts payload in {path}: {exc}") from exc


def _load_advisory(path: Path) -> ExternalAdvisory:
    if not path.exists():
        raise InvalidInputError(f"File not found: {path}")
    try:
        return parse_advisory(path.read_text(encoding="utf-8"), model="file")
    except (OSError, AdvisoryError) as exc:
        raise InvalidInputError(f"Invalid advisory file {path}: {exc}") from exc


def _build_analyzer(args: argparse.Namespace, settings: Settings, logger: Any) -> SnowDayAnalyzer:
    advisory_client: LLMAdvisoryClient | None = None
    if (
        settings.advisory_enabled
        and not args.no_advisory
        and args.input_advisory_file is None
    ):
        advisory_client = LLMAdvisoryClient(settings=settings, logger=logger)

    if args.input_forecast_file is not None:
        return SnowDayAnalyzer(settings, logger=logger, advisory_client=advisory_client)

    open_meteo = OpenMeteoClient(settings=settings, logger=logger)
    return SnowDayAnalyzer(
        settings,
        logger=logger,
        geocoder=open_meteo,
        forecast_provider=open_meteo,
        alert_provider=NWSAlertProvider(settings=settings, logger=logger),
        advisory_client=advisory_client,
    )


def _run_analysis(args: argparse.Namespace, analyzer: SnowDayAnalyzer) -> SnowDayReport:
    if args.input_forecast_file is not None:
        payload = _load_json_file(args.input_forecast_file)
        if not isinstance(payload, dict):
            raise InvalidInputError(
                f"Forecast file {args.input_forecast_file} must contain a JSON object."
            )
        fetch_result = normalize_forecast_payload(
            payload, source_url=str(args.input_forecast_file), provider="file"
        )
        alerts = _load_alerts(args.input_alerts_file) if args.input_alerts_file else None
        advisory = _load_advisory(args.input_advisory_file) if args.input_advisory_file else None
        return analyzer.analyze_forecast(
            fetch_result,
            alerts=alerts,
            advisory=advisory,
            location_name=args.name or args.input_forecast_file.stem,
            window_hours=args.window_hours,
        )
    if args.location is not None:
        return analyzer.analyze_location(args.location, window_hours=args.window_hours)
    return analyzer.analyze_coordinates(
        args.lat, args.lon, name=args.name, window_hours=args.window_hours
    )


def _print_report(console: Console, report: SnowDayReport, max_reasons: int) -> None:
    result = report.result
    verdict = "SNOW DAY LIKELY" if result.is_snow_day else "School likely open"
    console.print(
        f"location={report.location} snow_day={result.display_percentage} "
        f"confidence={result.confidence} outcome={result.outcome} verdict={verdict!r}"
    )
    if result.external_probability is not None:
        console.print(
            f"local={result.local_percentage:.1f}% advisory={result.external_probability:.0f}% "
            f"advisory_weight={result.external_weight:.2f}"
        )
    if result.missing_data_flags:
        console.print(f"missing_data_flags={','.join(result.missing_data_flags)}")

    conditions = Table(title="Conditions")
    conditions.add_column("Metric")
    conditions.add_column("Value", overflow="fold")
    for label, value in result.summaries.model_dump().items():
        conditions.add_row(label.replace("_", " ").title(), value)
    console.print(conditions)

    if result.factors:
        factors = Table(title="Factor Breakdown")
        factors.add_column("Factor")
        factors.add_column("Points", justify="right")
        for name, points in result.breakdown.items():
            factors.add_row(name, f"{points:+g}")
        console.print(factors)

    reasons = Table(title="Reasoning")
    reasons.add_column("#", justify="right")
    reasons.add_column("Reason", overflow="fold")
    for i, reason in enumerate(result.reasoning[:max_reasons], start=1):
        reasons.add_row(str(i), reason)
    console.print(reasons)

    if result.active_alerts:
        console.print(f"Active alerts: {', '.join(result.active_alerts)}")
    console.print(f"Radar: {report.narrative.radar_text}")
    console.print(f"Timing: {report.narrative.timing_text}")
    console.print(f"Advisory ({report.narrative.advisory_band}): {report.narrative.advisory}")


def main() -> int:
    """Run one snow day analysis and journal it."""
    args = parse_args()
    session_id = uuid.uuid4().hex[:12]
    logger = setup_logger(
        level=logging.DEBUG if args.verbose else logging.INFO,
        session_id=session_id,
    )
    console = Console()
    journal: JournalWriter | None = None

    arg_error = _validate_args(args)
    if arg_error:
        logger.error(arg_error)
        return 2

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2

    try:
        journal = JournalWriter(
            journal_dir=settings.journal_dir,
            raw_payload_dir=settings.raw_payload_dir,
            session_id=session_id,
        )
        journal.write_event(
            "analysis_startup",
            payload={"settings": settings.safe_summary()},
        )
    except JournalError as exc:
        logger.error("Failed to initialize analysis journal: %s", exc)
        return 3

    exit_code = 0
    try:
        journal.write_event(
            "analysis_request_start",
            payload={
                "location": args.location,
                "lat": args.lat,
                "lon": args.lon,
                "input_forecast_file": args.input_forecast_file,
                "input_alerts_file": args.input_alerts_file,
                "input_advisory_file": args.input_advisory_file,
                "window_hours": args.window_hours or settings.analysis_window_hours,
                "advisory": settings.advisory_enabled and not args.no_advisory,
            },
        )

        with _build_analyzer(args, settings, logger) as analyzer:
            report = _run_analysis(args, analyzer)

        if settings.journal_raw_payloads:
            journal.record_forecast_snapshot(report.forecast)

        journal.record_result(report)

        if args.json:
            console.print_json(report.model_dump_json())
        else:
            _print_report(
                console,
                report,
                max_reasons=args.max_reasons or settings.max_print_reasons,
            )
    except InvalidInputError as exc:
        exit_code = 5
        logger.error("Invalid input: %s", exc)
        _journal_failure(journal, logger, exc, exit_code)
    except (WeatherProviderError, AdvisoryError, JournalError) as exc:
        exit_code = 4
        logger.error("Snow day analysis failure: %s", exc)
        _journal_failure(journal, logger, exc, exit_code)
    except Exception as exc:  # pragma: no cover
        exit_code = 99
        logger.exception("Unexpected snow-day CLI failure: %s", exc)
        _journal_failure(journal, logger, exc, exit_code)
    finally:
        try:
            journal.write_event("analysis_shutdown", payload={"exit_code": exit_code})
        except JournalError:
            logger.error("Failed to write analysis_shutdown event.")

    return exit_code


def _journal_failure(
    journal: JournalWriter, logger: Any, exc: Exception, exit_code: int
) -> None:
    try:
        journal.record_failure(exc, exit_code=exit_code)
    except JournalError:
        logger.error("Failed to write analysis_failure event.")


if __name__ == "__main__":
    sys.exit(main())
