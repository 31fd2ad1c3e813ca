"""Shared JSON-over-HTTP plumbing for weather providers."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ..exceptions import WeatherProviderError
from ..redaction import sanitize_text


class JsonHttpSource:
    """Owns an ``httpx.Client`` and fetches JSON objects with a single retry."""

    source_name = "http"

    def __init__(
        self,
        *,
        timeout_seconds: float,
        headers: dict[str, str] | None = None,
        logger: logging.Logger | None = None,
        max_retries: int = 1,
        retry_delay_seconds: float = 1.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger(f"snow_day_predictor.weather.{self.source_name}")
        self._max_retries = max_retries
        self._retry_delay = retry_delay_seconds
        self._client = httpx.Client(
            timeout=timeout_seconds,
            headers=headers or {},
            transport=transport,
        )

    def __enter__(self) -> JsonHttpSource:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request_json(
        self,
        url: str,
        context: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        label = self.source_name.upper()
        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                response = self._client.get(url, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                # 4xx other than rate limiting will not improve on retry.
                if 400 <= status < 500 and status != 429:
                    raise WeatherProviderError(
                        f"{label} {context} failed with status {status} "
                        f"at {url}: {sanitize_text(exc.response.text[:300])}"
                    ) from exc
                last_error = exc
                if attempt < self._max_retries:
                    self.logger.warning("%s %s failed (HTTP %d); retrying", label, context, status)
                    time.sleep(self._retry_delay)
                    continue
                raise WeatherProviderError(
                    f"{label} {context} failed with status {status} "
                    f"at {url}: {sanitize_text(exc.response.text[:300])}"
                ) from exc
            except httpx.HTTPError as exc:
                last_error = exc
                if attempt < self._max_retries:
                    self.logger.warning(
                        "%s %s request failed (%s); retrying",
                        label, context, type(exc).__name__,
                    )
                    time.sleep(self._retry_delay)
                    continue
                raise WeatherProviderError(
                    f"{label} {context} request failed at {url}: {sanitize_text(str(exc))}"
                ) from exc

            try:
                payload = response.json()
            except ValueError as exc:
                raise WeatherProviderError(
                    f"{label} {context} returned non-JSON response at {url}."
                ) from exc

            if not isinstance(payload, dict):
                raise WeatherProviderError(
                    f"{label} {context} returned unexpected payload type "
                    f"{type(payload).__name__} at {url}."
                )
            return payload

        raise WeatherProviderError(f"{label} {context} failed after retries: {last_error}")
