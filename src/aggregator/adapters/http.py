# src/aggregator/adapters/http.py
"""
Gemeinsamer Request-Helper für alle Provider-Adapter.

Retries bei 429, 5xx und Verbindungsfehlern mit exponentiellem Backoff
(`backoff * 2**attempt`). Nach Ausschöpfen der Retries wird jeder Fehler zu
ExternalApiError; ein 404 wird zu ProductNotFoundError, wenn der Aufrufer
eine Produkt-ID mitgibt.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from aggregator.core.metrics import EXTERNAL_API_COUNT, EXTERNAL_API_DURATION
from aggregator.domain.ports import ExternalApiError, ProductNotFoundError

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    backoff_seconds: float = 1.0

    def delay(self, attempt: int) -> float:
        return self.backoff_seconds * 2**attempt


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    source: str,
    retry: RetryPolicy,
    not_found_id: str | None = None,
    **kwargs: Any,
) -> httpx.Response:
    attempt = 0
    while True:
        try:
            with EXTERNAL_API_DURATION.labels(source=source).time():
                response = await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            EXTERNAL_API_COUNT.labels(source=source, status="error").inc()
            if attempt < retry.max_retries:
                delay = retry.delay(attempt)
                attempt += 1
                logger.warning(
                    "%s connection error (%s), retry %d/%d in %.1fs",
                    source, e, attempt, retry.max_retries, delay,
                )
                await asyncio.sleep(delay)
                continue
            raise ExternalApiError(source, f"Connection error: {e}") from e

        EXTERNAL_API_COUNT.labels(source=source, status=str(response.status_code)).inc()

        if response.status_code in _RETRYABLE_STATUS and attempt < retry.max_retries:
            delay = retry.delay(attempt)
            attempt += 1
            logger.warning(
                "%s returned %d, retry %d/%d in %.1fs",
                source, response.status_code, attempt, retry.max_retries, delay,
            )
            await asyncio.sleep(delay)
            continue

        if response.status_code == 404 and not_found_id is not None:
            raise ProductNotFoundError(not_found_id, source)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExternalApiError(source, str(e)) from e
        return response


def decode_json(response: httpx.Response, source: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise ExternalApiError(source, f"Invalid JSON body: {e}") from e


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    source: str,
    retry: RetryPolicy,
    not_found_id: str | None = None,
    **kwargs: Any,
) -> Any:
    response = await send_request(
        client, method, url, source=source, retry=retry, not_found_id=not_found_id, **kwargs
    )
    return decode_json(response, source)
