# src/aggregator/adapters/dtone.py
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from aggregator.adapters.http import RetryPolicy, decode_json, request_json, send_request
from aggregator.domain.models import Provider, UnifiedProduct
from aggregator.domain.ports import ExternalApiError, ProviderCatalogPort
from aggregator.normalizers.dtone import normalize_dtone, normalize_dtone_detail

logger = logging.getLogger(__name__)

PER_PAGE = 50
MAX_CONSECUTIVE_PAGE_ERRORS = 3
PAGE_ERROR_PAUSE_SECONDS = 3.0


class DtOneAdapter(ProviderCatalogPort):
    """
    Adapter für die DT-One DVS API (Top-ups, Bundles, Gift Cards).
    Paginierung über den `X-Total-Pages`-Header; zwischen den Seiten wird
    pausiert, um das Rate-Limit nicht zu reißen.
    """

    provider = Provider.DTONE

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        user: str,
        password: str,
        timeout: float = 30.0,
        page_delay: float = 1.2,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(user, password)
        self._timeout = timeout
        self._page_delay = page_delay
        self._retry = retry or RetryPolicy()

    async def _fetch_page(self, page: int) -> tuple[list[dict[str, Any]], int]:
        response = await send_request(
            self._client,
            "GET",
            f"{self._base_url}/products",
            source=self.provider.value,
            retry=self._retry,
            auth=self._auth,
            params={"page": page, "per_page": PER_PAGE},
            timeout=self._timeout,
        )
        data = decode_json(response, self.provider.value)
        records = data if isinstance(data, list) else []
        try:
            total_pages = int(response.headers.get("X-Total-Pages", "1"))
        except ValueError:
            total_pages = 1
        return records, total_pages

    async def fetch_all_products(self) -> list[UnifiedProduct]:
        records: list[dict[str, Any]] = []
        page, total_pages, consecutive_errors = 1, 1, 0

        while page <= total_pages:
            try:
                page_records, total_pages = await self._fetch_page(page)
            except ExternalApiError as e:
                consecutive_errors += 1
                logger.warning(
                    "DT-One page %d failed (%d/%d): %s",
                    page, consecutive_errors, MAX_CONSECUTIVE_PAGE_ERRORS, e,
                )
                if consecutive_errors >= MAX_CONSECUTIVE_PAGE_ERRORS:
                    # Ohne eine einzige erfolgreiche Seite ist der Provider ausgefallen
                    if not records:
                        raise
                    logger.error("DT-One aborting pagination at page %d", page)
                    break
                await asyncio.sleep(PAGE_ERROR_PAUSE_SECONDS)
                continue

            consecutive_errors = 0
            records.extend(page_records)
            logger.info("DT-One page %d/%d fetched (%d items)", page, total_pages, len(page_records))
            page += 1
            if page <= total_pages:
                await asyncio.sleep(self._page_delay)

        logger.info("DT-One fetched %d products across %d pages", len(records), page - 1)
        return normalize_dtone(records)

    async def fetch_product_by_id(self, raw_id: str) -> UnifiedProduct:
        data = await request_json(
            self._client,
            "GET",
            f"{self._base_url}/products/{raw_id}",
            source=self.provider.value,
            retry=self._retry,
            not_found_id=raw_id,
            auth=self._auth,
            timeout=self._timeout,
        )
        return normalize_dtone_detail(data)
