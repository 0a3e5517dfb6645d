# src/aggregator/adapters/billers.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from aggregator.adapters.http import RetryPolicy, request_json
from aggregator.domain.models import Provider, UnifiedProduct
from aggregator.domain.ports import ExternalApiError, ProductNotFoundError, ProviderCatalogPort
from aggregator.normalizers.billers import (
    find_biller,
    normalize_biller_detail,
    normalize_billers,
    sku_code,
    unwrap_billers,
    unwrap_input_fields,
    unwrap_skus,
)

logger = logging.getLogger(__name__)

BILLER_PAGE_SIZE = 200
INPUT_PAGE_SIZE = 1000
INPUT_CACHE_TTL_SECONDS = 30 * 60


def _total_pages(data: Any) -> int:
    if isinstance(data, dict):
        try:
            return int(data.get("TotalPages") or 1)
        except (TypeError, ValueError):
            return 1
    return 1


class BillersAdapter(ProviderCatalogPort):
    """
    Adapter für die Billers API (Rechnungszahlungen).
    Alle Endpunkte sind POST mit JSON-Body; Detailansicht = Biller + SKUs +
    Eingabefelder pro SKU.
    """

    provider = Provider.BILLERS

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        api_token: str,
        timeout: float = 30.0,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_token}"}
        self._timeout = timeout
        self._retry = retry or RetryPolicy()
        # SKU -> (timestamp, Eingabefelder aller Biller dieser SKU)
        self._input_cache: dict[str, tuple[float, list[dict[str, Any]]]] = {}

    async def _post(self, path: str, body: dict[str, Any]) -> Any:
        return await request_json(
            self._client,
            "POST",
            f"{self._base_url}{path}",
            source=self.provider.value,
            retry=self._retry,
            headers=self._headers,
            json=body,
            timeout=self._timeout,
        )

    async def fetch_all_products(self) -> list[UnifiedProduct]:
        billers: list[dict[str, Any]] = []
        page, total_pages = 1, 1
        while page <= total_pages:
            try:
                data = await self._post("/billercatalog", {"Page": page, "PageSize": BILLER_PAGE_SIZE})
            except ExternalApiError:
                if not billers:
                    raise
                logger.warning("Billers page %d failed, keeping %d billers", page, len(billers))
                break
            records = unwrap_billers(data)
            billers.extend(records)
            total_pages = _total_pages(data)
            logger.info("Billers page %d/%d fetched (%d items)", page, total_pages, len(records))
            page += 1

        logger.info("Billers fetched %d billers", len(billers))
        return normalize_billers(billers)

    async def fetch_input_fields(self, sku: str) -> list[dict[str, Any]]:
        """Eingabefelder einer SKU über alle Seiten; Ergebnis wird 30 Minuten gecacht."""
        cached = self._input_cache.get(sku)
        if cached is not None and time.time() - cached[0] < INPUT_CACHE_TTL_SECONDS:
            return cached[1]

        fields: list[dict[str, Any]] = []
        page, total_pages = 1, 1
        while page <= total_pages:
            data = await self._post(
                "/iocatalog", {"SKU": sku, "Page": page, "PageSize": INPUT_PAGE_SIZE}
            )
            fields.extend(unwrap_input_fields(data))
            total_pages = _total_pages(data)
            page += 1

        self._input_cache[sku] = (time.time(), fields)
        return fields

    async def _safe_input_fields(self, sku: str) -> list[dict[str, Any]]:
        try:
            return await self.fetch_input_fields(sku)
        except ExternalApiError as e:
            logger.warning("Billers input fields for SKU %s failed: %s", sku, e)
            return []

    async def fetch_product_by_id(self, raw_id: str) -> UnifiedProduct:
        biller = find_biller(await self._post("/billercatalog", {"BillerID": raw_id}), raw_id)
        if biller is None:
            raise ProductNotFoundError(raw_id, self.provider.value)

        try:
            skus = unwrap_skus(await self._post("/skucatalog", {"BillerID": raw_id}))
        except ExternalApiError as e:
            logger.warning("Billers SKUs for %s failed: %s", raw_id, e)
            skus = []

        codes = [code for code in (sku_code(s) for s in skus) if code]
        inputs = await asyncio.gather(*(self._safe_input_fields(code) for code in codes))
        return normalize_biller_detail(biller, skus, dict(zip(codes, inputs)))
