# src/aggregator/adapters/ppn.py
from __future__ import annotations

import logging
from typing import Any

import httpx

from aggregator.adapters.http import RetryPolicy, request_json
from aggregator.domain.models import Provider, UnifiedProduct
from aggregator.domain.ports import ProductNotFoundError, ProviderCatalogPort
from aggregator.normalizers.ppn import find_sku, normalize_ppn, normalize_ppn_detail

logger = logging.getLogger(__name__)


class PpnAdapter(ProviderCatalogPort):
    """Adapter für PPN / ValueTopup. Der SKU-Katalog kommt ungepaged in einem Request."""

    provider = Provider.PPN

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        user: str,
        password: str,
        timeout: float = 20.0,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(user, password)
        self._timeout = timeout
        self._retry = retry or RetryPolicy()

    async def _get_skus(self, params: dict[str, Any] | None = None) -> Any:
        return await request_json(
            self._client,
            "GET",
            f"{self._base_url}/catalog/skus",
            source=self.provider.value,
            retry=self._retry,
            auth=self._auth,
            params=params,
            timeout=self._timeout,
        )

    async def fetch_all_products(self) -> list[UnifiedProduct]:
        products = normalize_ppn(await self._get_skus())
        logger.info("PPN fetched %d SKUs", len(products))
        return products

    async def fetch_product_by_id(self, raw_id: str) -> UnifiedProduct:
        record = find_sku(await self._get_skus({"skuId": raw_id}), raw_id)
        if record is None:
            raise ProductNotFoundError(raw_id, self.provider.value)
        return normalize_ppn_detail(record)
