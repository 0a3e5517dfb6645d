# src/aggregator/adapters/globetopper.py
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel

from aggregator.adapters.http import RetryPolicy, request_json
from aggregator.domain.models import CountrySummary, Provider, UnifiedProduct
from aggregator.domain.ports import CountrySourcePort, ProductNotFoundError, ProviderCatalogPort
from aggregator.normalizers.common import LooseStr
from aggregator.normalizers.globetopper import (
    find_record,
    normalize_globetopper,
    normalize_globetopper_detail,
)
from aggregator.normalizers.reference import resolve_country

logger = logging.getLogger(__name__)

_CATALOGUE = "/catalogue/search-catalogue"
_PRODUCTS = "/product/search-all-products"
_COUNTRIES = "/country/search-countries"


class _GtCountry(BaseModel):
    iso2: LooseStr = ""
    name: LooseStr = ""


def _records(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, dict) and isinstance(data.get("records"), list):
        return data["records"]
    return []


class GlobeTopperAdapter(ProviderCatalogPort, CountrySourcePort):
    """
    Adapter für die GlobeTopper API (Gift Cards).
    Katalog und Produktliste sind getrennte Collections und werden parallel geladen.
    """

    provider = Provider.GLOBETOPPER

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        timeout: float = 20.0,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._timeout = timeout
        self._retry = retry or RetryPolicy()

    async def _get_records(self, path: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        data = await request_json(
            self._client,
            "GET",
            f"{self._base_url}{path}",
            source=self.provider.value,
            retry=self._retry,
            headers=self._headers,
            params=params,
            timeout=self._timeout,
        )
        return _records(data)

    async def _fetch_collections(self) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        catalogue, products = await asyncio.gather(
            self._get_records(_CATALOGUE), self._get_records(_PRODUCTS)
        )
        return catalogue, products

    async def fetch_all_products(self) -> list[UnifiedProduct]:
        catalogue, products = await self._fetch_collections()
        logger.info(
            "GlobeTopper fetched %d catalogue entries and %d products", len(catalogue), len(products)
        )
        return normalize_globetopper(catalogue, products)

    async def fetch_product_by_id(self, raw_id: str) -> UnifiedProduct:
        # Die ID kann nur im Katalog oder nur in der Produktliste vorkommen
        catalogue, products = await self._fetch_collections()
        record = find_record(catalogue, products, raw_id)
        if record is None:
            raise ProductNotFoundError(raw_id, self.provider.value)
        return normalize_globetopper_detail(record)

    async def fetch_countries(self) -> list[CountrySummary]:
        countries: list[CountrySummary] = []
        for record in await self._get_records(_COUNTRIES):
            raw = _GtCountry.model_validate(record)
            if not raw.iso2:
                continue
            country = resolve_country(raw.iso2, raw.name)
            countries.append(CountrySummary(iso2=country.iso2, name=country.name))
        return countries
