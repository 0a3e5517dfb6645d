# src/aggregator/services/catalog_service.py
from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Mapping

from aggregator.core.metrics import CACHE_HITS, CACHE_MISSES
from aggregator.domain.models import (
    CountrySummary,
    Pagination,
    ProductFilters,
    ProductPage,
    Provider,
    UnifiedProduct,
)
from aggregator.domain.ports import (
    CatalogUnavailableError,
    CountrySourcePort,
    ExternalApiError,
    ProductNotFoundError,
    ProviderCatalogPort,
)
from aggregator.domain.product_codes import decode_product_id
from aggregator.normalizers.reference import to_iso2
from aggregator.services.product_cache import ProductCache
from aggregator.services.warmup_scheduler import WarmUpScheduler

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Lesender Zugriff auf den Produkt-Cache (Query Engine).

    Gecachte Daten (fresh oder stale) haben immer Vorrang vor einem Live-Fetch;
    nur ein leerer Slot löst einen synchronen Fetch über den Scheduler aus.
    """

    def __init__(
        self,
        cache: ProductCache,
        scheduler: WarmUpScheduler,
        adapters: Mapping[Provider, ProviderCatalogPort],
        country_source: CountrySourcePort,
    ) -> None:
        self._cache = cache
        self._scheduler = scheduler
        self._adapters = dict(adapters)
        self._country_source = country_source

    async def list_products(self, filters: ProductFilters) -> ProductPage:
        """
        Raises:
            CatalogUnavailableError: Wenn ohne Provider-Filter jeder Provider live
                geladen werden musste und keiner erreichbar war. Mit Filter liefert
                ein Ausfall eine leere Seite mit Zählung 0.
        """
        providers = [filters.provider] if filters.provider else list(Provider)
        enabled = [p for p in providers if self._scheduler.is_enabled(p)]

        cached = [p for p in enabled if self._cache.has_data(p)]
        absent = [p for p in enabled if p not in cached]
        for provider in cached:
            CACHE_HITS.labels(provider=provider.value).inc()
        for provider in absent:
            CACHE_MISSES.labels(provider=provider.value).inc()

        live_results = await asyncio.gather(*(self._live_fetch(p) for p in absent))
        live = dict(zip(absent, live_results))
        failed = [p for p, result in live.items() if result is None]
        # Nur eine ungefilterte Listung ohne jeden erreichbaren Provider schlägt fehl
        if filters.provider is None and enabled and len(failed) == len(enabled):
            raise CatalogUnavailableError([p.value for p in failed])

        # Nie awaited: ein Refresh blockiert die aktuelle Anfrage nicht
        self._scheduler.trigger_if_stale()

        country = to_iso2(filters.country) if filters.country else None
        merged: list[UnifiedProduct] = []
        counts: dict[Provider, int] = {}
        for provider in providers:
            if provider in cached:
                products = self._cache.products(provider)
            else:
                products = live.get(provider) or []
            if country:
                products = [p for p in products if p.country.iso2.upper() == country]
            counts[provider] = len(products)
            merged.extend(products)

        if filters.category:
            needle = filters.category.lower()
            merged = [p for p in merged if needle in p.category.name.lower()]
        if filters.search:
            needle = filters.search.lower()
            merged = [
                p
                for p in merged
                if needle in p.product_name.lower()
                or needle in p.brand.lower()
                or needle in p.description.lower()
            ]

        return self._paginate(merged, filters, counts)

    async def _live_fetch(self, provider: Provider) -> list[UnifiedProduct] | None:
        try:
            products = await self._scheduler.refresh_provider(provider)
        except ExternalApiError as e:
            logger.warning("%s live fetch failed: %s", provider, e)
            return None
        except Exception:
            logger.exception("%s live fetch failed unexpectedly", provider)
            return None
        logger.info("%s fetched live: %d products", provider, len(products))
        return products

    @staticmethod
    def _paginate(
        products: list[UnifiedProduct], filters: ProductFilters, counts: dict[Provider, int]
    ) -> ProductPage:
        total = len(products)
        if filters.limit is None:
            # Ohne limit: alles als eine Seite, der Aufrufer paginiert selbst
            return ProductPage(
                products=products,
                pagination=Pagination(page=1, limit=total, total=total, total_pages=1),
                providers=counts,
            )

        start = (filters.page - 1) * filters.limit
        return ProductPage(
            products=products[start : start + filters.limit],
            pagination=Pagination(
                page=filters.page,
                limit=filters.limit,
                total=total,
                total_pages=math.ceil(total / filters.limit),
            ),
            providers=counts,
        )

    async def get_product_by_id(self, product_id: str) -> UnifiedProduct | None:
        """Detailansicht direkt beim Provider. Nicht gefunden und Fehler ergeben None."""
        decoded = decode_product_id(product_id)
        if decoded.is_guess:
            logger.debug("No provider prefix in '%s', assuming %s", product_id, decoded.provider)

        adapter = self._adapters.get(decoded.provider)
        if adapter is None or not decoded.raw_id:
            return None

        try:
            return await adapter.fetch_product_by_id(decoded.raw_id)
        except ProductNotFoundError:
            logger.info("%s product %s not found", decoded.provider, decoded.raw_id)
        except ExternalApiError as e:
            logger.warning("%s product lookup %s failed: %s", decoded.provider, decoded.raw_id, e)
        except Exception:
            logger.exception("%s product lookup %s failed unexpectedly", decoded.provider, decoded.raw_id)
        return None

    async def get_unified_countries(self) -> list[CountrySummary]:
        """
        Länderliste aus dem Cache-Inhalt, sortiert nach Name. Ist der Cache
        komplett leer, wird die Länderliste von GlobeTopper verwendet.
        """
        names: dict[str, str] = {}
        counts: dict[str, int] = {}
        for provider in Provider:
            for product in self._cache.products(provider):
                iso2 = product.country.iso2.upper()
                if not iso2:
                    continue
                counts[iso2] = counts.get(iso2, 0) + 1
                if not names.get(iso2):
                    names[iso2] = product.country.name

        if not counts:
            return await self._fallback_countries()

        countries = [
            CountrySummary(iso2=iso2, name=names[iso2] or iso2, product_count=count)
            for iso2, count in counts.items()
        ]
        return sorted(countries, key=lambda c: (c.name.lower(), c.iso2))

    async def _fallback_countries(self) -> list[CountrySummary]:
        try:
            countries = await self._country_source.fetch_countries()
        except ExternalApiError as e:
            logger.warning("Country fallback failed: %s", e)
            return []
        logger.info("Product cache empty, using authoritative country list (%d)", len(countries))
        return sorted(countries, key=lambda c: (c.name.lower(), c.iso2))

    async def get_country(self, iso: str) -> CountrySummary | None:
        wanted = to_iso2(iso)
        return next((c for c in await self.get_unified_countries() if c.iso2 == wanted), None)
