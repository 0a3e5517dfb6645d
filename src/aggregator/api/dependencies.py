# src/aggregator/api/dependencies.py
from functools import lru_cache

import httpx
from fastapi import Depends

from aggregator.adapters.billers import BillersAdapter
from aggregator.adapters.dtone import DtOneAdapter
from aggregator.adapters.globetopper import GlobeTopperAdapter
from aggregator.adapters.http import RetryPolicy
from aggregator.adapters.ppn import PpnAdapter
from aggregator.core.config import Settings, get_settings
from aggregator.domain.models import Provider
from aggregator.domain.ports import ProviderCatalogPort
from aggregator.repositories.snapshot_repository import CacheSnapshotRepository
from aggregator.services.catalog_service import CatalogService
from aggregator.services.product_cache import ProductCache
from aggregator.services.warmup_scheduler import WarmUpScheduler


# Shared HTTP Client (Connection Pooling)
@lru_cache
def get_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={"User-Agent": "ProductAggregator/1.0", "Content-Type": "application/json"},
        follow_redirects=True,
    )


# Singleton GlobeTopper Adapter (auch Quelle der Länderliste)
_globetopper_adapter: GlobeTopperAdapter | None = None


def get_globetopper_adapter(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> GlobeTopperAdapter:
    global _globetopper_adapter
    if _globetopper_adapter is None:
        _globetopper_adapter = GlobeTopperAdapter(
            http_client=client,
            base_url=settings.globetopper_base_url,
            api_key=settings.globetopper_api_key,
            timeout=settings.globetopper_timeout_seconds,
            retry=_retry_policy(settings),
        )
    return _globetopper_adapter


def _retry_policy(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.provider_max_retries,
        backoff_seconds=settings.provider_retry_backoff_seconds,
    )


# Singleton Adapter Registry (Billers hält einen SKU-Cache im Adapter)
_adapters: dict[Provider, ProviderCatalogPort] | None = None


def get_adapter_registry(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
    globetopper: GlobeTopperAdapter = Depends(get_globetopper_adapter),
) -> dict[Provider, ProviderCatalogPort]:
    """Liefert die Registry aller vier Provider-Adapter."""
    global _adapters
    if _adapters is None:
        retry = _retry_policy(settings)
        _adapters = {
            Provider.GLOBETOPPER: globetopper,
            Provider.DTONE: DtOneAdapter(
                http_client=client,
                base_url=settings.dtone_base_url,
                user=settings.dtone_user,
                password=settings.dtone_password,
                timeout=settings.dtone_timeout_seconds,
                page_delay=settings.dtone_page_delay_seconds,
                retry=retry,
            ),
            Provider.PPN: PpnAdapter(
                http_client=client,
                base_url=settings.ppn_base_url,
                user=settings.ppn_user,
                password=settings.ppn_password,
                timeout=settings.ppn_timeout_seconds,
                retry=retry,
            ),
            Provider.BILLERS: BillersAdapter(
                http_client=client,
                base_url=settings.billers_base_url,
                api_token=settings.billers_api_token,
                timeout=settings.billers_timeout_seconds,
                retry=retry,
            ),
        }
    return _adapters


# Singleton Product Cache
_product_cache: ProductCache | None = None


def get_product_cache(
    settings: Settings = Depends(get_settings),
) -> ProductCache:
    global _product_cache
    if _product_cache is None:
        _product_cache = ProductCache(ttl_seconds=settings.cache_ttl_seconds)
    return _product_cache


_snapshot_repository: CacheSnapshotRepository | None = None


def get_snapshot_repository(
    settings: Settings = Depends(get_settings),
) -> CacheSnapshotRepository:
    global _snapshot_repository
    if _snapshot_repository is None:
        _snapshot_repository = CacheSnapshotRepository(path=settings.cache_file)
    return _snapshot_repository


# Singleton Scheduler: einziger Schreiber des Caches
_scheduler: WarmUpScheduler | None = None


def get_warmup_scheduler(
    settings: Settings = Depends(get_settings),
    cache: ProductCache = Depends(get_product_cache),
    adapters: dict[Provider, ProviderCatalogPort] = Depends(get_adapter_registry),
    snapshots: CacheSnapshotRepository = Depends(get_snapshot_repository),
) -> WarmUpScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = WarmUpScheduler(
            cache=cache,
            adapters=adapters,
            snapshot_repository=snapshots,
            ppn_enabled=settings.ppn_enabled,
            initial_delay_seconds=settings.warmup_initial_delay_seconds,
            interval_seconds=settings.warmup_interval_seconds,
        )
    return _scheduler


def get_catalog_service(
    cache: ProductCache = Depends(get_product_cache),
    scheduler: WarmUpScheduler = Depends(get_warmup_scheduler),
    adapters: dict[Provider, ProviderCatalogPort] = Depends(get_adapter_registry),
    globetopper: GlobeTopperAdapter = Depends(get_globetopper_adapter),
) -> CatalogService:
    return CatalogService(
        cache=cache, scheduler=scheduler, adapters=adapters, country_source=globetopper
    )


def reset_singletons() -> None:
    """Setzt alle Modul-Singletons zurück (Tests)."""
    global _globetopper_adapter, _adapters, _product_cache, _snapshot_repository, _scheduler
    _globetopper_adapter = None
    _adapters = None
    _product_cache = None
    _snapshot_repository = None
    _scheduler = None
