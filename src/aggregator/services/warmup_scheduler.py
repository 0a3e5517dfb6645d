# src/aggregator/services/warmup_scheduler.py
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from enum import StrEnum

from aggregator.core.metrics import WARMUP_RUNS
from aggregator.domain.models import Provider, UnifiedProduct
from aggregator.domain.ports import ExternalApiError, ProviderCatalogPort
from aggregator.repositories.snapshot_repository import CacheSnapshotRepository
from aggregator.services.product_cache import ProductCache

logger = logging.getLogger(__name__)


class WarmUpOutcome(StrEnum):
    UPDATED = "updated"
    REJECTED = "rejected"
    FAILED = "failed"
    SKIPPED = "skipped"


class WarmUpScheduler:
    """
    Einziger Schreiber des ProductCache nach dem Start.

    Ein Warm-up-Lauf lädt alle aktivierten Provider parallel, ein Fehler bei
    einem Provider lässt dessen Slot unverändert und bricht die anderen nicht
    ab. Danach wird der Cache genau einmal auf Disk geschrieben.

    Single-Flight: läuft bereits ein Warm-up, ist ein weiterer Aufruf ein No-op.
    Das Flag braucht keinen Lock, da zwischen Prüfen und Setzen kein await liegt.
    """

    def __init__(
        self,
        cache: ProductCache,
        adapters: Mapping[Provider, ProviderCatalogPort],
        snapshot_repository: CacheSnapshotRepository,
        ppn_enabled: bool = True,
        initial_delay_seconds: float = 5.0,
        interval_seconds: float = 30 * 60,
    ) -> None:
        self._cache = cache
        self._adapters = dict(adapters)
        self._snapshots = snapshot_repository
        self._ppn_enabled = ppn_enabled
        self._initial_delay = initial_delay_seconds
        self._interval = interval_seconds
        self._warming = False
        self._loop_task: asyncio.Task[None] | None = None
        # Referenzen auf Fire-and-forget-Tasks halten, sonst räumt der GC sie ab
        self._background: set[asyncio.Task[object]] = set()
        self.last_completed_at: float | None = None
        self.last_outcomes: dict[Provider, WarmUpOutcome] = {}

    @property
    def is_warming(self) -> bool:
        return self._warming

    @property
    def is_scheduled(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def is_enabled(self, provider: Provider) -> bool:
        if provider is Provider.PPN and not self._ppn_enabled:
            return False
        return provider in self._adapters

    async def warm_up(self, force: bool = False) -> dict[Provider, WarmUpOutcome] | None:
        """
        Ein kompletter Warm-up-Lauf. `force=True` umgeht den Regression Guard
        (manueller Refresh nach einem bewussten Katalog-Schrumpfen).
        Gibt None zurück, wenn bereits ein Lauf aktiv ist.
        """
        if self._warming:
            logger.info("Cache warm-up already in progress, skipping")
            return None
        self._warming = True
        logger.info("Cache warm-up started%s", " (forced)" if force else "")
        try:
            providers = [p for p in Provider if self.is_enabled(p)]
            results = await asyncio.gather(*(self._warm_provider(p, force) for p in providers))
            outcomes = dict(zip(providers, results))
            for provider in Provider:
                if provider not in outcomes:
                    outcomes[provider] = WarmUpOutcome.SKIPPED
                    WARMUP_RUNS.labels(provider=provider.value, outcome=WarmUpOutcome.SKIPPED).inc()

            logger.info(
                "Cache warm-up complete: %d total products cached", self._cache.total_products()
            )
            await self._snapshots.save(self._cache)
            self.last_completed_at = time.time()
            self.last_outcomes = outcomes
            return outcomes
        finally:
            self._warming = False

    async def _warm_provider(self, provider: Provider, force: bool) -> WarmUpOutcome:
        try:
            products = await self._adapters[provider].fetch_all_products()
        except ExternalApiError as e:
            logger.warning("Cache warm-up failed: %s (%s)", provider, e)
            outcome = WarmUpOutcome.FAILED
        except Exception:
            logger.exception("Cache warm-up failed unexpectedly: %s", provider)
            outcome = WarmUpOutcome.FAILED
        else:
            accepted = self._cache.replace(provider, products, force=force)
            outcome = WarmUpOutcome.UPDATED if accepted else WarmUpOutcome.REJECTED
            if accepted:
                logger.info("Cache warmed: %s = %d products", provider, len(products))
        WARMUP_RUNS.labels(provider=provider.value, outcome=outcome).inc()
        return outcome

    async def refresh_provider(self, provider: Provider) -> list[UnifiedProduct]:
        """
        Synchroner Live-Fetch für einen leeren Slot. Fehler werden an den
        Aufrufer weitergereicht; befüllt wird nur, solange der Slot noch leer ist.
        """
        products = await self._adapters[provider].fetch_all_products()
        if products and not self._cache.has_data(provider):
            self._cache.populate(provider, products)
        return products

    def trigger_if_stale(self) -> bool:
        """Startet einen Hintergrund-Warm-up, wenn ein Slot abgelaufen ist. Blockiert nie."""
        if self._warming or not self._cache.any_stale():
            return False
        logger.info("Stale cache detected, triggering background refresh")
        self._spawn(self.warm_up())
        return True

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ------------------------------------------------------------------
    # Periodischer Lauf
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self.is_scheduled:
            return
        self._loop_task = asyncio.create_task(self._run_forever())
        logger.info(
            "Warm-up scheduled in %.0fs, then every %.0fs", self._initial_delay, self._interval
        )

    async def _run_forever(self) -> None:
        await asyncio.sleep(self._initial_delay)
        while True:
            try:
                await self.warm_up()
            except Exception:
                logger.exception("Scheduled cache warm-up failed")
            await asyncio.sleep(self._interval)

    async def stop(self) -> None:
        tasks = list(self._background)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
            self._loop_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
