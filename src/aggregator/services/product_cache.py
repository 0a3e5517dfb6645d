# src/aggregator/services/product_cache.py
from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from aggregator.core.metrics import CACHE_PRODUCTS
from aggregator.domain.models import Provider, UnifiedProduct

logger = logging.getLogger(__name__)


class SlotState(StrEnum):
    FRESH = "fresh"
    STALE = "stale"
    ABSENT = "absent"


@dataclass(frozen=True)
class CacheSlot:
    products: tuple[UnifiedProduct, ...] = ()
    fetched_at: float = 0.0


class ProductCache:
    """
    TTL-basierter In-Memory Cache mit einem Slot pro Provider.

    Slots werden nie teilweise überschrieben: jede Aktualisierung ersetzt den
    kompletten CacheSlot (eine Referenz-Zuweisung), Leser sehen also immer
    entweder den alten oder den neuen Stand.
    """

    def __init__(self, ttl_seconds: float) -> None:
        self._ttl = ttl_seconds
        self._slots: dict[Provider, CacheSlot] = {p: CacheSlot() for p in Provider}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def slot(self, provider: Provider) -> CacheSlot:
        return self._slots[provider]

    def products(self, provider: Provider) -> list[UnifiedProduct]:
        return list(self._slots[provider].products)

    def state(self, provider: Provider) -> SlotState:
        slot = self._slots[provider]
        if not slot.products:
            return SlotState.ABSENT
        if time.time() - slot.fetched_at < self._ttl:
            return SlotState.FRESH
        return SlotState.STALE

    def has_data(self, provider: Provider) -> bool:
        return bool(self._slots[provider].products)

    def any_stale(self) -> bool:
        return any(self.state(p) is SlotState.STALE for p in Provider)

    def total_products(self) -> int:
        return sum(len(slot.products) for slot in self._slots.values())

    def replace(
        self, provider: Provider, products: Iterable[UnifiedProduct], force: bool = False
    ) -> bool:
        """
        Ersetzt den Slot nach einem Warm-up. Regression Guard: liefert der
        Provider weniger Produkte als aktuell gecacht, bleibt der alte Slot
        (inkl. fetched_at) erhalten. Gibt zurück, ob ersetzt wurde.
        """
        new_products = self._checked(provider, products)
        existing = len(self._slots[provider].products)
        if not force and existing and len(new_products) < existing:
            logger.warning(
                "%s warm-up returned fewer products (%d) than cached (%d), keeping existing cache",
                provider, len(new_products), existing,
            )
            return False
        self._store(provider, new_products)
        return True

    def populate(self, provider: Provider, products: Iterable[UnifiedProduct]) -> None:
        """Unbedingtes Befüllen (Disk-Load, Live-Fetch in einen leeren Slot)."""
        self._store(provider, self._checked(provider, products))

    def _checked(
        self, provider: Provider, products: Iterable[UnifiedProduct]
    ) -> tuple[UnifiedProduct, ...]:
        items = tuple(products)
        foreign = [p.external_id for p in items if p.provider is not provider]
        if foreign:
            raise ValueError(f"Products {foreign[:3]} do not belong to provider '{provider}'")
        return items

    def _store(self, provider: Provider, products: tuple[UnifiedProduct, ...]) -> None:
        self._slots[provider] = CacheSlot(products=products, fetched_at=time.time())
        CACHE_PRODUCTS.labels(provider=provider.value).set(len(products))
