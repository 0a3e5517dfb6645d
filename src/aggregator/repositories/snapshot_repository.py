# src/aggregator/repositories/snapshot_repository.py
"""
Disk-Snapshot des Produkt-Caches: eine JSON-Datei, komplett geschrieben und
komplett gelesen.

    {"globetopper": {"products": [...], "savedAt": "2026-01-01T12:00:00+00:00"}, ...}

Fehler sind nie fatal: ohne lesbare Datei startet der Service mit leerem Cache.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from aggregator.domain.models import Provider, UnifiedProduct
from aggregator.domain.product_codes import encode_product_id, is_legacy_id
from aggregator.services.product_cache import ProductCache

logger = logging.getLogger(__name__)


def _migrate_legacy_id(item: dict[str, Any]) -> bool:
    external_id = item.get("externalId")
    if isinstance(external_id, str) and is_legacy_id(external_id):
        item["externalId"] = encode_product_id(external_id)
        return True
    return False


class CacheSnapshotRepository:
    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    async def save(self, cache: ProductCache) -> bool:
        """Schreibt alle vier Slots. Zeitstempel werden beim Laden neu gesetzt."""
        saved_at = datetime.now(UTC).isoformat()
        snapshot = {
            provider.value: {
                "products": [
                    p.model_dump(mode="json", by_alias=True) for p in cache.products(provider)
                ],
                "savedAt": saved_at,
            }
            for provider in Provider
        }
        try:
            await asyncio.to_thread(self._write, json.dumps(snapshot))
        except (OSError, TypeError, ValueError):
            logger.warning("Failed to save product cache to %s", self._path, exc_info=True)
            return False
        logger.info("Product cache saved to disk (%d products)", cache.total_products())
        return True

    def _write(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(payload, encoding="utf-8")

    async def load(self, cache: ProductCache) -> bool:
        """
        Befüllt den Cache aus der Datei und stempelt jeden geladenen Slot mit
        'jetzt'. Alt-IDs (dtone_123) werden dabei auf das Code-Schema migriert.
        Gibt zurück, ob mindestens ein Slot geladen wurde.
        """
        try:
            raw = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
        except FileNotFoundError:
            logger.info("No product cache file at %s, starting cold", self._path)
            return False
        except OSError:
            logger.warning("Failed to read product cache from %s", self._path, exc_info=True)
            return False

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Product cache file %s is not valid JSON, ignoring it", self._path)
            return False
        if not isinstance(data, dict):
            logger.warning("Product cache file %s has an unexpected layout, ignoring it", self._path)
            return False

        loaded = False
        for provider in Provider:
            products = self._products_for(provider, data.get(provider.value))
            if products:
                cache.populate(provider, products)
                loaded = True
                logger.info("Loaded %d %s products from disk cache", len(products), provider)
        return loaded

    @staticmethod
    def _products_for(provider: Provider, entry: Any) -> list[UnifiedProduct]:
        if not isinstance(entry, dict) or not isinstance(entry.get("products"), list):
            return []

        products: list[UnifiedProduct] = []
        migrated = skipped = 0
        for item in entry["products"]:
            if not isinstance(item, dict):
                skipped += 1
                continue
            item = dict(item)
            if _migrate_legacy_id(item):
                migrated += 1
            try:
                product = UnifiedProduct.model_validate(item)
            except ValidationError:
                skipped += 1
                continue
            if product.provider is not provider:
                skipped += 1
                continue
            products.append(product)

        if migrated:
            logger.info("Migrated %d legacy %s product ids", migrated, provider)
        if skipped:
            logger.warning("Skipped %d invalid %s products in disk cache", skipped, provider)
        return products
