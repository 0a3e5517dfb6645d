# tests/unit/test_snapshot_repository.py
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from aggregator.domain.models import Provider
from aggregator.repositories.snapshot_repository import CacheSnapshotRepository
from aggregator.services.product_cache import ProductCache, SlotState


@pytest.mark.asyncio
async def test_save_and_load_round_trip(tmp_path: Path, products_for) -> None:
    path = tmp_path / "nested" / "cache.json"
    repo = CacheSnapshotRepository(path)
    cache = ProductCache(ttl_seconds=60)
    cache.populate(Provider.DTONE, products_for(Provider.DTONE, 3))

    assert await repo.save(cache) is True
    assert path.exists()

    data = json.loads(path.read_text())
    assert set(data) == {p.value for p in Provider}
    assert len(data["dtone"]["products"]) == 3
    assert data["dtone"]["products"][0]["externalId"] == "1002_0"
    assert "savedAt" in data["dtone"]

    restored = ProductCache(ttl_seconds=60)
    assert await repo.load(restored) is True
    assert restored.products(Provider.DTONE) == cache.products(Provider.DTONE)
    assert restored.has_data(Provider.GLOBETOPPER) is False


@pytest.mark.asyncio
async def test_load_stamps_slots_as_fresh(tmp_path: Path, product_factory) -> None:
    path = tmp_path / "cache.json"
    product = product_factory(Provider.BILLERS, "9").model_dump(mode="json", by_alias=True)
    # savedAt liegt weit in der Vergangenheit
    path.write_text(
        json.dumps({"billers": {"products": [product], "savedAt": "2020-01-01T00:00:00+00:00"}})
    )

    cache = ProductCache(ttl_seconds=60)
    with patch("time.time", return_value=5000.0):
        assert await CacheSnapshotRepository(path).load(cache) is True
        assert cache.state(Provider.BILLERS) == SlotState.FRESH
    assert cache.slot(Provider.BILLERS).fetched_at == 5000.0


@pytest.mark.asyncio
async def test_load_only_one_provider(tmp_path: Path, products_for) -> None:
    path = tmp_path / "cache.json"
    products = [p.model_dump(mode="json", by_alias=True) for p in products_for(Provider.PPN, 50)]
    path.write_text(json.dumps({"ppn": {"products": products, "savedAt": "2026-01-01T00:00:00Z"}}))

    cache = ProductCache(ttl_seconds=60)
    assert await CacheSnapshotRepository(path).load(cache) is True
    assert len(cache.products(Provider.PPN)) == 50
    assert cache.total_products() == 50


@pytest.mark.asyncio
async def test_load_migrates_legacy_ids(tmp_path: Path, product_factory) -> None:
    path = tmp_path / "cache.json"
    product = product_factory(Provider.DTONE, "4521").model_dump(mode="json", by_alias=True)
    product["externalId"] = "dtone_4521"
    path.write_text(json.dumps({"dtone": {"products": [product], "savedAt": ""}}))

    cache = ProductCache(ttl_seconds=60)
    await CacheSnapshotRepository(path).load(cache)

    assert cache.products(Provider.DTONE)[0].external_id == "1002_4521"


@pytest.mark.asyncio
async def test_load_skips_invalid_and_foreign_products(tmp_path: Path, product_factory) -> None:
    path = tmp_path / "cache.json"
    good = product_factory(Provider.PPN, "1").model_dump(mode="json", by_alias=True)
    foreign = product_factory(Provider.DTONE, "2").model_dump(mode="json", by_alias=True)
    path.write_text(
        json.dumps({"ppn": {"products": [good, foreign, {"externalId": ""}, "junk"], "savedAt": ""}})
    )

    cache = ProductCache(ttl_seconds=60)
    assert await CacheSnapshotRepository(path).load(cache) is True
    assert [p.raw_id for p in cache.products(Provider.PPN)] == ["1"]


@pytest.mark.asyncio
async def test_load_missing_file_returns_false(tmp_path: Path) -> None:
    cache = ProductCache(ttl_seconds=60)
    assert await CacheSnapshotRepository(tmp_path / "missing.json").load(cache) is False
    assert cache.total_products() == 0


@pytest.mark.asyncio
async def test_load_malformed_json_returns_false(tmp_path: Path) -> None:
    path = tmp_path / "cache.json"
    path.write_text("{not json")

    cache = ProductCache(ttl_seconds=60)
    assert await CacheSnapshotRepository(path).load(cache) is False


@pytest.mark.asyncio
async def test_load_empty_snapshot_returns_false(tmp_path: Path) -> None:
    path = tmp_path / "cache.json"
    path.write_text(json.dumps({p.value: {"products": [], "savedAt": ""} for p in Provider}))

    assert await CacheSnapshotRepository(path).load(ProductCache(ttl_seconds=60)) is False


@pytest.mark.asyncio
async def test_save_to_unwritable_location_is_not_fatal(tmp_path: Path, products_for) -> None:
    # Elternpfad ist eine Datei, mkdir schlägt fehl
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    cache = ProductCache(ttl_seconds=60)
    cache.populate(Provider.DTONE, products_for(Provider.DTONE, 1))

    assert await CacheSnapshotRepository(blocker / "cache.json").save(cache) is False


def test_path_property(tmp_path: Path) -> None:
    assert CacheSnapshotRepository(tmp_path / "x.json").path == tmp_path / "x.json"
