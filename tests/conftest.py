# tests/conftest.py
from collections.abc import Callable, Generator
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

import aggregator.api.dependencies as _deps
from aggregator.adapters.globetopper import GlobeTopperAdapter
from aggregator.core.config import Settings, get_settings
from aggregator.core.rate_limit import limiter
from aggregator.domain.models import (
    Category,
    Country,
    Currency,
    PriceRange,
    Provider,
    UnifiedProduct,
)
from aggregator.domain.ports import ProviderCatalogPort
from aggregator.domain.product_codes import encode_product_id
from aggregator.main import app
from aggregator.services.product_cache import ProductCache

ProductFactory = Callable[..., UnifiedProduct]


def _make_product(
    provider: Provider,
    raw_id: str,
    name: str = "Test Product",
    brand: str = "",
    description: str = "",
    country: str = "DE",
    country_name: str = "Germany",
    category: str = "Gift Card",
    currency: str = "EUR",
) -> UnifiedProduct:
    return UnifiedProduct(
        provider=provider,
        external_id=encode_product_id(raw_id, provider),
        raw_id=raw_id,
        product_name=name,
        brand=brand or name,
        description=description,
        country=Country(iso2=country, name=country_name),
        category=Category(id=9999, name=category),
        currency=Currency(code=currency),
        price_range=PriceRange(min=10, max=10),
    )


@pytest.fixture
def product_factory() -> ProductFactory:
    return _make_product


@pytest.fixture
def products_for(product_factory: ProductFactory) -> Callable[[Provider, int], list[UnifiedProduct]]:
    def _build(provider: Provider, count: int) -> list[UnifiedProduct]:
        return [product_factory(provider, str(i), name=f"{provider} {i}") for i in range(count)]

    return _build


@pytest.fixture
def fake_adapters() -> dict[Provider, AsyncMock]:
    adapters: dict[Provider, AsyncMock] = {}
    for provider in Provider:
        adapter = AsyncMock(spec=ProviderCatalogPort)
        adapter.fetch_all_products.return_value = []
        adapters[provider] = adapter
    return adapters


@pytest.fixture
def fake_country_source() -> AsyncMock:
    source = AsyncMock(spec=GlobeTopperAdapter)
    source.fetch_countries.return_value = []
    return source


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        api_key_auth_enabled=True,
        api_keys=["test-key-alice", "test-key-bob"],
        warmup_enabled=False,
        cache_file=tmp_path / "cache" / "products_cache.json",
    )


@pytest.fixture
def client(
    test_settings: Settings,
    fake_adapters: dict[Provider, AsyncMock],
    fake_country_source: AsyncMock,
) -> Generator[TestClient, None, None]:
    # Singletons mit Fakes vorbelegen, damit weder Lifespan noch Requests
    # echte Provider-Adapter bauen.
    _deps.reset_singletons()
    _deps._globetopper_adapter = fake_country_source
    _deps._adapters = dict(fake_adapters)
    limiter.reset()
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        with patch("aggregator.main.get_settings", return_value=test_settings), TestClient(
            app
        ) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_settings, None)
        _deps.reset_singletons()
        # Der Lifespan schließt den geteilten Client beim Shutdown
        _deps.get_http_client.cache_clear()


@pytest.fixture
def product_cache(client: TestClient, test_settings: Settings) -> ProductCache:
    return _deps.get_product_cache(test_settings)


@pytest.fixture
def alice_headers() -> dict:
    return {"X-API-Key": "test-key-alice"}
