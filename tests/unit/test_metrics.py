from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from aggregator.domain.models import Provider
from aggregator.services.product_cache import ProductCache


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_request_count_middleware(client: TestClient) -> None:
    labels = {"method": "GET", "path": "/healthz", "status_code": "200"}
    initial = _sample("http_requests_total", labels)

    response = client.get("/healthz")
    assert response.status_code == 200

    assert _sample("http_requests_total", labels) == initial + 1


def test_metrics_endpoint_unauthenticated(client: TestClient) -> None:
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "http_requests_total" in response.text
    assert "cache_products" in response.text


def test_cache_hit_and_miss_counters(
    client: TestClient, product_cache: ProductCache, products_for, alice_headers: dict
) -> None:
    product_cache.populate(Provider.DTONE, products_for(Provider.DTONE, 2))
    hits = _sample("cache_hits_total", {"provider": "dtone"})
    misses = _sample("cache_misses_total", {"provider": "ppn"})

    response = client.get("/api/v1/products", headers=alice_headers)
    assert response.status_code == 200

    assert _sample("cache_hits_total", {"provider": "dtone"}) == hits + 1
    assert _sample("cache_misses_total", {"provider": "ppn"}) == misses + 1


def test_cache_products_gauge_tracks_slot_size(products_for) -> None:
    cache = ProductCache(ttl_seconds=60)
    cache.populate(Provider.BILLERS, products_for(Provider.BILLERS, 3))
    assert _sample("cache_products", {"provider": "billers"}) == 3
