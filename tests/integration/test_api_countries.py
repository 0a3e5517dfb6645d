from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from aggregator.domain.models import CountrySummary, Provider
from aggregator.services.product_cache import ProductCache


def test_countries_require_api_key(client: TestClient) -> None:
    assert client.get("/api/v1/countries").status_code == 401


def test_list_countries_from_cache(
    client: TestClient, product_cache: ProductCache, product_factory, alice_headers: dict
) -> None:
    product_cache.populate(
        Provider.GLOBETOPPER,
        [
            product_factory(Provider.GLOBETOPPER, "1", country="US", country_name="United States"),
            product_factory(Provider.GLOBETOPPER, "2", country="US", country_name="United States"),
            product_factory(Provider.GLOBETOPPER, "3", country="AR", country_name="Argentina"),
        ],
    )

    response = client.get("/api/v1/countries", headers=alice_headers)

    assert response.status_code == 200
    assert response.json() == [
        {"iso2": "AR", "name": "Argentina", "productCount": 1},
        {"iso2": "US", "name": "United States", "productCount": 2},
    ]


def test_list_countries_falls_back_to_country_source(
    client: TestClient, fake_country_source: AsyncMock, alice_headers: dict
) -> None:
    fake_country_source.fetch_countries.return_value = [CountrySummary(iso2="DE", name="Germany")]

    response = client.get("/api/v1/countries", headers=alice_headers)

    assert response.status_code == 200
    assert response.json() == [{"iso2": "DE", "name": "Germany", "productCount": 0}]


def test_get_country_accepts_iso3(
    client: TestClient, product_cache: ProductCache, product_factory, alice_headers: dict
) -> None:
    product_cache.populate(
        Provider.DTONE, [product_factory(Provider.DTONE, "1", country="IN", country_name="India")]
    )

    response = client.get("/api/v1/countries/ind", headers=alice_headers)

    assert response.status_code == 200
    assert response.json()["iso2"] == "IN"


def test_get_country_not_found(client: TestClient, alice_headers: dict) -> None:
    response = client.get("/api/v1/countries/zz", headers=alice_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "Country 'ZZ' not found"
