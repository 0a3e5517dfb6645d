import pytest
from pydantic import ValidationError

from aggregator.domain.models import PriceRange, ProductFilters, Provider, UnifiedProduct


def test_unified_product_serializes_camel_case() -> None:
    product = UnifiedProduct(
        provider=Provider.PPN,
        external_id="1004_1",
        raw_id="1",
        product_name="Claro",
        denominations_display="10 MXN",
    )

    data = product.model_dump(mode="json", by_alias=True)

    assert data["externalId"] == "1004_1"
    assert data["productName"] == "Claro"
    assert data["priceRange"] == {"min": 0.0, "max": 0.0, "increment": 1.0, "isRange": False}
    assert data["category"] == {"id": 9999, "name": "Other"}
    assert data["provider"] == "ppn"


def test_unified_product_accepts_camel_case_input() -> None:
    product = UnifiedProduct.model_validate(
        {"provider": "dtone", "externalId": "1002_5", "rawId": "5", "logoUrl": None}
    )
    assert product.external_id == "1002_5"


def test_unified_product_requires_external_id() -> None:
    with pytest.raises(ValidationError):
        UnifiedProduct(provider=Provider.DTONE, external_id="", raw_id="5")


def test_unified_product_is_frozen() -> None:
    product = UnifiedProduct(provider=Provider.DTONE, external_id="1002_5", raw_id="5")
    with pytest.raises(ValidationError):
        product.product_name = "changed"  # type: ignore[misc]


def test_price_range_min_above_max_rejected() -> None:
    with pytest.raises(ValidationError):
        PriceRange(min=10, max=5)


def test_product_filters_bounds() -> None:
    assert ProductFilters().page == 1
    assert ProductFilters().limit is None
    with pytest.raises(ValidationError):
        ProductFilters(page=0)
    with pytest.raises(ValidationError):
        ProductFilters(limit=0)
