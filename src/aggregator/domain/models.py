# src/aggregator/domain/models.py
from __future__ import annotations

from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------


class Provider(StrEnum):
    GLOBETOPPER = "globetopper"
    DTONE = "dtone"
    PPN = "ppn"
    BILLERS = "billers"


class _CamelModel(BaseModel):
    """Python attributes in snake_case, JSON (API responses and disk snapshot) in camelCase."""

    model_config = {"frozen": True, "populate_by_name": True, "alias_generator": to_camel}


class Country(_CamelModel):
    iso2: str = ""
    name: str = ""


class Category(_CamelModel):
    id: int = 9999
    name: str = "Other"


class Currency(_CamelModel):
    code: str = ""


class PriceRange(_CamelModel):
    min: float = 0.0
    max: float = 0.0
    increment: float = 1.0
    is_range: bool = False

    @model_validator(mode="after")
    def min_not_above_max(self) -> Self:
        if self.min and self.max and self.min > self.max:
            raise ValueError("priceRange.min must not exceed priceRange.max")
        return self


# ---------------------------------------------------------------------------
# Provider-specific extension bags
# Felder, die nur für den Transaktionsfluss eines Providers Bedeutung haben.
# ---------------------------------------------------------------------------


class RequestAttribute(_CamelModel):
    name: str
    label: str = ""
    required: bool = True


class GlobeTopperExtension(_CamelModel):
    topup_product_id: str = ""
    operator_id: str = ""
    catalogue_denomination: str = ""
    attributes: list[RequestAttribute] = Field(default_factory=list)
    redemption_info: str = ""
    redemption_instruction: str = ""
    terms_and_conditions: str = ""
    usage: str = ""
    expiration: str = ""


class DtOneExtension(_CamelModel):
    product_type: str = ""
    source_amount: float = 0.0
    source_currency: str = ""
    destination_amount: float = 0.0
    destination_currency: str = ""
    retail_price: float = 0.0
    retail_currency: str = ""
    credit_party_type: str = "mobile_number"
    required_credit_party_fields: list[Any] = Field(default_factory=list)
    required_sender_fields: list[Any] = Field(default_factory=list)
    required_beneficiary_fields: list[Any] = Field(default_factory=list)
    required_debit_party_fields: list[Any] = Field(default_factory=list)
    required_statement_fields: list[Any] = Field(default_factory=list)
    required_additional_fields: list[Any] = Field(default_factory=list)
    service: dict[str, Any] | None = None


class PpnExtension(_CamelModel):
    sku_id: str = ""
    type_name: str = ""
    transaction_category: str = ""
    attributes: list[RequestAttribute] = Field(default_factory=list)


class BillerSku(_CamelModel):
    sku: str
    description: str = ""
    min_amount: float = 0.0
    max_amount: float = 0.0
    amount: float = 0.0
    input_fields: list[dict[str, Any]] = Field(default_factory=list)


class BillersExtension(_CamelModel):
    biller_id: str = ""
    biller_type: str = ""
    biller_sub_type: str = ""
    backend_fee: float = 0.0
    skus: list[BillerSku] = Field(default_factory=list)


class ProviderExtensions(_CamelModel):
    globetopper: GlobeTopperExtension | None = None
    dtone: DtOneExtension | None = None
    ppn: PpnExtension | None = None
    billers: BillersExtension | None = None


# ---------------------------------------------------------------------------
# Aggregate: UnifiedProduct
# Kernkonzept: Provider-agnostisches, normalisiertes Produktmodell.
# ---------------------------------------------------------------------------


class UnifiedProduct(_CamelModel):
    """
    Einheitliches Produktmodell über alle vier Provider.
    `external_id` ist die nach außen sichtbare Produkt-ID ({code}_{raw_id}).
    """

    provider: Provider
    external_id: str = Field(min_length=1)
    raw_id: str
    product_name: str = ""
    brand: str = ""
    description: str = ""
    country: Country = Field(default_factory=Country)
    category: Category = Field(default_factory=Category)
    currency: Currency = Field(default_factory=Currency)
    price_range: PriceRange = Field(default_factory=PriceRange)
    denominations: list[float] = Field(default_factory=list)
    denominations_display: str = ""
    logo_url: str | None = None
    extensions: ProviderExtensions = Field(default_factory=ProviderExtensions)


# ---------------------------------------------------------------------------
# Query Schemas
# ---------------------------------------------------------------------------


class ProductFilters(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)
    country: str | None = None
    category: str | None = None
    search: str | None = None
    provider: Provider | None = None

    model_config = {"frozen": True}


class Pagination(_CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ProductPage(_CamelModel):
    products: list[UnifiedProduct]
    pagination: Pagination
    providers: dict[Provider, int]


class CountrySummary(_CamelModel):
    iso2: str
    name: str
    product_count: int = 0
