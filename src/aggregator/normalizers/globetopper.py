# src/aggregator/normalizers/globetopper.py
"""
GlobeTopper liefert zwei getrennte Collections: den Katalog (Schlüssel
`topup_product_id`) und die Produktliste (Schlüssel `operator.id`). Für die
Listung werden Katalogeinträge per Left-Join mit ihren Produkten
zusammengeführt, anschließend werden Produkte ohne Katalogeintrag angehängt.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field, field_validator

from aggregator.domain.models import (
    Category,
    Country,
    Currency,
    GlobeTopperExtension,
    PriceRange,
    Provider,
    ProviderExtensions,
    RequestAttribute,
    UnifiedProduct,
)
from aggregator.domain.product_codes import encode_product_id
from aggregator.normalizers.common import (
    LooseFloat,
    LooseOptionalInt,
    LooseStr,
    amount_label,
    first_non_empty,
    fixed_label,
    normalize_each,
    ordered,
    range_label,
    to_float,
    to_str,
)
from aggregator.normalizers.reference import (
    canonical_category,
    currency_for_country,
    resolve_country,
)

_DEFAULT_CATEGORY = "Gift Card"

# "2.00 - 500.00 by 1.00"
_DENOMINATION_RANGE = re.compile(r"([\d.,]+)\s*-\s*([\d.,]+)")

_PHONE_ATTRIBUTE_NAMES = frozenset({"notif_tele", "phoneNumber", "phone"})

# ---------------------------------------------------------------------------
# Rohdaten-Schemas
# ---------------------------------------------------------------------------


class _GtCurrency(BaseModel):
    code: LooseStr = ""
    name: LooseStr = ""


class _GtOperatorCountry(BaseModel):
    iso2: LooseStr = ""
    name: LooseStr = ""
    currency: _GtCurrency | None = None


class _GtOperator(BaseModel):
    id: LooseStr = ""
    name: LooseStr = ""
    logo_url: str | None = None
    country: _GtOperatorCountry | None = None


class _GtCategory(BaseModel):
    id: LooseOptionalInt = None
    name: LooseStr = ""


class _GtRequestAttribute(BaseModel):
    name: LooseStr
    label: LooseStr = ""
    required: bool = True

    @field_validator("required", mode="before")
    @classmethod
    def _none_as_required(cls, value: Any) -> Any:
        return True if value is None else value


class _GtAdditionalDetail(BaseModel):
    value: LooseStr = ""


class _GtRecord(BaseModel):
    """Zusammengeführter Katalog- und/oder Produkteintrag."""

    topup_product_id: LooseStr = ""
    biller_id: LooseStr = Field(default="", alias="BillerID")
    sku: LooseStr = ""
    id: LooseStr = ""
    name: LooseStr = ""
    brand: LooseStr = ""
    description: LooseStr = ""
    brand_description: LooseStr = ""
    iso2: LooseStr = ""
    # Katalog liefert den Ländernamen als String
    country: LooseStr = ""
    operator: _GtOperator | None = None
    category: _GtCategory | str | None = None
    currency: _GtCurrency | str | None = None
    min: LooseFloat = 0.0
    max: LooseFloat = 0.0
    increment: LooseFloat = 0.0
    is_a_range: bool | None = None
    denomination: LooseStr = ""
    denominations: list[LooseFloat] = Field(default_factory=list)
    card_image: str | None = None
    request_attributes: list[_GtRequestAttribute] = Field(default_factory=list)
    additional_details: list[_GtAdditionalDetail] = Field(default_factory=list)
    redemption_instruction: LooseStr = ""
    term_and_conditions: LooseStr = ""
    usage: LooseStr = ""
    expiration: LooseStr = ""

    model_config = {"populate_by_name": True}

    @field_validator("denominations", "request_attributes", "additional_details", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return value or []

    @property
    def operator_id(self) -> str:
        return self.operator.id if self.operator else ""

    @property
    def raw_id(self) -> str:
        # Reihenfolge: Katalog-ID, Operator-ID, BillerID, sku, id
        return first_non_empty(
            self.topup_product_id, self.operator_id, self.biller_id, self.sku, self.id
        )


# ---------------------------------------------------------------------------
# Join / Lookup
# ---------------------------------------------------------------------------


def _operator_id(product: dict[str, Any]) -> str:
    operator = product.get("operator")
    if isinstance(operator, dict):
        return to_str(operator.get("id"))
    return ""


def merge_catalogue(
    catalogue: list[dict[str, Any]], products: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Left-Join Katalog -> Produkte über topup_product_id == operator.id, plus unverknüpfte Produkte."""
    by_operator: dict[str, dict[str, Any]] = {}
    for product in products:
        op_id = _operator_id(product)
        if op_id and op_id not in by_operator:
            by_operator[op_id] = product

    used: set[str] = set()
    merged: list[dict[str, Any]] = []
    for item in catalogue:
        key = to_str(item.get("topup_product_id"))
        product = by_operator.get(key) if key else None
        if product is not None:
            used.add(key)
            merged.append({**item, **product})
        else:
            merged.append(dict(item))

    merged.extend(p for p in products if _operator_id(p) not in used)
    return merged


def find_record(
    catalogue: list[dict[str, Any]], products: list[dict[str, Any]], raw_id: str
) -> dict[str, Any] | None:
    """Sucht eine ID sowohl im Katalog als auch in der Produktliste."""
    cat_item = next(
        (c for c in catalogue if to_str(c.get("topup_product_id")) == raw_id), None
    )
    product = next(
        (
            p
            for p in products
            if raw_id
            in (_operator_id(p), to_str(p.get("BillerID")), to_str(p.get("sku")), to_str(p.get("id")))
        ),
        None,
    )
    if cat_item is None and product is None:
        return None
    return {**(cat_item or {}), **(product or {})}


# ---------------------------------------------------------------------------
# Normalisierung
# ---------------------------------------------------------------------------


def _price_range(raw: _GtRecord) -> PriceRange:
    match = _DENOMINATION_RANGE.search(raw.denomination)
    parsed_min = to_float(match.group(1)) if match else 0.0
    parsed_max = to_float(match.group(2)) if match else 0.0

    minimum, maximum = ordered(raw.min or parsed_min, raw.max or parsed_max)
    if raw.is_a_range is not None:
        is_range = raw.is_a_range
    else:
        is_range = parsed_max > 0 and parsed_min != parsed_max
    return PriceRange(min=minimum, max=maximum, increment=raw.increment or 1.0, is_range=is_range)


def _currency_code(raw: _GtRecord, country_code: str) -> str:
    if isinstance(raw.currency, _GtCurrency) and raw.currency.code:
        return raw.currency.code
    if isinstance(raw.currency, str) and raw.currency:
        return raw.currency
    if raw.operator and raw.operator.country and raw.operator.country.currency:
        if raw.operator.country.currency.code:
            return raw.operator.country.currency.code
    return currency_for_country(country_code)


def _category(raw: _GtRecord) -> Category:
    if isinstance(raw.category, _GtCategory):
        return Category(
            id=raw.category.id or 9999,
            name=canonical_category(raw.category.name or _DEFAULT_CATEGORY),
        )
    return Category(id=9999, name=canonical_category(raw.category or _DEFAULT_CATEGORY))


def _denominations_display(raw: _GtRecord, price: PriceRange, currency: str) -> str:
    if price.is_range and price.min and price.max:
        return range_label(price.min, price.max, currency)
    if raw.denominations:
        return fixed_label(raw.denominations, currency)
    if price.min and price.min == price.max:
        return amount_label(price.min, currency)
    return raw.denomination


def _country(raw: _GtRecord) -> Country:
    op_country = raw.operator.country if raw.operator else None
    code = first_non_empty(raw.iso2, op_country.iso2 if op_country else "")
    name = first_non_empty(raw.country, op_country.name if op_country else "")
    return resolve_country(code, name)


def _normalize(raw: _GtRecord, attributes: list[RequestAttribute]) -> UnifiedProduct:
    raw_id = raw.raw_id
    if not raw_id:
        raise ValueError("GlobeTopper record without identifier")

    country = _country(raw)
    currency = _currency_code(raw, country.iso2)
    price = _price_range(raw)
    redemption_info = next((d.value for d in raw.additional_details if d.value), "")

    return UnifiedProduct(
        provider=Provider.GLOBETOPPER,
        external_id=encode_product_id(raw_id, Provider.GLOBETOPPER),
        raw_id=raw_id,
        product_name=first_non_empty(raw.name, raw.brand),
        brand=first_non_empty(raw.brand, raw.operator.name if raw.operator else "", raw.name),
        description=first_non_empty(raw.description, raw.brand_description),
        country=country,
        category=_category(raw),
        currency=Currency(code=currency),
        price_range=price,
        denominations=list(raw.denominations),
        denominations_display=_denominations_display(raw, price, currency),
        logo_url=raw.card_image or (raw.operator.logo_url if raw.operator else None),
        extensions=ProviderExtensions(
            globetopper=GlobeTopperExtension(
                topup_product_id=raw.topup_product_id or raw.operator_id,
                operator_id=raw.operator_id or raw.topup_product_id,
                catalogue_denomination=raw.denomination,
                attributes=attributes,
                redemption_info=redemption_info or raw.denomination,
                redemption_instruction=raw.redemption_instruction,
                terms_and_conditions=raw.term_and_conditions,
                usage=raw.usage,
                expiration=raw.expiration,
            )
        ),
    )


def _request_attributes(raw: _GtRecord, price: PriceRange) -> list[RequestAttribute]:
    attributes = [
        RequestAttribute(name=a.name, label=a.label, required=a.required)
        for a in raw.request_attributes
    ]
    if not attributes:
        if price.is_range:
            attributes.append(RequestAttribute(name="amount", label="Amount"))
        attributes += [
            RequestAttribute(name="email", label="Email Address"),
            RequestAttribute(name="first_name", label="First Name"),
            RequestAttribute(name="last_name", label="Last Name"),
            RequestAttribute(name="notif_tele", label="Phone Number"),
        ]
    if not any(a.name in _PHONE_ATTRIBUTE_NAMES for a in attributes):
        attributes.append(RequestAttribute(name="notif_tele", label="Phone Number"))
    return attributes


def normalize_globetopper(
    catalogue: list[dict[str, Any]], products: list[dict[str, Any]]
) -> list[UnifiedProduct]:
    return normalize_each(
        merge_catalogue(catalogue, products),
        lambda record: _normalize(_GtRecord.model_validate(record), attributes=[]),
        Provider.GLOBETOPPER,
    )


def normalize_globetopper_detail(record: dict[str, Any]) -> UnifiedProduct:
    raw = _GtRecord.model_validate(record)
    return _normalize(raw, attributes=_request_attributes(raw, _price_range(raw)))
