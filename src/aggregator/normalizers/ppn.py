# src/aggregator/normalizers/ppn.py
"""
PPN (ValueTopup) SKUs. Feldnamen variieren zwischen Endpunkten; die
Reihenfolge in den AliasChoices ist die verbindliche Präzedenz (der erste
vorhandene Key gewinnt).

Ranged-Erkennung: keine `FixedAmounts` und ein MinAmount/MaxAmount-Paar mit
min != max.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from aggregator.domain.models import (
    Category,
    Currency,
    PpnExtension,
    PriceRange,
    Provider,
    ProviderExtensions,
    RequestAttribute,
    UnifiedProduct,
)
from aggregator.domain.product_codes import encode_product_id
from aggregator.normalizers.common import (
    LooseFloat,
    LooseStr,
    amount_label,
    first_non_empty,
    fixed_label,
    normalize_each,
    ordered,
    range_label,
)
from aggregator.normalizers.reference import (
    canonical_category,
    currency_for_country,
    resolve_country,
)

CATEGORY_ID = 2001

_ENVELOPE_KEYS = ("payLoad", "skus", "data")


class _PpnSku(BaseModel):
    sku_code: LooseStr = Field(validation_alias=AliasChoices("SkuCode", "skuId", "sku_code", "id"))
    product_name: LooseStr = Field(
        default="", validation_alias=AliasChoices("ProductName", "productName", "product_name", "name")
    )
    brand: LooseStr = Field(
        default="", validation_alias=AliasChoices("Brand", "brand", "OperatorName", "operatorName")
    )
    country_code: LooseStr = Field(
        default="", validation_alias=AliasChoices("CountryCode", "countryCode", "country_code")
    )
    country_name: LooseStr = Field(default="", validation_alias=AliasChoices("Country", "country"))
    currency: LooseStr = Field(default="", validation_alias=AliasChoices("Currency", "currency"))
    category: LooseStr = Field(default="", validation_alias=AliasChoices("Category", "category"))
    type: LooseStr = Field(default="", validation_alias=AliasChoices("Type", "type"))
    description: LooseStr = Field(
        default="", validation_alias=AliasChoices("Description", "description")
    )
    logo_url: str | None = Field(
        default=None, validation_alias=AliasChoices("LogoUrl", "logoUrl", "logo_url", "ImageUrl")
    )
    min_amount: LooseFloat = Field(
        default=0.0, validation_alias=AliasChoices("MinAmount", "minAmount", "min")
    )
    max_amount: LooseFloat = Field(
        default=0.0, validation_alias=AliasChoices("MaxAmount", "maxAmount", "max")
    )
    fixed_amounts: list[LooseFloat] = Field(
        default_factory=list,
        validation_alias=AliasChoices("FixedAmounts", "fixedAmounts", "denominations"),
    )

    @field_validator("fixed_amounts", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return value or []

    @property
    def is_range(self) -> bool:
        return (
            not self.fixed_amounts
            and bool(self.min_amount and self.max_amount)
            and self.min_amount != self.max_amount
        )


def unwrap_skus(data: Any) -> list[dict[str, Any]]:
    """PPN liefert entweder eine Liste oder ein Envelope (payLoad / skus / data)."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in _ENVELOPE_KEYS:
            value = data.get(key)
            if isinstance(value, list):
                return value
    return []


def _denominations_display(raw: _PpnSku, currency: str) -> str:
    if raw.fixed_amounts:
        return fixed_label(raw.fixed_amounts, currency)
    if raw.min_amount and raw.max_amount:
        if raw.min_amount == raw.max_amount:
            return amount_label(raw.min_amount, currency)
        return range_label(raw.min_amount, raw.max_amount, currency)
    return ""


def _price_range(raw: _PpnSku) -> PriceRange:
    minimum, maximum = raw.min_amount, raw.max_amount
    if raw.fixed_amounts and not (minimum or maximum):
        minimum, maximum = min(raw.fixed_amounts), max(raw.fixed_amounts)
    minimum, maximum = ordered(minimum, maximum)
    return PriceRange(min=minimum, max=maximum, increment=1.0, is_range=raw.is_range)


def transaction_category(raw_category: str) -> str:
    cat = raw_category.lower()
    if "pin" in cat:
        return "pin"
    if "topup" in cat or "recharge" in cat or "rtr" in cat:
        return "rtr"
    if "bill" in cat or "utility" in cat or "payment" in cat:
        return "billpay"
    if "esim" in cat:
        return "esim"
    if "sim" in cat:
        return "sim"
    return "giftcard"


def transaction_attributes(raw_category: str, raw_type: str, is_range: bool) -> list[RequestAttribute]:
    """Formularfelder für die PPN-Transaktion abhängig von Kategorie und Typ."""
    cat, kind = raw_category.lower(), raw_type.lower()
    attributes: list[RequestAttribute] = []
    if is_range:
        attributes.append(RequestAttribute(name="amount", label="Amount"))
    if any(k in cat for k in ("topup", "recharge", "mobile")) or any(
        k in kind for k in ("topup", "recharge")
    ):
        attributes.append(
            RequestAttribute(name="mobileNumber", label="Mobile Number (with country code)")
        )
    if any(k in cat for k in ("bill", "utility", "payment")):
        attributes.append(RequestAttribute(name="accountNumber", label="Account / Bill Number"))
    if not any(a.name in ("mobileNumber", "accountNumber") for a in attributes):
        attributes.append(
            RequestAttribute(name="accountNumber", label="Recipient Account / Phone Number")
        )
    attributes.append(RequestAttribute(name="email", label="Email Address", required=False))
    return attributes


def _normalize(raw: _PpnSku, detail: bool) -> UnifiedProduct:
    if not raw.sku_code:
        raise ValueError("PPN SKU without code")

    country = resolve_country(raw.country_code, raw.country_name)
    currency = raw.currency or currency_for_country(country.iso2)
    category_name = raw.category or "Topup"

    extension = PpnExtension(sku_id=raw.sku_code, type_name=raw.type or category_name)
    if detail:
        extension = extension.model_copy(
            update={
                "transaction_category": transaction_category(raw.category),
                "attributes": transaction_attributes(raw.category, raw.type, raw.is_range),
            }
        )

    return UnifiedProduct(
        provider=Provider.PPN,
        external_id=encode_product_id(raw.sku_code, Provider.PPN),
        raw_id=raw.sku_code,
        product_name=raw.product_name,
        brand=first_non_empty(raw.brand, raw.product_name),
        description=first_non_empty(raw.description, raw.product_name) if detail else raw.description,
        country=country,
        category=Category(id=CATEGORY_ID, name=canonical_category(category_name)),
        currency=Currency(code=currency),
        price_range=_price_range(raw),
        denominations=list(raw.fixed_amounts),
        denominations_display=_denominations_display(raw, currency),
        logo_url=raw.logo_url,
        extensions=ProviderExtensions(ppn=extension),
    )


def normalize_ppn(data: Any) -> list[UnifiedProduct]:
    return normalize_each(
        unwrap_skus(data),
        lambda record: _normalize(_PpnSku.model_validate(record), detail=False),
        Provider.PPN,
    )


def find_sku(data: Any, sku_id: str) -> dict[str, Any] | None:
    for record in unwrap_skus(data):
        try:
            sku = _PpnSku.model_validate(record)
        except ValidationError:
            continue
        if sku.sku_code == sku_id:
            return record
    return None


def normalize_ppn_detail(record: dict[str, Any]) -> UnifiedProduct:
    return _normalize(_PpnSku.model_validate(record), detail=True)
