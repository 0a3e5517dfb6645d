# src/aggregator/normalizers/billers.py
"""
Billers: Länder kommen als ISO3 (`CountryCode`), Beträge sind meist variabel.
Die Detailansicht hängt SKUs und deren Eingabefelder an; geteilte SKUs liefern
Felder mehrerer Biller, daher wird nach `BillerID` gefiltert und dedupliziert.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from aggregator.domain.models import (
    BillerSku,
    BillersExtension,
    Category,
    Currency,
    PriceRange,
    Provider,
    ProviderExtensions,
    UnifiedProduct,
)
from aggregator.domain.product_codes import encode_product_id
from aggregator.normalizers.common import (
    LooseFloat,
    LooseStr,
    first_non_empty,
    normalize_each,
    ordered,
    range_label,
    to_str,
)
from aggregator.normalizers.reference import (
    canonical_category,
    currency_for_country,
    resolve_country,
)

CATEGORY_ID = 3001
DEFAULT_BILLER_TYPE = "Bill Payment"

_BILLER_ENVELOPE_KEYS = ("Data", "Billers", "data")
_SKU_ENVELOPE_KEYS = ("Data", "SKUs", "data")
_INPUT_ENVELOPE_KEYS = ("Data", "inputs")
_INPUT_IDENTITY_KEYS = ("IOID", "Name", "name")


class _Biller(BaseModel):
    biller_id: LooseStr = Field(validation_alias=AliasChoices("BillerID", "billerId", "id"))
    name: LooseStr = Field(default="", validation_alias=AliasChoices("BillerName", "billerName", "name"))
    country_code: LooseStr = Field(default="", validation_alias=AliasChoices("CountryCode", "countryCode"))
    country_name: LooseStr = Field(default="", validation_alias=AliasChoices("CountryName", "countryName"))
    currency: LooseStr = Field(default="", validation_alias=AliasChoices("Currency", "currency"))
    biller_type: LooseStr = Field(
        default="", validation_alias=AliasChoices("BillerType", "CategoryCode", "billerType")
    )
    biller_sub_type: LooseStr = Field(
        default="", validation_alias=AliasChoices("BillerSubType", "billerSubType")
    )
    logo_url: str | None = Field(default=None, validation_alias=AliasChoices("Logo", "LogoUrl", "logoUrl"))
    min_amount: LooseFloat = Field(default=0.0, validation_alias=AliasChoices("MinAmount", "minAmount", "min"))
    max_amount: LooseFloat = Field(default=0.0, validation_alias=AliasChoices("MaxAmount", "maxAmount", "max"))
    backend_fee: LooseFloat = Field(default=0.0, validation_alias=AliasChoices("BackendFee", "backendFee"))
    description: LooseStr = Field(default="", validation_alias=AliasChoices("Description", "description"))


class _BillerSku(BaseModel):
    sku: LooseStr = Field(validation_alias=AliasChoices("SKU", "SkuCode"))
    description: LooseStr = Field(default="", validation_alias=AliasChoices("Description", "description"))
    min_amount: LooseFloat = Field(default=0.0, validation_alias=AliasChoices("MinAmount", "minAmount"))
    max_amount: LooseFloat = Field(default=0.0, validation_alias=AliasChoices("MaxAmount", "maxAmount"))
    amount: LooseFloat = Field(default=0.0, validation_alias=AliasChoices("Amount", "amount"))


def _unwrap(data: Any, keys: tuple[str, ...]) -> list[dict[str, Any]]:
    if isinstance(data, list):
        return data
    if isinstance(data, Mapping):
        for key in keys:
            value = data.get(key)
            if isinstance(value, list):
                return value
    return []


def unwrap_billers(data: Any) -> list[dict[str, Any]]:
    return _unwrap(data, _BILLER_ENVELOPE_KEYS)


def unwrap_skus(data: Any) -> list[dict[str, Any]]:
    return _unwrap(data, _SKU_ENVELOPE_KEYS)


def unwrap_input_fields(data: Any) -> list[dict[str, Any]]:
    return _unwrap(data, _INPUT_ENVELOPE_KEYS)


def sku_code(record: Mapping[str, Any]) -> str:
    return to_str(record.get("SKU") or record.get("SkuCode"))


def select_input_fields(fields: list[dict[str, Any]], biller_id: str) -> list[dict[str, Any]]:
    """
    Behält Felder ohne BillerID oder mit passender BillerID; pro Feld-Identität
    (IOID, sonst Name) gewinnt der erste Treffer.
    """
    selected: list[dict[str, Any]] = []
    seen: set[str] = set()
    for field in fields:
        owner = to_str(field.get("BillerID"))
        if owner and owner != biller_id:
            continue
        key = next((to_str(field[k]) for k in _INPUT_IDENTITY_KEYS if field.get(k)), "")
        if key in seen:
            continue
        seen.add(key)
        selected.append(field)
    return selected


def _display(minimum: float, maximum: float, currency: str) -> str:
    if minimum and maximum:
        return range_label(minimum, maximum, currency)
    if currency:
        return f"Variable ({currency})"
    return ""


def _normalize(raw: _Biller, skus: list[BillerSku] | None = None) -> UnifiedProduct:
    if not raw.biller_id:
        raise ValueError("Biller without BillerID")

    country = resolve_country(raw.country_code, raw.country_name)
    currency = raw.currency or currency_for_country(raw.country_code)
    biller_type = raw.biller_type or DEFAULT_BILLER_TYPE

    if skus:
        minimum = min(s.min_amount or s.amount for s in skus)
        maximum = max(s.max_amount or s.amount for s in skus)
        display = ", ".join(f"{s.description or s.sku} {currency}".strip() for s in skus)
    else:
        minimum, maximum = raw.min_amount, raw.max_amount
        display = _display(minimum, maximum, currency)
    minimum, maximum = ordered(minimum, maximum)

    return UnifiedProduct(
        provider=Provider.BILLERS,
        external_id=encode_product_id(raw.biller_id, Provider.BILLERS),
        raw_id=raw.biller_id,
        product_name=raw.name,
        brand=raw.name,
        description=first_non_empty(raw.description, raw.name) if skus is not None else raw.description,
        country=country,
        category=Category(id=CATEGORY_ID, name=canonical_category(biller_type)),
        currency=Currency(code=currency),
        price_range=PriceRange(
            min=minimum, max=maximum, increment=1.0, is_range=bool(maximum) and minimum != maximum
        ),
        denominations=[],
        denominations_display=display,
        logo_url=raw.logo_url,
        extensions=ProviderExtensions(
            billers=BillersExtension(
                biller_id=raw.biller_id,
                biller_type=biller_type,
                biller_sub_type=raw.biller_sub_type or biller_type,
                backend_fee=raw.backend_fee,
                skus=skus or [],
            )
        ),
    )


def normalize_billers(data: Any) -> list[UnifiedProduct]:
    return normalize_each(
        unwrap_billers(data),
        lambda record: _normalize(_Biller.model_validate(record)),
        Provider.BILLERS,
    )


def find_biller(data: Any, biller_id: str) -> dict[str, Any] | None:
    """Nur exakte BillerID-Treffer; kein Rückfall auf den ersten Eintrag."""
    for record in unwrap_billers(data):
        if to_str(record.get("BillerID") or record.get("billerId") or record.get("id")) == biller_id:
            return record
    return None


def normalize_biller_detail(
    biller: dict[str, Any],
    skus: list[dict[str, Any]],
    inputs_by_sku: Mapping[str, list[dict[str, Any]]],
) -> UnifiedProduct:
    raw = _Biller.model_validate(biller)
    detail_skus: list[BillerSku] = []
    for record in skus:
        if not sku_code(record):
            continue
        sku = _BillerSku.model_validate(record)
        detail_skus.append(
            BillerSku(
                sku=sku.sku,
                description=sku.description,
                min_amount=sku.min_amount,
                max_amount=sku.max_amount,
                amount=sku.amount,
                input_fields=select_input_fields(inputs_by_sku.get(sku.sku, []), raw.biller_id),
            )
        )
    return _normalize(raw, detail_skus)
