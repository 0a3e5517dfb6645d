# src/aggregator/normalizers/dtone.py
"""
DT-One: Land kommt aus `operator.country` (ISO3), nicht aus `destination`.

Ranged-Erkennung: ein `{min, max}`-Objekt in `destination.amount` bzw.
`source.amount` oder ein Benefit-Range mit min != max. Eine flache Zahl in
`destination.amount` bedeutet einen festen Betrag.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from aggregator.domain.models import (
    Category,
    Currency,
    DtOneExtension,
    PriceRange,
    Provider,
    ProviderExtensions,
    UnifiedProduct,
)
from aggregator.domain.product_codes import encode_product_id
from aggregator.normalizers.common import (
    LooseFloat,
    LooseStr,
    amount_label,
    first_non_empty,
    normalize_each,
    ordered,
    range_label,
)
from aggregator.normalizers.reference import (
    canonical_category,
    currency_for_country,
    resolve_country,
)

CATEGORY_ID = 1001
DEFAULT_CREDIT_PARTY_TYPE = "mobile_number"

# ---------------------------------------------------------------------------
# Rohdaten-Schemas
# ---------------------------------------------------------------------------


class _DtRange(BaseModel):
    min: LooseFloat = 0.0
    max: LooseFloat = 0.0
    step: LooseFloat = 0.0


class _DtMoney(BaseModel):
    amount: _DtRange | float | None = Field(default=None, union_mode="left_to_right")
    unit: LooseStr = ""

    @property
    def fixed(self) -> float:
        return self.amount if isinstance(self.amount, float) else 0.0

    @property
    def range(self) -> _DtRange | None:
        return self.amount if isinstance(self.amount, _DtRange) else None


class _DtPrices(BaseModel):
    retail: _DtMoney | None = None


class _DtBenefitAmount(BaseModel):
    range: _DtRange | None = None


class _DtBenefit(BaseModel):
    amount: _DtBenefitAmount | None = None


class _DtCountry(BaseModel):
    iso_code: LooseStr = ""
    name: LooseStr = ""


class _DtOperator(BaseModel):
    id: LooseStr = ""
    name: LooseStr = ""
    logo_url: str | None = None
    country: _DtCountry | None = None


class _DtRequiredFields(BaseModel):
    required_credit_party_identifier_fields: list[Any] | None = None
    required_sender_fields: list[Any] | None = None
    required_beneficiary_fields: list[Any] | None = None
    required_debit_party_identifier_fields: list[Any] | None = None
    required_statement_identifier_fields: list[Any] | None = None
    required_additional_identifier_fields: list[Any] | None = None


class _DtService(_DtRequiredFields):
    id: LooseStr = ""
    name: LooseStr = ""

    model_config = {"extra": "allow"}


class _DtProduct(_DtRequiredFields):
    id: LooseStr
    name: LooseStr = ""
    description: LooseStr = ""
    type: LooseStr = ""
    service: _DtService | None = None
    operator: _DtOperator | None = None
    destination: _DtMoney | None = None
    source: _DtMoney | None = None
    prices: _DtPrices | None = None
    benefits: list[_DtBenefit] = Field(default_factory=list)

    @field_validator("benefits", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return value or []

    def required(self, field: str) -> list[Any]:
        """Produkt-Ebene zuerst, Service-Ebene als Fallback."""
        value = getattr(self, field)
        if value is None and self.service is not None:
            value = getattr(self.service, field)
        return value or []


# ---------------------------------------------------------------------------
# Normalisierung
# ---------------------------------------------------------------------------


def _ranged(raw: _DtProduct) -> tuple[_DtRange, str] | None:
    """Liefert (Range, Währung) für Ranged-Produkte, sonst None."""
    if raw.destination and raw.destination.range:
        return raw.destination.range, raw.destination.unit
    if raw.source and raw.source.range:
        return raw.source.range, raw.source.unit
    benefit = raw.benefits[0] if raw.benefits else None
    if benefit and benefit.amount and benefit.amount.range:
        rng = benefit.amount.range
        if rng.max > 0 and rng.min != rng.max:
            return rng, raw.source.unit if raw.source else ""
    return None


def _credit_party_type(fields: list[Any]) -> str:
    # [["mobile_number"]] -> "mobile_number"
    if fields and isinstance(fields[0], list) and fields[0]:
        return str(fields[0][0])
    return DEFAULT_CREDIT_PARTY_TYPE


def _normalize(raw: _DtProduct, include_service: bool) -> UnifiedProduct:
    if not raw.id:
        raise ValueError("DT-One product without id")

    op_country = raw.operator.country if raw.operator else None
    country = resolve_country(
        op_country.iso_code if op_country else "", op_country.name if op_country else ""
    )
    operator_name = first_non_empty(raw.operator.name if raw.operator else "", raw.name)

    dest_amount = raw.destination.fixed if raw.destination else 0.0
    dest_currency = raw.destination.unit if raw.destination else ""
    source_amount = raw.source.fixed if raw.source else 0.0
    source_currency = raw.source.unit if raw.source else ""
    retail = raw.prices.retail if raw.prices else None
    retail_price = (retail.fixed if retail else 0.0) or source_amount
    retail_currency = (retail.unit if retail else "") or source_currency
    currency = first_non_empty(dest_currency, retail_currency, currency_for_country(country.iso2))

    ranged = _ranged(raw)
    if ranged is not None:
        rng, range_currency = ranged
        minimum, maximum = ordered(rng.min, rng.max)
        price = PriceRange(min=minimum, max=maximum, increment=rng.step or 1.0, is_range=True)
        display = range_label(minimum, maximum, range_currency or currency)
        denominations: list[float] = []
    else:
        amount = retail_price or dest_amount
        price = PriceRange(min=amount, max=amount, increment=1.0, is_range=False)
        if dest_amount:
            display = amount_label(dest_amount, dest_currency)
        elif retail_price:
            display = amount_label(retail_price, retail_currency)
        else:
            display = ""
        denominations = [dest_amount] if dest_amount else []

    credit_fields = raw.required("required_credit_party_identifier_fields")
    service_name = first_non_empty(raw.service.name if raw.service else "", raw.type, "Topup")

    return UnifiedProduct(
        provider=Provider.DTONE,
        external_id=encode_product_id(raw.id, Provider.DTONE),
        raw_id=raw.id,
        product_name=first_non_empty(raw.name, operator_name),
        brand=operator_name,
        description=raw.description,
        country=country,
        category=Category(id=CATEGORY_ID, name=canonical_category(service_name)),
        currency=Currency(code=currency),
        price_range=price,
        denominations=denominations,
        denominations_display=display,
        logo_url=raw.operator.logo_url if raw.operator else None,
        extensions=ProviderExtensions(
            dtone=DtOneExtension(
                product_type=raw.type,
                source_amount=source_amount,
                source_currency=source_currency,
                destination_amount=dest_amount,
                destination_currency=dest_currency,
                retail_price=retail_price,
                retail_currency=retail_currency,
                credit_party_type=_credit_party_type(credit_fields),
                required_credit_party_fields=credit_fields,
                required_sender_fields=raw.required("required_sender_fields"),
                required_beneficiary_fields=raw.required("required_beneficiary_fields"),
                required_debit_party_fields=raw.required("required_debit_party_identifier_fields"),
                required_statement_fields=raw.required("required_statement_identifier_fields"),
                required_additional_fields=raw.required("required_additional_identifier_fields"),
                service=raw.service.model_dump() if include_service and raw.service else None,
            )
        ),
    )


def normalize_dtone(records: list[dict[str, Any]]) -> list[UnifiedProduct]:
    return normalize_each(
        records,
        lambda record: _normalize(_DtProduct.model_validate(record), include_service=False),
        Provider.DTONE,
    )


def normalize_dtone_detail(record: dict[str, Any]) -> UnifiedProduct:
    return _normalize(_DtProduct.model_validate(record), include_service=True)
