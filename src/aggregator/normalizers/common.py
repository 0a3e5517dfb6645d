# src/aggregator/normalizers/common.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Annotated, Any, TypeVar

from pydantic import BeforeValidator, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def to_float(value: Any) -> float:
    """Tolerante Zahl: None, leere Strings und Unparsbares werden zu 0.0; '1,000.50' -> 1000.5."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", "").strip())
        except ValueError:
            return 0.0
    return 0.0


def to_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


# Rohdaten-Typen für die Provider-Schemas: fehlende Felder -> "" bzw. 0.0
LooseStr = Annotated[str, BeforeValidator(to_str)]
LooseFloat = Annotated[float, BeforeValidator(to_float)]


def to_optional_int(value: Any) -> int | None:
    """Ganzzahlige IDs; None und Unparsbares werden zu None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


LooseOptionalInt = Annotated[int | None, BeforeValidator(to_optional_int)]


def first_non_empty(*values: str | None) -> str:
    for value in values:
        if value:
            return value
    return ""


def format_amount(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return str(value)


def amount_label(amount: float, currency: str) -> str:
    return f"{format_amount(amount)} {currency}".strip()


def range_label(minimum: float, maximum: float, currency: str) -> str:
    return f"{format_amount(minimum)} - {format_amount(maximum)} {currency}".strip()


def fixed_label(amounts: Iterable[float], currency: str) -> str:
    return ", ".join(amount_label(a, currency) for a in amounts)


def ordered(minimum: float, maximum: float) -> tuple[float, float]:
    if minimum and maximum and minimum > maximum:
        return maximum, minimum
    return minimum, maximum


def normalize_each(
    records: Iterable[T], normalize: Callable[[T], R], provider: str
) -> list[R]:
    """Normalisiert Datensatz für Datensatz; fehlerhafte Einträge werden übersprungen."""
    result: list[R] = []
    skipped = 0
    for record in records:
        try:
            result.append(normalize(record))
        except (ValidationError, ValueError, TypeError):
            skipped += 1
            logger.debug("Skipping malformed %s record", provider, exc_info=True)
    if skipped:
        logger.warning("Skipped %d malformed %s records", skipped, provider)
    return result
