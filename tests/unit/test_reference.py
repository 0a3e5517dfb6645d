# tests/unit/test_reference.py
from aggregator.normalizers.reference import (
    canonical_category,
    currency_for_country,
    resolve_country,
    to_iso2,
)


def test_iso3_is_mapped_to_iso2() -> None:
    assert to_iso2("ARE") == "AE"
    assert to_iso2("ind") == "IN"


def test_unknown_code_is_kept() -> None:
    assert to_iso2("QQQ") == "QQQ"


def test_resolve_country_fills_missing_name() -> None:
    country = resolve_country("DE")
    assert country.iso2 == "DE"
    assert country.name == "Germany"


def test_resolve_country_keeps_provider_name() -> None:
    assert resolve_country("DE", "Deutschland").name == "Deutschland"


def test_pseudo_codes_get_descriptive_names() -> None:
    assert resolve_country("WW").name == "Worldwide"
    assert resolve_country("WWX").iso2 == "WW"
    assert resolve_country("XX").name == "Global"
    # Pseudo-Code gewinnt gegenüber dem Rohnamen
    assert resolve_country("WWX", "WWX").name == "Worldwide"


def test_currency_lookup_for_iso2_iso3_and_pseudo_codes() -> None:
    assert currency_for_country("AE") == "AED"
    assert currency_for_country("ARE") == "AED"
    assert currency_for_country("WW") == "USD"
    assert currency_for_country("QQ") == ""


def test_canonical_category_aliases() -> None:
    assert canonical_category("giftcards") == "Gift Card"
    assert canonical_category("Gift  Cards") == "Gift Card"
    assert canonical_category("TopUp") == "Top-Up"
    assert canonical_category("esim") == "eSIM"


def test_canonical_category_unknown_and_empty() -> None:
    assert canonical_category("  Streaming ") == "Streaming"
    assert canonical_category("") == "Other"
    assert canonical_category(None) == "Other"
