# tests/unit/test_normalizers.py
from aggregator.domain.models import Provider
from aggregator.normalizers.billers import (
    find_biller,
    normalize_biller_detail,
    normalize_billers,
    select_input_fields,
)
from aggregator.normalizers.dtone import normalize_dtone, normalize_dtone_detail
from aggregator.normalizers.globetopper import (
    find_record,
    merge_catalogue,
    normalize_globetopper,
    normalize_globetopper_detail,
)
from aggregator.normalizers.ppn import normalize_ppn, normalize_ppn_detail

# ---------------------------------------------------------------------------
# GlobeTopper
# ---------------------------------------------------------------------------

_GT_CATALOGUE = [
    {
        "topup_product_id": "100",
        "name": "Amazon DE",
        "denomination": "5.00 - 500.00 by 1.00",
        "currency": "EUR",
        "country": "Germany",
        "iso2": "DE",
    },
    {"topup_product_id": "200", "name": "Catalogue only"},
]

_GT_PRODUCTS = [
    {
        "operator": {"id": "100", "name": "Amazon", "country": {"iso2": "DE", "name": "Germany"}},
        "category": {"id": 3, "name": "giftcards"},
        "min": "5",
        "max": "500",
        "is_a_range": True,
    },
    {"operator": {"id": "300", "name": "Product only"}, "name": "Steam"},
]


def test_globetopper_left_join_keeps_unmatched_from_both_sides() -> None:
    merged = merge_catalogue(_GT_CATALOGUE, _GT_PRODUCTS)
    assert len(merged) == 3

    products = normalize_globetopper(_GT_CATALOGUE, _GT_PRODUCTS)
    assert [p.external_id for p in products] == ["1001_100", "1001_200", "1001_300"]
    assert all(p.provider == Provider.GLOBETOPPER for p in products)


def test_globetopper_joined_record_combines_both_collections() -> None:
    product = normalize_globetopper(_GT_CATALOGUE, _GT_PRODUCTS)[0]

    assert product.product_name == "Amazon DE"
    assert product.brand == "Amazon"
    assert product.country.iso2 == "DE"
    assert product.category.id == 3
    assert product.category.name == "Gift Card"
    assert product.currency.code == "EUR"
    assert product.price_range.is_range is True
    assert product.price_range.min == 5
    assert product.price_range.max == 500
    assert product.denominations_display == "5 - 500 EUR"


def test_globetopper_range_parsed_from_denomination_string() -> None:
    products = normalize_globetopper(
        [{"topup_product_id": "7", "name": "X", "denomination": "10.00 - 1,000.00", "iso2": "US"}],
        [],
    )

    assert products[0].price_range.is_range is True
    assert products[0].price_range.min == 10
    assert products[0].price_range.max == 1000
    assert products[0].currency.code == "USD"


def test_globetopper_record_without_id_is_skipped() -> None:
    assert normalize_globetopper([{"name": "no id"}], []) == []


_GT_NULL_OPTIONALS = {
    "operator": {"id": "77", "name": "Amazon"},
    "name": "Amazon",
    "category": {"id": "n/a", "name": None},
    "request_attributes": [{"name": "email", "label": None, "required": None}],
}


def test_globetopper_null_optional_fields_keep_the_record() -> None:
    products = normalize_globetopper([], [_GT_NULL_OPTIONALS])

    assert [p.external_id for p in products] == ["1001_77"]
    assert products[0].category.id == 9999
    assert products[0].category.name == "Gift Card"


def test_globetopper_detail_null_required_defaults_to_true() -> None:
    product = normalize_globetopper_detail(_GT_NULL_OPTIONALS)

    ext = product.extensions.globetopper
    assert ext is not None
    assert ext.attributes[0].name == "email"
    assert ext.attributes[0].required is True


def test_globetopper_find_record_searches_both_collections() -> None:
    assert find_record(_GT_CATALOGUE, _GT_PRODUCTS, "200")["name"] == "Catalogue only"
    assert find_record(_GT_CATALOGUE, _GT_PRODUCTS, "300")["name"] == "Steam"
    assert find_record(_GT_CATALOGUE, _GT_PRODUCTS, "999") is None


def test_globetopper_detail_adds_default_request_attributes() -> None:
    product = normalize_globetopper_detail(
        {"topup_product_id": "7", "name": "X", "min": 10, "max": 100, "is_a_range": True}
    )

    ext = product.extensions.globetopper
    assert ext is not None
    assert [a.name for a in ext.attributes] == [
        "amount",
        "email",
        "first_name",
        "last_name",
        "notif_tele",
    ]


# ---------------------------------------------------------------------------
# DT-One
# ---------------------------------------------------------------------------

_DT_RANGED = {
    "id": 11,
    "name": "Airtel 10-1000",
    "type": "RANGED_VALUE_RECHARGE",
    "operator": {"id": 5, "name": "Airtel", "country": {"iso_code": "IND", "name": "India"}},
    "destination": {"amount": {"min": 10, "max": 1000}, "unit": "INR"},
    "source": {"amount": {"min": 0.2, "max": 12}, "unit": "USD"},
    "service": {"id": 1, "name": "Mobile"},
}

_DT_FIXED = {
    "id": "12",
    "name": "Vodafone 5 EUR",
    "operator": {"name": "Vodafone", "country": {"iso_code": "DEU"}},
    "destination": {"amount": 5, "unit": "EUR"},
    "prices": {"retail": {"amount": 5.5, "unit": "USD"}},
    "required_credit_party_identifier_fields": [["mobile_number"]],
    "service": {"name": "Top-up", "required_sender_fields": [["firstname", "lastname"]]},
}


def test_dtone_ranged_product_from_destination_range() -> None:
    product = normalize_dtone([_DT_RANGED])[0]

    assert product.external_id == "1002_11"
    assert product.raw_id == "11"
    # Land kommt aus operator.country
    assert product.country.iso2 == "IN"
    assert product.country.name == "India"
    assert product.currency.code == "INR"
    assert product.price_range.is_range is True
    assert (product.price_range.min, product.price_range.max) == (10, 1000)
    assert product.denominations_display == "10 - 1000 INR"
    assert product.category.id == 1001


def test_dtone_fixed_product_uses_flat_amount() -> None:
    product = normalize_dtone([_DT_FIXED])[0]

    assert product.price_range.is_range is False
    assert product.denominations == [5.0]
    assert product.denominations_display == "5 EUR"
    assert product.country.iso2 == "DE"
    assert product.country.name == "Germany"
    assert product.category.name == "Top-Up"

    ext = product.extensions.dtone
    assert ext is not None
    assert ext.retail_price == 5.5
    assert ext.retail_currency == "USD"
    assert ext.credit_party_type == "mobile_number"
    # Service-Ebene als Fallback für fehlende Produkt-Felder
    assert ext.required_sender_fields == [["firstname", "lastname"]]
    assert ext.service is None


def test_dtone_benefit_range_marks_product_ranged() -> None:
    product = normalize_dtone(
        [
            {
                "id": "13",
                "benefits": [{"amount": {"range": {"min": 1, "max": 50}}}],
                "source": {"amount": 3, "unit": "USD"},
            }
        ]
    )[0]

    assert product.price_range.is_range is True
    assert product.denominations_display == "1 - 50 USD"
    assert product.currency.code == "USD"


def test_dtone_detail_keeps_service_object() -> None:
    product = normalize_dtone_detail(_DT_FIXED)

    assert product.extensions.dtone is not None
    assert product.extensions.dtone.service is not None
    assert product.extensions.dtone.service["name"] == "Top-up"


def test_dtone_malformed_records_are_skipped() -> None:
    products = normalize_dtone([{"name": "without id"}, _DT_RANGED])
    assert [p.raw_id for p in products] == ["11"]


# ---------------------------------------------------------------------------
# PPN
# ---------------------------------------------------------------------------

_PPN_PAYLOAD = {
    "payLoad": [
        {
            "SkuCode": 101,
            "ProductName": "Claro 10",
            "Brand": "Claro",
            "CountryCode": "MX",
            "Currency": "MXN",
            "Category": "Topup",
            "FixedAmounts": [10, 20],
        },
        {"skuId": "102", "productName": "Telcel Open", "countryCode": "MX", "MinAmount": 10, "MaxAmount": 500},
        {"ProductName": "no code"},
    ]
}


def test_ppn_unwraps_envelope_and_skips_records_without_code() -> None:
    products = normalize_ppn(_PPN_PAYLOAD)
    assert [p.external_id for p in products] == ["1004_101", "1004_102"]


def test_ppn_fixed_amounts_are_not_ranged() -> None:
    product = normalize_ppn(_PPN_PAYLOAD)[0]

    assert product.price_range.is_range is False
    assert product.denominations == [10.0, 20.0]
    assert product.denominations_display == "10 MXN, 20 MXN"
    assert product.category.name == "Top-Up"
    assert product.category.id == 2001


def test_ppn_min_max_without_fixed_amounts_is_ranged() -> None:
    product = normalize_ppn(_PPN_PAYLOAD)[1]

    assert product.price_range.is_range is True
    assert product.currency.code == "MXN"
    assert product.brand == "Telcel Open"
    assert product.denominations_display == "10 - 500 MXN"


def test_ppn_field_precedence_first_present_alias_wins() -> None:
    products = normalize_ppn([{"SkuCode": "A", "skuId": "B", "ProductName": "P", "name": "N"}])
    assert products[0].raw_id == "A"
    assert products[0].product_name == "P"


def test_ppn_detail_pin_product() -> None:
    product = normalize_ppn_detail(
        {"SkuCode": "5", "ProductName": "Netflix", "Category": "Gift Card PIN", "MinAmount": 10, "MaxAmount": 10}
    )

    ext = product.extensions.ppn
    assert ext is not None
    assert ext.transaction_category == "pin"
    assert [a.name for a in ext.attributes] == ["accountNumber", "email"]


def test_ppn_detail_topup_product() -> None:
    product = normalize_ppn_detail(
        {"SkuCode": "6", "Category": "Mobile Topup", "MinAmount": 5, "MaxAmount": 50}
    )

    ext = product.extensions.ppn
    assert ext is not None
    assert ext.transaction_category == "rtr"
    assert [a.name for a in ext.attributes] == ["amount", "mobileNumber", "email"]


# ---------------------------------------------------------------------------
# Billers
# ---------------------------------------------------------------------------

_BILLERS = {
    "Data": [
        {
            "BillerID": 77,
            "BillerName": "DEWA",
            "CountryCode": "ARE",
            "BillerType": "Utility",
            "MinAmount": 10,
            "MaxAmount": 5000,
        },
        {"BillerID": "78", "BillerName": "Etisalat", "CountryCode": "ARE"},
        {"BillerName": "no id"},
    ]
}

_INPUT_FIELDS = [
    {"IOID": 1, "Name": "Account", "BillerID": 77},
    {"IOID": 1, "Name": "Account duplicate", "BillerID": 77},
    {"IOID": 2, "Name": "Other biller", "BillerID": 99},
    {"IOID": 3, "Name": "Shared"},
]


def test_billers_iso3_country_and_inferred_currency() -> None:
    products = normalize_billers(_BILLERS)

    assert [p.external_id for p in products] == ["1003_77", "1003_78"]
    dewa = products[0]
    assert dewa.country.iso2 == "AE"
    assert dewa.country.name == "United Arab Emirates"
    assert dewa.currency.code == "AED"
    assert dewa.category.name == "Utilities"
    assert dewa.category.id == 3001
    assert dewa.denominations_display == "10 - 5000 AED"
    assert dewa.price_range.is_range is True


def test_billers_without_amounts_show_variable_display() -> None:
    etisalat = normalize_billers(_BILLERS)[1]

    assert etisalat.denominations_display == "Variable (AED)"
    assert etisalat.category.name == "Bill Payment"
    assert etisalat.price_range.is_range is False


def test_select_input_fields_filters_by_biller_and_deduplicates() -> None:
    selected = select_input_fields(_INPUT_FIELDS, "77")
    assert [f["Name"] for f in selected] == ["Account", "Shared"]


def test_find_biller_requires_exact_id() -> None:
    assert find_biller(_BILLERS, "78")["BillerName"] == "Etisalat"
    assert find_biller(_BILLERS, "999") is None


def test_biller_detail_derives_range_over_skus() -> None:
    product = normalize_biller_detail(
        _BILLERS["Data"][0],
        [
            {"SKU": "S1", "Description": "Bill", "MinAmount": 10, "MaxAmount": 100},
            {"SKU": "S2", "Amount": 50},
            {"Description": "without code"},
        ],
        {"S1": _INPUT_FIELDS},
    )

    ext = product.extensions.billers
    assert ext is not None
    assert [s.sku for s in ext.skus] == ["S1", "S2"]
    assert len(ext.skus[0].input_fields) == 2
    assert ext.skus[1].input_fields == []
    assert (product.price_range.min, product.price_range.max) == (10, 100)
    assert product.denominations_display == "Bill AED, S2 AED"
    assert product.description == "DEWA"
