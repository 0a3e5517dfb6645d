# src/aggregator/domain/product_codes.py
"""
Produkt-Codes: bidirektionales Mapping zwischen externen Produkt-IDs und
(Provider, raw_id).

    Extern:  {providerCode}_{rawId}   z.B. 1004_1372
    Intern:  {providerName}_{rawId}   z.B. ppn_1372 (GlobeTopper ohne Präfix)

Die Code-Tabelle ist append-only: neue Provider bekommen einen neuen Code,
bestehende Codes werden nie umvergeben.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from aggregator.domain.models import Provider

DEFAULT_PROVIDER = Provider.GLOBETOPPER

PROVIDER_CODES: dict[Provider, str] = {
    Provider.GLOBETOPPER: "1001",
    Provider.DTONE: "1002",
    Provider.BILLERS: "1003",
    Provider.PPN: "1004",
}

CODE_TO_PROVIDER: dict[str, Provider] = {code: p for p, code in PROVIDER_CODES.items()}

# Alte Präfixe vor der Umstellung auf numerische Codes (Abwärtskompatibilität)
LEGACY_PREFIXES: dict[str, Provider] = {
    "dtone": Provider.DTONE,
    "billers": Provider.BILLERS,
    "ppn": Provider.PPN,
}


class DecodeKind(StrEnum):
    CODED = "coded"
    LEGACY = "legacy"
    DEFAULT_GUESS = "default_guess"


@dataclass(frozen=True)
class DecodedProductId:
    provider: Provider
    raw_id: str
    internal_id: str
    kind: DecodeKind

    @property
    def is_guess(self) -> bool:
        """True, wenn kein Präfix erkannt wurde und der Default-Provider angenommen wird."""
        return self.kind is DecodeKind.DEFAULT_GUESS


def _split_prefix(product_id: str) -> tuple[str, str] | None:
    prefix, sep, rest = product_id.partition("_")
    if not sep or not prefix:
        return None
    return prefix, rest


def internal_id_for(provider: Provider, raw_id: str) -> str:
    # GlobeTopper nutzt intern die ID ohne Präfix
    if provider is DEFAULT_PROVIDER:
        return raw_id
    return f"{provider.value}_{raw_id}"


def encode_product_id(product_id: str | int, provider: Provider | None = None) -> str:
    """
    Kodiert eine raw- oder Alt-ID in die externe Form. Idempotent.

        'ppn_1372'              -> '1004_1372'
        '1004_1372'             -> '1004_1372'  (kein doppeltes Kodieren)
        '12345'                 -> '1001_12345' (ohne Präfix: Default-Provider)
        ('5000', Provider.DTONE) -> '1002_5000'
    """
    id_str = str(product_id)
    if not id_str:
        return id_str

    split = _split_prefix(id_str)
    if split is not None:
        prefix, rest = split
        if prefix in CODE_TO_PROVIDER:
            return id_str
        if prefix in LEGACY_PREFIXES:
            return f"{PROVIDER_CODES[LEGACY_PREFIXES[prefix]]}_{rest}"

    return f"{PROVIDER_CODES[provider or DEFAULT_PROVIDER]}_{id_str}"


def decode_product_id(product_id: str | int | None) -> DecodedProductId:
    """
    Umkehrung von encode_product_id. Wirft nie: unbekannte, leere oder
    präfixlose IDs werden als Default-Provider interpretiert und laufen
    downstream einfach ins Leere.
    """
    id_str = "" if product_id is None else str(product_id)

    split = _split_prefix(id_str)
    if split is not None:
        prefix, rest = split
        if prefix in CODE_TO_PROVIDER:
            provider = CODE_TO_PROVIDER[prefix]
            return DecodedProductId(
                provider=provider,
                raw_id=rest,
                internal_id=internal_id_for(provider, rest),
                kind=DecodeKind.CODED,
            )
        if prefix in LEGACY_PREFIXES:
            return DecodedProductId(
                provider=LEGACY_PREFIXES[prefix],
                raw_id=rest,
                internal_id=id_str,
                kind=DecodeKind.LEGACY,
            )

    return DecodedProductId(
        provider=DEFAULT_PROVIDER,
        raw_id=id_str,
        internal_id=id_str,
        kind=DecodeKind.DEFAULT_GUESS,
    )


def is_legacy_id(product_id: str) -> bool:
    split = _split_prefix(product_id)
    return split is not None and split[0] in LEGACY_PREFIXES


def provider_code(provider: Provider) -> str:
    return PROVIDER_CODES[provider]
