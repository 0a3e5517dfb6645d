# src/aggregator/normalizers/reference.py
"""
Statische Referenzdaten für die Normalisierung: Länder (ISO2/ISO3, Name,
Währung), Multi-Country-Pseudo-Codes und die kanonischen Kategorienamen.
"""

from __future__ import annotations

import re

from aggregator.domain.models import Country

# ISO2 -> (ISO3, Name, Währung)
COUNTRIES: dict[str, tuple[str, str, str]] = {
    "US": ("USA", "United States", "USD"),
    "GB": ("GBR", "United Kingdom", "GBP"),
    "CA": ("CAN", "Canada", "CAD"),
    "AU": ("AUS", "Australia", "AUD"),
    "IN": ("IND", "India", "INR"),
    "AE": ("ARE", "United Arab Emirates", "AED"),
    "SA": ("SAU", "Saudi Arabia", "SAR"),
    "MX": ("MEX", "Mexico", "MXN"),
    "BR": ("BRA", "Brazil", "BRL"),
    "NG": ("NGA", "Nigeria", "NGN"),
    "KE": ("KEN", "Kenya", "KES"),
    "GH": ("GHA", "Ghana", "GHS"),
    "ZA": ("ZAF", "South Africa", "ZAR"),
    "EG": ("EGY", "Egypt", "EGP"),
    "PH": ("PHL", "Philippines", "PHP"),
    "PK": ("PAK", "Pakistan", "PKR"),
    "BD": ("BGD", "Bangladesh", "BDT"),
    "ID": ("IDN", "Indonesia", "IDR"),
    "MY": ("MYS", "Malaysia", "MYR"),
    "TH": ("THA", "Thailand", "THB"),
    "VN": ("VNM", "Vietnam", "VND"),
    "CO": ("COL", "Colombia", "COP"),
    "AR": ("ARG", "Argentina", "ARS"),
    "CL": ("CHL", "Chile", "CLP"),
    "PE": ("PER", "Peru", "PEN"),
    "TR": ("TUR", "Turkey", "TRY"),
    "JP": ("JPN", "Japan", "JPY"),
    "KR": ("KOR", "South Korea", "KRW"),
    "CN": ("CHN", "China", "CNY"),
    "SG": ("SGP", "Singapore", "SGD"),
    "HK": ("HKG", "Hong Kong", "HKD"),
    "TW": ("TWN", "Taiwan", "TWD"),
    "NZ": ("NZL", "New Zealand", "NZD"),
    "SE": ("SWE", "Sweden", "SEK"),
    "NO": ("NOR", "Norway", "NOK"),
    "DK": ("DNK", "Denmark", "DKK"),
    "CH": ("CHE", "Switzerland", "CHF"),
    "DE": ("DEU", "Germany", "EUR"),
    "FR": ("FRA", "France", "EUR"),
    "IT": ("ITA", "Italy", "EUR"),
    "ES": ("ESP", "Spain", "EUR"),
    "NL": ("NLD", "Netherlands", "EUR"),
    "PT": ("PRT", "Portugal", "EUR"),
    "BE": ("BEL", "Belgium", "EUR"),
    "AT": ("AUT", "Austria", "EUR"),
    "IE": ("IRL", "Ireland", "EUR"),
    "FI": ("FIN", "Finland", "EUR"),
    "GR": ("GRC", "Greece", "EUR"),
    "JO": ("JOR", "Jordan", "JOD"),
    "KW": ("KWT", "Kuwait", "KWD"),
    "BH": ("BHR", "Bahrain", "BHD"),
    "QA": ("QAT", "Qatar", "QAR"),
    "OM": ("OMN", "Oman", "OMR"),
    "LB": ("LBN", "Lebanon", "LBP"),
    "IQ": ("IRQ", "Iraq", "IQD"),
    "TZ": ("TZA", "Tanzania", "TZS"),
    "UG": ("UGA", "Uganda", "UGX"),
    "RW": ("RWA", "Rwanda", "RWF"),
    "ET": ("ETH", "Ethiopia", "ETB"),
    "CM": ("CMR", "Cameroon", "XAF"),
    "SN": ("SEN", "Senegal", "XOF"),
    "MM": ("MMR", "Myanmar", "MMK"),
    "CI": ("CIV", "Côte d'Ivoire", "XOF"),
    "ML": ("MLI", "Mali", "XOF"),
    "BF": ("BFA", "Burkina Faso", "XOF"),
    "NE": ("NER", "Niger", "XOF"),
    "TG": ("TGO", "Togo", "XOF"),
    "BJ": ("BEN", "Benin", "XOF"),
    "LK": ("LKA", "Sri Lanka", "LKR"),
    "NP": ("NPL", "Nepal", "NPR"),
    "KH": ("KHM", "Cambodia", "KHR"),
    "LA": ("LAO", "Laos", "LAK"),
    "GT": ("GTM", "Guatemala", "GTQ"),
    "HN": ("HND", "Honduras", "HNL"),
    "SV": ("SLV", "El Salvador", "USD"),
    "NI": ("NIC", "Nicaragua", "NIO"),
    "CR": ("CRI", "Costa Rica", "CRC"),
    "PA": ("PAN", "Panama", "PAB"),
    "DO": ("DOM", "Dominican Republic", "DOP"),
    "JM": ("JAM", "Jamaica", "JMD"),
    "TT": ("TTO", "Trinidad and Tobago", "TTD"),
    "HT": ("HTI", "Haiti", "HTG"),
}

ISO3_TO_ISO2: dict[str, str] = {iso3: iso2 for iso2, (iso3, _, _) in COUNTRIES.items()}

# Multi-Country-Pseudo-Codes -> (Code, Anzeigename, Währung)
PSEUDO_COUNTRIES: dict[str, tuple[str, str, str]] = {
    "WW": ("WW", "Worldwide", "USD"),
    "WWX": ("WW", "Worldwide", "USD"),
    "XX": ("XX", "Global", "USD"),
    "EU": ("EU", "Europe", "EUR"),
}


def to_iso2(code: str) -> str:
    """ISO3 und Pseudo-Codes auf die zweistellige Form abbilden; Unbekanntes bleibt unverändert."""
    key = code.strip().upper()
    if key in PSEUDO_COUNTRIES:
        return PSEUDO_COUNTRIES[key][0]
    if len(key) == 3 and key in ISO3_TO_ISO2:
        return ISO3_TO_ISO2[key]
    return key


def resolve_country(code: str, name: str = "") -> Country:
    key = code.strip().upper()
    if key in PSEUDO_COUNTRIES:
        iso2, pseudo_name, _ = PSEUDO_COUNTRIES[key]
        return Country(iso2=iso2, name=pseudo_name)

    iso2 = to_iso2(key)
    if not name and iso2 in COUNTRIES:
        name = COUNTRIES[iso2][1]
    return Country(iso2=iso2, name=name or iso2)


def currency_for_country(code: str) -> str:
    key = code.strip().upper()
    if key in PSEUDO_COUNTRIES:
        return PSEUDO_COUNTRIES[key][2]
    entry = COUNTRIES.get(to_iso2(key))
    return entry[2] if entry else ""


# ---------------------------------------------------------------------------
# Kategorien
# Key = kleingeschriebene, whitespace-normalisierte Variante, Value = Anzeigename
# ---------------------------------------------------------------------------

CATEGORY_ALIASES: dict[str, str] = {
    "esim": "eSIM",
    "gift cards": "Gift Card",
    "giftcard": "Gift Card",
    "giftcards": "Gift Card",
    "gift card": "Gift Card",
    "top-up": "Top-Up",
    "top up": "Top-Up",
    "topup": "Top-Up",
    "charity & donations": "Charity",
    "charity and donations": "Charity",
    "donation": "Charity",
    "donations": "Charity",
    "telecommunications": "Telecom",
    "telecoms & media": "Telecom",
    "telecoms and media": "Telecom",
    "transportation": "Transport",
    "utility": "Utilities",
    "electric utility": "Utilities",
    "water utility": "Utilities",
    "tv,utility": "Utilities",
    "tv, utility": "Utilities",
    "cable and internet": "Internet",
    "cable & internet": "Internet",
    "mobile postpaid": "Mobile",
}

_WHITESPACE = re.compile(r"\s+")


def canonical_category(raw_name: str | None) -> str:
    if not raw_name or not raw_name.strip():
        return "Other"
    trimmed = raw_name.strip()
    key = _WHITESPACE.sub(" ", trimmed.lower())
    return CATEGORY_ALIASES.get(key, trimmed)
