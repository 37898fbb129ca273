"""
Country detector.

Ordered methods, highest trust first; the first confident match wins:

  1. platform localization metadata (shop country fields)
  2. currency markers (meta tags, JSON-LD, price symbols, strict currency keys)
  3. language / locale attributes
  4. shipping and country wording
  5. phone country codes
  6. city names
  7. the URL itself (country TLDs, country subdomains)

No match returns None: an unknown country stays unknown.
"""
import json
import logging
import re
from typing import Callable, Dict, List, Optional, Tuple, Union

from storefront_radar.catalog.canonicalizer import extract_host
from storefront_radar.catalog.classifiers.rules import Rule, RuleTable, word
from storefront_radar.core.data_types import CountryMatch, StorefrontPage

logger = logging.getLogger(__name__)

CODE_TO_COUNTRY: Dict[str, str] = {
    "US": "United States", "CA": "Canada", "GB": "United Kingdom", "UK": "United Kingdom",
    "AU": "Australia", "MX": "Mexico", "BR": "Brazil", "AR": "Argentina",
    "CL": "Chile", "CO": "Colombia", "PE": "Peru", "DE": "Germany",
    "FR": "France", "IT": "Italy", "ES": "Spain", "NL": "Netherlands",
    "IE": "Ireland", "BE": "Belgium", "CH": "Switzerland", "AT": "Austria",
    "SE": "Sweden", "NO": "Norway", "DK": "Denmark", "FI": "Finland",
    "PL": "Poland", "PT": "Portugal", "GR": "Greece", "CZ": "Czech Republic",
    "NZ": "New Zealand", "JP": "Japan", "KR": "South Korea", "CN": "China",
    "SG": "Singapore", "HK": "Hong Kong", "TW": "Taiwan",
    "MY": "Malaysia", "TH": "Thailand", "ID": "Indonesia", "PH": "Philippines",
    "VN": "Vietnam", "ZA": "South Africa", "EG": "Egypt", "IL": "Israel",
    "AE": "United Arab Emirates", "SA": "Saudi Arabia", "TR": "Turkey", "RU": "Russia",
    "EC": "Ecuador", "SV": "El Salvador", "PA": "Panama",
    "LU": "Luxembourg", "SI": "Slovenia", "CY": "Cyprus", "MT": "Malta",
    "SK": "Slovakia", "EE": "Estonia", "LV": "Latvia", "LT": "Lithuania",
    "MC": "Monaco", "SM": "San Marino", "VA": "Vatican City", "AD": "Andorra",
    "XK": "Kosovo", "ME": "Montenegro", "HU": "Hungary", "RO": "Romania",
    "BG": "Bulgaria", "HR": "Croatia", "IN": "India", "AL": "Albania",
    "BA": "Bosnia and Herzegovina", "BY": "Belarus", "MD": "Moldova",
    "MK": "North Macedonia", "RS": "Serbia", "UA": "Ukraine",
    "BO": "Bolivia", "PY": "Paraguay", "UY": "Uruguay", "GY": "Guyana", "SR": "Suriname",
    "CR": "Costa Rica", "CU": "Cuba", "DO": "Dominican Republic", "PR": "Puerto Rico",
    "JM": "Jamaica", "TT": "Trinidad and Tobago", "BS": "Bahamas", "BB": "Barbados",
    "BZ": "Belize", "GT": "Guatemala", "HT": "Haiti", "HN": "Honduras", "NI": "Nicaragua",
    "IS": "Iceland",
}

LOCALIZATION_RES = (
    re.compile(r"Shopify\.shop\s*=\s*{[\s\S]*?country_code[\"']?\s*:\s*[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"\"country_code\"\s*:\s*[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"\"country\"\s*:\s*[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"Shopify\.locale\s*=\s*{[\s\S]*?country[\"']?\s*:\s*[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"data-country[\"']?\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"countryCode[\"']?\s*:\s*[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"shopCountry[\"']?\s*:\s*[\"']([^\"']+)[\"']", re.IGNORECASE),
)

# Multi-country currencies map to None and are resolved from page wording
CURRENCY_TO_COUNTRY: Dict[str, Optional[str]] = {
    "usd": None, "eur": None,
    "cad": "Canada", "gbp": "United Kingdom", "aud": "Australia", "mxn": "Mexico",
    "brl": "Brazil", "ars": "Argentina", "clp": "Chile", "cop": "Colombia",
    "pen": "Peru", "nzd": "New Zealand", "sek": "Sweden", "nok": "Norway",
    "dkk": "Denmark", "chf": "Switzerland", "pln": "Poland", "czk": "Czech Republic",
    "huf": "Hungary", "ron": "Romania", "bgn": "Bulgaria", "hrk": "Croatia",
    "jpy": "Japan", "krw": "South Korea", "cny": "China", "sgd": "Singapore",
    "hkd": "Hong Kong", "twd": "Taiwan", "myr": "Malaysia", "thb": "Thailand",
    "idr": "Indonesia", "php": "Philippines", "vnd": "Vietnam", "zar": "South Africa",
    "egp": "Egypt", "ils": "Israel", "aed": "United Arab Emirates", "sar": "Saudi Arabia",
    "try": "Turkey", "rub": "Russia",
}

# Symbol followed by an amount; ¥ is read as yuan
PRICE_SYMBOLS: List[Tuple[str, str]] = [("$", "usd"), ("€", "eur"), ("£", "gbp"), ("¥", "cny")]

STRICT_CURRENCY_TEMPLATES = (
    "currency:{c}", "\"currency\":\"{c}\"", "currency_code\":\"{c}", "currencycode\":\"{c}",
    "data-currency=\"{c}\"", "currency-{c}", "currency_code\": \"{c}\"", "\"currencycode\": \"{c}\"",
    "'currency': '{c}'", "currency: '{c}'",
)

EUROPEAN_WORDING = RuleTable("eur_country", [
    Rule(phrase, category=country) for phrase, country in [
        ("germany", "Germany"), ("deutschland", "Germany"), ("france", "France"),
        ("italy", "Italy"), ("italia", "Italy"), ("spain", "Spain"), ("españa", "Spain"),
        ("netherlands", "Netherlands"), ("nederland", "Netherlands"),
        ("belgium", "Belgium"), ("belgië", "Belgium"), ("austria", "Austria"),
        ("österreich", "Austria"), ("finland", "Finland"), ("suomi", "Finland"),
        ("ireland", "Ireland"), ("éire", "Ireland"), ("portugal", "Portugal"),
        ("greece", "Greece"), ("ελλάδα", "Greece"), ("luxembourg", "Luxembourg"),
        ("slovenia", "Slovenia"), ("cyprus", "Cyprus"), ("malta", "Malta"),
        ("slovakia", "Slovakia"), ("estonia", "Estonia"), ("latvia", "Latvia"),
        ("lithuania", "Lithuania"), ("monaco", "Monaco"), ("san marino", "San Marino"),
        ("vatican", "Vatican City"), ("andorra", "Andorra"), ("kosovo", "Kosovo"),
        ("montenegro", "Montenegro"), ("croatia", "Croatia"),
    ]
])

USD_WORDING = RuleTable("usd_country", [
    Rule(word(phrase), category=country) for phrase, country in [
        ("united states", "United States"), ("usa", "United States"),
        ("ecuador", "Ecuador"), ("el salvador", "El Salvador"), ("panama", "Panama"),
        ("marshall islands", "Marshall Islands"), ("micronesia", "Micronesia"),
        ("palau", "Palau"), ("timor-leste", "Timor-Leste"), ("zimbabwe", "Zimbabwe"),
    ]
])

LANGUAGE_TO_COUNTRY: Dict[str, str] = {
    "en-us": "United States", "en-ca": "Canada", "en-gb": "United Kingdom",
    "en-au": "Australia", "en-nz": "New Zealand",
    "de": "Germany", "fr": "France", "it": "Italy", "es": "Spain", "nl": "Netherlands",
    "pt-pt": "Portugal", "pt": "Brazil", "ja": "Japan", "zh-tw": "Taiwan", "zh-cn": "China",
    "zh": "China", "ko": "South Korea", "th": "Thailand", "vi": "Vietnam", "id": "Indonesia",
    "ms": "Malaysia", "tl": "Philippines", "ar": "United Arab Emirates", "he": "Israel",
    "tr": "Turkey", "ru": "Russia", "pl": "Poland", "cs": "Czech Republic", "hu": "Hungary",
    "ro": "Romania", "bg": "Bulgaria", "hr": "Croatia", "sk": "Slovakia", "sl": "Slovenia",
    "et": "Estonia", "lv": "Latvia", "lt": "Lithuania", "fi": "Finland", "sv": "Sweden",
    "no": "Norway", "da": "Denmark", "is": "Iceland", "el": "Greece",
}
LANGUAGE_RE = re.compile(r"\b(?:lang|locale|language|data-lang)\s*=\s*[\"']([a-z]{2}(?:[-_][a-z]{2})?)[\"']")

SHIPPING_WORDING = RuleTable("shipping_country", [
    Rule(word(phrase), category=country) for phrase, country in [
        ("united states", "United States"), ("usa", "United States"),
        ("us shipping", "United States"), ("shipping to us", "United States"),
        ("ships from us", "United States"), ("based in us", "United States"),
        ("canada", "Canada"), ("canadian", "Canada"),
        ("united kingdom", "United Kingdom"), ("uk shipping", "United Kingdom"),
        ("shipping to uk", "United Kingdom"), ("ships from uk", "United Kingdom"),
        ("germany", "Germany"), ("german", "Germany"), ("france", "France"), ("french", "France"),
        ("italy", "Italy"), ("italian", "Italy"), ("spain", "Spain"), ("spanish", "Spain"),
        ("australia", "Australia"), ("australian", "Australia"),
        ("netherlands", "Netherlands"), ("dutch", "Netherlands"),
        ("ireland", "Ireland"), ("irish", "Ireland"), ("belgium", "Belgium"), ("belgian", "Belgium"),
        ("switzerland", "Switzerland"), ("swiss", "Switzerland"),
        ("sweden", "Sweden"), ("swedish", "Sweden"), ("norway", "Norway"), ("norwegian", "Norway"),
        ("denmark", "Denmark"), ("danish", "Denmark"), ("finland", "Finland"), ("finnish", "Finland"),
        ("poland", "Poland"), ("polish", "Poland"), ("portugal", "Portugal"), ("portuguese", "Portugal"),
        ("brazil", "Brazil"), ("brazilian", "Brazil"), ("mexico", "Mexico"), ("mexican", "Mexico"),
        ("argentina", "Argentina"), ("argentine", "Argentina"), ("chile", "Chile"), ("chilean", "Chile"),
        ("colombia", "Colombia"), ("colombian", "Colombia"), ("japan", "Japan"), ("japanese", "Japan"),
        ("china", "China"), ("chinese", "China"), ("south korea", "South Korea"), ("korean", "South Korea"),
        ("singapore", "Singapore"), ("hong kong", "Hong Kong"), ("taiwan", "Taiwan"),
        ("malaysia", "Malaysia"), ("thailand", "Thailand"), ("indonesia", "Indonesia"),
        ("philippines", "Philippines"), ("vietnam", "Vietnam"),
        ("united arab emirates", "United Arab Emirates"), ("uae", "United Arab Emirates"),
        ("saudi arabia", "Saudi Arabia"), ("israel", "Israel"), ("israeli", "Israel"),
        ("turkey", "Turkey"), ("turkish", "Turkey"), ("south africa", "South Africa"),
        ("new zealand", "New Zealand"), ("ecuador", "Ecuador"), ("el salvador", "El Salvador"),
        ("panama", "Panama"), ("india", "India"), ("indian", "India"),
    ]
])

# +1 is shared by the US and Canada and is resolved separately
PHONE_CODES: List[Tuple[str, str]] = [
    ("+44", "United Kingdom"), ("+49", "Germany"), ("+33", "France"), ("+39", "Italy"),
    ("+34", "Spain"), ("+61", "Australia"), ("+31", "Netherlands"), ("+353", "Ireland"),
    ("+32", "Belgium"), ("+41", "Switzerland"), ("+46", "Sweden"), ("+47", "Norway"),
    ("+45", "Denmark"), ("+358", "Finland"), ("+48", "Poland"), ("+351", "Portugal"),
    ("+55", "Brazil"), ("+52", "Mexico"), ("+54", "Argentina"), ("+56", "Chile"), ("+57", "Colombia"),
]
NANP_RE = re.compile(r"\+1[\s.\-(]*\d{3}")

CITY_WORDING = RuleTable("city", [
    Rule(word(city), category=country) for city, country in [
        ("new york", "United States"), ("california", "United States"), ("texas", "United States"),
        ("los angeles", "United States"), ("chicago", "United States"), ("miami", "United States"),
        ("toronto", "Canada"), ("vancouver", "Canada"), ("montreal", "Canada"),
        ("london", "United Kingdom"), ("manchester", "United Kingdom"),
        ("berlin", "Germany"), ("munich", "Germany"), ("hamburg", "Germany"),
        ("paris", "France"), ("lyon", "France"), ("rome", "Italy"), ("milan", "Italy"),
        ("madrid", "Spain"), ("barcelona", "Spain"), ("sydney", "Australia"), ("melbourne", "Australia"),
        ("amsterdam", "Netherlands"), ("rotterdam", "Netherlands"), ("dublin", "Ireland"),
        ("brussels", "Belgium"), ("zurich", "Switzerland"), ("geneva", "Switzerland"),
        ("stockholm", "Sweden"), ("gothenburg", "Sweden"), ("oslo", "Norway"),
        ("copenhagen", "Denmark"), ("helsinki", "Finland"), ("warsaw", "Poland"), ("krakow", "Poland"),
        ("lisbon", "Portugal"), ("porto", "Portugal"), ("sao paulo", "Brazil"),
        ("rio de janeiro", "Brazil"), ("mexico city", "Mexico"), ("buenos aires", "Argentina"),
        ("tokyo", "Japan"), ("osaka", "Japan"), ("seoul", "South Korea"),
        ("singapore", "Singapore"), ("hong kong", "Hong Kong"),
        ("mumbai", "India"), ("delhi", "India"), ("bangalore", "India"),
    ]
])

# Longest suffixes first; '.co' is handled by exact suffix match so '.com' never hits it
TLD_TO_COUNTRY: List[Tuple[str, str]] = [
    (".co.uk", "United Kingdom"), (".com.au", "Australia"), (".com.sg", "Singapore"),
    (".com.hk", "Hong Kong"), (".com.tw", "Taiwan"), (".com.my", "Malaysia"),
    (".co.za", "South Africa"), (".co.nz", "New Zealand"), (".co.jp", "Japan"),
    (".co.kr", "South Korea"), (".co.id", "Indonesia"), (".com.ph", "Philippines"),
    (".com.vn", "Vietnam"), (".com.br", "Brazil"), (".com.mx", "Mexico"),
    (".ae", "United Arab Emirates"), (".sa", "Saudi Arabia"), (".il", "Israel"), (".tr", "Turkey"),
    (".uk", "United Kingdom"), (".de", "Germany"), (".fr", "France"), (".it", "Italy"),
    (".es", "Spain"), (".nl", "Netherlands"), (".ca", "Canada"), (".au", "Australia"),
    (".mx", "Mexico"), (".br", "Brazil"), (".ie", "Ireland"), (".be", "Belgium"),
    (".ch", "Switzerland"), (".at", "Austria"), (".se", "Sweden"), (".no", "Norway"),
    (".dk", "Denmark"), (".fi", "Finland"), (".pl", "Poland"), (".pt", "Portugal"),
    (".gr", "Greece"), (".cz", "Czech Republic"), (".ar", "Argentina"), (".cl", "Chile"),
    (".co", "Colombia"), (".pe", "Peru"), (".jp", "Japan"), (".cn", "China"),
    (".kr", "South Korea"), (".sg", "Singapore"), (".hk", "Hong Kong"), (".tw", "Taiwan"),
    (".my", "Malaysia"), (".th", "Thailand"), (".id", "Indonesia"), (".ph", "Philippines"),
    (".vn", "Vietnam"), (".za", "South Africa"), (".nz", "New Zealand"), (".eg", "Egypt"),
    (".ru", "Russia"), (".ec", "Ecuador"), (".sv", "El Salvador"), (".pa", "Panama"),
    (".in", "India"), (".al", "Albania"), (".ba", "Bosnia and Herzegovina"), (".by", "Belarus"),
    (".md", "Moldova"), (".mk", "North Macedonia"), (".rs", "Serbia"), (".ua", "Ukraine"),
    (".bo", "Bolivia"), (".py", "Paraguay"), (".uy", "Uruguay"), (".gy", "Guyana"),
    (".sr", "Suriname"), (".cr", "Costa Rica"), (".cu", "Cuba"), (".do", "Dominican Republic"),
    (".pr", "Puerto Rico"), (".jm", "Jamaica"), (".tt", "Trinidad and Tobago"), (".bs", "Bahamas"),
    (".bb", "Barbados"), (".bz", "Belize"), (".gt", "Guatemala"), (".ht", "Haiti"),
    (".hn", "Honduras"), (".ni", "Nicaragua"),
]

SUBDOMAIN_TO_COUNTRY: Dict[str, str] = {
    "us": "United States", "uk": "United Kingdom", "ca": "Canada", "au": "Australia",
    "de": "Germany", "fr": "France", "it": "Italy", "es": "Spain", "nl": "Netherlands",
}


# ──── Methods ────

def from_localization(page: StorefrontPage) -> Optional[str]:
    for pattern in LOCALIZATION_RES:
        match = pattern.search(page.html)
        if match:
            country = CODE_TO_COUNTRY.get(match.group(1).strip().upper())
            if country:
                return country
    return None


def _currency_from_markup(page: StorefrontPage) -> Optional[str]:
    soup = page.soup
    meta = (
        soup.find("meta", attrs={"name": "currency"})
        or soup.find("meta", attrs={"property": "product:price:currency"})
    )
    if meta is not None and meta.get("content"):
        return meta["content"].strip().lower()

    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or "")
        except (TypeError, ValueError):
            continue
        for node in data if isinstance(data, list) else [data]:
            if not isinstance(node, dict):
                continue
            offers = node.get("offers")
            currency = node.get("priceCurrency") or (offers.get("priceCurrency") if isinstance(offers, dict) else None)
            if isinstance(currency, str) and currency.strip():
                return currency.strip().lower()

    body = soup.body.get_text(" ") if soup.body is not None else soup.get_text(" ")
    for symbol, currency in PRICE_SYMBOLS:
        if re.search(rf"{re.escape(symbol)}\s*\d", body):
            return currency
    return None


def _resolve_currency(currency: str, page: StorefrontPage) -> Optional[str]:
    if currency == "usd":
        rule = USD_WORDING.first_match(page.html_lower)
        return rule.category if rule else "United States"
    if currency == "eur":
        rule = EUROPEAN_WORDING.first_match(page.html_lower)
        return rule.category if rule else None
    return CURRENCY_TO_COUNTRY.get(currency)


def from_currency(page: StorefrontPage) -> Optional[str]:
    currency = _currency_from_markup(page)
    if currency and currency in CURRENCY_TO_COUNTRY:
        return _resolve_currency(currency, page)

    text = page.html_lower
    for code in CURRENCY_TO_COUNTRY:
        if any(template.format(c=code) in text for template in STRICT_CURRENCY_TEMPLATES):
            return _resolve_currency(code, page)
    return None


def from_language(page: StorefrontPage) -> Optional[str]:
    for match in LANGUAGE_RE.finditer(page.html_lower):
        tag = match.group(1).replace("_", "-")
        country = LANGUAGE_TO_COUNTRY.get(tag) or LANGUAGE_TO_COUNTRY.get(tag.split("-", 1)[0])
        if country:
            return country
    return None


def from_shipping_wording(page: StorefrontPage) -> Optional[str]:
    rule = SHIPPING_WORDING.first_match(page.html_lower)
    return rule.category if rule else None


def from_phone_codes(page: StorefrontPage) -> Optional[str]:
    text = page.html_lower
    # Longer codes first so +353 is not read as +35x
    for code, country in sorted(PHONE_CODES, key=lambda item: len(item[0]), reverse=True):
        if re.search(rf"{re.escape(code)}[\s.\-(]*\d", text):
            return country
    if NANP_RE.search(text):
        if USD_WORDING.first_match(text):
            return "United States"
        return "Canada"
    return None


def from_city_names(page: StorefrontPage) -> Optional[str]:
    rule = CITY_WORDING.first_match(page.html_lower)
    return rule.category if rule else None


def from_url(url: str) -> Optional[str]:
    host = extract_host(url) if "://" in url else url.lower()
    for suffix, country in TLD_TO_COUNTRY:
        if host.endswith(suffix):
            return country
    first_label = host.split(".", 1)[0]
    if host.count(".") >= 2 and first_label in SUBDOMAIN_TO_COUNTRY:
        return SUBDOMAIN_TO_COUNTRY[first_label]
    return None


METHODS: List[Tuple[str, Callable[[StorefrontPage], Optional[str]]]] = [
    ("localization", from_localization),
    ("currency", from_currency),
    ("language", from_language),
    ("shipping", from_shipping_wording),
    ("phone", from_phone_codes),
    ("city", from_city_names),
    ("url", lambda page: from_url(page.url)),
]


def detect_country(page: Union[StorefrontPage, str]) -> Optional[CountryMatch]:
    """
    Country for a homepage snapshot, or None when nothing matched.
    A bare URL string runs only the URL method.
    """
    if isinstance(page, str):
        country = from_url(page)
        return CountryMatch(country, "url") if country else None

    for method, fn in METHODS:
        country = fn(page)
        if country:
            logger.debug(f"{page.url}: country {country} via {method}")
            return CountryMatch(country=country, method=method)
    return None
