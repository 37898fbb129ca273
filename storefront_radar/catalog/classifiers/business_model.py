"""
Business-model scorer.

Scores every label independently from one homepage snapshot:

  - App/platform fingerprints carry the most weight; one match can dominate.
  - Keyword phrases contribute a little each, capped per category so keyword
    stuffing cannot win on its own.
  - Structural signals (variant elements, product cards, size tokens) add
    small bumps.

Each label is clamped to [0, 1]. If no label reaches LOW_CONFIDENCE every
label is reset to the same low value: an explicit "don't know", never a
forced guess. Identical HTML always yields identical scores.
"""
import logging
import re
from typing import Dict, List, Optional

from storefront_radar.catalog.canonicalizer import extract_host, is_platform_subdomain
from storefront_radar.catalog.classifiers.rules import RuleTable
from storefront_radar.core.data_types import BusinessModelScores, StorefrontPage
from storefront_radar.core.models import BusinessModel

logger = logging.getLogger(__name__)

LOW_CONFIDENCE = 0.3
UNKNOWN_SCORE = 0.25
PRIMARY_THRESHOLD = 0.3

# --- Print on demand ---
POD_APPS = RuleTable.from_phrases("pod_app", [
    "printify", "printful", "gelato", "spod", "customcat",
    "jetprint", "inkedjoy", "aop+", "aop easy print on demand",
    "printy6", "printy 6",
    "gooten", "teespring", "apliiq", "printaura",
    "textildruck", "contrado", "redbubble", "zazzle", "society6",
    "designbyhumans", "print on demand", "print-on-demand",
], weight=0.8)

POD_KEYWORDS = RuleTable.from_phrases("pod_keyword", [
    "made to order", "printed just for you", "production time",
    "custom printed", "made when you order", "printed on demand",
    "this product is made on demand", "no refunds on custom items",
    "made on demand", "custom items", "personalized items", "printed when ordered",
], weight=0.2)

POD_MOCKUPS = RuleTable.from_phrases("pod_image", [
    "mockup", "flat-lay", "blank model", "product mockup", "design mockup", "print preview",
], weight=0.1)

POD_SHIPPING = RuleTable.from_phrases("pod_shipping", [
    "production time: 3-5 days", "production time: 5-7 days",
    "production time: 7-10 days", "made to order: 3-5",
    "custom printing takes", "printing time",
], weight=0.15)

SIZE_TOKEN_RE = re.compile(r"\b(?:s|m|l|xl|2xl|3xl|4xl|5xl|6xl)\b")

# --- Dropshipping ---
DROPSHIPPING_APPS = RuleTable.from_phrases("dropship_app", [
    "oberlo", "dsers", "spocket", "zendrop", "cj dropshipping",
    "cjdropshipping", "ali reviews", "alireviews", "loox", "judge.me", "ryviu",
    "ali-express", "aliexpress",
], weight=0.6)

SHIPPING_CLUES = RuleTable.from_phrases("dropship_shipping", [
    "ships from overseas", "delivery: 7-15 business days", "delivery: 7–15 business days",
    "processing time", "ships from china", "ships from asia", "estimated delivery",
    "shipping from supplier", "international shipping",
    "tracking number will be provided", "ships from warehouse",
], weight=0.2)

GENERIC_WORDING = RuleTable.from_phrases("dropship_generic", [
    "high quality", "premium quality", "best seller", "hot sale", "limited stock", "wholesale price",
], weight=0.1)

POLICY_FLAGS = RuleTable.from_phrases("dropship_policy", [
    "supplier delays", "we are not responsible for customs",
    "multiple warehouse locations", "customs fees", "import duties", "third-party supplier",
], weight=0.15)

HOME_CURRENCIES = frozenset({"USD", "EUR", "GBP"})
CURRENCY_RES = (
    re.compile(r"[\"']currency[\"']\s*:\s*[\"']([A-Z]{3})[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]*currency[^>]*content=[\"']([A-Z]{3})[\"']", re.IGNORECASE),
    re.compile(r"currency[\"\s:=]+([A-Z]{3})\b", re.IGNORECASE),
)

# --- Branded ---
BRAND_WORDING = RuleTable.from_phrases("branded", [
    "about us", "our story", "our mission", "since 20",
    "established", "founded", "manufacturer", "made in",
    "quality guarantee", "lifetime warranty", "brand story",
], weight=0.15)

FOOTER_ADDRESS_RE = re.compile(
    r"\d+[^,\n]+\b(?:street|st|avenue|ave|road|rd|boulevard|blvd|drive|dr|lane|ln|way|circle|cir)\b",
    re.IGNORECASE,
)

# --- Marketplace ---
MARKETPLACE_WORDING = RuleTable.from_phrases("marketplace", [
    "multiple sellers", "sell on our platform", "become a seller",
    "become a vendor", "seller dashboard", "marketplace",
], weight=0.3)


def extract_currency(html: str) -> Optional[str]:
    for pattern in CURRENCY_RES:
        match = pattern.search(html)
        if match:
            return match.group(1).upper()
    return None


def unknown_scores(reason: str = "no_signal") -> BusinessModelScores:
    return BusinessModelScores(
        scores={label: UNKNOWN_SCORE for label in BusinessModel},
        primary=None,
        confidence=UNKNOWN_SCORE,
        signals={"unknown": [reason]},
    )


def _app_found(table: RuleTable, page: StorefrontPage) -> Optional[str]:
    """First app fingerprint anywhere in the raw markup (script bodies and asset URLs included)."""
    rule = table.first_match(page.html_lower)
    return rule.label if rule else None


def score_business_model(page: StorefrontPage) -> BusinessModelScores:
    text = page.html_lower
    soup = page.soup
    signals: Dict[str, List[str]] = {"pod": [], "dropshipping": [], "branded": [], "marketplace": []}

    host = extract_host(page.url) if "://" in page.url else page.url
    if is_platform_subdomain(host):
        signals["pod"].append("myshopify-domain")
        signals["dropshipping"].append("myshopify-domain")

    # Print on demand
    pod = 0.0
    app = _app_found(POD_APPS, page)
    if app:
        pod += 0.8
        signals["pod"].append(f"app:{app}")
    keywords = POD_KEYWORDS.score(text, max_hits=2)
    pod += keywords.score
    signals["pod"].extend(keywords.signals)

    variant_count = (
        len(soup.select("[data-variant-id]"))
        or len(soup.select(".product-variant"))
        or len(soup.select(".variant-selector"))
        or len(soup.select("[data-option]"))
    )
    if variant_count > 10:
        pod += 0.15
        signals["pod"].append(f"many-variants:{variant_count}")
    if len(SIZE_TOKEN_RE.findall(text)) > 5:
        pod += 0.1
        signals["pod"].append("size-based-skus")
    for table in (POD_MOCKUPS, POD_SHIPPING):
        hit = table.score(text, max_hits=1)
        pod += hit.score
        signals["pod"].extend(hit.signals)
    pod = min(1.0, pod)

    # Dropshipping
    drop = 0.0
    currency = extract_currency(page.html)
    if currency and currency not in HOME_CURRENCIES:
        drop += 0.1
        signals["dropshipping"].append(f"currency:{currency}")
    app = _app_found(DROPSHIPPING_APPS, page)
    if app:
        drop += 0.6
        signals["dropshipping"].append(f"app:{app}")
    for table in (SHIPPING_CLUES, GENERIC_WORDING, POLICY_FLAGS):
        hit = table.score(text, max_hits=2)
        drop += hit.score
        signals["dropshipping"].extend(hit.signals)
    product_count = len(soup.select(".product-item, .product-card, [data-product-id]"))
    if product_count > 50:
        drop += 0.15
        signals["dropshipping"].append(f"many-products:{product_count}")
    drop = min(1.0, drop)

    # Branded
    branded = 0.0
    footer = soup.find("footer")
    if footer is not None and FOOTER_ADDRESS_RE.search(footer.get_text(" ")):
        branded += 0.2
        signals["branded"].append("footer-address")
    brand = BRAND_WORDING.score(text, cap=0.6)
    branded += brand.score
    signals["branded"].extend(brand.signals)
    # Boost needs at least one brand signal of its own
    if branded > 0 and pod < 0.3 and drop < 0.3:
        branded = min(0.7, branded + 0.4)
        signals["branded"].append("no-pod-or-dropship-evidence")
    branded = min(1.0, branded)

    # Marketplace
    market = MARKETPLACE_WORDING.score(text, cap=0.6)
    signals["marketplace"].extend(market.signals)

    scores = {
        BusinessModel.PRINT_ON_DEMAND: round(pod, 4),
        BusinessModel.DROPSHIPPING: round(drop, 4),
        BusinessModel.BRANDED_ECOMMERCE: round(branded, 4),
        BusinessModel.MARKETPLACE: round(min(1.0, market.score), 4),
    }

    if max(scores.values()) < LOW_CONFIDENCE:
        result = unknown_scores("low_confidence")
        result.signals.update({k: v for k, v in signals.items() if v})
        return result

    primary = _strict_leader(scores)
    confidence = max(scores.values())
    return BusinessModelScores(scores=scores, primary=primary, confidence=confidence, signals=signals)


def _strict_leader(scores: Dict[BusinessModel, float]) -> Optional[BusinessModel]:
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    top_label, top_score = ranked[0]
    if top_score <= PRIMARY_THRESHOLD:
        return None
    if len(ranked) > 1 and ranked[1][1] == top_score:
        return None  # tie: no single leader
    return top_label
