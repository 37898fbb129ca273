"""
Reachability probe feeding ``health_status``.

Reads the homepage once. Pages with status < 500 are inspected for the
platform's password wall, "store does not exist" and "store unavailable"
pages; 5xx reads as possibly inactive. A network failure is no signal at all
and comes back as Degraded.
"""
import logging
import re

from storefront_radar.catalog.ops.fetcher import StorefrontFetcher
from storefront_radar.core.data_types import FetchedResponse, HealthProbe
from storefront_radar.core.models import HealthStatus
from storefront_radar.core.results import Degraded, Ok, StepResult

logger = logging.getLogger(__name__)

PASSWORD_INDICATORS = (
    "password is required",
    "enter store password",
    "password required",
    "this store is password protected",
    "storefront password",
)

NONEXISTENT_INDICATOR = "this store does not exist"

UNAVAILABLE_INDICATORS = (
    "sorry, this store is currently unavailable",
    "store is currently unavailable",
    "store unavailable",
    "check out shopify editions",
    "open a new shopify store",
)

# Platform marketing page served in place of a closed store
INACTIVE_TITLE_RE = re.compile(
    r"<title>[^<]*create an ecommerce website[^<]*ecommerce software by shopify[^<]*</title>",
    re.IGNORECASE,
)
PASSWORD_FORM_RE = re.compile(r"<form[^>]+action=[\"'][^\"']*password", re.IGNORECASE)
STORE_CONTENT_MARKERS = ("add to cart", "/products/", "product-card", "/collections/")


def looks_password_protected(html_lower: str) -> bool:
    if any(indicator in html_lower for indicator in PASSWORD_INDICATORS):
        return True
    has_form = PASSWORD_FORM_RE.search(html_lower) is not None
    has_store_content = any(marker in html_lower for marker in STORE_CONTENT_MARKERS)
    return has_form and "protected" in html_lower and not has_store_content


def classify_response(response: FetchedResponse) -> HealthProbe:
    """Health verdict for an already-fetched homepage response."""
    if response.status >= 500:
        return HealthProbe(HealthStatus.POSSIBLY_INACTIVE, f"http_{response.status}", response.status)

    html_lower = response.text.lower()
    if looks_password_protected(html_lower):
        return HealthProbe(HealthStatus.PASSWORD_PROTECTED, "password_page", response.status)
    if NONEXISTENT_INDICATOR in html_lower:
        return HealthProbe(HealthStatus.NONEXISTENT, NONEXISTENT_INDICATOR, response.status)
    for indicator in UNAVAILABLE_INDICATORS:
        if indicator in html_lower:
            return HealthProbe(HealthStatus.POSSIBLY_INACTIVE, indicator, response.status)
    if INACTIVE_TITLE_RE.search(response.text):
        return HealthProbe(HealthStatus.POSSIBLY_INACTIVE, "platform_marketing_page", response.status)
    return HealthProbe(HealthStatus.HEALTHY, "appears_active", response.status)


class HealthProber:
    def __init__(self, fetcher: StorefrontFetcher):
        self.fetcher = fetcher

    async def probe(self, canonical_url: str) -> StepResult:
        """Ok(HealthProbe), or Degraded when the store could not be reached."""
        result = await self.fetcher.fetch(canonical_url)
        if not result.is_ok:
            logger.info(f"{canonical_url}: health probe got no answer ({result.reason})")
            return Degraded(result.reason)
        probe = classify_response(result.value)
        logger.debug(f"{canonical_url}: health {probe.status.value} ({probe.reason})")
        return Ok(probe)
