"""
Strict verification: is the storefront live and selling?

Sets the record's ``verified`` flag. A homepage that answers 200, shows none
of the platform's "store unavailable" pages and exposes a non-empty product
or collection feed is verified. The unavailable pages additionally flag the
store as ``inactive_shopify``. An unreachable homepage is no signal and
leaves the flag as it was.
"""
import logging
from typing import Optional

from storefront_radar.catalog.ops.fetcher import StorefrontFetcher
from storefront_radar.core.data_types import StrictVerification
from storefront_radar.core.results import Degraded, Ok, StepResult

logger = logging.getLogger(__name__)

INACTIVE_SHOPIFY_MARKERS = (
    "sorry, this store is currently unavailable",
    "this store is currently unavailable",
    "are you the store owner",
    "start a free trial",
    "reactivate your store",
    "forgot your store",
    "open a new shopify store",
    "explore other stores",
)


def find_inactive_marker(html: str) -> Optional[str]:
    lowered = (html or "").lower()
    for marker in INACTIVE_SHOPIFY_MARKERS:
        if marker in lowered:
            return marker
    return None


class StrictVerifier:
    def __init__(self, fetcher: StorefrontFetcher):
        self.fetcher = fetcher

    async def verify(self, canonical_url: str) -> StepResult:
        """
        Ok(StrictVerification) once the homepage answered, Degraded when it
        could not be reached at all.
        """
        home = await self.fetcher.fetch(canonical_url)
        if not home.is_ok:
            logger.info(f"{canonical_url}: strict verification got no answer ({home.reason})")
            return Degraded(f"homepage_unreachable:{home.reason}")
        if home.value.status != 200:
            return Ok(StrictVerification(verified=False, reason=f"homepage_http_{home.value.status}"))

        marker = find_inactive_marker(home.value.text)
        if marker:
            logger.info(f"{canonical_url}: inactive storefront page ({marker})")
            return Ok(StrictVerification(verified=False, inactive=True, reason=f"inactive_marker:{marker}"))

        products = await self.fetcher.fetch_json(canonical_url, "/products.json")
        if products.is_ok and isinstance(products.value, dict):
            items = products.value.get("products")
            if isinstance(items, list) and items:
                return Ok(StrictVerification(verified=True, product_count=len(items)))

        collections = await self.fetcher.fetch_json(canonical_url, "/collections.json")
        if collections.is_ok and isinstance(collections.value, dict):
            items = collections.value.get("collections")
            if isinstance(items, list) and items:
                return Ok(StrictVerification(verified=True, product_count=None))

        return Ok(StrictVerification(verified=False, reason="empty_catalog", product_count=0))
