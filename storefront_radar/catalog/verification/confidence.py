"""
Weighted platform confidence, used when re-verifying catalog records.

Unlike the ingestion verifier this looks at every fingerprint and sums
weights, which is what lets a ``probable`` record climb to ``confirmed`` (or
an ``unlikely`` one to ``probable``) on a later pass.
"""
import logging

from storefront_radar.catalog.canonicalizer import extract_host
from storefront_radar.catalog.ops.fetcher import StorefrontFetcher
from storefront_radar.catalog.verification.platform_verifier import (
    SHOP_ID_HEADER,
    html_references_cdn,
    is_cart_payload,
    is_storefront_subdomain,
)
from storefront_radar.core.data_types import VerificationVerdict
from storefront_radar.core.models import ShopifyStatus

logger = logging.getLogger(__name__)

WEIGHTS = {
    "cart_js": 0.4,
    "cart_js_json": 0.3,  # JSON answer without a cart shape
    "shop_id_header": 0.3,
    "products_json": 0.2,
    "cdn_assets": 0.15,
    "hosted_subdomain": 0.1,
}

CONFIRMED_THRESHOLD = 0.6
PROBABLE_THRESHOLD = 0.4


def tier_for(confidence: float) -> ShopifyStatus:
    if confidence >= CONFIRMED_THRESHOLD:
        return ShopifyStatus.CONFIRMED
    if confidence >= PROBABLE_THRESHOLD:
        return ShopifyStatus.PROBABLE
    if confidence > 0.0:
        return ShopifyStatus.UNLIKELY
    return ShopifyStatus.UNVERIFIED


class ConfidenceScorer:
    def __init__(self, fetcher: StorefrontFetcher):
        self.fetcher = fetcher

    async def score(self, canonical_url: str) -> VerificationVerdict:
        try:
            return await self._score(canonical_url)
        except Exception as e:
            logger.warning(f"Confidence scoring failed for {canonical_url}: {e}", exc_info=True)
            return VerificationVerdict(status=ShopifyStatus.UNVERIFIED, confidence=0, fingerprints={})

    async def _score(self, canonical_url: str) -> VerificationVerdict:
        signals = {name: False for name in WEIGHTS}

        cart = await self.fetcher.fetch(canonical_url, "/cart.js")
        if cart.is_ok and cart.value.status == 200:
            if is_cart_payload(cart.value):
                signals["cart_js"] = True
            elif cart.value.json_body() is not None:
                signals["cart_js_json"] = True

        root = await self.fetcher.fetch(canonical_url)
        if root.is_ok:
            signals["shop_id_header"] = SHOP_ID_HEADER in root.value.headers
            signals["cdn_assets"] = root.value.status < 500 and html_references_cdn(root.value.text)

        products = await self.fetcher.fetch_json(canonical_url, "/products.json")
        signals["products_json"] = (
            products.is_ok and isinstance(products.value, dict) and isinstance(products.value.get("products"), list)
        )
        signals["hosted_subdomain"] = is_storefront_subdomain(extract_host(canonical_url))

        confidence = min(1.0, sum(WEIGHTS[name] for name, hit in signals.items() if hit))
        status = tier_for(confidence)
        logger.debug(f"{canonical_url}: weighted confidence {confidence:.2f} -> {status.value}")
        return VerificationVerdict(
            status=status,
            confidence=int(round(confidence * 100)),
            fingerprints=signals,
        )
