"""
Platform verifier: is this canonical URL a Shopify storefront?

An ordered short-circuit procedure, most reliable fingerprint first. The
first hit ends the procedure with ``confirmed``; running out of fingerprints
gives ``unlikely``. Each endpoint is fetched with its own timeout and every
non-match (4xx, 5xx, timeout, malformed body) simply moves on to the next
step. Nothing raises out of ``verify``.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from storefront_radar.catalog.canonicalizer import extract_host, is_platform_subdomain
from storefront_radar.catalog.ops.fetcher import StorefrontFetcher
from storefront_radar.core.cache import TTLCache
from storefront_radar.core.data_types import FetchedResponse, VerificationVerdict
from storefront_radar.core.models import ShopifyStatus
from storefront_radar.core.results import StepResult

logger = logging.getLogger(__name__)

CDN_DOMAIN = "cdn.shopify.com"
SHOP_ID_HEADER = "x-shopid"
CART_KEYS = ("items", "token", "total_price")

# Platform-owned subdomains that are not storefronts
EXCLUDED_SUBDOMAINS = frozenset({
    "admin", "partners", "help", "community", "developers", "apps", "checkout",
})

# (fingerprint, confidence) in procedure order
FINGERPRINT_CONFIDENCE: List[Tuple[str, int]] = [
    ("cart_js", 100),
    ("shop_id_header", 95),
    ("products_json", 90),
    ("collections_json", 90),
    ("search_suggest_json", 90),
    ("cdn_assets", 80),
    ("hosted_subdomain", 70),
]
FINGERPRINTS = [name for name, _ in FINGERPRINT_CONFIDENCE]


def is_cart_payload(response: FetchedResponse) -> bool:
    """/cart.js answered with a cart-shaped JSON object."""
    if response.status != 200:
        return False
    ctype = response.content_type
    if "json" not in ctype and "javascript" not in ctype:
        return False
    data = response.json_body()
    return isinstance(data, dict) and any(k in data for k in CART_KEYS)


def html_references_cdn(html: str) -> bool:
    """Platform CDN in inline markup or asset attributes."""
    if not html:
        return False
    # Attribute values are part of the raw markup, so one scan covers
    # <script src>, <link href> and inline references alike.
    return CDN_DOMAIN in html.lower()


def is_storefront_subdomain(host: str) -> bool:
    if not is_platform_subdomain(host):
        return False
    first_label = host.lower().split(".", 1)[0]
    return first_label not in EXCLUDED_SUBDOMAINS


class PlatformVerifier:
    """
    Runs the fingerprint procedure against one host.

    ``cache`` is an optional TTLCache handle; verdicts are memoized per
    canonical URL for the lifetime the owner chose.
    """

    def __init__(self, fetcher: StorefrontFetcher, cache: Optional[TTLCache] = None):
        self.fetcher = fetcher
        self.cache = cache

    async def verify(self, canonical_url: str) -> VerificationVerdict:
        cache_key = ("verdict", canonical_url)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        try:
            verdict = await self._run(canonical_url)
        except Exception as e:
            logger.warning(f"Verifier crashed on {canonical_url}, degrading to unlikely: {e}", exc_info=True)
            verdict = VerificationVerdict(
                status=ShopifyStatus.UNLIKELY,
                confidence=0,
                fingerprints={name: False for name in FINGERPRINTS},
            )

        if self.cache is not None:
            self.cache.set(cache_key, verdict)
        return verdict

    async def _run(self, canonical_url: str) -> VerificationVerdict:
        fingerprints: Dict[str, bool] = {name: False for name in FINGERPRINTS}
        root: Dict[str, Optional[FetchedResponse]] = {}

        async def root_response() -> Optional[FetchedResponse]:
            # Root page is shared by the header and CDN steps
            if "response" not in root:
                result = await self.fetcher.fetch(canonical_url)
                root["response"] = result.value if result.is_ok else None
                if not result.is_ok:
                    logger.debug(f"{canonical_url}: root fetch gave no signal ({result})")
            return root["response"]

        async def cart_js() -> bool:
            result = await self.fetcher.fetch(canonical_url, "/cart.js")
            return result.is_ok and is_cart_payload(result.value)

        async def shop_id_header() -> bool:
            response = await root_response()
            return response is not None and SHOP_ID_HEADER in response.headers

        async def products_json() -> bool:
            return _has_list(await self.fetcher.fetch_json(canonical_url, "/products.json"), "products")

        async def collections_json() -> bool:
            return _has_list(await self.fetcher.fetch_json(canonical_url, "/collections.json"), "collections")

        async def search_suggest_json() -> bool:
            result = await self.fetcher.fetch_json(canonical_url, "/search/suggest.json", params={"q": "test"})
            return result.is_ok and isinstance(result.value, dict) and (
                "products" in result.value or "suggestions" in result.value
            )

        async def cdn_assets() -> bool:
            response = await root_response()
            return response is not None and response.status < 500 and html_references_cdn(response.text)

        async def hosted_subdomain() -> bool:
            return is_storefront_subdomain(extract_host(canonical_url))

        steps: Dict[str, Callable[[], Awaitable[bool]]] = {
            "cart_js": cart_js,
            "shop_id_header": shop_id_header,
            "products_json": products_json,
            "collections_json": collections_json,
            "search_suggest_json": search_suggest_json,
            "cdn_assets": cdn_assets,
            "hosted_subdomain": hosted_subdomain,
        }

        for name, confidence in FINGERPRINT_CONFIDENCE:
            if await steps[name]():
                fingerprints[name] = True
                logger.info(f"{canonical_url}: confirmed via {name}")
                return VerificationVerdict(
                    status=ShopifyStatus.CONFIRMED,
                    confidence=confidence,
                    fingerprints=fingerprints,
                    matched=name,
                )

        logger.info(f"{canonical_url}: no platform fingerprint matched")
        return VerificationVerdict(status=ShopifyStatus.UNLIKELY, confidence=0, fingerprints=fingerprints)


def _has_list(result: StepResult, key: str) -> bool:
    if not result.is_ok:
        return False
    data: Any = result.value
    return isinstance(data, dict) and isinstance(data.get(key), list)
