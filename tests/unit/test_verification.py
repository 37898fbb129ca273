"""
Unit tests for platform verification, weighted confidence, strict
verification and the health probe. HTTP is stubbed at the fetcher.
"""
import pytest
from unittest.mock import AsyncMock

from storefront_radar.catalog.verification import (
    ConfidenceScorer,
    HealthProber,
    PlatformVerifier,
    StrictVerifier,
)
from storefront_radar.catalog.verification.confidence import tier_for
from storefront_radar.catalog.verification.health import classify_response, looks_password_protected
from storefront_radar.catalog.verification.strict import find_inactive_marker
from storefront_radar.core.cache import TTLCache
from storefront_radar.core.models import HealthStatus, ShopifyStatus
from storefront_radar.core.results import Degraded

URL = "https://store-x.example"


# --- Platform verifier ---

@pytest.mark.asyncio
async def test_cart_js_short_circuits_to_confirmed(stub_fetcher, response):
    fetcher = stub_fetcher({
        f"{URL}/cart.js": response(json_body={"items": [], "token": "abc"}),
        URL: "timeout",
        f"{URL}/products.json": "timeout",
    })
    verdict = await PlatformVerifier(fetcher).verify(URL)

    assert verdict.status == ShopifyStatus.CONFIRMED
    assert verdict.confidence == 100
    assert verdict.matched == "cart_js"
    assert verdict.fingerprints["cart_js"] is True
    # Nothing after the first hit is requested
    assert not fetcher.requested(f"{URL}/products.json")


@pytest.mark.asyncio
async def test_all_endpoints_404_is_unlikely(stub_fetcher):
    verdict = await PlatformVerifier(stub_fetcher()).verify(URL)
    assert verdict.status == ShopifyStatus.UNLIKELY
    assert verdict.confidence == 0
    assert not any(verdict.fingerprints.values())


@pytest.mark.asyncio
async def test_hosted_subdomain_is_last_resort(stub_fetcher):
    verdict = await PlatformVerifier(stub_fetcher()).verify("https://cool-shirts.myshopify.com")
    assert verdict.status == ShopifyStatus.CONFIRMED
    assert verdict.matched == "hosted_subdomain"
    assert verdict.confidence == 70


@pytest.mark.asyncio
async def test_platform_owned_subdomain_is_not_a_store(stub_fetcher):
    verdict = await PlatformVerifier(stub_fetcher()).verify("https://admin.myshopify.com")
    assert verdict.status == ShopifyStatus.UNLIKELY


@pytest.mark.asyncio
async def test_shop_id_header(stub_fetcher, response):
    fetcher = stub_fetcher({URL: response(text="<html></html>", headers={"X-ShopId": "42"})})
    verdict = await PlatformVerifier(fetcher).verify(URL)
    assert verdict.matched == "shop_id_header"
    assert verdict.confidence == 95


@pytest.mark.asyncio
async def test_cdn_reference_in_html(stub_fetcher, response):
    html = '<link href="//cdn.shopify.com/s/files/1/0001/t/1/assets/theme.css">'
    verdict = await PlatformVerifier(stub_fetcher({URL: response(text=html)})).verify(URL)
    assert verdict.matched == "cdn_assets"


@pytest.mark.asyncio
async def test_html_cart_page_is_not_a_cart_payload(stub_fetcher, response):
    fetcher = stub_fetcher({f"{URL}/cart.js": response(text="<html>cart</html>")})
    verdict = await PlatformVerifier(fetcher).verify(URL)
    assert verdict.fingerprints["cart_js"] is False


@pytest.mark.asyncio
async def test_verdicts_are_cached_per_handle(stub_fetcher, response):
    fetcher = stub_fetcher({f"{URL}/cart.js": response(json_body={"items": []})})
    cache = TTLCache(ttl=60)
    verifier = PlatformVerifier(fetcher, cache=cache)

    first = await verifier.verify(URL)
    calls = len(fetcher.calls)
    second = await verifier.verify(URL)

    assert second is first
    assert len(fetcher.calls) == calls


@pytest.mark.asyncio
async def test_verifier_never_raises(stub_fetcher):
    fetcher = stub_fetcher()
    fetcher.fetch = AsyncMock(side_effect=RuntimeError("boom"))
    verdict = await PlatformVerifier(fetcher).verify(URL)
    assert verdict.status == ShopifyStatus.UNLIKELY


# --- Weighted confidence ---

@pytest.mark.parametrize("confidence, expected", [
    (0.0, ShopifyStatus.UNVERIFIED),
    (0.1, ShopifyStatus.UNLIKELY),
    (0.4, ShopifyStatus.PROBABLE),
    (0.55, ShopifyStatus.PROBABLE),
    (0.6, ShopifyStatus.CONFIRMED),
])
def test_tier_thresholds(confidence, expected):
    assert tier_for(confidence) == expected


@pytest.mark.asyncio
async def test_weighted_score_sums_fingerprints(stub_fetcher, response):
    fetcher = stub_fetcher({
        URL: response(text="<script src='//cdn.shopify.com/x.js'></script>"),
        f"{URL}/products.json": response(json_body={"products": []}),
        f"{URL}/cart.js": "timeout",
    })
    verdict = await ConfidenceScorer(fetcher).score(URL)
    # products 0.2 + cdn 0.15 stays below probable; the header lifts it to confirmed
    assert verdict.status == ShopifyStatus.UNLIKELY
    assert verdict.confidence == 35

    fetcher.routes[URL] = response(text="<script src='//cdn.shopify.com/x.js'></script>", headers={"x-shopid": "1"})
    verdict = await ConfidenceScorer(fetcher).score(URL)
    assert verdict.status == ShopifyStatus.CONFIRMED
    assert verdict.confidence == 65


@pytest.mark.asyncio
async def test_weighted_score_nothing_found(stub_fetcher):
    verdict = await ConfidenceScorer(stub_fetcher()).score(URL)
    assert verdict.status == ShopifyStatus.UNVERIFIED
    assert verdict.confidence == 0


# --- Strict verification ---

@pytest.mark.parametrize("html, expected", [
    ("<h1>Sorry, this store is currently unavailable.</h1>", "sorry, this store is currently unavailable"),
    ("<p>Reactivate your store</p>", "reactivate your store"),
    ("<html>New arrivals</html>", None),
    ("", None),
])
def test_find_inactive_marker(html, expected):
    assert find_inactive_marker(html) == expected


@pytest.mark.asyncio
async def test_strict_verification_with_products(stub_fetcher, response):
    fetcher = stub_fetcher({
        URL: response(text="<html>shop</html>"),
        f"{URL}/products.json": response(json_body={"products": [{"id": 1}, {"id": 2}]}),
    })
    result = await StrictVerifier(fetcher).verify(URL)
    assert result.value.verified is True
    assert result.value.product_count == 2


@pytest.mark.asyncio
async def test_strict_verification_inactive_marker(stub_fetcher, response):
    fetcher = stub_fetcher({URL: response(text="<h1>Sorry, this store is currently unavailable.</h1>")})
    result = await StrictVerifier(fetcher).verify(URL)
    assert result.value.verified is False
    assert result.value.inactive is True


@pytest.mark.asyncio
async def test_strict_verification_empty_catalog(stub_fetcher, response):
    fetcher = stub_fetcher({
        URL: response(text="<html>shop</html>"),
        f"{URL}/products.json": response(json_body={"products": []}),
    })
    result = await StrictVerifier(fetcher).verify(URL)
    assert result.value.verified is False
    assert result.value.inactive is False
    assert result.value.product_count == 0


@pytest.mark.asyncio
async def test_strict_verification_unreachable(stub_fetcher):
    result = await StrictVerifier(stub_fetcher({URL: "timeout"})).verify(URL)
    assert isinstance(result, Degraded)
    assert result.reason.startswith("homepage_unreachable")


# --- Health probe ---

def test_classify_response_statuses(response):
    assert classify_response(response(text="<html>Welcome</html>")).status == HealthStatus.HEALTHY
    assert classify_response(response(status=503)).status == HealthStatus.POSSIBLY_INACTIVE
    assert classify_response(response(text="This store does not exist.")).status == HealthStatus.NONEXISTENT
    assert classify_response(
        response(text="<p>Sorry, this store is currently unavailable.</p>")
    ).status == HealthStatus.POSSIBLY_INACTIVE
    assert classify_response(
        response(text="<form action='/password'><p>Enter store password</p></form>")
    ).status == HealthStatus.PASSWORD_PROTECTED


def test_password_form_with_store_content_is_not_a_wall():
    html = "<form action='/password'>protected area</form><a href='/products/tee'>Add to cart</a>"
    assert not looks_password_protected(html)
    assert looks_password_protected("<form action='/password'>this area is protected</form>")


@pytest.mark.asyncio
async def test_probe_network_failure_is_degraded(stub_fetcher):
    result = await HealthProber(stub_fetcher({URL: "timeout"})).probe(URL)
    assert isinstance(result, Degraded)
    assert not result.is_ok


@pytest.mark.asyncio
async def test_probe_healthy(stub_fetcher, response):
    result = await HealthProber(stub_fetcher({URL: response(text="<html>shop</html>")})).probe(URL)
    assert result.is_ok
    assert result.value.is_healthy
    assert result.value.http_status == 200
