"""
Unit tests for URL canonicalization.
"""
import pytest

from storefront_radar.catalog.canonicalizer import (
    are_equivalent,
    canonicalize,
    extract_host,
    is_platform_subdomain,
)


@pytest.mark.parametrize("raw, expected", [
    ("http://www.store-x.example/products/1?ref=ads", "https://store-x.example"),
    ("https://Store-X.Example/", "https://store-x.example"),
    ("store-x.example", "https://store-x.example"),
    ("//store-x.example/collections/all", "https://store-x.example"),
    ("  https://store-x.example#top  ", "https://store-x.example"),
    ("https://store-x.example:443/x", "https://store-x.example"),
    ("https://store-x.example:8443/x", "https://store-x.example:8443"),
    ("https://store-x.example./", "https://store-x.example"),
])
def test_canonical_forms(raw, expected):
    assert canonicalize(raw) == expected


def test_www_kept_on_hosted_subdomain():
    assert canonicalize("http://www.cool-shirts.myshopify.com/cart") == "https://www.cool-shirts.myshopify.com"
    assert canonicalize("cool-shirts.myshopify.com") == "https://cool-shirts.myshopify.com"


@pytest.mark.parametrize("raw", [
    None,
    "",
    "   ",
    "ftp://store-x.example",
    "javascript://alert(1)",
    "not a url",
    "https://",
    "https://nodot/",
    "https://bad_host.example",
])
def test_malformed_input_is_none(raw):
    assert canonicalize(raw) is None


@pytest.mark.parametrize("raw", [
    "http://www.store-x.example/products/1?ref=ads",
    "shop.example.co.uk/path",
    "https://www.brand.myshopify.com",
    "http://localhost:8080/",
])
def test_idempotent(raw):
    once = canonicalize(raw)
    assert once is not None
    assert canonicalize(once) == once


def test_equivalence_is_canonical_equality():
    assert are_equivalent("http://www.a.example/x", "https://A.example?y=1")
    assert not are_equivalent("https://a.example", "https://b.example")
    assert not are_equivalent("not a url", "not a url")


def test_host_helpers():
    assert extract_host("https://shop.example:8443") == "shop.example"
    assert is_platform_subdomain("brand.myshopify.com")
    assert not is_platform_subdomain("myshopify.com.evil.example")
