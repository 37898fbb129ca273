"""
Unit tests for the country detector.
"""
import pytest

from storefront_radar.catalog.classifiers.country import detect_country, from_url


def test_localization_metadata_wins(make_page):
    html = """
    <script>Shopify.shop = {"permanent_domain": "x.myshopify.com", "country_code": "DE"};</script>
    <p>Free shipping to the United States</p>
    """
    match = detect_country(make_page(html))
    assert match.country == "Germany"
    assert match.method == "localization"


def test_currency_meta_tag(make_page):
    html = '<html><head><meta property="product:price:currency" content="CAD"></head><body></body></html>'
    match = detect_country(make_page(html))
    assert match.country == "Canada"
    assert match.method == "currency"


def test_usd_defaults_to_united_states(make_page):
    html = "<html><body><span class='price'>$24.00</span></body></html>"
    assert detect_country(make_page(html)).country == "United States"


def test_usd_resolved_by_page_wording(make_page):
    html = "<html><body><span>$24.00</span><p>Family business from Panama</p></body></html>"
    assert detect_country(make_page(html)).country == "Panama"


def test_eur_without_country_wording_is_not_guessed(make_page):
    html = "<html><body><span>€24,00</span></body></html>"
    match = detect_country(make_page(html))
    assert match is None or match.method != "currency"


def test_eur_resolved_by_country_wording(make_page):
    html = "<html><body><span>€24,00</span><p>Handmade in Italia</p></body></html>"
    assert detect_country(make_page(html)).country == "Italy"


def test_language_attribute(make_page):
    match = detect_country(make_page('<html lang="ja"><body></body></html>'))
    assert match.country == "Japan"
    assert match.method == "language"


def test_regional_language_tag(make_page):
    assert detect_country(make_page('<html lang="en-GB"><body></body></html>')).country == "United Kingdom"
    assert detect_country(make_page('<html lang="pt-PT"><body></body></html>')).country == "Portugal"


def test_shipping_wording(make_page):
    match = detect_country(make_page("<html><body><p>We ship from Australia</p></body></html>"))
    assert match.country == "Australia"
    assert match.method == "shipping"


def test_phone_code(make_page):
    match = detect_country(make_page("<html><body><p>Call +44 20 7946 0958</p></body></html>"))
    assert match.country == "United Kingdom"
    assert match.method == "phone"


def test_north_american_number_without_us_wording_is_canada(make_page):
    assert detect_country(make_page("<p>Call +1 (416) 555 0100</p>")).country == "Canada"


def test_city_names(make_page):
    match = detect_country(make_page("<p>Our studio in Amsterdam</p>"))
    assert match.country == "Netherlands"
    assert match.method == "city"


@pytest.mark.parametrize("url, expected", [
    ("https://shop.example.co.uk", "United Kingdom"),
    ("https://shop.example.com.au", "Australia"),
    ("https://shop.example.de", "Germany"),
    ("https://shop.example.co", "Colombia"),
    ("https://uk.shop.example.com", "United Kingdom"),
    ("https://shop.example.com", None),
    ("https://brand.myshopify.com", None),
])
def test_url_method(url, expected):
    assert from_url(url) == expected


def test_url_fallback_on_page(make_page):
    match = detect_country(make_page("<html><body></body></html>", url="https://shop.example.fr"))
    assert match.country == "France"
    assert match.method == "url"


def test_nothing_found_is_none_not_random(make_page):
    page = make_page("<html><body><p>Hello</p></body></html>", url="https://shop.example.com")
    assert [detect_country(page) for _ in range(3)] == [None, None, None]


def test_bare_url_input():
    assert detect_country("https://shop.example.nl").country == "Netherlands"
