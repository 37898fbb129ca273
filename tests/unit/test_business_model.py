"""
Unit tests for the business-model scorer.
"""
from storefront_radar.catalog.classifiers.business_model import (
    UNKNOWN_SCORE,
    extract_currency,
    score_business_model,
)
from storefront_radar.core.models import BusinessModel


def test_printful_script_is_print_on_demand(make_page):
    html = """
    <html><head><script src="https://cdn.example/printful-embed.js"></script></head>
    <body><h1>Tees</h1></body></html>
    """
    page = make_page(html)
    result = score_business_model(page)

    assert result.primary == BusinessModel.PRINT_ON_DEMAND
    assert result.confidence >= 0.5
    assert "app:printful" in result.signals["pod"]


def test_scoring_is_deterministic(make_page):
    html = "<html><body><script>var x='printful';</script><p>made to order</p></body></html>"
    runs = [score_business_model(make_page(html)) for _ in range(5)]
    assert all(r.scores == runs[0].scores for r in runs)
    assert all(r.primary == runs[0].primary for r in runs)


def test_no_signals_gives_equal_low_scores(make_page):
    page = make_page("<html><head><title>Store X</title></head><body><p>Hello</p></body></html>")
    result = score_business_model(page)

    assert result.primary is None
    assert set(result.scores.values()) == {UNKNOWN_SCORE}
    assert set(result.scores) == set(BusinessModel)


def test_dropshipping_app_and_shipping_clues(make_page):
    html = """
    <html><body>
      <script src="https://apps.example/dsers/loader.js"></script>
      <p>Ships from China. Processing time 3 days. Estimated delivery 7-15 business days.</p>
    </body></html>
    """
    result = score_business_model(make_page(html))
    assert result.primary == BusinessModel.DROPSHIPPING
    assert result.scores[BusinessModel.DROPSHIPPING] >= 0.8


def test_brand_wording_gets_branded_boost(make_page):
    html = """
    <html><body>
      <section><h2>Our story</h2><p>Founded in Portland. Lifetime warranty on every bag.</p></section>
      <footer>Visit us at 120 Main Street, Portland</footer>
    </body></html>
    """
    result = score_business_model(make_page(html))
    assert result.primary == BusinessModel.BRANDED_ECOMMERCE
    assert result.scores[BusinessModel.BRANDED_ECOMMERCE] <= 0.7


def test_keyword_stuffing_is_capped(make_page):
    # Every POD keyword, no app fingerprint: keywords alone stay below an app match
    html = "<p>" + " ".join([
        "made to order", "printed just for you", "production time", "custom printed",
        "made when you order", "printed on demand", "made on demand",
    ]) + "</p>"
    result = score_business_model(make_page(html))
    assert result.scores[BusinessModel.PRINT_ON_DEMAND] < 0.8


def test_scores_stay_in_unit_interval(make_page):
    html = (
        "<script>printful printify dsers oberlo</script>"
        "<p>made to order custom printed ships from china processing time marketplace become a seller</p>"
        + "<div data-variant-id='1'></div>" * 12
        + "<div class='product-card'></div>" * 60
    )
    result = score_business_model(make_page(html))
    assert all(0.0 <= s <= 1.0 for s in result.scores.values())


def test_marketplace_wording_is_capped(make_page):
    html = "<p>marketplace, become a seller, multiple sellers, seller dashboard</p>"
    result = score_business_model(make_page(html))
    assert result.scores[BusinessModel.MARKETPLACE] == 0.6
    assert result.primary == BusinessModel.MARKETPLACE


def test_tie_has_no_primary(make_page):
    html = "<script>printful dsers</script><p>ships from china</p>"
    result = score_business_model(make_page(html))
    assert result.scores[BusinessModel.PRINT_ON_DEMAND] == result.scores[BusinessModel.DROPSHIPPING] == 0.8
    assert result.primary is None


def test_extract_currency():
    assert extract_currency('{"currency":"CAD"}') == "CAD"
    assert extract_currency('<meta property="og:price:currency" content="eur">') == "EUR"
    assert extract_currency("<p>no money here</p>") is None
