"""
Unit tests for the theme detector.
"""
from storefront_radar.catalog.classifiers.theme import detect_theme, match_theme_name
from storefront_radar.core.models import ThemeTier


def test_meta_payload_theme(make_page):
    match = detect_theme(make_page(meta={"theme": {"name": "Dawn", "id": 1}}))
    assert match.name == "Dawn"
    assert match.tier == ThemeTier.FREE
    assert match.method == "meta"


def test_inline_shopify_theme_object(make_page):
    html = """
    <html><head><script>
      Shopify.theme = {"name":"Impulse","id":123456,"role":"main"};
    </script></head><body></body></html>
    """
    match = detect_theme(make_page(html))
    assert match.name == "Impulse"
    assert match.tier == ThemeTier.PAID
    assert match.method == "script"


def test_unquoted_theme_object_falls_back_to_regex(make_page):
    html = "<script>Shopify.theme = {name: 'Prestige', id: 9};</script>"
    assert detect_theme(make_page(html)).name == "Prestige"


def test_theme_asset_path(make_page):
    html = '<link rel="stylesheet" href="//cdn.example/s/files/1/themes/palo-alto/assets/theme.css">'
    match = detect_theme(make_page(html))
    assert match.name == "Palo Alto"
    assert match.tier == ThemeTier.PAID
    assert match.method == "asset_path"


def test_data_theme_attribute(make_page):
    html = '<body data-theme="warehouse"><div class="header"></div></body>'
    match = detect_theme(make_page(html))
    assert match.name == "Warehouse"
    assert match.method == "attribute"


def test_generic_css_classes_do_not_count(make_page):
    html = '<body><ul class="simple-list flow-root"><li class="minimal">x</li></ul></body>'
    assert detect_theme(make_page(html)) is None


def test_liquid_comment(make_page):
    html = "<html>{% comment %} Theme: Debut v17 {% endcomment %}<body></body></html>"
    match = detect_theme(make_page(html))
    assert match.name == "Debut"
    assert match.method == "liquid_comment"


def test_whole_token_matching():
    assert match_theme_name("supplyroom") is None
    assert match_theme_name("theme-supply") == "supply"
    assert match_theme_name("palo-alto") == "palo alto"
    assert match_theme_name("palo_alto") == "palo alto"
    assert match_theme_name("Palo Alto") == "palo alto"
    assert match_theme_name("dawnlight") is None


def test_unknown_theme_is_none(make_page):
    page = make_page(meta={"theme": {"name": "My Custom Theme"}})
    assert detect_theme(page) is None
