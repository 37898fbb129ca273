"""
Unit tests for the ad-pixel detector and the store-name extractor.
"""
from storefront_radar.catalog.classifiers.advertising import AD_NETWORKS, detect_advertising
from storefront_radar.catalog.classifiers.store_name import extract_store_name, name_from_host


def test_facebook_and_tiktok_pixels(make_page):
    html = """
    <script>
      !function(f,b,e,v,n,t,s){}(window,document,'script','https://connect.facebook.net/en_US/fbevents.js');
      fbq('init', '1234567890');
      ttq.page();
    </script>
    <script src="https://analytics.tiktok.com/i18n/pixel/events.js"></script>
    """
    signals = detect_advertising(make_page(html))
    assert signals.networks["facebook"] is True
    assert signals.networks["tiktok"] is True
    assert signals.networks["pinterest"] is False
    assert signals.has_ads


def test_google_ads_conversion_id(make_page):
    html = "<script>gtag('config', 'AW-123456789');</script>"
    assert detect_advertising(make_page(html)).networks["google"] is True


def test_no_pixels(make_page):
    signals = detect_advertising(make_page("<html><body>Plain</body></html>"))
    assert set(signals.networks) == set(AD_NETWORKS)
    assert not signals.has_ads


def test_name_from_title(make_page):
    page = make_page("<html><head><title>\n  Acme   Outdoor Co \n</title></head><body><h1>Ignored</h1></body></html>")
    assert extract_store_name(page) == "Acme Outdoor Co"


def test_name_falls_back_to_og_title_then_h1(make_page):
    og = make_page('<html><head><meta property="og:title" content="OG Name"></head><body><h1>H1</h1></body></html>')
    assert extract_store_name(og) == "OG Name"
    h1 = make_page("<html><head></head><body><h1> Heading <em>Name</em></h1></body></html>")
    assert extract_store_name(h1) == "Heading Name"


def test_name_falls_back_to_host(make_page):
    page = make_page("<html><body></body></html>", url="https://cool-shirts.myshopify.com")
    assert extract_store_name(page) == "cool-shirts"
    assert name_from_host("https://shop.example") == "shop.example"


def test_name_is_truncated(make_page):
    page = make_page(f"<title>{'x' * 300}</title>")
    assert len(extract_store_name(page)) == 100
