"""
Ad-pixel detector: one rule table per ad network, matched against the raw
homepage markup (inline scripts and asset URLs included).
"""
import re
from typing import Dict

from storefront_radar.catalog.classifiers.rules import RuleTable
from storefront_radar.core.data_types import AdvertisingSignals, StorefrontPage

AD_NETWORKS: Dict[str, RuleTable] = {
    "facebook": RuleTable.from_phrases("facebook", [
        "connect.facebook.net", "fbq('init'", 'fbq("init"', "fbq('track'",
        "facebook.com/tr", "fbevents.js", "fbclid=",
    ], weight=1.0),
    "tiktok": RuleTable.from_phrases("tiktok", [
        "analytics.tiktok.com", "ttq.track", "ttq.page", "ttq.identify",
    ], weight=1.0),
    "google": RuleTable.from_phrases("google", [
        "googletagmanager.com", "gtag('config'", "gtag('event'",
        "googleads.g.doubleclick.net", "googleadservices.com", "gclid=",
        re.compile(r"aw-\d{6,}"),
    ], weight=1.0),
    "snapchat": RuleTable.from_phrases("snapchat", ["snaptr(", "sc-static.net"], weight=1.0),
    "pinterest": RuleTable.from_phrases("pinterest", ["pintrk(", "ct.pinterest.com"], weight=1.0),
    "twitter": RuleTable.from_phrases("twitter", ["ads-twitter.com", "twq("], weight=1.0),
}


def detect_advertising(page: StorefrontPage) -> AdvertisingSignals:
    text = page.html_lower
    return AdvertisingSignals(networks={
        network: table.first_match(text) is not None
        for network, table in AD_NETWORKS.items()
    })
