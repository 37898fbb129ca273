"""
Homepage classifiers: business model, country, theme, ad pixels and display name.
"""

from storefront_radar.catalog.classifiers.advertising import detect_advertising
from storefront_radar.catalog.classifiers.business_model import score_business_model
from storefront_radar.catalog.classifiers.country import detect_country
from storefront_radar.catalog.classifiers.runner import classify_page, classify_storefront
from storefront_radar.catalog.classifiers.store_name import extract_store_name
from storefront_radar.catalog.classifiers.theme import detect_theme

__all__ = [
    "detect_advertising",
    "score_business_model",
    "detect_country",
    "detect_theme",
    "extract_store_name",
    "classify_page",
    "classify_storefront",
]
