"""
Storefront Radar - discovery-to-catalog pipeline for Shopify storefronts.
"""
