"""
Core enums for the storefront catalog.

NOTE: These are NOT database models. The SQLAlchemy ORM model lives in
storefront_radar/catalog/database.py.

A catalog record carries three independent lifecycle axes:
  - ShopifyStatus: what the platform verifier concluded
  - HealthStatus:  what the last reachability probe saw (None until probed)
  - StoreStatus:   operational status driven by the catalog state machine

Visibility combines all three; see storefront_radar/catalog/visibility.py.
"""
from enum import Enum


class ShopifyStatus(str, Enum):
    CONFIRMED = "confirmed"
    PROBABLE = "probable"
    UNLIKELY = "unlikely"
    UNVERIFIED = "unverified"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    POSSIBLY_INACTIVE = "possibly_inactive"
    NONEXISTENT = "nonexistent"
    PASSWORD_PROTECTED = "password_protected"


class StoreStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    DEAD = "dead"
    BLOCKED = "blocked"
    INACTIVE_SHOPIFY = "inactive_shopify"


class BusinessModel(str, Enum):
    PRINT_ON_DEMAND = "Print on Demand"
    DROPSHIPPING = "Dropshipping"
    BRANDED_ECOMMERCE = "Branded Ecommerce"
    MARKETPLACE = "Marketplace"


class ThemeTier(str, Enum):
    FREE = "free"
    PAID = "paid"


# Tags written alongside the business-model label
UNCLASSIFIED_TAG = "Unclassified"
ADS_TAG = "Currently Running Ads"
