"""
Core Module - Shared Infrastructure.
"""

from storefront_radar.core.config import settings, Settings
from storefront_radar.core.database import Base, get_async_db, init_db
from storefront_radar.core.cache import TTLCache
from storefront_radar.core.results import Ok, Unknown, Degraded
from storefront_radar.core.models import (
    ShopifyStatus,
    HealthStatus,
    StoreStatus,
    BusinessModel,
    ThemeTier,
)

__all__ = [
    "settings",
    "Settings",
    "Base",
    "get_async_db",
    "init_db",
    "TTLCache",
    "Ok",
    "Unknown",
    "Degraded",
    "ShopifyStatus",
    "HealthStatus",
    "StoreStatus",
    "BusinessModel",
    "ThemeTier",
]
