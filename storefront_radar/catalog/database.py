"""
Database models for the storefront catalog.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Enum as SQLEnum, Index, JSON

from storefront_radar.core.database import Base
from storefront_radar.core.models import (
    BusinessModel,
    HealthStatus,
    ShopifyStatus,
    StoreStatus,
    ThemeTier,
)
from storefront_radar.core.utils import utcnow


class StoreModel(Base):
    """
    SQLAlchemy model for catalog storefronts.
    Maps to the 'stores' table. One row per canonical URL.
    """
    __tablename__ = 'stores'

    id = Column(Integer, primary_key=True, autoincrement=True)
    canonical_url = Column(String(500), nullable=False, unique=True)
    name = Column(String(255), index=True)
    source = Column(String(50))

    # Classification
    country_label = Column(String(50), index=True)  # None = unknown
    theme_name = Column(String(50), index=True)
    theme_tier = Column(SQLEnum(ThemeTier), nullable=True)
    tags = Column(JSON, default=list)
    tags_locked = Column(Boolean, default=False, nullable=False)  # admin-curated tags
    business_model_scores = Column(JSON, default=dict)  # label -> 0..1
    primary_business_model = Column(SQLEnum(BusinessModel), nullable=True, index=True)
    business_model_confidence = Column(Float, default=0.0)
    has_advertising = Column(Boolean, default=False, nullable=False)
    ad_networks = Column(JSON, default=dict)
    product_count = Column(Integer, nullable=True)
    next_retry_at = Column(DateTime, nullable=True)  # low-confidence classification retry
    last_classified_at = Column(DateTime, nullable=True)

    # Platform verification
    shopify_status = Column(SQLEnum(ShopifyStatus), default=ShopifyStatus.UNVERIFIED, nullable=False, index=True)
    shopify_confidence = Column(Integer, default=0)  # 0-100
    fingerprints = Column(JSON, default=dict)
    verified = Column(Boolean, default=False, nullable=False)  # strict verification flag

    # Lifecycle
    health_status = Column(SQLEnum(HealthStatus), nullable=True, index=True)
    store_status = Column(SQLEnum(StoreStatus), default=StoreStatus.PENDING, nullable=False, index=True)
    failed_probe_count = Column(Integer, default=0, nullable=False)
    last_health_check_at = Column(DateTime, nullable=True)

    date_added = Column(DateTime, default=utcnow, nullable=False)
    last_scraped = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('idx_stores_visibility', 'store_status', 'health_status', 'shopify_status'),
        Index('idx_stores_date_added_desc', date_added.desc()),
    )

    def __repr__(self):
        return f"<Store(url='{self.canonical_url}', status='{self.store_status}', shopify='{self.shopify_status}')>"
