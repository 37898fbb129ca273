"""
Visibility predicate.

One definition, two renderings: ``is_visible`` for in-memory records and
``visible_clause`` for queries. Both read the same status sets below, so a
listing and a per-record check can never disagree.

A record is visible when it is
  - pending and has been probed at least once (shown even if otherwise excluded), or
  - active, and either strictly verified or a confirmed/probable platform
    match, and not excluded by a hidden health status.
"""
from typing import Any

from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

from storefront_radar.catalog.database import StoreModel
from storefront_radar.core.models import HealthStatus, ShopifyStatus, StoreStatus

VISIBLE_SHOPIFY = frozenset({ShopifyStatus.CONFIRMED, ShopifyStatus.PROBABLE})
HIDDEN_HEALTH = frozenset({HealthStatus.NONEXISTENT, HealthStatus.PASSWORD_PROTECTED})
HIDDEN_STORE = frozenset({StoreStatus.DEAD, StoreStatus.BLOCKED, StoreStatus.INACTIVE_SHOPIFY})


def is_visible(record: Any) -> bool:
    store_status = record.store_status
    health_status = record.health_status

    if store_status == StoreStatus.PENDING and health_status is not None:
        return True

    if store_status in HIDDEN_STORE or health_status in HIDDEN_HEALTH:
        return False

    if store_status != StoreStatus.ACTIVE:
        return False
    return bool(record.verified) or record.shopify_status in VISIBLE_SHOPIFY


def visible_clause() -> ColumnElement:
    """SQL rendering of ``is_visible`` over StoreModel."""
    pending_probed = and_(
        StoreModel.store_status == StoreStatus.PENDING,
        StoreModel.health_status.is_not(None),
    )
    not_excluded = and_(
        StoreModel.store_status.not_in(list(HIDDEN_STORE)),
        or_(
            StoreModel.health_status.is_(None),
            StoreModel.health_status.not_in(list(HIDDEN_HEALTH)),
        ),
    )
    active_match = and_(
        StoreModel.store_status == StoreStatus.ACTIVE,
        or_(
            StoreModel.verified.is_(True),
            StoreModel.shopify_status.in_(list(VISIBLE_SHOPIFY)),
        ),
    )
    return or_(pending_probed, and_(active_match, not_excluded))
