"""Public service interface for the catalog.

Other modules should go through here rather than query StoreModel directly:
every listing, count and search applies the visibility predicate. The
``*_admin`` functions are the explicit override path that bypasses it.

Listing reads can be cached through an injected TTLCache; every write that
goes through this module invalidates the cached listings.
"""
import logging
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from storefront_radar.catalog.database import StoreModel
from storefront_radar.catalog.state_machine import CatalogStateMachine, StatusChange
from storefront_radar.catalog.visibility import visible_clause
from storefront_radar.core.cache import TTLCache
from storefront_radar.core.config import settings
from storefront_radar.core.data_types import AdvertisingSignals, BusinessModelScores, StoreRecord
from storefront_radar.core.models import ADS_TAG, UNCLASSIFIED_TAG, ShopifyStatus, StoreStatus
from storefront_radar.core.utils import utcnow

logger = logging.getLogger(__name__)

LISTING_CACHE_PREFIX = "visible"

# Written on insert, never touched by the conflict update
INSERT_ONLY_COLUMNS = frozenset({"canonical_url", "date_added", "tags_locked"})

# Owned by the state machine and the re-check pass; the stored value wins on conflict
LIFECYCLE_COLUMNS = frozenset({
    "store_status",
    "health_status",
    "verified",
    "failed_probe_count",
    "last_health_check_at",
    "product_count",
})


# ──── Tagging ────

def build_tags(
    scores: Optional[BusinessModelScores],
    advertising: Optional[AdvertisingSignals],
    threshold: Optional[float] = None,
) -> List[str]:
    """
    Business-model label when the scorer is confident enough, otherwise
    "Unclassified"; plus the ads tag when any ad network was seen.
    """
    threshold = settings.classification_confidence_threshold if threshold is None else threshold
    tags: List[str] = []
    if scores is not None and scores.primary is not None and scores.confidence >= threshold:
        tags.append(scores.primary.value)
    else:
        tags.append(UNCLASSIFIED_TAG)
    if advertising is not None and advertising.has_ads:
        tags.append(ADS_TAG)
    return tags


def classification_retry_at(
    scores: Optional[BusinessModelScores],
    now: datetime,
    threshold: Optional[float] = None,
) -> Optional[datetime]:
    """When a low-confidence classification should be attempted again (None if confident)."""
    threshold = settings.classification_confidence_threshold if threshold is None else threshold
    if scores is not None and scores.confidence >= threshold:
        return None
    return now + timedelta(hours=settings.classification_retry_hours)


# ──── Writes ────

def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise ValueError(f"Upsert not supported for dialect '{dialect}'")


def _record_values(record: StoreRecord, now: datetime) -> Dict[str, Any]:
    values = asdict(record)
    values["date_added"] = record.date_added or now
    values["last_scraped"] = now
    values["source"] = (record.source or "unknown")[:50]
    if values.get("name"):
        values["name"] = values["name"][:255]
    return values


async def upsert_store(
    session: AsyncSession,
    record: StoreRecord,
    cache: Optional[TTLCache] = None,
) -> None:
    """
    Insert or update the row keyed by ``record.canonical_url``.

    Conflict rules, enforced in SQL so concurrent writers cannot break them:
      - date_added is only written on insert
      - lifecycle columns (store status, health, strict verification, probe
        counters) keep their stored values; only the state machine moves them
      - shopify_status only climbs: confirmed is never downgraded, probable
        only gives way to confirmed, and an unverified verdict changes nothing
      - locked tags survive automated writes
    """
    now = utcnow()
    values = _record_values(record, now)
    stmt = _insert_for(session)(StoreModel).values(**values)
    excluded = stmt.excluded

    set_: Dict[str, Any] = {
        name: getattr(excluded, name)
        for name in values
        if name not in INSERT_ONLY_COLUMNS and name not in LIFECYCLE_COLUMNS
    }
    keep_platform = or_(
        StoreModel.shopify_status == ShopifyStatus.CONFIRMED,
        excluded.shopify_status == ShopifyStatus.UNVERIFIED,
        and_(
            StoreModel.shopify_status == ShopifyStatus.PROBABLE,
            excluded.shopify_status != ShopifyStatus.CONFIRMED,
        ),
    )
    set_["shopify_status"] = case((keep_platform, StoreModel.shopify_status), else_=excluded.shopify_status)
    set_["shopify_confidence"] = case((keep_platform, StoreModel.shopify_confidence), else_=excluded.shopify_confidence)
    set_["fingerprints"] = case((keep_platform, StoreModel.fingerprints), else_=excluded.fingerprints)
    set_["tags"] = case((StoreModel.tags_locked.is_(True), StoreModel.tags), else_=excluded.tags)

    stmt = stmt.on_conflict_do_update(index_elements=[StoreModel.canonical_url], set_=set_)
    await session.execute(stmt)
    await session.flush()
    logger.debug(f"Upserted {record.canonical_url} ({record.shopify_status.value}/{record.store_status.value})")

    if cache is not None:
        cache.invalidate_prefix(LISTING_CACHE_PREFIX)


async def _get_model(session: AsyncSession, canonical_url: str) -> Optional[StoreModel]:
    result = await session.execute(select(StoreModel).where(StoreModel.canonical_url == canonical_url))
    return result.scalar_one_or_none()


async def block_store(
    session: AsyncSession,
    canonical_url: str,
    reason: str = "admin",
    cache: Optional[TTLCache] = None,
) -> List[StatusChange]:
    """Admin override: hide a store regardless of every other status."""
    store = await _get_model(session, canonical_url)
    if store is None:
        logger.warning(f"Cannot block {canonical_url}: not in catalog")
        return []
    changes = CatalogStateMachine().block(store, reason)
    await session.flush()
    if cache is not None:
        cache.invalidate_prefix(LISTING_CACHE_PREFIX)
    return changes


async def unblock_store(
    session: AsyncSession,
    canonical_url: str,
    reason: str = "admin",
    cache: Optional[TTLCache] = None,
) -> List[StatusChange]:
    """Admin override: send a blocked store back to pending."""
    store = await _get_model(session, canonical_url)
    if store is None:
        logger.warning(f"Cannot unblock {canonical_url}: not in catalog")
        return []
    changes = CatalogStateMachine().unblock(store, reason)
    await session.flush()
    if cache is not None:
        cache.invalidate_prefix(LISTING_CACHE_PREFIX)
    return changes


async def set_tags(
    session: AsyncSession,
    canonical_url: str,
    tags: List[str],
    lock: bool = True,
    cache: Optional[TTLCache] = None,
) -> bool:
    """Admin override: replace a store's tags, locking them against automated writes by default."""
    store = await _get_model(session, canonical_url)
    if store is None:
        return False
    store.tags = list(tags)
    store.tags_locked = lock
    await session.flush()
    if cache is not None:
        cache.invalidate_prefix(LISTING_CACHE_PREFIX)
    return True


# ──── Visible reads ────

def make_listing_cache(ttl: Optional[float] = None) -> TTLCache:
    """A fresh cache handle for the visible-listing reads, owned by the caller."""
    return TTLCache(settings.listing_cache_ttl_seconds if ttl is None else ttl)


def _cached(cache: Optional[TTLCache], key: Tuple) -> Tuple[bool, Any]:
    if cache is None:
        return False, None
    sentinel = object()
    value = cache.get(key, sentinel)
    return (value is not sentinel), value


async def list_visible_stores(
    session: AsyncSession,
    limit: int = 50,
    offset: int = 0,
    cache: Optional[TTLCache] = None,
) -> List[Dict[str, Any]]:
    """Visible stores, newest first. Returns list of dicts."""
    key = (LISTING_CACHE_PREFIX, "list", limit, offset)
    hit, value = _cached(cache, key)
    if hit:
        return value

    stmt = (
        select(StoreModel)
        .where(visible_clause())
        .order_by(StoreModel.date_added.desc(), StoreModel.id.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await session.execute(stmt)
    stores = [s.to_dict() for s in result.scalars().all()]
    if cache is not None:
        cache.set(key, stores)
    return stores


async def count_visible_stores(session: AsyncSession, cache: Optional[TTLCache] = None) -> int:
    key = (LISTING_CACHE_PREFIX, "count")
    hit, value = _cached(cache, key)
    if hit:
        return value

    result = await session.execute(select(func.count(StoreModel.id)).where(visible_clause()))
    count = result.scalar() or 0
    if cache is not None:
        cache.set(key, count)
    return count


async def search_visible_stores(
    session: AsyncSession,
    query: str,
    limit: int = 20,
    cache: Optional[TTLCache] = None,
) -> List[Dict[str, Any]]:
    """Search visible stores by name or URL. Returns list of dicts."""
    query = (query or "").strip()
    if not query:
        return []
    key = (LISTING_CACHE_PREFIX, "search", query.lower(), limit)
    hit, value = _cached(cache, key)
    if hit:
        return value

    pattern = f"%{query}%"
    stmt = (
        select(StoreModel)
        .where(visible_clause())
        .where(or_(StoreModel.name.ilike(pattern), StoreModel.canonical_url.ilike(pattern)))
        .order_by(StoreModel.date_added.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    stores = [s.to_dict() for s in result.scalars().all()]
    if cache is not None:
        cache.set(key, stores)
    return stores


# ──── Admin reads (bypass the visibility predicate) ────

async def get_store_admin(session: AsyncSession, canonical_url: str) -> Optional[Dict[str, Any]]:
    store = await _get_model(session, canonical_url)
    return store.to_dict() if store else None


async def list_all_stores_admin(
    session: AsyncSession,
    store_status: Optional[StoreStatus] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    stmt = select(StoreModel)
    if store_status is not None:
        stmt = stmt.where(StoreModel.store_status == store_status)
    stmt = stmt.order_by(StoreModel.date_added.desc(), StoreModel.id.desc()).limit(limit).offset(offset)
    result = await session.execute(stmt)
    return [s.to_dict() for s in result.scalars().all()]


# ──── Maintenance ────

async def stores_due_for_recheck(
    session: AsyncSession,
    now: Optional[datetime] = None,
    limit: int = 500,
) -> List[str]:
    """
    Canonical URLs the re-check pass should look at: never probed, probed
    longer than ``recheck_interval_hours`` ago, or with a classification
    retry that has come due. Blocked and dead stores are left alone.
    """
    now = now or utcnow()
    cutoff = now - timedelta(hours=settings.recheck_interval_hours)
    stmt = (
        select(StoreModel.canonical_url)
        .where(StoreModel.store_status.not_in([StoreStatus.BLOCKED, StoreStatus.DEAD]))
        .where(or_(
            StoreModel.last_health_check_at.is_(None),
            StoreModel.last_health_check_at <= cutoff,
            StoreModel.next_retry_at <= now,
        ))
        .order_by(StoreModel.last_health_check_at.is_not(None), StoreModel.last_health_check_at)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
