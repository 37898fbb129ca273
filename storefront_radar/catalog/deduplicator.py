"""
Deduplication against the persisted catalog.

Answers reflect storage at call time and are advisory only: the upsert keyed
by canonical URL is the final authority. Storage errors fail open (everything
counts as new) so the pipeline keeps moving; duplicate work is preferred over
silently dropping candidates.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Set

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront_radar.catalog.canonicalizer import canonicalize
from storefront_radar.catalog.database import StoreModel

logger = logging.getLogger(__name__)


@dataclass
class DedupStats:
    total: int
    new: int
    known: int

    def to_dict(self):
        return {"total": self.total, "new": self.new, "known": self.known}


class Deduplicator:
    """Checks canonical URLs against the stores table."""

    # Keeps IN lists well under driver parameter limits
    BATCH_SIZE = 500

    def __init__(self, session: AsyncSession):
        self.session = session

    async def is_known(self, url: str) -> bool:
        canonical = canonicalize(url)
        if canonical is None:
            return False
        try:
            result = await self.session.execute(
                select(StoreModel.id).where(StoreModel.canonical_url == canonical).limit(1)
            )
            return result.first() is not None
        except SQLAlchemyError as e:
            logger.warning(f"Dedup lookup failed for {canonical}, treating as new: {e}")
            return False

    async def filter_new(self, urls: Iterable[str]) -> List[str]:
        """
        Canonical URLs from ``urls`` not yet in the catalog, first-seen order,
        duplicates within the batch collapsed. Invalid URLs are dropped.
        """
        ordered: List[str] = []
        seen: Set[str] = set()
        for url in urls:
            canonical = canonicalize(url)
            if canonical and canonical not in seen:
                seen.add(canonical)
                ordered.append(canonical)
        if not ordered:
            return []

        try:
            known = await self._known_subset(ordered)
        except SQLAlchemyError as e:
            logger.warning(f"Dedup batch lookup failed, treating {len(ordered)} URLs as new: {e}")
            return ordered
        return [u for u in ordered if u not in known]

    async def stats(self, urls: Iterable[str]) -> DedupStats:
        canonical = [c for c in (canonicalize(u) for u in urls) if c]
        unique = list(dict.fromkeys(canonical))
        try:
            known = await self._known_subset(unique) if unique else set()
        except SQLAlchemyError as e:
            logger.warning(f"Dedup stats lookup failed: {e}")
            return DedupStats(total=len(unique), new=len(unique), known=0)
        return DedupStats(total=len(unique), new=len(unique) - len(known), known=len(known))

    async def _known_subset(self, canonical_urls: List[str]) -> Set[str]:
        known: Set[str] = set()
        for i in range(0, len(canonical_urls), self.BATCH_SIZE):
            chunk = canonical_urls[i:i + self.BATCH_SIZE]
            result = await self.session.execute(
                select(StoreModel.canonical_url).where(StoreModel.canonical_url.in_(chunk))
            )
            known.update(result.scalars().all())
        return known
