"""
Maintenance pass over existing catalog records.

Runs on its own semaphore (``recheck_concurrency``) so it never competes with
ingestion for worker slots. Per record:

  1. unverified/unlikely/probable records are re-scored with the weighted
     confidence scorer (which can lift them to probable/confirmed)
  2. platform matches get strict verification and a health probe
  3. low-confidence classifications whose retry time has come are redone
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from storefront_radar.catalog.classifiers.runner import classify_storefront
from storefront_radar.catalog.database import StoreModel
from storefront_radar.catalog.ops.fetcher import StorefrontFetcher
from storefront_radar.catalog.ops.filters import PipelineGate
from storefront_radar.catalog.service import LISTING_CACHE_PREFIX, stores_due_for_recheck
from storefront_radar.catalog.state_machine import CatalogStateMachine, StatusChange, StatusChangeReport
from storefront_radar.catalog.verification import ConfidenceScorer, HealthProber, StrictVerifier
from storefront_radar.catalog.workflow import apply_classification
from storefront_radar.core.cache import TTLCache
from storefront_radar.core.config import settings
from storefront_radar.core.database import async_session_factory
from storefront_radar.core.utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class RecheckReport:
    checked: int = 0
    reverified: int = 0
    probed: int = 0
    reclassified: int = 0
    skipped: int = 0
    errors: int = 0
    status_changes: StatusChangeReport = field(default_factory=StatusChangeReport)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "checked": self.checked,
            "reverified": self.reverified,
            "probed": self.probed,
            "reclassified": self.reclassified,
            "skipped": self.skipped,
            "errors": self.errors,
            "activated": len(self.status_changes.activations),
            "died": len(self.status_changes.deaths),
        }


class RecheckPass:
    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        fetcher: Optional[StorefrontFetcher] = None,
        listing_cache: Optional[TTLCache] = None,
        concurrency: Optional[int] = None,
        state_machine: Optional[CatalogStateMachine] = None,
    ):
        self.session_factory = session_factory or async_session_factory
        self.fetcher = fetcher
        self.listing_cache = listing_cache
        self.concurrency = concurrency or settings.recheck_concurrency
        self.semaphore = asyncio.Semaphore(self.concurrency)
        self.state_machine = state_machine or CatalogStateMachine()

    async def run(self, urls: Optional[List[str]] = None, now: Optional[datetime] = None) -> RecheckReport:
        """Re-check ``urls``, or every record that is due when none are given."""
        now = now or utcnow()
        report = RecheckReport()
        if urls is None:
            async with self.session_factory() as session:
                urls = await stores_due_for_recheck(session, now=now)
        if not urls:
            logger.info("Nothing due for re-check")
            return report

        logger.info(f"Re-checking {len(urls)} stores (concurrency {self.concurrency})")
        if self.fetcher is not None:
            await self._check_all(self.fetcher, urls, now, report)
        else:
            async with StorefrontFetcher() as fetcher:
                await self._check_all(fetcher, urls, now, report)

        if self.listing_cache is not None and report.status_changes.has_changes:
            self.listing_cache.invalidate_prefix(LISTING_CACHE_PREFIX)
        logger.info(f"Re-check done: {report.to_dict()}")
        return report

    async def _check_all(self, fetcher: StorefrontFetcher, urls: List[str], now: datetime, report: RecheckReport) -> None:
        await asyncio.gather(*(self._check_one(fetcher, url, now, report) for url in urls))

    async def _check_one(self, fetcher: StorefrontFetcher, canonical_url: str, now: datetime, report: RecheckReport) -> None:
        async with self.semaphore:
            try:
                async with self.session_factory() as session:
                    result = await session.execute(
                        select(StoreModel).where(StoreModel.canonical_url == canonical_url)
                    )
                    store = result.scalar_one_or_none()
                    if store is None:
                        report.skipped += 1
                        return
                    changes = await self.check_store(fetcher, store, now, report)
                    await session.commit()
                report.checked += 1
                report.status_changes.extend(changes)
            except SQLAlchemyError as e:
                report.errors += 1
                logger.error(f"Re-check of {canonical_url} could not be saved: {e}")
            except Exception as e:
                report.errors += 1
                logger.error(f"Re-check of {canonical_url} failed: {e}", exc_info=True)

    async def check_store(
        self,
        fetcher: StorefrontFetcher,
        store: Any,
        now: datetime,
        report: RecheckReport,
    ) -> List[StatusChange]:
        """Apply one maintenance round to ``store`` in place."""
        changes: List[StatusChange] = []
        url = store.canonical_url

        should_reverify, _ = PipelineGate.should_reverify(store)
        if should_reverify:
            verdict = await ConfidenceScorer(fetcher).score(url)
            changes += self.state_machine.apply_verification(store, verdict)
            report.reverified += 1

        should_probe, reason = PipelineGate.should_probe(store)
        if should_probe:
            strict = await StrictVerifier(fetcher).verify(url)
            changes += self.state_machine.apply_strict_verification(store, strict)
            probe = await HealthProber(fetcher).probe(url)
            changes += self.state_machine.apply_health_probe(store, probe, now)
            report.probed += 1
        else:
            logger.debug(f"{url}: no probe ({reason})")
            store.last_scraped = now

        should_reclassify, _ = PipelineGate.should_reclassify(store, now)
        if should_reclassify:
            classification = await classify_storefront(fetcher, url)
            apply_classification(store, classification, now)
            report.reclassified += 1

        return changes


async def run_recheck(urls: Optional[List[str]] = None, **kwargs) -> RecheckReport:
    return await RecheckPass(**kwargs).run(urls)
