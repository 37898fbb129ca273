"""
Orchestrator for catalog ingestion.

Candidate {url, source} -> canonicalize -> dedup against the catalog ->
platform verification -> (platform matches only) homepage fetch + classifiers
-> state machine -> upsert keyed by canonical URL.

Each candidate is one independent unit of work bounded by the ingestion
semaphore. Nothing a single candidate does can fail the run: network trouble
degrades signals, storage trouble is retried and then queued on the report.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from storefront_radar.catalog.canonicalizer import canonicalize
from storefront_radar.catalog.classifiers.business_model import unknown_scores
from storefront_radar.catalog.classifiers.runner import classify_storefront
from storefront_radar.catalog.classifiers.store_name import name_from_host
from storefront_radar.catalog.deduplicator import Deduplicator
from storefront_radar.catalog.ops.fetcher import StorefrontFetcher
from storefront_radar.catalog.ops.filters import PipelineGate
from storefront_radar.catalog.service import build_tags, classification_retry_at, upsert_store
from storefront_radar.catalog.state_machine import CatalogStateMachine, StatusChangeReport
from storefront_radar.catalog.verification.platform_verifier import PlatformVerifier
from storefront_radar.core.cache import TTLCache
from storefront_radar.core.config import settings
from storefront_radar.core.data_types import (
    AdvertisingSignals,
    BusinessModelScores,
    CandidateUrl,
    StorefrontClassification,
    StoreRecord,
)
from storefront_radar.core.database import async_session_factory
from storefront_radar.core.models import ShopifyStatus
from storefront_radar.core.results import Degraded
from storefront_radar.core.utils import utcnow

logger = logging.getLogger(__name__)

CandidateLike = Union[CandidateUrl, Dict[str, Any]]


@dataclass
class IngestReport:
    """Counters and leftovers from one ingestion run."""
    received: int = 0
    rejected_invalid: int = 0
    known: int = 0
    processed: int = 0
    confirmed: int = 0
    probable: int = 0
    unlikely: int = 0
    saved: int = 0
    errors: int = 0
    unsaved: List[StoreRecord] = field(default_factory=list)  # retry on the next run
    degraded_steps: Dict[str, int] = field(default_factory=dict)
    status_changes: StatusChangeReport = field(default_factory=StatusChangeReport)
    run_timestamp: datetime = field(default_factory=utcnow)

    def count_verdict(self, status: ShopifyStatus) -> None:
        if status == ShopifyStatus.CONFIRMED:
            self.confirmed += 1
        elif status == ShopifyStatus.PROBABLE:
            self.probable += 1
        elif status == ShopifyStatus.UNLIKELY:
            self.unlikely += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "received": self.received,
            "rejected_invalid": self.rejected_invalid,
            "known": self.known,
            "processed": self.processed,
            "confirmed": self.confirmed,
            "probable": self.probable,
            "unlikely": self.unlikely,
            "saved": self.saved,
            "unsaved": len(self.unsaved),
            "errors": self.errors,
            "degraded_steps": dict(self.degraded_steps),
            "status_changes": self.status_changes.counts(),
        }


def apply_classification(
    record: Any,
    classification: StorefrontClassification,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """
    Copy classifier output onto a record (StoreRecord or StoreModel).
    Returns {step: reason} for every step that came back Degraded.
    """
    now = now or utcnow()
    degraded: Dict[str, str] = {}
    for step in ("name", "business_model", "country", "theme", "advertising"):
        result = getattr(classification, step)
        if isinstance(result, Degraded):
            degraded[step] = result.reason

    name = classification.name.value_or(None)
    if name:
        record.name = name
    elif not record.name:
        record.name = name_from_host(record.canonical_url)

    country = classification.country.value_or(None)
    record.country_label = country.country if country else None

    theme = classification.theme.value_or(None)
    record.theme_name = theme.name if theme else None
    record.theme_tier = theme.tier if theme else None

    scores: BusinessModelScores = classification.business_model.value_or(None) or unknown_scores(
        degraded.get("business_model", "no_signal")
    )
    record.business_model_scores = scores.scores_by_label()
    record.primary_business_model = scores.primary
    record.business_model_confidence = scores.confidence

    advertising: AdvertisingSignals = classification.advertising.value_or(None) or AdvertisingSignals()
    record.has_advertising = advertising.has_ads
    record.ad_networks = dict(advertising.networks)

    if not record.tags_locked:
        record.tags = build_tags(scores, advertising)
    record.next_retry_at = classification_retry_at(scores, now)
    record.last_classified_at = now
    return degraded


class CatalogPipeline:
    """
    Ingestion run over a batch of candidates.

    Collaborators are injectable for tests: ``session_factory`` (one session
    per unit of work), ``fetcher`` (entered by the caller), ``verdict_cache``
    and ``listing_cache`` (TTLCache handles owned by the caller).
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        fetcher: Optional[StorefrontFetcher] = None,
        verdict_cache: Optional[TTLCache] = None,
        listing_cache: Optional[TTLCache] = None,
        concurrency: Optional[int] = None,
        state_machine: Optional[CatalogStateMachine] = None,
    ):
        self.session_factory = session_factory or async_session_factory
        self.fetcher = fetcher
        self.verdict_cache = verdict_cache if verdict_cache is not None else TTLCache(settings.verdict_cache_ttl_seconds)
        self.listing_cache = listing_cache
        self.concurrency = concurrency or settings.ingest_concurrency
        self.semaphore = asyncio.Semaphore(self.concurrency)
        self.state_machine = state_machine or CatalogStateMachine()

    # ──── Entry point ────

    async def ingest(self, candidates: Iterable[CandidateLike]) -> IngestReport:
        report = IngestReport()
        batch = self._canonical_batch(candidates, report)
        if not batch:
            logger.info("No candidates to ingest")
            return report

        async with self.session_factory() as session:
            new_urls = await Deduplicator(session).filter_new(list(batch))
        report.known = len(batch) - len(new_urls)
        logger.info(f"Ingesting {len(new_urls)} new candidates ({report.known} already known)")
        if not new_urls:
            return report

        if self.fetcher is not None:
            await self._process_all(self.fetcher, new_urls, batch, report)
        else:
            async with StorefrontFetcher() as fetcher:
                await self._process_all(fetcher, new_urls, batch, report)

        logger.info(
            f"Ingestion done: {report.saved} saved, {len(report.unsaved)} unsaved, "
            f"{report.confirmed} confirmed, {report.unlikely} unlikely, {report.errors} errors"
        )
        return report

    def _canonical_batch(self, candidates: Iterable[CandidateLike], report: IngestReport) -> Dict[str, str]:
        """canonical URL -> source of its first occurrence."""
        batch: Dict[str, str] = {}
        for item in candidates or []:
            report.received += 1
            candidate = item if isinstance(item, CandidateUrl) else CandidateUrl.from_dict(item)
            canonical = canonicalize(candidate.raw_url)
            if canonical is None:
                report.rejected_invalid += 1
                logger.debug(f"Rejected malformed candidate {candidate.raw_url!r} from {candidate.source}")
                continue
            batch.setdefault(canonical, candidate.source)
        return batch

    async def _process_all(
        self,
        fetcher: StorefrontFetcher,
        urls: List[str],
        sources: Dict[str, str],
        report: IngestReport,
    ) -> None:
        verifier = PlatformVerifier(fetcher, cache=self.verdict_cache)
        await asyncio.gather(*(
            self._process_one(fetcher, verifier, url, sources.get(url, "unknown"), report) for url in urls
        ))

    # ──── One unit of work ────

    async def _process_one(
        self,
        fetcher: StorefrontFetcher,
        verifier: PlatformVerifier,
        canonical_url: str,
        source: str,
        report: IngestReport,
    ) -> None:
        async with self.semaphore:
            try:
                record, degraded = await self.build_record(fetcher, verifier, canonical_url, source, report)
            except Exception as e:
                report.errors += 1
                logger.error(f"Candidate {canonical_url} failed: {e}", exc_info=True)
                return

            report.processed += 1
            for step in degraded:
                report.degraded_steps[step] = report.degraded_steps.get(step, 0) + 1
            await self.save_record(record, report)

    async def build_record(
        self,
        fetcher: StorefrontFetcher,
        verifier: PlatformVerifier,
        canonical_url: str,
        source: str,
        report: IngestReport,
    ) -> Tuple[StoreRecord, Dict[str, str]]:
        now = utcnow()
        record = StoreRecord(canonical_url=canonical_url, source=source)

        verdict = await verifier.verify(canonical_url)
        report.count_verdict(verdict.status)
        report.status_changes.extend(self.state_machine.apply_verification(record, verdict))

        should_run, _ = PipelineGate.should_classify(canonical_url, verdict)
        if not should_run:
            record.name = name_from_host(canonical_url)
            return record, {}

        classification = await classify_storefront(fetcher, canonical_url)
        degraded = apply_classification(record, classification, now)
        return record, degraded

    async def save_record(self, record: StoreRecord, report: IngestReport) -> bool:
        """Upsert with linear back-off; queue on the report once attempts run out."""
        attempts = settings.upsert_attempts
        for attempt in range(1, attempts + 1):
            try:
                async with self.session_factory() as session:
                    await upsert_store(session, record, cache=self.listing_cache)
                    await session.commit()
                report.saved += 1
                return True
            except SQLAlchemyError as e:
                logger.warning(f"Upsert of {record.canonical_url} failed (attempt {attempt}/{attempts}): {e}")
                if attempt < attempts:
                    await asyncio.sleep(settings.upsert_retry_delay * attempt)

        logger.error(f"Giving up on {record.canonical_url} after {attempts} attempts; queued for next run")
        report.unsaved.append(record)
        return False

    async def retry_unsaved(self, records: List[StoreRecord]) -> IngestReport:
        """Write records a previous run could not save."""
        report = IngestReport()
        for record in records:
            report.received += 1
            await self.save_record(record, report)
        return report


async def run_ingestion(candidates: Iterable[CandidateLike], **kwargs) -> IngestReport:
    """Convenience wrapper: one pipeline, one run."""
    return await CatalogPipeline(**kwargs).ingest(candidates)
