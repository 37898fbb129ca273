"""
Operational gates deciding which candidates and records earn the expensive
steps (homepage fetch + classifiers, strict verification, health probes).
"""
import logging
from datetime import datetime
from typing import Any, Optional

from storefront_radar.core.data_types import VerificationVerdict
from storefront_radar.core.models import ShopifyStatus, StoreStatus

logger = logging.getLogger(__name__)

PLATFORM_MATCH = (ShopifyStatus.CONFIRMED, ShopifyStatus.PROBABLE)
# Probable records are re-scored too; the state machine only lets them climb
NEEDS_REVERIFICATION = (ShopifyStatus.UNVERIFIED, ShopifyStatus.UNLIKELY, ShopifyStatus.PROBABLE)


class PipelineGate:
    """
    Each check returns (True, None) when the step should run,
    (False, reason) when it should be skipped.
    """

    @classmethod
    def should_classify(cls, canonical_url: str, verdict: VerificationVerdict) -> tuple[bool, Optional[str]]:
        """Only platform matches are worth a homepage fetch and the classifiers."""
        if verdict.status not in PLATFORM_MATCH:
            reason = f"Verifier verdict {verdict.status.value}"
            logger.info(f"Skipping classification for {canonical_url}: {reason}")
            return False, reason
        return True, None

    @classmethod
    def should_reverify(cls, record: Any) -> tuple[bool, Optional[str]]:
        if record.store_status == StoreStatus.BLOCKED:
            return False, "Blocked by admin"
        if record.shopify_status not in NEEDS_REVERIFICATION:
            return False, f"Already {record.shopify_status.value}"
        return True, None

    @classmethod
    def should_probe(cls, record: Any) -> tuple[bool, Optional[str]]:
        """Strict verification and health probes only run for platform matches."""
        if record.store_status == StoreStatus.BLOCKED:
            return False, "Blocked by admin"
        if record.shopify_status not in PLATFORM_MATCH:
            return False, f"Verifier verdict {record.shopify_status.value}"
        return True, None

    @classmethod
    def should_reclassify(cls, record: Any, now: datetime) -> tuple[bool, Optional[str]]:
        """Low-confidence classifications are retried once their retry time has passed."""
        if record.tags_locked:
            return False, "Tags locked"
        if record.next_retry_at is None:
            return False, "No retry scheduled"
        if record.next_retry_at > now:
            return False, f"Retry scheduled for {record.next_retry_at:%Y-%m-%d %H:%M}"
        if record.shopify_status not in PLATFORM_MATCH:
            return False, f"Verifier verdict {record.shopify_status.value}"
        return True, None
