"""
Catalog State Machine.

Merges verifier verdicts, strict verification and health probes into the
three status fields of a catalog record, and logs every transition as a
StatusChange for run reports.

Rules:
  shopify_status  unverified -> {confirmed, probable, unlikely}; upgrades
                  allowed, probable only climbs to confirmed,
                  confirmed is sticky
  health_status   overwritten by every probe that got an answer
  store_status    pending -> active once verification and a healthy probe
                  both succeeded; active -> dead only after
                  ``dead_after_failures`` consecutive failed probes;
                  blocked is reachable from anywhere and only an admin
                  unblock leaves it. dead, blocked and inactive_shopify are
                  never promoted automatically.

Works on anything with the StoreRecord attributes (StoreRecord, StoreModel).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from storefront_radar.core.config import settings
from storefront_radar.core.data_types import StrictVerification, VerificationVerdict
from storefront_radar.core.models import ShopifyStatus, StoreStatus
from storefront_radar.core.results import StepResult
from storefront_radar.core.utils import utcnow

logger = logging.getLogger(__name__)

FROZEN_STORE_STATUSES = frozenset({StoreStatus.DEAD, StoreStatus.BLOCKED, StoreStatus.INACTIVE_SHOPIFY})


@dataclass
class StatusChange:
    """A single field transition on one record."""
    canonical_url: str
    field_name: str  # "shopify_status", "health_status", "store_status"
    old_value: Optional[str]
    new_value: Optional[str]
    reason: str = ""
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canonical_url": self.canonical_url,
            "field": self.field_name,
            "old": self.old_value,
            "new": self.new_value,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }

    def summary(self) -> str:
        return f"{self.canonical_url}: {self.field_name} {self.old_value or 'none'} -> {self.new_value} ({self.reason})"


@dataclass
class StatusChangeReport:
    """Aggregated transitions from one pipeline or re-check run."""
    changes: List[StatusChange] = field(default_factory=list)
    run_timestamp: datetime = field(default_factory=utcnow)

    def extend(self, changes: List[StatusChange]) -> None:
        self.changes.extend(changes)

    def for_field(self, field_name: str) -> List[StatusChange]:
        return [c for c in self.changes if c.field_name == field_name]

    @property
    def activations(self) -> List[StatusChange]:
        return [c for c in self.for_field("store_status") if c.new_value == StoreStatus.ACTIVE.value]

    @property
    def deaths(self) -> List[StatusChange]:
        return [c for c in self.for_field("store_status") if c.new_value == StoreStatus.DEAD.value]

    @property
    def has_changes(self) -> bool:
        return len(self.changes) > 0

    def counts(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for c in self.changes:
            key = f"{c.field_name}:{c.new_value}"
            out[key] = out.get(key, 0) + 1
        return out


def _value(status: Any) -> Optional[str]:
    return status.value if hasattr(status, "value") else status


class CatalogStateMachine:
    def __init__(self, dead_after_failures: Optional[int] = None):
        self.dead_after_failures = dead_after_failures or settings.dead_after_failed_probes

    def _set(self, record: Any, field_name: str, new_value: Any, reason: str, changes: List[StatusChange]) -> None:
        old_value = getattr(record, field_name)
        if old_value == new_value:
            return
        setattr(record, field_name, new_value)
        change = StatusChange(
            canonical_url=record.canonical_url,
            field_name=field_name,
            old_value=_value(old_value),
            new_value=_value(new_value),
            reason=reason,
        )
        changes.append(change)
        logger.info(change.summary())

    # ──── Platform verification ────

    def apply_verification(self, record: Any, verdict: VerificationVerdict) -> List[StatusChange]:
        changes: List[StatusChange] = []
        current = record.shopify_status or ShopifyStatus.UNVERIFIED

        if current == ShopifyStatus.CONFIRMED and verdict.status != ShopifyStatus.CONFIRMED:
            logger.debug(f"{record.canonical_url}: keeping confirmed over {verdict.status.value}")
            return changes
        if verdict.status == ShopifyStatus.UNVERIFIED:
            return changes
        if current == ShopifyStatus.PROBABLE and verdict.status != ShopifyStatus.CONFIRMED:
            logger.debug(f"{record.canonical_url}: keeping probable over {verdict.status.value}")
            return changes

        self._set(record, "shopify_status", verdict.status, verdict.matched or "verification", changes)
        record.shopify_confidence = verdict.confidence
        if verdict.fingerprints:
            record.fingerprints = dict(verdict.fingerprints)
        return changes

    def apply_strict_verification(self, record: Any, result: StepResult) -> List[StatusChange]:
        """
        ``result`` is Ok(StrictVerification), or Degraded/Unknown when the
        homepage gave no answer; then the record is left untouched.
        """
        changes: List[StatusChange] = []
        if not result.is_ok:
            logger.debug(f"{record.canonical_url}: strict verification skipped ({getattr(result, 'reason', None)})")
            return changes

        strict: StrictVerification = result.value
        record.verified = strict.verified
        if strict.product_count is not None:
            record.product_count = strict.product_count

        if strict.inactive and record.store_status in (StoreStatus.PENDING, StoreStatus.ACTIVE):
            self._set(record, "store_status", StoreStatus.INACTIVE_SHOPIFY, strict.reason or "inactive_marker", changes)
        return changes

    # ──── Reachability ────

    def apply_health_probe(self, record: Any, result: StepResult, now: Optional[datetime] = None) -> List[StatusChange]:
        """
        Fold one probe outcome into the record. ``result`` is Ok(HealthProbe),
        or Degraded/Unknown when the probe got no answer: that still counts
        as a failed probe but leaves the last known health status in place.
        """
        changes: List[StatusChange] = []
        now = now or utcnow()
        record.last_health_check_at = now
        record.last_scraped = now

        healthy = False
        if result.is_ok:
            probe = result.value
            self._set(record, "health_status", probe.status, probe.reason, changes)
            healthy = probe.is_healthy
            reason = probe.reason
        else:
            reason = getattr(result, "reason", None) or "probe_failed"

        if healthy:
            record.failed_probe_count = 0
        else:
            record.failed_probe_count = (record.failed_probe_count or 0) + 1

        status = record.store_status
        if status in FROZEN_STORE_STATUSES:
            return changes

        if status == StoreStatus.PENDING and healthy and self._verification_succeeded(record):
            self._set(record, "store_status", StoreStatus.ACTIVE, "verified_and_healthy", changes)
        elif status == StoreStatus.ACTIVE and record.failed_probe_count >= self.dead_after_failures:
            self._set(
                record, "store_status", StoreStatus.DEAD,
                f"{record.failed_probe_count} consecutive failed probes ({reason})", changes,
            )
        return changes

    @staticmethod
    def _verification_succeeded(record: Any) -> bool:
        return bool(record.verified) or record.shopify_status in (ShopifyStatus.CONFIRMED, ShopifyStatus.PROBABLE)

    # ──── Admin overrides ────

    def block(self, record: Any, reason: str = "admin") -> List[StatusChange]:
        changes: List[StatusChange] = []
        self._set(record, "store_status", StoreStatus.BLOCKED, reason, changes)
        return changes

    def unblock(self, record: Any, reason: str = "admin") -> List[StatusChange]:
        changes: List[StatusChange] = []
        if record.store_status != StoreStatus.BLOCKED:
            return changes
        record.failed_probe_count = 0
        self._set(record, "store_status", StoreStatus.PENDING, reason, changes)
        return changes
