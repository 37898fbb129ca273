"""
Core lightweight data types for the storefront catalog.

These are transfer objects (Dataclasses), NOT database models.
For the SQLAlchemy ORM model, see storefront_radar/catalog/database.py.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from storefront_radar.core.models import (
    BusinessModel,
    HealthStatus,
    ShopifyStatus,
    StoreStatus,
    ThemeTier,
)
from storefront_radar.core.results import StepResult, Unknown


@dataclass
class CandidateUrl:
    """Raw candidate emitted by a source adapter"""
    raw_url: str
    source: str = "unknown"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CandidateUrl":
        return cls(
            raw_url=str(data.get("url") or data.get("raw_url") or ""),
            source=str(data.get("source") or "unknown")[:50],
        )


@dataclass
class FetchedResponse:
    """One HTTP response, body already read and decoded"""
    url: str
    status: int
    headers: Dict[str, str] = field(default_factory=dict)  # lowercase keys
    text: str = ""

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").lower()

    def json_body(self) -> Optional[Any]:
        """Parsed JSON body, or None when the body is not JSON."""
        try:
            return json.loads(self.text)
        except (TypeError, ValueError):
            return None


@dataclass
class StorefrontPage:
    """
    Homepage snapshot shared by every classifier.

    Fetched once per candidate. ``meta`` holds the storefront's /meta.json
    payload when it was reachable.
    """
    url: str
    status: int
    html: str
    headers: Dict[str, str] = field(default_factory=dict)
    meta: Optional[Dict[str, Any]] = None

    @cached_property
    def html_lower(self) -> str:
        return self.html.lower()

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "html.parser")


@dataclass
class VerificationVerdict:
    """Platform verifier output"""
    status: ShopifyStatus
    confidence: int = 0  # 0-100
    fingerprints: Dict[str, bool] = field(default_factory=dict)
    matched: Optional[str] = None  # fingerprint that ended the procedure

    @property
    def is_shopify(self) -> bool:
        return self.status in (ShopifyStatus.CONFIRMED, ShopifyStatus.PROBABLE)


@dataclass
class StrictVerification:
    """Result of the strict (catalog-must-be-live) verification"""
    verified: bool
    inactive: bool = False
    reason: Optional[str] = None
    product_count: Optional[int] = None


@dataclass
class HealthProbe:
    """Result of one reachability probe"""
    status: HealthStatus
    reason: str = ""
    http_status: Optional[int] = None

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY


@dataclass
class BusinessModelScores:
    """Business-model scorer output"""
    scores: Dict[BusinessModel, float]
    primary: Optional[BusinessModel] = None
    confidence: float = 0.0
    signals: Dict[str, List[str]] = field(default_factory=dict)

    def scores_by_label(self) -> Dict[str, float]:
        return {label.value: round(score, 4) for label, score in self.scores.items()}


@dataclass
class CountryMatch:
    country: str
    method: str


@dataclass
class ThemeMatch:
    name: str
    tier: ThemeTier
    method: str


@dataclass
class AdvertisingSignals:
    networks: Dict[str, bool] = field(default_factory=dict)

    @property
    def has_ads(self) -> bool:
        return any(self.networks.values())


@dataclass
class StorefrontClassification:
    """Everything the classifiers learned from one homepage snapshot"""
    name: StepResult = field(default_factory=Unknown)
    business_model: StepResult = field(default_factory=Unknown)
    country: StepResult = field(default_factory=Unknown)
    theme: StepResult = field(default_factory=Unknown)
    advertising: StepResult = field(default_factory=Unknown)
    page_status: Optional[int] = None


@dataclass
class StoreRecord:
    """Full catalog record shape accepted by the upsert"""
    canonical_url: str
    source: str = "unknown"
    name: Optional[str] = None
    country_label: Optional[str] = None
    theme_name: Optional[str] = None
    theme_tier: Optional[ThemeTier] = None
    tags: List[str] = field(default_factory=list)
    business_model_scores: Dict[str, float] = field(default_factory=dict)
    primary_business_model: Optional[BusinessModel] = None
    business_model_confidence: float = 0.0
    has_advertising: bool = False
    ad_networks: Dict[str, bool] = field(default_factory=dict)
    shopify_status: ShopifyStatus = ShopifyStatus.UNVERIFIED
    shopify_confidence: int = 0
    fingerprints: Dict[str, bool] = field(default_factory=dict)
    health_status: Optional[HealthStatus] = None
    store_status: StoreStatus = StoreStatus.PENDING
    verified: bool = False
    failed_probe_count: int = 0
    product_count: Optional[int] = None
    tags_locked: bool = False
    next_retry_at: Optional[datetime] = None
    last_classified_at: Optional[datetime] = None
    last_health_check_at: Optional[datetime] = None
    date_added: Optional[datetime] = None
    last_scraped: Optional[datetime] = None
