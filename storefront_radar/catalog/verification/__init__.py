"""
Platform verification, strict verification and reachability probing.
"""

from storefront_radar.catalog.verification.platform_verifier import PlatformVerifier
from storefront_radar.catalog.verification.confidence import ConfidenceScorer
from storefront_radar.catalog.verification.strict import StrictVerifier
from storefront_radar.catalog.verification.health import HealthProber

__all__ = [
    "PlatformVerifier",
    "ConfidenceScorer",
    "StrictVerifier",
    "HealthProber",
]
