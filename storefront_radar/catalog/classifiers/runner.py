"""
Classification runner.

Fetches the homepage once, then runs every detector against that single
snapshot concurrently. Detectors are CPU-bound parsing, so each runs in a
worker thread; one detector raising never affects the others.
"""
import asyncio
import logging
from typing import Any, Callable, Dict

from storefront_radar.catalog.classifiers.advertising import detect_advertising
from storefront_radar.catalog.classifiers.business_model import score_business_model
from storefront_radar.catalog.classifiers.country import detect_country
from storefront_radar.catalog.classifiers.store_name import extract_store_name, name_from_host
from storefront_radar.catalog.classifiers.theme import detect_theme
from storefront_radar.catalog.ops.fetcher import StorefrontFetcher
from storefront_radar.core.data_types import StorefrontClassification, StorefrontPage
from storefront_radar.core.results import Degraded, Ok, StepResult, Unknown

logger = logging.getLogger(__name__)

DETECTORS: Dict[str, Callable[[StorefrontPage], Any]] = {
    "name": extract_store_name,
    "business_model": score_business_model,
    "country": detect_country,
    "theme": detect_theme,
    "advertising": detect_advertising,
}


def _as_result(step: str, url: str, outcome: Any) -> StepResult:
    if isinstance(outcome, BaseException):
        logger.warning(f"{url}: {step} detector failed: {outcome}")
        return Degraded(f"{type(outcome).__name__}: {outcome}")
    if outcome is None:
        return Unknown("no_match")
    return Ok(outcome)


async def classify_page(page: StorefrontPage) -> StorefrontClassification:
    """Run every detector against an already-fetched snapshot."""
    # Parse once up front so worker threads share the cached soup
    await asyncio.to_thread(lambda: (page.soup, page.html_lower))

    steps = list(DETECTORS.items())
    outcomes = await asyncio.gather(
        *(asyncio.to_thread(fn, page) for _, fn in steps),
        return_exceptions=True,
    )
    results = {step: _as_result(step, page.url, outcome) for (step, _), outcome in zip(steps, outcomes)}
    return StorefrontClassification(page_status=page.status, **results)


async def classify_storefront(fetcher: StorefrontFetcher, canonical_url: str) -> StorefrontClassification:
    """
    Fetch and classify one storefront. An unreachable page leaves every
    classifier Degraded and falls back to the host for the display name.
    """
    page_result = await fetcher.fetch_page(canonical_url)
    if not page_result.is_ok:
        reason = page_result.reason or "unreachable"
        logger.info(f"{canonical_url}: homepage unavailable ({reason}), classifiers skipped")
        fallback = name_from_host(canonical_url)
        return StorefrontClassification(
            name=Ok(fallback) if fallback else Unknown(reason),
            business_model=Degraded(reason),
            country=Degraded(reason),
            theme=Degraded(reason),
            advertising=Degraded(reason),
        )
    return await classify_page(page_result.value)
