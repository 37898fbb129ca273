"""
URL canonicalization.

Maps any raw URL string onto the one identity every catalog record is keyed
by: ``https://<host>``. Pure and deterministic; dedup and the upsert's
uniqueness guarantee both rest on it.
"""
import logging
import re
from typing import Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

# Hosted-store subdomains are the store's identity and keep every label
PLATFORM_HOST_SUFFIX = ".myshopify.com"

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_FALLBACK_RE = re.compile(r"^(https?)://([^/?#\s]+)")
_VALID_HOST_RE = re.compile(r"^[a-z0-9](?:[a-z0-9.-]*[a-z0-9])?(?::\d{1,5})?$")


def canonicalize(raw_url: Optional[str]) -> Optional[str]:
    """
    Canonical form of ``raw_url`` or None when it cannot name a storefront.

        canonicalize("http://WWW.Example.com/x?y=1") == "https://example.com"
    """
    if not raw_url or not isinstance(raw_url, str):
        return None
    s = raw_url.strip()
    if not s:
        return None
    if not _SCHEME_RE.match(s):
        if "://" in s:
            return None  # ftp://, javascript://, ...
        s = f"https://{s.lstrip('/')}"

    try:
        parts = urlsplit(s)
        host = parts.hostname
        port = parts.port
    except ValueError:
        host, port = None, None
        parts = None

    if parts is not None and host:
        netloc = host.lower().rstrip(".")
        if port and port != 443 and port != 80:
            netloc = f"{netloc}:{port}"
        return _finish(netloc)

    # urlsplit choked (bad port, stray brackets): best-effort regex extraction
    match = _FALLBACK_RE.match(s.lower())
    if not match:
        return None
    netloc = match.group(2).rsplit("@", 1)[-1]
    logger.debug(f"Regex fallback used for {raw_url!r}")
    return _finish(netloc)


def _finish(netloc: str) -> Optional[str]:
    if netloc.startswith("www.") and not _host_part(netloc).endswith(PLATFORM_HOST_SUFFIX):
        netloc = netloc[4:]
    if not _VALID_HOST_RE.match(netloc):
        return None
    host = _host_part(netloc)
    if "." not in host and host != "localhost":
        return None
    return f"https://{netloc}"


def _host_part(netloc: str) -> str:
    return netloc.split(":", 1)[0]


def extract_host(canonical_url: str) -> str:
    """Host of an already-canonical URL ('https://a.b' -> 'a.b')."""
    return _host_part(canonical_url.split("://", 1)[-1])


def is_platform_subdomain(host: str) -> bool:
    return host.lower().endswith(PLATFORM_HOST_SUFFIX)


def are_equivalent(a: Optional[str], b: Optional[str]) -> bool:
    """Two raw URLs name the same storefront iff their canonical forms match."""
    ca, cb = canonicalize(a), canonicalize(b)
    return ca is not None and ca == cb
