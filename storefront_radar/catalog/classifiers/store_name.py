"""Display-name extraction: <title>, then og:title, then the first <h1>, then the host."""
from typing import Optional

from storefront_radar.catalog.canonicalizer import PLATFORM_HOST_SUFFIX, extract_host
from storefront_radar.core.data_types import StorefrontPage
from storefront_radar.core.utils import clean_store_name


def name_from_host(url: str) -> Optional[str]:
    host = extract_host(url) if "://" in url else url.lower()
    if not host:
        return None
    if host.endswith(PLATFORM_HOST_SUFFIX):
        host = host[: -len(PLATFORM_HOST_SUFFIX)]
    return host or None


def extract_store_name(page: StorefrontPage) -> Optional[str]:
    soup = page.soup

    candidates = []
    if soup.title is not None and soup.title.string:
        candidates.append(soup.title.string)
    og_title = soup.find("meta", attrs={"property": "og:title"})
    if og_title is not None:
        candidates.append(og_title.get("content") or "")
    h1 = soup.find("h1")
    if h1 is not None:
        candidates.append(h1.get_text(" "))

    for candidate in candidates:
        name = clean_store_name(candidate)
        if name:
            return name
    return name_from_host(page.url)
