"""
aiohttp fetcher shared by the verifier, classifiers and health probe.

Every request carries its own timeout. Failures never raise: they come back
as Degraded results so one slow or broken endpoint only costs its own step.

    async with StorefrontFetcher() as fetcher:
        result = await fetcher.fetch("https://store.example", "/cart.js")
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from storefront_radar.core.config import settings
from storefront_radar.core.data_types import FetchedResponse, StorefrontPage
from storefront_radar.core.results import Degraded, Ok, StepResult, Unknown

logger = logging.getLogger(__name__)

__all__ = ["StorefrontFetcher"]


class StorefrontFetcher:
    """
    Async context manager around one aiohttp ClientSession.

    No inline retries; the re-check pass revisits failed stores.
    """

    def __init__(
        self,
        step_timeout: Optional[float] = None,
        page_timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        max_bytes: Optional[int] = None,
    ):
        self.step_timeout = step_timeout or settings.step_timeout_seconds
        self.page_timeout = page_timeout or settings.page_timeout_seconds
        self.max_bytes = max_bytes or settings.max_page_bytes
        self._headers = headers or {
            "User-Agent": settings.user_agent,
            "Accept": "text/html,application/json;q=0.9,*/*;q=0.8",
        }
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        connector = aiohttp.TCPConnector(ssl=False) if settings.ignore_ssl_errors else None
        self.session = aiohttp.ClientSession(headers=self._headers, connector=connector)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None
        return False

    @staticmethod
    def _full_url(base_url: str, path: str = "") -> str:
        if not path:
            return base_url
        if path.startswith("http"):
            return path
        return f"{base_url.rstrip('/')}/{path.lstrip('/')}"

    async def fetch(
        self,
        base_url: str,
        path: str = "",
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> StepResult:
        """
        GET ``base_url + path``. Ok(FetchedResponse) for any HTTP status,
        Degraded on timeout or connection failure.
        """
        if not self.session:
            raise RuntimeError("Fetcher context not entered.")
        url = self._full_url(base_url, path)
        client_timeout = aiohttp.ClientTimeout(total=timeout or self.step_timeout)

        try:
            async with self.session.get(
                url, params=params, timeout=client_timeout, allow_redirects=True, max_redirects=5
            ) as response:
                raw = await self._read_capped(response)
                charset = response.charset or "utf-8"
                text = raw.decode(charset, errors="replace")
                headers = {k.lower(): v for k, v in response.headers.items()}
                return Ok(FetchedResponse(url=str(response.url), status=response.status, headers=headers, text=text))
        except asyncio.TimeoutError:
            logger.debug(f"GET {url} timed out")
            return Degraded("timeout")
        except (aiohttp.ClientError, UnicodeError, LookupError, ValueError) as e:
            logger.debug(f"GET {url} failed: {e}")
            return Degraded(f"{type(e).__name__}: {e}")

    async def _read_capped(self, response: aiohttp.ClientResponse) -> bytes:
        chunks = []
        size = 0
        async for chunk in response.content.iter_chunked(64 * 1024):
            chunks.append(chunk)
            size += len(chunk)
            if size >= self.max_bytes:
                break
        return b"".join(chunks)[:self.max_bytes]

    async def fetch_json(
        self,
        base_url: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> StepResult:
        """
        GET and parse JSON. Ok(parsed) on a 200 with a JSON body,
        Unknown for other statuses or non-JSON bodies, Degraded on network failure.
        """
        result = await self.fetch(base_url, path, params=params, timeout=timeout)
        if not result.is_ok:
            return result
        response: FetchedResponse = result.value
        if response.status != 200:
            return Unknown(f"http_{response.status}")
        data = response.json_body()
        if data is None:
            return Unknown("not_json")
        return Ok(data)

    async def fetch_page(self, base_url: str, with_meta: bool = True) -> StepResult:
        """
        Homepage snapshot for the classifiers: root HTML plus /meta.json,
        requested concurrently. Statuses >= 500 count as unreachable.
        """
        if with_meta:
            root, meta = await asyncio.gather(
                self.fetch(base_url, timeout=self.page_timeout),
                self.fetch_json(base_url, "/meta.json"),
            )
        else:
            root, meta = await self.fetch(base_url, timeout=self.page_timeout), Unknown("skipped")

        if not root.is_ok:
            return root
        response: FetchedResponse = root.value
        if response.status >= 500:
            return Degraded(f"http_{response.status}")
        meta_payload = meta.value if meta.is_ok and isinstance(meta.value, dict) else None
        return Ok(StorefrontPage(
            url=base_url,
            status=response.status,
            html=response.text,
            headers=response.headers,
            meta=meta_payload,
        ))
