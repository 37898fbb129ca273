"""
In-process key/value cache with per-entry TTL.

Owned by whoever creates it and handed to collaborators explicitly
(verifier verdicts, catalog listings). There is no module-level instance.
"""
import logging
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class TTLCache:
    """
    Key -> value store where each entry expires ``ttl`` seconds after it was set.

    When ``max_entries`` is exceeded the entries closest to expiry are evicted
    first (10% of capacity at a time).
    """

    def __init__(
        self,
        ttl: float,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return default
        return value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._entries[key] = (self._clock() + ttl, value)
        if len(self._entries) > self.max_entries:
            self._evict()

    def __contains__(self, key: Hashable) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def __len__(self) -> int:
        return len(self._entries)

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every string key (or tuple key whose first item) starts with ``prefix``."""
        doomed = [k for k in self._entries if _key_head(k).startswith(prefix)]
        for k in doomed:
            del self._entries[k]
        if doomed:
            logger.debug(f"Invalidated {len(doomed)} cache entries under '{prefix}'")
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def _evict(self) -> None:
        now = self._clock()
        for k in [k for k, (exp, _) in self._entries.items() if exp <= now]:
            del self._entries[k]
        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            return
        batch = max(overflow, self.max_entries // 10)
        for k, _ in sorted(self._entries.items(), key=lambda item: item[1][0])[:batch]:
            del self._entries[k]


def _key_head(key: Hashable) -> str:
    if isinstance(key, tuple) and key:
        key = key[0]
    return key if isinstance(key, str) else ""
