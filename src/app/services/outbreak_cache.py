import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from app.core.config import settings

logger = logging.getLogger(__name__)


ALL = "all"


def cache_key(disease_type: Optional[str], geographic_unit_id: Optional[int]) -> str:
    return f"{disease_type or ALL}:{geographic_unit_id or ALL}"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    computed_at: float


class OutbreakResultCache:
    """
    In-memory scan results keyed by the scan filters.

    Entries live for ``ttl_seconds``; once more than ``max_entries`` are
    resident the one computed longest ago is evicted. A TTL of zero disables
    caching.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = settings.OUTBREAK_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.max_entries = settings.OUTBREAK_CACHE_MAX_ENTRIES if max_entries is None else max_entries
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0 and self.max_entries > 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        age = self.clock() - entry.computed_at
        if age < self.ttl_seconds:
            logger.info(f"Cache HIT for {key} (age: {age:.0f}s)")
            return entry

        logger.info(f"Cache EXPIRED for {key}")
        del self._entries[key]
        return None

    def put(self, key: str, payload: Any) -> CacheEntry:
        entry = CacheEntry(key=key, payload=payload, computed_at=self.clock())
        if not self.enabled:
            return entry

        self._entries[key] = entry
        logger.info(f"Cached outbreak scan for {key}")

        if len(self._entries) > self.max_entries:
            oldest = min(self._entries.values(), key=lambda e: e.computed_at)
            del self._entries[oldest.key]
            lock = self._locks.get(oldest.key)
            if lock is not None and not lock.locked():
                del self._locks[oldest.key]
            logger.info(f"Evicted oldest cache entry {oldest.key}")

        return entry

    def clear(self) -> None:
        self._entries.clear()
        self._locks = {key: lock for key, lock in self._locks.items() if lock.locked()}

    async def get_or_compute(
        self, key: str, compute: Callable[[], Awaitable[Any]]
    ) -> Tuple[Any, bool]:
        """
        Returns ``(payload, hit)``. Concurrent callers for the same key wait
        for the first one to finish and then read its stored result.
        """
        entry = self.get(key)
        if entry is not None:
            return entry.payload, True

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            entry = self.get(key)
            if entry is not None:
                return entry.payload, True

            payload = await compute()
            self.put(key, payload)
            return payload, False
