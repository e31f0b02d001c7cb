"""
ATH price cache.

Keeps all-time-high price lookups for 24 hours so that repeated analyses in
one process do not hit the rate-limited price APIs again. Entries live in
memory only.
"""

import time
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from .models import AthRecord

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_MAX_ENTRIES = 1000


@dataclass
class CacheEntry:
    ath_record: AthRecord
    cached_at: float


class AthCache:
    """Thread-safe TTL cache from token address to AthRecord."""

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 max_entries: int = DEFAULT_MAX_ENTRIES,
                 clock: Callable[[], float] = time.time):
        """
        Args:
            ttl_seconds: Age after which an entry is treated as missing
            max_entries: Size bound; the oldest entries are evicted beyond it
            clock: Source of the current time in seconds
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self.lock = threading.Lock()

    @staticmethod
    def _key(token_address: str) -> str:
        return token_address.strip().lower()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.cached_at > self.ttl_seconds

    def get(self, token_address: str) -> Optional[AthRecord]:
        """Return the cached ATH record, or None if missing or stale.

        Stale entries stay in place until overwritten or evicted.
        """
        key = self._key(token_address)
        with self.lock:
            entry = self._entries.get(key)
            if entry is None or self._is_expired(entry, self._clock()):
                self._misses += 1
                logger.debug(f"ATH cache miss: {key}")
                return None

            self._hits += 1
            logger.debug(f"ATH cache hit: {key}")
            return entry.ath_record

    def set(self, token_address: str, ath_price: float,
            ath_date: Optional[datetime] = None) -> None:
        """Store an ATH price. Non-positive prices are ignored."""
        if not ath_price or ath_price <= 0:
            return

        key = self._key(token_address)
        with self.lock:
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict(now)
            self._entries[key] = CacheEntry(
                ath_record=AthRecord(ath_price=ath_price, ath_date=ath_date),
                cached_at=now,
            )
            logger.debug(f"ATH cache set: {key} = {ath_price}")

    def _evict(self, now: float) -> None:
        # Caller holds the lock
        expired = [k for k, e in self._entries.items()
                   if self._is_expired(e, now)]
        for key in expired:
            del self._entries[key]

        while len(self._entries) >= self.max_entries:
            oldest = min(self._entries,
                         key=lambda k: self._entries[k].cached_at)
            del self._entries[oldest]
            logger.debug(f"Evicted ATH cache entry: {oldest}")

    def clear(self) -> None:
        with self.lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, int]:
        """Hit/miss counters and current size."""
        with self.lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._entries),
            }

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)


# Global cache instance
_cache_instance: Optional[AthCache] = None


def get_ath_cache(ttl_seconds: float = DEFAULT_TTL_SECONDS,
                  max_entries: int = DEFAULT_MAX_ENTRIES) -> AthCache:
    """Get or create the process-wide ATH cache."""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = AthCache(ttl_seconds=ttl_seconds,
                                   max_entries=max_entries)
        logger.info(
            f"ATH cache initialized (ttl={ttl_seconds}s, max_entries={max_entries})")
    return _cache_instance
