"""
dex/rate_cache.py - TTL cache for exchange rates.

KEY POLICY
==========
Keys are the ordered triple (token_from, token_to, venue_name).
A->B and B->A are separate entries read from the pool independently;
they are never derived from each other as reciprocals, since swap fees
make the two directions genuinely different.

Expiry is checked on read. Stale entries stay in the map until the next
fetch for the same key overwrites them.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from core.constants import DEFAULT_CACHE_TTL_SECONDS
from core.models import Token, Venue
from core.time import is_fresh, monotonic

CacheKey = Tuple[str, str, str]


def make_cache_key(token_from: Token, token_to: Token, venue: Venue) -> CacheKey:
    return (token_from.address_lower, token_to.address_lower, venue.name)


@dataclass
class CacheEntry:
    key: CacheKey
    rate: float
    fetched_at: float


class RateCache:
    """
    Keyed rate map with read-time TTL.

    Not thread-safe. All access happens on the event loop, and callers never
    await between a lookup and the matching write.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: CacheKey) -> Optional[float]:
        """Return the cached rate if fresh, else None."""
        entry = self._entries.get(key)
        if entry is not None and is_fresh(entry.fetched_at, self.ttl_seconds, self._clock()):
            self.hits += 1
            return entry.rate
        self.misses += 1
        return None

    def set(self, key: CacheKey, rate: float) -> CacheEntry:
        entry = CacheEntry(key=key, rate=rate, fetched_at=self._clock())
        self._entries[key] = entry
        return entry

    def entry(self, key: CacheKey) -> Optional[CacheEntry]:
        """Raw entry, fresh or not."""
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries
