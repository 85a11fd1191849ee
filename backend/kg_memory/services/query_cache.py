"""
In-process cache for directive query responses.

Entries expire after a TTL and the least recently used entry is evicted
once the cache is full. Keys are a hash of the canonical JSON form of the
request parameters.
"""

import hashlib
import json
import logging
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from time import monotonic
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

# Directive queries stay valid for 10 minutes
DEFAULT_CACHE_TTL = 600.0
DEFAULT_CACHE_SIZE = 1000

T = TypeVar("T")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": self.size,
            "hit_rate": round(self.hit_rate, 3),
        }


def make_cache_key(params: dict[str, Any]) -> str:
    """Deterministic key for a parameter mapping."""
    key_json = json.dumps(params, sort_keys=True, default=str)
    return hashlib.sha256(key_json.encode()).hexdigest()[:32]


class QueryCache(Generic[T]):
    """Bounded LRU cache with per-entry expiry."""

    def __init__(
        self,
        max_size: int = DEFAULT_CACHE_SIZE,
        ttl_seconds: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = monotonic,
    ):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        # key -> (value, stored_at); most recently used last
        self._entries: OrderedDict[str, tuple[T, float]] = OrderedDict()
        self._stats = CacheStats()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def max_size(self) -> int:
        return self._max_size

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            self._stats.misses += 1
            return None

        value, stored_at = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[key]
            self._stats.misses += 1
            return None

        self._entries.move_to_end(key)
        self._stats.hits += 1
        return value

    def set(self, key: str, value: T) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = (value, self._clock())
        while len(self._entries) > self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            self._stats.evictions += 1
            logger.debug("Evicted query cache entry %s", evicted)

    def clear(self) -> int:
        """Drop every entry and return how many there were."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def get_stats(self) -> CacheStats:
        self._stats.size = len(self._entries)
        return self._stats
