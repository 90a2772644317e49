"""
In-process TTL cache.

Used as the fallback store when Redis is not reachable, and as the primary
store in tests and single-process deployments. Values are kept JSON-encoded
so a read returns exactly what was written, and entries are replaced
wholesale on every write.
"""

import fnmatch
import json
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from backoffice.utils.cache.serialization import dumps

logger = logging.getLogger(__name__)

GLOB_CHARS = ("*", "?", "[")


def as_glob(pattern: str) -> str:
    """Treat a pattern without glob characters as a key prefix."""
    if any(ch in pattern for ch in GLOB_CHARS):
        return pattern
    return f"{pattern}*"


class MemoryCache:
    """
    Dict-backed cache with per-entry expiry.

    Expired entries are treated as absent and removed lazily on access. Writes
    also purge every expired entry at most once per sweep_interval, so keys
    that are never read again do not accumulate.
    """

    def __init__(
        self,
        default_ttl: Optional[int] = 5,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = 60.0,
    ):
        """
        Args:
            default_ttl: TTL in seconds for writes without a TTL (None = no expiry)
            clock: Monotonic time source, injectable for tests
            sweep_interval: Minimum seconds between expiry sweeps triggered by writes
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self.sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval
        # key -> (serialized value, expires_at or None)
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _live_entry(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        serialized, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        return serialized

    def get(self, key: str) -> Optional[Any]:
        serialized = self._live_entry(key)
        if serialized is None:
            return None
        return json.loads(serialized)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store value; raises TypeError/ValueError if it is not JSON-serializable."""
        serialized = dumps(value)
        now = self._clock()
        if now >= self._next_sweep:
            self.purge_expired()
        effective_ttl = ttl if ttl else self.default_ttl
        expires_at = now + effective_ttl if effective_ttl else None
        self._entries[key] = (serialized, expires_at)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def keys(self, pattern: str = "*") -> List[str]:
        """Live keys matching a glob pattern (or prefix)."""
        glob = as_glob(pattern)
        return [
            key for key in list(self._entries)
            if fnmatch.fnmatchcase(key, glob) and self._live_entry(key) is not None
        ]

    def delete_pattern(self, pattern: str) -> int:
        glob = as_glob(pattern)
        matched = [key for key in self._entries if fnmatch.fnmatchcase(key, glob)]
        for key in matched:
            del self._entries[key]
        return len(matched)

    def delete_many(self, keys: Iterable[str]) -> int:
        return sum(1 for key in keys if self.delete(key))

    def exists(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def ttl(self, key: str) -> int:
        """Remaining TTL in seconds, -1 if no expiry, -2 if absent (Redis semantics)."""
        if self._live_entry(key) is None:
            return -2
        expires_at = self._entries[key][1]
        if expires_at is None:
            return -1
        return max(0, int(round(expires_at - self._clock())))

    def increment(self, key: str, by: int = 1) -> int:
        current = self.get(key) or 0
        new_value = int(current) + by
        expires_at = self._entries.get(key, (None, None))[1]
        self._entries[key] = (dumps(new_value), expires_at)
        return new_value

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        self._next_sweep = now + self.sweep_interval
        expired = [
            key for key, (_, expires_at) in self._entries.items()
            if expires_at is not None and expires_at <= now
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Memory cache purged {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
