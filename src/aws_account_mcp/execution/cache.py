"""In-memory TTL memoization for list results.

Keys are tuples whose first element is the resource family, so a mutating
action can drop every cached listing of that family at once.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable

CacheKey = tuple[Hashable, ...]


class TTLCache:
    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 512,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[CacheKey, tuple[object, float]] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: CacheKey) -> object | None:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at >= self._ttl:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: CacheKey, value: object) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = (value, self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, family: str | None = None) -> int:
        """Remove entries of one family, or everything when ``family`` is ``None``."""
        with self._lock:
            if family is None:
                removed = len(self._entries)
                self._entries.clear()
                return removed
            stale = [key for key in self._entries if key and key[0] == family]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def invalidate_identity(self, identity: str) -> int:
        with self._lock:
            stale = [
                key
                for key in self._entries
                if len(key) > 1 and isinstance(key[1], str) and _identity_matches(key[1], identity)
            ]
            for key in stale:
                del self._entries[key]
            return len(stale)


def _identity_matches(cached_identity: str, identity: str) -> bool:
    return cached_identity == identity or cached_identity.endswith(f":{identity}")
