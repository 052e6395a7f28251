from __future__ import annotations

import time
from collections import OrderedDict
from typing import Callable, Generic, Hashable, Optional, Tuple, TypeVar

V = TypeVar("V")


class BoundedTTLCache(Generic[V]):
    """
    Bounded cache with per-lookup max age.

    - eviction: FIFO on insertion order; writing a key counts as a fresh insertion.
    - expiry: an entry older than `max_age_ms` at lookup is dropped and reported as a miss.
    - not thread-safe.
    """

    def __init__(
        self,
        capacity: int = 1000,
        default_max_age_ms: float = 300_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self.capacity = int(capacity)
        self.default_max_age_ms = float(default_max_age_ms)
        self._clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[float, V]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def get(self, key: Hashable, max_age_ms: Optional[float] = None) -> Optional[V]:
        hit = self._entries.get(key)
        if hit is None:
            return None
        stored_at, value = hit
        limit = self.default_max_age_ms if max_age_ms is None else float(max_age_ms)
        if (self._clock() - stored_at) * 1000.0 > limit:
            del self._entries[key]
            return None
        return value

    def put(self, key: Hashable, value: V) -> None:
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = (self._clock(), value)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()
