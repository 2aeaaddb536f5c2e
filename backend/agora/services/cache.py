"""
In-memory TTL + LRU cache.

Used to memoise AI analysis results so re-analysing the same draft text
(the form re-submits while the user edits) doesn't cost another model call.

Process-local and unsynchronized: every worker has its own copy and it
is gone on restart. Create one per app (see agora.main) and inject it.
"""

import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional


class TTLCache:
    """
    Bounded cache where entries expire after ttl_seconds and the least
    recently used entry is evicted once max_size is exceeded.
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # key -> (stored_at, value), ordered oldest-used first
        self._entries: "OrderedDict[Hashable, tuple[float, Any]]" = OrderedDict()

    def get(self, key: Hashable, default: Optional[Any] = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default

        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return default

        self._entries.move_to_end(key)
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)


_MISSING = object()
