"""In-process TTL cache for API response bodies."""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Any, Callable


class ResponseCache:
    """Bounded TTL cache keyed by request path and query string.

    Entries are evicted least-recently-used first once ``max_entries`` is
    exceeded. Writes are last-write-wins.
    """

    def __init__(
        self,
        *,
        default_ttl: int = 300,
        max_entries: int = 512,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = max(0, int(default_ttl))
        self._max_entries = max(1, int(max_entries))
        self._clock = clock
        self._data: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()

    async def start(self) -> None:
        self._data.clear()

    async def close(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: str) -> Any | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._data.pop(key, None)
            return None
        self._data.move_to_end(key)
        return value

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        ttl_seconds = self._default_ttl if ttl is None else int(ttl)
        if ttl_seconds <= 0:
            self._data.pop(key, None)
            return
        self._data[key] = (self._clock() + ttl_seconds, value)
        self._data.move_to_end(key)
        while len(self._data) > self._max_entries:
            self._data.popitem(last=False)
