# src/cache/memory_store.py — v1
"""In-process LRU cache store (default CACHE_BACKEND=memory).

Lives as long as the router that owns it. A lock serializes mutations so
the store stays consistent when handlers run concurrently.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict

from anthropic_proxy.cache.base_cache_store import BaseCacheStore
from anthropic_proxy.core.models import CompletionResponse

logger = logging.getLogger(__name__)


class MemoryCacheStore(BaseCacheStore):
    """Bounded LRU store backed by an OrderedDict."""

    def __init__(self, max_size: int = 100) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._max_size = max_size
        # Least recently used first.
        self._entries: OrderedDict[str, CompletionResponse] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_size(self) -> int:
        return self._max_size

    async def get(self, key: str) -> CompletionResponse | None:
        with self._lock:
            response = self._entries.get(key)
            if response is None:
                return None
            self._entries.move_to_end(key)
            return response

    async def put(self, key: str, response: CompletionResponse) -> None:
        with self._lock:
            self._entries[key] = response
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %s", evicted[:16])

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    async def size(self) -> int:
        with self._lock:
            return len(self._entries)

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()

