# src/cache/base_cache_store.py — v2
"""Abstract response cache interface.

Implementations are capacity-bounded and evict the least recently used
entry first; reads refresh recency. Entries never expire by time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from anthropic_proxy.core.models import CompletionResponse


class BaseCacheStore(ABC):
    """Unified interface for response cache backends."""

    @property
    @abstractmethod
    def max_size(self) -> int:
        """Maximum number of entries kept."""

    @abstractmethod
    async def get(self, key: str) -> CompletionResponse | None:
        """Retrieve a cached completion by fingerprint, refreshing recency."""

    @abstractmethod
    async def put(self, key: str, response: CompletionResponse) -> None:
        """Store a completion, evicting least recently used entries past capacity."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a cache entry."""

    @abstractmethod
    async def size(self) -> int:
        """Number of entries currently cached."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry."""

    def close(self) -> None:
        """Release backend resources."""
