# src/cache/cache_factory.py — v3
"""Factory for response cache instantiation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from anthropic_proxy.cache.base_cache_store import BaseCacheStore
from anthropic_proxy.config.settings import Settings

if TYPE_CHECKING:
    from anthropic_proxy.proxy.state import CredentialStore


def create_cache_store(
    credentials: CredentialStore,
    settings: Settings | None = None,
) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        credentials: Resolved credential store (capacity and store id).
        settings: Application settings. Defaults to the memory backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from anthropic_proxy.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore(max_size=credentials.max_cache_size)

    if backend == "sqlite":
        from anthropic_proxy.cache.sqlite_store import DEFAULT_NAMESPACE, SqliteCacheStore
        return SqliteCacheStore(
            db_path=settings.cache_db_path,
            max_size=credentials.max_cache_size,
            namespace=credentials.store_id or DEFAULT_NAMESPACE,
        )

    raise ValueError(f"Unsupported cache backend: {backend!r}")
