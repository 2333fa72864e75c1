# src/proxy/state.py — v1
"""Initialization input, credential store and per-instance proxy context.

The credential store is resolved once from the initialization message
merged over Settings, and is immutable afterwards. ProxyContext bundles
it with the cache, client and catalog so that several independent
routers can coexist in one process.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, PositiveInt, SecretStr, ValidationError

from anthropic_proxy.cache.base_cache_store import BaseCacheStore
from anthropic_proxy.cache.cache_factory import create_cache_store
from anthropic_proxy.config.settings import ConfigurationError, Settings, load_settings
from anthropic_proxy.core.models import summarize_validation_error
from anthropic_proxy.llm.anthropic_client import AnthropicClient
from anthropic_proxy.llm.base_client import BaseCompletionClient
from anthropic_proxy.llm.catalog import DEFAULT_CATALOG, ModelCatalog
from anthropic_proxy.llm.retry import RetryConfig, build_retry_configs

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    """Router lifecycle. There is no modeled shutdown state."""

    UNINITIALIZED = "Uninitialized"
    READY = "Ready"


class ProxyConfig(BaseModel):
    """Recognized options of the initialization ``config`` object."""

    model_config = ConfigDict(extra="ignore")

    default_model: str | None = None
    max_cache_size: PositiveInt | None = None
    timeout_ms: PositiveInt | None = None


class InitData(BaseModel):
    """Initialization message received once at startup."""

    anthropic_api_key: str | None = None
    store_id: str | None = None
    config: ProxyConfig | None = None

    @classmethod
    def parse(cls, data: bytes | str | dict[str, Any] | None) -> InitData:
        """Parse raw initialization input.

        Raises:
            ConfigurationError: If the input is not a valid init document.
        """
        if data is None:
            return cls()
        try:
            if isinstance(data, (bytes, bytearray, str)):
                return cls.model_validate_json(data)
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Failed to parse init data: {summarize_validation_error(e)}"
            ) from e


class CredentialStore(BaseModel):
    """API key plus resolved configuration, fixed for the router's lifetime."""

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr
    store_id: str | None = None
    default_model: str
    max_cache_size: int
    timeout_ms: int
    default_max_tokens: int
    max_retries: int = 0
    base_url: str
    api_version: str

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000


def resolve_credentials(
    init: InitData,
    settings: Settings,
    catalog: ModelCatalog = DEFAULT_CATALOG,
) -> CredentialStore:
    """Merge init input over settings defaults.

    Raises:
        ConfigurationError: If no API key is available or the default model
            is not in the catalog.
    """
    api_key = (init.anthropic_api_key or settings.anthropic_api_key or "").strip()
    if not api_key:
        raise ConfigurationError("anthropic_api_key is required")

    config = init.config or ProxyConfig()
    default_model = config.default_model or settings.default_model
    if default_model not in catalog:
        raise ConfigurationError(f"Default model {default_model!r} is not in the catalog")

    return CredentialStore(
        api_key=SecretStr(api_key),
        store_id=init.store_id,
        default_model=default_model,
        max_cache_size=config.max_cache_size or settings.max_cache_size,
        timeout_ms=config.timeout_ms or settings.timeout_ms,
        default_max_tokens=settings.default_max_tokens,
        max_retries=settings.max_retries,
        base_url=settings.anthropic_base_url,
        api_version=settings.anthropic_api_version,
    )


@dataclass
class ProxyContext:
    """Everything a Ready router owns."""

    credentials: CredentialStore
    cache: BaseCacheStore
    client: BaseCompletionClient
    catalog: ModelCatalog = DEFAULT_CATALOG
    retry_configs: dict[str, RetryConfig] = field(default_factory=dict)


def build_context(
    init: InitData,
    settings: Settings | None = None,
    *,
    client: BaseCompletionClient | None = None,
    cache: BaseCacheStore | None = None,
    catalog: ModelCatalog = DEFAULT_CATALOG,
) -> ProxyContext:
    """Resolve credentials and assemble a ProxyContext.

    Args:
        init: Parsed initialization input.
        settings: Deployment defaults. Loaded from .env if None.
        client: Completion client. Defaults to AnthropicClient.
        cache: Response cache. Defaults to the configured backend.
        catalog: Model catalog.

    Raises:
        ConfigurationError: If credentials cannot be resolved.
    """
    settings = settings or load_settings()
    credentials = resolve_credentials(init, settings, catalog)
    context = ProxyContext(
        credentials=credentials,
        cache=cache or create_cache_store(credentials, settings),
        client=client or AnthropicClient(),
        catalog=catalog,
        retry_configs=build_retry_configs(credentials.max_retries),
    )
    logger.info(
        "Proxy context ready: default_model=%s, max_cache_size=%d, timeout_ms=%d, store_id=%s",
        credentials.default_model, credentials.max_cache_size,
        credentials.timeout_ms, credentials.store_id,
    )
    return context


def dump_init_data(init: InitData) -> str:
    """Serialize init data without exposing the key (for diagnostics)."""
    data = init.model_dump(exclude_none=True)
    if "anthropic_api_key" in data:
        data["anthropic_api_key"] = "***"
    return json.dumps(data, sort_keys=True)
