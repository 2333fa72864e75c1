# src/proxy/router.py — v2
"""Request router: the single entry point for inbound envelopes.

Usage:
    router = RequestRouter()
    router.initialize({"anthropic_api_key": "sk-..."})
    response = await router.handle(envelope_bytes)

``handle`` never raises. Every failure is returned as an Error envelope
that echoes the inbound request_id and version.
"""

from __future__ import annotations

import logging
from typing import Any

from anthropic_proxy.cache.base_cache_store import BaseCacheStore
from anthropic_proxy.cache.fingerprint import compute_fingerprint
from anthropic_proxy.config.settings import ConfigurationError, Settings
from anthropic_proxy.core.errors import (
    ErrorKind,
    InvalidInputError,
    NotInitializedError,
    ProxyError,
    UnknownModelError,
)
from anthropic_proxy.core.models import (
    ChatCompletionRequestEnvelope,
    CompletionRequest,
    CompletionResponseEnvelope,
    ErrorResponseEnvelope,
    ListModelsRequestEnvelope,
    ModelListResponseEnvelope,
    ResponseEnvelope,
    dump_response,
    parse_request,
    peek_correlation,
)
from anthropic_proxy.llm.base_client import BaseCompletionClient
from anthropic_proxy.llm.catalog import DEFAULT_CATALOG, ModelCatalog
from anthropic_proxy.llm.retry import with_retry
from anthropic_proxy.logging.context import request_context, set_operation
from anthropic_proxy.proxy.state import (
    InitData,
    LifecycleState,
    ProxyContext,
    build_context,
    dump_init_data,
)

logger = logging.getLogger(__name__)

_VALID_ROLES = frozenset({"user", "assistant"})
# Fields the catalog check and validation bind; additional_params may not replace them.
_RESERVED_PARAMS = frozenset({"model", "messages", "max_tokens"})


class RequestRouter:
    """Validates envelopes, consults the cache and dispatches to the client.

    Args:
        settings: Deployment defaults. Loaded from .env on initialize if None.
        client: Completion client override (tests inject stubs here).
        cache: Response cache override.
        catalog: Model catalog.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: BaseCompletionClient | None = None,
        cache: BaseCacheStore | None = None,
        catalog: ModelCatalog = DEFAULT_CATALOG,
    ) -> None:
        self._settings = settings
        self._client = client
        self._cache = cache
        self._catalog = catalog
        self._context: ProxyContext | None = None

    @classmethod
    def from_context(cls, context: ProxyContext) -> RequestRouter:
        """Build a Ready router around an already assembled context."""
        router = cls(client=context.client, cache=context.cache, catalog=context.catalog)
        router._context = context
        return router

    @property
    def state(self) -> LifecycleState:
        if self._context is None:
            return LifecycleState.UNINITIALIZED
        return LifecycleState.READY

    @property
    def context(self) -> ProxyContext | None:
        return self._context

    def initialize(self, init_data: InitData | bytes | str | dict[str, Any] | None) -> None:
        """Transition Uninitialized -> Ready.

        Raises:
            ConfigurationError: If the init data is invalid, no API key is
                available, or the router is already Ready. The state is
                unchanged on failure.
        """
        if self._context is not None:
            raise ConfigurationError("Router is already initialized")

        init = init_data if isinstance(init_data, InitData) else InitData.parse(init_data)
        logger.debug("Initializing router with %s", dump_init_data(init))
        self._context = build_context(
            init,
            self._settings,
            client=self._client,
            cache=self._cache,
            catalog=self._catalog,
        )
        logger.info("Router ready")

    async def handle(self, message: bytes | str | dict[str, Any]) -> ResponseEnvelope:
        """Handle one inbound envelope and return its response envelope."""
        request_id, version = peek_correlation(message)
        store_id = self._context.credentials.store_id if self._context else None

        with request_context(request_id, store_id):
            try:
                return await self._dispatch(message)
            except ProxyError as e:
                logger.warning("Request failed (%s): %s", e.kind.value, e.message)
                return ErrorResponseEnvelope.from_error(e, request_id, version)
            except Exception as e:
                logger.exception("Unexpected error while handling request")
                return ErrorResponseEnvelope(
                    version=version,
                    request_id=request_id,
                    error=f"Internal error: {e}",
                    error_kind=ErrorKind.INTERNAL,
                )

    async def handle_message(self, data: bytes | str) -> bytes:
        """Bytes in, bytes out wrapper around ``handle``."""
        return dump_response(await self.handle(data))

    async def aclose(self) -> None:
        """Release the client and cache resources of a Ready router."""
        if self._context is None:
            return
        await self._context.client.aclose()
        self._context.cache.close()

    # --- Dispatch ---

    async def _dispatch(self, message: bytes | str | dict[str, Any]) -> ResponseEnvelope:
        if self._context is None:
            raise NotInitializedError()

        envelope = parse_request(message)
        set_operation(envelope.operation_type)

        if isinstance(envelope, ListModelsRequestEnvelope):
            return self._list_models(envelope)
        return await self._chat_completion(envelope, self._context)

    def _list_models(self, envelope: ListModelsRequestEnvelope) -> ModelListResponseEnvelope:
        models = self._catalog.list()
        logger.debug("Listing %d models", len(models))
        return ModelListResponseEnvelope(
            version=envelope.version,
            request_id=envelope.request_id,
            models=models,
        )

    async def _chat_completion(
        self,
        envelope: ChatCompletionRequestEnvelope,
        context: ProxyContext,
    ) -> CompletionResponseEnvelope:
        credentials = context.credentials
        request = envelope.completion_request
        if request.model is None:
            request = request.model_copy(update={"model": credentials.default_model})

        descriptor = context.catalog.get(request.model)
        if descriptor is None:
            raise UnknownModelError(request.model)
        validate_completion_request(request)

        fingerprint = compute_fingerprint(request, credentials.default_max_tokens)
        cached = await context.cache.get(fingerprint)
        if cached is not None:
            logger.info("Cache hit: %s", fingerprint[:12])
            return CompletionResponseEnvelope(
                version=envelope.version,
                request_id=envelope.request_id,
                completion=cached,
            )

        logger.debug("Cache miss: %s", fingerprint[:12])
        completion = await with_retry(
            context.client.complete,
            request,
            credentials,
            retry_configs=context.retry_configs,
        )
        await context.cache.put(fingerprint, completion)

        if descriptor.pricing is not None:
            logger.info(
                "Completion %s: %d in / %d out tokens, est. cost $%.6f",
                completion.id,
                completion.usage.input_tokens,
                completion.usage.output_tokens,
                descriptor.pricing.estimate_cost(completion.usage),
            )

        return CompletionResponseEnvelope(
            version=envelope.version,
            request_id=envelope.request_id,
            completion=completion,
        )


def validate_completion_request(request: CompletionRequest) -> None:
    """Semantic checks applied after parsing and before the cache lookup.

    Raises:
        InvalidInputError: On the first violated constraint.
    """
    if not request.messages:
        raise InvalidInputError("Message sequence must not be empty")
    for i, message in enumerate(request.messages):
        if message.role not in _VALID_ROLES:
            raise InvalidInputError(
                f"messages[{i}].role must be 'user' or 'assistant', got {message.role!r}"
            )
        if not message.content:
            raise InvalidInputError(f"messages[{i}].content must not be empty")
    if request.max_tokens is not None and request.max_tokens <= 0:
        raise InvalidInputError("max_tokens must be a positive integer")
    if request.temperature is not None and not 0.0 <= request.temperature <= 1.0:
        raise InvalidInputError("temperature must be between 0 and 1")
    if request.top_p is not None and not 0.0 <= request.top_p <= 1.0:
        raise InvalidInputError("top_p must be between 0 and 1")
    if request.tool_choice is not None and request.tool_choice.type in ("any", "tool"):
        if not request.tools:
            raise InvalidInputError(
                f"tool_choice {request.tool_choice.type!r} requires at least one tool"
            )
        if request.tool_choice.name is not None and request.tool_choice.name not in {
            t.name for t in request.tools
        }:
            raise InvalidInputError(
                f"tool_choice names unknown tool {request.tool_choice.name!r}"
            )
    reserved = sorted(_RESERVED_PARAMS.intersection(request.additional_params or {}))
    if reserved:
        raise InvalidInputError(
            f"additional_params may not override {', '.join(reserved)}"
        )
