# src/llm/anthropic_client.py — v2
"""Anthropic Messages API client implementing BaseCompletionClient.

Uses the official anthropic SDK with SDK-level retries disabled, so each
invocation performs at most one outbound call. The response body is read
raw and validated here, which keeps a malformed upstream success from
turning into a partially populated completion.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import TYPE_CHECKING, Any

import anthropic
import httpx
from pydantic import ValidationError

from anthropic_proxy.core.errors import (
    InvalidInputError,
    MalformedUpstreamResponseError,
    ProviderError,
    TransportError,
    UpstreamTimeoutError,
)
from anthropic_proxy.core.models import (
    CompletionRequest,
    CompletionResponse,
    TextBlock,
    ToolUseBlock,
    dump_content,
    summarize_validation_error,
)
from anthropic_proxy.llm.base_client import BaseCompletionClient

if TYPE_CHECKING:
    from anthropic_proxy.proxy.state import CredentialStore

logger = logging.getLogger(__name__)

# Body fields the SDK takes as named arguments; everything else is sent
# through extra_body untouched.
_SDK_ARGUMENTS = ("model", "max_tokens", "messages")


class AnthropicClient(BaseCompletionClient):
    """Adapter for the Anthropic Messages API."""

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._http_client = http_client
        self._clients: dict[tuple[str, str], anthropic.AsyncAnthropic] = {}

    @property
    def provider_name(self) -> str:
        return "anthropic"

    async def complete(
        self,
        request: CompletionRequest,
        credentials: CredentialStore,
    ) -> CompletionResponse:
        """Text completion via the Messages API, bounded by ``timeout_ms``."""
        body = build_request_body(request, credentials.default_max_tokens)
        params = {name: body.pop(name) for name in _SDK_ARGUMENTS}
        headers = {}
        if request.anthropic_version:
            headers["anthropic-version"] = request.anthropic_version

        client = self._client_for(credentials)
        logger.info("Generating completion with model: %s", params["model"])

        start = time.monotonic()
        try:
            raw = await asyncio.wait_for(
                client.messages.with_raw_response.create(
                    **params,
                    extra_body=body or None,
                    extra_headers=headers or None,
                    timeout=credentials.timeout_s,
                ),
                timeout=credentials.timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamTimeoutError(credentials.timeout_ms) from e
        except anthropic.APITimeoutError as e:
            raise UpstreamTimeoutError(credentials.timeout_ms) from e
        except anthropic.APIStatusError as e:
            raise _provider_error(e) from e
        except anthropic.APIConnectionError as e:
            raise TransportError(f"HTTP error: {e}") from e
        latency_ms = int((time.monotonic() - start) * 1000)

        completion = parse_completion(raw.http_response.content)
        logger.debug(
            "Upstream completion %s in %d ms (%d in / %d out tokens)",
            completion.id, latency_ms,
            completion.usage.input_tokens, completion.usage.output_tokens,
        )
        return completion

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()

    # --- Internal helpers ---

    def _client_for(self, credentials: CredentialStore) -> anthropic.AsyncAnthropic:
        """SDK client per (key, base URL), created on first use."""
        api_key = credentials.api_key.get_secret_value()
        cache_key = (api_key, credentials.base_url)
        client = self._clients.get(cache_key)
        if client is None:
            client = anthropic.AsyncAnthropic(
                api_key=api_key,
                base_url=credentials.base_url,
                timeout=credentials.timeout_s,
                max_retries=0,
                default_headers={"anthropic-version": credentials.api_version},
                http_client=self._http_client,
            )
            self._clients[cache_key] = client
        return client


def build_request_body(
    request: CompletionRequest, default_max_tokens: int = 4096,
) -> dict[str, Any]:
    """Map a normalized request onto the Messages API body.

    Optional fields are only sent when set. ``disable_parallel_tool_use``
    travels inside ``tool_choice``, which defaults to ``auto`` when only the
    flag is given. ``additional_params`` entries are copied last, in their
    original order.
    """
    if request.model is None:
        raise InvalidInputError("Completion request has no model")

    body: dict[str, Any] = {
        "model": request.model,
        "max_tokens": (
            request.max_tokens if request.max_tokens is not None else default_max_tokens
        ),
        "messages": [
            {"role": m.role, "content": dump_content(m.content)} for m in request.messages
        ],
    }
    if request.temperature is not None:
        body["temperature"] = request.temperature
    if request.system is not None:
        body["system"] = request.system
    if request.top_p is not None:
        body["top_p"] = request.top_p
    if request.tools is not None:
        body["tools"] = [t.model_dump(exclude_none=True) for t in request.tools]

    tool_choice = (
        request.tool_choice.model_dump(exclude_none=True) if request.tool_choice else None
    )
    if request.disable_parallel_tool_use is not None:
        tool_choice = tool_choice or {"type": "auto"}
        tool_choice["disable_parallel_tool_use"] = request.disable_parallel_tool_use
    if tool_choice is not None:
        body["tool_choice"] = tool_choice

    if request.additional_params:
        body.update(request.additional_params)
    return body


def parse_completion(body: bytes | str) -> CompletionResponse:
    """Parse a Messages API success body.

    Text and tool_use blocks are kept in order. Other block types are
    skipped.

    Raises:
        MalformedUpstreamResponseError: If the body is not JSON or lacks a
            required field.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedUpstreamResponseError(f"Upstream body is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedUpstreamResponseError("Upstream body is not a JSON object")

    raw_blocks = data.get("content")
    if not isinstance(raw_blocks, list):
        raise MalformedUpstreamResponseError("Upstream response has no content blocks")

    blocks: list[TextBlock | ToolUseBlock] = []
    for block in raw_blocks:
        if not isinstance(block, dict):
            raise MalformedUpstreamResponseError("Content block is not an object")
        block_type = block.get("type", "text")
        if block_type == "text":
            text = block.get("text")
            if not isinstance(text, str):
                raise MalformedUpstreamResponseError("Missing text in text block")
            blocks.append(TextBlock(text=text))
        elif block_type == "tool_use":
            blocks.append(_parse_tool_use(block))
        else:
            logger.debug("Skipping %s content block", block_type)

    try:
        return CompletionResponse(
            id=data.get("id"),
            content="".join(b.text for b in blocks if isinstance(b, TextBlock)),
            content_blocks=blocks,
            model=data.get("model"),
            stop_reason=data.get("stop_reason"),
            stop_sequence=data.get("stop_sequence"),
            message_type=data.get("type") or "message",
            usage=data.get("usage"),
        )
    except ValidationError as e:
        raise MalformedUpstreamResponseError(
            f"Upstream completion is incomplete: {summarize_validation_error(e)}"
        ) from e


def _parse_tool_use(block: dict[str, Any]) -> ToolUseBlock:
    try:
        return ToolUseBlock(id=block.get("id"), name=block.get("name"), input=block.get("input"))
    except ValidationError as e:
        raise MalformedUpstreamResponseError(
            f"Malformed tool_use block: {summarize_validation_error(e)}"
        ) from e



def _provider_error(error: anthropic.APIStatusError) -> ProviderError:
    """Build a ProviderError, keeping the upstream message when parsable."""
    message = _upstream_error_message(error.body)
    if message is None:
        message = f"Upstream returned HTTP {error.status_code}"
    return ProviderError(error.status_code, message)


def _upstream_error_message(body: object) -> str | None:
    # The SDK may hand over either the whole error document or its inner
    # "error" object.
    if not isinstance(body, dict):
        return None
    detail = body.get("error", body)
    if isinstance(detail, dict) and isinstance(detail.get("message"), str):
        return detail["message"]
    return None
