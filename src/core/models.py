# src/core/models.py — v3
"""Wire models shared by the router, the API client and the cache.

Request and response envelopes are tagged unions: each variant carries
exactly the payload that matches its operation or status, so a
ChatCompletion envelope without a completion request (or a Success
envelope carrying an error) cannot be constructed.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from anthropic_proxy.core.errors import ErrorKind, MalformedRequestError, ProxyError

PROTOCOL_VERSION = "1.0"
UNKNOWN_REQUEST_ID = "unknown"


# === COMPLETION PAYLOADS ===


class TextBlock(BaseModel):
    """Plain text content."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """Tool invocation requested by the model."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]


class ToolResultBlock(BaseModel):
    """Caller-supplied outcome of an earlier tool_use block."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str | list[TextBlock] = ""
    is_error: bool | None = None


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


class Message(BaseModel):
    """Single conversation turn. Content is a string or a list of blocks."""

    model_config = ConfigDict(extra="forbid")

    role: str
    content: str | list[ContentBlock]


class ToolDefinition(BaseModel):
    """Tool offered to the model, described by a JSON schema."""

    model_config = ConfigDict(extra="forbid")

    name: str
    description: str | None = None
    input_schema: dict[str, Any]


class ToolChoice(BaseModel):
    """How the model may pick among the offered tools."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["auto", "any", "tool", "none"]
    name: str | None = None

    @model_validator(mode="after")
    def _name_matches_type(self) -> ToolChoice:
        if self.type == "tool" and not self.name:
            raise ValueError("tool_choice of type 'tool' requires a name")
        if self.type != "tool" and self.name is not None:
            raise ValueError(f"tool_choice of type {self.type!r} takes no name")
        return self


class CompletionRequest(BaseModel):
    """Normalized chat completion request.

    ``model`` may be omitted; the router substitutes the configured default.
    ``additional_params`` is forwarded upstream verbatim.
    """

    model_config = ConfigDict(extra="forbid")

    model: str | None = None
    messages: list[Message]
    max_tokens: int | None = None
    temperature: float | None = None
    system: str | None = None
    top_p: float | None = None
    anthropic_version: str | None = None
    tools: list[ToolDefinition] | None = None
    tool_choice: ToolChoice | None = None
    disable_parallel_tool_use: bool | None = None
    additional_params: dict[str, Any] | None = None


class Usage(BaseModel):
    """Token accounting reported by the upstream API."""

    model_config = ConfigDict(frozen=True)

    input_tokens: int = Field(ge=0)
    output_tokens: int = Field(ge=0)


class CompletionResponse(BaseModel):
    """Normalized completion returned to callers and stored in the cache.

    ``content`` joins the text blocks; ``content_blocks`` keeps every
    supported block, tool_use included, in upstream order.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    content: str
    content_blocks: list[ContentBlock] = Field(default_factory=list)
    model: str
    stop_reason: str
    stop_sequence: str | None = None
    message_type: str = "message"
    usage: Usage

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.content_blocks if isinstance(b, ToolUseBlock)]


# === MODEL CATALOG ===


class ModelPricing(BaseModel):
    """USD pricing per million tokens."""

    model_config = ConfigDict(frozen=True)

    input_cost_per_million_tokens: float
    output_cost_per_million_tokens: float

    def estimate_cost(self, usage: Usage) -> float:
        """Estimated USD cost of a completion with the given usage."""
        return (
            usage.input_tokens * self.input_cost_per_million_tokens / 1_000_000
            + usage.output_tokens * self.output_cost_per_million_tokens / 1_000_000
        )


class ModelDescriptor(BaseModel):
    """Static description of a supported model."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    max_tokens: int
    provider: str = "anthropic"
    pricing: ModelPricing | None = None


# === REQUEST ENVELOPES ===


class ChatCompletionRequestEnvelope(BaseModel):
    """Inbound request for a chat completion."""

    model_config = ConfigDict(extra="forbid")

    version: str = PROTOCOL_VERSION
    operation_type: Literal["ChatCompletion"] = "ChatCompletion"
    request_id: str
    completion_request: CompletionRequest


class ListModelsRequestEnvelope(BaseModel):
    """Inbound request for the model catalog."""

    model_config = ConfigDict(extra="forbid")

    version: str = PROTOCOL_VERSION
    operation_type: Literal["ListModels"] = "ListModels"
    request_id: str
    params: dict[str, Any] | None = None


RequestEnvelope = Annotated[
    Union[ChatCompletionRequestEnvelope, ListModelsRequestEnvelope],
    Field(discriminator="operation_type"),
]


# === RESPONSE ENVELOPES ===


class _ResponseEnvelopeBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str = PROTOCOL_VERSION
    request_id: str


class CompletionResponseEnvelope(_ResponseEnvelopeBase):
    """Successful chat completion."""

    status: Literal["Success"] = "Success"
    completion: CompletionResponse


class ModelListResponseEnvelope(_ResponseEnvelopeBase):
    """Successful model listing."""

    status: Literal["Success"] = "Success"
    models: list[ModelDescriptor]


class ErrorResponseEnvelope(_ResponseEnvelopeBase):
    """Failed operation of any kind."""

    status: Literal["Error"] = "Error"
    error: str
    error_kind: ErrorKind
    upstream_status: int | None = None

    @classmethod
    def from_error(
        cls,
        error: ProxyError,
        request_id: str,
        version: str = PROTOCOL_VERSION,
    ) -> ErrorResponseEnvelope:
        return cls(
            version=version,
            request_id=request_id,
            error=error.message,
            error_kind=error.kind,
            upstream_status=getattr(error, "upstream_status", None),
        )


ResponseEnvelope = Union[
    CompletionResponseEnvelope,
    ModelListResponseEnvelope,
    ErrorResponseEnvelope,
]


_REQUEST_ADAPTER: TypeAdapter[Any] = TypeAdapter(RequestEnvelope)
_RESPONSE_ADAPTER: TypeAdapter[Any] = TypeAdapter(ResponseEnvelope)


# === (DE)SERIALIZATION HELPERS ===


def parse_request(
    data: bytes | str | dict[str, Any],
) -> ChatCompletionRequestEnvelope | ListModelsRequestEnvelope:
    """Parse an inbound envelope.

    Raises:
        MalformedRequestError: If the envelope does not match any operation.
    """
    try:
        if isinstance(data, (bytes, bytearray, str)):
            return _REQUEST_ADAPTER.validate_json(data)
        return _REQUEST_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise MalformedRequestError(
            f"Invalid request format: {summarize_validation_error(e)}"
        ) from e


def parse_response(data: bytes | str | dict[str, Any]) -> ResponseEnvelope:
    """Parse a serialized response envelope (used by callers and tests)."""
    if isinstance(data, (bytes, bytearray, str)):
        return _RESPONSE_ADAPTER.validate_json(data)
    return _RESPONSE_ADAPTER.validate_python(data)


def dump_response(envelope: ResponseEnvelope) -> bytes:
    """Serialize a response envelope to UTF-8 JSON bytes."""
    return envelope.model_dump_json().encode("utf-8")


def peek_correlation(data: bytes | str | dict[str, Any]) -> tuple[str, str]:
    """Best-effort (request_id, version) extraction from a raw envelope.

    Used to echo correlation data even when the envelope fails validation.
    """
    raw: Any = data
    if isinstance(data, (bytes, bytearray, str)):
        try:
            raw = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return UNKNOWN_REQUEST_ID, PROTOCOL_VERSION

    if not isinstance(raw, dict):
        return UNKNOWN_REQUEST_ID, PROTOCOL_VERSION

    request_id = raw.get("request_id")
    version = raw.get("version")
    return (
        request_id if isinstance(request_id, str) else UNKNOWN_REQUEST_ID,
        version if isinstance(version, str) else PROTOCOL_VERSION,
    )


def summarize_validation_error(error: ValidationError, limit: int = 3) -> str:
    """Compact one-line description of the first few validation errors."""
    parts = []
    for err in error.errors()[:limit]:
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    if error.error_count() > limit:
        parts.append(f"... ({error.error_count() - limit} more)")
    return "; ".join(parts)


def dump_content(content: str | list[ContentBlock]) -> str | list[dict[str, Any]]:
    """Wire form of message content: strings as-is, blocks as dicts."""
    if isinstance(content, str):
        return content
    return [block.model_dump(exclude_none=True) for block in content]
