# tests/unit/core/test_unit_models.py — v3
"""Tests for core/models.py — payloads, envelopes and (de)serialization."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from anthropic_proxy.core.errors import (
    ErrorKind,
    MalformedRequestError,
    ProviderError,
    UnknownModelError,
)
from anthropic_proxy.core.models import (
    ChatCompletionRequestEnvelope,
    CompletionRequest,
    CompletionResponse,
    CompletionResponseEnvelope,
    ErrorResponseEnvelope,
    ListModelsRequestEnvelope,
    ModelDescriptor,
    ModelListResponseEnvelope,
    ModelPricing,
    TextBlock,
    ToolChoice,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
    dump_response,
    parse_request,
    parse_response,
    peek_correlation,
)


class TestCompletionRequest:
    def test_model_optional(self):
        req = CompletionRequest(messages=[{"role": "user", "content": "Hi"}])
        assert req.model is None
        assert req.max_tokens is None

    def test_message_order_preserved(self):
        req = CompletionRequest(
            messages=[
                {"role": "user", "content": "a"},
                {"role": "assistant", "content": "b"},
                {"role": "user", "content": "c"},
            ]
        )
        assert [m.content for m in req.messages] == ["a", "b", "c"]

    def test_additional_params_key_order_preserved(self):
        req = CompletionRequest(
            messages=[{"role": "user", "content": "Hi"}],
            additional_params={"z": 1, "a": {"nested": True}},
        )
        assert list(req.additional_params) == ["z", "a"]

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            CompletionRequest(messages=[], stream=True)


class TestContentBlocks:
    def test_block_list_content(self):
        req = CompletionRequest(
            messages=[
                {
                    "role": "assistant",
                    "content": [
                        {"type": "text", "text": "Let me check."},
                        {"type": "tool_use", "id": "tu_1", "name": "weather", "input": {"city": "Oslo"}},
                    ],
                },
                {
                    "role": "user",
                    "content": [
                        {"type": "tool_result", "tool_use_id": "tu_1", "content": "-3C", "is_error": False},
                    ],
                },
            ]
        )
        first, second = req.messages
        assert isinstance(first.content[0], TextBlock)
        assert isinstance(first.content[1], ToolUseBlock)
        assert first.content[1].input == {"city": "Oslo"}
        assert isinstance(second.content[0], ToolResultBlock)
        assert second.content[0].content == "-3C"

    def test_unknown_block_type_rejected(self):
        with pytest.raises(ValidationError):
            CompletionRequest(messages=[{"role": "user", "content": [{"type": "audio"}]}])

    def test_tool_use_requires_id(self):
        with pytest.raises(ValidationError):
            CompletionRequest(
                messages=[
                    {"role": "assistant", "content": [{"type": "tool_use", "name": "x", "input": {}}]}
                ]
            )

    def test_tools_and_choice(self):
        req = CompletionRequest(
            messages=[{"role": "user", "content": "Hi"}],
            tools=[{"name": "weather", "input_schema": {"type": "object"}}],
            tool_choice={"type": "tool", "name": "weather"},
            disable_parallel_tool_use=True,
        )
        assert req.tools[0].description is None
        assert req.tool_choice.name == "weather"
        assert req.disable_parallel_tool_use is True

    @pytest.mark.parametrize(
        "choice", [{"type": "tool"}, {"type": "auto", "name": "weather"}, {"type": "maybe"}],
    )
    def test_invalid_tool_choice(self, choice):
        with pytest.raises(ValidationError):
            ToolChoice(**choice)

    def test_completion_tool_uses(self, sample_completion):
        tool_use = ToolUseBlock(id="tu_1", name="weather", input={})
        completion = sample_completion.model_copy(
            update={"content_blocks": [TextBlock(text="x"), tool_use]}
        )
        assert completion.tool_uses == [tool_use]

    def test_completion_blocks_default_empty(self):
        completion = CompletionResponse(
            id="m", content="", model="claude-2.1", stop_reason="end_turn",
            usage=Usage(input_tokens=0, output_tokens=0),
        )
        assert completion.content_blocks == []


class TestUsageAndPricing:
    def test_negative_tokens_rejected(self):
        with pytest.raises(ValidationError):
            Usage(input_tokens=-1, output_tokens=0)

    def test_estimate_cost(self):
        pricing = ModelPricing(
            input_cost_per_million_tokens=3.0, output_cost_per_million_tokens=15.0,
        )
        cost = pricing.estimate_cost(Usage(input_tokens=1_000_000, output_tokens=2_000_000))
        assert cost == pytest.approx(33.0)

    def test_completion_is_frozen(self, sample_completion):
        with pytest.raises(ValidationError):
            sample_completion.content = "changed"


class TestParseRequest:
    def test_chat_completion(self, chat_envelope):
        env = parse_request(chat_envelope)
        assert isinstance(env, ChatCompletionRequestEnvelope)
        assert env.request_id == "req-1"
        assert env.completion_request.max_tokens == 10

    def test_chat_completion_from_bytes(self, chat_envelope):
        env = parse_request(json.dumps(chat_envelope).encode())
        assert isinstance(env, ChatCompletionRequestEnvelope)

    def test_list_models(self):
        env = parse_request(
            {"version": "1.0", "operation_type": "ListModels", "request_id": "r2"}
        )
        assert isinstance(env, ListModelsRequestEnvelope)
        assert env.params is None

    def test_version_defaults(self):
        env = parse_request({"operation_type": "ListModels", "request_id": "r2"})
        assert env.version == "1.0"

    def test_unknown_operation(self):
        with pytest.raises(MalformedRequestError, match="Invalid request format"):
            parse_request({"operation_type": "ExecuteTool", "request_id": "r"})

    def test_chat_without_payload(self):
        with pytest.raises(MalformedRequestError):
            parse_request({"operation_type": "ChatCompletion", "request_id": "r"})

    def test_list_models_with_completion_payload(self, chat_envelope):
        chat_envelope["operation_type"] = "ListModels"
        with pytest.raises(MalformedRequestError):
            parse_request(chat_envelope)

    def test_missing_request_id(self, chat_envelope):
        del chat_envelope["request_id"]
        with pytest.raises(MalformedRequestError):
            parse_request(chat_envelope)

    def test_invalid_json(self):
        with pytest.raises(MalformedRequestError):
            parse_request(b"{not json")

    def test_error_kind(self):
        with pytest.raises(MalformedRequestError) as exc_info:
            parse_request({})
        assert exc_info.value.kind == ErrorKind.MALFORMED_REQUEST


class TestPeekCorrelation:
    def test_valid(self, chat_envelope):
        assert peek_correlation(chat_envelope) == ("req-1", "1.0")

    def test_recovers_id_from_invalid_envelope(self):
        raw = b'{"request_id": "r-9", "version": "2.0", "operation_type": "Nope"}'
        assert peek_correlation(raw) == ("r-9", "2.0")

    def test_unparsable(self):
        assert peek_correlation(b"\xff\xfe") == ("unknown", "1.0")

    def test_non_object(self):
        assert peek_correlation("[1, 2]") == ("unknown", "1.0")

    def test_non_string_id(self):
        assert peek_correlation({"request_id": 42}) == ("unknown", "1.0")


class TestResponseEnvelopes:
    def test_completion_round_trip(self, sample_completion):
        env = CompletionResponseEnvelope(request_id="r1", completion=sample_completion)
        parsed = parse_response(dump_response(env))
        assert isinstance(parsed, CompletionResponseEnvelope)
        assert parsed == env

    def test_model_list_round_trip(self):
        env = ModelListResponseEnvelope(
            request_id="r2",
            models=[
                ModelDescriptor(
                    id="claude-2.1", display_name="Claude 2.1", max_tokens=100_000,
                    pricing=ModelPricing(
                        input_cost_per_million_tokens=8.0,
                        output_cost_per_million_tokens=24.0,
                    ),
                )
            ],
        )
        parsed = parse_response(dump_response(env))
        assert isinstance(parsed, ModelListResponseEnvelope)
        assert parsed == env

    def test_error_round_trip(self):
        env = ErrorResponseEnvelope.from_error(ProviderError(429, "slow down"), "r3")
        parsed = parse_response(dump_response(env))
        assert isinstance(parsed, ErrorResponseEnvelope)
        assert parsed == env
        assert parsed.upstream_status == 429

    def test_error_from_error_without_status(self):
        env = ErrorResponseEnvelope.from_error(UnknownModelError("x"), "r4", "1.1")
        assert env.status == "Error"
        assert env.error_kind == ErrorKind.UNKNOWN_MODEL
        assert env.upstream_status is None
        assert env.version == "1.1"

    def test_success_cannot_carry_error(self, sample_completion):
        with pytest.raises(ValidationError):
            CompletionResponseEnvelope(
                request_id="r1", completion=sample_completion, error="boom",
            )

    def test_wire_shape(self, sample_completion):
        data = json.loads(
            dump_response(
                CompletionResponseEnvelope(request_id="r1", completion=sample_completion)
            )
        )
        assert data["status"] == "Success"
        assert data["request_id"] == "r1"
        assert data["version"] == "1.0"
        assert data["completion"]["usage"] == {"input_tokens": 8, "output_tokens": 4}
        assert data["completion"]["content_blocks"] == [{"type": "text", "text": "Hi there!"}]
        assert "error" not in data
        assert "models" not in data
