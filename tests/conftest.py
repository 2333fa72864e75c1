# tests/conftest.py — v3
"""Shared test fixtures for all unit and integration tests.

Provides sample envelopes, a canned upstream payload, a mock completion
client and isolated settings. No network access: the upstream is either
an AsyncMock or an httpx.MockTransport.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest
from pydantic import SecretStr

from anthropic_proxy.config.settings import Settings
from anthropic_proxy.core.models import (
    CompletionRequest,
    CompletionResponse,
    Message,
    TextBlock,
    Usage,
)
from anthropic_proxy.llm.base_client import BaseCompletionClient
from anthropic_proxy.proxy.state import CredentialStore

DEFAULT_MODEL = "claude-3-7-sonnet-20250219"


# === FIXTURES: Configuration ===


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from any .env file and the real environment key."""
    return Settings(
        _env_file=None,
        anthropic_api_key="",
        cache_root=tmp_path / "cache",
    )


@pytest.fixture
def credentials() -> CredentialStore:
    """Resolved credential store with small limits."""
    return CredentialStore(
        api_key=SecretStr("sk-ant-test"),
        store_id="store-1",
        default_model=DEFAULT_MODEL,
        max_cache_size=10,
        timeout_ms=1000,
        default_max_tokens=4096,
        base_url="https://api.anthropic.test",
        api_version="2023-06-01",
    )


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_request() -> CompletionRequest:
    """Minimal valid completion request."""
    return CompletionRequest(
        model=DEFAULT_MODEL,
        messages=[Message(role="user", content="Hello")],
        max_tokens=10,
    )


@pytest.fixture
def sample_completion() -> CompletionResponse:
    """Normalized completion as returned by the client."""
    return CompletionResponse(
        id="msg_01",
        content="Hi there!",
        content_blocks=[TextBlock(text="Hi there!")],
        model=DEFAULT_MODEL,
        stop_reason="end_turn",
        usage=Usage(input_tokens=8, output_tokens=4),
    )


@pytest.fixture
def upstream_payload() -> dict[str, Any]:
    """Messages API success body."""
    return {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "model": DEFAULT_MODEL,
        "content": [{"type": "text", "text": "Hi there!"}],
        "stop_reason": "end_turn",
        "stop_sequence": None,
        "usage": {"input_tokens": 8, "output_tokens": 4},
    }


@pytest.fixture
def chat_envelope() -> dict[str, Any]:
    """ChatCompletion request envelope."""
    return {
        "version": "1.0",
        "operation_type": "ChatCompletion",
        "request_id": "req-1",
        "completion_request": {
            "model": DEFAULT_MODEL,
            "messages": [{"role": "user", "content": "Hello"}],
            "max_tokens": 10,
        },
    }


# === FIXTURES: Mock client ===


@pytest.fixture
def mock_client(sample_completion: CompletionResponse) -> AsyncMock:
    """Mock BaseCompletionClient returning sample_completion."""
    client = AsyncMock(spec=BaseCompletionClient)
    client.complete.return_value = sample_completion
    client.provider_name = "mock"
    return client
