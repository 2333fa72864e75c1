# tests/unit/logging/test_unit_context.py — v3
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from anthropic_proxy.logging.context import (
    get_context,
    request_context,
    set_operation,
)


class TestLogContext:
    def test_initial_state(self):
        ctx = get_context()
        assert ctx.request_id is None
        assert ctx.operation is None
        assert ctx.store_id is None

    def test_request_context_values(self):
        with request_context("req-1", "store-1"):
            set_operation("ListModels")
            ctx = get_context()
        assert ctx.request_id == "req-1"
        assert ctx.operation == "ListModels"
        assert ctx.store_id == "store-1"

    def test_set_operation(self):
        with request_context("req-1"):
            set_operation("ChatCompletion")
            assert get_context().operation == "ChatCompletion"
        assert get_context().operation is None

    def test_as_dict_filters_none(self):
        with request_context("req-1"):
            assert get_context().as_dict() == {"request_id": "req-1"}


class TestRequestContext:
    def test_scoped(self):
        with request_context("req-1", "store-1"):
            set_operation("ListModels")
            assert get_context().request_id == "req-1"
            assert get_context().store_id == "store-1"
        assert get_context().as_dict() == {}

    def test_nested_restores_outer(self):
        with request_context("outer"):
            with request_context("inner"):
                assert get_context().request_id == "inner"
            assert get_context().request_id == "outer"

    def test_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with request_context("req-1"):
                raise RuntimeError("boom")
        assert get_context().request_id is None

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        seen: dict[str, str | None] = {}

        async def handle(request_id: str) -> None:
            with request_context(request_id):
                await asyncio.sleep(0)
                seen[request_id] = get_context().request_id

        await asyncio.gather(handle("a"), handle("b"))
        assert seen == {"a": "a", "b": "b"}
