# tests/unit/llm/test_unit_catalog.py — v1
"""Tests for llm/catalog.py — static model registry."""

from __future__ import annotations

import pytest

from anthropic_proxy.core.models import ModelDescriptor
from anthropic_proxy.llm.catalog import DEFAULT_CATALOG, ModelCatalog


class TestDefaultCatalog:
    def test_size_and_order(self):
        ids = [m.id for m in DEFAULT_CATALOG.list()]
        assert len(ids) == 9
        assert ids[0] == "claude-3-7-sonnet-20250219"
        assert ids[-1] == "claude-2.0"

    def test_stable_across_calls(self):
        assert DEFAULT_CATALOG.list() == DEFAULT_CATALOG.list()

    def test_list_returns_copy(self):
        models = DEFAULT_CATALOG.list()
        models.clear()
        assert len(DEFAULT_CATALOG) == 9

    def test_get(self):
        model = DEFAULT_CATALOG.get("claude-3-haiku-20240307")
        assert model is not None
        assert model.display_name == "Claude 3 Haiku"
        assert model.max_tokens == 200_000
        assert model.provider == "anthropic"
        assert model.pricing.input_cost_per_million_tokens == 0.25

    def test_get_missing(self):
        assert DEFAULT_CATALOG.get("gpt-nonexistent") is None

    def test_contains(self):
        assert "claude-2.1" in DEFAULT_CATALOG
        assert "gpt-nonexistent" not in DEFAULT_CATALOG

    def test_every_model_has_pricing(self):
        assert all(m.pricing is not None for m in DEFAULT_CATALOG.list())


class TestCustomCatalog:
    def test_custom_models(self):
        catalog = ModelCatalog([ModelDescriptor(id="m1", display_name="M1", max_tokens=10)])
        assert len(catalog) == 1
        assert catalog.get("m1").pricing is None

    def test_duplicate_ids_rejected(self):
        model = ModelDescriptor(id="m1", display_name="M1", max_tokens=10)
        with pytest.raises(ValueError, match="Duplicate"):
            ModelCatalog([model, model])
