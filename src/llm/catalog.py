# src/llm/catalog.py — v1
"""Static registry of supported Anthropic models.

Loaded once at import; lookups are read-only, so a single catalog can be
shared by any number of router instances.
"""

from __future__ import annotations

from collections.abc import Iterable

from anthropic_proxy.core.models import ModelDescriptor, ModelPricing

_SONNET_PRICING = ModelPricing(
    input_cost_per_million_tokens=3.00, output_cost_per_million_tokens=15.00,
)
_LEGACY_PRICING = ModelPricing(
    input_cost_per_million_tokens=8.00, output_cost_per_million_tokens=24.00,
)

_DEFAULT_MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        id="claude-3-7-sonnet-20250219", display_name="Claude 3.7 Sonnet",
        max_tokens=200_000, pricing=_SONNET_PRICING,
    ),
    ModelDescriptor(
        id="claude-3-5-sonnet-20241022", display_name="Claude 3.5 Sonnet (New)",
        max_tokens=200_000, pricing=_SONNET_PRICING,
    ),
    ModelDescriptor(
        id="claude-3-5-haiku-20241022", display_name="Claude 3.5 Haiku",
        max_tokens=200_000,
        pricing=ModelPricing(
            input_cost_per_million_tokens=0.80, output_cost_per_million_tokens=4.00,
        ),
    ),
    ModelDescriptor(
        id="claude-3-5-sonnet-20240620", display_name="Claude 3.5 Sonnet",
        max_tokens=200_000, pricing=_SONNET_PRICING,
    ),
    ModelDescriptor(
        id="claude-3-opus-20240229", display_name="Claude 3 Opus",
        max_tokens=200_000,
        pricing=ModelPricing(
            input_cost_per_million_tokens=15.00, output_cost_per_million_tokens=75.00,
        ),
    ),
    ModelDescriptor(
        id="claude-3-sonnet-20240229", display_name="Claude 3 Sonnet",
        max_tokens=200_000, pricing=_SONNET_PRICING,
    ),
    ModelDescriptor(
        id="claude-3-haiku-20240307", display_name="Claude 3 Haiku",
        max_tokens=200_000,
        pricing=ModelPricing(
            input_cost_per_million_tokens=0.25, output_cost_per_million_tokens=1.25,
        ),
    ),
    ModelDescriptor(
        id="claude-2.1", display_name="Claude 2.1",
        max_tokens=100_000, pricing=_LEGACY_PRICING,
    ),
    ModelDescriptor(
        id="claude-2.0", display_name="Claude 2.0",
        max_tokens=100_000, pricing=_LEGACY_PRICING,
    ),
)


class ModelCatalog:
    """Immutable, ordered lookup of model descriptors."""

    def __init__(self, models: Iterable[ModelDescriptor] = _DEFAULT_MODELS) -> None:
        self._models = tuple(models)
        self._by_id = {m.id: m for m in self._models}
        if len(self._by_id) != len(self._models):
            raise ValueError("Duplicate model id in catalog")

    def list(self) -> list[ModelDescriptor]:
        """All models in catalog order."""
        return list(self._models)

    def get(self, model_id: str) -> ModelDescriptor | None:
        return self._by_id.get(model_id)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._by_id

    def __len__(self) -> int:
        return len(self._models)


DEFAULT_CATALOG = ModelCatalog()
