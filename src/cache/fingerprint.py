# src/cache/fingerprint.py — v4
"""Deterministic cache key for a normalized completion request.

SHA-256 over a canonical JSON rendering of the model, the ordered message
sequence (content blocks included), the tool configuration and every
sampling parameter. Message order is part of the key;
key order inside ``additional_params`` is not.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from anthropic_proxy.core.models import CompletionRequest, dump_content


def compute_fingerprint(request: CompletionRequest, default_max_tokens: int = 4096) -> str:
    """Compute the cache fingerprint of a request whose model is resolved.

    Args:
        request: Completion request after default-model substitution.
        default_max_tokens: Value an omitted ``max_tokens`` resolves to, so
            explicit and implicit defaults share a cache entry.

    Returns:
        64-character hex digest.
    """
    canonical = json.dumps(
        _normalize(request, default_max_tokens),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _normalize(request: CompletionRequest, default_max_tokens: int) -> dict[str, Any]:
    return {
        "model": request.model,
        "messages": [[m.role, dump_content(m.content)] for m in request.messages],
        "max_tokens": (
            request.max_tokens if request.max_tokens is not None else default_max_tokens
        ),
        "temperature": request.temperature,
        "system": request.system,
        "top_p": request.top_p,
        "anthropic_version": request.anthropic_version,
        "tools": (
            [t.model_dump(exclude_none=True) for t in request.tools]
            if request.tools is not None else None
        ),
        "tool_choice": (
            request.tool_choice.model_dump(exclude_none=True) if request.tool_choice else None
        ),
        "disable_parallel_tool_use": request.disable_parallel_tool_use,
        "additional_params": request.additional_params or {},
    }
