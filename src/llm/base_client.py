# src/llm/base_client.py — v2
"""Abstract completion client interface used by the router."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from anthropic_proxy.core.models import CompletionRequest, CompletionResponse

if TYPE_CHECKING:
    from anthropic_proxy.proxy.state import CredentialStore


class BaseCompletionClient(ABC):
    """Outbound completion call bounded by the credential store's timeout."""

    @abstractmethod
    async def complete(
        self,
        request: CompletionRequest,
        credentials: CredentialStore,
    ) -> CompletionResponse:
        """Execute one upstream completion.

        Raises:
            ProxyError: Timeout, ProviderError, MalformedUpstreamResponse
                or TransportError subclasses.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier."""

    async def aclose(self) -> None:
        """Release network resources held by the client."""
