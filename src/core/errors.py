# src/core/errors.py — v1
"""Typed error taxonomy for the proxy.

Each failure category is a ProxyError subclass carrying its ErrorKind.
The router converts any ProxyError into an Error response envelope.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Error categories reported in the ``error_kind`` envelope field."""

    NOT_INITIALIZED = "NotInitialized"
    MALFORMED_REQUEST = "MalformedRequest"
    INVALID_INPUT = "InvalidInput"
    UNKNOWN_MODEL = "UnknownModel"
    TIMEOUT = "Timeout"
    PROVIDER_ERROR = "ProviderError"
    MALFORMED_UPSTREAM_RESPONSE = "MalformedUpstreamResponse"
    TRANSPORT_ERROR = "TransportError"
    INTERNAL = "Internal"


class ProxyError(Exception):
    """Base class for every error the router reports to callers."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotInitializedError(ProxyError):
    """Request received before the component was initialized."""

    kind = ErrorKind.NOT_INITIALIZED

    def __init__(self, message: str = "Proxy has not been initialized") -> None:
        super().__init__(message)


class MalformedRequestError(ProxyError):
    """Envelope could not be parsed or lacks its required payload."""

    kind = ErrorKind.MALFORMED_REQUEST


class InvalidInputError(ProxyError):
    """Payload parsed but is semantically invalid."""

    kind = ErrorKind.INVALID_INPUT


class UnknownModelError(ProxyError):
    """Referenced model is absent from the catalog."""

    kind = ErrorKind.UNKNOWN_MODEL

    def __init__(self, model: str) -> None:
        self.model = model
        super().__init__(f"Unknown model: {model!r}")


class UpstreamTimeoutError(ProxyError):
    """Upstream call exceeded the configured timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"Upstream call timed out after {timeout_ms} ms")


class ProviderError(ProxyError):
    """Upstream answered with a non-success HTTP status."""

    kind = ErrorKind.PROVIDER_ERROR

    def __init__(self, upstream_status: int, message: str) -> None:
        self.upstream_status = upstream_status
        super().__init__(f"Upstream error ({upstream_status}): {message}")


class MalformedUpstreamResponseError(ProxyError):
    """Upstream answered successfully but the body is not a usable completion."""

    kind = ErrorKind.MALFORMED_UPSTREAM_RESPONSE


class TransportError(ProxyError):
    """Network-level failure before any HTTP status was received."""

    kind = ErrorKind.TRANSPORT_ERROR
