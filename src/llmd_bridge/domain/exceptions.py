"""Domain exceptions for the llm-d bridge.

This module defines the small error taxonomy every public operation of the
bridge raises. Callers only ever need to catch ``BridgeError`` or one of its
subclasses; transport-library exceptions never escape the client.

Exception Hierarchy:
    - BridgeError: Base exception for all bridge errors
    - InvalidConfigurationError: Bad host, scheme, credential or timeout
    - InvalidRequestError: Request rejected before any network call
    - PayloadTooLargeError: Serialized payload exceeds the size limit
    - TransportError: Network, timeout, TLS or HTTP status failure
    - UpstreamError: 2xx response that is not usable (non-JSON, missing fields)

Note:
    Messages are kept generic because they may be shown to end users.
    Diagnostic detail (endpoint, status, raw body) goes to the logs.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base exception for all bridge errors.

    This exception should not be raised directly. Use one of the specific
    subclasses instead.
    """


class InvalidConfigurationError(BridgeError):
    """Raised when the client configuration is invalid or missing.

    Common causes:
        - Malformed base URL or unsupported scheme
        - Host resolves to an internal address outside the development allowlist
        - API key reference empty, unknown, or pointing at a short/empty secret
        - Timeout outside [1, 300] seconds
        - Operation attempted before the client was configured

    Always surfaced before any network call.
    """


class InvalidRequestError(BridgeError):
    """Raised when a request violates domain rules.

    Common causes:
        - No non-empty message (chat) or empty input (embeddings)
        - Malformed model identifier
        - Sampling parameter outside its allowed range
        - Endpoint not in the allowlist

    Never retried.
    """


class PayloadTooLargeError(InvalidRequestError):
    """Raised when a serialized request payload reaches the size limit."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__("Payload too large.")
        self.size = size
        self.limit = limit


class TransportError(BridgeError):
    """Raised when the orchestrator could not be reached or rejected the call.

    Attributes:
        endpoint: Endpoint path that was requested.
        status_code: HTTP status code when the server answered with a
            non-success status. None for network, timeout and TLS failures.
    """

    def __init__(
        self,
        message: str,
        endpoint: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class UpstreamError(BridgeError):
    """Raised when a successful response cannot be used.

    The orchestrator answered with a 2xx status, but the body was not JSON or
    lacked the expected top-level array (``choices``, ``data``). Partial
    results are never returned.

    Attributes:
        endpoint: Endpoint path that produced the unusable response.
    """

    def __init__(self, message: str, endpoint: str) -> None:
        super().__init__(message)
        self.endpoint = endpoint
