"""Domain layer for the llm-d bridge.

Pure request/result models, value objects and the error taxonomy. Nothing in
this package performs I/O.
"""

from llmd_bridge.domain.entities import (
    ChatMessage,
    ChatOptions,
    ChatRequest,
    ChatResult,
    EmbeddingsOptions,
    EmbeddingsRequest,
    EmbeddingsResult,
    ModelDescriptor,
)
from llmd_bridge.domain.exceptions import (
    BridgeError,
    InvalidConfigurationError,
    InvalidRequestError,
    PayloadTooLargeError,
    TransportError,
    UpstreamError,
)
from llmd_bridge.domain.value_objects import ENDPOINT_ALLOWLIST, ModelId, Secret

__all__ = [
    "ENDPOINT_ALLOWLIST",
    "BridgeError",
    "ChatMessage",
    "ChatOptions",
    "ChatRequest",
    "ChatResult",
    "EmbeddingsOptions",
    "EmbeddingsRequest",
    "EmbeddingsResult",
    "InvalidConfigurationError",
    "InvalidRequestError",
    "ModelDescriptor",
    "ModelId",
    "PayloadTooLargeError",
    "Secret",
    "TransportError",
    "UpstreamError",
]
