"""llm-d bridge - secure client for an OpenAI-compatible inference orchestrator."""

from llmd_bridge.application import LlmdProvider
from llmd_bridge.client import OrchestratorClient, RequestDispatcher
from llmd_bridge.core import (
    ClientConfiguration,
    EnvironmentSecretStore,
    LlmdSettings,
    MappingSecretStore,
    SecretStore,
    ValidatedUrl,
    build_configuration,
    ensure_within_limit,
    get_settings,
    is_internal_host,
    resolve_api_key,
    validate_base_url,
    validate_endpoint,
)
from llmd_bridge.domain import (
    ENDPOINT_ALLOWLIST,
    BridgeError,
    ChatMessage,
    ChatOptions,
    ChatRequest,
    ChatResult,
    EmbeddingsOptions,
    EmbeddingsRequest,
    EmbeddingsResult,
    InvalidConfigurationError,
    InvalidRequestError,
    ModelDescriptor,
    ModelId,
    PayloadTooLargeError,
    Secret,
    TransportError,
    UpstreamError,
)
from llmd_bridge.infrastructure import ModelCatalog
from llmd_bridge.telemetry import MetricsCollector, log_request_event

__version__ = "1.0.0"

__all__ = [
    "ENDPOINT_ALLOWLIST",
    "BridgeError",
    "ChatMessage",
    "ChatOptions",
    "ChatRequest",
    "ChatResult",
    "ClientConfiguration",
    "EmbeddingsOptions",
    "EmbeddingsRequest",
    "EmbeddingsResult",
    "EnvironmentSecretStore",
    "InvalidConfigurationError",
    "InvalidRequestError",
    "LlmdProvider",
    "LlmdSettings",
    "MappingSecretStore",
    "MetricsCollector",
    "ModelCatalog",
    "ModelDescriptor",
    "ModelId",
    "OrchestratorClient",
    "PayloadTooLargeError",
    "RequestDispatcher",
    "Secret",
    "SecretStore",
    "TransportError",
    "UpstreamError",
    "ValidatedUrl",
    "build_configuration",
    "ensure_within_limit",
    "get_settings",
    "is_internal_host",
    "log_request_event",
    "resolve_api_key",
    "validate_base_url",
    "validate_endpoint",
]
