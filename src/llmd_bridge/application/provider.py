"""Provider facade for the host platform's AI abstraction layer.

The host platform hands over loosely typed input (a prompt string, an array of
``{role, content}`` dicts) and model ids chosen in a UI. ``LlmdProvider``
normalizes that input into domain entities, keeps the orchestrator client
configured from settings, caches the model catalog, and exposes the static
capability information the platform asks providers for.

Use Case Responsibilities:
    - Validate the model id before anything else
    - Convert raw input into ChatRequest / EmbeddingsRequest
    - Merge per-call options over provider-level defaults
    - (Re)configure the client when settings change
    - Degrade model listing and usability probes to empty/False results

Errors from chat and embeddings propagate unchanged (after being logged) so
callers can tell configuration problems from transport and upstream failures.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from llmd_bridge.client.sync import OrchestratorClient
from llmd_bridge.core.config import LlmdSettings
from llmd_bridge.core.credentials import SecretStore
from llmd_bridge.domain.entities import (
    ChatMessage,
    ChatOptions,
    ChatRequest,
    ChatResult,
    EmbeddingsOptions,
    EmbeddingsRequest,
    EmbeddingsResult,
)
from llmd_bridge.domain.exceptions import BridgeError, InvalidConfigurationError
from llmd_bridge.domain.value_objects import ModelId
from llmd_bridge.infrastructure.model_cache import ModelCatalog

logger = logging.getLogger(__name__)

SUPPORTED_OPERATION_TYPES = ("chat", "embeddings")
SUPPORTED_CAPABILITIES = ("chat", "completion", "embeddings", "streaming")

DEFAULT_VECTOR_SIZE = 1536
EMBEDDING_VECTOR_SIZES: dict[str, int] = {
    "text-embedding-ada-002": 1536,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "all-MiniLM-L6-v2": 384,
    "all-mpnet-base-v2": 768,
    "sentence-transformers/all-MiniLM-L6-v2": 384,
    "sentence-transformers/all-mpnet-base-v2": 768,
}

MAX_EMBEDDINGS_INPUT = 8191
MAX_INPUT_TOKENS = 4096
MAX_OUTPUT_TOKENS = 2048

API_DEFINITION: dict[str, dict[str, str]] = {
    "chat": {"url": "/v1/chat/completions", "method": "POST"},
    "completions": {"url": "/v1/completions", "method": "POST"},
    "embeddings": {"url": "/v1/embeddings", "method": "POST"},
    "models": {"url": "/v1/models", "method": "GET"},
}

CHAT_MODEL_SETTINGS: dict[str, dict[str, Any]] = {
    "temperature": {"type": "float", "default": 0.7, "min": 0.0, "max": 2.0, "step": 0.1},
    "max_tokens": {"type": "integer", "default": 1000, "min": 1, "max": 4096},
    "top_p": {"type": "float", "default": 1.0, "min": 0.0, "max": 1.0, "step": 0.01},
    "frequency_penalty": {"type": "float", "default": 0.0, "min": -2.0, "max": 2.0, "step": 0.1},
    "presence_penalty": {"type": "float", "default": 0.0, "min": -2.0, "max": 2.0, "step": 0.1},
    "stop": {"type": "array", "default": []},
}

EMBEDDINGS_MODEL_SETTINGS: dict[str, dict[str, Any]] = {
    "encoding_format": {
        "type": "select",
        "default": "float",
        "options": {"float": "Float", "base64": "Base64"},
    },
    "dimensions": {
        "type": "integer",
        "default": None,
        "min": 1,
        "max": 3072,
        "description": "Number of dimensions (optional, depends on model)",
    },
    "user": {
        "type": "string",
        "default": "",
        "description": "Unique identifier for the end-user",
    },
}


def messages_from_input(raw: str | Iterable[Any] | ChatRequest) -> tuple[ChatMessage, ...]:
    """Convert host-platform chat input into ChatMessage entities.

    A ChatRequest contributes only its messages. A string becomes one user
    message. In a sequence, ChatMessage instances are kept and mappings with
    both ``role`` and ``content`` are converted; anything else is skipped.
    """
    match raw:
        case ChatRequest():
            return raw.messages
        case str():
            return (ChatMessage(role="user", content=raw),)

    messages: list[ChatMessage] = []
    for item in raw:
        match item:
            case ChatMessage():
                messages.append(item)
            case Mapping() if "role" in item and "content" in item:
                messages.append(
                    ChatMessage(
                        role=item["role"],
                        content=item["content"],
                        name=item.get("name"),
                    )
                )
            case _:
                logger.debug("Skipping malformed chat message of type %s", type(item).__name__)
    return tuple(messages)


class LlmdProvider:
    """Host-platform facing provider for an llm-d orchestrator.

    Attributes:
        settings: Raw bridge settings (host, key reference, timeout, debug).
        store: Secret store the key reference is resolved against.
        client: Orchestrator client, configured lazily from settings.
        catalog: Cached model listing.
        provider_config: Provider-level default options (sampling parameters
            for chat, encoding options for embeddings).
    """

    def __init__(
        self,
        settings: LlmdSettings,
        store: SecretStore,
        client: OrchestratorClient | None = None,
        catalog: ModelCatalog | None = None,
        provider_config: Mapping[str, Any] | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.client = client or OrchestratorClient()
        self.catalog = catalog or ModelCatalog(self.client, settings.models_cache_ttl)
        self.provider_config = dict(provider_config or {})
        self._applied: tuple[Any, ...] | None = None

    def load_client(self) -> OrchestratorClient:
        """Configure the client from settings if they changed since last time.

        Raises:
            InvalidConfigurationError: If the host or key reference is missing
                or the configuration does not validate.
        """
        settings = self.settings
        if not settings.host:
            raise InvalidConfigurationError("LLM-d host URL is not configured.")
        if not settings.api_key:
            raise InvalidConfigurationError("LLM-d API key is not configured.")

        current = (settings.host, settings.api_key, settings.timeout, settings.debug)
        if current != self._applied or not self.client.is_configured:
            self.client.configure(*current, store=self.store)
            if self._applied is not None and current[0] != self._applied[0]:
                # Listing belongs to the previous orchestrator.
                self.catalog.clear()
            self._applied = current
        return self.client

    def chat(
        self,
        input: str | Iterable[Any] | ChatRequest,
        model_id: str,
        options: ChatOptions | Mapping[str, Any] | None = None,
    ) -> ChatResult:
        """Run a chat completion for raw platform input.

        ``model_id`` always selects the model. When ``input`` is a ChatRequest
        its messages are used, and its options too unless ``options`` is given.

        Raises:
            InvalidRequestError: If the model id is malformed or no non-empty
                message remains after normalization.
            InvalidConfigurationError: If the provider is not configured.
            TransportError, UpstreamError: From the orchestrator call.
        """
        model = ModelId(model_id)
        client = self.load_client()

        if options is None:
            if isinstance(input, ChatRequest):
                options = input.options
            else:
                options = ChatOptions.from_mapping(self.provider_config)
        request = ChatRequest.create(model.value, messages_from_input(input), options)

        try:
            return client.chat_completion(request)
        except BridgeError as exc:
            logger.error("LLM-d chat completion failed: %s", exc)
            raise

    def embeddings(
        self,
        input: str | EmbeddingsRequest,
        model_id: str,
        options: EmbeddingsOptions | Mapping[str, Any] | None = None,
    ) -> EmbeddingsResult:
        """Create an embedding for raw platform input."""
        model = ModelId(model_id)
        client = self.load_client()

        text = input.input if isinstance(input, EmbeddingsRequest) else input
        if options is None:
            options = EmbeddingsOptions.from_mapping(self.provider_config)
        request = EmbeddingsRequest.create(model.value, text, options)

        try:
            return client.embeddings(request)
        except BridgeError as exc:
            logger.error("LLM-d embeddings failed: %s", exc)
            raise

    def get_configured_models(self, operation_type: str | None = None) -> dict[str, str]:
        """Return ``{model_id: model_id}`` for the model picker.

        Unsupported operation types yield an empty mapping. Listing failures
        are logged and also yield an empty mapping.
        """
        if operation_type and operation_type not in SUPPORTED_OPERATION_TYPES:
            return {}
        try:
            self.load_client()
            return self.catalog.get_models()
        except BridgeError as exc:
            logger.error("Failed to load models from LLM-d: %s", exc)
            return {}

    def refresh_models(self) -> dict[str, str]:
        """Clear the model cache and fetch a fresh listing.

        Raises:
            BridgeError: If the client cannot be configured or the listing fails.
        """
        self.load_client()
        return self.catalog.refresh()

    def is_usable(self, operation_type: str | None = None) -> bool:
        """Whether the provider is configured and the orchestrator is healthy."""
        if not self.settings.is_complete:
            return False
        if operation_type and operation_type not in SUPPORTED_OPERATION_TYPES:
            return False
        try:
            client = self.load_client()
        except BridgeError as exc:
            logger.warning("LLM-d provider not usable: %s", exc)
            return False
        return client.health_check()

    def get_supported_operation_types(self) -> list[str]:
        return list(SUPPORTED_OPERATION_TYPES)

    def get_supported_capabilities(self) -> list[str]:
        return list(SUPPORTED_CAPABILITIES)

    def get_api_definition(self) -> dict[str, dict[str, str]]:
        return copy.deepcopy(API_DEFINITION)

    def get_model_settings(self, operation_type: str = "chat") -> dict[str, dict[str, Any]]:
        """Settings schema (defaults and ranges) for the given operation type.

        Anything other than "embeddings" gets the chat schema.
        """
        match operation_type:
            case "embeddings":
                return copy.deepcopy(EMBEDDINGS_MODEL_SETTINGS)
            case _:
                return copy.deepcopy(CHAT_MODEL_SETTINGS)

    def embeddings_vector_size(self, model_id: str) -> int:
        return EMBEDDING_VECTOR_SIZES.get(model_id, DEFAULT_VECTOR_SIZE)

    def max_embeddings_input(self, model_id: str = "") -> int:
        return MAX_EMBEDDINGS_INPUT

    def max_input_tokens(self, model_id: str = "") -> int:
        return MAX_INPUT_TOKENS

    def max_output_tokens(self, model_id: str = "") -> int:
        return MAX_OUTPUT_TOKENS

    def set_authentication(self, authentication: Any) -> None:
        """Ignore direct credential updates.

        Credentials are only ever taken from the secret store by reference.
        """
        if isinstance(authentication, str):
            logger.info(
                "Authentication update attempted for LLM-d provider. "
                "Use the configuration (API key reference) instead."
            )


__all__ = ["LlmdProvider", "messages_from_input"]
