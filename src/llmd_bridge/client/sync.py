"""Synchronous client for the llm-d orchestrator.

This module composes URL validation, credential resolution, payload guarding
and the request dispatcher into the four orchestrator operations (plus a raw
text-completion passthrough), translating domain entities to and from the
OpenAI-compatible wire format.

Key behaviors:
    - Lifecycle: Unconfigured until ``configure`` succeeds; every operation
      on an unconfigured client fails before any network call
    - Reconfiguration builds a new immutable ClientConfiguration and swaps it
      in as a whole
    - Each operation reads the configuration once and passes it to the
      dispatcher explicitly
    - Responses missing the expected top-level array, or not JSON at all,
      raise UpstreamError; partial results are never returned
    - ``health_check`` is advisory and never raises

Thread safety:
    Operations may run concurrently with each other. Reconfiguration while
    requests are in flight is not coordinated; in-flight requests finish with
    the configuration they started with.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from llmd_bridge.client.transport import RequestDispatcher
from llmd_bridge.core.config import (
    DEFAULT_TIMEOUT_SECONDS,
    ClientConfiguration,
    LlmdSettings,
    build_configuration,
)
from llmd_bridge.core.credentials import SecretStore
from llmd_bridge.domain.entities import (
    ChatRequest,
    ChatResult,
    EmbeddingsRequest,
    EmbeddingsResult,
    ModelDescriptor,
)
from llmd_bridge.domain.exceptions import (
    BridgeError,
    InvalidConfigurationError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

HEALTH_ENDPOINT = "/health"
MODELS_ENDPOINT = "/v1/models"
CHAT_ENDPOINT = "/v1/chat/completions"
COMPLETIONS_ENDPOINT = "/v1/completions"
EMBEDDINGS_ENDPOINT = "/v1/embeddings"

RAW_BODY_LOG_LIMIT = 2048


def _decode_object(response: requests.Response, endpoint: str) -> dict[str, Any]:
    """Decode a JSON object body or raise UpstreamError.

    The raw body (truncated) is logged on failure. It never contains request
    secrets, only what the orchestrator sent back.
    """
    try:
        data = response.json()
    except ValueError as exc:
        logger.error(
            "Invalid (broken JSON) response received from %s: %s",
            endpoint,
            response.text[:RAW_BODY_LOG_LIMIT] or "<empty body>",
        )
        raise UpstreamError("The orchestrator returned an invalid response.", endpoint) from exc

    match data:
        case dict():
            return data
        case _:
            logger.error(
                "Expected JSON object from %s, got %s", endpoint, type(data).__name__
            )
            raise UpstreamError("The orchestrator returned an invalid response.", endpoint)


class OrchestratorClient:
    """Client for an llm-d orchestrator's OpenAI-compatible API.

    Attributes:
        config: Current ClientConfiguration, or None while unconfigured.
        dispatcher: RequestDispatcher that performs the HTTP calls.

    Example:
        >>> client = OrchestratorClient()
        >>> client.configure("https://llmd.example.com", "llmd_key", store=store)
        >>> client.health_check()
        True
    """

    __slots__ = ("config", "dispatcher")

    def __init__(
        self,
        config: ClientConfiguration | None = None,
        dispatcher: RequestDispatcher | None = None,
    ) -> None:
        self.config = config
        self.dispatcher = dispatcher or RequestDispatcher()

    @classmethod
    def from_settings(
        cls,
        settings: LlmdSettings,
        store: SecretStore,
        dispatcher: RequestDispatcher | None = None,
    ) -> OrchestratorClient:
        """Build a configured client from loaded settings.

        Raises:
            InvalidConfigurationError: If the settings do not validate.
        """
        client = cls(dispatcher=dispatcher)
        client.configure(
            settings.host,
            settings.api_key,
            settings.timeout,
            settings.debug,
            store=store,
        )
        return client

    @property
    def is_configured(self) -> bool:
        return self.config is not None

    def configure(
        self,
        base_url: str | None,
        api_key_ref: str | None,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        debug: bool = False,
        *,
        store: SecretStore,
    ) -> ClientConfiguration:
        """Validate raw configuration and replace the current configuration.

        On failure the previous configuration (if any) is left untouched.

        Args:
            base_url: Untrusted orchestrator URL.
            api_key_ref: Name of the API key in ``store``.
            timeout: Request timeout in seconds, [1, 300].
            debug: Log composed request URLs.
            store: Secret store for the API key lookup.

        Returns:
            The new configuration.

        Raises:
            InvalidConfigurationError: If any value is invalid.
        """
        config = build_configuration(base_url, api_key_ref, timeout, debug, store=store)
        self.config = config
        return config

    def _require_config(self) -> ClientConfiguration:
        config = self.config
        if config is None:
            raise InvalidConfigurationError("The LLM-d client is not configured.")
        return config

    def list_models(self) -> list[ModelDescriptor]:
        """List models served by the orchestrator.

        Returns:
            One ModelDescriptor per element of the response's ``data`` array.
            An absent or empty array yields an empty list.

        Raises:
            InvalidConfigurationError: If the client is not configured.
            TransportError: If the request fails.
            UpstreamError: If the body is not a JSON object or an entry is
                malformed.
        """
        config = self._require_config()
        response = self.dispatcher.send(
            config, "GET", MODELS_ENDPOINT, operation="list_models"
        )
        data = _decode_object(response, MODELS_ENDPOINT)

        entries = data.get("data")
        if not entries:
            return []
        if not isinstance(entries, list):
            logger.error("Model listing 'data' is %s, not a list", type(entries).__name__)
            raise UpstreamError("The orchestrator returned an invalid model list.", MODELS_ENDPOINT)

        now = int(time.time())
        try:
            return [ModelDescriptor.from_wire(item, now=now) for item in entries]
        except ValueError as exc:
            logger.error("Malformed model entry from %s: %s", MODELS_ENDPOINT, exc)
            raise UpstreamError(
                "The orchestrator returned an invalid model list.", MODELS_ENDPOINT
            ) from exc

    def chat_completion(self, request: ChatRequest) -> ChatResult:
        """Run a non-streaming chat completion.

        Args:
            request: Validated chat request.

        Returns:
            ChatResult with the first choice's content, usage and finish reason.

        Raises:
            InvalidConfigurationError: If the client is not configured.
            PayloadTooLargeError: If the request is too large to send.
            TransportError: If the request fails.
            UpstreamError: If the body is not JSON or ``choices`` is missing
                or empty.
        """
        config = self._require_config()
        response = self.dispatcher.send(
            config, "POST", CHAT_ENDPOINT, request.to_payload(), operation="chat_completion"
        )
        data = _decode_object(response, CHAT_ENDPOINT)

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            logger.error("Chat completion response without choices: %s", str(data)[:RAW_BODY_LOG_LIMIT])
            raise UpstreamError("No response choices returned from LLM-d.", CHAT_ENDPOINT)

        choice = choices[0] if isinstance(choices[0], dict) else {}
        message = choice.get("message") if isinstance(choice.get("message"), dict) else {}
        content = message.get("content") or ""

        return ChatResult(
            content=content if isinstance(content, str) else str(content),
            finish_reason=choice.get("finish_reason") or "stop",
            usage=data.get("usage") or {},
            model=data.get("model") or request.model.value,
            raw=data,
        )

    def completion(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a raw text-completion request to ``/v1/completions``.

        The request and response shapes are orchestrator-specific, so the
        payload is passed through as-is (still size-checked) and the decoded
        JSON object is returned.

        Raises:
            InvalidConfigurationError: If the client is not configured.
            PayloadTooLargeError: If the payload is too large to send.
            TransportError: If the request fails.
            UpstreamError: If the body is not a JSON object.
        """
        config = self._require_config()
        response = self.dispatcher.send(
            config, "POST", COMPLETIONS_ENDPOINT, payload, operation="completion"
        )
        return _decode_object(response, COMPLETIONS_ENDPOINT)

    def embeddings(self, request: EmbeddingsRequest) -> EmbeddingsResult:
        """Create an embedding for the request's input text.

        Returns:
            EmbeddingsResult for the first ``data`` element.

        Raises:
            InvalidConfigurationError: If the client is not configured.
            PayloadTooLargeError: If the request is too large to send.
            TransportError: If the request fails.
            UpstreamError: If the body is not JSON, ``data`` is missing or
                empty, or the first element has no embedding.
        """
        config = self._require_config()
        response = self.dispatcher.send(
            config, "POST", EMBEDDINGS_ENDPOINT, request.to_payload(), operation="embeddings"
        )
        data = _decode_object(response, EMBEDDINGS_ENDPOINT)

        entries = data.get("data")
        if not isinstance(entries, list) or not entries:
            logger.error("Embeddings response without data: %s", str(data)[:RAW_BODY_LOG_LIMIT])
            raise UpstreamError("No embedding data returned from LLM-d.", EMBEDDINGS_ENDPOINT)

        first = entries[0] if isinstance(entries[0], dict) else {}
        vector = first.get("embedding")
        if not vector:
            logger.error("Embeddings response without a vector in data[0]")
            raise UpstreamError("No embedding vector returned from LLM-d.", EMBEDDINGS_ENDPOINT)

        return EmbeddingsResult(
            vector=vector,
            index=first.get("index") or 0,
            usage=data.get("usage") or {},
            model=data.get("model") or request.model.value,
            object=first.get("object") or "embedding",
            raw=data,
        )

    def health_check(self) -> bool:
        """Probe the orchestrator's health endpoint.

        Returns:
            True only if the body is a JSON object with ``status == "healthy"``.
            False for an unconfigured client, any transport failure, non-2xx
            status, or malformed body. Never raises.
        """
        config = self.config
        if config is None:
            logger.debug("Health check skipped: client not configured")
            return False
        try:
            response = self.dispatcher.send(
                config, "GET", HEALTH_ENDPOINT, operation="health_check"
            )
            data = response.json()
        except (BridgeError, ValueError) as exc:
            if config.debug:
                logger.error("Health check failed: %s", exc)
            else:
                logger.debug("Health check failed: %s", exc.__class__.__name__)
            return False

        return isinstance(data, dict) and data.get("status") == "healthy"

    def close(self) -> None:
        self.dispatcher.close()


__all__ = [
    "CHAT_ENDPOINT",
    "COMPLETIONS_ENDPOINT",
    "EMBEDDINGS_ENDPOINT",
    "HEALTH_ENDPOINT",
    "MODELS_ENDPOINT",
    "OrchestratorClient",
]
