"""
Behavioral tests for the LlmdProvider facade.
"""

import logging
import threading

import pytest

from llmd_bridge import (
    ChatMessage,
    ChatOptions,
    ChatRequest,
    InvalidConfigurationError,
    InvalidRequestError,
    LlmdProvider,
    LlmdSettings,
    UpstreamError,
)
from llmd_bridge.application.provider import DEFAULT_VECTOR_SIZE, messages_from_input

from conftest import TEST_KEY_REF, OrchestratorRequestHandler, ThreadedTCPServer


@pytest.fixture
def settings(orchestrator_server):
    return LlmdSettings(host=orchestrator_server.base_url, api_key=TEST_KEY_REF, timeout=5, _env_file=None)


@pytest.fixture
def provider(settings, secret_store):
    provider = LlmdProvider(settings, secret_store)
    yield provider
    provider.client.close()


class TestMessagesFromInput:
    """Conversion of loose platform input."""

    def test_string_becomes_user_message(self):
        assert messages_from_input("Hello") == (ChatMessage(role="user", content="Hello"),)

    def test_mappings_and_entities(self):
        messages = messages_from_input(
            [
                {"role": "system", "content": "Be brief"},
                ChatMessage(role="user", content="Hi"),
                {"role": "user"},
                "stray string",
                42,
            ]
        )
        assert [(m.role, m.content) for m in messages] == [("system", "Be brief"), ("user", "Hi")]

    def test_non_string_name_dropped(self):
        (message,) = messages_from_input([{"role": "user", "content": "hi", "name": 7}])
        assert message.name is None
        assert message.content == "hi"

    def test_chat_request_contributes_messages(self):
        request = ChatRequest.create("qwen3-4b", [ChatMessage(role="user", content="Hi")])
        assert messages_from_input(request) == request.messages


class TestChat:
    """Chat through the provider."""

    def test_string_input(self, provider):
        result = provider.chat("Hello", "qwen3-4b")
        assert result.content == "Echo: Hello"

    def test_message_list(self, orchestrator_server, provider):
        provider.chat(
            [{"role": "system", "content": "Be brief"}, {"role": "tool", "content": "What's up?"}],
            "qwen3-4b",
        )
        body = orchestrator_server.state["requests"][-1].body
        assert body["messages"] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "What's up?"},
        ]

    def test_provider_defaults_applied(self, orchestrator_server, settings, secret_store):
        provider = LlmdProvider(settings, secret_store, provider_config={"temperature": 0.2, "max_tokens": 64})
        provider.chat("Hello", "qwen3-4b")
        body = orchestrator_server.state["requests"][-1].body
        assert body["temperature"] == 0.2
        assert body["max_tokens"] == 64

    def test_explicit_options_win(self, orchestrator_server, settings, secret_store):
        provider = LlmdProvider(settings, secret_store, provider_config={"temperature": 0.2})
        provider.chat("Hello", "qwen3-4b", ChatOptions(top_p=0.5))
        body = orchestrator_server.state["requests"][-1].body
        assert body["top_p"] == 0.5
        assert "temperature" not in body

    def test_loosely_typed_messages(self, orchestrator_server, provider):
        result = provider.chat([{"role": "user", "content": "hi \ud800", "name": 7}], "qwen3-4b")
        assert result.content == "Echo: hi ?"
        assert orchestrator_server.state["requests"][-1].body["messages"] == [{"role": "user", "content": "hi ?"}]

    def test_chat_request_options_used(self, orchestrator_server, provider):
        request = ChatRequest.create("other-model", [ChatMessage(role="user", content="Hi")], {"temperature": 0.9})
        provider.chat(request, "qwen3-4b")
        body = orchestrator_server.state["requests"][-1].body
        assert body["model"] == "qwen3-4b"
        assert body["temperature"] == 0.9

    def test_explicit_options_override_chat_request(self, orchestrator_server, provider):
        request = ChatRequest.create("qwen3-4b", [ChatMessage(role="user", content="Hi")], {"temperature": 0.9})
        provider.chat(request, "qwen3-4b", {"top_p": 0.4})
        body = orchestrator_server.state["requests"][-1].body
        assert body["top_p"] == 0.4
        assert "temperature" not in body

    def test_invalid_model_rejected_first(self, orchestrator_server, secret_store):
        provider = LlmdProvider(LlmdSettings(_env_file=None), secret_store)
        with pytest.raises(InvalidRequestError, match="Invalid model ID"):
            provider.chat("Hello", "../etc/passwd")
        assert orchestrator_server.state["requests"] == []

    def test_missing_host(self, secret_store):
        provider = LlmdProvider(LlmdSettings(api_key=TEST_KEY_REF, _env_file=None), secret_store)
        with pytest.raises(InvalidConfigurationError, match="host URL is not configured"):
            provider.chat("Hello", "qwen3-4b")

    def test_missing_key(self, orchestrator_server, secret_store):
        provider = LlmdProvider(LlmdSettings(host=orchestrator_server.base_url, _env_file=None), secret_store)
        with pytest.raises(InvalidConfigurationError, match="API key is not configured"):
            provider.chat("Hello", "qwen3-4b")

    def test_upstream_error_logged_and_raised(self, caplog, orchestrator_server, provider):
        orchestrator_server.state["responses"]["/v1/chat/completions"] = (200, {"choices": []})
        with caplog.at_level(logging.ERROR), pytest.raises(UpstreamError):
            provider.chat("Hello", "qwen3-4b")
        assert "LLM-d chat completion failed" in caplog.text


class TestEmbeddings:
    """Embeddings through the provider."""

    def test_embeddings(self, orchestrator_server, provider):
        result = provider.embeddings("hello", "all-MiniLM-L6-v2", {"dimensions": 3})
        assert list(result.vector) == [0.1, 0.2, 0.3]
        assert orchestrator_server.state["requests"][-1].body["dimensions"] == 3

    def test_empty_input(self, provider):
        with pytest.raises(InvalidRequestError, match="Empty input"):
            provider.embeddings("   ", "all-MiniLM-L6-v2")


class TestModels:
    """Model listing through the catalog."""

    def test_configured_models(self, provider):
        assert provider.get_configured_models("chat") == {
            "qwen3-4b": "qwen3-4b",
            "all-MiniLM-L6-v2": "all-MiniLM-L6-v2",
        }

    def test_listing_cached(self, orchestrator_server, provider):
        provider.get_configured_models()
        provider.get_configured_models()
        paths = [r.path for r in orchestrator_server.state["requests"]]
        assert paths.count("/v1/models") == 1

    def test_refresh(self, orchestrator_server, provider):
        provider.get_configured_models()
        orchestrator_server.state["responses"]["/v1/models"] = (200, {"data": [{"id": "fresh"}]})
        assert provider.refresh_models() == {"fresh": "fresh"}

    def test_host_change_drops_cached_listing(self, orchestrator_server, provider):
        assert "qwen3-4b" in provider.get_configured_models()

        other = ThreadedTCPServer(("127.0.0.1", 0), OrchestratorRequestHandler)
        other.server_state = {  # type: ignore[attr-defined]
            "responses": {"/v1/models": (200, {"data": [{"id": "other-model"}]})},
            "requests": [],
        }
        thread = threading.Thread(target=other.serve_forever, daemon=True)
        thread.start()
        try:
            provider.settings.host = f"http://127.0.0.1:{other.server_address[1]}"
            assert provider.get_configured_models() == {"other-model": "other-model"}
        finally:
            other.shutdown()
            other.server_close()

    def test_timeout_change_keeps_cached_listing(self, orchestrator_server, provider):
        provider.get_configured_models()
        provider.settings.timeout = 7
        provider.get_configured_models()
        paths = [r.path for r in orchestrator_server.state["requests"]]
        assert paths.count("/v1/models") == 1

    def test_unsupported_operation(self, provider):
        assert provider.get_configured_models("text_to_image") == {}

    def test_failure_yields_empty(self, orchestrator_server, provider):
        orchestrator_server.state["responses"]["/v1/models"] = (500, {})
        assert provider.get_configured_models() == {}

    def test_unconfigured_yields_empty(self, secret_store):
        assert LlmdProvider(LlmdSettings(_env_file=None), secret_store).get_configured_models() == {}


class TestUsability:
    """is_usable probes configuration and health."""

    def test_usable(self, provider):
        assert provider.is_usable() is True
        assert provider.is_usable("embeddings") is True

    def test_unsupported_operation(self, provider):
        assert provider.is_usable("speech_to_text") is False

    def test_incomplete_settings(self, secret_store):
        assert LlmdProvider(LlmdSettings(_env_file=None), secret_store).is_usable() is False

    def test_unhealthy(self, orchestrator_server, provider):
        orchestrator_server.state["responses"]["/health"] = (503, {})
        assert provider.is_usable() is False

    def test_bad_credential(self, orchestrator_server, secret_store):
        settings = LlmdSettings(host=orchestrator_server.base_url, api_key="short_key", _env_file=None)
        assert LlmdProvider(settings, secret_store).is_usable() is False


class TestLoadClient:
    """Client (re)configuration from settings."""

    def test_configuration_reused_until_settings_change(self, provider):
        first = provider.load_client().config
        assert provider.load_client().config is first

        provider.settings.timeout = 9
        second = provider.load_client().config
        assert second is not first
        assert second.timeout_seconds == 9

    def test_set_authentication_ignored(self, provider):
        config = provider.load_client().config
        provider.set_authentication("sk-direct-key-123")
        assert provider.load_client().config is config


class TestStaticInformation:
    """Capability and model-setting metadata."""

    def test_operation_types_and_capabilities(self, provider):
        assert provider.get_supported_operation_types() == ["chat", "embeddings"]
        assert "streaming" in provider.get_supported_capabilities()

    def test_api_definition_is_a_copy(self, provider):
        definition = provider.get_api_definition()
        definition["chat"]["url"] = "/tampered"
        assert provider.get_api_definition()["chat"]["url"] == "/v1/chat/completions"

    def test_model_settings(self, provider):
        assert provider.get_model_settings("chat")["temperature"]["max"] == 2.0
        assert provider.get_model_settings("embeddings")["dimensions"]["max"] == 3072
        assert "temperature" in provider.get_model_settings("anything-else")

    @pytest.mark.parametrize(
        ("model_id", "size"),
        [
            ("text-embedding-3-large", 3072),
            ("all-MiniLM-L6-v2", 384),
            ("all-mpnet-base-v2", 768),
            ("unknown-embedder", DEFAULT_VECTOR_SIZE),
        ],
    )
    def test_vector_sizes(self, provider, model_id, size):
        assert provider.embeddings_vector_size(model_id) == size

    def test_token_limits(self, provider):
        assert provider.max_embeddings_input() == 8191
        assert provider.max_input_tokens("qwen3-4b") == 4096
        assert provider.max_output_tokens("qwen3-4b") == 2048
