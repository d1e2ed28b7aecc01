"""
Tests for the connection test CLI.
"""

import pytest

from llmd_bridge import LlmdSettings
from llmd_bridge.cli import build_parser, main, run_connection_test

from conftest import TEST_API_KEY, TEST_KEY_REF


@pytest.fixture
def settings(orchestrator_server):
    return LlmdSettings(host=orchestrator_server.base_url, api_key=TEST_KEY_REF, timeout=5, _env_file=None)


class TestRunConnectionTest:
    """Exit codes and report output."""

    def test_full_success(self, capsys, settings, secret_store):
        assert run_connection_test(settings, secret_store) == 0
        out = capsys.readouterr().out
        assert "Successfully connected" in out
        assert "Found 2 available models" in out
        assert "qwen3-4b" in out
        assert "Chat completion endpoint test successful" in out
        assert "Echo: Can you give me information about Australian industry?" in out
        assert TEST_API_KEY not in out

    def test_incomplete_configuration(self, capsys, secret_store):
        assert run_connection_test(LlmdSettings(_env_file=None), secret_store) == 1
        assert "configuration is incomplete" in capsys.readouterr().out

    def test_rejected_configuration(self, capsys, orchestrator_server, secret_store):
        settings = LlmdSettings(host=orchestrator_server.base_url, api_key="short_key", _env_file=None)
        assert run_connection_test(settings, secret_store) == 1
        assert "too short" in capsys.readouterr().out

    def test_unhealthy(self, capsys, orchestrator_server, settings, secret_store):
        orchestrator_server.state["responses"]["/health"] = (503, {})
        assert run_connection_test(settings, secret_store) == 1
        assert "Health check failed" in capsys.readouterr().out

    def test_no_models(self, capsys, orchestrator_server, settings, secret_store):
        orchestrator_server.state["responses"]["/v1/models"] = (200, {"data": []})
        assert run_connection_test(settings, secret_store) == 1
        assert "No models found" in capsys.readouterr().out

    def test_model_listing_failure(self, capsys, orchestrator_server, settings, secret_store):
        orchestrator_server.state["responses"]["/v1/models"] = (200, "garbage")
        assert run_connection_test(settings, secret_store) == 1
        assert "failed to retrieve models" in capsys.readouterr().out

    def test_test_model_missing(self, capsys, orchestrator_server, settings, secret_store):
        assert run_connection_test(settings, secret_store, model="llama-3-70b") == 0
        out = capsys.readouterr().out
        assert "Model llama-3-70b not available" in out
        paths = [r.path for r in orchestrator_server.state["requests"]]
        assert "/v1/chat/completions" not in paths

    def test_chat_failure_reported(self, capsys, orchestrator_server, settings, secret_store):
        orchestrator_server.state["responses"]["/v1/chat/completions"] = (500, {})
        assert run_connection_test(settings, secret_store) == 0
        assert "Chat completion endpoint test failed" in capsys.readouterr().out

    def test_request_summary_after_success(self, capsys, settings, secret_store):
        run_connection_test(settings, secret_store)
        assert "Requests: 3 total, 0 failed" in capsys.readouterr().out

    def test_request_summary_counts_failures(self, capsys, orchestrator_server, settings, secret_store):
        orchestrator_server.state["responses"]["/v1/chat/completions"] = (500, {})
        run_connection_test(settings, secret_store)
        assert "Requests: 3 total, 1 failed" in capsys.readouterr().out

    def test_request_summary_after_early_failure(self, capsys, orchestrator_server, settings, secret_store):
        orchestrator_server.state["responses"]["/health"] = (503, {})
        run_connection_test(settings, secret_store)
        assert "Requests: 1 total, 1 failed" in capsys.readouterr().out

    def test_no_summary_without_requests(self, capsys, secret_store):
        run_connection_test(LlmdSettings(_env_file=None), secret_store)
        assert "Requests:" not in capsys.readouterr().out


class TestMain:
    """Argument parsing and environment wiring."""

    def test_parser_alias(self):
        args = build_parser().parse_args(["llmd-test", "--model", "m1", "--timeout", "10"])
        assert args.model == "m1"
        assert args.timeout == 10

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_main_uses_environment_key(self, capsys, monkeypatch, orchestrator_server):
        monkeypatch.setenv("LLMD_TEST_KEY", TEST_API_KEY)
        exit_code = main(
            ["test", "--host", orchestrator_server.base_url, "--api-key-ref", "LLMD_TEST_KEY", "--timeout", "5"]
        )
        assert exit_code == 0
        assert orchestrator_server.state["requests"][0].headers["X-API-Key"] == TEST_API_KEY

    def test_main_invalid_timeout(self, capsys, orchestrator_server):
        exit_code = main(["test", "--host", orchestrator_server.base_url, "--api-key-ref", "X", "--timeout", "0"])
        assert exit_code == 1
        assert "Invalid settings" in capsys.readouterr().out
