"""
Pytest configuration and fixtures for llm-d bridge tests.
"""

import json
import socket
import socketserver
import sys
import threading
import time
from http.server import BaseHTTPRequestHandler
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from llmd_bridge import MappingSecretStore, MetricsCollector, OrchestratorClient  # noqa: E402

TEST_API_KEY = "sk-test-0123456789"
TEST_KEY_REF = "llmd_api_key"


class ThreadedTCPServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    allow_reuse_address = True
    daemon_threads = True


def _default_responses():
    return {
        "/health": (200, {"status": "healthy"}),
        "/v1/models": (
            200,
            {
                "object": "list",
                "data": [
                    {
                        "id": "qwen3-4b",
                        "object": "model",
                        "created": 1730000000,
                        "owned_by": "llm-d",
                        "metadata": {"description": "Qwen3 4B", "max_tokens": 8192},
                    },
                    {
                        "id": "all-MiniLM-L6-v2",
                        "metadata": {"dimensions": 384},
                    },
                ],
            },
        ),
        "/v1/embeddings": (
            200,
            {
                "object": "list",
                "data": [{"object": "embedding", "embedding": [0.1, 0.2, 0.3], "index": 0}],
                "model": "all-MiniLM-L6-v2",
                "usage": {"prompt_tokens": 2, "total_tokens": 2},
            },
        ),
        "/v1/completions": (
            200,
            {"choices": [{"text": "completed", "index": 0}], "model": "qwen3-4b"},
        ),
    }


class OrchestratorRequestHandler(BaseHTTPRequestHandler):
    def _send(self, status: int, body):
        raw = body if isinstance(body, bytes | str) else json.dumps(body)
        payload = raw.encode("utf-8") if isinstance(raw, str) else raw
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def _handle(self, method: str):
        state = self.server.server_state  # type: ignore[attr-defined]
        length = int(self.headers.get("Content-Length", "0"))
        raw = self.rfile.read(length) if length else b""
        body = json.loads(raw.decode("utf-8")) if raw else None
        if state.get("delay"):
            time.sleep(state["delay"])

        state["requests"].append(
            SimpleNamespace(
                method=method,
                path=self.path,
                headers=dict(self.headers.items()),
                body=body,
                raw=raw,
            )
        )

        responses = state["responses"]
        if self.path == "/v1/chat/completions" and self.path not in responses:
            messages = (body or {}).get("messages", [])
            last = messages[-1]["content"] if messages else ""
            self._send(
                200,
                {
                    "choices": [
                        {"message": {"role": "assistant", "content": f"Echo: {last}"}, "finish_reason": "stop"}
                    ],
                    "model": (body or {}).get("model"),
                    "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
                },
            )
            return

        if self.path in responses:
            status, response_body = responses[self.path]
            self._send(status, response_body)
            return

        self._send(404, {"error": "not found"})

    def do_GET(self):
        self._handle("GET")

    def do_POST(self):
        self._handle("POST")

    def log_message(self, format, *args):
        # Keep test output clean.
        return


@pytest.fixture(autouse=True, scope="session")
def isolated_request_log(tmp_path_factory):
    """Send the JSONL request log to a temporary directory."""
    logs_dir = tmp_path_factory.mktemp("logs")
    with patch.dict("os.environ", {"LLMD_LOGS_DIR": str(logs_dir)}):
        yield logs_dir


@pytest.fixture(autouse=True)
def reset_metrics():
    MetricsCollector.reset()
    yield
    MetricsCollector.reset()


@pytest.fixture
def orchestrator_server():
    """Start a lightweight HTTP server mimicking the orchestrator endpoints.

    ``state["responses"]`` maps a path to ``(status, body)``; body may be a
    dict (sent as JSON) or a raw string. Every request received is appended
    to ``state["requests"]``. Setting ``state["delay"]`` (seconds) stalls every
    response, for timeout tests.
    """
    state = {"responses": _default_responses(), "requests": [], "delay": 0}

    server = ThreadedTCPServer(("127.0.0.1", 0), OrchestratorRequestHandler)
    server.server_state = state  # type: ignore[attr-defined]

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    base_url = f"http://127.0.0.1:{server.server_address[1]}"

    try:
        yield SimpleNamespace(base_url=base_url, state=state)
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def secret_store():
    return MappingSecretStore({TEST_KEY_REF: TEST_API_KEY, "short_key": "abc123", "empty_key": ""})


@pytest.fixture
def client(orchestrator_server, secret_store):
    """OrchestratorClient configured against the fake orchestrator."""
    orchestrator = OrchestratorClient()
    orchestrator.configure(orchestrator_server.base_url, TEST_KEY_REF, timeout=5, store=secret_store)
    yield orchestrator
    orchestrator.close()


def fake_getaddrinfo(mapping):
    """Build a getaddrinfo replacement resolving names from ``mapping``.

    Names missing from the mapping raise ``socket.gaierror``.
    """

    def _getaddrinfo(host, port, family=0, type=0, proto=0, flags=0):
        if host not in mapping:
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        results = []
        for address in mapping[host]:
            fam = socket.AF_INET6 if ":" in address else socket.AF_INET
            sockaddr = (address, port or 0, 0, 0) if fam == socket.AF_INET6 else (address, port or 0)
            results.append((fam, socket.SOCK_STREAM, 6, "", sockaddr))
        return results

    return _getaddrinfo


@pytest.fixture
def dns():
    """Patch name resolution; tests fill the returned mapping."""
    mapping: dict[str, list[str]] = {}
    with patch("llmd_bridge.core.network.socket.getaddrinfo", side_effect=fake_getaddrinfo(mapping)):
        yield mapping
