"""Connection test CLI for the llm-d bridge.

Usage:
    llmd-bridge test
    llmd-bridge test --model qwen3-4b
    llmd-bridge test --host https://llmd.example.com --api-key-ref LLMD_API_KEY

Configuration is read from ``LLMD_*`` environment variables (see
``llmd_bridge.core.config``); command-line options override it. The API key
reference is looked up in the process environment.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from collections.abc import Sequence

from llmd_bridge.client.sync import OrchestratorClient
from llmd_bridge.core.config import LlmdSettings
from llmd_bridge.core.credentials import EnvironmentSecretStore, SecretStore
from llmd_bridge.domain.entities import ChatMessage, ChatRequest
from llmd_bridge.domain.exceptions import BridgeError
from llmd_bridge.telemetry.metrics import MetricsCollector

logger = logging.getLogger(__name__)

DEFAULT_TEST_MODEL = "qwen3-4b"
TEST_PROMPT = "Can you give me information about Australian industry?"


def print_header(title: str) -> None:
    print(f"\n{'=' * 60}")
    print(f"  {title}")
    print(f"{'=' * 60}")


def print_models_table(rows: list[tuple[str, str, str]]) -> None:
    headers = ("Model ID", "Kind", "Owned By")
    widths = [max(len(h), *(len(r[i]) for r in rows)) for i, h in enumerate(headers)]
    line = "  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True))
    print(f"  {line}")
    print(f"  {'-' * len(line)}")
    for row in rows:
        print("  " + "  ".join(c.ljust(w) for c, w in zip(row, widths, strict=True)))


def print_request_summary() -> None:
    metrics = MetricsCollector.get_metrics()
    if not metrics.total_requests:
        return
    print(
        f"\nRequests: {metrics.total_requests} total, {metrics.failed_requests} failed, "
        f"avg {metrics.average_latency_ms:.1f} ms, p95 {metrics.p95_latency_ms:.1f} ms"
    )


def run_connection_test(
    settings: LlmdSettings,
    store: SecretStore,
    model: str = DEFAULT_TEST_MODEL,
    client: OrchestratorClient | None = None,
) -> int:
    """Check configuration, health, model listing and one chat completion.

    Returns:
        Process exit code: 0 when the orchestrator is reachable and healthy,
        1 otherwise. A missing test model or failed chat test is reported
        but does not change the exit code.
    """
    print_header("LLM-d orchestrator connection test")

    if not settings.is_complete:
        print("✗ LLM-d configuration is incomplete. Host URL and API key are required.")
        print("  Set LLMD_HOST and LLMD_API_KEY, or pass --host and --api-key-ref.")
        return 1

    print(f"  Host:    {settings.host}")
    print(f"  API key: {settings.api_key}")
    print(f"  Timeout: {settings.timeout} seconds")

    client = client or OrchestratorClient()
    try:
        client.configure(
            settings.host,
            settings.api_key,
            settings.timeout,
            True,
            store=store,
        )
    except BridgeError as exc:
        print(f"✗ Configuration rejected: {exc}")
        return 1

    try:
        return check_orchestrator(client, model)
    finally:
        print_request_summary()


def check_orchestrator(client: OrchestratorClient, model: str) -> int:
    """Run the health, listing and chat steps against a configured client."""
    print("\nChecking health endpoint...")
    if not client.health_check():
        print("✗ Failed to connect to LLM-d orchestrator. Health check failed.")
        print("  Verify the configuration and that the orchestrator is running.")
        return 1
    print("✓ Successfully connected to LLM-d orchestrator")

    print("\nFetching available models...")
    try:
        models = client.list_models()
    except BridgeError as exc:
        print("✗ Connected to orchestrator but failed to retrieve models.")
        print(f"  Error: {exc}")
        return 1

    if not models:
        print("✗ No models found on the orchestrator.")
        return 1

    print(f"✓ Found {len(models)} available models:")
    print_models_table([(m.id, m.kind, m.owner_label) for m in models])

    if model not in {m.id for m in models}:
        print(f"\n! Model {model} not available. Skipping chat completion test.")
        return 0

    print(f"\nTesting chat completion endpoint with {model}...")
    try:
        request = ChatRequest.create(model, [ChatMessage(role="user", content=TEST_PROMPT)])
        started = time.perf_counter()
        result = client.chat_completion(request)
        elapsed = time.perf_counter() - started
    except BridgeError as exc:
        print(f"✗ Chat completion endpoint test failed: {exc}")
        return 0

    print(f"✓ Chat completion endpoint test successful. Took {elapsed:.2f} seconds")
    print(f"\nResponse:\n{result.content}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llmd-bridge",
        description="Utilities for the llm-d orchestrator bridge",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    test = subparsers.add_parser(
        "test",
        aliases=["llmd-test"],
        help="Test the connection to the orchestrator and list available models",
    )
    test.add_argument(
        "--model",
        default=DEFAULT_TEST_MODEL,
        help=f"Model to run the chat completion test with (default: {DEFAULT_TEST_MODEL})",
    )
    test.add_argument("--host", help="Orchestrator base URL (overrides LLMD_HOST)")
    test.add_argument(
        "--api-key-ref",
        help="Environment variable holding the API key (overrides LLMD_API_KEY)",
    )
    test.add_argument("--timeout", type=int, help="Request timeout in seconds")
    test.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {
        key: value
        for key, value in {
            "host": args.host,
            "api_key": args.api_key_ref,
            "timeout": args.timeout,
        }.items()
        if value is not None
    }
    try:
        settings = LlmdSettings(**overrides)
    except ValueError as exc:
        print(f"✗ Invalid settings: {exc}")
        return 1

    return run_connection_test(settings, EnvironmentSecretStore(), model=args.model)


if __name__ == "__main__":
    sys.exit(main())
