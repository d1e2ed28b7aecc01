"""Structured logging utilities for the llm-d bridge.

Request events are written as JSON Lines to ``requests.jsonl`` so that calls
to the orchestrator can be analysed after the fact. Separately, every
dispatch emits a one-line audit record on the ``llmd_bridge.audit`` logger.

Log File Configuration:
    - Location: ``$LLMD_LOGS_DIR/requests.jsonl``, else ``./logs/requests.jsonl``
    - Format: JSON Lines (one JSON object per line)
    - Encoding: UTF-8
    - Created lazily on the first event

Event Schema:
    All events include:
        - event: Event type identifier ("llmd_request")
        - timestamp: ISO 8601 timestamp (auto-injected if missing)
        - operation, method, endpoint, status, latency_ms, request_id
    Error events add error_type and, when known, http_status.

Events must never contain payloads, API keys or composed URLs with
credentials. Callers build the event dict; this module only serializes it.
"""

from __future__ import annotations

import functools
import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

AUDIT_LOGGER = logging.getLogger("llmd_bridge.audit")

_DATETIME_ADAPTER = TypeAdapter(datetime)


def _resolve_logs_dir() -> Path:
    configured = os.getenv("LLMD_LOGS_DIR")
    return Path(configured) if configured else Path.cwd() / "logs"


@functools.cache
def get_request_logger() -> logging.Logger:
    """Return the non-propagating JSONL request logger.

    The handler is attached on first use so that importing the package has no
    filesystem side effects.

    Side effects:
        Creates the logs directory and opens ``requests.jsonl`` for append.
    """
    request_logger = logging.getLogger("llmd_bridge.requests")
    if not request_logger.handlers:
        logs_dir = _resolve_logs_dir()
        logs_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(logs_dir / "requests.jsonl", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(message)s"))
        request_logger.addHandler(handler)
        request_logger.setLevel(logging.INFO)
        request_logger.propagate = False
    return request_logger


def _json_default(value: Any) -> Any:
    """Fallback serializer for datetime and Path objects."""
    match value:
        case datetime():
            return _DATETIME_ADAPTER.dump_python(value, mode="json")
        case Path():
            return str(value)
        case _:
            return str(value)


def log_request_event(event: dict[str, Any]) -> None:
    """Emit a structured request event.

    Args:
        event: Event payload. A ``timestamp`` is added if missing (the dict
            is mutated).

    Example:
        >>> log_request_event({
        ...     "event": "llmd_request",
        ...     "operation": "chat_completion",
        ...     "status": "success",
        ...     "latency_ms": 412.7,
        ... })
    """
    event.setdefault("timestamp", datetime.now(UTC).isoformat())
    get_request_logger().info(json.dumps(event, default=_json_default))


def log_audit(method: str, endpoint: str) -> None:
    """Record that a request is about to be sent. Method and endpoint only."""
    AUDIT_LOGGER.info("API request: %s %s", method, endpoint)


__all__ = ["get_request_logger", "log_audit", "log_request_event"]
