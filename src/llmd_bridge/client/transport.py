"""Request dispatcher for the llm-d orchestrator.

Sends exactly one HTTP request per call and converts every failure into the
bridge error taxonomy. The dispatcher is the only place in the package that
touches the network.

Key behaviors:
    - Endpoint must be in the fixed allowlist (checked before anything else)
    - Payload size bounded before serialization is sent
    - Host re-classified before each request (non-development hosts)
    - Fixed security headers plus ``X-API-Key`` when a secret is configured
    - TLS verification always on, redirects never followed
    - No retries: ``HTTPAdapter(max_retries=0)``; failures propagate at once
    - Audit line (method + endpoint), JSONL request event and metrics sample
      for every dispatch; payloads and secrets are never logged

Thread safety:
    A dispatcher owns one ``requests.Session``. The configuration is passed in
    per call and read once, so a reconfigured client never sends a request
    with half-old, half-new settings.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from llmd_bridge.core.config import ClientConfiguration
from llmd_bridge.core.network import is_internal_host
from llmd_bridge.core.payload import encode_payload, ensure_within_limit
from llmd_bridge.core.url_validation import validate_endpoint
from llmd_bridge.domain.exceptions import (
    InvalidConfigurationError,
    InvalidRequestError,
    TransportError,
)
from llmd_bridge.telemetry.metrics import MetricsCollector
from llmd_bridge.telemetry.structured_logging import log_audit, log_request_event

logger = logging.getLogger(__name__)

USER_AGENT = "llmd-bridge/1.0"

SECURITY_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "User-Agent": USER_AGENT,
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
}


def build_headers(config: ClientConfiguration) -> dict[str, str]:
    """Fixed security headers plus the API key header when one is set."""
    headers = dict(SECURITY_HEADERS)
    if config.api_key:
        headers["X-API-Key"] = config.api_key.reveal()
    return headers


class RequestDispatcher:
    """Sends single, validated requests to the orchestrator.

    Attributes:
        session: ``requests.Session`` with retries disabled.
    """

    __slots__ = ("session",)

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session or requests.Session()
        adapter = HTTPAdapter(pool_connections=4, pool_maxsize=4, max_retries=0)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def close(self) -> None:
        self.session.close()

    def send(
        self,
        config: ClientConfiguration,
        method: str,
        endpoint: str,
        payload: Any = None,
        operation: str | None = None,
    ) -> requests.Response:
        """Send one request and return the successful response.

        Args:
            config: Validated client configuration to use for this call.
            method: HTTP method ("GET" or "POST").
            endpoint: Canonical endpoint path from the allowlist.
            payload: JSON-serializable body, or None for no body.
            operation: Operation name for logs and metrics. Defaults to
                ``"{method} {endpoint}"``.

        Returns:
            The response, guaranteed to carry a 2xx status.

        Raises:
            InvalidRequestError: If the endpoint is not allowlisted or the
                payload cannot be encoded as UTF-8 JSON.
            PayloadTooLargeError: If the payload reaches the size limit.
            InvalidConfigurationError: If the host now resolves internally.
            TransportError: On network, timeout or TLS failure, or a non-2xx
                status.

        Side effects:
            - Logs an audit line (and the URL in debug mode)
            - Writes a JSONL request event
            - Records a metrics sample
        """
        if not validate_endpoint(endpoint):
            raise InvalidRequestError("Invalid API endpoint provided.")

        body: bytes | None = None
        if payload is not None:
            body = encode_payload(ensure_within_limit(payload))

        base = config.base_url
        if not base.is_development_host and is_internal_host(base.host):
            logger.warning("Host %s resolved to an internal address at send time", base.host)
            raise InvalidConfigurationError("Requests to internal IP addresses are not allowed.")

        method = method.upper()
        operation = operation or f"{method} {endpoint}"
        url = base.join(endpoint)

        if config.debug:
            logger.debug("Making %s request to %s", method, url)
        log_audit(method, endpoint)

        request_id = str(uuid.uuid4())
        start_time = time.perf_counter()

        try:
            response = self.session.request(
                method,
                url,
                data=body,
                headers=build_headers(config),
                timeout=config.timeout_seconds,
                verify=True,
                allow_redirects=False,
            )
        except requests.exceptions.Timeout as exc:
            self._record_failure(operation, method, endpoint, request_id, start_time, "Timeout")
            logger.error("Request to %s timed out after %ss", endpoint, config.timeout_seconds)
            raise TransportError("Request to the orchestrator timed out.", endpoint) from exc
        except requests.exceptions.SSLError as exc:
            self._record_failure(operation, method, endpoint, request_id, start_time, "SSLError")
            logger.error("TLS verification failed for %s", endpoint)
            raise TransportError("Secure connection to the orchestrator failed.", endpoint) from exc
        except requests.exceptions.RequestException as exc:
            error_type = exc.__class__.__name__
            self._record_failure(operation, method, endpoint, request_id, start_time, error_type)
            logger.error("Request to %s failed: %s", endpoint, error_type)
            raise TransportError("Could not reach the orchestrator.", endpoint) from exc

        if not 200 <= response.status_code < 300:
            self._record_failure(
                operation,
                method,
                endpoint,
                request_id,
                start_time,
                "HTTPError",
                response.status_code,
            )
            logger.error("Orchestrator returned HTTP %s for %s", response.status_code, endpoint)
            raise TransportError(
                f"Orchestrator returned HTTP {response.status_code}.",
                endpoint,
                status_code=response.status_code,
            )

        latency_ms = (time.perf_counter() - start_time) * 1000
        MetricsCollector.record_request(
            operation=operation,
            endpoint=endpoint,
            latency_ms=latency_ms,
            success=True,
        )
        log_request_event(
            {
                "event": "llmd_request",
                "operation": operation,
                "method": method,
                "endpoint": endpoint,
                "status": "success",
                "http_status": response.status_code,
                "request_id": request_id,
                "latency_ms": round(latency_ms, 3),
                "request_bytes": len(body) if body is not None else 0,
            }
        )
        return response

    def _record_failure(
        self,
        operation: str,
        method: str,
        endpoint: str,
        request_id: str,
        start_time: float,
        error_type: str,
        status_code: int | None = None,
    ) -> None:
        """Record metrics and a structured error event for a failed dispatch."""
        latency_ms = (time.perf_counter() - start_time) * 1000
        error_name = f"{error_type}:{status_code}" if status_code else error_type

        MetricsCollector.record_request(
            operation=operation,
            endpoint=endpoint,
            latency_ms=latency_ms,
            success=False,
            error=error_name,
        )

        log_data: dict[str, Any] = {
            "event": "llmd_request",
            "operation": operation,
            "method": method,
            "endpoint": endpoint,
            "status": "error",
            "request_id": request_id,
            "latency_ms": round(latency_ms, 3),
            "error_type": error_type,
        }
        if status_code is not None:
            log_data["http_status"] = status_code

        log_request_event(log_data)


__all__ = ["SECURITY_HEADERS", "USER_AGENT", "RequestDispatcher", "build_headers"]
