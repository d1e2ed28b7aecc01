"""Telemetry utilities (structured request log, audit log, metrics)."""

from llmd_bridge.telemetry.metrics import (
    MetricsCollector,
    RequestMetrics,
    ServiceMetrics,
)
from llmd_bridge.telemetry.structured_logging import log_audit, log_request_event

__all__ = [
    "MetricsCollector",
    "RequestMetrics",
    "ServiceMetrics",
    "log_audit",
    "log_request_event",
]
