"""In-memory request metrics for the llm-d bridge.

Key behaviors:
    - In-memory storage with automatic size limiting (max 10,000 samples)
    - Percentile and average latency calculations
    - Automatic timestamp tracking with UTC timezone

The dispatcher records one sample per orchestrator call; the connection test
CLI prints the aggregate. The collector is class-level state shared by every
client in the process. It is not thread-safe; concurrent callers may lose
samples, never corrupt requests.
"""

from __future__ import annotations

import logging
import statistics
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import ClassVar, Self

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RequestMetrics:
    """Metrics for a single orchestrator call.

    Attributes:
        operation: Client operation ("chat_completion", "list_models", ...).
        endpoint: Endpoint path that was requested.
        latency_ms: Call latency in milliseconds.
        success: Whether the call succeeded.
        error: Error type if the call failed.
        timestamp: UTC time the sample was recorded.
    """

    operation: str
    endpoint: str
    latency_ms: float
    success: bool
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(slots=True)
class ServiceMetrics:
    """Aggregated metrics over a window of RequestMetrics."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    requests_by_operation: dict[str, int] = field(default_factory=dict)
    average_latency_ms: float = 0.0
    p50_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    p99_latency_ms: float = 0.0
    errors_by_type: dict[str, int] = field(default_factory=dict)
    last_request_time: datetime | None = None
    first_request_time: datetime | None = None


class MetricsCollector:
    """Collects and aggregates orchestrator call metrics.

    Attributes:
        _metrics: Class variable storing recorded samples.
        _max_metrics: Maximum number of samples retained (default: 10,000).
    """

    _metrics: ClassVar[list[RequestMetrics]] = []
    _max_metrics: ClassVar[int] = 10_000

    @classmethod
    def record_request(
        cls,
        operation: str,
        endpoint: str,
        latency_ms: float,
        success: bool,
        error: str | None = None,
    ) -> None:
        """Record one call. Trims the oldest samples past ``_max_metrics``."""
        cls._metrics.append(
            RequestMetrics(
                operation=operation,
                endpoint=endpoint,
                latency_ms=latency_ms,
                success=success,
                error=error,
            )
        )
        if len(cls._metrics) > cls._max_metrics:
            cls._metrics = cls._metrics[-cls._max_metrics :]

        logger.debug("Recorded metric: %s %s - %.2fms", operation, endpoint, latency_ms)

    @classmethod
    def get_metrics(cls) -> ServiceMetrics:
        """Aggregate every retained sample."""
        metrics = cls._metrics
        if not metrics:
            return ServiceMetrics()

        latencies = sorted(m.latency_ms for m in metrics)
        successful = sum(1 for m in metrics if m.success)

        match len(latencies):
            case n if n >= 2:
                quantiles = statistics.quantiles(latencies, n=100)
                p50, p95, p99 = quantiles[49], quantiles[94], quantiles[98]
            case _:
                p50 = p95 = p99 = latencies[0]

        return ServiceMetrics(
            total_requests=len(metrics),
            successful_requests=successful,
            failed_requests=len(metrics) - successful,
            requests_by_operation=dict(Counter(m.operation for m in metrics)),
            average_latency_ms=sum(latencies) / len(latencies),
            p50_latency_ms=p50,
            p95_latency_ms=p95,
            p99_latency_ms=p99,
            errors_by_type=dict(Counter(m.error for m in metrics if m.error)),
            last_request_time=max(m.timestamp for m in metrics),
            first_request_time=min(m.timestamp for m in metrics),
        )

    @classmethod
    def reset(cls) -> Self:
        """Drop all recorded samples."""
        cls._metrics = []
        return cls


__all__ = ["MetricsCollector", "RequestMetrics", "ServiceMetrics"]
