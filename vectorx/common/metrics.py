"""Metrics collection for VectorX client operations.

Provides a thin convenience wrapper around ``prometheus_client`` so the
client records request, fusion, and codec metrics with consistent labels.

Design notes
- Metrics and labels are predeclared to keep cardinality bounded
- Each collector owns its registry so several clients can coexist
"""

from typing import Optional

from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for client operations.

    Parameters
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.request_count = Counter(
            'vectorx_requests_total',
            'Total requests sent to the VectorX service',
            ['operation', 'status'],
            registry=self.registry
        )

        self.request_duration = Histogram(
            'vectorx_request_duration_seconds',
            'Round trip duration of VectorX requests',
            ['operation'],
            registry=self.registry
        )

        self.fused_results = Histogram(
            'vectorx_fused_results',
            'Number of results returned by rank fusion',
            buckets=(0, 1, 5, 10, 25, 50, 100, 256, 512),
            registry=self.registry
        )

        self.metadata_decode_failures = Counter(
            'vectorx_metadata_decode_failures_total',
            'Metadata payloads that could not be decoded',
            registry=self.registry
        )

        self.serialization_fallbacks = Counter(
            'vectorx_serialization_fallbacks_total',
            'Batches sent as JSON because binary encoding failed',
            registry=self.registry
        )

    def record_request(self, operation: str, status: str, duration: float) -> None:
        """Record a request round trip.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.request_count.labels(operation=operation, status=status).inc()
        self.request_duration.labels(operation=operation).observe(duration)

    def record_fusion(self, fused_count: int) -> None:
        self.fused_results.observe(fused_count)

    def record_metadata_decode_failure(self) -> None:
        self.metadata_decode_failures.inc()

    def record_serialization_fallback(self) -> None:
        self.serialization_fallbacks.inc()

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')
