"""
Prometheus metrics for filter propagation and batched row operations.

Defines and exposes metrics for:
- Semi-join reductions performed during materialization
- Predicate evaluations
- Row operations per table
- Materialization latency

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    start_http_server,
)

from relflow.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)


class MetricsCollector:
    """
    Prometheus metrics collector for relflow.

    Usage:
        metrics = get_metrics()
        metrics.record_semi_join("flights")
        metrics.record_row_operation("insert", changed=True)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.semi_joins = Counter(
            "relflow_semi_joins_total",
            "Total semi-join reductions applied while propagating filters",
            ["table"],
        )

        self.predicates_applied = Counter(
            "relflow_predicates_applied_total",
            "Total predicates evaluated against a table",
            ["table"],
        )

        self.row_operations = Counter(
            "relflow_row_operations_total",
            "Total per-table row operations",
            ["operation", "status"],  # status: changed, unchanged
        )

        self.materialize_latency = Histogram(
            "relflow_materialize_latency_seconds",
            "Time to materialize a filtered table",
            buckets=LATENCY_BUCKETS,
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    def record_semi_join(self, table: str) -> None:
        self.semi_joins.labels(table=table).inc()

    def record_predicate(self, table: str, count: int = 1) -> None:
        self.predicates_applied.labels(table=table).inc(count)

    def record_row_operation(self, operation: str, changed: bool) -> None:
        """
        Record the outcome of one per-table row operation.

        Args:
            operation: Operation name (insert, update, delete, ...)
            changed: Whether the backend returned a new handle
        """
        status = "changed" if changed else "unchanged"
        self.row_operations.labels(operation=operation, status=status).inc()

    def record_materialize_latency(self, latency: float) -> None:
        self.materialize_latency.observe(latency)


_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
