"""Observability layer - logging and metrics."""

from relflow.observability.logging import get_logger, log_context, setup_logging
from relflow.observability.metrics import MetricsCollector, get_metrics

__all__ = ["get_logger", "log_context", "setup_logging", "MetricsCollector", "get_metrics"]
