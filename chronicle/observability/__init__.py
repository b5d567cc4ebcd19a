"""Observability: structured logging and Prometheus metrics.

structlog for logging, prometheus_client for metrics.
"""

from chronicle.observability.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
