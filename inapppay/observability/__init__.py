"""
Observability module - Logging, Metrics, and Tracing.
"""

from inapppay.observability.logging import get_logger, log_context, setup_logging
from inapppay.observability.metrics import metrics
from inapppay.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "get_logger",
    "get_tracer",
    "log_context",
    "setup_logging",
    "metrics",
    "setup_tracing",
]
