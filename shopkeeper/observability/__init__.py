"""
Observability components.

Provides structured logging with correlation IDs and in-process metrics.
"""

from .logging import (ContextualLoggerAdapter, RequestContext,
                      clear_correlation_id, clear_request_context,
                      current_context, get_correlation_id, get_logger,
                      get_logging_context, log_list_operation,
                      set_correlation_id, set_request_context)
from .metrics import (MetricsCollector, OperationMetrics,
                      get_metrics_collector, record_operation,
                      timed_operation)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationMetrics",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    # Logging
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "set_request_context",
    "clear_request_context",
    "get_logging_context",
    "RequestContext",
    "current_context",
    "ContextualLoggerAdapter",
    "get_logger",
    "log_list_operation",
]
