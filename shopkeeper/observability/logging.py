"""
Request-scoped logging for Shopkeeper.

A single context variable holds the `RequestContext` of the request being
served: its correlation id, the resolved subject and whatever list and
operation the handler is working on. `get_logger` returns an adapter that
copies that context onto every record it emits, and `log_list_operation`
writes the one-line summary the data layer emits per database call.
"""

import contextvars
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class RequestContext:
    correlation_id: str | None = None
    subject_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_log_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"timestamp": datetime.now().isoformat()}
        if self.correlation_id:
            fields["correlation_id"] = self.correlation_id
        if self.subject_id is not None:
            fields["subject_id"] = self.subject_id
        fields.update(self.extra)
        return fields


_EMPTY = RequestContext()

_context: contextvars.ContextVar[RequestContext] = contextvars.ContextVar(
    "shopkeeper_request_context", default=_EMPTY
)


def current_context() -> RequestContext:
    return _context.get()


def get_correlation_id() -> str | None:
    return _context.get().correlation_id


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Start tracing a request; a fresh uuid4 is used when none is supplied.

    Returns:
        The correlation id now in effect
    """
    correlation_id = correlation_id or str(uuid.uuid4())
    _context.set(replace(_context.get(), correlation_id=correlation_id))
    return correlation_id


def clear_correlation_id() -> None:
    _context.set(replace(_context.get(), correlation_id=None))


def set_request_context(subject_id: str | None = None, **extra: Any) -> None:
    """
    Record who the request is for, plus any handler-specific fields
    (``list_key``, ``operation``). Fields accumulate over the request.
    """
    current = _context.get()
    _context.set(
        replace(current, subject_id=subject_id or ANONYMOUS, extra={**current.extra, **extra})
    )


def clear_request_context() -> None:
    _context.set(replace(_context.get(), subject_id=None, extra={}))


def get_logging_context() -> dict[str, Any]:
    """Fields the contextual logger attaches to each record."""
    return _context.get().as_log_fields()


class ContextualLoggerAdapter(logging.LoggerAdapter):
    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**get_logging_context(), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_list_operation(
    logger: logging.Logger,
    list_key: str,
    operation: str,
    success: bool = True,
    duration_ms: float | None = None,
    **context: Any,
) -> None:
    """
    Log one database call made on behalf of a list.

    Successful calls are logged at DEBUG, failures at WARNING, e.g.
    ``Shop.find failed after 12.35ms``.
    """
    fields = get_logging_context()
    fields.update({"list_key": list_key, "operation": operation, "success": success})
    if duration_ms is not None:
        fields["duration_ms"] = round(duration_ms, 2)
    fields.update(context)

    message = f"{list_key}.{operation} {'ok' if success else 'failed'}"
    if duration_ms is not None:
        message += f" after {duration_ms:.2f}ms"
    logger.log(logging.DEBUG if success else logging.WARNING, message, extra=fields)
