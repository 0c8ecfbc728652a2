"""
structlog setup for the API and the reminder jobs.

Every event carries the request's correlation id and the acting user when
there is one. Clinical free text and credentials never reach the log
output: those keys are masked before rendering.
"""
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from fastapi import Request

CORRELATION_HEADER = "X-Correlation-ID"

# Keys whose values are patient data or secrets
SENSITIVE_KEYS = frozenset({
    "notes", "summary", "raw_notes", "body", "text", "html",
    "password", "password_hash", "access_token", "authorization",
})

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
user_context: ContextVar[Dict[str, Any]] = ContextVar("user_context", default={})


class RequestContextProcessor:
    """Adds the correlation id and the user context to every event."""

    def __call__(self, logger, method_name, event_dict):
        correlation_id = correlation_id_var.get()
        if correlation_id:
            event_dict.setdefault("correlation_id", correlation_id)
        for key, value in user_context.get().items():
            event_dict.setdefault(key, value)
        return event_dict


class RedactingProcessor:
    """Masks sensitive keys and caps the length of error/message fields."""

    def __init__(self, max_length: int = 200):
        self.max_length = max_length

    def __call__(self, logger, method_name, event_dict):
        for key in SENSITIVE_KEYS.intersection(event_dict):
            event_dict[key] = "[redacted]"
        for key in ("error", "message", "detail"):
            if key in event_dict:
                event_dict[key] = str(event_dict[key])[: self.max_length]
        return event_dict


def setup_logging(debug: bool = False, max_log_length: int = 200, level: str = "INFO"):
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        RequestContextProcessor(),
        RedactingProcessor(max_length=max_log_length),
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=log_level, format="%(message)s")


def get_logger(name: str = __name__):
    return structlog.get_logger(name)


def set_user_context(user_id: Optional[str] = None, **kwargs):
    """Replace the user context (None clears it)."""
    context = {k: v for k, v in kwargs.items() if v is not None}
    if user_id:
        context["user_id"] = user_id
    user_context.set(context)


def bind_user(user_id: Optional[str], **kwargs):
    """Add the authenticated user to the current request's context."""
    context = dict(user_context.get())
    context["user_id"] = user_id
    context.update({k: v for k, v in kwargs.items() if v is not None})
    user_context.set(context)


def clear_context():
    correlation_id_var.set("")
    user_context.set({})


class LoggingMiddleware:
    """
    Per-request correlation id (reused from the incoming header when a
    caller supplies one), echoed back in the response. Only slow and failed
    requests are logged unless request/response logging is switched on.
    """

    def __init__(self, log_requests: bool = False, log_responses: bool = False,
                 slow_threshold: float = 2.0):
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.slow_threshold = slow_threshold
        self.logger = get_logger("companion.http")

    async def __call__(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex[:8]
        correlation_id_var.set(correlation_id)
        set_user_context(path=request.url.path, method=request.method)
        request.state.correlation_id = correlation_id

        started = time.perf_counter()
        if self.log_requests:
            self.logger.info("request_start", query=str(request.query_params) or None)

        try:
            try:
                response = await call_next(request)
            except Exception as e:
                self.logger.error(
                    "request_error",
                    error=str(e),
                    error_type=type(e).__name__,
                    duration=round(time.perf_counter() - started, 3),
                )
                raise

            elapsed = time.perf_counter() - started
            slow = elapsed > self.slow_threshold
            if self.log_responses or slow or response.status_code >= 400:
                self.logger.info(
                    "request_complete",
                    status_code=response.status_code,
                    duration=round(elapsed, 3),
                    slow=slow,
                )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            clear_context()
