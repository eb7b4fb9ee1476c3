"""Structured logging configuration using structlog."""

import logging
import os
import sys
import uuid
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "ecoledger",
) -> None:
    """
    Configure structured logging for the service.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, output JSON; if False, output colored console format
        service_name: Name bound to every log entry
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_format:
        renderers: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=[*shared_processors, *renderers],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def configure_logging_from_env() -> None:
    """Configure logging from LOG_LEVEL / LOG_FORMAT."""
    configure_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        json_format=os.getenv("LOG_FORMAT", "json") == "json",
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def bind_request_context(request_id: str, **kwargs: Any) -> None:
    """Bind request context to all subsequent log entries."""
    structlog.contextvars.bind_contextvars(request_id=request_id, **kwargs)


def bind_actor(actor_id: Any) -> None:
    """Attach the acting user to the current request's log context."""
    structlog.contextvars.bind_contextvars(actor_id=str(actor_id))


def clear_request_context() -> None:
    """Drop request-scoped keys, keeping the service binding."""
    structlog.contextvars.unbind_contextvars("request_id", "actor_id")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind an X-Request-ID to the log context for the lifetime of a request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        bind_request_context(request_id, path=request.url.path)
        try:
            response: Response = await call_next(request)
        finally:
            clear_request_context()
            structlog.contextvars.unbind_contextvars("path")
        response.headers["X-Request-ID"] = request_id
        return response
