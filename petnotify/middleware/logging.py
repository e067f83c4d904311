"""Structured logging middleware with push-token and email redaction."""

import logging
import re
import time
import uuid
from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
EXPO_TOKEN_PATTERN = re.compile(r"ExponentPushToken\[[^\]]*\]")
# FCM registration tokens: "<instance id>:<long base64url blob>"
FCM_TOKEN_PATTERN = re.compile(r"\b[\w-]{11,}:[\w-]{100,}")


def redact_pii(text: str) -> str:
    """Redact email addresses and device push tokens from text."""
    text = EMAIL_PATTERN.sub("[REDACTED_EMAIL]", text)
    text = EXPO_TOKEN_PATTERN.sub("ExponentPushToken[REDACTED]", text)
    text = FCM_TOKEN_PATTERN.sub("[REDACTED_FCM_TOKEN]", text)
    return text


def setup_logging(debug: bool = False) -> None:
    """Configure structlog for JSON output."""
    log_level = logging.DEBUG if debug else logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=log_level)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with a short request id bound into the context."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        logger = structlog.get_logger()

        await logger.ainfo(
            "request_started",
            method=request.method,
            path=redact_pii(str(request.url.path)),
            client=request.client.host if request.client else "unknown",
        )

        response = await call_next(request)

        await logger.ainfo(
            "request_completed",
            method=request.method,
            path=redact_pii(str(request.url.path)),
            status_code=response.status_code,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response
