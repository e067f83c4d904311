"""Global error handling middleware."""

import logging
import traceback

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from petnotify.errors import PersistenceError
from petnotify.middleware.logging import redact_pii

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch unhandled exceptions and return safe error responses."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except PersistenceError as exc:
            logger.error("Persistence failure: %s", redact_pii(str(exc)))
            return JSONResponse(
                status_code=503,
                content={
                    "detail": "The notification store is unavailable. Please try again later.",
                    "error_type": type(exc).__name__,
                },
            )
        except Exception as exc:
            logger.error(
                "Unhandled exception: %s\n%s",
                redact_pii(str(exc)),
                redact_pii(traceback.format_exc()),
            )
            return JSONResponse(
                status_code=500,
                content={
                    "detail": "An internal error occurred. Please try again later.",
                    "error_type": type(exc).__name__,
                },
            )
