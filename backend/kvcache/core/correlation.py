"""
Correlation ID Middleware

Request tracking via correlation IDs.
Reuses the caller's x-correlation-id header when it is a valid UUID,
otherwise generates a new UUID4, binds it to the structlog context and
echoes it back in the response headers.
"""

import uuid
from typing import Awaitable, Callable, Optional

import structlog
from fastapi import Request
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "x-correlation-id"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware for managing correlation IDs in HTTP requests.

    Automatically generates or extracts correlation IDs, attaches them to
    the current span and log context, and adds them to response headers.
    """

    def __init__(self, app: ASGIApp, header_name: str = CORRELATION_HEADER):
        super().__init__(app)
        self.header_name = header_name.lower()

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = self._extract_or_generate(request)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
        trace.get_current_span().set_attribute("correlation_id", correlation_id)

        logger.debug(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unexpected error during request processing")
            raise
        finally:
            structlog.contextvars.unbind_contextvars("correlation_id")

        response.headers[self.header_name] = correlation_id
        logger.debug(
            "Request completed",
            status_code=response.status_code,
            correlation_id=correlation_id,
        )
        return response

    def _extract_or_generate(self, request: Request) -> str:
        existing = request.headers.get(self.header_name)
        if existing and self._is_valid(existing):
            return existing
        return str(uuid.uuid4())

    @staticmethod
    def _is_valid(value: Optional[str]) -> bool:
        try:
            uuid.UUID(value)
        except (TypeError, ValueError):
            return False
        return True
