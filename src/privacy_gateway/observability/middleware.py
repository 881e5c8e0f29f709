"""Starlette middleware for correlation IDs and access logging.

The gateway sits behind a relay, so client addresses and user agents are
neither available nor wanted in the logs. Access entries carry the route,
the message sizes and the outcome. Bodies are ciphertext at this layer and are
never logged here.
"""

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from privacy_gateway.observability.constants import CORRELATION_ID_HEADER, LogEvents
from privacy_gateway.observability.context import set_correlation_id
from privacy_gateway.observability.sanitizer import sanitize_headers

logger = structlog.get_logger(__name__)

# Incoming IDs are echoed into logs and response headers
_CORRELATION_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_correlation_id(header_value: str | None) -> str:
    """Return the caller's correlation ID if well formed, else a new UUID4."""
    if header_value and _CORRELATION_ID_PATTERN.match(header_value):
        return header_value
    return str(uuid.uuid4())


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Binds a correlation ID to the request context and echoes it back."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = resolve_correlation_id(request.headers.get(CORRELATION_ID_HEADER))

        set_correlation_id(correlation_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log: one entry when a request starts and one when it ends.

    Completed requests log at info, 4xx at warning, and 5xx or unhandled
    errors at error.

    Args:
        app: The ASGI application.
        log_request_headers: Include the request headers, with credentials
            redacted, in the start entry.
        exclude_paths: Paths that are never logged.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_request_headers: bool = False,
        exclude_paths: set[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_request_headers = log_request_headers
        self.exclude_paths = frozenset(exclude_paths or ())

    @staticmethod
    def _request_fields(request: Request) -> dict[str, str]:
        fields = {
            "method": request.method,
            "path": request.url.path,
            "content_type": request.headers.get("content-type"),
            "request_size": request.headers.get("content-length"),
        }
        return {k: v for k, v in fields.items() if v is not None}

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        fields = self._request_fields(request)
        if self.log_request_headers:
            logger.info(
                LogEvents.REQUEST_STARTED,
                **fields,
                headers=sanitize_headers(dict(request.headers)),
            )
        else:
            logger.info(LogEvents.REQUEST_STARTED, **fields)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                LogEvents.REQUEST_FAILED,
                **fields,
                duration_ms=_elapsed_ms(start_time),
                error_type=type(exc).__name__,
            )
            raise

        status = response.status_code
        outcome = {
            **fields,
            "status_code": status,
            "response_size": response.headers.get("content-length"),
            "duration_ms": _elapsed_ms(start_time),
        }
        if status >= 500:
            logger.error(LogEvents.REQUEST_FAILED, **outcome)
        elif status >= 400:
            logger.warning(LogEvents.REQUEST_COMPLETED, **outcome)
        else:
            logger.info(LogEvents.REQUEST_COMPLETED, **outcome)
        return response


def _elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)
