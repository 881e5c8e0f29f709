"""Content handlers: what the gateway does with a decapsulated request."""

from __future__ import annotations

import time
from collections.abc import Mapping

import httpx

from privacy_gateway.core.config import TargetRewrite
from privacy_gateway.handlers.exceptions import (
    ContentDecodingError,
    TargetForbiddenError,
    TargetRequestError,
)
from privacy_gateway.observability.constants import LogEvents
from privacy_gateway.observability.logger import get_logger
from privacy_gateway.ohttp.bhttp import BinaryHTTPError, BinaryRequest, BinaryResponse

logger = get_logger(__name__)

HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})

# httpx decodes the body, so its framing headers no longer describe it
_DROPPED_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | {"content-encoding", "content-length"}


class EchoContentHandler:
    """Returns the decapsulated content unchanged."""

    async def handle(self, content: bytes) -> bytes:
        return content


class TargetProxyHandler:
    """Forwards a Binary HTTP request to its target and encodes the answer.

    Args:
        allowed_origins: Lower-case origins (``host[:port]``) that may be
            contacted; None allows every origin.
        rewrites: Per-origin replacement scheme and host.
        timeout: Timeout in seconds for each target request.
        client: Shared HTTP client; a short-lived one is used per request
            when omitted.
    """

    def __init__(
        self,
        allowed_origins: frozenset[str] | None = None,
        rewrites: Mapping[str, TargetRewrite] | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.allowed_origins = allowed_origins
        self.rewrites = {origin.lower(): rw for origin, rw in (rewrites or {}).items()}
        self.timeout = httpx.Timeout(timeout)
        self._client = client

    def is_allowed(self, origin: str) -> bool:
        return self.allowed_origins is None or origin in self.allowed_origins

    async def handle(self, content: bytes) -> bytes:
        try:
            request = BinaryRequest.unmarshal(content)
        except BinaryHTTPError as e:
            raise ContentDecodingError(f"invalid binary request: {e}") from e

        origin = (request.authority or request.header("host") or "").lower()
        if not origin:
            raise ContentDecodingError("request has no target authority")

        if not self.is_allowed(origin):
            logger.warning(LogEvents.TARGET_REQUEST_FORBIDDEN, origin=origin)
            raise TargetForbiddenError(origin)

        url = self._target_url(request, origin)
        headers = [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in request.headers
            if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() != "host"
        ]

        response = await self._send(request.method, url, headers, request.content)

        # raw bytes decoded as latin-1 re-encode to the same bytes
        encoded = BinaryResponse(
            status=response.status_code,
            headers=[
                (name.decode("latin-1"), value.decode("latin-1"))
                for name, value in response.headers.raw
                if name.decode("latin-1").lower() not in _DROPPED_RESPONSE_HEADERS
            ],
            content=response.content,
        )
        try:
            return encoded.marshal()
        except ValueError as e:
            raise TargetRequestError(f"target response cannot be encoded: {e}") from e

    def _target_url(self, request: BinaryRequest, origin: str) -> httpx.URL:
        """Build the outbound URL, keeping it on the checked origin or its rewrite.

        Raises:
            ContentDecodingError: If the authority or path is not usable as-is.
            TargetForbiddenError: If the built URL leaves the expected origin.
        """
        path = request.path or "/"
        if not path.startswith("/"):
            raise ContentDecodingError(f"request path must be absolute: {path!r}")

        scheme = request.scheme or "https"
        host = origin
        rewrite = self.rewrites.get(origin)
        if rewrite is not None:
            scheme, host = rewrite.scheme, rewrite.host

        try:
            base = httpx.URL(f"{scheme}://{host}")
            url = base.copy_with(raw_path=path.encode("ascii"))
        except (httpx.InvalidURL, UnicodeEncodeError) as e:
            raise ContentDecodingError(f"invalid target URL: {e}") from e

        if base.userinfo or base.raw_path not in (b"", b"/"):
            raise ContentDecodingError(f"invalid target authority: {host!r}")
        if (url.scheme, url.host, url.port) != (base.scheme, base.host, base.port):
            logger.warning(LogEvents.TARGET_REQUEST_FORBIDDEN, origin=origin, url=str(url))
            raise TargetForbiddenError(origin)
        return url

    async def _send(
        self,
        method: str,
        url: httpx.URL,
        headers: list[tuple[bytes, bytes]],
        content: bytes,
    ) -> httpx.Response:
        start_time = time.perf_counter()
        logger.debug(LogEvents.TARGET_REQUEST_STARTED, method=method, url=str(url))

        try:
            if self._client is not None:
                response = await self._client.request(
                    method, url, headers=headers, content=content, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, headers=headers, content=content)
        except httpx.HTTPError as e:
            logger.warning(
                LogEvents.TARGET_REQUEST_FAILED,
                method=method,
                url=str(url),
                error_type=type(e).__name__,
                error=str(e),
            )
            raise TargetRequestError(f"target request failed: {e}") from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug(
            LogEvents.TARGET_REQUEST_COMPLETED,
            method=method,
            url=str(url),
            status_code=response.status_code,
            latency_ms=latency_ms,
        )
        return response
