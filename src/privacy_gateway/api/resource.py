"""Gateway resource: the HTTP-facing side of the OHTTP gateway.

The exposed operations:

- ``gateway_handler``: validates and parses an encapsulated request, dispatches
  it to the handler registered for the request path and returns the
  encapsulated response.
- ``marshal_handler``: debug-only. Builds an encapsulated request from a
  plaintext body, as a client would.
- ``config_handler`` and ``keys_handler``: publish the active key
  configuration, bare or as an ``application/ohttp-keys`` list, with a
  randomized cache lifetime.

Handler failures collapse to three statuses (401 key mismatch, 403 forbidden
target, 400 otherwise) and the client only ever sees the status phrase for
them, so a failed decryption looks like any other bad request.
"""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus

from starlette.requests import ClientDisconnect, Request
from starlette.responses import PlainTextResponse, Response

from privacy_gateway.core.jitter import CacheLifetimeSampler
from privacy_gateway.handlers.base import EncapsulationHandler, HandlerMode
from privacy_gateway.handlers.exceptions import (
    ConfigMismatchError,
    EncapsulationHandlerError,
    TargetForbiddenError,
)
from privacy_gateway.observability.constants import LogEvents, MetricsEvents, MetricsResults
from privacy_gateway.observability.logger import get_logger
from privacy_gateway.observability.metrics import MetricsFactory
from privacy_gateway.observability.sanitizer import truncate_body
from privacy_gateway.ohttp.exceptions import KeyConfigUnavailableError, MalformedMessageError
from privacy_gateway.ohttp.gateway import OHTTPGateway
from privacy_gateway.ohttp.messages import (
    EncapsulatedRequest,
    PublicKeyConfig,
    marshal_key_configs,
)

logger = get_logger(__name__)

OHTTP_REQUEST_CONTENT_TYPE = "message/ohttp-req"
OHTTP_RESPONSE_CONTENT_TYPE = "message/ohttp-res"
OHTTP_KEYS_CONTENT_TYPE = "application/ohttp-keys"
KEY_CONFIG_CONTENT_TYPE = "application/octet-stream"

MARSHAL_FORBIDDEN_MESSAGE = "Forbidden. Allowed in debug mode only."


class GatewayResource:
    """Dispatches encapsulated requests to per-path handlers.

    Args:
        gateway: Key configuration provider.
        key_id: Identifier of the key configuration being served.
        handlers: Encapsulation handlers keyed by request path. Populated
            before serving and only read afterwards.
        metrics_factory: Creates per-request metrics.
        debug: Expose debug messages to clients and enable the marshal path.
        verbose: Log request details and error messages.
        cache_lifetime: Sampler for the key configuration ``max-age``.
        marshal_prefix: Path prefix under which marshal routes are mounted.
    """

    def __init__(
        self,
        gateway: OHTTPGateway,
        key_id: int,
        handlers: Mapping[str, EncapsulationHandler],
        metrics_factory: MetricsFactory,
        *,
        debug: bool = False,
        verbose: bool = False,
        cache_lifetime: CacheLifetimeSampler | None = None,
        marshal_prefix: str = "/marshal",
    ):
        self.gateway = gateway
        self.key_id = key_id
        self.handlers = dict(handlers)
        self.metrics_factory = metrics_factory
        self.debug = debug
        self.verbose = verbose
        self.cache_lifetime = cache_lifetime or CacheLifetimeSampler()
        self.marshal_prefix = marshal_prefix.rstrip("/")

    def http_error(self, status: int, debug_message: str) -> Response:
        """Build an error response, revealing ``debug_message`` only in debug mode."""
        if self.verbose:
            logger.info(LogEvents.GATEWAY_REQUEST_REJECTED, status=status, message=debug_message)
        body = debug_message if self.debug else HTTPStatus(status).phrase
        return PlainTextResponse(body, status_code=status)

    @staticmethod
    def _status_only(status: int) -> Response:
        return PlainTextResponse(HTTPStatus(status).phrase, status_code=status)

    def _log_received(self, request: Request) -> None:
        if self.verbose:
            logger.info(
                LogEvents.GATEWAY_REQUEST_RECEIVED,
                method=request.method,
                path=request.url.path,
            )

    async def gateway_handler(self, request: Request) -> Response:
        """
        Open an encapsulated request and return the encapsulated response.

        The request is dispatched to the encapsulation handler registered for
        its path.

        **Request:**
        - Method `POST` with `Content-Type: message/ohttp-req`
        - Body: an encapsulated request for the served key identifier

        **Response:**
        - `200` with `Content-Type: message/ohttp-res` on success
        - `401` when the key identifier is not the one being served
        - `403` when the target origin is not allowed
        - `400` for every other failure, with the detail only in debug mode
        """
        try:
            return await self._handle_gateway(request)
        finally:
            await request.close()

    async def _handle_gateway(self, request: Request) -> Response:
        self._log_received(request)
        metrics = self.metrics_factory.create(MetricsEvents.GATEWAY_REQUEST)

        if request.method != "POST":
            metrics.fire(MetricsResults.INVALID_METHOD)
            return self.http_error(400, f"Invalid method: {request.method}")

        content_type = request.headers.get("content-type", "")
        if content_type != OHTTP_REQUEST_CONTENT_TYPE:
            metrics.fire(MetricsResults.INVALID_CONTENT_TYPE)
            return self.http_error(400, f"Invalid content type: {content_type}")

        path = request.url.path
        handler = self.handlers.get(path)
        if handler is None:
            return self.http_error(400, f"Unknown handler for {path}")

        try:
            body = await request.body()
        except (ClientDisconnect, OSError) as e:
            metrics.fire(MetricsResults.INVALID_CONTENT)
            return self.http_error(400, f"Reading request body failed: {e}")

        if self.verbose:
            logger.info(
                LogEvents.GATEWAY_REQUEST_BODY,
                size=len(body),
                preview=truncate_body(body),
            )

        try:
            encapsulated_request = EncapsulatedRequest.unmarshal(body)
        except MalformedMessageError:
            metrics.fire(MetricsResults.INVALID_CONTENT)
            return self.http_error(400, "Reading request body failed")

        try:
            response = await handler.handle(
                request, encapsulated_request, metrics, HandlerMode.DECAPSULATE
            )
        except EncapsulationHandlerError as e:
            if self.verbose:
                logger.warning(
                    LogEvents.GATEWAY_HANDLER_FAILED,
                    path=path,
                    error_type=type(e).__name__,
                    error=e.message,
                )
            if isinstance(e, ConfigMismatchError):
                return self._status_only(401)
            if isinstance(e, TargetForbiddenError):
                return self._status_only(403)
            return self._status_only(400)
        except Exception:
            logger.exception(LogEvents.GATEWAY_HANDLER_UNEXPECTED, path=path)
            return self._status_only(400)

        return Response(
            content=response.marshal(),
            media_type=OHTTP_RESPONSE_CONTENT_TYPE,
            headers={"Connection": "keep-alive"},
        )

    def _content_path(self, path: str) -> str:
        if self.marshal_prefix and path.startswith(self.marshal_prefix + "/"):
            return path[len(self.marshal_prefix) :]
        return path

    async def marshal_handler(self, request: Request) -> Response:
        """
        Encapsulate a plaintext body as a client would. Debug mode only.

        Mounted at the marshal prefix followed by a content path, so
        `/marshal/gateway` builds a request for the `/gateway` handler.

        **Response:**
        - `200` with the encapsulated request as the body
        - `403` outside debug mode
        - `400` for a wrong method, unknown path or failed encapsulation
        """
        try:
            return await self._handle_marshal(request)
        finally:
            await request.close()

    async def _handle_marshal(self, request: Request) -> Response:
        if not self.debug:
            return self.http_error(403, MARSHAL_FORBIDDEN_MESSAGE)

        self._log_received(request)
        metrics = self.metrics_factory.create(MetricsEvents.MARSHAL_REQUEST)
        metrics.fire(MetricsResults.REQUESTED)

        if request.method != "POST":
            return self.http_error(400, f"Invalid method: {request.method}")

        path = self._content_path(request.url.path)
        handler = self.handlers.get(path)
        if handler is None:
            return self.http_error(400, f"Unknown handler for {path}")

        try:
            encapsulated_request = await handler.handle(
                request, None, metrics, HandlerMode.CONSTRUCT
            )
        except EncapsulationHandlerError as e:
            return self.http_error(400, f"Encapsulation failed: {e.message}")
        except Exception:
            logger.exception(LogEvents.MARSHAL_HANDLER_UNEXPECTED, path=path)
            return self._status_only(400)

        content = encapsulated_request.marshal()
        return Response(
            content=content,
            media_type=OHTTP_RESPONSE_CONTENT_TYPE,
            headers={"Content-Length": str(len(content))},
        )

    def _active_config(self) -> PublicKeyConfig | None:
        try:
            return self.gateway.config(self.key_id)
        except KeyConfigUnavailableError as e:
            logger.error(LogEvents.KEY_CONFIG_UNAVAILABLE, key_id=e.key_id)
            return None

    async def config_handler(self, request: Request) -> Response:
        """
        Publish the active key configuration.

        **Response:**
        - `200` with the single encoded key configuration as the body and a
          `Cache-Control` lifetime sampled per response
        - `500` when the served key is unavailable
        """
        self._log_received(request)

        config = self._active_config()
        if config is None:
            return self._status_only(500)

        return Response(
            content=config.marshal(),
            media_type=KEY_CONFIG_CONTENT_TYPE,
            headers={"Cache-Control": self.cache_lifetime.cache_control()},
        )

    async def keys_handler(self, request: Request) -> Response:
        """
        Publish the active key configuration as an `application/ohttp-keys` list.

        Same configuration and caching as :meth:`config_handler`, with each
        configuration prefixed by its two-byte length.
        """
        self._log_received(request)

        config = self._active_config()
        if config is None:
            return self._status_only(500)

        return Response(
            content=marshal_key_configs([config]),
            media_type=OHTTP_KEYS_CONTENT_TYPE,
            headers={"Cache-Control": self.cache_lifetime.cache_control()},
        )
