"""Default encapsulation handler.

Bridges the OHTTP layer and a :class:`ContentHandler`: opens the encapsulated
request under the gateway's key, hands the plaintext to the content handler and
seals its answer with the per-request context. Every invocation fires exactly
one terminal metrics result.
"""

from __future__ import annotations

from starlette.requests import ClientDisconnect, Request

from privacy_gateway.handlers.base import ContentHandler, EncapsulatedMessage, HandlerMode
from privacy_gateway.handlers.exceptions import (
    ConfigMismatchError,
    ContentHandlerFailedError,
    DecapsulationFailedError,
    EncapsulationFailedError,
    EncapsulationHandlerError,
    RequestBodyError,
)
from privacy_gateway.observability.constants import LogEvents, MetricsResults
from privacy_gateway.observability.logger import get_logger
from privacy_gateway.observability.metrics import Metrics
from privacy_gateway.ohttp.exceptions import (
    DecapsulationError,
    EncapsulationError,
    KeyConfigUnavailableError,
)
from privacy_gateway.ohttp.gateway import OHTTPGateway
from privacy_gateway.ohttp.messages import EncapsulatedRequest, EncapsulatedResponse

logger = get_logger(__name__)


class DefaultEncapsulationHandler:
    """Encapsulation handler for one content handler and one active key."""

    def __init__(self, gateway: OHTTPGateway, key_id: int, content_handler: ContentHandler):
        self.gateway = gateway
        self.key_id = key_id
        self.content_handler = content_handler

    async def handle(
        self,
        request: Request,
        encapsulated_request: EncapsulatedRequest | None,
        metrics: Metrics,
        mode: HandlerMode,
    ) -> EncapsulatedMessage:
        if mode is HandlerMode.CONSTRUCT:
            return await self._construct(request, metrics)
        if encapsulated_request is None:
            metrics.fire(MetricsResults.DECAPSULATION_FAILED)
            raise DecapsulationFailedError("no encapsulated request to open")
        return await self._decapsulate(encapsulated_request, metrics)

    async def _decapsulate(
        self,
        encapsulated_request: EncapsulatedRequest,
        metrics: Metrics,
    ) -> EncapsulatedResponse:
        if encapsulated_request.key_id != self.key_id:
            metrics.fire(MetricsResults.CONFIG_MISMATCH)
            raise ConfigMismatchError(encapsulated_request.key_id, self.key_id)

        try:
            plaintext, context = self.gateway.decapsulate(encapsulated_request)
        except DecapsulationError as e:
            metrics.fire(MetricsResults.DECAPSULATION_FAILED)
            raise DecapsulationFailedError(str(e)) from e

        try:
            content = await self.content_handler.handle(plaintext)
        except EncapsulationHandlerError as e:
            metrics.fire(e.metrics_result)
            raise
        except Exception as e:
            metrics.fire(MetricsResults.CONTENT_HANDLER_FAILED)
            logger.exception(
                LogEvents.CONTENT_HANDLER_UNEXPECTED,
                content_handler=type(self.content_handler).__name__,
            )
            raise ContentHandlerFailedError(f"content handler failed: {type(e).__name__}") from e

        try:
            response = context.encapsulate_response(content)
        except EncapsulationError as e:
            metrics.fire(MetricsResults.ENCAPSULATION_FAILED)
            raise EncapsulationFailedError(str(e)) from e

        metrics.fire(MetricsResults.SUCCESS)
        return response

    async def _construct(self, request: Request, metrics: Metrics) -> EncapsulatedRequest:
        try:
            body = await request.body()
        except (ClientDisconnect, OSError) as e:
            metrics.fire(MetricsResults.INVALID_CONTENT)
            raise RequestBodyError(f"reading request body failed: {type(e).__name__}") from e

        try:
            client = self.gateway.client(self.key_id)
            encapsulated_request, _ = client.encapsulate_request(body)
        except (KeyConfigUnavailableError, EncapsulationError) as e:
            metrics.fire(MetricsResults.ENCAPSULATION_FAILED)
            logger.warning(LogEvents.MARSHAL_ENCAPSULATION_FAILED, key_id=self.key_id, error=str(e))
            raise EncapsulationFailedError(str(e)) from e

        metrics.fire(MetricsResults.SUCCESS)
        return encapsulated_request
