"""Handler contracts used by the gateway resource."""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from starlette.requests import Request

from privacy_gateway.observability.metrics import Metrics
from privacy_gateway.ohttp.messages import EncapsulatedRequest


class HandlerMode(str, Enum):
    """What an encapsulation handler is asked to do."""

    # open a client's encapsulated request and encapsulate the response
    DECAPSULATE = "decapsulate"
    # act as a client: encapsulate the raw request body (debug marshal)
    CONSTRUCT = "construct"


class EncapsulatedMessage(Protocol):
    """Anything that serializes to OHTTP wire bytes."""

    def marshal(self) -> bytes: ...


class EncapsulationHandler(Protocol):
    """Per-path handler invoked by the gateway resource.

    In ``DECAPSULATE`` mode ``encapsulated_request`` is the parsed request and
    the return value is an encapsulated response. In ``CONSTRUCT`` mode it is
    None and the return value is an encapsulated request built from the body
    of ``request``.

    Failures are raised as
    :class:`~privacy_gateway.handlers.exceptions.EncapsulationHandlerError`.
    """

    async def handle(
        self,
        request: Request,
        encapsulated_request: EncapsulatedRequest | None,
        metrics: Metrics,
        mode: HandlerMode,
    ) -> EncapsulatedMessage: ...


class ContentHandler(Protocol):
    """Transforms decapsulated request content into response content."""

    async def handle(self, content: bytes) -> bytes: ...
