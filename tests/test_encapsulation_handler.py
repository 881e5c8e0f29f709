"""Tests for DefaultEncapsulationHandler.

Each invocation must fire exactly one terminal metrics result, whatever the
outcome.
"""

from __future__ import annotations

import pytest

from privacy_gateway.handlers import (
    ConfigMismatchError,
    ContentHandlerFailedError,
    DecapsulationFailedError,
    DefaultEncapsulationHandler,
    EchoContentHandler,
    EncapsulationFailedError,
    HandlerMode,
    RequestBodyError,
    TargetForbiddenError,
)
from privacy_gateway.observability.constants import MetricsResults
from privacy_gateway.ohttp import EncapsulatedRequest, OHTTPClient, OHTTPGateway
from tests.helpers import KEY_ID, RecordingMetrics, make_request


class SpyContentHandler:
    """Content handler recording what it receives."""

    def __init__(self, response: bytes = b"response", error: Exception | None = None):
        self.received: list[bytes] = []
        self.response = response
        self.error = error

    async def handle(self, content: bytes) -> bytes:
        self.received.append(content)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fired() -> list[tuple[str, str]]:
    return []


@pytest.fixture
def metrics(fired: list[tuple[str, str]]) -> RecordingMetrics:
    return RecordingMetrics("gateway_request", fired)


def results(fired: list[tuple[str, str]]) -> list[str]:
    return [result for _, result in fired]


class TestDecapsulateMode:
    @pytest.mark.asyncio
    async def test_success(
        self,
        gateway: OHTTPGateway,
        ohttp_client: OHTTPClient,
        metrics: RecordingMetrics,
        fired: list[tuple[str, str]],
    ) -> None:
        spy = SpyContentHandler(response=b"pong")
        handler = DefaultEncapsulationHandler(gateway, KEY_ID, spy)
        request, client_context = ohttp_client.encapsulate_request(b"ping")

        response = await handler.handle(make_request(), request, metrics, HandlerMode.DECAPSULATE)

        assert spy.received == [b"ping"]
        assert client_context.decapsulate_response(response.marshal()) == b"pong"
        assert results(fired) == [MetricsResults.SUCCESS]

    @pytest.mark.asyncio
    async def test_key_mismatch_stops_before_decapsulation(
        self,
        gateway: OHTTPGateway,
        metrics: RecordingMetrics,
        fired: list[tuple[str, str]],
    ) -> None:
        spy = SpyContentHandler()
        handler = DefaultEncapsulationHandler(gateway, KEY_ID, spy)
        # garbage ciphertext under another key identifier
        request = EncapsulatedRequest.unmarshal(
            bytes([KEY_ID + 1]) + b"\x00\x20\x00\x01\x00\x01" + b"\xaa" * 48
        )

        with pytest.raises(ConfigMismatchError) as exc_info:
            await handler.handle(make_request(), request, metrics, HandlerMode.DECAPSULATE)

        assert exc_info.value.key_id == KEY_ID + 1
        assert spy.received == []
        assert results(fired) == [MetricsResults.CONFIG_MISMATCH]

    @pytest.mark.asyncio
    async def test_decapsulation_failure(
        self,
        gateway: OHTTPGateway,
        ohttp_client: OHTTPClient,
        metrics: RecordingMetrics,
        fired: list[tuple[str, str]],
    ) -> None:
        spy = SpyContentHandler()
        handler = DefaultEncapsulationHandler(gateway, KEY_ID, spy)
        request, _ = ohttp_client.encapsulate_request(b"ping")
        data = bytearray(request.marshal())
        data[-1] ^= 0x01
        tampered = EncapsulatedRequest.unmarshal(bytes(data))

        with pytest.raises(DecapsulationFailedError):
            await handler.handle(make_request(), tampered, metrics, HandlerMode.DECAPSULATE)

        assert spy.received == []
        assert results(fired) == [MetricsResults.DECAPSULATION_FAILED]

    @pytest.mark.asyncio
    async def test_content_handler_error_fires_its_result(
        self,
        gateway: OHTTPGateway,
        ohttp_client: OHTTPClient,
        metrics: RecordingMetrics,
        fired: list[tuple[str, str]],
    ) -> None:
        spy = SpyContentHandler(error=TargetForbiddenError("blocked.example"))
        handler = DefaultEncapsulationHandler(gateway, KEY_ID, spy)
        request, _ = ohttp_client.encapsulate_request(b"ping")

        with pytest.raises(TargetForbiddenError):
            await handler.handle(make_request(), request, metrics, HandlerMode.DECAPSULATE)

        assert results(fired) == [MetricsResults.TARGET_FORBIDDEN]

    @pytest.mark.asyncio
    async def test_unclassified_content_error_fires_one_result(
        self,
        gateway: OHTTPGateway,
        ohttp_client: OHTTPClient,
        metrics: RecordingMetrics,
        fired: list[tuple[str, str]],
    ) -> None:
        spy = SpyContentHandler(error=UnicodeEncodeError("latin-1", "\u20ac", 0, 1, "bad"))
        handler = DefaultEncapsulationHandler(gateway, KEY_ID, spy)
        request, _ = ohttp_client.encapsulate_request(b"ping")

        with pytest.raises(ContentHandlerFailedError) as exc_info:
            await handler.handle(make_request(), request, metrics, HandlerMode.DECAPSULATE)

        assert isinstance(exc_info.value.__cause__, UnicodeEncodeError)
        assert results(fired) == [MetricsResults.CONTENT_HANDLER_FAILED]

    @pytest.mark.asyncio
    async def test_missing_request_rejected(
        self,
        gateway: OHTTPGateway,
        metrics: RecordingMetrics,
        fired: list[tuple[str, str]],
    ) -> None:
        handler = DefaultEncapsulationHandler(gateway, KEY_ID, EchoContentHandler())

        with pytest.raises(DecapsulationFailedError):
            await handler.handle(make_request(), None, metrics, HandlerMode.DECAPSULATE)

        assert results(fired) == [MetricsResults.DECAPSULATION_FAILED]


class TestConstructMode:
    @pytest.mark.asyncio
    async def test_encapsulates_request_body(
        self,
        gateway: OHTTPGateway,
        metrics: RecordingMetrics,
        fired: list[tuple[str, str]],
    ) -> None:
        handler = DefaultEncapsulationHandler(gateway, KEY_ID, EchoContentHandler())

        constructed = await handler.handle(
            make_request(body=b"plaintext request"), None, metrics, HandlerMode.CONSTRUCT
        )

        assert isinstance(constructed, EncapsulatedRequest)
        assert constructed.key_id == KEY_ID
        plaintext, _ = gateway.decapsulate(constructed)
        assert plaintext == b"plaintext request"
        assert results(fired) == [MetricsResults.SUCCESS]

    @pytest.mark.asyncio
    async def test_unavailable_key_fails(
        self,
        gateway: OHTTPGateway,
        metrics: RecordingMetrics,
        fired: list[tuple[str, str]],
    ) -> None:
        handler = DefaultEncapsulationHandler(gateway, KEY_ID + 5, EchoContentHandler())

        with pytest.raises(EncapsulationFailedError):
            await handler.handle(make_request(body=b"x"), None, metrics, HandlerMode.CONSTRUCT)

        assert results(fired) == [MetricsResults.ENCAPSULATION_FAILED]

    @pytest.mark.asyncio
    async def test_client_disconnect_is_invalid_content(
        self,
        gateway: OHTTPGateway,
        metrics: RecordingMetrics,
        fired: list[tuple[str, str]],
    ) -> None:
        handler = DefaultEncapsulationHandler(gateway, KEY_ID, EchoContentHandler())

        with pytest.raises(RequestBodyError):
            await handler.handle(
                make_request(disconnect=True), None, metrics, HandlerMode.CONSTRUCT
            )

        assert results(fired) == [MetricsResults.INVALID_CONTENT]
