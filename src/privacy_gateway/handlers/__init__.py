"""Encapsulation and content handlers registered per gateway path."""

from privacy_gateway.handlers.base import (
    ContentHandler,
    EncapsulatedMessage,
    EncapsulationHandler,
    HandlerMode,
)
from privacy_gateway.handlers.content import EchoContentHandler, TargetProxyHandler
from privacy_gateway.handlers.encapsulation import DefaultEncapsulationHandler
from privacy_gateway.handlers.exceptions import (
    ConfigMismatchError,
    ContentDecodingError,
    ContentHandlerFailedError,
    DecapsulationFailedError,
    EncapsulationFailedError,
    EncapsulationHandlerError,
    RequestBodyError,
    TargetForbiddenError,
    TargetRequestError,
)

__all__ = [
    # Contracts
    "ContentHandler",
    "EncapsulatedMessage",
    "EncapsulationHandler",
    "HandlerMode",
    # Implementations
    "DefaultEncapsulationHandler",
    "EchoContentHandler",
    "TargetProxyHandler",
    # Errors
    "ConfigMismatchError",
    "ContentDecodingError",
    "ContentHandlerFailedError",
    "DecapsulationFailedError",
    "EncapsulationFailedError",
    "EncapsulationHandlerError",
    "RequestBodyError",
    "TargetForbiddenError",
    "TargetRequestError",
]
