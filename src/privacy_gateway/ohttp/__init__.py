"""Oblivious HTTP encapsulation (RFC 9458) and Binary HTTP (RFC 9292).

Usage:
    from privacy_gateway.ohttp import OHTTPGateway, EncapsulatedRequest

    gateway = OHTTPGateway.from_seed(key_id=1, seed=seed)
    plaintext, context = gateway.decapsulate(EncapsulatedRequest.unmarshal(body))
    response = context.encapsulate_response(answer)
"""

from privacy_gateway.ohttp.bhttp import (
    BinaryHTTPError,
    BinaryRequest,
    BinaryResponse,
    InformationalResponse,
)
from privacy_gateway.ohttp.exceptions import (
    ContextReusedError,
    DecapsulationError,
    EncapsulationError,
    KeyConfigUnavailableError,
    MalformedMessageError,
    OHTTPError,
)
from privacy_gateway.ohttp.gateway import (
    ClientRequestContext,
    GatewayKey,
    OHTTPClient,
    OHTTPGateway,
    RequestContext,
)
from privacy_gateway.ohttp.messages import (
    EncapsulatedRequest,
    EncapsulatedResponse,
    PublicKeyConfig,
    SymmetricAlgorithm,
    marshal_key_configs,
    unmarshal_key_configs,
)

__all__ = [
    # Binary HTTP
    "BinaryHTTPError",
    "BinaryRequest",
    "BinaryResponse",
    "InformationalResponse",
    # Errors
    "ContextReusedError",
    "DecapsulationError",
    "EncapsulationError",
    "KeyConfigUnavailableError",
    "MalformedMessageError",
    "OHTTPError",
    # Roles
    "ClientRequestContext",
    "GatewayKey",
    "OHTTPClient",
    "OHTTPGateway",
    "RequestContext",
    # Messages
    "EncapsulatedRequest",
    "EncapsulatedResponse",
    "PublicKeyConfig",
    "SymmetricAlgorithm",
    "marshal_key_configs",
    "unmarshal_key_configs",
]
