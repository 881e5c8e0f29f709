"""Encapsulation handler exceptions.

Each exception names the metrics result recorded when it is raised, so the
handler that raises it and the metrics it fires cannot drift apart.
"""

from __future__ import annotations

from privacy_gateway.observability.constants import MetricsResults


class EncapsulationHandlerError(Exception):
    """Base exception for failures inside an encapsulation handler."""

    metrics_result: str = MetricsResults.ENCAPSULATION_FAILED

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigMismatchError(EncapsulationHandlerError):
    """Raised when a request names a key identifier the gateway is not serving."""

    metrics_result = MetricsResults.CONFIG_MISMATCH

    def __init__(self, key_id: int, expected_key_id: int):
        self.key_id = key_id
        self.expected_key_id = expected_key_id
        super().__init__(f"key identifier {key_id} does not match {expected_key_id}")


class DecapsulationFailedError(EncapsulationHandlerError):
    """Raised when an encapsulated request cannot be opened."""

    metrics_result = MetricsResults.DECAPSULATION_FAILED


class ContentDecodingError(EncapsulationHandlerError):
    """Raised when decapsulated content is not a valid message for the handler."""

    metrics_result = MetricsResults.CONTENT_DECODING_FAILED


class TargetForbiddenError(EncapsulationHandlerError):
    """Raised when the target origin is not in the allow-list."""

    metrics_result = MetricsResults.TARGET_FORBIDDEN

    def __init__(self, origin: str):
        self.origin = origin
        super().__init__(f"target origin '{origin}' is not allowed")


class TargetRequestError(EncapsulationHandlerError):
    """Raised when forwarding to the target fails."""

    metrics_result = MetricsResults.TARGET_REQUEST_FAILED


class EncapsulationFailedError(EncapsulationHandlerError):
    """Raised when a response or a constructed request cannot be encapsulated."""

    metrics_result = MetricsResults.ENCAPSULATION_FAILED


class RequestBodyError(EncapsulationHandlerError):
    """Raised when the request body cannot be read."""

    metrics_result = MetricsResults.INVALID_CONTENT


class ContentHandlerFailedError(EncapsulationHandlerError):
    """Raised when a content handler fails with an error it does not classify."""

    metrics_result = MetricsResults.CONTENT_HANDLER_FAILED
