"""Exceptions raised by the Oblivious HTTP encapsulation layer."""

from __future__ import annotations


class OHTTPError(Exception):
    """Base exception for encapsulation-layer failures."""


class MalformedMessageError(OHTTPError):
    """Raised when bytes cannot be parsed into an OHTTP message."""


class KeyConfigUnavailableError(OHTTPError):
    """Raised when no key configuration exists for a key identifier."""

    def __init__(self, key_id: int):
        self.key_id = key_id
        super().__init__(f"No key configuration for key identifier {key_id}")


class DecapsulationError(OHTTPError):
    """Raised when an encapsulated request cannot be opened."""


class EncapsulationError(OHTTPError):
    """Raised when a message cannot be encapsulated."""


class ContextReusedError(EncapsulationError):
    """Raised when a request context is used to encapsulate a second response."""
