"""Sanitization helpers applied before anything reaches the logs."""

from collections.abc import Mapping

from privacy_gateway.observability.constants import REDACTED_VALUE, SENSITIVE_HEADERS


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Sanitize HTTP headers, redacting sensitive ones.

    Args:
        headers: Mapping of HTTP headers.

    Returns:
        Sanitized copy with sensitive headers redacted.
    """
    return {
        k: REDACTED_VALUE if k.lower() in SENSITIVE_HEADERS else v for k, v in headers.items()
    }


def truncate_body(body: bytes, max_length: int = 64) -> str:
    """Render a binary body as hex for logging, truncated to ``max_length`` bytes.

    Args:
        body: The raw body.
        max_length: Maximum number of bytes rendered.

    Returns:
        Hex preview of the body.
    """
    if len(body) > max_length:
        return body[:max_length].hex() + f"... [truncated, {len(body)} total bytes]"
    return body.hex()
