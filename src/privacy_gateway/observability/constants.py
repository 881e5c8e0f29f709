"""Constants for observability layer."""

# HTTP header for correlation ID propagation
CORRELATION_ID_HEADER = "X-Correlation-ID"

# Service identifier for logs
SERVICE_NAME = "privacy-gateway"


# Log event names following the pattern: {domain}.{action}.{result}
class LogEvents:
    """Standardized log event names."""

    # Gateway dispatch events
    GATEWAY_REQUEST_RECEIVED = "gateway.request.received"
    GATEWAY_REQUEST_BODY = "gateway.request.body"
    GATEWAY_REQUEST_REJECTED = "gateway.request.rejected"
    GATEWAY_HANDLER_FAILED = "gateway.handler.failed"
    GATEWAY_HANDLER_UNEXPECTED = "gateway.handler.unexpected"
    CONTENT_HANDLER_UNEXPECTED = "content_handler.handle.unexpected"
    MARSHAL_ENCAPSULATION_FAILED = "marshal.encapsulation.failed"
    MARSHAL_HANDLER_UNEXPECTED = "marshal.handler.unexpected"

    # Key configuration events
    KEY_CONFIG_UNAVAILABLE = "key_config.fetch.unavailable"
    KEY_CONFIG_GENERATED = "key_config.key.generated"

    # Target events
    TARGET_REQUEST_STARTED = "target.request.started"
    TARGET_REQUEST_COMPLETED = "target.request.completed"
    TARGET_REQUEST_FAILED = "target.request.failed"
    TARGET_REQUEST_FORBIDDEN = "target.request.forbidden"

    # Application lifecycle events
    APP_STARTUP = "app.lifecycle.started"
    APP_SHUTDOWN = "app.lifecycle.stopped"

    # Request lifecycle events
    REQUEST_STARTED = "request.started"
    REQUEST_COMPLETED = "request.completed"
    REQUEST_FAILED = "request.failed"


class MetricsEvents:
    """Metric event categories."""

    GATEWAY_REQUEST = "gateway_request"
    MARSHAL_REQUEST = "marshal_request"


class MetricsResults:
    """Metric result names fired within an event category."""

    REQUESTED = "requested"
    SUCCESS = "success"
    INVALID_METHOD = "invalid_method"
    INVALID_CONTENT_TYPE = "invalid_content_type"
    INVALID_CONTENT = "invalid_content"
    CONFIG_MISMATCH = "config_mismatch"
    DECAPSULATION_FAILED = "decapsulation_failed"
    CONTENT_DECODING_FAILED = "content_decoding_failed"
    TARGET_FORBIDDEN = "target_forbidden"
    TARGET_REQUEST_FAILED = "target_request_failed"
    ENCAPSULATION_FAILED = "encapsulation_failed"
    CONTENT_HANDLER_FAILED = "content_handler_failed"


# Headers redacted before logging
SENSITIVE_HEADERS = frozenset({
    "authorization",
    "cookie",
    "proxy-authorization",
    "x-api-key",
    "x-auth-token",
})

# Redaction placeholder
REDACTED_VALUE = "[REDACTED]"
