"""Shared constants and helpers for the privacy gateway tests."""

from __future__ import annotations

from starlette.requests import Request

from privacy_gateway.core.config import Settings
from privacy_gateway.ohttp import BinaryRequest

KEY_ID = 1
SEED = bytes(range(32))
TARGET_ORIGIN = "target.example"
TARGET_BODY = b"hello from target"

OHTTP_REQUEST_HEADERS = {"Content-Type": "message/ohttp-req"}


class RecordingMetrics:
    """Metrics that append every fired result to a shared list."""

    def __init__(self, event: str, fired: list[tuple[str, str]]):
        self.event = event
        self._fired = fired

    def fire(self, result: str) -> None:
        self._fired.append((self.event, result))


class RecordingMetricsFactory:
    """Metrics factory recording ``(event, result)`` pairs in firing order."""

    def __init__(self) -> None:
        self.fired: list[tuple[str, str]] = []
        self.created: list[str] = []

    def create(self, event: str) -> RecordingMetrics:
        self.created.append(event)
        return RecordingMetrics(event, self.fired)

    def results(self, event: str) -> list[str]:
        return [result for fired_event, result in self.fired if fired_event == event]


def make_settings(**overrides) -> Settings:
    """Build settings independent of any .env file."""
    values = {
        "key_id": KEY_ID,
        "seed_secret_key": SEED.hex(),
        "cache_jitter_seed": 1234,
        **overrides,
    }
    return Settings(_env_file=None, **values)


def make_request(
    method: str = "POST",
    path: str = "/gateway",
    body: bytes = b"",
    headers: dict[str, str] | None = None,
    disconnect: bool = False,
) -> Request:
    """Build a Starlette request outside of an application.

    With ``disconnect`` the client goes away before sending its body.
    """
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    sent = False

    async def receive() -> dict:
        nonlocal sent
        if disconnect or sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "server": ("testserver", 80),
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": raw_headers,
    }
    return Request(scope, receive)


def binary_request(
    authority: str = TARGET_ORIGIN,
    path: str = "/greeting",
    method: str = "GET",
    headers: list[tuple[str, str]] | None = None,
    content: bytes = b"",
) -> bytes:
    """Encode a Binary HTTP request for the target proxy."""
    return BinaryRequest(
        method=method,
        scheme="https",
        authority=authority,
        path=path,
        headers=headers or [],
        content=content,
    ).marshal()
