"""Binary HTTP messages (RFC 9292).

Messages are always encoded in known-length form. Decoding accepts both
known-length (framing 0/1) and indeterminate-length (framing 2/3) messages,
truncated trailing sections, and zero padding.
"""

from __future__ import annotations

from dataclasses import dataclass, field

FRAMING_KNOWN_REQUEST = 0
FRAMING_KNOWN_RESPONSE = 1
FRAMING_INDETERMINATE_REQUEST = 2
FRAMING_INDETERMINATE_RESPONSE = 3

MAX_VARINT = (1 << 62) - 1

Fields = list[tuple[str, str]]


class BinaryHTTPError(Exception):
    """Raised when a Binary HTTP message cannot be decoded."""


def encode_varint(value: int) -> bytes:
    """Encode a QUIC variable-length integer."""
    if value < 0 or value > MAX_VARINT:
        raise ValueError(f"varint out of range: {value}")
    if value < 1 << 6:
        return value.to_bytes(1, "big")
    if value < 1 << 14:
        return (value | 0x4000).to_bytes(2, "big")
    if value < 1 << 30:
        return (value | 0x80000000).to_bytes(4, "big")
    return (value | 0xC000000000000000).to_bytes(8, "big")


class _Reader:
    def __init__(self, data: bytes):
        self._data = data
        self._pos = 0

    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def remaining(self) -> bytes:
        return self._data[self._pos :]

    def read_bytes(self, length: int) -> bytes:
        end = self._pos + length
        if end > len(self._data):
            raise BinaryHTTPError("message truncated")
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def read_varint(self) -> int:
        first = self.read_bytes(1)[0]
        length = 1 << (first >> 6)
        value = first & 0x3F
        for byte in self.read_bytes(length - 1):
            value = (value << 8) | byte
        return value

    def read_length_prefixed(self) -> bytes:
        return self.read_bytes(self.read_varint())


def _encode_length_prefixed(data: bytes) -> bytes:
    return encode_varint(len(data)) + data


def _encode_fields(fields: Fields) -> bytes:
    section = b"".join(
        _encode_length_prefixed(name.lower().encode("latin-1"))
        + _encode_length_prefixed(value.encode("latin-1"))
        for name, value in fields
    )
    return _encode_length_prefixed(section)


def _decode_field_lines(reader: _Reader, indeterminate: bool) -> Fields:
    fields: Fields = []
    while not reader.at_end():
        name = reader.read_length_prefixed()
        if not name:
            if indeterminate:
                return fields
            raise BinaryHTTPError("empty field name")
        value = reader.read_length_prefixed()
        fields.append((name.decode("latin-1"), value.decode("latin-1")))
    if indeterminate:
        raise BinaryHTTPError("field section not terminated")
    return fields


def _decode_fields(reader: _Reader, indeterminate: bool) -> Fields:
    if reader.at_end():
        return []
    if indeterminate:
        return _decode_field_lines(reader, indeterminate=True)
    return _decode_field_lines(_Reader(reader.read_length_prefixed()), indeterminate=False)


def _decode_content(reader: _Reader, indeterminate: bool) -> bytes:
    if reader.at_end():
        return b""
    if not indeterminate:
        return reader.read_length_prefixed()
    chunks = []
    while True:
        chunk = reader.read_length_prefixed()
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def _check_padding(reader: _Reader) -> None:
    if any(reader.remaining()):
        raise BinaryHTTPError("non-zero bytes after message")


def _get_field(fields: Fields, name: str) -> str | None:
    name = name.lower()
    for field_name, value in fields:
        if field_name.lower() == name:
            return value
    return None


@dataclass
class BinaryRequest:
    """A decoded Binary HTTP request."""

    method: str
    scheme: str
    authority: str
    path: str
    headers: Fields = field(default_factory=list)
    content: bytes = b""
    trailers: Fields = field(default_factory=list)

    def header(self, name: str) -> str | None:
        return _get_field(self.headers, name)

    def marshal(self) -> bytes:
        return (
            encode_varint(FRAMING_KNOWN_REQUEST)
            + _encode_length_prefixed(self.method.encode("ascii"))
            + _encode_length_prefixed(self.scheme.encode("ascii"))
            + _encode_length_prefixed(self.authority.encode("ascii"))
            + _encode_length_prefixed(self.path.encode("ascii"))
            + _encode_fields(self.headers)
            + _encode_length_prefixed(self.content)
            + _encode_fields(self.trailers)
        )

    @classmethod
    def unmarshal(cls, data: bytes) -> BinaryRequest:
        """Decode a request.

        Raises:
            BinaryHTTPError: On framing errors, truncation inside a section, or
                a response framing indicator.
        """
        reader = _Reader(data)
        framing = reader.read_varint()
        if framing not in (FRAMING_KNOWN_REQUEST, FRAMING_INDETERMINATE_REQUEST):
            raise BinaryHTTPError(f"not a request framing indicator: {framing}")
        indeterminate = framing == FRAMING_INDETERMINATE_REQUEST

        try:
            method = reader.read_length_prefixed().decode("ascii")
            scheme = reader.read_length_prefixed().decode("ascii")
            authority = reader.read_length_prefixed().decode("ascii")
            path = reader.read_length_prefixed().decode("ascii")
        except UnicodeDecodeError as exc:
            raise BinaryHTTPError("control data is not ASCII") from exc
        if not method:
            raise BinaryHTTPError("empty method")

        headers = _decode_fields(reader, indeterminate)
        content = _decode_content(reader, indeterminate)
        trailers = _decode_fields(reader, indeterminate)
        _check_padding(reader)
        return cls(
            method=method,
            scheme=scheme,
            authority=authority,
            path=path,
            headers=headers,
            content=content,
            trailers=trailers,
        )


@dataclass
class InformationalResponse:
    """A 1xx response preceding the final response."""

    status: int
    headers: Fields = field(default_factory=list)


@dataclass
class BinaryResponse:
    """A decoded Binary HTTP response."""

    status: int
    headers: Fields = field(default_factory=list)
    content: bytes = b""
    trailers: Fields = field(default_factory=list)
    informational: list[InformationalResponse] = field(default_factory=list)

    def header(self, name: str) -> str | None:
        return _get_field(self.headers, name)

    def marshal(self) -> bytes:
        if not 200 <= self.status <= 599:
            raise ValueError(f"invalid final status {self.status}")
        encoded = bytearray(encode_varint(FRAMING_KNOWN_RESPONSE))
        for interim in self.informational:
            encoded += encode_varint(interim.status) + _encode_fields(interim.headers)
        encoded += encode_varint(self.status)
        encoded += _encode_fields(self.headers)
        encoded += _encode_length_prefixed(self.content)
        encoded += _encode_fields(self.trailers)
        return bytes(encoded)

    @classmethod
    def unmarshal(cls, data: bytes) -> BinaryResponse:
        reader = _Reader(data)
        framing = reader.read_varint()
        if framing not in (FRAMING_KNOWN_RESPONSE, FRAMING_INDETERMINATE_RESPONSE):
            raise BinaryHTTPError(f"not a response framing indicator: {framing}")
        indeterminate = framing == FRAMING_INDETERMINATE_RESPONSE

        informational = []
        while True:
            status = reader.read_varint()
            if 100 <= status <= 199:
                interim_headers = (
                    _decode_field_lines(reader, indeterminate=True)
                    if indeterminate
                    else _decode_field_lines(
                        _Reader(reader.read_length_prefixed()), indeterminate=False
                    )
                )
                informational.append(InformationalResponse(status, interim_headers))
                continue
            if 200 <= status <= 599:
                break
            raise BinaryHTTPError(f"invalid status code {status}")

        headers = _decode_fields(reader, indeterminate)
        content = _decode_content(reader, indeterminate)
        trailers = _decode_fields(reader, indeterminate)
        _check_padding(reader)
        return cls(
            status=status,
            headers=headers,
            content=content,
            trailers=trailers,
            informational=informational,
        )
