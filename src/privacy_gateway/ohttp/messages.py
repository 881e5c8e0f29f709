"""Wire formats for Oblivious HTTP messages (RFC 9458).

Key configuration:
    key_id (8) | kem_id (16) | public_key (Npk) |
    symmetric_algorithms_length (16) | (kdf_id (16) | aead_id (16))...

Encapsulated request:
    key_id (8) | kem_id (16) | kdf_id (16) | aead_id (16) | enc (Nenc) | ciphertext

Encapsulated response:
    response_nonce (max(Nn, Nk)) | ciphertext

The ``application/ohttp-keys`` document is a sequence of key configurations,
each prefixed with its 2-byte length.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable
from dataclasses import dataclass

from privacy_gateway.ohttp.exceptions import MalformedMessageError
from privacy_gateway.ohttp.hpke import N_ENC, N_PK, AEADId, KDFId, KEMId

REQUEST_HEADER_SIZE: int = 7


@dataclass(frozen=True)
class SymmetricAlgorithm:
    """A (KDF, AEAD) pair offered by a key configuration."""

    kdf_id: KDFId
    aead_id: AEADId


@dataclass(frozen=True)
class PublicKeyConfig:
    """A gateway's public key configuration."""

    key_id: int
    kem_id: KEMId
    public_key: bytes
    symmetric_algorithms: tuple[SymmetricAlgorithm, ...]

    def supports(self, kdf_id: int, aead_id: int) -> bool:
        return any(
            alg.kdf_id == kdf_id and alg.aead_id == aead_id
            for alg in self.symmetric_algorithms
        )

    def marshal(self) -> bytes:
        algorithms = b"".join(
            struct.pack("!HH", alg.kdf_id, alg.aead_id) for alg in self.symmetric_algorithms
        )
        return (
            struct.pack("!BH", self.key_id, self.kem_id)
            + self.public_key
            + struct.pack("!H", len(algorithms))
            + algorithms
        )

    @classmethod
    def unmarshal(cls, data: bytes) -> PublicKeyConfig:
        """Parse a single key configuration.

        Raises:
            MalformedMessageError: If the encoding is truncated, has trailing
                bytes, or names an unsupported algorithm.
        """
        if len(data) < 3:
            raise MalformedMessageError("key configuration too short")
        key_id, kem_id = struct.unpack_from("!BH", data, 0)
        try:
            kem = KEMId(kem_id)
        except ValueError as exc:
            raise MalformedMessageError(f"unsupported KEM {kem_id:#06x}") from exc

        offset = 3
        if len(data) < offset + N_PK + 2:
            raise MalformedMessageError("key configuration truncated")
        public_key = data[offset : offset + N_PK]
        offset += N_PK
        (algorithms_length,) = struct.unpack_from("!H", data, offset)
        offset += 2
        if algorithms_length == 0 or algorithms_length % 4:
            raise MalformedMessageError("invalid symmetric algorithms length")
        if len(data) != offset + algorithms_length:
            raise MalformedMessageError("key configuration length mismatch")

        algorithms = []
        for pos in range(offset, offset + algorithms_length, 4):
            kdf_id, aead_id = struct.unpack_from("!HH", data, pos)
            try:
                algorithms.append(SymmetricAlgorithm(KDFId(kdf_id), AEADId(aead_id)))
            except ValueError as exc:
                raise MalformedMessageError("unsupported symmetric algorithm") from exc

        return cls(
            key_id=key_id,
            kem_id=kem,
            public_key=public_key,
            symmetric_algorithms=tuple(algorithms),
        )


def marshal_key_configs(configs: Iterable[PublicKeyConfig]) -> bytes:
    """Encode key configurations as an ``application/ohttp-keys`` document."""
    encoded = bytearray()
    for config in configs:
        body = config.marshal()
        encoded += struct.pack("!H", len(body)) + body
    return bytes(encoded)


def unmarshal_key_configs(data: bytes) -> list[PublicKeyConfig]:
    """Decode an ``application/ohttp-keys`` document."""
    configs = []
    offset = 0
    while offset < len(data):
        if len(data) - offset < 2:
            raise MalformedMessageError("truncated key configuration length")
        (length,) = struct.unpack_from("!H", data, offset)
        offset += 2
        if len(data) - offset < length:
            raise MalformedMessageError("truncated key configuration")
        configs.append(PublicKeyConfig.unmarshal(data[offset : offset + length]))
        offset += length
    return configs


@dataclass(frozen=True)
class EncapsulatedRequest:
    """An encapsulated request as carried in a ``message/ohttp-req`` body."""

    key_id: int
    kem_id: KEMId
    kdf_id: int
    aead_id: int
    enc: bytes
    ciphertext: bytes

    @property
    def header(self) -> bytes:
        return struct.pack("!BHHH", self.key_id, self.kem_id, self.kdf_id, self.aead_id)

    def marshal(self) -> bytes:
        return self.header + self.enc + self.ciphertext

    @classmethod
    def unmarshal(cls, data: bytes) -> EncapsulatedRequest:
        """Parse an encapsulated request.

        Only the framing is checked here. Symmetric algorithm support and the
        ciphertext itself are validated at decapsulation.

        Raises:
            MalformedMessageError: If the header or encapsulated key is
                truncated, or the KEM is unsupported.
        """
        if len(data) < REQUEST_HEADER_SIZE:
            raise MalformedMessageError("encapsulated request header truncated")
        key_id, kem_id, kdf_id, aead_id = struct.unpack_from("!BHHH", data, 0)
        try:
            kem = KEMId(kem_id)
        except ValueError as exc:
            raise MalformedMessageError(f"unsupported KEM {kem_id:#06x}") from exc

        enc_end = REQUEST_HEADER_SIZE + N_ENC
        if len(data) < enc_end:
            raise MalformedMessageError("encapsulated key truncated")
        return cls(
            key_id=key_id,
            kem_id=kem,
            kdf_id=kdf_id,
            aead_id=aead_id,
            enc=data[REQUEST_HEADER_SIZE:enc_end],
            ciphertext=data[enc_end:],
        )


@dataclass(frozen=True)
class EncapsulatedResponse:
    """An encapsulated response as carried in a ``message/ohttp-res`` body."""

    response_nonce: bytes
    ciphertext: bytes

    def marshal(self) -> bytes:
        return self.response_nonce + self.ciphertext

    @classmethod
    def unmarshal(cls, data: bytes, nonce_size: int) -> EncapsulatedResponse:
        if len(data) < nonce_size:
            raise MalformedMessageError("encapsulated response truncated")
        return cls(response_nonce=data[:nonce_size], ciphertext=data[nonce_size:])
