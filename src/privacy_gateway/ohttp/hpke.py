"""Hybrid Public Key Encryption (RFC 9180) in base mode.

Only what Oblivious HTTP needs is provided: the DHKEM(X25519, HKDF-SHA256) KEM,
the HKDF-SHA256 KDF and the AES-128-GCM, AES-256-GCM and ChaCha20-Poly1305
AEADs, with single-shot seal/open and the secret exporter. All primitives come
from ``cryptography``; this module only composes them.

Key schedule (base mode, no PSK):
    psk_id_hash = LabeledExtract("", "psk_id_hash", "")
    info_hash   = LabeledExtract("", "info_hash", info)
    context     = mode || psk_id_hash || info_hash
    secret      = LabeledExtract(shared_secret, "secret", "")
    key         = LabeledExpand(secret, "key", context, Nk)
    base_nonce  = LabeledExpand(secret, "base_nonce", context, Nn)
    exporter    = LabeledExpand(secret, "exp", context, Nh)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDFExpand
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

HPKE_VERSION_LABEL: bytes = b"HPKE-v1"
MODE_BASE: int = 0x00

# DHKEM(X25519, HKDF-SHA256) sizes
N_SECRET: int = 32
N_ENC: int = 32
N_PK: int = 32
N_SK: int = 32
# HKDF-SHA256 output size
N_H: int = 32


class KEMId(IntEnum):
    """Registered KEM identifiers supported here."""

    DHKEM_X25519_HKDF_SHA256 = 0x0020


class KDFId(IntEnum):
    """Registered KDF identifiers supported here."""

    HKDF_SHA256 = 0x0001


class AEADId(IntEnum):
    """Registered AEAD identifiers supported here."""

    AES_128_GCM = 0x0001
    AES_256_GCM = 0x0002
    CHACHA20_POLY1305 = 0x0003


# aead_id -> (Nk, Nn, cipher class)
_AEAD_PARAMETERS: dict[AEADId, tuple[int, int, type]] = {
    AEADId.AES_128_GCM: (16, 12, AESGCM),
    AEADId.AES_256_GCM: (32, 12, AESGCM),
    AEADId.CHACHA20_POLY1305: (32, 12, ChaCha20Poly1305),
}


class HPKEError(Exception):
    """Raised when an HPKE operation fails."""


def i2osp(value: int, length: int) -> bytes:
    """Encode a non-negative integer as a big-endian byte string."""
    return value.to_bytes(length, "big")


def hkdf_extract(salt: bytes, ikm: bytes) -> bytes:
    """HKDF-Extract with SHA-256 (an empty salt means HashLen zero bytes)."""
    h = hmac.HMAC(salt or bytes(N_H), hashes.SHA256())
    h.update(ikm)
    return h.finalize()


def hkdf_expand(prk: bytes, info: bytes, length: int) -> bytes:
    """HKDF-Expand with SHA-256."""
    return HKDFExpand(algorithm=hashes.SHA256(), length=length, info=info).derive(prk)


def labeled_extract(suite_id: bytes, salt: bytes, label: bytes, ikm: bytes) -> bytes:
    return hkdf_extract(salt, HPKE_VERSION_LABEL + suite_id + label + ikm)


def labeled_expand(
    suite_id: bytes,
    prk: bytes,
    label: bytes,
    info: bytes,
    length: int,
) -> bytes:
    labeled_info = i2osp(length, 2) + HPKE_VERSION_LABEL + suite_id + label + info
    return hkdf_expand(prk, labeled_info, length)


# ---------------------------------------------------------------------------
# KEM
# ---------------------------------------------------------------------------

KEM_SUITE_ID: bytes = b"KEM" + i2osp(KEMId.DHKEM_X25519_HKDF_SHA256, 2)


def serialize_public_key(public_key: X25519PublicKey) -> bytes:
    """Return the raw 32-byte encoding of an X25519 public key."""
    return public_key.public_bytes(encoding=Encoding.Raw, format=PublicFormat.Raw)


def derive_key_pair(ikm: bytes) -> X25519PrivateKey:
    """DeriveKeyPair for DHKEM(X25519, HKDF-SHA256).

    Args:
        ikm: Input keying material, at least Nsk bytes of entropy.

    Returns:
        The derived X25519 private key.
    """
    if len(ikm) < N_SK:
        raise HPKEError(f"ikm must be at least {N_SK} bytes")
    dkp_prk = labeled_extract(KEM_SUITE_ID, b"", b"dkp_prk", ikm)
    sk = labeled_expand(KEM_SUITE_ID, dkp_prk, b"sk", b"", N_SK)
    return X25519PrivateKey.from_private_bytes(sk)


def _extract_and_expand(dh: bytes, kem_context: bytes) -> bytes:
    eae_prk = labeled_extract(KEM_SUITE_ID, b"", b"eae_prk", dh)
    return labeled_expand(KEM_SUITE_ID, eae_prk, b"shared_secret", kem_context, N_SECRET)


def _exchange(private_key: X25519PrivateKey, peer_public_key: bytes) -> bytes:
    try:
        peer = X25519PublicKey.from_public_bytes(peer_public_key)
        return private_key.exchange(peer)
    except ValueError as exc:
        # Wrong length or a low-order point yielding an all-zero secret
        raise HPKEError("invalid X25519 public key") from exc


def encap(
    recipient_public_key: bytes,
    ephemeral_key: X25519PrivateKey | None = None,
) -> tuple[bytes, bytes]:
    """Generate a shared secret for the recipient.

    Returns:
        Tuple of (shared_secret, enc).
    """
    ephemeral_key = ephemeral_key or X25519PrivateKey.generate()
    dh = _exchange(ephemeral_key, recipient_public_key)
    enc = serialize_public_key(ephemeral_key.public_key())
    return _extract_and_expand(dh, enc + recipient_public_key), enc


def decap(enc: bytes, recipient_key: X25519PrivateKey) -> bytes:
    """Recover the shared secret from an encapsulated key."""
    dh = _exchange(recipient_key, enc)
    pk_rm = serialize_public_key(recipient_key.public_key())
    return _extract_and_expand(dh, enc + pk_rm)


# ---------------------------------------------------------------------------
# AEAD
# ---------------------------------------------------------------------------


def aead_parameters(aead_id: AEADId) -> tuple[int, int]:
    """Return (Nk, Nn) for an AEAD."""
    key_size, nonce_size, _ = _AEAD_PARAMETERS[aead_id]
    return key_size, nonce_size


def aead_seal(aead_id: AEADId, key: bytes, nonce: bytes, aad: bytes, plaintext: bytes) -> bytes:
    _, _, cipher = _AEAD_PARAMETERS[aead_id]
    return cipher(key).encrypt(nonce, plaintext, aad)


def aead_open(aead_id: AEADId, key: bytes, nonce: bytes, aad: bytes, ciphertext: bytes) -> bytes:
    _, _, cipher = _AEAD_PARAMETERS[aead_id]
    try:
        return cipher(key).decrypt(nonce, ciphertext, aad)
    except InvalidTag as exc:
        raise HPKEError("AEAD authentication failed") from exc


# ---------------------------------------------------------------------------
# Cipher suite and contexts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CipherSuite:
    """An HPKE (KEM, KDF, AEAD) triple."""

    kem_id: KEMId
    kdf_id: KDFId
    aead_id: AEADId

    @property
    def suite_id(self) -> bytes:
        return (
            b"HPKE"
            + i2osp(self.kem_id, 2)
            + i2osp(self.kdf_id, 2)
            + i2osp(self.aead_id, 2)
        )

    @property
    def key_size(self) -> int:
        return aead_parameters(self.aead_id)[0]

    @property
    def nonce_size(self) -> int:
        return aead_parameters(self.aead_id)[1]

    def _key_schedule(self, shared_secret: bytes, info: bytes) -> Context:
        suite_id = self.suite_id
        psk_id_hash = labeled_extract(suite_id, b"", b"psk_id_hash", b"")
        info_hash = labeled_extract(suite_id, b"", b"info_hash", info)
        key_schedule_context = bytes([MODE_BASE]) + psk_id_hash + info_hash

        secret = labeled_extract(suite_id, shared_secret, b"secret", b"")
        key = labeled_expand(suite_id, secret, b"key", key_schedule_context, self.key_size)
        base_nonce = labeled_expand(
            suite_id, secret, b"base_nonce", key_schedule_context, self.nonce_size
        )
        exporter_secret = labeled_expand(suite_id, secret, b"exp", key_schedule_context, N_H)
        return Context(self, key, base_nonce, exporter_secret)

    def setup_base_sender(
        self,
        recipient_public_key: bytes,
        info: bytes,
        ephemeral_key: X25519PrivateKey | None = None,
    ) -> tuple[bytes, Context]:
        """Set up a sender context.

        Returns:
            Tuple of (enc, context).
        """
        shared_secret, enc = encap(recipient_public_key, ephemeral_key)
        return enc, self._key_schedule(shared_secret, info)

    def setup_base_recipient(
        self,
        enc: bytes,
        recipient_key: X25519PrivateKey,
        info: bytes,
    ) -> Context:
        """Set up a recipient context from an encapsulated key."""
        shared_secret = decap(enc, recipient_key)
        return self._key_schedule(shared_secret, info)


class Context:
    """An HPKE encryption context shared by sender and recipient roles."""

    def __init__(
        self,
        suite: CipherSuite,
        key: bytes,
        base_nonce: bytes,
        exporter_secret: bytes,
    ) -> None:
        self.suite = suite
        self._key = key
        self._base_nonce = base_nonce
        self._exporter_secret = exporter_secret
        self._sequence = 0

    def _next_nonce(self) -> bytes:
        nonce_size = len(self._base_nonce)
        if self._sequence >= (1 << (8 * nonce_size)) - 1:
            raise HPKEError("message limit reached")
        sequence = i2osp(self._sequence, nonce_size)
        self._sequence += 1
        return bytes(a ^ b for a, b in zip(self._base_nonce, sequence))

    def seal(self, plaintext: bytes, aad: bytes = b"") -> bytes:
        return aead_seal(self.suite.aead_id, self._key, self._next_nonce(), aad, plaintext)

    def open(self, ciphertext: bytes, aad: bytes = b"") -> bytes:
        nonce = i2osp(self._sequence, len(self._base_nonce))
        nonce = bytes(a ^ b for a, b in zip(self._base_nonce, nonce))
        plaintext = aead_open(self.suite.aead_id, self._key, nonce, aad, ciphertext)
        # sequence advances only on a successful open
        self._sequence += 1
        return plaintext

    def export(self, exporter_context: bytes, length: int) -> bytes:
        return labeled_expand(
            self.suite.suite_id, self._exporter_secret, b"sec", exporter_context, length
        )


__all__ = [
    "AEADId",
    "CipherSuite",
    "Context",
    "HPKEError",
    "KDFId",
    "KEMId",
    "N_ENC",
    "N_PK",
    "aead_open",
    "aead_parameters",
    "aead_seal",
    "derive_key_pair",
    "hkdf_expand",
    "hkdf_extract",
    "serialize_public_key",
]
