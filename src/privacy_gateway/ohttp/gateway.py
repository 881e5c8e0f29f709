"""Gateway and client roles of Oblivious HTTP encapsulation.

The gateway owns private keys indexed by key identifier. Decapsulating a
request yields the plaintext and a :class:`RequestContext`, which is the only
way to encapsulate the matching response and may be used exactly once.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from privacy_gateway.ohttp.exceptions import (
    ContextReusedError,
    DecapsulationError,
    EncapsulationError,
    KeyConfigUnavailableError,
)
from privacy_gateway.ohttp.hpke import (
    AEADId,
    CipherSuite,
    Context,
    HPKEError,
    KDFId,
    KEMId,
    aead_open,
    aead_seal,
    derive_key_pair,
    hkdf_expand,
    hkdf_extract,
    serialize_public_key,
)
from privacy_gateway.ohttp.messages import (
    EncapsulatedRequest,
    EncapsulatedResponse,
    PublicKeyConfig,
    SymmetricAlgorithm,
)

REQUEST_LABEL: bytes = b"message/bhttp request"
RESPONSE_LABEL: bytes = b"message/bhttp response"

DEFAULT_SYMMETRIC_ALGORITHMS: tuple[SymmetricAlgorithm, ...] = (
    SymmetricAlgorithm(KDFId.HKDF_SHA256, AEADId.AES_128_GCM),
    SymmetricAlgorithm(KDFId.HKDF_SHA256, AEADId.CHACHA20_POLY1305),
)


def _response_nonce_size(suite: CipherSuite) -> int:
    return max(suite.nonce_size, suite.key_size)


def _response_aead_key_nonce(
    context: Context,
    enc: bytes,
    response_nonce: bytes,
    label: bytes,
) -> tuple[bytes, bytes]:
    suite = context.suite
    secret = context.export(label, _response_nonce_size(suite))
    prk = hkdf_extract(enc + response_nonce, secret)
    aead_key = hkdf_expand(prk, b"key", suite.key_size)
    aead_nonce = hkdf_expand(prk, b"nonce", suite.nonce_size)
    return aead_key, aead_nonce


@dataclass(frozen=True)
class GatewayKey:
    """A private key together with its published configuration."""

    config: PublicKeyConfig
    private_key: X25519PrivateKey

    @classmethod
    def from_seed(
        cls,
        key_id: int,
        seed: bytes,
        symmetric_algorithms: tuple[SymmetricAlgorithm, ...] = DEFAULT_SYMMETRIC_ALGORITHMS,
    ) -> GatewayKey:
        """Derive a key deterministically from secret seed material."""
        if not 0 <= key_id <= 0xFF:
            raise ValueError("key_id must fit in one byte")
        try:
            private_key = derive_key_pair(seed)
        except HPKEError as exc:
            raise ValueError(str(exc)) from exc
        config = PublicKeyConfig(
            key_id=key_id,
            kem_id=KEMId.DHKEM_X25519_HKDF_SHA256,
            public_key=serialize_public_key(private_key.public_key()),
            symmetric_algorithms=symmetric_algorithms,
        )
        return cls(config=config, private_key=private_key)


class RequestContext:
    """Server-side state binding one decapsulated request to its response."""

    def __init__(self, context: Context, enc: bytes, response_label: bytes = RESPONSE_LABEL):
        self._context = context
        self._enc = enc
        self._response_label = response_label
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def encapsulate_response(self, plaintext: bytes) -> EncapsulatedResponse:
        """Encapsulate the response to the request this context came from.

        Raises:
            ContextReusedError: If a response was already encapsulated.
        """
        if self._consumed:
            raise ContextReusedError("request context already used")
        self._consumed = True

        suite = self._context.suite
        response_nonce = os.urandom(_response_nonce_size(suite))
        aead_key, aead_nonce = _response_aead_key_nonce(
            self._context, self._enc, response_nonce, self._response_label
        )
        ciphertext = aead_seal(suite.aead_id, aead_key, aead_nonce, b"", plaintext)
        return EncapsulatedResponse(response_nonce=response_nonce, ciphertext=ciphertext)


class ClientRequestContext:
    """Client-side state needed to open the response to one request."""

    def __init__(self, context: Context, enc: bytes, response_label: bytes = RESPONSE_LABEL):
        self._context = context
        self._enc = enc
        self._response_label = response_label

    @property
    def response_nonce_size(self) -> int:
        return _response_nonce_size(self._context.suite)

    def decapsulate_response(self, response: EncapsulatedResponse | bytes) -> bytes:
        """Open an encapsulated response.

        Raises:
            DecapsulationError: If the response was not produced for this request.
        """
        if isinstance(response, bytes):
            response = EncapsulatedResponse.unmarshal(response, self.response_nonce_size)
        aead_key, aead_nonce = _response_aead_key_nonce(
            self._context, self._enc, response.response_nonce, self._response_label
        )
        try:
            return aead_open(
                self._context.suite.aead_id, aead_key, aead_nonce, b"", response.ciphertext
            )
        except HPKEError as exc:
            raise DecapsulationError("response decryption failed") from exc


class OHTTPClient:
    """Encapsulates requests for a gateway's public key configuration."""

    def __init__(
        self,
        config: PublicKeyConfig,
        request_label: bytes = REQUEST_LABEL,
        response_label: bytes = RESPONSE_LABEL,
    ):
        self.config = config
        self._request_label = request_label
        self._response_label = response_label

    def encapsulate_request(
        self,
        plaintext: bytes,
        algorithm: SymmetricAlgorithm | None = None,
    ) -> tuple[EncapsulatedRequest, ClientRequestContext]:
        """Encapsulate a request.

        Args:
            plaintext: The request content, normally a Binary HTTP message.
            algorithm: Symmetric algorithm to use; defaults to the first one
                the configuration offers.

        Returns:
            Tuple of (encapsulated_request, client_context).
        """
        algorithm = algorithm or self.config.symmetric_algorithms[0]
        if not self.config.supports(algorithm.kdf_id, algorithm.aead_id):
            raise EncapsulationError("symmetric algorithm not offered by key configuration")

        suite = CipherSuite(self.config.kem_id, algorithm.kdf_id, algorithm.aead_id)
        header = EncapsulatedRequest(
            key_id=self.config.key_id,
            kem_id=self.config.kem_id,
            kdf_id=algorithm.kdf_id,
            aead_id=algorithm.aead_id,
            enc=b"",
            ciphertext=b"",
        ).header
        info = self._request_label + b"\x00" + header
        try:
            enc, context = suite.setup_base_sender(self.config.public_key, info)
        except HPKEError as exc:
            raise EncapsulationError("invalid gateway public key") from exc
        ciphertext = context.seal(plaintext)

        request = EncapsulatedRequest(
            key_id=self.config.key_id,
            kem_id=self.config.kem_id,
            kdf_id=algorithm.kdf_id,
            aead_id=algorithm.aead_id,
            enc=enc,
            ciphertext=ciphertext,
        )
        return request, ClientRequestContext(context, enc, self._response_label)


class OHTTPGateway:
    """Holds the gateway's keys and opens encapsulated requests."""

    def __init__(
        self,
        keys: Iterable[GatewayKey],
        request_label: bytes = REQUEST_LABEL,
        response_label: bytes = RESPONSE_LABEL,
    ):
        self._keys = {key.config.key_id: key for key in keys}
        self.request_label = request_label
        self.response_label = response_label

    @classmethod
    def from_seed(cls, key_id: int, seed: bytes) -> OHTTPGateway:
        return cls([GatewayKey.from_seed(key_id, seed)])

    @classmethod
    def generate(cls, key_id: int) -> OHTTPGateway:
        return cls.from_seed(key_id, os.urandom(32))

    @property
    def key_ids(self) -> list[int]:
        return sorted(self._keys)

    def config(self, key_id: int) -> PublicKeyConfig:
        """Return the public configuration for a key identifier.

        Raises:
            KeyConfigUnavailableError: If no key is held for ``key_id``.
        """
        key = self._keys.get(key_id)
        if key is None:
            raise KeyConfigUnavailableError(key_id)
        return key.config

    def client(self, key_id: int) -> OHTTPClient:
        return OHTTPClient(self.config(key_id), self.request_label, self.response_label)

    def decapsulate(self, request: EncapsulatedRequest) -> tuple[bytes, RequestContext]:
        """Open an encapsulated request.

        Returns:
            Tuple of (plaintext, request_context).

        Raises:
            DecapsulationError: If the key is unknown, the symmetric algorithm
                is not offered, or the ciphertext does not authenticate.
        """
        key = self._keys.get(request.key_id)
        if key is None:
            raise DecapsulationError(f"unknown key identifier {request.key_id}")
        if not key.config.supports(request.kdf_id, request.aead_id):
            raise DecapsulationError("unsupported symmetric algorithm")

        suite = CipherSuite(request.kem_id, KDFId(request.kdf_id), AEADId(request.aead_id))
        info = self.request_label + b"\x00" + request.header
        try:
            context = suite.setup_base_recipient(request.enc, key.private_key, info)
            plaintext = context.open(request.ciphertext)
        except HPKEError as exc:
            raise DecapsulationError("request decryption failed") from exc
        return plaintext, RequestContext(context, request.enc, self.response_label)
