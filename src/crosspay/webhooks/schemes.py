"""Webhook signature schemes.

A signature scheme verifies a signature over the canonical webhook message
with a public key of one algorithm. Schemes are selected by the type of the
verifying key, so supporting a new algorithm means registering a new scheme.

Supported Schemes:
- RSA: RSASSA-PKCS1-v1.5 over a SHA-256 digest

Usage:
    from crosspay.webhooks.schemes import decode_signature, scheme_for_key

    scheme = scheme_for_key(public_key)
    scheme.verify(public_key, message, decode_signature(signature_header))
"""

from __future__ import annotations

import base64
import binascii
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa, utils

from crosspay.webhooks.errors import (
    SignatureDecodeError,
    SignatureVerificationError,
    UnsupportedKeyTypeError,
)

SIGNATURE_VERIFICATION_FAILED = "signature verification failed"


def decode_signature(signature_header: str) -> bytes:
    """Decode a standard-alphabet, padded base64 signature header.

    Raises:
        SignatureDecodeError: If the header is not valid base64.
    """
    try:
        return base64.b64decode(signature_header, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SignatureDecodeError(f"failed to decode signature: {e}") from e


class SignatureScheme(ABC):
    """Base class for signature schemes."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Scheme name."""
        ...

    @abstractmethod
    def verify(self, public_key: Any, message: bytes, signature: bytes) -> None:
        """Verify a signature over a message.

        Args:
            public_key: Key of the algorithm this scheme handles.
            message: The canonical message bytes.
            signature: Raw signature bytes.

        Raises:
            SignatureVerificationError: If the signature does not match.
        """
        ...


@dataclass
class RSAPKCS1v15SHA256Scheme(SignatureScheme):
    """RSASSA-PKCS1-v1.5 with SHA-256.

    The message is hashed first and the digest is verified as a prehashed
    value.
    """

    @property
    def name(self) -> str:
        return "rsa-pkcs1v15-sha256"

    def digest(self, message: bytes) -> bytes:
        """Compute the SHA-256 digest of a message."""
        h = hashes.Hash(hashes.SHA256())
        h.update(message)
        return h.finalize()

    def verify(self, public_key: Any, message: bytes, signature: bytes) -> None:
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise UnsupportedKeyTypeError("public key is not RSA")

        digest = self.digest(message)
        try:
            public_key.verify(
                signature,
                digest,
                padding.PKCS1v15(),
                utils.Prehashed(hashes.SHA256()),
            )
        except InvalidSignature:
            raise SignatureVerificationError(SIGNATURE_VERIFICATION_FAILED) from None


# Scheme registry, keyed by public key type
SIGNATURE_SCHEMES: dict[type, type[SignatureScheme]] = {
    rsa.RSAPublicKey: RSAPKCS1v15SHA256Scheme,
}


def scheme_for_key(public_key: Any) -> SignatureScheme:
    """Get the signature scheme for a public key.

    Args:
        public_key: A parsed public key.

    Returns:
        SignatureScheme instance for the key's algorithm.

    Raises:
        UnsupportedKeyTypeError: If no scheme handles the key type.
    """
    for key_type, scheme_class in SIGNATURE_SCHEMES.items():
        if isinstance(public_key, key_type):
            return scheme_class()
    raise UnsupportedKeyTypeError(
        f"unsupported public key type: {type(public_key).__name__}"
    )
