"""Webhook public key loading.

The platform distributes its webhook verification key out-of-band as a PEM
encoded SubjectPublicKeyInfo ("-----BEGIN PUBLIC KEY-----").
"""

from __future__ import annotations

import re

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

from crosspay.webhooks.errors import PublicKeyParseError
from crosspay.webhooks.schemes import SignatureScheme, scheme_for_key

PUBLIC_KEY_PEM_LABEL = b"PUBLIC KEY"

_PEM_BEGIN = re.compile(rb"-----BEGIN ([^-\r\n]*)-----")


def load_public_key(pem: str | bytes) -> PublicKeyTypes:
    """Decode a PEM encoded public key.

    Args:
        pem: PEM text containing a SubjectPublicKeyInfo block.

    Returns:
        The parsed public key, of whatever algorithm it declares.

    Raises:
        PublicKeyParseError: If no PEM block is found or the block does not
            hold a valid SubjectPublicKeyInfo.
    """
    data = pem.encode("utf-8") if isinstance(pem, str) else pem
    match = _PEM_BEGIN.search(data)
    if match is None:
        raise PublicKeyParseError("failed to parse PEM block containing the public key")
    # PKCS#1 "RSA PUBLIC KEY" and certificates are not SubjectPublicKeyInfo
    if match.group(1) != PUBLIC_KEY_PEM_LABEL:
        raise PublicKeyParseError(
            f"unexpected PEM block type: {match.group(1).decode('ascii', 'replace')}"
        )
    data = data[match.start():]

    try:
        return serialization.load_pem_public_key(data)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise PublicKeyParseError(f"failed to parse public key: {e}") from e


def load_verifying_key(pem: str | bytes) -> tuple[PublicKeyTypes, SignatureScheme]:
    """Load a public key and select the signature scheme for its algorithm.

    Raises:
        PublicKeyParseError: If the key cannot be parsed.
        UnsupportedKeyTypeError: If no scheme handles the key's algorithm.
    """
    key = load_public_key(pem)
    return key, scheme_for_key(key)
