"""Shared fixtures: key pairs and a webhook signer."""

from __future__ import annotations

import base64
from collections.abc import Callable

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa


def _public_pem(private_key) -> str:
    return (
        private_key.public_key()
        .public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_public_pem(rsa_private_key) -> str:
    return _public_pem(rsa_private_key)


@pytest.fixture(scope="session")
def other_rsa_public_pem() -> str:
    return _public_pem(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def ec_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec_public_pem(ec_private_key) -> str:
    return _public_pem(ec_private_key)


@pytest.fixture(scope="session")
def ed25519_public_pem() -> str:
    return _public_pem(ed25519.Ed25519PrivateKey.generate())


@pytest.fixture
def sign(rsa_private_key) -> Callable[[str, bytes], str]:
    """Sign `timestamp + "." + payload` the way the platform does."""

    def _sign(timestamp: str, payload: bytes) -> str:
        signature = rsa_private_key.sign(
            timestamp.encode() + b"." + payload,
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        return base64.b64encode(signature).decode()

    return _sign

