"""Test configuration and fixtures."""

import pytest
from cryptography.hazmat.primitives import serialization

from keyconv.config import get_settings
from keyconv.core.curves import CipherKind, get_curve
from keyconv.core.keypair import generate_pem_key_pair


@pytest.fixture(autouse=True)
def reset_settings():
    """Drop cached settings so env overrides in one test don't leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def rsa_pair():
    """RSA 2048 pair: PKCS#1 public PEM, PKCS#8 private PEM."""
    return generate_pem_key_pair(CipherKind.RSA, 2048)


@pytest.fixture(scope="session")
def p256_pair():
    return generate_pem_key_pair(CipherKind.EC, curve=get_curve("P-256"))


@pytest.fixture(scope="session")
def p384_pair():
    return generate_pem_key_pair(CipherKind.EC, curve=get_curve("P-384"))


@pytest.fixture(scope="session")
def p521_pair():
    """Curve outside the JWK-capable set."""
    return generate_pem_key_pair(CipherKind.EC, curve=get_curve("secp521r1"))


def openssh_line(public_pem: str) -> str:
    """Reference OpenSSH encoding produced by the cryptography package."""
    key = serialization.load_pem_public_key(public_pem.encode())
    return key.public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    ).decode()
