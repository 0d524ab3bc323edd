"""
keyconv - Asymmetric key format conversion.

Converts RSA and EC keys between PEM, JWK and the OpenSSH public key
format, and generates new key pairs in any of the three.

Example:
    keypair = Keypair(cipher="ec", curve="P-256")
    result = await keypair.to("jwk")
    public_jwk = result.unwrap().public

    ssh = Key(jwk=public_jwk).to("ssh").unwrap()
"""

from keyconv.core.curves import (
    CipherKind,
    CurveSpec,
    KeyFormat,
    KeyRole,
    get_curve,
    list_ciphers,
    list_ec_curves,
    list_rsa_key_lengths,
)
from keyconv.core.encoding import (
    clean_jwk,
    normalize_jwk,
    to_base64url,
    to_number,
)
from keyconv.core.errors import (
    ConfigurationError,
    ConversionError,
    KeyConversionError,
    Result,
    ValidationError,
)
from keyconv.core.key import Key
from keyconv.core.keypair import Keypair, KeyPairMaterial
from keyconv.core.logging import setup_logging
from keyconv.core.ssh_codec import public_jwk_to_ssh, public_ssh_to_jwk

__version__ = "0.1.0"

__all__ = [
    # Keys
    "Key",
    "Keypair",
    "KeyPairMaterial",
    # Types
    "CipherKind",
    "CurveSpec",
    "KeyFormat",
    "KeyRole",
    # Capabilities
    "get_curve",
    "list_ciphers",
    "list_ec_curves",
    "list_rsa_key_lengths",
    # Codecs
    "clean_jwk",
    "normalize_jwk",
    "to_base64url",
    "to_number",
    "public_jwk_to_ssh",
    "public_ssh_to_jwk",
    # Errors
    "Result",
    "KeyConversionError",
    "ConfigurationError",
    "ValidationError",
    "ConversionError",
    # Logging
    "setup_logging",
]
