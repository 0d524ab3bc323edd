"""Cipher, key length and curve capability tables.

Pure data for configuration and CLI layers. Only P-256 and P-384 are
wired through the JWK and SSH codecs; every other curve can be generated
and exported as PEM only.
"""

from dataclasses import dataclass
from enum import Enum

from cryptography.hazmat.primitives.asymmetric import ec


class CipherKind(str, Enum):
    """Supported key-pair ciphers."""
    RSA = "rsa"
    EC = "ec"


class KeyRole(str, Enum):
    """Whether a key carries secret parameters."""
    PUBLIC = "public"
    PRIVATE = "private"


class KeyFormat(str, Enum):
    """Key representations the converters read and write."""
    PEM = "pem"
    JWK = "jwk"
    SSH = "ssh"


@dataclass(frozen=True)
class CurveSpec:
    """Static description of a named curve."""
    native_name: str  # OpenSSL name
    curve: type[ec.EllipticCurve]
    byte_width: int
    jwk_name: str | None = None
    ssh_type: str | None = None
    ssh_curve_id: str | None = None

    @property
    def crypto_name(self) -> str:
        return self.curve.name

    @property
    def jwk_supported(self) -> bool:
        return self.jwk_name is not None

    @property
    def ssh_supported(self) -> bool:
        return self.ssh_type is not None

    @property
    def label(self) -> str:
        if self.jwk_supported and self.ssh_supported:
            return f"{self.native_name} (supports JWK and SSH format)"
        return self.native_name


CURVES: tuple[CurveSpec, ...] = (
    CurveSpec(
        native_name="prime256v1",
        curve=ec.SECP256R1,
        byte_width=32,
        jwk_name="P-256",
        ssh_type="ecdsa-sha2-nistp256",
        ssh_curve_id="nistp256",
    ),
    CurveSpec(
        native_name="secp384r1",
        curve=ec.SECP384R1,
        byte_width=48,
        jwk_name="P-384",
        ssh_type="ecdsa-sha2-nistp384",
        ssh_curve_id="nistp384",
    ),
    CurveSpec(native_name="secp521r1", curve=ec.SECP521R1, byte_width=66),
    CurveSpec(native_name="secp256k1", curve=ec.SECP256K1, byte_width=32),
    CurveSpec(native_name="secp224r1", curve=ec.SECP224R1, byte_width=28),
    CurveSpec(native_name="prime192v1", curve=ec.SECP192R1, byte_width=24),
    CurveSpec(native_name="brainpoolP256r1", curve=ec.BrainpoolP256R1, byte_width=32),
    CurveSpec(native_name="brainpoolP384r1", curve=ec.BrainpoolP384R1, byte_width=48),
    CurveSpec(native_name="brainpoolP512r1", curve=ec.BrainpoolP512R1, byte_width=64),
)

RSA_KEY_LENGTHS = [1024, 2048, 3072, 4096]


def _index() -> dict[str, CurveSpec]:
    index = {}
    for spec in CURVES:
        for name in (spec.native_name, spec.crypto_name, spec.jwk_name):
            if name:
                index[name.lower()] = spec
    return index


_CURVE_INDEX = _index()


def get_curve(name: str | None) -> CurveSpec | None:
    """Look up a curve by OpenSSL, cryptography or JWK name."""
    if not name or not isinstance(name, str):
        return None
    return _CURVE_INDEX.get(name.lower())


def get_jwk_curve(name: str | None) -> CurveSpec | None:
    """Look up a curve that supports JWK conversion."""
    spec = get_curve(name)
    return spec if spec and spec.jwk_supported else None


def list_ciphers() -> list[str]:
    return [c.value for c in CipherKind]


def list_rsa_key_lengths() -> list[int]:
    return list(RSA_KEY_LENGTHS)


def list_ec_curves() -> list[CurveSpec]:
    """All curves, JWK/SSH-capable ones first."""
    return sorted(CURVES, key=lambda spec: not spec.jwk_supported)
