"""EC PEM <-> JWK codec for the JWK-capable curves (P-256, P-384)."""

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from keyconv.core.curves import CURVES, get_jwk_curve
from keyconv.core.encoding import b64url_encode, to_bytes
from keyconv.core.errors import (
    ConversionError,
    ValidationError,
    catch_errors,
    wrap_errors,
)
from keyconv.core.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_CURVES = ", ".join(f"'{c.jwk_name}'" for c in CURVES if c.jwk_supported)


def load_ec_key(
    pem: str | bytes,
    passphrase: str | None = None,
) -> ec.EllipticCurvePrivateKey | ec.EllipticCurvePublicKey:
    """Load an EC key from PEM, private or public depending on its marker.

    Raises:
        ConversionError: If the PEM is not a well-formed EC key
    """
    data = pem.encode() if isinstance(pem, str) else pem
    pwd = passphrase.encode() if passphrase else None

    try:
        if b"PRIVATE" in data:
            key = serialization.load_pem_private_key(data, password=pwd)
        else:
            key = serialization.load_pem_public_key(data)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConversionError(f"Invalid PEM key: {e}") from e

    if not isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        raise ConversionError("PEM key is not an ECDSA key")
    return key


@catch_errors
def pem_to_jwk(
    pem: str | bytes,
    is_private: bool | None = None,
    passphrase: str | None = None,
) -> dict:
    """Extract curve name, coordinates and private scalar of a PEM key.

    Args:
        pem: PEM encoded EC key
        is_private: Role to export; inferred from the key when None. A
            private PEM exported with ``is_private=False`` yields its public JWK.
        passphrase: Passphrase of an encrypted private key
    """
    error_msg = "Failed to convert ECDSA key from PEM to JWK format"

    try:
        key = load_ec_key(pem, passphrase)
        if is_private and not isinstance(key, ec.EllipticCurvePrivateKey):
            raise ConversionError("PEM key is not an ECDSA private key")
    except ConversionError as e:
        raise wrap_errors(error_msg, [e])

    if is_private is False and isinstance(key, ec.EllipticCurvePrivateKey):
        key = key.public_key()

    spec = get_jwk_curve(key.curve.name)
    if spec is None:
        raise wrap_errors(error_msg, [ValidationError(
            f"Curve '{key.curve.name}' does not support JWK format. Supported curves: {SUPPORTED_CURVES}"
        )])

    is_private = isinstance(key, ec.EllipticCurvePrivateKey)
    public = key.public_key() if is_private else key
    numbers = public.public_numbers()

    jwk = {
        "kty": "EC",
        "crv": spec.jwk_name,
        "x": b64url_encode(numbers.x.to_bytes(spec.byte_width, "big")),
        "y": b64url_encode(numbers.y.to_bytes(spec.byte_width, "big")),
    }
    if is_private:
        d = key.private_numbers().private_value
        jwk["d"] = b64url_encode(d.to_bytes(spec.byte_width, "big"))

    logger.debug("EC key exported as JWK", crv=spec.jwk_name, is_private=is_private)
    return jwk


@catch_errors
def jwk_to_pem(jwk: dict) -> str:
    """Rebuild an EC PEM key from ``crv``, ``x``, ``y`` and optional ``d``.

    Public keys are written as SubjectPublicKeyInfo, private keys as
    unencrypted PKCS#8.
    """
    error_msg = "Failed to convert ECDSA key from JWK to PEM format"

    kty = jwk.get("kty")
    if kty and kty != "EC":
        raise ValidationError(f"{error_msg}. Expected kty 'EC', found '{kty}'")

    crv = jwk.get("crv")
    if not crv:
        raise ValidationError(f"{error_msg}. Missing required 'crv'")
    spec = get_jwk_curve(crv)
    if spec is None:
        raise ValidationError(f"{error_msg}. 'crv' {crv} is not supported. Supported curves: {SUPPORTED_CURVES}")

    for name in ("x", "y"):
        if not jwk.get(name):
            raise ValidationError(f"{error_msg}. Missing required '{name}'")

    try:
        x = int.from_bytes(to_bytes(jwk["x"]), "big")
        y = int.from_bytes(to_bytes(jwk["y"]), "big")
        d = int.from_bytes(to_bytes(jwk["d"]), "big") if jwk.get("d") else None
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{error_msg}. {e}") from e

    try:
        public_numbers = ec.EllipticCurvePublicNumbers(x, y, spec.curve())
        if d is None:
            key = public_numbers.public_key()
        else:
            key = ec.EllipticCurvePrivateNumbers(d, public_numbers).private_key()
    except ValueError as e:
        raise wrap_errors(error_msg, [ConversionError(str(e))])

    if d is None:
        return key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()

    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
