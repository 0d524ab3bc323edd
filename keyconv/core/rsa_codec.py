"""RSA PEM <-> JWK codec.

Public keys are written as PKCS#1 ``RSA PUBLIC KEY`` PEM and private keys
as unencrypted PKCS#8 PEM. Reading accepts PKCS#1, SubjectPublicKeyInfo,
traditional and PKCS#8 (optionally encrypted) encodings.
"""

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from keyconv.core.encoding import clean_jwk, normalize_jwk
from keyconv.core.errors import (
    ConversionError,
    ValidationError,
    catch_errors,
    wrap_errors,
)
from keyconv.core.logging import get_logger

logger = get_logger(__name__)


def _as_bytes(pem: str | bytes) -> bytes:
    return pem.encode() if isinstance(pem, str) else pem


def load_rsa_key(
    pem: str | bytes,
    is_private: bool,
    passphrase: str | None = None,
) -> rsa.RSAPrivateKey | rsa.RSAPublicKey:
    """Load an RSA key of the requested role from PEM.

    A private PEM read with ``is_private=False`` yields its public half.

    Raises:
        ConversionError: If the PEM is not an RSA key of that role
    """
    data = _as_bytes(pem)
    pwd = passphrase.encode() if passphrase else None
    role = "private" if is_private else "public"

    try:
        if is_private:
            key = serialization.load_pem_private_key(data, password=pwd)
        elif b"PRIVATE" in data:
            key = serialization.load_pem_private_key(data, password=pwd).public_key()
        else:
            key = serialization.load_pem_public_key(data)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConversionError(f"Invalid {role} PEM key: {e}") from e

    expected = rsa.RSAPrivateKey if is_private else rsa.RSAPublicKey
    if not isinstance(key, expected):
        raise ConversionError(f"PEM key is not an RSA {role} key")
    return key


@catch_errors
def pem_to_jwk(pem: str | bytes, is_private: bool, passphrase: str | None = None) -> dict:
    """Extract the RSA components of a PEM key as a JWK.

    Args:
        pem: PEM encoded RSA key
        is_private: Export the private components (d, p, q and CRT terms)
        passphrase: Passphrase of an encrypted private key

    Returns:
        Result holding a JWK with base64url encoded members
    """
    error_msg = "Failed to convert RSA key from PEM to JWK format"

    try:
        key = load_rsa_key(pem, is_private, passphrase)
    except ConversionError as e:
        raise wrap_errors(error_msg, [e])

    if is_private:
        numbers = key.private_numbers()
        public = numbers.public_numbers
        jwk = {
            "kty": "RSA",
            "e": public.e,
            "n": public.n,
            "d": numbers.d,
            "p": numbers.p,
            "q": numbers.q,
            "dmp1": numbers.dmp1,
            "dmq1": numbers.dmq1,
            "coeff": numbers.iqmp,
        }
    else:
        public = key.public_numbers()
        jwk = {"kty": "RSA", "e": public.e, "n": public.n}

    logger.debug("RSA key exported as JWK", key_size=key.key_size, is_private=is_private)
    return clean_jwk(normalize_jwk(jwk))


@catch_errors
def jwk_to_pem(jwk: dict) -> str:
    """Rebuild a PEM key from JWK components.

    ``modulus``/``exponent`` are accepted in place of ``n``/``e``. Without
    ``d`` a PKCS#1 public key is produced. With ``d`` the private key is
    rebuilt from its CRT parameters, recovering any that are missing.
    """
    error_msg = "Failed to create RSA key from modulus and exponent"

    kty = jwk.get("kty")
    if kty and kty != "RSA":
        raise ValidationError(f"{error_msg}. Expected kty 'RSA', found '{kty}'")

    modulus = jwk.get("modulus") or jwk.get("n")
    exponent = jwk.get("exponent") or jwk.get("e")
    if not modulus:
        raise ValidationError(f"{error_msg}. Missing required 'modulus|n'")
    if not exponent:
        raise ValidationError(f"{error_msg}. Missing required 'exponent|e'")

    try:
        params = normalize_jwk({**jwk, "n": modulus, "e": exponent}, to_buffers=True)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{error_msg}. {e}") from e

    n = int.from_bytes(params["n"], "big")
    e = params["e"]
    public_numbers = rsa.RSAPublicNumbers(e, n)

    if not params.get("d"):
        try:
            public_key = public_numbers.public_key()
        except ValueError as err:
            raise wrap_errors(error_msg, [ConversionError(str(err))])
        return public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.PKCS1,
        ).decode()

    error_msg = "Failed to create private RSA key from JWK components"
    d = int.from_bytes(params["d"], "big")

    try:
        if params.get("p") and params.get("q"):
            p = int.from_bytes(params["p"], "big")
            q = int.from_bytes(params["q"], "big")
        else:
            logger.debug("Recovering RSA prime factors from n, e and d")
            p, q = rsa.rsa_recover_prime_factors(n, e, d)

        dmp1 = int.from_bytes(params["dp"], "big") if params.get("dp") else rsa.rsa_crt_dmp1(d, p)
        dmq1 = int.from_bytes(params["dq"], "big") if params.get("dq") else rsa.rsa_crt_dmq1(d, q)
        iqmp = int.from_bytes(params["qi"], "big") if params.get("qi") else rsa.rsa_crt_iqmp(p, q)

        private_key = rsa.RSAPrivateNumbers(
            p=p,
            q=q,
            d=d,
            dmp1=dmp1,
            dmq1=dmq1,
            iqmp=iqmp,
            public_numbers=public_numbers,
        ).private_key()
    except (ValueError, TypeError) as err:
        raise wrap_errors(error_msg, [ConversionError(str(err))])

    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
