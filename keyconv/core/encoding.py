"""
Numeric encoding utilities for JWK fields.

JWK carries big integers as unpadded base64url strings (RFC 7518). The
codecs work on raw big-endian byte buffers, so this module converts between
the two and normalizes the RSA CRT parameter names.
"""

import base64
import binascii

# Fields holding big integers, in any naming convention
NUMERIC_FIELDS = (
    "n", "e", "d", "p", "q",
    "dp", "dq", "qi",
    "dmp1", "dmq1", "coeff",
    "x", "y",
)

# JWK name -> legacy name used by PKCS#1 tooling
CRT_ALIASES = {
    "dp": "dmp1",
    "dq": "dmq1",
    "qi": "coeff",
}


def b64url_encode(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """Base64url decode with padding restoration.

    The standard alphabet is tolerated so that keys copied from tools that
    emit plain base64 still decode.

    Raises:
        ValueError: If the string is not valid base64
    """
    data = data.strip().replace("+", "-").replace("/", "_").rstrip("=")
    padding = 4 - len(data) % 4
    if padding != 4:
        data += "=" * padding
    try:
        return base64.urlsafe_b64decode(data.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"Invalid base64url value: {e}") from e


def number_to_bytes(number: int) -> bytes:
    """Minimal unsigned big-endian bytes of a non-negative integer."""
    if number < 0:
        raise ValueError("Negative integers cannot be encoded")
    hex_value = format(number, "x")
    if len(hex_value) % 2:
        hex_value = "0" + hex_value
    return bytes.fromhex(hex_value)


def to_base64url(value: bytes | int) -> str:
    """Encode a byte buffer or an integer as unpadded base64url."""
    if isinstance(value, bool):
        raise TypeError("Booleans are not numeric key fields")
    if isinstance(value, int):
        value = number_to_bytes(value)
    return b64url_encode(bytes(value))


def to_number(value: str) -> int:
    """Decode a base64url string as a big-endian unsigned integer."""
    return int.from_bytes(b64url_decode(value), "big")


def to_bytes(value: str | bytes | int) -> bytes:
    """Byte-buffer form of a single numeric field."""
    if isinstance(value, str):
        return b64url_decode(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return number_to_bytes(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise TypeError(f"Expected a base64url string or bytes, found {type(value).__name__}")


def normalize_jwk(jwk: dict, to_buffers: bool = False) -> dict:
    """Return a copy of ``jwk`` with numeric fields in a single representation.

    Args:
        jwk: JWK whose numeric fields may be base64url strings, bytes or ints
        to_buffers: Convert to raw bytes (``e`` becomes an int) when True,
            to base64url strings otherwise

    Returns:
        New dict where both names of every CRT alias pair are populated
    """
    normalized = dict(jwk)

    for name in NUMERIC_FIELDS:
        value = normalized.get(name)
        if not value:
            continue
        if to_buffers:
            normalized[name] = to_bytes(value)
        else:
            normalized[name] = value if isinstance(value, str) else to_base64url(value)

    if to_buffers and normalized.get("e"):
        normalized["e"] = int.from_bytes(normalized["e"], "big")

    for name, alias in CRT_ALIASES.items():
        value = normalized.get(name) or normalized.get(alias)
        normalized[name] = value
        normalized[alias] = value

    return normalized


def clean_jwk(jwk: dict) -> dict:
    """Drop legacy CRT alias names and empty fields from an output JWK."""
    return {
        name: value
        for name, value in jwk.items()
        if name not in CRT_ALIASES.values() and value
    }
