"""OpenSSH public key wire format codec.

An OpenSSH public key line is ``"<type> <base64-body>[ <comment>]"``. The
body is a sequence of fields, each a 4-byte big-endian length followed by
that many bytes (RFC 4253 section 6.6):

    ssh-rsa:              [ "ssh-rsa", e, n ]
    ecdsa-sha2-nistpNNN:  [ "ecdsa-sha2-nistpNNN", "nistpNNN", 0x04 || X || Y ]

RSA integers are SSH mpints, i.e. signed two's complement, so an unsigned
value whose top bit is set gets a leading 0x00 byte. EC coordinates are
fixed width and never sign-normalized.
"""

import base64
import binascii
import struct

from keyconv.core.curves import CURVES, CurveSpec, get_curve
from keyconv.core.encoding import b64url_encode, to_bytes
from keyconv.core.errors import ValidationError, catch_errors, wrap_errors
from keyconv.core.logging import get_logger

logger = get_logger(__name__)

RSA_KEY_TYPE = "ssh-rsa"
EC_POINT_UNCOMPRESSED = 0x04

SUPPORTED_KEY_TYPES = [RSA_KEY_TYPE] + [c.ssh_type for c in CURVES if c.ssh_supported]


def normalize_big_int(value: bytes) -> bytes:
    """Prefix 0x00 when the high-order bit of the first byte is set."""
    if value and value[0] & 0x80:
        return b"\x00" + value
    return value


def pad_bytes(value: bytes, length: int) -> bytes:
    """Left-pad with zero bytes to ``length``."""
    value = value.lstrip(b"\x00")
    if len(value) > length:
        raise ValidationError(f"Coordinate is {len(value)} bytes long, expected at most {length}")
    return value.rjust(length, b"\x00")


def pack_fields(fields: list[bytes]) -> bytes:
    """Concatenate length-prefixed fields."""
    return b"".join(struct.pack(">I", len(field)) + field for field in fields)


def unpack_fields(body: bytes) -> list[bytes]:
    """Split a wire body into its fields.

    Zero-length fields are skipped and a single leading 0x00 byte is
    stripped from each field, undoing the mpint sign byte.

    Raises:
        ValidationError: If the body is truncated
    """
    fields = []
    index = 0
    size = len(body)

    while index < size:
        if index + 4 > size:
            raise ValidationError("Truncated SSH key body: incomplete field length")
        (length,) = struct.unpack(">I", body[index:index + 4])
        index += 4
        if length == 0:
            continue

        field = body[index:index + length]
        if len(field) < length:
            raise ValidationError(
                f"Truncated SSH key body: field declares {length} bytes, {len(field)} available"
            )
        if field[0] == 0x00:
            field = field[1:]

        fields.append(field)
        index += length

    return fields


def _format_line(key_type: str, body: bytes, comment: str | None) -> str:
    line = f"{key_type} {base64.b64encode(body).decode('ascii')}"
    return f"{line} {comment}" if comment else line


def _field_bytes(jwk: dict, name: str, error_msg: str) -> bytes:
    value = jwk.get(name)
    if not value:
        raise ValidationError(f"{error_msg}. Missing required '{name}'")
    if not isinstance(value, (str, bytes, bytearray)):
        raise ValidationError(
            f"{error_msg}. '{name}' is expected to be a base64 string or a buffer, "
            f"found {type(value).__name__} instead."
        )
    try:
        return to_bytes(value)
    except ValueError as e:
        raise ValidationError(f"{error_msg}. '{name}' is not valid base64: {e}") from e


@catch_errors
def public_rsa_jwk_to_ssh(jwk: dict, comment: str | None = None) -> str:
    error_msg = "Failed to convert public RSA key from JWK to SSH format"

    e = _field_bytes(jwk, "e", error_msg)
    n = _field_bytes(jwk, "n", error_msg)

    body = pack_fields([
        RSA_KEY_TYPE.encode("ascii"),
        normalize_big_int(e),
        normalize_big_int(n),
    ])
    return _format_line(RSA_KEY_TYPE, body, comment)


@catch_errors
def public_ec_jwk_to_ssh(jwk: dict, comment: str | None = None) -> str:
    error_msg = "Failed to convert public ECDSA key from JWK to SSH format"

    crv = jwk.get("crv")
    if not crv:
        raise ValidationError(f"{error_msg}. Missing required 'crv'")
    spec = get_curve(crv)
    if spec is None or not spec.ssh_supported:
        raise ValidationError(f"{error_msg}. 'crv' {crv} is not supported. Supported curves: 'P-256' or 'P-384'")

    x = _field_bytes(jwk, "x", error_msg)
    y = _field_bytes(jwk, "y", error_msg)

    try:
        point = bytes([EC_POINT_UNCOMPRESSED]) + pad_bytes(x, spec.byte_width) + pad_bytes(y, spec.byte_width)
    except ValidationError as err:
        raise wrap_errors(error_msg, [err], kind=ValidationError)

    body = pack_fields([
        spec.ssh_type.encode("ascii"),
        spec.ssh_curve_id.encode("ascii"),
        point,
    ])
    return _format_line(spec.ssh_type, body, comment)


@catch_errors
def public_jwk_to_ssh(jwk: dict, comment: str | None = None) -> str:
    """Encode a public RSA or EC JWK as an OpenSSH public key line.

    Args:
        jwk: Public JWK; numeric members as base64url strings or bytes
        comment: Optional trailing comment

    Returns:
        Result holding ``"<type> <base64>[ <comment>]"``
    """
    error_msg = "Failed to convert public key from JWK to SSH format"

    kty = jwk.get("kty")
    crv = jwk.get("crv")
    if not kty and not crv:
        raise ValidationError(
            f"{error_msg}. Invalid JWK format. Missing 'kty' or 'crv' property. "
            "Failed to determine the key's cipher."
        )
    if (kty == "RSA" and crv) or (kty == "EC" and (jwk.get("e") or jwk.get("n"))):
        raise ValidationError(f"{error_msg}. JWK of type '{kty}' mixes RSA and EC members")

    result = public_ec_jwk_to_ssh(jwk, comment) if crv else public_rsa_jwk_to_ssh(jwk, comment)
    if not result.ok:
        raise wrap_errors(error_msg, result.errors)

    logger.debug("JWK encoded as SSH public key", key_type=result.value.split(" ", 1)[0])
    return result.value


def _ssh_curve(key_type: str) -> CurveSpec:
    return get_curve("P-256") if "p256" in key_type else get_curve("P-384")


@catch_errors
def public_ssh_to_jwk(ssh_key: str) -> dict:
    """Decode an OpenSSH public key line into a public JWK.

    The key type is matched case-insensitively on ``rsa``, ``p256`` and
    ``p384``; the comment is discarded.
    """
    error_msg = "Failed to convert public key from SSH to JWK format"

    if not isinstance(ssh_key, str):
        raise ValidationError(f"{error_msg}. Expected a string, found {type(ssh_key).__name__}")

    parts = ssh_key.split()
    if len(parts) < 2:
        raise ValidationError(f"{error_msg}. Expected '<type> <base64-body>[ <comment>]'")
    key_type, base64_body = parts[0], parts[1]

    kind = key_type.lower()
    is_rsa = "rsa" in kind
    if not is_rsa and "p256" not in kind and "p384" not in kind:
        supported = ", ".join(f"'{t}'" for t in SUPPORTED_KEY_TYPES[:-1])
        raise ValidationError(
            f"{error_msg}. Type {key_type} is not supported. "
            f"Supported types: {supported} and '{SUPPORTED_KEY_TYPES[-1]}'."
        )

    try:
        body = base64.b64decode(base64_body, validate=True)
    except binascii.Error as e:
        raise ValidationError(f"{error_msg}. Invalid base64 body: {e}") from e

    try:
        fields = unpack_fields(body)
    except ValidationError as e:
        raise wrap_errors(error_msg, [e], kind=ValidationError)

    if len(fields) < 3:
        raise ValidationError(f"{error_msg}. Expected 3 fields in the key body, found {len(fields)}")

    if is_rsa:
        if not fields[1] or not fields[2]:
            raise ValidationError(f"{error_msg}. RSA exponent and modulus must not be empty")
        return {
            "kty": "RSA",
            "e": b64url_encode(fields[1]),
            "n": b64url_encode(fields[2]),
        }

    spec = _ssh_curve(kind)
    width = spec.byte_width
    point = fields[2]
    if len(point) != 1 + 2 * width or point[0] != EC_POINT_UNCOMPRESSED:
        raise ValidationError(
            f"{error_msg}. Expected an uncompressed {spec.jwk_name} point of {1 + 2 * width} bytes"
        )

    return {
        "kty": "EC",
        "crv": spec.jwk_name,
        "x": b64url_encode(point[1:1 + width]),
        "y": b64url_encode(point[1 + width:1 + 2 * width]),
    }
