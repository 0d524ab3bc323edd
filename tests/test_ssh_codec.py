"""Tests for the OpenSSH public key codec."""

import base64
import struct

import pytest

from conftest import openssh_line
from keyconv.core import ec_codec, rsa_codec
from keyconv.core.errors import ValidationError
from keyconv.core.key import Key
from keyconv.core.ssh_codec import (
    normalize_big_int,
    pack_fields,
    pad_bytes,
    public_jwk_to_ssh,
    public_ssh_to_jwk,
    unpack_fields,
)


class TestWireHelpers:
    """Tests for the length-prefixed field helpers."""

    def test_normalize_big_int(self):
        assert normalize_big_int(b"\x80\x01") == b"\x00\x80\x01"
        assert normalize_big_int(b"\x7f\x01") == b"\x7f\x01"

    def test_pad_bytes(self):
        assert pad_bytes(b"\x01", 4) == b"\x00\x00\x00\x01"
        assert pad_bytes(b"\x00\x00\x01", 2) == b"\x00\x01"

    def test_pad_bytes_too_long(self):
        with pytest.raises(ValidationError):
            pad_bytes(b"\x01\x02\x03", 2)

    def test_pack_fields(self):
        assert pack_fields([b"ab", b""]) == b"\x00\x00\x00\x02ab\x00\x00\x00\x00"

    def test_unpack_skips_empty_and_strips_sign_byte(self):
        body = pack_fields([b"ssh-rsa", b"", b"\x00\x80\x01"])

        assert unpack_fields(body) == [b"ssh-rsa", b"\x80\x01"]

    def test_unpack_truncated_length(self):
        with pytest.raises(ValidationError):
            unpack_fields(b"\x00\x00")

    def test_unpack_truncated_field(self):
        with pytest.raises(ValidationError):
            unpack_fields(struct.pack(">I", 10) + b"abc")


class TestJwkToSsh:
    """Tests for JWK to OpenSSH encoding."""

    def test_rsa_matches_openssh(self, rsa_pair):
        jwk = rsa_codec.pem_to_jwk(rsa_pair.public, is_private=False).value
        result = public_jwk_to_ssh(jwk)

        assert result.ok
        assert result.value == openssh_line(rsa_pair.public)

    @pytest.mark.parametrize("pair_name", ["p256_pair", "p384_pair"])
    def test_ec_matches_openssh(self, request, pair_name):
        pair = request.getfixturevalue(pair_name)
        jwk = ec_codec.pem_to_jwk(pair.public).value
        result = public_jwk_to_ssh(jwk)

        assert result.ok
        assert result.value == openssh_line(pair.public)

    def test_comment_appended(self, p256_pair):
        jwk = ec_codec.pem_to_jwk(p256_pair.public).value
        line = public_jwk_to_ssh(jwk, comment="alice@example.com").value

        assert line.startswith("ecdsa-sha2-nistp256 ")
        assert line.endswith(" alice@example.com")

    def test_accepts_buffers(self, rsa_pair):
        jwk = rsa_codec.pem_to_jwk(rsa_pair.public, is_private=False).value
        from_text = public_jwk_to_ssh(jwk).value
        from_bytes = public_jwk_to_ssh({
            "kty": "RSA",
            "e": b"\x01\x00\x01",
            "n": base64.urlsafe_b64decode(jwk["n"] + "=" * (-len(jwk["n"]) % 4)),
        }).value

        assert from_bytes == from_text

    def test_undetermined_cipher(self):
        result = public_jwk_to_ssh({"x": "AQ", "y": "AQ"})

        assert not result.ok
        assert isinstance(result.errors[0], ValidationError)
        assert "Missing 'kty' or 'crv'" in result.messages[0]

    def test_mixed_members(self):
        result = public_jwk_to_ssh({"kty": "RSA", "crv": "P-256", "e": "AQAB", "n": "AQAB"})

        assert isinstance(result.errors[0], ValidationError)

    def test_missing_modulus(self):
        result = public_jwk_to_ssh({"kty": "RSA", "e": "AQAB"})

        assert "Missing required 'n'" in result.messages[0]
        assert result.messages[-1] == "Failed to convert public key from JWK to SSH format"

    def test_field_of_wrong_type(self):
        result = public_jwk_to_ssh({"kty": "RSA", "e": "AQAB", "n": 12345})

        assert "expected to be a base64 string or a buffer, found int instead" in result.messages[0]

    def test_unsupported_curve(self):
        result = public_jwk_to_ssh({"kty": "EC", "crv": "P-521", "x": "AQ", "y": "AQ"})

        assert isinstance(result.errors[0], ValidationError)
        assert "P-521" in result.messages[0]


class TestSshToJwk:
    """Tests for OpenSSH line decoding."""

    def test_rsa_roundtrip(self, rsa_pair):
        jwk = rsa_codec.pem_to_jwk(rsa_pair.public, is_private=False).value
        result = public_ssh_to_jwk(openssh_line(rsa_pair.public))

        assert result.ok
        assert result.value == jwk

    @pytest.mark.parametrize("pair_name", ["p256_pair", "p384_pair"])
    def test_ec_roundtrip(self, request, pair_name):
        pair = request.getfixturevalue(pair_name)
        jwk = ec_codec.pem_to_jwk(pair.public).value
        result = public_ssh_to_jwk(openssh_line(pair.public) + " some comment")

        assert result.ok
        assert result.value == jwk

    def test_unsupported_type_names_supported_ones(self):
        result = public_ssh_to_jwk("ssh-dss AAAAB3NzaC1kc3M=")

        assert not result.ok
        assert isinstance(result.errors[0], ValidationError)
        assert result.messages[0].endswith(
            "Type ssh-dss is not supported. Supported types: "
            "'ssh-rsa', 'ecdsa-sha2-nistp256' and 'ecdsa-sha2-nistp384'."
        )

    def test_ed25519_not_supported(self):
        result = public_ssh_to_jwk("ssh-ed25519 AAAAC3NzaC1lZDI1NTE5")

        assert "Type ssh-ed25519 is not supported" in result.messages[0]

    def test_missing_body(self):
        result = public_ssh_to_jwk("ssh-rsa")

        assert isinstance(result.errors[0], ValidationError)

    def test_invalid_base64(self):
        result = public_ssh_to_jwk("ssh-rsa not*base64")

        assert isinstance(result.errors[0], ValidationError)

    def test_truncated_body(self, rsa_pair):
        key_type, body = openssh_line(rsa_pair.public).split()
        raw = base64.b64decode(body)[:-10]

        result = public_ssh_to_jwk(f"{key_type} {base64.b64encode(raw).decode()}")

        assert not result.ok
        assert "Truncated" in result.messages[0]

    def test_too_few_fields(self):
        body = base64.b64encode(pack_fields([b"ssh-rsa", b"\x01\x00\x01"])).decode()

        result = public_ssh_to_jwk(f"ssh-rsa {body}")

        assert "Expected 3 fields" in result.messages[0]

    def test_compressed_point_rejected(self):
        point = b"\x02" + b"\x11" * 32
        body = base64.b64encode(pack_fields([b"ecdsa-sha2-nistp256", b"nistp256", point])).decode()

        result = public_ssh_to_jwk(f"ecdsa-sha2-nistp256 {body}")

        assert isinstance(result.errors[0], ValidationError)
        assert "uncompressed P-256 point" in result.messages[0]

    def test_not_a_string(self):
        result = public_ssh_to_jwk(b"ssh-rsa AAAA")

        assert isinstance(result.errors[0], ValidationError)

    def test_zero_byte_point_field(self):
        body = base64.b64encode(pack_fields([b"ecdsa-sha2-nistp256", b"nistp256", b"\x00"])).decode()
        line = f"ecdsa-sha2-nistp256 {body}"

        result = public_ssh_to_jwk(line)

        assert not result.ok
        assert isinstance(result.errors[0], ValidationError)
        assert not Key(ssh=line).to("pem").ok

    def test_zero_byte_rsa_field(self):
        body = base64.b64encode(pack_fields([b"ssh-rsa", b"\x00", b"\x00\x80\x01"])).decode()

        result = public_ssh_to_jwk(f"ssh-rsa {body}")

        assert isinstance(result.errors[0], ValidationError)
        assert "must not be empty" in result.messages[0]
