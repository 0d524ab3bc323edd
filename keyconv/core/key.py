"""Conversion of one existing key between PEM, JWK and SSH.

The module-level converters are shared with ``Keypair``. Each returns a
Result and wraps the errors of the codec it calls with its own stage
message. PEM and SSH have no direct path, so they hop through JWK.

SSH has no private-key wire format here: a private key requested as SSH is
returned as its PEM.
"""

import json
import re
from typing import Any

from keyconv.core import ec_codec, rsa_codec
from keyconv.core.curves import KeyFormat, KeyRole
from keyconv.core.errors import (
    ConfigurationError,
    Result,
    catch_errors,
    wrap_errors,
)
from keyconv.core.logging import get_logger
from keyconv.core.ssh_codec import public_jwk_to_ssh, public_ssh_to_jwk

logger = get_logger(__name__)

SUPPORTED_FORMATS = [f.value for f in KeyFormat]

_PRIVATE_PEM = re.compile(r"BEGIN(.*?)PRIVATE")


def coerce_format(fmt: KeyFormat | str) -> KeyFormat:
    """Validate a requested output format.

    Raises:
        ConfigurationError: If the format is not pem, jwk or ssh
    """
    try:
        return KeyFormat(fmt.lower() if isinstance(fmt, str) else fmt)
    except ValueError:
        raise ConfigurationError(
            f"File format '{fmt}' is not supported. Supported formats: {', '.join(SUPPORTED_FORMATS)}"
        ) from None


def is_pem_key_private(pem_key: str, role: KeyRole | None = None) -> bool:
    """Declared role if any, else the presence of a PRIVATE marker."""
    if role is not None:
        return role == KeyRole.PRIVATE
    return "PRIVATE" in (pem_key or "")


def _role_name(is_private: bool) -> str:
    return "private" if is_private else "public"


@catch_errors
def rsa_key_pem_to_jwk(pem_key: str, role: KeyRole | None = None, passphrase: str | None = None) -> dict:
    is_private = is_pem_key_private(pem_key, role)
    error_msg = f"Failed to convert RSA {_role_name(is_private)} key from PEM to JWK format"

    result = rsa_codec.pem_to_jwk(pem_key, is_private, passphrase)
    if not result.ok:
        raise wrap_errors(error_msg, result.errors)
    return result.value


@catch_errors
def ec_key_pem_to_jwk(pem_key: str, role: KeyRole | None = None, passphrase: str | None = None) -> dict:
    is_private = is_pem_key_private(pem_key, role)
    error_msg = f"Failed to convert ECDSA {_role_name(is_private)} key from PEM to JWK format"

    result = ec_codec.pem_to_jwk(pem_key, is_private, passphrase)
    if not result.ok:
        raise wrap_errors(error_msg, result.errors)
    return result.value


@catch_errors
def pem_key_to_jwk(pem_key: str, role: KeyRole | None = None, passphrase: str | None = None) -> dict:
    """Convert a PEM key of unknown cipher to JWK, trying RSA then EC."""
    rsa_result = rsa_key_pem_to_jwk(pem_key, role, passphrase)
    if rsa_result.ok:
        return rsa_result.value

    ec_result = ec_key_pem_to_jwk(pem_key, role, passphrase)
    if ec_result.ok:
        return ec_result.value

    is_private = is_pem_key_private(pem_key, role)
    raise wrap_errors(
        f"Failed to convert {_role_name(is_private)} key from PEM to JWK format. "
        "The PEM key is not recognized as a valid RSA or ECDSA key.",
        [*rsa_result.errors, *ec_result.errors],
    )


@catch_errors
def pem_key_to_ssh(
    pem_key: str,
    role: KeyRole | None = None,
    passphrase: str | None = None,
    comment: str | None = None,
) -> str:
    error_msg = "Failed to convert key from PEM to SSH format"

    if is_pem_key_private(pem_key, role):
        logger.warning("Private keys have no SSH wire format, returning the PEM key unchanged")
        return pem_key

    jwk_result = pem_key_to_jwk(pem_key, role, passphrase)
    if not jwk_result.ok:
        raise wrap_errors(error_msg, jwk_result.errors)

    ssh_result = public_jwk_to_ssh(jwk_result.value, comment)
    if not ssh_result.ok:
        raise wrap_errors(error_msg, ssh_result.errors)
    return ssh_result.value


@catch_errors
def jwk_key_to_pem(jwk_key: dict) -> str:
    result = ec_codec.jwk_to_pem(jwk_key) if jwk_key.get("crv") else rsa_codec.jwk_to_pem(jwk_key)
    if not result.ok:
        raise wrap_errors("Failed to convert key from JWK to PEM format", result.errors)
    return result.value


@catch_errors
def jwk_key_to_ssh(jwk_key: dict, comment: str | None = None) -> str:
    cipher = "ECDSA" if jwk_key.get("crv") else "RSA"
    error_msg = f"Failed to convert {cipher} key from JWK to SSH format"

    if jwk_key.get("d"):
        logger.warning("Private keys have no SSH wire format, returning the key as PEM")
        result = jwk_key_to_pem(jwk_key)
    else:
        result = public_jwk_to_ssh(jwk_key, comment)

    if not result.ok:
        raise wrap_errors(error_msg, result.errors)
    return result.value


@catch_errors
def ssh_key_to_jwk(ssh_key: str, passphrase: str | None = None) -> dict:
    error_msg = "Failed to convert key from SSH to JWK format"

    if _PRIVATE_PEM.search(ssh_key):
        result = pem_key_to_jwk(ssh_key, KeyRole.PRIVATE, passphrase)
    else:
        result = public_ssh_to_jwk(ssh_key)

    if not result.ok:
        raise wrap_errors(error_msg, result.errors)
    return result.value


@catch_errors
def ssh_key_to_pem(ssh_key: str) -> str:
    error_msg = "Failed to convert key from SSH to PEM format"

    if _PRIVATE_PEM.search(ssh_key):
        return ssh_key

    jwk_result = ssh_key_to_jwk(ssh_key)
    if not jwk_result.ok:
        raise wrap_errors(error_msg, jwk_result.errors)

    pem_result = jwk_key_to_pem(jwk_result.value)
    if not pem_result.ok:
        raise wrap_errors(error_msg, pem_result.errors)
    return pem_result.value


class Key:
    """An existing asymmetric key in one of PEM, JWK or SSH form.

    Args:
        jwk: Key as a JWK dict (or its JSON text)
        pem: Key in PEM form
        ssh: Public key as an OpenSSH line
        role: Force the key's role instead of inferring it from the PEM
        passphrase: Passphrase of an encrypted private PEM key

    Raises:
        ConfigurationError: If not exactly one of jwk, pem or ssh is given
    """

    def __init__(
        self,
        jwk: dict | str | None = None,
        pem: str | bytes | None = None,
        ssh: str | bytes | None = None,
        role: KeyRole | str | None = None,
        passphrase: str | None = None,
    ):
        error_msg = "Failed to create new Key instance"

        sources = {KeyFormat.JWK: jwk, KeyFormat.PEM: pem, KeyFormat.SSH: ssh}
        supplied = [fmt for fmt, value in sources.items() if value is not None]
        if not supplied:
            raise ConfigurationError(
                f"{error_msg}. Missing required key. At least one of those three "
                "properties is required: jwk, pem or ssh"
            )
        if len(supplied) > 1:
            raise ConfigurationError(
                f"{error_msg}. Only one of jwk, pem or ssh can be supplied, "
                f"found {', '.join(f.value for f in supplied)}"
            )

        self._format = supplied[0]
        value = sources[self._format]

        if self._format == KeyFormat.JWK:
            if isinstance(value, str):
                try:
                    value = json.loads(value)
                except ValueError as e:
                    raise ConfigurationError(f"{error_msg}. JWK text is not valid JSON: {e}") from e
            if not isinstance(value, dict):
                raise ConfigurationError(f"{error_msg}. JWK must be a dict or JSON text")
        elif isinstance(value, bytes):
            try:
                value = value.decode("ascii")
            except UnicodeDecodeError as e:
                raise ConfigurationError(f"{error_msg}. Key bytes are not ASCII text: {e}") from e

        try:
            self._role = KeyRole(role) if role is not None else None
        except ValueError:
            raise ConfigurationError(f"{error_msg}. Unknown key role '{role}'") from None

        self._value: Any = value
        self._passphrase = passphrase

    @property
    def source_format(self) -> KeyFormat:
        return self._format

    @property
    def is_private(self) -> bool:
        if self._format == KeyFormat.JWK:
            return bool(self._value.get("d"))
        if self._format == KeyFormat.PEM:
            return is_pem_key_private(self._value, self._role)
        return bool(_PRIVATE_PEM.search(self._value))

    @property
    def role(self) -> KeyRole:
        return KeyRole.PRIVATE if self.is_private else KeyRole.PUBLIC

    def to(self, fmt: KeyFormat | str = KeyFormat.PEM, comment: str | None = None) -> Result:
        """Convert the key to ``fmt``.

        Args:
            fmt: Target format, one of pem, jwk or ssh
            comment: Trailing comment of a produced SSH line

        Returns:
            Result holding the converted key

        Raises:
            ConfigurationError: If the format is not supported
        """
        target = coerce_format(fmt)
        return self._convert(target, comment)

    @catch_errors
    def _convert(self, target: KeyFormat, comment: str | None) -> Any:
        if target == self._format:
            return self._value

        error_msg = f"Failed to convert asymmetric key in {target.value} format"
        source = self._format

        if source == KeyFormat.PEM:
            if target == KeyFormat.SSH:
                result = pem_key_to_ssh(self._value, self._role, self._passphrase, comment)
            else:
                result = pem_key_to_jwk(self._value, self._role, self._passphrase)
        elif source == KeyFormat.SSH:
            if target == KeyFormat.PEM:
                result = ssh_key_to_pem(self._value)
            else:
                result = ssh_key_to_jwk(self._value, self._passphrase)
        elif target == KeyFormat.PEM:
            result = jwk_key_to_pem(self._value)
        else:
            result = jwk_key_to_ssh(self._value, comment)

        if not result.ok:
            logger.debug("Key conversion failed", source=source.value, target=target.value)
            raise wrap_errors(error_msg, result.errors)
        return result.value

    def __repr__(self) -> str:
        return f"Key(format={self._format.value!r}, role={self.role.value!r})"
