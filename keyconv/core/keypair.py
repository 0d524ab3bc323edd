"""Fresh asymmetric key pairs exposed in PEM, JWK or SSH form.

Generation is CPU-bound and runs once per ``Keypair`` in a worker thread.
It starts at construction when an event loop is running, otherwise on the
first ``to()`` call, and its outcome is kept for the life of the instance.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from keyconv.config import get_settings
from keyconv.core.curves import CipherKind, CurveSpec, KeyFormat, KeyRole, get_curve
from keyconv.core.errors import (
    ConfigurationError,
    ConversionError,
    Result,
    catch_errors,
    wrap_errors,
)
from keyconv.core.key import coerce_format, ec_key_pem_to_jwk, rsa_key_pem_to_jwk
from keyconv.core.logging import get_logger, log_operation
from keyconv.core.ssh_codec import public_jwk_to_ssh

logger = get_logger(__name__)

RSA_PUBLIC_EXPONENT = 65537


@dataclass
class KeyPairMaterial:
    """Both halves of a key pair in one format."""
    public: Any
    private: Any
    format: KeyFormat


def generate_pem_key_pair(
    cipher: CipherKind,
    length: int = 2048,
    curve: CurveSpec | None = None,
    passphrase: str | None = None,
) -> KeyPairMaterial:
    """Generate a key pair and encode it as PEM.

    The public key is PKCS#1 for RSA and SubjectPublicKeyInfo for EC. The
    private key is PKCS#8, encrypted with the best available scheme
    (AES-256-CBC) when a passphrase is given.

    Raises:
        ValueError: If the primitive rejects the key length or curve
    """
    if cipher == CipherKind.RSA:
        private_key = rsa.generate_private_key(
            public_exponent=RSA_PUBLIC_EXPONENT,
            key_size=length,
        )
        public_format = serialization.PublicFormat.PKCS1
    else:
        private_key = ec.generate_private_key(curve.curve())
        public_format = serialization.PublicFormat.SubjectPublicKeyInfo

    if passphrase:
        encryption = serialization.BestAvailableEncryption(passphrase.encode())
    else:
        encryption = serialization.NoEncryption()

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=encryption,
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=public_format,
    )

    return KeyPairMaterial(
        public=public_pem.decode(),
        private=private_pem.decode(),
        format=KeyFormat.PEM,
    )


def _cipher_label(cipher: CipherKind) -> str:
    return "RSA" if cipher == CipherKind.RSA else "ECDSA"


@catch_errors
def key_pair_pem_to_jwk(
    cipher: CipherKind,
    pair: KeyPairMaterial,
    passphrase: str | None = None,
) -> KeyPairMaterial:
    error_msg = f"Failed to convert {_cipher_label(cipher)} keypair from PEM to JWK"
    pem_to_jwk = rsa_key_pem_to_jwk if cipher == CipherKind.RSA else ec_key_pem_to_jwk

    private_result = pem_to_jwk(pair.private, KeyRole.PRIVATE, passphrase)
    public_result = pem_to_jwk(pair.public, KeyRole.PUBLIC)

    if not private_result.ok or not public_result.ok:
        raise wrap_errors(error_msg, private_result.errors or public_result.errors)

    return KeyPairMaterial(
        public=public_result.value,
        private=private_result.value,
        format=KeyFormat.JWK,
    )


@catch_errors
def key_pair_pem_to_ssh(cipher: CipherKind, pair: KeyPairMaterial) -> KeyPairMaterial:
    """Public half as an SSH line; the private half stays PEM."""
    error_msg = f"Failed to convert {_cipher_label(cipher)} keypair from PEM to SSH"
    pem_to_jwk = rsa_key_pem_to_jwk if cipher == CipherKind.RSA else ec_key_pem_to_jwk

    jwk_result = pem_to_jwk(pair.public, KeyRole.PUBLIC)
    if not jwk_result.ok:
        raise wrap_errors(error_msg, jwk_result.errors)

    ssh_result = public_jwk_to_ssh(jwk_result.value)
    if not ssh_result.ok:
        raise wrap_errors(error_msg, ssh_result.errors)

    return KeyPairMaterial(
        public=ssh_result.value,
        private=pair.private,
        format=KeyFormat.SSH,
    )


class Keypair:
    """A new public/private key pair.

    Args:
        cipher: ``rsa`` or ``ec``; defaults to the ``default_cipher`` setting
        length: RSA modulus size in bits
        curve: EC curve, OpenSSL (``prime256v1``) or JWK (``P-256``) name
        passphrase: Encrypts the private key PEM when set

    Raises:
        ConfigurationError: On an unsupported cipher, curve or key length.
            Nothing is generated in that case.
    """

    def __init__(
        self,
        cipher: CipherKind | str | None = None,
        length: int | None = None,
        curve: str | None = None,
        passphrase: str | None = None,
    ):
        settings = get_settings()
        error_msg = "Failed to create new Keypair instance"

        cipher = cipher if cipher is not None else settings.default_cipher
        try:
            self.cipher = CipherKind(cipher.lower() if isinstance(cipher, str) else cipher)
        except ValueError:
            raise ConfigurationError(
                f"{error_msg}. Cipher '{cipher}' is not supported. Supported ciphers are: rsa and ec."
            ) from None

        self.length = length if length is not None else settings.default_rsa_key_length
        self.curve: CurveSpec | None = None

        if self.cipher == CipherKind.RSA:
            if isinstance(self.length, bool) or not isinstance(self.length, int) or self.length <= 0:
                raise ConfigurationError(f"{error_msg}. Invalid RSA key length '{self.length}'")
        else:
            curve_name = curve or settings.default_ec_curve
            self.curve = get_curve(curve_name)
            if self.curve is None:
                raise ConfigurationError(f"{error_msg}. EC curve '{curve_name}' is not supported")

        self._passphrase = passphrase
        self._task: asyncio.Task | None = None
        self._outcome: Result[KeyPairMaterial] | None = None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._task = loop.create_task(self._generate())

    @property
    def is_encrypted(self) -> bool:
        return bool(self._passphrase)

    @log_operation("Keypair generation")
    async def _generate(self) -> Result[KeyPairMaterial]:
        logger.info(
            "Generating keypair",
            cipher=self.cipher.value,
            length=self.length if self.cipher == CipherKind.RSA else None,
            curve=self.curve.native_name if self.curve else None,
            encrypted=self.is_encrypted,
        )
        try:
            pair = await asyncio.to_thread(
                generate_pem_key_pair,
                self.cipher,
                self.length,
                self.curve,
                self._passphrase,
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            return Result.failure([ConversionError(f"Key pair generation failed: {e}")])
        return Result.success(pair)

    async def _generated(self) -> Result[KeyPairMaterial]:
        if self._outcome is None:
            loop = asyncio.get_running_loop()
            if self._task is None or self._task.get_loop() is not loop:
                self._task = loop.create_task(self._generate())
            self._outcome = await self._task
        return self._outcome

    def to(self, fmt: KeyFormat | str = KeyFormat.PEM) -> Awaitable[Result[KeyPairMaterial]]:
        """Both halves of the pair in ``fmt``.

        The format is checked before anything is awaited.

        Returns:
            Awaitable resolving to a Result holding a KeyPairMaterial

        Raises:
            ConfigurationError: If the format is not supported
        """
        target = coerce_format(fmt)
        return self._to(target)

    async def _to(self, target: KeyFormat) -> Result[KeyPairMaterial]:
        error_msg = f"Failed to create asymmetric {self.cipher.value} keys in {target.value} format"

        generated = await self._generated()
        if not generated.ok:
            return Result.failure(wrap_errors(error_msg, generated.errors).errors)

        pair = generated.value
        if target == KeyFormat.PEM:
            return generated

        if target == KeyFormat.JWK:
            result = key_pair_pem_to_jwk(self.cipher, pair, self._passphrase)
        else:
            result = key_pair_pem_to_ssh(self.cipher, pair)

        if not result.ok:
            return Result.failure(wrap_errors(error_msg, result.errors).errors)
        return result

    def __repr__(self) -> str:
        detail = f"length={self.length}" if self.curve is None else f"curve={self.curve.native_name!r}"
        return f"Keypair(cipher={self.cipher.value!r}, {detail})"
