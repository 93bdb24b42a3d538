"""RSA password encryption compatible with the JSEncrypt web client.

Passwords are encrypted with a fixed public key using PKCS#1 v1.5 padding
and returned base64 encoded. Padding is random, so the same password yields
a different ciphertext on every call.
"""

import asyncio
import base64
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from mailgate.utils.errors import EncryptionError
from mailgate.utils.logging import get_logger

logger = get_logger(__name__)

PUBLIC_KEY = """-----BEGIN PUBLIC KEY-----
MIIBIjANBgkqhkiG9w0BAQEFAAOCAQ8AMIIBCgKCAQEAurH0QeBkoZoLft3Kw0iv
MciojN0XkoAY59m+gVX6cxbeFY6RQ02DI3/sYCQnX062r1uO6UXlnQ0CwUaRfvGC
OBrlHX5Bh81JVdsqjMkm/AgipG75dlZggwwBob/1p/EJhbJ3fl8LzBRmjNHS29uF
usRYGCr1y5gstz8JRXA1cg8QP8Zjl6TZ0OVwAXBI+BZaRkxv8uhvRTMzmmo6jK2Y
FlCVCmPhkrGR1lyhoKRs9L+DimuU5pZ8zlU5xMwy0yM8D5okC1/M3KAIGc+hDZzO
Gqb0WtjUa8izvmNjERiXlhAP48T6AY6IlnX3fAZBupru563Su6djmTOFT0awZAQi
LQIDAQAB
-----END PUBLIC KEY-----"""

# PKCS#1 v1.5 needs 11 bytes of the modulus for its own header and padding.
PKCS1_V15_OVERHEAD = 11


def _load_public_key(public_key_pem: Optional[str | bytes]) -> rsa.RSAPublicKey:
    """Parse a PEM public key, raising EncryptionError on anything unusable."""

    if public_key_pem is not None and not isinstance(public_key_pem, (str, bytes)):
        raise EncryptionError(
            "RSA public key must be PEM text",
            details={"reason": "invalid_type", "type": type(public_key_pem).__name__},
        )

    if not public_key_pem or not public_key_pem.strip():
        raise EncryptionError("RSA public key is not set")

    try:
        if isinstance(public_key_pem, str):
            public_key_pem = public_key_pem.encode("ascii")
        key = serialization.load_pem_public_key(public_key_pem)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise EncryptionError(
            f"RSA public key is malformed: {e}", details={"reason": "malformed_key"}
        ) from e

    if not isinstance(key, rsa.RSAPublicKey):
        raise EncryptionError(
            "Public key is not an RSA key",
            details={"reason": "wrong_key_type", "key_type": type(key).__name__},
        )

    return key


class PasswordEncryptor:
    """Encrypts passwords with an RSA public key (PKCS#1 v1.5, base64 output)."""

    def __init__(self, public_key_pem: Optional[str | bytes] = PUBLIC_KEY):
        """Initialize the encryptor.

        Args:
            public_key_pem: PEM encoded RSA public key

        Raises:
            EncryptionError: If the key is unset, malformed or not RSA
        """
        self._public_key = _load_public_key(public_key_pem)

    @property
    def key_size(self) -> int:
        """Modulus size in bits."""
        return self._public_key.key_size

    @property
    def max_plaintext_bytes(self) -> int:
        """Largest UTF-8 plaintext, in bytes, the key can encrypt."""
        return self._public_key.key_size // 8 - PKCS1_V15_OVERHEAD

    def encrypt(self, plaintext: str) -> str:
        """Encrypt ``plaintext`` and return base64 ciphertext.

        Raises:
            EncryptionError: If the plaintext is not a string, is too long
                for the key, or the encryption itself fails
        """
        if not isinstance(plaintext, str):
            raise EncryptionError(
                "Plaintext must be a string",
                details={"reason": "invalid_type", "type": type(plaintext).__name__},
            )

        data = plaintext.encode("utf-8")
        if len(data) > self.max_plaintext_bytes:
            raise EncryptionError(
                f"Plaintext is {len(data)} bytes, the key allows at most "
                f"{self.max_plaintext_bytes}",
                details={
                    "reason": "plaintext_too_long",
                    "length": len(data),
                    "limit": self.max_plaintext_bytes,
                },
            )

        try:
            ciphertext = self._public_key.encrypt(data, padding.PKCS1v15())
        except Exception as e:
            logger.error(f"RSA encryption failed: {e}")
            raise EncryptionError(f"RSA encryption failed: {e}") from e

        return base64.b64encode(ciphertext).decode("ascii")

    async def encrypt_async(self, plaintext: str) -> str:
        """Async variant of :meth:`encrypt`, run on a worker thread."""
        return await asyncio.to_thread(self.encrypt, plaintext)


## Module-level helpers


def encrypt_password_rsa_sync(password: str) -> str:
    """Encrypt ``password`` with the embedded public key."""
    return PasswordEncryptor(PUBLIC_KEY).encrypt(password)


_encryptor: Optional[PasswordEncryptor] = None


def get_encryptor() -> PasswordEncryptor:
    """Get the shared encryptor, creating it on first use."""

    global _encryptor

    if _encryptor is None:
        _encryptor = PasswordEncryptor(PUBLIC_KEY)
        logger.debug(f"RSA encryptor initialised ({_encryptor.key_size}-bit key)")

    return _encryptor


def reset_encryptor() -> None:
    """Drop the shared encryptor so the next call rebuilds it."""

    global _encryptor
    _encryptor = None


async def encrypt_password_rsa(password: str) -> str:
    """Encrypt ``password`` using the shared encryptor."""
    return await get_encryptor().encrypt_async(password)
