"""
Card data encryption at rest (card numbers and CVVs).

Values are encrypted with AES-256 in ECB mode with PKCS#7 padding and
stored as standard Base64 text. This matches the format of the card data
already in the database, so the scheme cannot change without a migration.
ECB carries no IV and no authentication tag: equal plaintexts produce
equal ciphertexts and tampering is not detected.

Two compatibility behaviors are part of the contract:

  1. Legacy plaintext. Rows written before encryption was introduced hold
     the raw value. decrypt() returns any input that is not valid Base64
     unchanged.

  2. Lenient decrypt. If the input IS valid Base64 but does not decrypt
     (wrong key, corrupted row, a plaintext that happens to look like
     Base64 such as "4111111111111111"), decrypt() returns the input as-is.
     That means a corrupted ciphertext silently reads as "plaintext". The
     behavior lives in CardCipher._on_decrypt_failure(); a cipher built
     with strict=True raises EncryptionError there instead.

Key material is resolved once at startup into a KeyMaterial object:

  - configured secret: UTF-8 bytes, zero-padded or truncated to 32 bytes.
    The adjustment must stay byte-for-byte identical or existing rows
    become unreadable.
  - no secret: a random 32-byte key for the lifetime of the process.
    Everything encrypted with it is lost on restart.
"""

import base64
import binascii
import os
from dataclasses import dataclass

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from loguru import logger

from app.exceptions import EncryptionError

KEY_SIZE_BYTES = 32  # AES-256
BLOCK_SIZE_BITS = 128


def adjust_key_length(key: bytes) -> bytes:
    """Zero-pad or truncate `key` to exactly KEY_SIZE_BYTES."""
    return key[:KEY_SIZE_BYTES].ljust(KEY_SIZE_BYTES, b"\x00")


@dataclass(frozen=True)
class KeyMaterial:
    """
    The AES key the card cipher runs on.

    Attributes:
        key: Exactly KEY_SIZE_BYTES bytes.
        ephemeral: True when the key was generated for this process only.
    """
    key: bytes
    ephemeral: bool = False

    @classmethod
    def from_secret(cls, secret: str | None) -> "KeyMaterial":
        """
        Build key material from the configured secret.

        A missing or blank secret yields an ephemeral random key; this is
        logged at WARNING because data encrypted with it does not survive
        a restart.
        """
        if secret is None or not secret.strip():
            logger.warning(
                "CARD_ENCRYPTION_KEY is not configured. Generating an ephemeral "
                "card encryption key. Card numbers and CVVs written by this "
                "process will be unreadable after a restart!"
            )
            return cls(key=os.urandom(KEY_SIZE_BYTES), ephemeral=True)

        key_bytes = secret.encode("utf-8")
        if len(key_bytes) != KEY_SIZE_BYTES:
            logger.warning(
                "Card encryption key is {} bytes, not {}. Padding or truncating to {} bytes.",
                len(key_bytes), KEY_SIZE_BYTES, KEY_SIZE_BYTES,
            )
            key_bytes = adjust_key_length(key_bytes)
        return cls(key=key_bytes)


def _is_base64(text: str) -> bool:
    try:
        base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


class CardCipher:
    """
    Encrypt/decrypt card numbers and CVVs.

    Stateless apart from the key, so one instance is shared by the whole
    process (see app.main) and is safe to call concurrently.
    """

    def __init__(self, key_material: KeyMaterial, strict: bool = False):
        self._key_material = key_material
        self.strict = strict

    @property
    def ephemeral(self) -> bool:
        return self._key_material.ephemeral

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self._key_material.key), modes.ECB())

    def encrypt(self, plain_text: str | None) -> str | None:
        """
        Encrypt a value for storage.

        Args:
            plain_text: The sensitive value. None and "" are returned unchanged.

        Returns:
            Base64 text of the AES ciphertext.

        Raises:
            EncryptionError: If the cipher fails. Never swallowed.
        """
        if not plain_text:
            return plain_text

        try:
            padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
            padded = padder.update(plain_text.encode("utf-8")) + padder.finalize()
            encryptor = self._cipher().encryptor()
            encrypted = encryptor.update(padded) + encryptor.finalize()
        except (ValueError, TypeError) as exc:
            logger.error("Error encrypting card data: {}", exc)
            raise EncryptionError("Failed to encrypt data") from exc

        return base64.b64encode(encrypted).decode("ascii")

    def decrypt(self, cipher_text: str | None) -> str | None:
        """
        Decrypt a stored value.

        None and "" are returned unchanged, as is anything that is not
        Base64 (legacy plaintext rows). A Base64 value that fails to
        decrypt goes through _on_decrypt_failure().
        """
        if not cipher_text:
            return cipher_text

        if not _is_base64(cipher_text):
            logger.debug("Value is not Base64, treating it as legacy plaintext")
            return cipher_text

        try:
            decryptor = self._cipher().decryptor()
            padded = decryptor.update(base64.b64decode(cipher_text)) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
            plain = unpadder.update(padded) + unpadder.finalize()
            return plain.decode("utf-8")
        except ValueError as exc:
            # UnicodeDecodeError is a ValueError too
            return self._on_decrypt_failure(cipher_text, exc)

    def _on_decrypt_failure(self, cipher_text: str, exc: Exception) -> str:
        """
        Handle Base64 input that could not be decrypted.

        Lenient mode returns the input unchanged so pre-encryption rows that
        happen to look like Base64 keep working. This also hides corrupted
        ciphertext, which is why strict mode exists.
        """
        if self.strict:
            raise EncryptionError("Failed to decrypt data") from exc
        logger.warning("Could not decrypt card data, returning stored value as-is: {}", exc)
        return cipher_text

    def decrypt_last_chars(self, cipher_text: str | None, last_chars: int) -> str | None:
        """Return only the last `last_chars` characters of the decrypted value."""
        decrypted = self.decrypt(cipher_text)
        if decrypted is None:
            return None
        if last_chars <= 0:
            return ""
        return decrypted[-last_chars:]


def build_card_cipher(secret: str | None, strict: bool = False) -> CardCipher:
    """Create the process-wide cipher from configuration."""
    return CardCipher(KeyMaterial.from_secret(secret), strict=strict)
