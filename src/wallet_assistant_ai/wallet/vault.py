"""Symmetric encryption of raw private keys.

Keys are encrypted with AES-256 in CBC mode under one process-wide secret.
CBC offers no integrity check: a tampered ciphertext or a rotated secret is
only noticed when PKCS#7 unpadding fails, and may otherwise decrypt to
garbage. Rotating the secret invalidates every key encrypted before it.
"""

from __future__ import annotations

import logging
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from wallet_assistant_ai.errors import EncryptionError
from wallet_assistant_ai.wallet.models import EncryptedKey

logger = logging.getLogger("wallet_assistant_ai.wallet.vault")

KEY_SIZE = 32
IV_SIZE = 16
BLOCK_SIZE_BITS = algorithms.AES.block_size


def generate_secret() -> str:
    """Return a fresh hex-encoded 256-bit secret suitable for ``ENCRYPTION_KEY``."""
    return os.urandom(KEY_SIZE).hex()


class CryptoVault:
    """Encrypts and decrypts key material under a fixed 256-bit secret.

    Parameters
    ----------
    secret:
        The process-wide secret, either 32 raw bytes or 64 hex characters.
        It is read once here and never changes for the lifetime of the
        vault.
    """

    def __init__(self, secret: bytes | str) -> None:
        self._key = self._load_secret(secret)

    @staticmethod
    def _load_secret(secret: bytes | str) -> bytes:
        if isinstance(secret, str):
            raw = secret.strip()
            if raw.startswith("0x"):
                raw = raw[2:]
            try:
                key = bytes.fromhex(raw)
            except ValueError as exc:
                raise EncryptionError("Encryption secret is not valid hex.") from exc
        else:
            key = bytes(secret)
        if len(key) != KEY_SIZE:
            raise EncryptionError(
                f"Encryption secret must be {KEY_SIZE} bytes, got {len(key)}."
            )
        return key

    def encrypt(self, secret_key_material: bytes) -> EncryptedKey:
        """Encrypt *secret_key_material* under a freshly generated iv."""
        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
        padded = padder.update(secret_key_material) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return EncryptedKey(iv=iv, ciphertext=ciphertext)

    def decrypt(self, encrypted_key: EncryptedKey) -> bytes:
        """Recover the plaintext key.

        Raises
        ------
        EncryptionError
            If the iv or ciphertext length is wrong for AES, or if unpadding
            fails (usually because the secret changed since encryption).
        """
        iv = encrypted_key.iv
        ciphertext = encrypted_key.ciphertext
        if len(iv) != IV_SIZE:
            raise EncryptionError(f"Invalid iv length {len(iv)}; expected {IV_SIZE}.")
        if not ciphertext or len(ciphertext) % (BLOCK_SIZE_BITS // 8):
            raise EncryptionError(
                f"Invalid ciphertext length {len(ciphertext)} for AES block size."
            )

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            logger.warning("Key decryption failed: bad padding")
            raise EncryptionError(
                "Could not decrypt key material; the encryption secret may have changed."
            ) from exc
