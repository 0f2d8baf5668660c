"""
Vault Crypto Core — Symmetric encryption and key handling.

Every record is AES-256-CBC with PKCS7 padding under a fresh random IV:

    [iv 16B][ciphertext]

Security Note:
    Never log plaintext, ciphertext or key values.
    Keys that must be wiped are held in ``bytearray`` and zeroed with
    :func:`zeroize` before being dropped.
"""
import os
import logging
from dataclasses import dataclass

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..exceptions import DecryptionError, EncryptionError

logger = logging.getLogger("rootguard.vault")

IV_SIZE = 16  # AES block size
KEY_LENGTH = 32  # AES-256
_BLOCK_BITS = algorithms.AES.block_size


@dataclass
class EncryptedRecord:
    """An IV plus the ciphertext it was used for."""

    iv: bytes
    ciphertext: bytearray

    def to_bytes(self) -> bytes:
        return bytes(self.iv) + bytes(self.ciphertext)

    @classmethod
    def from_bytes(cls, data: bytes) -> "EncryptedRecord":
        """Split ``iv || ciphertext``.

        Raises:
            DecryptionError: If ``data`` is too short to hold an IV and
                at least one block.
        """
        if len(data) < IV_SIZE + IV_SIZE:
            raise DecryptionError(
                f"record too short: {len(data)} bytes (minimum {2 * IV_SIZE})"
            )
        return cls(iv=bytes(data[:IV_SIZE]), ciphertext=bytearray(data[IV_SIZE:]))

    def wipe(self) -> None:
        zeroize(self.ciphertext)


# ---------------------------------------------------------------------------
# Key handling
# ---------------------------------------------------------------------------

def generate_key() -> bytearray:
    """Return a fresh random 256-bit key as a wipeable buffer."""
    return bytearray(os.urandom(KEY_LENGTH))


def zeroize(buffer: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    for i in range(len(buffer)):
        buffer[i] = 0


def _check_key(key: bytes | bytearray) -> None:
    if len(key) != KEY_LENGTH:
        raise EncryptionError(
            f"key must be {KEY_LENGTH} bytes, got {len(key)}"
        )


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

def encrypt(key: bytes | bytearray, plaintext: bytes) -> EncryptedRecord:
    """Encrypt ``plaintext`` under ``key`` with a new random IV.

    Args:
        key: 32-byte AES key.
        plaintext: Data to encrypt.

    Returns:
        EncryptedRecord holding the IV and ciphertext.

    Raises:
        EncryptionError: If the key has the wrong size.
    """
    _check_key(key)
    iv = os.urandom(IV_SIZE)
    padder = padding.PKCS7(_BLOCK_BITS).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ct = encryptor.update(padded) + encryptor.finalize()
    return EncryptedRecord(iv=iv, ciphertext=bytearray(ct))


def decrypt(key: bytes | bytearray, record: EncryptedRecord) -> bytes:
    """Decrypt an EncryptedRecord.

    Args:
        key: 32-byte AES key used for encryption.
        record: Record produced by :func:`encrypt`.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        DecryptionError: On a wrong key size, IV length, ciphertext length
            or padding (the usual symptom of a wrong key or corrupt data).
    """
    if len(key) != KEY_LENGTH:
        raise DecryptionError(f"key must be {KEY_LENGTH} bytes, got {len(key)}")
    if len(record.iv) != IV_SIZE:
        raise DecryptionError(
            f"IV must be {IV_SIZE} bytes, got {len(record.iv)}"
        )
    if not record.ciphertext or len(record.ciphertext) % IV_SIZE:
        raise DecryptionError(
            f"ciphertext length {len(record.ciphertext)} is not a "
            f"multiple of {IV_SIZE}"
        )
    decryptor = Cipher(algorithms.AES(key), modes.CBC(record.iv)).decryptor()
    padded = decryptor.update(bytes(record.ciphertext)) + decryptor.finalize()
    unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as err:
        raise DecryptionError("invalid padding") from err


def encrypt_bytes(key: bytes | bytearray, plaintext: bytes) -> bytes:
    """Encrypt and return the ``iv || ciphertext`` wire form."""
    return encrypt(key, plaintext).to_bytes()


def decrypt_bytes(key: bytes | bytearray, data: bytes) -> bytes:
    """Decrypt the ``iv || ciphertext`` wire form."""
    return decrypt(key, EncryptedRecord.from_bytes(data))
