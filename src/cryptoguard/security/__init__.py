"""Security helpers: key derivation and streaming AES/SHA-256 transforms for CryptoGuard.

This package provides:
- EVP_BytesToKey-style key/iv derivation from a passphrase (fixed salt)
- AES-256-CBC encryption/decryption over byte streams, one chunk at a time
- SHA-256 checksums of byte streams

Ciphertext is bare AES output: no header, no integrity tag.
"""

from .kdf import FIXED_SALT, derive_key_iv
from .crypto import (
    CHUNK_SIZE,
    CipherTransform,
    DigestTransform,
    Direction,
    pump,
)
from .session import (
    GuardedSession,
    get_session,
    encrypt_file,
    decrypt_file,
    calculate_checksum,
    encrypt_bytes,
    decrypt_bytes,
)

__all__ = [
    "FIXED_SALT",
    "derive_key_iv",
    "CHUNK_SIZE",
    "CipherTransform",
    "DigestTransform",
    "Direction",
    "pump",
    "GuardedSession",
    "get_session",
    "encrypt_file",
    "decrypt_file",
    "calculate_checksum",
    "encrypt_bytes",
    "decrypt_bytes",
]
