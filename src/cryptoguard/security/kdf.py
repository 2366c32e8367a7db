"""Passphrase to AES key/IV derivation.

Uses the OpenSSL ``EVP_BytesToKey`` construction so ciphertext stays
compatible with ``openssl enc -aes-256-cbc -md sha256 -S 3132333435363738``.
The salt is a fixed public constant: the same passphrase always yields the
same key and IV, which is what lets a file be decrypted later with nothing
but the passphrase. Per-file salts would need to be stored with the
ciphertext and are not done here.
"""
import logging
from typing import Tuple

from cryptography.hazmat.primitives import hashes

from cryptoguard.core.exceptions import KeyDerivationError

logger = logging.getLogger(__name__)

FIXED_SALT = b"12345678"
KEY_SIZE = 32  # AES-256
IV_SIZE = 16  # AES block size
DEFAULT_DIGEST = "sha256"
DEFAULT_ITERATIONS = 1

_DIGESTS = {
    "sha256": hashes.SHA256,
}


def _resolve_digest(name: str) -> hashes.HashAlgorithm:
    try:
        algorithm = _DIGESTS[name.lower()]()
    except (KeyError, AttributeError):
        raise KeyDerivationError("key derivation failed", f"unknown digest {name!r}") from None
    if algorithm.digest_size <= 0:
        raise KeyDerivationError("key derivation failed", f"digest {name!r} has no output")
    return algorithm


def derive_key_iv(
    passphrase: bytes | str,
    salt: bytes = FIXED_SALT,
    digest: str = DEFAULT_DIGEST,
    iterations: int = DEFAULT_ITERATIONS,
    key_len: int = KEY_SIZE,
    iv_len: int = IV_SIZE,
) -> Tuple[bytes, bytes]:
    """
    Derive ``(key, iv)`` from a passphrase.

    Each round hashes the previous round's output, the passphrase and the
    salt, rehashing ``iterations - 1`` more times; rounds are concatenated
    until there is enough material, then split into key and IV.
    """
    if isinstance(passphrase, str):
        # surrogateescape: a non-UTF-8 argv password maps back to its raw bytes
        passphrase = passphrase.encode("utf-8", "surrogateescape")
    if iterations < 1:
        raise KeyDerivationError("key derivation failed", "iteration count must be >= 1")

    algorithm = _resolve_digest(digest)
    needed = key_len + iv_len
    material = b""
    block = b""
    while len(material) < needed:
        h = hashes.Hash(algorithm)
        h.update(block + passphrase + salt)
        block = h.finalize()
        for _ in range(iterations - 1):
            h = hashes.Hash(algorithm)
            h.update(block)
            block = h.finalize()
        if not block:
            raise KeyDerivationError("key derivation failed", "digest produced no output")
        material += block

    logger.debug("derived %d-byte key and %d-byte iv using %s", key_len, iv_len, digest)
    return material[:key_len], material[key_len:needed]
