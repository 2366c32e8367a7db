"""Guarded stream session: the public encrypt / decrypt / checksum operations.

A session checks both streams before any cryptographic work (open, readable
or writable, not the same resource), derives key material, and runs the
transform engine over the streams. On failure, bytes already written stay in
the destination and are flushed; the caller gets the streams back open and
usable. Nothing is retried.

A module-level default session backs the ``encrypt_file`` /
``decrypt_file`` / ``calculate_checksum`` shortcuts.
"""
from __future__ import annotations

import contextlib
import io
import logging
import os
from typing import BinaryIO, Iterator, Optional

from cryptoguard.core.exceptions import PreconditionError
from cryptoguard.core.hashing import to_hex

from .crypto import CHUNK_SIZE, CipherTransform, DigestTransform, Direction, pump
from .kdf import derive_key_iv

logger = logging.getLogger(__name__)


def _stream_name(stream) -> str:
    return str(getattr(stream, "name", type(stream).__name__))


def _check_readable(stream, role: str) -> None:
    if stream is None:
        raise PreconditionError(f"{role} stream is missing")
    if getattr(stream, "closed", False):
        raise PreconditionError(f"{role} stream is closed")
    readable = getattr(stream, "readable", None)
    if readable is None or not readable():
        raise PreconditionError(f"{role} stream is not readable")


def _check_writable(stream, role: str) -> None:
    if stream is None:
        raise PreconditionError(f"{role} stream is missing")
    if getattr(stream, "closed", False):
        raise PreconditionError(f"{role} stream is closed")
    writable = getattr(stream, "writable", None)
    if writable is None or not writable():
        raise PreconditionError(f"{role} stream is not writable")


def _file_identity(stream) -> Optional[tuple]:
    try:
        st = os.fstat(stream.fileno())
    except (AttributeError, OSError, ValueError):
        # in-memory streams raise io.UnsupportedOperation, a subclass of both
        return None
    return (st.st_dev, st.st_ino)


def _same_resource(source, destination) -> bool:
    """True if both handles point at the same underlying object or file."""
    if source is destination:
        return True
    src_id = _file_identity(source)
    if src_id is not None and src_id == _file_identity(destination):
        return True
    src_name = getattr(source, "name", None)
    dst_name = getattr(destination, "name", None)
    if isinstance(src_name, (str, bytes, os.PathLike)) and isinstance(dst_name, (str, bytes, os.PathLike)):
        return os.path.realpath(src_name) == os.path.realpath(dst_name)
    return False


def _flush_quietly(stream) -> None:
    # Runs while another exception is propagating; that one wins.
    flush = getattr(stream, "flush", None)
    if flush is None or getattr(stream, "closed", False):
        return
    try:
        flush()
    except (OSError, ValueError) as exc:
        logger.warning("could not flush %s after failure: %s", _stream_name(stream), exc)


class GuardedSession:
    """Runs one transform per call over caller-owned streams."""

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _check_cipher_streams(self, source: BinaryIO, destination: BinaryIO) -> None:
        _check_readable(source, "source")
        _check_writable(destination, "destination")
        if _same_resource(source, destination):
            raise PreconditionError("source and destination refer to the same resource")

    @contextlib.contextmanager
    def _guard(self, operation: str, destination: Optional[BinaryIO] = None) -> Iterator[None]:
        try:
            yield
        except Exception as exc:
            logger.warning("%s failed: %s", operation, exc)
            if destination is not None:
                # keep partial output visible; no rollback
                _flush_quietly(destination)
            raise

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _run_cipher(self, direction: Direction, source: BinaryIO, destination: BinaryIO,
                    passphrase: bytes | str) -> None:
        self._check_cipher_streams(source, destination)
        operation = direction.value
        logger.debug("%s %s -> %s", operation, _stream_name(source), _stream_name(destination))
        with self._guard(operation, destination):
            key, iv = derive_key_iv(passphrase)
            with CipherTransform(direction) as transform:
                transform.initialize(key, iv)
                pump(source, destination, transform, self.chunk_size)

    def encrypt_file(self, source: BinaryIO, destination: BinaryIO, passphrase: bytes | str) -> None:
        """Encrypt ``source`` into ``destination`` with a key derived from ``passphrase``."""
        self._run_cipher(Direction.ENCRYPT, source, destination, passphrase)

    def decrypt_file(self, source: BinaryIO, destination: BinaryIO, passphrase: bytes | str) -> None:
        """
        Decrypt ``source`` into ``destination``.

        A wrong passphrase usually surfaces as ``CipherFinalizeError`` (bad
        padding). Occasionally the padding happens to validate and garbage is
        written without an error: there is no integrity tag to catch that.
        """
        self._run_cipher(Direction.DECRYPT, source, destination, passphrase)

    def calculate_checksum(self, source: BinaryIO) -> str:
        """Return the SHA-256 of ``source`` as 64 lowercase hex characters."""
        _check_readable(source, "source")
        logger.debug("checksum %s", _stream_name(source))
        with self._guard("checksum"):
            with DigestTransform() as transform:
                transform.initialize()
                digest = pump(source, None, transform, self.chunk_size)
        return to_hex(digest)


# module-level default session
_default_session = GuardedSession()


def get_session() -> GuardedSession:
    return _default_session


def encrypt_file(source: BinaryIO, destination: BinaryIO, passphrase: bytes | str) -> None:
    get_session().encrypt_file(source, destination, passphrase)


def decrypt_file(source: BinaryIO, destination: BinaryIO, passphrase: bytes | str) -> None:
    get_session().decrypt_file(source, destination, passphrase)


def calculate_checksum(source: BinaryIO) -> str:
    return get_session().calculate_checksum(source)


def encrypt_bytes(data: bytes, passphrase: bytes | str) -> bytes:
    """Convenience wrapper for small in-memory payloads."""
    out = io.BytesIO()
    encrypt_file(io.BytesIO(data), out, passphrase)
    return out.getvalue()


def decrypt_bytes(data: bytes, passphrase: bytes | str) -> bytes:
    out = io.BytesIO()
    decrypt_file(io.BytesIO(data), out, passphrase)
    return out.getvalue()
