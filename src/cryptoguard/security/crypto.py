"""Block transform engine: AES-256-CBC and SHA-256 over fixed-size chunks.

Layout of ciphertext: raw AES-256-CBC blocks with PKCS#7 padding. No header,
no salt, no IV; the IV is re-derived from the passphrase on decryption.

Both transforms are small state machines::

    cipher: UNINITIALIZED -> INITIALIZED -> STREAMING -> FINALIZED
    digest: UNINITIALIZED -> INITIALIZED -> ACCUMULATING -> FINALIZED

and are context managers so the primitive context is dropped on every exit
path. :func:`pump` drives either of them from a source stream to a sink one
chunk at a time; memory use stays at one chunk plus one output buffer.
"""
from __future__ import annotations

import enum
import logging
from typing import BinaryIO, Iterator, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from cryptoguard.core.exceptions import (
    CipherFinalizeError,
    CipherInitError,
    CipherUpdateError,
    DigestError,
    StreamIOError,
    TransformStateError,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024
BLOCK_SIZE_BITS = 128  # AES


class Direction(enum.Enum):
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"


class TransformState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    STREAMING = "streaming"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"


class _Transform:
    """Shared state bookkeeping for cipher and digest transforms."""

    _active_state = TransformState.STREAMING

    def __init__(self):
        self.state = TransformState.UNINITIALIZED

    def _require(self, *allowed: TransformState) -> None:
        if self.state not in allowed:
            raise TransformStateError(
                f"{type(self).__name__} is {self.state.value}; "
                f"expected {' or '.join(s.value for s in allowed)}"
            )

    def _require_open(self) -> None:
        self._require(TransformState.INITIALIZED, self._active_state)

    def _release(self) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self._release()
        return False


class CipherTransform(_Transform):
    """AES-256-CBC with PKCS#7 padding, one direction, one key/iv pair."""

    def __init__(self, direction: Direction):
        super().__init__()
        self.direction = direction
        self._ctx = None
        self._padding = None

    def initialize(self, key: bytes, iv: bytes) -> None:
        self._require(TransformState.UNINITIALIZED)
        try:
            cipher = Cipher(algorithms.AES(key), modes.CBC(iv))
            if self.direction is Direction.ENCRYPT:
                self._ctx = cipher.encryptor()
                self._padding = padding.PKCS7(BLOCK_SIZE_BITS).padder()
            else:
                self._ctx = cipher.decryptor()
                self._padding = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise CipherInitError("cipher initialization error", str(exc)) from exc
        self.state = TransformState.INITIALIZED

    def update(self, block: bytes) -> bytes:
        """Feed one chunk; returns whatever whole blocks are ready (possibly b"")."""
        self._require_open()
        self.state = TransformState.STREAMING
        try:
            if self.direction is Direction.ENCRYPT:
                return self._ctx.update(self._padding.update(block))
            return self._padding.update(self._ctx.update(block))
        except (ValueError, TypeError) as exc:
            raise CipherUpdateError("cipher update error", str(exc)) from exc

    def finalize(self) -> bytes:
        """Flush the last block: pad on encryption, validate and strip padding on decryption."""
        self._require_open()
        try:
            if self.direction is Direction.ENCRYPT:
                tail = self._ctx.update(self._padding.finalize()) + self._ctx.finalize()
            else:
                tail = self._padding.update(self._ctx.finalize()) + self._padding.finalize()
        except ValueError as exc:
            self._release()
            raise CipherFinalizeError("cipher finalize error", str(exc)) from exc
        self._release()
        return tail

    def _release(self) -> None:
        self._ctx = None
        self._padding = None
        self.state = TransformState.FINALIZED


class DigestTransform(_Transform):
    """Running SHA-256 accumulator."""

    _active_state = TransformState.ACCUMULATING

    def __init__(self):
        super().__init__()
        self._ctx = None

    def initialize(self) -> None:
        self._require(TransformState.UNINITIALIZED)
        try:
            self._ctx = hashes.Hash(hashes.SHA256())
        except UnsupportedAlgorithm as exc:
            raise DigestError("digest initialization error", str(exc)) from exc
        self.state = TransformState.INITIALIZED

    def update(self, block: bytes) -> bytes:
        # Digests produce nothing until finalize; b"" keeps the pump loop uniform.
        self._require_open()
        self.state = TransformState.ACCUMULATING
        try:
            self._ctx.update(block)
        except TypeError as exc:
            raise DigestError("digest update error", str(exc)) from exc
        return b""

    def finalize(self) -> bytes:
        self._require_open()
        try:
            digest = self._ctx.finalize()
        finally:
            self._release()
        return digest

    def _release(self) -> None:
        self._ctx = None
        self.state = TransformState.FINALIZED


def read_chunks(source: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield chunks from ``source`` until end of stream.

    ``b""`` is end of stream. ``None`` (a non-blocking stream with nothing
    buffered yet) is not: keep reading.
    """
    while True:
        try:
            chunk = source.read(chunk_size)
        except OSError as exc:
            raise StreamIOError(f"read from source failed: {exc}") from exc
        if chunk is None:
            continue
        if not chunk:
            return
        yield chunk


def write_all(sink: BinaryIO, data: bytes) -> None:
    """Write every byte of ``data``; raw streams may accept only part per call."""
    view = memoryview(data)
    while view:
        try:
            written = sink.write(view)
        except OSError as exc:
            raise StreamIOError(f"write to destination failed: {exc}") from exc
        if written is None:
            continue
        if written == 0:
            raise StreamIOError("write to destination failed: sink accepted no bytes")
        view = view[written:]


def pump(
    source: BinaryIO,
    sink: Optional[BinaryIO],
    transform: CipherTransform | DigestTransform,
    chunk_size: int = CHUNK_SIZE,
) -> bytes:
    """Feed ``source`` through an initialized transform.

    Cipher output is written to ``sink`` as soon as it is produced and the
    finalize tail is written last; returns b"" in that case. With no sink
    (digest mode) the finalize output is returned instead.
    """
    total_in = 0
    total_out = 0
    for chunk in read_chunks(source, chunk_size):
        total_in += len(chunk)
        produced = transform.update(chunk)
        if produced and sink is not None:
            write_all(sink, produced)
            total_out += len(produced)

    tail = transform.finalize()
    logger.debug("pumped %d bytes in, %d bytes out before finalize", total_in, total_out)
    if sink is None:
        return tail
    if tail:
        write_all(sink, tail)
    return b""
