"""
Exceptions for CryptoGuard
Everything raised by the library derives from CryptoGuardError so callers have
a single catch-all, and the CLI can still tell the three failure kinds apart.
"""


class CryptoGuardError(Exception):
    # general container for errors
    pass


class PreconditionError(CryptoGuardError):
    # raised before any crypto work: closed/unreadable stream, input aliases output
    pass


class TransformStateError(CryptoGuardError):
    # raised when a transform is driven out of order (update before initialize, ...)
    pass


class StreamIOError(CryptoGuardError):
    # raised when reading the source or writing the destination fails mid-stream
    pass


class CryptoError(CryptoGuardError):
    """Failure reported by the cryptographic primitive.

    ``detail`` holds the primitive's own diagnostic text when there is one.
    """

    def __init__(self, message: str, detail: str | None = None):
        self.detail = detail
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class KeyDerivationError(CryptoError):
    # raised when key/iv cannot be derived from the passphrase
    pass


class CipherInitError(CryptoError):
    # raised when the cipher rejects key/iv
    pass


class CipherUpdateError(CryptoError):
    # raised when feeding a block to the cipher fails
    pass


class CipherFinalizeError(CryptoError):
    # raised on bad padding or misaligned ciphertext: wrong passphrase or corrupted data
    pass


class DigestError(CryptoError):
    # raised when the digest primitive fails
    pass


class UsageError(CryptoGuardError):
    # raised by the command-line layer on missing or conflicting options
    pass
