""" Utility for checksum formatting. """


def to_hex(digest: bytes) -> str:
    """Render digest bytes as lowercase hex, two zero-padded characters per byte."""
    if not isinstance(digest, (bytes, bytearray, memoryview)):
        raise TypeError(f"digest must be bytes, not {type(digest).__name__}")
    return bytes(digest).hex()
