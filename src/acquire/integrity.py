"""SHA-256 integrity checks for crate archives, from memory or from disk."""

import hashlib

from .errors import ChecksumMismatch

_READ_SIZE = 1024 * 1024


def sha256_bytes(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha256_file(path: str) -> bytes:
    """Digest a file without loading it into memory at once."""
    hasher = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_READ_SIZE), b""):
            hasher.update(chunk)
    return hasher.digest()


def verify_digest(actual: bytes, expected: bytes) -> None:
    """Raise ChecksumMismatch unless the digests are byte-for-byte equal."""
    if actual != expected:
        raise ChecksumMismatch(expected, actual)


def verify_bytes(data: bytes, expected: bytes) -> bytes:
    """Check ``data`` against ``expected`` and return the computed digest."""
    digest = sha256_bytes(data)
    verify_digest(digest, expected)
    return digest
