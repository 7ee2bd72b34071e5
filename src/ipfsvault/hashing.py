"""
Content fingerprints.

The digest of a file's raw bytes is the only signal the engine uses to
decide whether a tracked file changed since the last run.
"""

from __future__ import annotations

import hashlib
from pathlib import Path


def sha256_bytes(data: bytes) -> str:
    """Compute SHA-256 hex digest of bytes.

    Args:
        data: Bytes to hash.

    Returns:
        Hex-encoded SHA-256 digest.
    """
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path) -> str:
    """Compute SHA-256 hex digest of a file.

    Args:
        path: File to hash.

    Returns:
        Hex-encoded SHA-256 digest.
    """
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def legacy_sha256(data: bytes) -> str:
    """Digest as computed by manifests written before raw-byte hashing.

    Those manifests hashed the content after reading each byte as one
    latin-1 character and re-encoding the text as UTF-8, so bytes above
    0x7f produce a different digest than :func:`sha256_bytes`.
    """
    return hashlib.sha256(data.decode("latin-1").encode("utf-8")).hexdigest()


def matches(data: bytes, expected: str) -> bool:
    """Check content against a recorded digest, accepting the legacy form."""
    return expected in (sha256_bytes(data), legacy_sha256(data))
