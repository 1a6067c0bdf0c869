"""Fast hashing for document fingerprints.

xxhash for change detection on hot paths, SHA256 when a stable
cryptographic digest is wanted (e.g. content addressing of assets).
"""

from enum import Enum
import hashlib
from typing import Any

import xxhash

from .json import dumps


class Algorithm(str, Enum):
    """Supported hash algorithms."""

    XXHASH64 = "xxhash64"  # Fast, non-cryptographic
    SHA256 = "sha256"


def hash_bytes(data: bytes, algorithm: Algorithm = Algorithm.XXHASH64) -> str:
    """Hex digest of raw bytes."""
    if algorithm == Algorithm.SHA256:
        return hashlib.sha256(data).hexdigest()
    return xxhash.xxh64(data).hexdigest()


def hash_string(
    text: str, algorithm: Algorithm = Algorithm.XXHASH64, truncate: int | None = None
) -> str:
    """
    Hex digest of a string.

    Args:
        text: Input string
        algorithm: Hash algorithm
        truncate: Optional digest length

    Returns:
        Hex digest (optionally truncated)
    """
    digest = hash_bytes(text.encode("utf-8"), algorithm)
    return digest[:truncate] if truncate else digest


def hash_canonical(value: Any, algorithm: Algorithm = Algorithm.XXHASH64) -> str:
    """Digest of a JSON-compatible value in canonical (sorted-key) form."""
    return hash_string(dumps(value, sort_keys=True), algorithm)


def document_fingerprint(document: Any, algorithm: Algorithm = Algorithm.XXHASH64) -> str:
    """
    Fingerprint of a Document value.

    Two documents share a fingerprint exactly when their serialized form is
    byte-for-byte identical.
    """
    return hash_canonical(document.model_dump(mode="json", by_alias=True), algorithm)
