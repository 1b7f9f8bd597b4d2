"""
Content-addressed hashing using BLAKE3.

Provides deterministic digest computation for blobs and commits.
"""

from typing import Any

import blake3

from .canonical import canonical_json

DIGEST_LENGTH = 64


def compute_hash(*parts: bytes) -> str:
    """
    Compute the digest of one or more byte sequences.

    Parts are fed to the hasher in order, so compute_hash(a, b) equals
    compute_hash(a + b). Returns a hex-encoded digest.
    """
    hasher = blake3.blake3()
    for part in parts:
        hasher.update(part)
    return hasher.hexdigest()


def compute_object_hash(obj: Any) -> str:
    """
    Compute the digest of a structured record via canonical JSON.

    Independent of dict insertion order.
    """
    return compute_hash(canonical_json(obj))


def get_hash_prefix(hash_str: str, prefix_length: int = 2) -> str:
    """
    Get prefix of hash for directory sharding.

    Default is 2 characters, creating 256 subdirectories.
    """
    if len(hash_str) < prefix_length:
        raise ValueError(f"Hash too short for prefix length {prefix_length}")
    return hash_str[:prefix_length]


def is_hex(value: str) -> bool:
    """Return True if value is a non-empty lowercase hex string."""
    return bool(value) and all(c in '0123456789abcdef' for c in value)


def is_full_digest(value: str) -> bool:
    """Return True if value looks like a complete hex digest."""
    return len(value) == DIGEST_LENGTH and is_hex(value)
