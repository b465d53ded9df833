"""
Content-addressed hashing using BLAKE3.

Provides deterministic hash computation for all record kinds.
"""

import re

import blake3

from .canonical import canonical_json

HASH_PATTERN = re.compile(r'^[0-9a-f]{64}$')


def compute_hash(data: bytes) -> str:
    """
    Compute hash of raw bytes.

    Returns hex-encoded BLAKE3 digest (64 characters).
    """
    return blake3.blake3(data).hexdigest()


def compute_object_hash(record: dict) -> str:
    """
    Compute hash of a dehydrated record using canonical JSON encoding.

    This ensures deterministic hashing:
    - Same record structure always produces same hash
    - Independent of Python dict ordering
    - Independent of how the materialized form was built or mutated
    """
    return compute_hash(canonical_json(record))


def looks_like_hash(value: str) -> bool:
    """Check whether a string has the shape of a content hash."""
    return bool(HASH_PATTERN.match(value))


def get_hash_prefix(hash_str: str, prefix_length: int = 2) -> str:
    """
    Get prefix of hash for directory sharding.

    Default is 2 characters, creating 256 subdirectories.
    """
    if len(hash_str) < prefix_length:
        raise ValueError(f"Hash too short for prefix length {prefix_length}")
    return hash_str[:prefix_length]
