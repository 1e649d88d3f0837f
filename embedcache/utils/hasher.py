"""
Cache key generation utilities.

Sandi Metz Principles:
- Single Responsibility: Hash generation
- Small functions: Each does one thing
- Pure functions: No side effects
"""

import hashlib

FINGERPRINT_LENGTH = 64


def fingerprint(text: str) -> str:
    """
    Generate the cache key for a text.

    The exact text is hashed (no normalization), so any change in
    whitespace or case yields a different key. Lone surrogates are
    encoded as-is so text decoded with ``surrogateescape`` still hashes.

    Args:
        text: Input text

    Returns:
        SHA-256 hex digest (64 characters)
    """
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()


def is_fingerprint(value: str) -> bool:
    """
    Check if a value looks like a cache key.

    Args:
        value: Candidate key

    Returns:
        True if value is a 64 character lowercase hex string
    """
    if len(value) != FINGERPRINT_LENGTH:
        return False
    return all(c in "0123456789abcdef" for c in value)
