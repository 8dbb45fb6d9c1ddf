"""
Fast non-cryptographic fingerprints for corruption detection.

xxh32 over the UTF-8 bytes of the canonical text. Detects truncation and
bit rot, not tampering.
"""

import xxhash


def fingerprint(text: str) -> str:
    """
    Compute the checksum of a value's canonical text.

    Args:
        text: Canonical (serialized) text

    Returns:
        8-character lowercase hex digest
    """
    return xxhash.xxh32(text.encode("utf-8")).hexdigest()


def verify(text: str, expected: str) -> bool:
    """Return True if text fingerprints to expected."""
    return fingerprint(text) == expected
