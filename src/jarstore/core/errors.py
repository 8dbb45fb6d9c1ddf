"""
Error taxonomy for jarstore.

Every public operation either returns its result or raises exactly one of
the JarStoreError subclasses below.
"""


class JarStoreError(Exception):
    """Base class for all jarstore failures."""


class InvalidKeyError(JarStoreError):
    """Key is empty or collides with the reserved internal prefix."""

    def __init__(self, key: str, prefix: str):
        self.key = key
        super().__init__(
            f'Invalid key: "{key}" (keys cannot be empty or start with {prefix})'
        )


class DataTooLargeError(JarStoreError):
    """Uncompressed value exceeds the absolute per-value cap."""

    def __init__(self, actual_size: int, max_size: int):
        self.actual_size = actual_size
        self.max_size = max_size
        super().__init__(
            f"Data size {actual_size / 1024 / 1024:.2f}MB exceeds "
            f"{max_size / 1024 / 1024:.2f}MB per-value limit"
        )


class QuotaExceededError(JarStoreError):
    """Write would push the shared global quota over its cap."""

    def __init__(self, needed: int, remaining: int):
        self.needed = needed
        self.remaining = remaining
        super().__init__(
            f"Need {needed / 1024:.1f}KB but only {remaining / 1024:.1f}KB "
            "remaining of shared quota"
        )


class EntryTooLargeError(JarStoreError):
    """A single physical record would exceed the backing store limit."""

    def __init__(self, entry_size: int, max_size: int):
        self.entry_size = entry_size
        self.max_size = max_size
        super().__init__(
            f"Entry {entry_size / 1024:.1f}KB exceeds {max_size / 1024:.1f}KB "
            "limit per record"
        )


class CompressionError(JarStoreError):
    """Byte transform failed in either direction."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Failed to {operation} data")


class DataCorruptedError(JarStoreError):
    """Managed key is unreadable: bad checksum, missing chunk or bad metadata."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f'Data for key "{key}" is corrupted or incomplete')
