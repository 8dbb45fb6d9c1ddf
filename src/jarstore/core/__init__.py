"""
Core contracts and error taxonomy for jarstore.
"""

from jarstore.core.contracts import (
    Config,
    Decoded,
    MigrationResult,
    OptimizationResult,
    QuotaReport,
    QuotaStats,
    Raw,
    ReadResult,
    RecordMetadata,
    UsageDiscrepancy,
    ValidationResult,
)
from jarstore.core.errors import (
    CompressionError,
    DataCorruptedError,
    DataTooLargeError,
    EntryTooLargeError,
    InvalidKeyError,
    JarStoreError,
    QuotaExceededError,
)

__all__ = [
    "Config",
    "RecordMetadata",
    "Decoded",
    "Raw",
    "ReadResult",
    "QuotaStats",
    "QuotaReport",
    "MigrationResult",
    "OptimizationResult",
    "UsageDiscrepancy",
    "ValidationResult",
    "JarStoreError",
    "InvalidKeyError",
    "DataTooLargeError",
    "QuotaExceededError",
    "EntryTooLargeError",
    "CompressionError",
    "DataCorruptedError",
]
