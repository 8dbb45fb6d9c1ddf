"""
jarstore - transparent compression, chunking and shared quota accounting
for size-limited key-value stores.
"""

from jarstore.core import (
    CompressionError,
    Config,
    DataCorruptedError,
    DataTooLargeError,
    EntryTooLargeError,
    InvalidKeyError,
    JarStoreError,
    QuotaExceededError,
)
from jarstore.jar import AsyncJar, Jar
from jarstore.storage import JsonFileStore, MemoryStore, QuotaLedger, ThreadedStore

__version__ = "0.1.0"

__all__ = [
    "Jar",
    "AsyncJar",
    "Config",
    "QuotaLedger",
    "MemoryStore",
    "JsonFileStore",
    "ThreadedStore",
    "JarStoreError",
    "InvalidKeyError",
    "DataTooLargeError",
    "QuotaExceededError",
    "EntryTooLargeError",
    "CompressionError",
    "DataCorruptedError",
]
