"""
Storage layer: compression, checksums, chunk layout, quota ledger and
backing stores.
"""

from jarstore.storage.backends import (
    AsyncKeyValueStore,
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    ThreadedStore,
)
from jarstore.storage.checksum import fingerprint, verify
from jarstore.storage.chunk_layout import ChunkLayout
from jarstore.storage.compression import (
    compress_data,
    compress_text,
    decompress_data,
    decompress_text,
)
from jarstore.storage.quota_ledger import QuotaLedger
from jarstore.storage.records import RecordPlanner, WritePlan, decode_payload

__all__ = [
    "KeyValueStore",
    "AsyncKeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "ThreadedStore",
    "fingerprint",
    "verify",
    "ChunkLayout",
    "compress_data",
    "decompress_data",
    "compress_text",
    "decompress_text",
    "QuotaLedger",
    "RecordPlanner",
    "WritePlan",
    "decode_payload",
]
