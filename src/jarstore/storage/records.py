"""
Pure record planning shared by the sync and async jars.

Nothing here touches a backing store: write planning turns a value into the
exact physical records to put, and read assembly turns fetched records back
into a value. The jars only move records in and out of their store.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Set, Tuple

from jarstore.core.contracts import Config, Decoded, Raw, ReadResult, RecordMetadata
from jarstore.core.errors import (
    CompressionError,
    DataCorruptedError,
    DataTooLargeError,
    InvalidKeyError,
    QuotaExceededError,
)
from jarstore.storage.checksum import fingerprint, verify
from jarstore.storage.chunk_layout import ChunkLayout
from jarstore.storage.compression import compress_text, decompress_text
from jarstore.storage.quota_ledger import QuotaLedger

Record = Tuple[str, str]


@dataclass
class WritePlan:
    """Physical records for one logical write, in write order."""

    key: str
    data_records: List[Record]  # the single data record, or every chunk
    meta_record: Record
    metadata: RecordMetadata
    footprint: int  # len(key) + len(value) summed over all records above

    @property
    def chunked(self) -> bool:
        return self.metadata.chunked

    @property
    def physical_keys(self) -> Set[str]:
        return {k for k, _ in self.data_records} | {self.meta_record[0]}


def serialize_value(value: Any) -> str:
    """Text passes through; anything else is encoded as compact JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def decode_payload(text: str) -> ReadResult:
    """
    Try to parse text as JSON.

    Returns:
        Decoded(value) if text is valid JSON, otherwise Raw(text). Text nested
        deeper than the JSON decoder can recurse also comes back as Raw.
    """
    try:
        return Decoded(json.loads(text))
    except (ValueError, RecursionError):
        return Raw(text)


def utf8_size(text: str) -> int:
    return len(text.encode("utf-8", "surrogatepass"))


def record_footprint(records: Iterable[Record]) -> int:
    """Physical bytes of (key, value) pairs; empty values are absent records."""
    return sum(len(k) + len(v) for k, v in records if v)


class RecordPlanner:
    """Turns logical values into physical records and back for one Config."""

    def __init__(self, config: Config):
        self.config = config
        self.layout = ChunkLayout(config)

    def check_key(self, key: str):
        """
        Raises:
            InvalidKeyError: If key is empty or uses the reserved prefix
        """
        if not isinstance(key, str) or not key or self.layout.is_reserved(key):
            raise InvalidKeyError(key, self.config.key_prefix)

    def plan_write(self, key: str, value: Any, ledger: QuotaLedger) -> WritePlan:
        """
        Build every physical record for storing `value` under `key`.

        Checks run in order: key, uncompressed size, compression, quota,
        then per-record size. Nothing is written.

        Raises:
            InvalidKeyError, DataTooLargeError, CompressionError,
            QuotaExceededError, EntryTooLargeError
        """
        self.check_key(key)

        try:
            data = serialize_value(value)
        except (TypeError, ValueError) as exc:
            raise CompressionError("serialize") from exc

        size = utf8_size(data)
        if size > self.config.max_value_size:
            raise DataTooLargeError(size, self.config.max_value_size)

        compressed = compress_text(data, level=self.config.zstd_level)

        estimated = len(compressed) + self.config.metadata_overhead
        if not ledger.can_afford(estimated):
            raise QuotaExceededError(estimated, ledger.remaining())

        checksum = fingerprint(data)
        if len(compressed) <= self.layout.safe_chunk_size(key):
            data_records = [(key, compressed)]
            metadata = RecordMetadata(checksum=checksum, size=size)
        else:
            pieces = self.layout.split(compressed)
            data_records = [
                (self.layout.chunk_key(key, i), piece) for i, piece in enumerate(pieces)
            ]
            metadata = RecordMetadata(
                checksum=checksum, size=size, chunked=True, total_chunks=len(pieces)
            )

        meta_record = (self.layout.meta_key(key), metadata.to_json())
        for record_key, record_value in data_records + [meta_record]:
            self.layout.validate_record(record_key, record_value)

        # Record keys count towards the footprint but not the estimate.
        footprint = record_footprint(data_records + [meta_record])
        if not ledger.can_afford(footprint):
            raise QuotaExceededError(footprint, ledger.remaining())

        return WritePlan(
            key=key,
            data_records=data_records,
            meta_record=meta_record,
            metadata=metadata,
            footprint=footprint,
        )

    def parse_metadata(self, key: str, text: str) -> RecordMetadata:
        """
        Raises:
            DataCorruptedError: If the metadata record is unparsable
        """
        try:
            return RecordMetadata.from_json(text)
        except (ValueError, TypeError) as exc:
            raise DataCorruptedError(key) from exc

    def data_keys(self, key: str, metadata: RecordMetadata) -> List[str]:
        """Physical keys holding the payload of a managed key, in order."""
        if metadata.chunked:
            return [self.layout.chunk_key(key, i) for i in range(metadata.total_chunks or 0)]
        return [key]

    def previous_keys(self, key: str, meta_text: str, existing: Optional[Set[str]] = None) -> Set[str]:
        """
        Every physical key a key may currently occupy.

        Uses the metadata when it parses. Otherwise chunk keys are found by
        scanning `existing` (the store's key set), if given.
        """
        keys = {key}
        if not meta_text:
            return keys
        keys.add(self.layout.meta_key(key))
        try:
            metadata = RecordMetadata.from_json(meta_text)
        except (ValueError, TypeError):
            keys.update(self.scan_chunk_keys(key, existing or set()))
            return keys
        keys.update(self.data_keys(key, metadata))
        return keys

    def stale_keys(self, plan: WritePlan, meta_text: str) -> List[str]:
        """Keys of the previous layout that the new write does not overwrite."""
        return sorted(self.previous_keys(plan.key, meta_text) - plan.physical_keys)

    def scan_chunk_keys(self, key: str, existing: Iterable[str]) -> List[str]:
        prefix = f"{self.config.chunk_prefix}{key}_"
        pattern = re.compile(re.escape(prefix) + r"\d+\Z")
        return sorted(k for k in existing if pattern.match(k))

    def assemble(self, key: str, metadata: RecordMetadata, pieces: List[str]) -> str:
        """
        Rebuild the canonical text from fetched payload records.

        Raises:
            DataCorruptedError: On a missing chunk, failed decompression or
                checksum mismatch
        """
        if not pieces or not all(pieces):
            raise DataCorruptedError(key)
        try:
            text = decompress_text("".join(pieces))
        except CompressionError as exc:
            raise DataCorruptedError(key) from exc
        if not verify(text, metadata.checksum):
            raise DataCorruptedError(key)
        return text

    def managed_keys(self, existing: Iterable[str]) -> List[str]:
        """Logical keys that have a metadata record."""
        prefix = self.config.meta_prefix
        return sorted(k[len(prefix):] for k in existing if k.startswith(prefix))

    def logical_keys(self, existing: Iterable[str]) -> List[str]:
        """Caller-visible keys: bare records plus managed (possibly chunked) keys."""
        existing = set(existing)
        bare = {k for k in existing if not self.layout.is_reserved(k)}
        return sorted(bare.union(self.managed_keys(existing)))

    def unmanaged_keys(self, existing: Iterable[str]) -> List[str]:
        existing = set(existing)
        managed = set(self.managed_keys(existing))
        return sorted(
            k for k in existing if not self.layout.is_reserved(k) and k not in managed
        )
