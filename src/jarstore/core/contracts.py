"""
Core data structures (dataclasses) for jarstore.

All configuration, metadata and report shapes are defined here as explicit
dataclasses.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class Config:
    """Sizing limits and key layout for a jar and its ledger."""

    # Backing store limits
    max_record_size: int = 100 * 1024  # len(key) + len(value) per physical record
    chunk_size: int = 85 * 1024  # split width for chunked payloads

    # Logical value limits
    max_value_size: int = 5 * 1024 * 1024  # uncompressed UTF-8 bytes
    quota_bytes: int = 5 * 1024 * 1024  # shared across all owners
    metadata_overhead: int = 200  # estimate added before the quota check

    # Layout planning
    max_chunk_index: int = 999  # pessimistic bound used by safe_chunk_size

    # Reserved namespace
    key_prefix: str = "__jar_"

    # Compression
    zstd_level: int = 3

    def __post_init__(self):
        for name in ("max_record_size", "chunk_size", "max_value_size", "quota_bytes"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.chunk_size > self.max_record_size:
            raise ValueError("chunk_size cannot exceed max_record_size")
        if self.metadata_overhead < 0 or self.max_chunk_index < 0:
            raise ValueError("metadata_overhead and max_chunk_index must be >= 0")
        if not self.key_prefix:
            raise ValueError("key_prefix must be non-empty")

    @property
    def meta_prefix(self) -> str:
        return f"{self.key_prefix}meta_"

    @property
    def chunk_prefix(self) -> str:
        return f"{self.key_prefix}chunk_"


@dataclass
class RecordMetadata:
    """
    Metadata record stored at ``<meta_prefix><key>``.

    Its presence is the only signal that a key is managed by jarstore.
    """

    checksum: str
    size: int  # uncompressed UTF-8 bytes
    compressed: bool = True
    chunked: bool = False
    total_chunks: Optional[int] = None

    def to_json(self) -> str:
        """Serialize to the compact on-store representation."""
        payload: Dict[str, Any] = {"compressed": self.compressed}
        if self.chunked:
            payload["chunked"] = True
            payload["totalChunks"] = self.total_chunks
        payload["checksum"] = self.checksum
        payload["size"] = self.size
        return json.dumps(payload, separators=(",", ":"))

    @classmethod
    def from_json(cls, text: str) -> "RecordMetadata":
        """
        Parse a metadata record.

        Raises:
            ValueError: If the record is not a well-formed metadata object
        """
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError("metadata must be a JSON object")

        chunked = bool(payload.get("chunked", False))
        total_chunks = payload.get("totalChunks")
        if chunked and (not isinstance(total_chunks, int) or total_chunks < 0):
            raise ValueError("chunked metadata requires a non-negative totalChunks")
        checksum = payload.get("checksum")
        if not isinstance(checksum, str):
            raise ValueError("metadata checksum must be a string")

        return cls(
            checksum=checksum,
            size=int(payload.get("size", 0)),
            compressed=bool(payload.get("compressed", True)),
            chunked=chunked,
            total_chunks=total_chunks if chunked else None,
        )


@dataclass(frozen=True)
class Decoded:
    """Read result whose text parsed as a structured (JSON) value."""

    value: Any


@dataclass(frozen=True)
class Raw:
    """Read result returned unchanged because the text is not structured data."""

    value: str


ReadResult = Union[Decoded, Raw]


@dataclass
class QuotaStats:
    """Headline numbers for the shared quota."""

    used: int
    available: int
    remaining: int
    utilization_percent: float


@dataclass
class QuotaReport:
    """
    Detached snapshot of the ledger.

    The breakdown dicts are copies; mutating them never touches live state.
    """

    total_used: int
    total_available: int
    remaining_bytes: int
    utilization_percent: float
    owner_breakdown: Dict[str, int] = field(default_factory=dict)  # owner -> bytes
    key_breakdown: Dict[str, Dict[str, int]] = field(default_factory=dict)  # owner -> key -> bytes


@dataclass
class MigrationResult:
    """Per-key outcome of a migrate batch."""

    migrated: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


@dataclass
class OptimizationResult:
    """Outcome of an optimize batch."""

    bytes_saved: int = 0
    keys_optimized: int = 0


@dataclass
class UsageDiscrepancy:
    """Ledger entry that disagrees with the physical footprint in the store."""

    owner_id: str
    key: str
    tracked_size: int
    actual_size: int


@dataclass
class ValidationResult:
    """Result of auditing the ledger against physical records."""

    is_valid: bool
    discrepancies: List[UsageDiscrepancy] = field(default_factory=list)
    total_discrepancy: int = 0
