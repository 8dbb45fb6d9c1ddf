"""
Global quota ledger shared by every jar in the process.

Tracks owner -> key -> bytes against one fixed cap. The ledger is the
authority on remaining capacity; physical contents are only consulted by
audit and reconcile.
"""

import logging
from typing import Dict, Optional

from jarstore.core.contracts import QuotaReport, QuotaStats


class QuotaLedger:
    """
    In-memory usage table with a fixed global cap.

    Construct one per process (or per test) and hand it to every jar that
    draws on the same quota.
    """

    def __init__(self, quota_bytes: int = 5 * 1024 * 1024):
        if quota_bytes <= 0:
            raise ValueError("quota_bytes must be positive")
        self.quota_bytes = quota_bytes
        self._usage: Dict[str, Dict[str, int]] = {}  # owner -> key -> bytes
        self._logger = logging.getLogger("jarstore.storage.quota_ledger")

    def current_usage(self) -> int:
        return sum(sum(keys.values()) for keys in self._usage.values())

    def remaining(self) -> int:
        return self.quota_bytes - self.current_usage()

    def can_afford(self, size_bytes: int) -> bool:
        """Predicate only; nothing is reserved."""
        return self.current_usage() + size_bytes <= self.quota_bytes

    def record(self, owner_id: str, key: str, size_bytes: int):
        """
        Set the footprint of (owner_id, key).

        Overwrites any existing entry rather than adding to it.
        """
        self._usage.setdefault(owner_id, {})[key] = size_bytes

    def remove(self, owner_id: str, key: str):
        """Drop (owner_id, key); the owner row goes too once empty."""
        owner_usage = self._usage.get(owner_id)
        if owner_usage is None:
            return
        owner_usage.pop(key, None)
        if not owner_usage:
            del self._usage[owner_id]

    def usage(self, owner_id: str, key: Optional[str] = None) -> int:
        """
        Bytes tracked for an owner, or for one of its keys.

        Returns:
            0 when nothing is tracked
        """
        owner_usage = self._usage.get(owner_id)
        if owner_usage is None:
            return 0
        if key is None:
            return sum(owner_usage.values())
        return owner_usage.get(key, 0)

    def clear_owner(self, owner_id: str):
        """Forget every entry of one owner."""
        self._usage.pop(owner_id, None)

    def stats(self) -> QuotaStats:
        used = self.current_usage()
        return QuotaStats(
            used=used,
            available=self.quota_bytes,
            remaining=self.quota_bytes - used,
            utilization_percent=used / self.quota_bytes * 100,
        )

    def report(self) -> QuotaReport:
        """Deep snapshot of the ledger with per-owner and per-key breakdowns."""
        owner_breakdown: Dict[str, int] = {}
        key_breakdown: Dict[str, Dict[str, int]] = {}

        for owner_id, owner_usage in self._usage.items():
            key_breakdown[owner_id] = dict(owner_usage)
            owner_breakdown[owner_id] = sum(owner_usage.values())

        used = sum(owner_breakdown.values())
        return QuotaReport(
            total_used=used,
            total_available=self.quota_bytes,
            remaining_bytes=self.quota_bytes - used,
            utilization_percent=used / self.quota_bytes * 100,
            owner_breakdown=owner_breakdown,
            key_breakdown=key_breakdown,
        )

    def reset(self):
        """Clear everything. Administrative and test use only."""
        self._logger.debug("Resetting ledger with %d owners", len(self._usage))
        self._usage.clear()
