"""
Storage orchestrator.

A jar stores arbitrarily large values for one owner on a size-limited
key-value store, compressing and chunking as needed and charging every
physical byte to a shared QuotaLedger.

Jar and AsyncJar run the same RecordPlanner logic and produce identical
records and ledger state; AsyncJar only differs in awaiting its store and
fanning out independent chunk writes, reads and deletes.
"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence

from jarstore.core.contracts import (
    Config,
    MigrationResult,
    OptimizationResult,
    QuotaReport,
    QuotaStats,
    Raw,
    ReadResult,
    UsageDiscrepancy,
    ValidationResult,
)
from jarstore.core.errors import DataCorruptedError
from jarstore.storage.backends import AsyncKeyValueStore, KeyValueStore
from jarstore.storage.quota_ledger import QuotaLedger
from jarstore.storage.records import RecordPlanner, decode_payload, record_footprint


class _JarBase:
    """State and store-independent helpers shared by both jar flavours."""

    def __init__(self, owner_id: str, ledger: QuotaLedger, config: Optional[Config] = None):
        if not owner_id:
            raise ValueError("owner_id must be non-empty")
        self.owner_id = owner_id
        self.ledger = ledger
        self.config = config or Config()
        self.planner = RecordPlanner(self.config)
        self._logger = logging.getLogger("jarstore.jar")

    def quota_report(self) -> QuotaReport:
        return self.ledger.report()

    def quota_stats(self) -> QuotaStats:
        return self.ledger.stats()

    def _meta_key(self, key: str) -> str:
        return self.planner.layout.meta_key(key)

    def _collect_audit(self, footprints: dict) -> ValidationResult:
        tracked = self.ledger.report().key_breakdown.get(self.owner_id, {})
        discrepancies = []
        for key in sorted(set(tracked) | set(footprints)):
            tracked_size = tracked.get(key, 0)
            actual_size = footprints.get(key, 0)
            if tracked_size != actual_size:
                discrepancies.append(
                    UsageDiscrepancy(
                        owner_id=self.owner_id,
                        key=key,
                        tracked_size=tracked_size,
                        actual_size=actual_size,
                    )
                )
        return ValidationResult(
            is_valid=not discrepancies,
            discrepancies=discrepancies,
            total_discrepancy=sum(abs(d.tracked_size - d.actual_size) for d in discrepancies),
        )

    def _apply_reconcile(self, footprints: dict) -> int:
        for key in list(self.ledger.report().key_breakdown.get(self.owner_id, {})):
            if key not in footprints:
                self.ledger.remove(self.owner_id, key)
        for key, size in footprints.items():
            self.ledger.record(self.owner_id, key, size)
        self._logger.info("Reconciled %d keys for owner %s", len(footprints), self.owner_id)
        return len(footprints)

    def _physical_keys(self, key: str, meta_text: str, existing) -> List[str]:
        return sorted(self.planner.previous_keys(key, meta_text, existing))

    def _migration_targets(self, keys: Optional[Sequence[str]], existing) -> List[str]:
        return list(keys) if keys is not None else self.planner.unmanaged_keys(existing)

    def _optimization_targets(self, keys: Optional[Sequence[str]], existing) -> List[str]:
        return list(keys) if keys is not None else self.planner.managed_keys(existing)

    def _should_migrate(self, result: MigrationResult, key: str, meta_text: str, value: str) -> bool:
        """Skip keys that are already managed or hold nothing."""
        if meta_text or not value:
            result.skipped.append(key)
            return False
        return True

    def _migration_failed(self, result: MigrationResult, key: str, exc: Exception):
        self._logger.warning("Migration of %r failed: %s", key, exc)
        result.failed.append(key)

    def _finish_migration(self, result: MigrationResult) -> MigrationResult:
        self._logger.info(
            "Migrated %d, skipped %d, failed %d",
            len(result.migrated),
            len(result.skipped),
            len(result.failed),
        )
        return result

    def _tally_optimization(self, result: OptimizationResult, key: str, old_usage: int):
        new_usage = self.ledger.usage(self.owner_id, key)
        if new_usage < old_usage:
            result.bytes_saved += old_usage - new_usage
            result.keys_optimized += 1

    def _finish_optimization(self, result: OptimizationResult) -> OptimizationResult:
        self._logger.info(
            "Optimized %d keys, saved %d bytes", result.keys_optimized, result.bytes_saved
        )
        return result


class Jar(_JarBase):
    """
    Synchronous jar over a KeyValueStore.

    Args:
        owner_id: Identity charged for this jar's usage
        store: Backing store for this owner's records
        ledger: Quota ledger shared with every other jar on the same quota
        config: Sizing and layout limits (defaults to Config())
    """

    def __init__(
        self,
        owner_id: str,
        store: KeyValueStore,
        ledger: QuotaLedger,
        config: Optional[Config] = None,
    ):
        super().__init__(owner_id, ledger, config)
        self._backend = store

    def store(self, key: str, value: Any):
        """
        Store `value` under `key`, replacing any previous value.

        Raises:
            InvalidKeyError, DataTooLargeError, CompressionError,
            QuotaExceededError, EntryTooLargeError
        """
        plan = self.planner.plan_write(key, value, self.ledger)
        previous_meta = self._backend.get(plan.meta_record[0])

        # From here until ledger.record the ledger under-reports this key.
        self.ledger.remove(self.owner_id, key)

        for record_key, record_value in plan.data_records:
            self._backend.put(record_key, record_value)
        self._backend.put(*plan.meta_record)

        for stale_key in self.planner.stale_keys(plan, previous_meta):
            self._backend.put(stale_key, "")

        self.ledger.record(self.owner_id, key, plan.footprint)
        self._logger.debug(
            "Stored %r as %d record(s), chunked=%s, footprint=%d",
            key,
            len(plan.data_records),
            plan.chunked,
            plan.footprint,
        )

    def read(self, key: str) -> ReadResult:
        """
        Read `key` as Decoded(value) or Raw(text).

        Unmanaged keys come back as Raw with the physical value unchanged
        ("" if absent).

        Raises:
            DataCorruptedError: If a managed key cannot be read back intact
        """
        text = self._read_text(key)
        if text is None:
            return Raw(self._backend.get(key))
        return decode_payload(text)

    def retrieve(self, key: str) -> Any:
        """Return the stored value (see read)."""
        return self.read(key).value

    def _read_text(self, key: str) -> Optional[str]:
        meta_text = self._backend.get(self._meta_key(key))
        if not meta_text:
            return None
        try:
            metadata = self.planner.parse_metadata(key, meta_text)
            pieces = [self._backend.get(k) for k in self.planner.data_keys(key, metadata)]
            return self.planner.assemble(key, metadata, pieces)
        except DataCorruptedError:
            raise
        except Exception as exc:
            raise DataCorruptedError(key) from exc

    def list_keys(self) -> List[str]:
        """Logical keys, excluding every internal record."""
        return self.planner.logical_keys(self._backend.list_keys())

    def delete(self, key: str):
        """
        Erase every record of `key` and its ledger entry.

        Deleting an absent key is a no-op.
        """
        meta_text = self._backend.get(self._meta_key(key))
        if meta_text:
            existing = self._backend.list_keys()
            for physical_key in sorted(self.planner.previous_keys(key, meta_text, existing)):
                if physical_key != key:
                    self._erase(physical_key)
        self._backend.put(key, "")
        self.ledger.remove(self.owner_id, key)

    def _erase(self, physical_key: str):
        try:
            self._backend.put(physical_key, "")
        except Exception as exc:
            self._logger.warning("Could not erase %r: %s", physical_key, exc)

    def cleanup(self):
        """Delete every key of this owner and drop its ledger rows."""
        for key in self.list_keys():
            self.delete(key)
        self.ledger.clear_owner(self.owner_id)

    def migrate(self, keys: Optional[Sequence[str]] = None) -> MigrationResult:
        """
        Rewrite bare values through the write path.

        Args:
            keys: Keys to migrate (default: every unmanaged key present)

        Returns:
            MigrationResult with per-key outcomes
        """
        result = MigrationResult()
        for key in self._migration_targets(keys, self._backend.list_keys()):
            try:
                value = self._backend.get(key)
                if self._should_migrate(result, key, self._backend.get(self._meta_key(key)), value):
                    self.store(key, value)
                    result.migrated.append(key)
            except Exception as exc:
                self._migration_failed(result, key, exc)
        return self._finish_migration(result)

    def optimize(self, keys: Optional[Sequence[str]] = None) -> OptimizationResult:
        """
        Re-write managed keys under the current write policy.

        Args:
            keys: Keys to consider (default: every managed key)

        Returns:
            OptimizationResult with bytes saved and keys that shrank
        """
        result = OptimizationResult()
        for key in self._optimization_targets(keys, self._backend.list_keys()):
            try:
                text = self._read_text(key)
                if text is None:
                    continue
                old_usage = self.ledger.usage(self.owner_id, key)
                self.store(key, text)
                self._tally_optimization(result, key, old_usage)
            except Exception as exc:
                self._logger.warning("Optimization of %r skipped: %s", key, exc)
        return self._finish_optimization(result)

    def audit(self) -> ValidationResult:
        """Compare ledger entries with the physical footprint of each managed key."""
        return self._collect_audit(self._physical_footprints())

    def reconcile(self) -> int:
        """
        Overwrite this owner's ledger rows with physical footprints.

        Returns:
            Number of managed keys recorded
        """
        return self._apply_reconcile(self._physical_footprints())

    def _physical_footprints(self) -> dict:
        existing = self._backend.list_keys()
        footprints = {}
        for key in self.planner.managed_keys(existing):
            physical_keys = self._physical_keys(key, self._backend.get(self._meta_key(key)), existing)
            footprints[key] = record_footprint((k, self._backend.get(k)) for k in physical_keys)
        return footprints


class AsyncJar(_JarBase):
    """
    Coroutine twin of Jar over an AsyncKeyValueStore.

    Chunk records are written, read and erased concurrently; the metadata
    record is only written once every chunk write has completed.
    """

    def __init__(
        self,
        owner_id: str,
        store: AsyncKeyValueStore,
        ledger: QuotaLedger,
        config: Optional[Config] = None,
    ):
        super().__init__(owner_id, ledger, config)
        self._backend = store

    async def store(self, key: str, value: Any):
        """See Jar.store."""
        plan = self.planner.plan_write(key, value, self.ledger)
        previous_meta = await self._backend.get(plan.meta_record[0])

        self.ledger.remove(self.owner_id, key)

        await asyncio.gather(*(self._backend.put(k, v) for k, v in plan.data_records))
        await self._backend.put(*plan.meta_record)

        stale_keys = self.planner.stale_keys(plan, previous_meta)
        await asyncio.gather(*(self._backend.put(k, "") for k in stale_keys))

        self.ledger.record(self.owner_id, key, plan.footprint)
        self._logger.debug(
            "Stored %r as %d record(s), chunked=%s, footprint=%d",
            key,
            len(plan.data_records),
            plan.chunked,
            plan.footprint,
        )

    async def read(self, key: str) -> ReadResult:
        """See Jar.read."""
        text = await self._read_text(key)
        if text is None:
            return Raw(await self._backend.get(key))
        return decode_payload(text)

    async def retrieve(self, key: str) -> Any:
        return (await self.read(key)).value

    async def _read_text(self, key: str) -> Optional[str]:
        meta_text = await self._backend.get(self._meta_key(key))
        if not meta_text:
            return None
        try:
            metadata = self.planner.parse_metadata(key, meta_text)
            pieces = await asyncio.gather(
                *(self._backend.get(k) for k in self.planner.data_keys(key, metadata))
            )
            return self.planner.assemble(key, metadata, list(pieces))
        except DataCorruptedError:
            raise
        except Exception as exc:
            raise DataCorruptedError(key) from exc

    async def list_keys(self) -> List[str]:
        return self.planner.logical_keys(await self._backend.list_keys())

    async def delete(self, key: str):
        """See Jar.delete."""
        meta_text = await self._backend.get(self._meta_key(key))
        if meta_text:
            existing = await self._backend.list_keys()
            physical_keys = self.planner.previous_keys(key, meta_text, existing)
            await asyncio.gather(
                *(self._erase(k) for k in sorted(physical_keys) if k != key)
            )
        await self._backend.put(key, "")
        self.ledger.remove(self.owner_id, key)

    async def _erase(self, physical_key: str):
        try:
            await self._backend.put(physical_key, "")
        except Exception as exc:
            self._logger.warning("Could not erase %r: %s", physical_key, exc)

    async def cleanup(self):
        for key in await self.list_keys():
            await self.delete(key)
        self.ledger.clear_owner(self.owner_id)

    async def migrate(self, keys: Optional[Sequence[str]] = None) -> MigrationResult:
        """See Jar.migrate. Keys are migrated one at a time."""
        result = MigrationResult()
        for key in self._migration_targets(keys, await self._backend.list_keys()):
            try:
                value = await self._backend.get(key)
                meta_text = await self._backend.get(self._meta_key(key))
                if self._should_migrate(result, key, meta_text, value):
                    await self.store(key, value)
                    result.migrated.append(key)
            except Exception as exc:
                self._migration_failed(result, key, exc)
        return self._finish_migration(result)

    async def optimize(self, keys: Optional[Sequence[str]] = None) -> OptimizationResult:
        """See Jar.optimize."""
        result = OptimizationResult()
        for key in self._optimization_targets(keys, await self._backend.list_keys()):
            try:
                text = await self._read_text(key)
                if text is None:
                    continue
                old_usage = self.ledger.usage(self.owner_id, key)
                await self.store(key, text)
                self._tally_optimization(result, key, old_usage)
            except Exception as exc:
                self._logger.warning("Optimization of %r skipped: %s", key, exc)
        return self._finish_optimization(result)

    async def audit(self) -> ValidationResult:
        return self._collect_audit(await self._physical_footprints())

    async def reconcile(self) -> int:
        return self._apply_reconcile(await self._physical_footprints())

    async def _physical_footprints(self) -> dict:
        existing = await self._backend.list_keys()
        footprints = {}
        for key in self.planner.managed_keys(existing):
            meta_text = await self._backend.get(self._meta_key(key))
            physical_keys = self._physical_keys(key, meta_text, existing)
            values = await asyncio.gather(*(self._backend.get(k) for k in physical_keys))
            footprints[key] = record_footprint(zip(physical_keys, values))
        return footprints
