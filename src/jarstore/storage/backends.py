"""
Backing key-value stores.

A backing store holds text records of bounded size and knows nothing about
chunking, compression or quotas. Writing "" deletes a record and reading a
missing record returns "".
"""

import asyncio
import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Optional, Protocol, Set

from jarstore.core.errors import EntryTooLargeError


class KeyValueStore(Protocol):
    """Synchronous backing store port."""

    def put(self, key: str, value: str) -> None:
        """
        Store `value` under `key`, replacing any previous value.

        An empty value deletes the record. Implementations enforce their own
        per-record size limit.
        """

    def get(self, key: str) -> str:
        """Return the value for `key`, or "" if absent."""

    def list_keys(self) -> Set[str]:
        """Return every key currently present, internal ones included."""


class AsyncKeyValueStore(Protocol):
    """Asynchronous twin of KeyValueStore with identical semantics."""

    async def put(self, key: str, value: str) -> None:
        ...

    async def get(self, key: str) -> str:
        ...

    async def list_keys(self) -> Set[str]:
        ...


class MemoryStore:
    """
    In-process dict store.

    Enforces len(key) + len(value) <= max_record_size on every put.
    """

    def __init__(self, max_record_size: int = 100 * 1024):
        self.max_record_size = max_record_size
        self._records: Dict[str, str] = {}

    def put(self, key: str, value: str) -> None:
        if value == "":
            self._records.pop(key, None)
            return
        entry_size = len(key) + len(value)
        if entry_size > self.max_record_size:
            raise EntryTooLargeError(entry_size, self.max_record_size)
        self._records[key] = value

    def get(self, key: str) -> str:
        return self._records.get(key, "")

    def list_keys(self) -> Set[str]:
        return set(self._records)

    def physical_size(self) -> int:
        """Total len(key) + len(value) across all records."""
        return sum(len(k) + len(v) for k, v in self._records.items())


class JsonFileStore(MemoryStore):
    """
    MemoryStore persisted to a single JSON file.

    The whole file is rewritten after every put.
    """

    def __init__(self, path: Path, max_record_size: int = 100 * 1024):
        super().__init__(max_record_size=max_record_size)
        self.path = Path(path)
        if self.path.exists():
            self._records = self._load()

    def put(self, key: str, value: str) -> None:
        super().put(key, value)
        self._save()

    def _load(self) -> Dict[str, str]:
        with open(self.path, "r", encoding="utf-8") as f:
            records = json.load(f)
        if not isinstance(records, dict):
            raise ValueError(f"{self.path} does not contain a record object")
        return {str(k): str(v) for k, v in records.items()}

    def _save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._records, f, indent=2, sort_keys=True)
        tmp_path.replace(self.path)


class ThreadedStore:
    """
    Expose a synchronous store through the async port.

    Calls run on a single-worker pool so record operations keep their order.
    """

    def __init__(self, store: KeyValueStore, executor: Optional[ThreadPoolExecutor] = None):
        self._store = store
        self._executor = executor or ThreadPoolExecutor(max_workers=1)

    async def put(self, key: str, value: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self._store.put, key, value)

    async def get(self, key: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._store.get, key)

    async def list_keys(self) -> Set[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._store.list_keys)

    def close(self):
        self._executor.shutdown(wait=True)
