"""
Async usage example for jarstore.
"""

import asyncio

from jarstore import AsyncJar, MemoryStore, QuotaLedger, ThreadedStore


async def main():
    ledger = QuotaLedger()
    store = ThreadedStore(MemoryStore())
    jar = AsyncJar("worker", store, ledger)

    await jar.store("payload", {"rows": [[i, i * i] for i in range(50000)]})
    value = await jar.retrieve("payload")
    print(f"Read back {len(value['rows'])} rows")
    print(jar.quota_stats())

    await jar.delete("payload")
    store.close()


if __name__ == "__main__":
    asyncio.run(main())
