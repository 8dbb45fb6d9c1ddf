"""
Basic usage example for jarstore.
"""

from jarstore import Config, Jar, MemoryStore, QuotaLedger

config = Config()
ledger = QuotaLedger(config.quota_bytes)

# One jar per owner, all drawing on the same ledger
alice = Jar("alice", MemoryStore(), ledger, config)
bob = Jar("bob", MemoryStore(), ledger, config)

print("Storing values...")
alice.store("settings", {"theme": "dark", "recent": list(range(1000))})
bob.store("notes", "Lorem ipsum dolor sit amet. " * 20000)

print(alice.retrieve("settings")["theme"])
print(len(bob.retrieve("notes")))

# Quota report
report = alice.quota_report()
print(f"\nUsed {report.total_used} of {report.total_available} bytes "
      f"({report.utilization_percent:.2f}%)")
for owner, used in report.owner_breakdown.items():
    print(f"  {owner}: {used} bytes")

# Migrate values written without jarstore
print("\nMigrating legacy data...")
legacy_store = MemoryStore()
legacy_store.put("old_key", '{"written": "directly"}')
legacy = Jar("legacy", legacy_store, ledger, config)
result = legacy.migrate()
print(f"Migrated: {result.migrated}, failed: {result.failed}")
print(legacy.retrieve("old_key"))
