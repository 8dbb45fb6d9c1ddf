"""Shared test helpers."""

import random
import string

from jarstore.storage import MemoryStore


def random_text(length: int, seed: int = 0) -> str:
    """Poorly compressible text of exactly `length` characters."""
    rng = random.Random(seed)
    alphabet = string.ascii_letters + string.digits
    return "".join(rng.choice(alphabet) for _ in range(length))


def snapshot(store: MemoryStore) -> dict:
    """Every physical record of a store."""
    return {k: store.get(k) for k in store.list_keys()}
