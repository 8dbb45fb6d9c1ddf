import pytest

from jarstore.core import Config
from jarstore.jar import Jar
from jarstore.storage import MemoryStore, QuotaLedger


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def small_config():
    """Tiny records so modest payloads are forced into chunks."""
    return Config(max_record_size=2048, chunk_size=1500, quota_bytes=200 * 1024)


@pytest.fixture
def ledger(config):
    return QuotaLedger(config.quota_bytes)


@pytest.fixture
def store(config):
    return MemoryStore(max_record_size=config.max_record_size)


@pytest.fixture
def jar(store, ledger, config):
    return Jar("owner-1", store, ledger, config)


@pytest.fixture
def small_store(small_config):
    return MemoryStore(max_record_size=small_config.max_record_size)


@pytest.fixture
def small_jar(small_store, small_config):
    return Jar("owner-1", small_store, QuotaLedger(small_config.quota_bytes), small_config)
