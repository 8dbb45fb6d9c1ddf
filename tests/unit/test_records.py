"""Tests for write planning, metadata and read assembly."""

import json

import pytest

from jarstore.core import (
    CompressionError,
    Config,
    DataCorruptedError,
    DataTooLargeError,
    InvalidKeyError,
    QuotaExceededError,
)
from jarstore.core.contracts import Decoded, Raw, RecordMetadata
from jarstore.storage.checksum import fingerprint
from jarstore.storage.compression import decompress_text
from jarstore.storage.quota_ledger import QuotaLedger
from jarstore.storage.records import RecordPlanner, decode_payload, serialize_value

from helpers import random_text


@pytest.fixture
def planner(small_config):
    return RecordPlanner(small_config)


@pytest.fixture
def roomy_ledger(small_config):
    return QuotaLedger(small_config.quota_bytes)


def test_serialize_value():
    assert serialize_value("text") == "text"
    assert serialize_value({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'
    assert serialize_value("ünïcode") == "ünïcode"
    assert serialize_value(["ü"]) == '["ü"]'


def test_decode_payload_variants():
    assert decode_payload('{"a": 1}') == Decoded({"a": 1})
    assert decode_payload("42") == Decoded(42)
    assert decode_payload("plain text") == Raw("plain text")
    assert decode_payload("") == Raw("")


def test_decode_payload_falls_back_on_deep_nesting():
    text = "[" * 100000
    assert decode_payload(text) == Raw(text)


@pytest.mark.parametrize("key", ["", "__jar_", "__jar_meta_x", "__jar_chunk_x_0"])
def test_check_key_rejects_empty_and_reserved(planner, key):
    with pytest.raises(InvalidKeyError):
        planner.check_key(key)


def test_invalid_key_message_names_configured_prefix():
    planner = RecordPlanner(Config(key_prefix="__app_"))

    with pytest.raises(InvalidKeyError) as exc_info:
        planner.check_key("__app_settings")
    assert str(exc_info.value).endswith("start with __app_)")

    planner.check_key("__jar_settings")


def test_single_record_plan(planner, roomy_ledger):
    plan = planner.plan_write("settings", {"theme": "dark"}, roomy_ledger)

    assert not plan.chunked
    assert [k for k, _ in plan.data_records] == ["settings"]
    assert plan.meta_record[0] == "__jar_meta_settings"

    meta = json.loads(plan.meta_record[1])
    assert meta == {
        "compressed": True,
        "checksum": fingerprint('{"theme":"dark"}'),
        "size": len('{"theme":"dark"}'),
    }
    expected = sum(len(k) + len(v) for k, v in plan.data_records + [plan.meta_record])
    assert plan.footprint == expected


def test_chunked_plan(planner, roomy_ledger, small_config):
    data = random_text(6000)
    plan = planner.plan_write("big", data, roomy_ledger)

    assert plan.chunked
    assert plan.metadata.total_chunks == len(plan.data_records) >= 2
    assert [k for k, _ in plan.data_records] == [
        f"__jar_chunk_big_{i}" for i in range(plan.metadata.total_chunks)
    ]
    for key, value in plan.data_records + [plan.meta_record]:
        assert len(key) + len(value) <= small_config.max_record_size

    compressed = "".join(v for _, v in plan.data_records)
    assert decompress_text(compressed) == data
    assert json.loads(plan.meta_record[1])["totalChunks"] == plan.metadata.total_chunks


def test_plan_checks_size_before_compression():
    config = Config(max_value_size=10)
    planner = RecordPlanner(config)

    with pytest.raises(DataTooLargeError) as exc_info:
        planner.plan_write("k", "x" * 11, QuotaLedger(1000))
    assert exc_info.value.actual_size == 11
    assert exc_info.value.max_size == 10

    # Multi-byte text is measured in UTF-8 bytes.
    with pytest.raises(DataTooLargeError):
        planner.plan_write("k", "é" * 6, QuotaLedger(1000))


def test_plan_reports_quota_shortfall(planner):
    ledger = QuotaLedger(500)
    ledger.record("other", "k", 450)

    with pytest.raises(QuotaExceededError) as exc_info:
        planner.plan_write("k", "value", ledger)
    assert exc_info.value.remaining == 50
    assert exc_info.value.needed > 50


def test_plan_charges_record_keys_against_quota():
    # The estimate ignores record keys; a long key still has to fit.
    planner = RecordPlanner(Config(quota_bytes=600))
    ledger = QuotaLedger(600)

    with pytest.raises(QuotaExceededError) as exc_info:
        planner.plan_write("k" * 300, "a", ledger)
    assert exc_info.value.needed > 600
    assert exc_info.value.remaining == 600


def test_unserializable_value(planner, roomy_ledger):
    with pytest.raises(CompressionError):
        planner.plan_write("k", {1, 2, 3}, roomy_ledger)


def test_assemble_detects_problems(planner, roomy_ledger):
    plan = planner.plan_write("big", random_text(6000), roomy_ledger)
    pieces = [v for _, v in plan.data_records]

    assert planner.assemble("big", plan.metadata, pieces) == random_text(6000)

    with pytest.raises(DataCorruptedError):
        planner.assemble("big", plan.metadata, pieces[:-1] + [""])

    with pytest.raises(DataCorruptedError):
        planner.assemble("big", plan.metadata, list(reversed(pieces)))

    bad_checksum = RecordMetadata(
        checksum="00000000" if plan.metadata.checksum != "00000000" else "11111111",
        size=plan.metadata.size,
        chunked=True,
        total_chunks=plan.metadata.total_chunks,
    )
    with pytest.raises(DataCorruptedError):
        planner.assemble("big", bad_checksum, pieces)


def test_parse_metadata(planner):
    meta = planner.parse_metadata("k", '{"compressed":true,"chunked":true,"totalChunks":3,"checksum":"ab","size":9}')
    assert meta.chunked and meta.total_chunks == 3

    for text in ["{oops", "[]", '{"chunked":true,"checksum":"ab"}', '{"size":1}']:
        with pytest.raises(DataCorruptedError):
            planner.parse_metadata("k", text)


def test_metadata_json_round_trip():
    single = RecordMetadata(checksum="abc", size=3)
    assert json.loads(single.to_json()) == {"compressed": True, "checksum": "abc", "size": 3}
    assert RecordMetadata.from_json(single.to_json()) == single

    chunked = RecordMetadata(checksum="abc", size=3, chunked=True, total_chunks=2)
    assert RecordMetadata.from_json(chunked.to_json()) == chunked


def test_key_listing_helpers(planner):
    existing = {
        "plain",
        "single",
        "__jar_meta_single",
        "__jar_meta_big",
        "__jar_chunk_big_0",
        "__jar_chunk_big_1",
    }
    assert planner.logical_keys(existing) == ["big", "plain", "single"]
    assert planner.managed_keys(existing) == ["big", "single"]
    assert planner.unmanaged_keys(existing) == ["plain"]


def test_scan_chunk_keys_is_exact(planner):
    existing = ["__jar_chunk_a_0", "__jar_chunk_a_12", "__jar_chunk_a_1_0", "__jar_chunk_ab_0"]
    assert planner.scan_chunk_keys("a", existing) == ["__jar_chunk_a_0", "__jar_chunk_a_12"]


def test_config_validation():
    with pytest.raises(ValueError):
        Config(chunk_size=0)
    with pytest.raises(ValueError):
        Config(max_record_size=100, chunk_size=200)
    assert Config().meta_prefix == "__jar_meta_"
    assert Config(key_prefix="__x_").chunk_prefix == "__x_chunk_"
