"""
CLI tests against a JSON file store.
"""

import json

from click.testing import CliRunner

from jarstore.cli.main import cli

from helpers import random_text


def invoke(store_path, *args):
    runner = CliRunner()
    return runner.invoke(cli, ["--store", str(store_path), *args])


def test_put_get_keys_delete(tmp_path):
    store_path = tmp_path / "records.json"

    result = invoke(store_path, "put", "greeting", "hello")
    assert result.exit_code == 0, result.output
    assert "Stored greeting" in result.output

    result = invoke(store_path, "put", "config", '{"debug": true}', "--json")
    assert result.exit_code == 0, result.output

    assert invoke(store_path, "get", "greeting").output.strip() == "hello"
    assert json.loads(invoke(store_path, "get", "config").output) == {"debug": True}
    assert invoke(store_path, "keys").output.split() == ["config", "greeting"]

    result = invoke(store_path, "delete", "greeting")
    assert result.exit_code == 0
    assert invoke(store_path, "keys").output.split() == ["config"]


def test_records_persist_in_json_file(tmp_path):
    store_path = tmp_path / "records.json"
    invoke(store_path, "put", "k", "v")

    records = json.loads(store_path.read_text())
    assert set(records) == {"k", "__jar_meta_k"}


def test_stats_reflect_existing_records(tmp_path):
    store_path = tmp_path / "records.json"
    invoke(store_path, "put", "k", random_text(2000))

    result = invoke(store_path, "stats")
    used = int(result.output.splitlines()[0].split()[1])
    assert used == sum(len(k) + len(v) for k, v in json.loads(store_path.read_text()).items())

    report = json.loads(invoke(store_path, "report").output)
    assert report["total_used"] == used
    assert "default" in report["owner_breakdown"]


def test_invalid_key_exits_with_error(tmp_path):
    result = invoke(tmp_path / "records.json", "put", "__jar_bad", "v")
    assert result.exit_code == 1
    assert "Invalid key" in result.output


def test_quota_option(tmp_path):
    result = invoke(tmp_path / "records.json", "--quota", "100", "put", "k", random_text(1000))
    assert result.exit_code == 1
    assert "remaining" in result.output


def test_migrate_optimize_cleanup(tmp_path):
    store_path = tmp_path / "records.json"
    store_path.write_text(json.dumps({"legacy": "raw value"}))

    result = invoke(store_path, "migrate")
    assert result.exit_code == 0
    assert "Migrated: legacy" in result.output
    assert invoke(store_path, "get", "legacy").output.strip() == "raw value"

    result = invoke(store_path, "optimize")
    assert "Keys optimized: 0" in result.output

    result = invoke(store_path, "cleanup")
    assert "Removed 1 keys" in result.output
    assert json.loads(store_path.read_text()) == {}
