"""Tests for the prefixed TTL cache."""

from __future__ import annotations

import json
from unittest.mock import patch

from truck_assistant.cache.local_cache import DEFAULT_PREFIX, LocalCache

_TIME = "truck_assistant.cache.local_cache.time.time"


def test_set_and_get_round_trip() -> None:
    cache = LocalCache()
    cache.set("makes", ["Volvo", "Mack"])
    assert cache.get("makes") == ["Volvo", "Mack"]
    assert cache.get("missing") is None


def test_returned_data_is_a_copy() -> None:
    cache = LocalCache()
    cache.set("rows", [{"id": 1}])
    rows = cache.get("rows")
    rows.append({"id": 2})
    assert cache.get("rows") == [{"id": 1}]


def test_entry_expires_after_ttl() -> None:
    cache = LocalCache()
    with patch(_TIME, return_value=1_000.0):
        cache.set("geo", {"lat": 1}, ttl_minutes=1)
    with patch(_TIME, return_value=1_059.0):
        assert cache.get("geo") == {"lat": 1}
    with patch(_TIME, return_value=1_061.0):
        assert cache.get("geo") is None
    assert "geo" not in cache.keys()


def test_entry_without_ttl_never_expires() -> None:
    cache = LocalCache()
    with patch(_TIME, return_value=1_000.0):
        cache.set("forever", 1)
    with patch(_TIME, return_value=10_000_000.0):
        assert cache.get("forever") == 1


def test_sweep_removes_only_expired() -> None:
    cache = LocalCache()
    with patch(_TIME, return_value=0.0):
        cache.set("short", 1, ttl_minutes=1)
        cache.set("long", 2, ttl_minutes=60)
    with patch(_TIME, return_value=120.0):
        assert cache.sweep_expired() == 1
    assert cache.keys() == ["long"]


def test_oldest_entry_evicted_at_capacity() -> None:
    cache = LocalCache(max_size=2)
    with patch(_TIME, return_value=1.0):
        cache.set("a", 1)
    with patch(_TIME, return_value=2.0):
        cache.set("b", 2)
    with patch(_TIME, return_value=3.0):
        cache.set("c", 3)
    assert sorted(cache.keys()) == ["b", "c"]


def test_overwrite_at_capacity_does_not_evict() -> None:
    cache = LocalCache(max_size=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    assert cache.size() == 2
    assert cache.get("a") == 10


def test_clear_only_touches_own_prefix() -> None:
    cache = LocalCache(prefix="one-")
    cache.set("x", 1)
    cache._store["other-y"] = {"data": 2, "timestamp": 0, "expires": None}
    cache.clear()
    assert cache.keys() == []
    assert "other-y" in cache._store


def test_export_and_import() -> None:
    source = LocalCache()
    source.set("a", {"n": 1})
    source.set("b", [1, 2])
    exported = source.export_data()
    assert exported == {"a": {"n": 1}, "b": [1, 2]}

    target = LocalCache()
    assert target.import_data(exported) == 2
    assert target.get("b") == [1, 2]


def test_persists_to_file_with_prefix(tmp_path) -> None:
    path = tmp_path / "store.json"
    cache = LocalCache(path)
    cache.set("trucks", [{"id": "t1"}])

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert DEFAULT_PREFIX + "trucks" in on_disk
    assert on_disk[DEFAULT_PREFIX + "trucks"]["expires"] is None

    reloaded = LocalCache(path)
    reloaded.load()
    assert reloaded.get("trucks") == [{"id": "t1"}]


def test_storage_info_reports_entries(tmp_path) -> None:
    cache = LocalCache(tmp_path / "c.json")
    cache.set("k", "v")
    info = cache.storage_info()
    assert info["entries"] == 1
    assert info["usedBytes"] > 0
    assert info["path"].endswith("c.json")
