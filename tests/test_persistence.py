"""
Tests for the durable key/value store, blob helpers, and points store.

Covers in-memory and SQLite operation, survival across reopen
("restart"), graceful fallback when the database cannot be opened, and
corrupt-record recovery.
"""

from __future__ import annotations

import logging

import pytest

from bitworld.core.errors import StoreCorruptError
from bitworld.persistence import (
    KeyValueStore,
    PointsStore,
    decode_mapping_blob,
    encode_blob,
)


# =====================================================================
# Blob helpers
# =====================================================================

class TestBlobHelpers:
    def test_absent_is_empty(self):
        assert decode_mapping_blob(None) == {}
        assert decode_mapping_blob("") == {}

    def test_json_null_is_empty(self):
        assert decode_mapping_blob("null") == {}

    def test_roundtrip(self):
        data = {"0,0": {"tokenPresent": False}, "1,2": {"tokenPresent": True, "tokenValue": 4}}
        assert decode_mapping_blob(encode_blob(data)) == data

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", "42", '"text"'])
    def test_corrupt(self, raw):
        with pytest.raises(StoreCorruptError):
            decode_mapping_blob(raw)


# =====================================================================
# KeyValueStore
# =====================================================================

class TestKeyValueStoreInMemory:
    def test_get_missing(self):
        kv = KeyValueStore(db_path=None)
        assert kv.get_item("nope") is None
        assert not kv.available

    def test_set_get_remove(self):
        kv = KeyValueStore(db_path=None)
        kv.set_item("a", "1")
        assert kv.get_item("a") == "1"
        kv.set_item("a", "2")
        assert kv.get_item("a") == "2"
        kv.remove_item("a")
        assert kv.get_item("a") is None

    def test_remove_missing_is_noop(self):
        kv = KeyValueStore(db_path=None)
        kv.remove_item("ghost")

    def test_keys_sorted(self):
        kv = KeyValueStore(db_path=None)
        kv.set_item("b", "x")
        kv.set_item("a", "y")
        assert kv.keys() == ["a", "b"]


class TestKeyValueStoreSQLite:
    def test_available(self, tmp_path):
        kv = KeyValueStore(str(tmp_path / "kv.db"))
        assert kv.available
        kv.close()
        assert not kv.available

    def test_survives_reopen(self, tmp_path):
        """Values written before close are readable from a new instance."""
        path = str(tmp_path / "kv.db")
        kv = KeyValueStore(path)
        kv.set_item("wob_cellstore_v1", '{"0,0":{"tokenPresent":false}}')
        kv.close()

        kv2 = KeyValueStore(path)
        assert kv2.get_item("wob_cellstore_v1") == '{"0,0":{"tokenPresent":false}}'
        assert kv2.keys() == ["wob_cellstore_v1"]
        kv2.close()

    def test_upsert(self, tmp_path):
        kv = KeyValueStore(str(tmp_path / "kv.db"))
        kv.set_item("k", "old")
        kv.set_item("k", "new")
        assert kv.get_item("k") == "new"
        kv.remove_item("k")
        assert kv.get_item("k") is None
        kv.close()

    def test_unopenable_path_falls_back_to_memory(self, tmp_path, caplog):
        """A bad database path degrades to in-memory, never raises."""
        bad = str(tmp_path / "missing_dir" / "kv.db")
        with caplog.at_level(logging.WARNING):
            kv = KeyValueStore(bad)
        assert not kv.available
        assert any("falling back" in r.getMessage() for r in caplog.records)
        kv.set_item("k", "v")
        assert kv.get_item("k") == "v"


# =====================================================================
# PointsStore
# =====================================================================

class TestPointsStore:
    def test_default_zero(self):
        assert PointsStore(KeyValueStore(db_path=None)).value == 0

    def test_add_persists(self):
        kv = KeyValueStore(db_path=None)
        points = PointsStore(kv)
        assert points.add(4) == 4
        assert points.add(8) == 12
        assert kv.get_item("wob_points_v1") == "12"
        assert PointsStore(kv).value == 12

    def test_add_zero_is_noop(self):
        kv = KeyValueStore(db_path=None)
        PointsStore(kv).add(0)
        assert kv.get_item("wob_points_v1") is None

    def test_negative_rejected(self):
        points = PointsStore(KeyValueStore(db_path=None))
        with pytest.raises(ValueError):
            points.add(-2)

    def test_clear(self):
        kv = KeyValueStore(db_path=None)
        points = PointsStore(kv)
        points.add(16)
        points.clear()
        assert points.value == 0
        assert kv.get_item("wob_points_v1") is None

    @pytest.mark.parametrize("raw", ["abc", "-5", "1.5"])
    def test_corrupt_record_reads_as_zero(self, raw, caplog):
        kv = KeyValueStore(db_path=None)
        kv.set_item("wob_points_v1", raw)
        with caplog.at_level(logging.WARNING):
            points = PointsStore(kv)
        assert points.value == 0
        assert any("corrupt" in r.getMessage() for r in caplog.records)

    def test_survives_reopen(self, tmp_path):
        path = str(tmp_path / "points.db")
        kv = KeyValueStore(path)
        PointsStore(kv).add(32)
        kv.close()
        kv2 = KeyValueStore(path)
        assert PointsStore(kv2).value == 32
        kv2.close()
