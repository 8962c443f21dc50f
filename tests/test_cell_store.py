"""
Tests for the two-tier CellStateStore: overlay promotion, write-through,
eviction policies, batching, corrupt-store recovery and reload round-trips.
"""

from __future__ import annotations

import json
import logging

import pytest

from bitworld.core.cell_store import CellStateStore
from bitworld.core.cells import CellIndex, CellState
from bitworld.persistence.store import KeyValueStore

KEY = "wob_cellstore_v1"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class CountingKV(KeyValueStore):
    """In-memory KeyValueStore that counts writes."""

    def __init__(self) -> None:
        super().__init__(db_path=None)
        self.writes = 0

    def set_item(self, key: str, value: str) -> None:
        self.writes += 1
        super().set_item(key, value)


def _durable(kv: KeyValueStore) -> dict:
    raw = kv.get_item(KEY)
    return json.loads(raw) if raw else {}


A = CellIndex(0, 0)
B = CellIndex(1, -1)
C = CellIndex(-5, 9)


# ===========================================================================
# get / set / commit
# ===========================================================================


class TestReadsAndWrites:
    def test_miss_everywhere(self):
        store = CellStateStore(KeyValueStore(db_path=None))
        assert store.get(A) is None
        assert A not in store

    def test_set_is_overlay_only(self):
        kv = KeyValueStore(db_path=None)
        store = CellStateStore(kv)
        store.set(A, CellState.with_token(2))
        assert store.get(A) == CellState.with_token(2)
        assert kv.get_item(KEY) is None

    def test_commit_writes_through(self):
        kv = KeyValueStore(db_path=None)
        store = CellStateStore(kv)
        store.commit(A, CellState.with_token(4))
        assert store.get(A) == CellState.with_token(4)
        assert _durable(kv) == {"0,0": {"tokenPresent": True, "tokenValue": 4}}

    def test_commit_merges_without_clobbering(self):
        """Keys written by another store instance survive a commit."""
        kv = KeyValueStore(db_path=None)
        first = CellStateStore(kv)
        second = CellStateStore(kv)
        first.commit(A, CellState.with_token(2))
        second.commit(B, CellState.empty())
        assert set(_durable(kv)) == {"0,0", "1,-1"}

    def test_durable_load_promotes_into_overlay(self):
        kv = KeyValueStore(db_path=None)
        CellStateStore(kv).commit(A, CellState.with_token(8))
        fresh = CellStateStore(kv)
        assert A not in fresh
        assert fresh.get(A) == CellState.with_token(8)
        assert A in fresh
        assert fresh.overlay_size == 1

    def test_overlay_wins_over_durable(self):
        kv = KeyValueStore(db_path=None)
        store = CellStateStore(kv)
        store.commit(A, CellState.with_token(2))
        store.set(A, CellState.empty())
        assert store.get(A) == CellState.empty()


# ===========================================================================
# Eviction
# ===========================================================================


class TestEviction:
    def test_evict_drops_overlay_only(self):
        kv = KeyValueStore(db_path=None)
        store = CellStateStore(kv)
        store.commit(A, CellState.with_token(2))
        store.evict(A)
        assert A not in store
        assert _durable(kv)["0,0"] == {"tokenPresent": True, "tokenValue": 2}
        assert store.get(A) == CellState.with_token(2)

    def test_evict_missing_is_noop(self):
        store = CellStateStore(KeyValueStore(db_path=None))
        store.evict(A)
        store.evict(A, flush=True)

    def test_strict_and_flushing_eviction_are_equivalent(self):
        """When every change is committed, flushing on evict changes nothing."""
        ops = [
            (A, CellState.with_token(2)),
            (B, CellState.with_token(4)),
            (A, CellState.empty()),
            (C, CellState.with_token(16)),
            (B, CellState.with_token(8)),
        ]
        strict_kv = KeyValueStore(db_path=None)
        flush_kv = KeyValueStore(db_path=None)
        strict = CellStateStore(strict_kv)
        flushing = CellStateStore(flush_kv)
        for index, state in ops:
            strict.commit(index, state)
            flushing.commit(index, state)
        for index in (A, B, C):
            strict.evict(index)
            flushing.evict(index, flush=True)

        assert strict_kv.get_item(KEY) == flush_kv.get_item(KEY)
        assert strict.durable_snapshot() == flushing.durable_snapshot()
        assert strict.overlay_size == flushing.overlay_size == 0

    def test_flush_on_evict_persists_uncommitted_overlay(self):
        kv = KeyValueStore(db_path=None)
        store = CellStateStore(kv)
        store.set(A, CellState.with_token(2))
        store.evict(A, flush=True)
        assert _durable(kv) == {"0,0": {"tokenPresent": True, "tokenValue": 2}}


# ===========================================================================
# Bulk operations
# ===========================================================================


class TestBulk:
    def test_flush_all(self):
        kv = KeyValueStore(db_path=None)
        store = CellStateStore(kv)
        store.set(A, CellState.with_token(2))
        store.set(B, CellState.empty())
        store.flush_all()
        assert set(_durable(kv)) == {"0,0", "1,-1"}

    def test_clear_all(self):
        kv = KeyValueStore(db_path=None)
        store = CellStateStore(kv)
        store.commit(A, CellState.with_token(2))
        store.set(B, CellState.empty())
        store.clear_all()
        assert store.overlay_size == 0
        assert kv.get_item(KEY) is None
        assert store.get(A) is None

    def test_batch_single_durable_write(self):
        kv = CountingKV()
        store = CellStateStore(kv)
        with store.batch():
            store.commit(A, CellState.with_token(2))
            store.commit(B, CellState.with_token(4))
            with store.batch():
                store.commit(C, CellState.empty())
            assert kv.writes == 0
        assert kv.writes == 1
        assert set(_durable(kv)) == {"0,0", "1,-1", "-5,9"}

    def test_batch_reads_see_pending_commits(self):
        kv = KeyValueStore(db_path=None)
        store = CellStateStore(kv)
        with store.batch():
            store.commit(A, CellState.with_token(2))
            store.evict(A)
            assert store.get(A) == CellState.with_token(2)

    def test_batch_flushes_on_error(self):
        kv = KeyValueStore(db_path=None)
        store = CellStateStore(kv)
        with pytest.raises(RuntimeError):
            with store.batch():
                store.commit(A, CellState.with_token(2))
                raise RuntimeError("boom")
        assert "0,0" in _durable(kv)

    def test_clear_all_inside_batch(self):
        kv = KeyValueStore(db_path=None)
        store = CellStateStore(kv)
        store.commit(A, CellState.with_token(2))
        with store.batch():
            store.clear_all()
            assert store.get(A) is None
            store.commit(B, CellState.empty())
        assert set(_durable(kv)) == {"1,-1"}


# ===========================================================================
# Corruption
# ===========================================================================


class TestCorruption:
    @pytest.mark.parametrize("raw", ["{not json", "[1, 2, 3]", "17"])
    def test_corrupt_blob_reads_as_empty(self, raw, caplog):
        kv = KeyValueStore(db_path=None)
        kv.set_item(KEY, raw)
        store = CellStateStore(kv)
        with caplog.at_level(logging.WARNING):
            assert store.get(A) is None
        assert any("corrupt" in r.getMessage() for r in caplog.records)

    def test_commit_over_corrupt_blob_recovers(self):
        kv = KeyValueStore(db_path=None)
        kv.set_item(KEY, "{not json")
        store = CellStateStore(kv)
        store.commit(A, CellState.with_token(4))
        assert _durable(kv) == {"0,0": {"tokenPresent": True, "tokenValue": 4}}

    def test_malformed_record_misses(self):
        kv = KeyValueStore(db_path=None)
        kv.set_item(KEY, json.dumps({
            "0,0": {"tokenPresent": True, "tokenValue": 3},
            "1,-1": {"tokenPresent": False},
            "garbage": {"tokenPresent": False},
        }))
        store = CellStateStore(kv)
        assert store.get(A) is None
        assert store.get(B) == CellState.empty()
        assert store.durable_snapshot() == {B: CellState.empty()}


# ===========================================================================
# Reload round-trip
# ===========================================================================


class TestReload:
    def test_commit_survives_process_restart(self, tmp_path):
        """commit(idx, s); reopen database; get(idx) == s."""
        path = str(tmp_path / "cells.db")
        kv = KeyValueStore(path)
        store = CellStateStore(kv)
        states = {
            A: CellState.with_token(2),
            B: CellState.empty(),
            C: CellState.with_token(1024),
        }
        for index, state in states.items():
            store.commit(index, state)
        kv.close()

        kv2 = KeyValueStore(path)
        reloaded = CellStateStore(kv2)
        for index, state in states.items():
            assert reloaded.get(index) == state
        kv2.close()
