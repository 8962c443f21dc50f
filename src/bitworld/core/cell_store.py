"""
Two-tier cell state cache: an in-memory overlay over a durable blob.

Promotion: ``get`` consults the overlay first, then loads the single key
from the durable blob and promotes it into the overlay. A key absent from
both tiers is a miss (``None``), not an error.

Write-through: ``commit`` updates the overlay and read-merge-writes the
durable blob, so concurrent keys already in the blob are never clobbered.

Eviction: ``evict`` drops only the overlay entry. Every state change is
committed before it can be evicted, so the durable copy is already current
at eviction time. ``evict(index, flush=True)`` additionally writes the
overlay value through first; the two forms leave identical durable state.

A corrupt durable blob is treated as an empty store: the failure is logged
and gameplay continues, forfeiting only previously persisted progress.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from bitworld.core.cells import CellIndex, CellState
from bitworld.core.errors import StoreCorruptError
from bitworld.persistence.store import KeyValueStore, decode_mapping_blob, encode_blob

logger = logging.getLogger(__name__)


class CellStateStore:
    """Overlay + durable store for per-cell token state.

    Attributes:
        storage_key: Key of the durable blob inside the KeyValueStore.
    """

    def __init__(self, kv: KeyValueStore, storage_key: str = "wob_cellstore_v1") -> None:
        self._kv = kv
        self.storage_key = storage_key
        self._overlay: dict[CellIndex, CellState] = {}
        # Pending durable writes while inside ``batch()``.
        self._pending: dict[str, dict] | None = None
        # Durable blob decoded once per batch; only this store writes it.
        self._batch_blob: dict | None = None
        self._batch_depth = 0

    # ------------------------------------------------------------------
    # Durable blob access
    # ------------------------------------------------------------------

    def _read_blob(self) -> dict:
        """Decode the durable blob; corrupt content reads as empty."""
        if self._batch_blob is not None:
            return self._batch_blob
        try:
            return decode_mapping_blob(self._kv.get_item(self.storage_key))
        except StoreCorruptError:
            logger.warning(
                "Durable cell store %s is corrupt; treating it as empty",
                self.storage_key,
                exc_info=True,
            )
            return {}

    def _merge_into_blob(self, records: dict[str, dict]) -> None:
        """Read-modify-write: merge ``records`` into the durable blob."""
        if not records:
            return
        blob = self._read_blob()
        blob.update(records)
        self._kv.set_item(self.storage_key, encode_blob(blob))

    def _write_through(self, index: CellIndex, state: CellState) -> None:
        record = state.to_dict()
        if self._pending is not None:
            self._pending[index.key] = record
        else:
            self._merge_into_blob({index.key: record})

    def _load_durable(self, index: CellIndex) -> CellState | None:
        record = self._read_blob().get(index.key)
        if record is None:
            return None
        try:
            return CellState.from_dict(record)
        except ValueError:
            logger.warning(
                "Ignoring malformed durable record for cell %s: %r",
                index.key, record,
            )
            return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, index: CellIndex) -> CellState | None:
        """Return the state of ``index`` from the overlay or durable store."""
        state = self._overlay.get(index)
        if state is not None:
            return state
        if self._pending is not None and index.key in self._pending:
            state = CellState.from_dict(self._pending[index.key])
        else:
            state = self._load_durable(index)
        if state is not None:
            self._overlay[index] = state
        return state

    def set(self, index: CellIndex, state: CellState) -> None:
        """Write to the overlay only."""
        self._overlay[index] = state

    def commit(self, index: CellIndex, state: CellState) -> None:
        """Write to the overlay and merge into the durable store."""
        self._overlay[index] = state
        self._write_through(index, state)

    def evict(self, index: CellIndex, flush: bool = False) -> None:
        """Drop the overlay entry for ``index``.

        With ``flush=True`` the overlay value is written through first.
        """
        state = self._overlay.pop(index, None)
        if flush and state is not None:
            self._write_through(index, state)

    def flush_all(self) -> None:
        """Write the whole overlay through to the durable store."""
        records = {index.key: state.to_dict() for index, state in self._overlay.items()}
        if self._pending is not None:
            self._pending.update(records)
        else:
            self._merge_into_blob(records)

    def clear_all(self) -> None:
        """Drop the overlay and erase the durable copy. Irreversible."""
        self._overlay.clear()
        if self._pending is not None:
            self._pending.clear()
            self._batch_blob = {}
        self._kv.remove_item(self.storage_key)

    @contextmanager
    def batch(self) -> Iterator[CellStateStore]:
        """Defer durable writes until the outermost batch exits.

        All commits inside the block are merged into the durable blob with
        a single read-merge-write. Nested batches join the outer one.
        """
        if self._batch_depth == 0:
            self._pending = {}
            self._batch_blob = self._read_blob()
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                pending, self._pending = self._pending, None
                self._batch_blob = None
                self._merge_into_blob(pending or {})

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def durable_snapshot(self) -> dict[CellIndex, CellState]:
        """Decoded copy of the durable mapping; malformed entries skipped."""
        result: dict[CellIndex, CellState] = {}
        for key, record in self._read_blob().items():
            try:
                result[CellIndex.from_key(key)] = CellState.from_dict(record)
            except ValueError:
                logger.warning("Skipping malformed durable entry %r", key)
        return result

    @property
    def overlay_size(self) -> int:
        return len(self._overlay)

    def __contains__(self, index: object) -> bool:
        """True if ``index`` is currently in the overlay."""
        return index in self._overlay
