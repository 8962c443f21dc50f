"""
Viewport-driven cell activation.

The active set is exactly the cells inside the padded viewport window,
recomputed in full on every viewport change. Cells entering the window are
materialized and get an overlay; cells leaving it are committed, dropped
from the cache overlay and have their overlay removed. Recomputing with an
unchanged viewport issues no commands.
"""

from __future__ import annotations

from typing import AbstractSet

from bitworld.core.cell_store import CellStateStore
from bitworld.core.cells import CellIndex
from bitworld.core.coordinates import CoordinateMapper, GeoBounds
from bitworld.core.renderer import OverlayCommand, OverlayOp, OverlayRenderer
from bitworld.core.styling import label_for_state, style_for_state
from bitworld.core.world import WorldGenerator


class ViewportCellManager:
    """Owns the active cell set and drives overlay create/remove commands.

    Attributes:
        padding: Extra tiles materialized beyond each viewport edge.
    """

    def __init__(
        self,
        mapper: CoordinateMapper,
        generator: WorldGenerator,
        store: CellStateStore,
        renderer: OverlayRenderer,
        padding: int = 2,
    ) -> None:
        self.mapper = mapper
        self.generator = generator
        self.store = store
        self.renderer = renderer
        self.padding = padding
        self._active: set[CellIndex] = set()

    @property
    def active(self) -> AbstractSet[CellIndex]:
        """Read-only view of the active cell set."""
        return frozenset(self._active)

    def is_active(self, index: CellIndex) -> bool:
        return index in self._active

    def window_indices(self, rect: GeoBounds) -> set[CellIndex]:
        window = self.mapper.window_for_viewport(rect, self.padding)
        return set(self.mapper.indices_in_window(window))

    def update(self, rect: GeoBounds) -> list[OverlayCommand]:
        """Recompute the active set for ``rect``.

        Returns the commands issued to the renderer during this call.
        """
        window = self.window_indices(rect)
        entering = sorted(window - self._active)
        leaving = sorted(self._active - window)
        issued: list[OverlayCommand] = []

        with self.store.batch():
            for index in entering:
                state = self.generator.materialize(index)
                bounds = self.mapper.bounds_for_index(index)
                style = style_for_state(state)
                label = label_for_state(state)
                self.renderer.create_overlay(index, bounds, style, label)
                issued.append(OverlayCommand(OverlayOp.CREATE, index, bounds, style, label))
                self._active.add(index)

            for index in leaving:
                state = self.store.get(index)
                if state is not None:
                    self.store.commit(index, state)
                self.store.evict(index)
                self.renderer.remove_overlay(index)
                issued.append(OverlayCommand(OverlayOp.REMOVE, index))
                self._active.discard(index)

        return issued

    def refresh(self, index: CellIndex) -> OverlayCommand | None:
        """Re-style an active cell after its state changed."""
        if index not in self._active:
            return None
        state = self.store.get(index)
        if state is None:
            return None
        style = style_for_state(state)
        label = label_for_state(state)
        self.renderer.update_overlay(index, style, label)
        return OverlayCommand(OverlayOp.UPDATE, index, style=style, label=label)

    def clear(self) -> list[OverlayCommand]:
        """Remove every overlay and empty the active set (world reset)."""
        issued: list[OverlayCommand] = []
        for index in sorted(self._active):
            self.renderer.remove_overlay(index)
            issued.append(OverlayCommand(OverlayOp.REMOVE, index))
        self._active.clear()
        return issued
