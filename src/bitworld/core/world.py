"""
Deterministic world generation.

Whether a cell spawns a cache, and the token it starts with, depends only
on the cell's index: two independent luck draws salted with
``"initialValue"`` (spawn or not) and ``"value"`` (which power of two).
Once a cell has been materialized its state is committed and never
re-rolled, even after the player has emptied or merged into it.
"""

from __future__ import annotations

import math
from typing import Callable

from bitworld.core.cell_store import CellStateStore
from bitworld.core.cells import CellIndex, CellState
from bitworld.core.config import WorldConfig
from bitworld.core.luck import luck as default_luck
from bitworld.core.luck import luck_key

SPAWN_SALT = "initialValue"
VALUE_SALT = "value"


class WorldGenerator:
    """Spawn decisions for cells, made once and recorded permanently.

    Args:
        config: World parameters (spawn probability, exponent range).
        store: Cell state cache the decisions are committed to.
        force_spawn: Spawn a cache in every cell regardless of luck.
            Intended for tests and demos.
        luck: Hash function ``str -> [0, 1)``; defaults to the SHA-256 luck.
    """

    def __init__(
        self,
        config: WorldConfig,
        store: CellStateStore,
        force_spawn: bool = False,
        luck: Callable[[str], float] = default_luck,
    ) -> None:
        self.config = config
        self.store = store
        self.force_spawn = force_spawn
        self._luck = luck

    def spawns(self, index: CellIndex) -> bool:
        """Whether ``index`` starts with a cache."""
        if self.force_spawn:
            return True
        draw = self._luck(luck_key(index.i, index.j, SPAWN_SALT))
        return draw < self.config.spawn_probability

    def initial_value(self, index: CellIndex) -> int:
        """Initial token value for ``index`` (2, 4, 8 or 16 by default)."""
        draw = self._luck(luck_key(index.i, index.j, VALUE_SALT))
        choices = self.config.token_exponent_choices
        offset = min(math.floor(draw * choices), choices - 1)
        return 2 ** (offset + self.config.min_token_exponent)

    def roll(self, index: CellIndex) -> CellState:
        """Default state of ``index``; pure, touches no store."""
        if self.spawns(index):
            return CellState.with_token(self.initial_value(index))
        return CellState.empty()

    def materialize(self, index: CellIndex) -> CellState:
        """Return the state of ``index``, deciding and committing it if new."""
        existing = self.store.get(index)
        if existing is not None:
            return existing
        state = self.roll(index)
        self.store.commit(index, state)
        return state
