"""
World survey: spawn statistics over an index window.

Evaluates the pure default decision for every cell in a window (nothing
is materialized or persisted) and summarizes it with numpy arrays for
tuning the spawn probability and checking the value distribution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from bitworld.core.cells import CellIndex
from bitworld.core.world import WorldGenerator


@dataclass
class WorldSurvey:
    """Default-state statistics for a rectangular index window."""

    i_min: int
    j_min: int
    spawn_grid: np.ndarray  # bool, shape (rows, cols)
    value_grid: np.ndarray  # int, 0 where no token

    value_counts: dict[int, int] = field(default_factory=dict)

    @property
    def cell_count(self) -> int:
        return int(self.spawn_grid.size)

    @property
    def spawn_count(self) -> int:
        return int(self.spawn_grid.sum())

    @property
    def spawn_fraction(self) -> float:
        if self.cell_count == 0:
            return 0.0
        return self.spawn_count / self.cell_count

    @property
    def total_value(self) -> int:
        return int(self.value_grid.sum())

    def standard_error(self, p: float) -> float:
        """Binomial standard error of the spawn fraction at probability p."""
        if self.cell_count == 0:
            return 0.0
        return float(np.sqrt(p * (1.0 - p) / self.cell_count))

    def to_dict(self) -> dict[str, Any]:
        return {
            "i_min": self.i_min,
            "j_min": self.j_min,
            "rows": int(self.spawn_grid.shape[0]),
            "cols": int(self.spawn_grid.shape[1]),
            "cell_count": self.cell_count,
            "spawn_count": self.spawn_count,
            "spawn_fraction": self.spawn_fraction,
            "total_value": self.total_value,
            "value_counts": {str(k): v for k, v in self.value_counts.items()},
        }


def survey_window(
    generator: WorldGenerator,
    window: tuple[int, int, int, int],
) -> WorldSurvey:
    """Survey the default states of an inclusive ``(i_min, i_max, j_min, j_max)`` window."""
    i_min, i_max, j_min, j_max = window
    rows = max(0, i_max - i_min + 1)
    cols = max(0, j_max - j_min + 1)
    spawn_grid = np.zeros((rows, cols), dtype=bool)
    value_grid = np.zeros((rows, cols), dtype=np.int64)

    for r in range(rows):
        for c in range(cols):
            state = generator.roll(CellIndex(i_min + r, j_min + c))
            if state.token_present:
                spawn_grid[r, c] = True
                value_grid[r, c] = state.token_value

    values, counts = np.unique(value_grid[spawn_grid], return_counts=True)
    value_counts = {int(v): int(n) for v, n in zip(values, counts)}
    return WorldSurvey(
        i_min=i_min,
        j_min=j_min,
        spawn_grid=spawn_grid,
        value_grid=value_grid,
        value_counts=value_counts,
    )
