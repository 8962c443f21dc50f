"""
Master configuration for the bitworld core.

ALL tunable parameters live here. Changing the origin or tile size
invalidates every persisted cell index, since indices are relative to
the origin rather than absolute coordinates.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import Any


@dataclass
class WorldConfig:
    """
    World and gameplay parameters.

    Use ``to_dict()`` / ``from_dict()`` for serialization and comparison.
    """

    # === Grid origin & tiling ===
    origin_lat: float = 36.997936938057016
    origin_lon: float = -122.05703507501151
    tile_degrees: float = 1e-4

    # === World generation ===
    spawn_probability: float = 0.1
    min_token_exponent: int = 1  # 2**1 = 2
    token_exponent_choices: int = 4  # yields {2, 4, 8, 16}

    # === Viewport ===
    view_padding_tiles: int = 2

    # === Interaction ===
    pickup_radius_meters: float = 50.0

    # === Simulated movement ===
    move_step_degrees: float = 0.001

    # === Durable storage keys ===
    cell_storage_key: str = "wob_cellstore_v1"
    points_storage_key: str = "wob_points_v1"

    def __post_init__(self) -> None:
        if self.tile_degrees <= 0:
            raise ValueError("tile_degrees must be positive")
        if not 0.0 <= self.spawn_probability <= 1.0:
            raise ValueError("spawn_probability must be within [0, 1]")
        if self.min_token_exponent < 1:
            raise ValueError("min_token_exponent must be >= 1")
        if self.token_exponent_choices < 1:
            raise ValueError("token_exponent_choices must be >= 1")
        if self.view_padding_tiles < 0:
            raise ValueError("view_padding_tiles must be >= 0")
        if self.pickup_radius_meters < 0:
            raise ValueError("pickup_radius_meters must be >= 0")
        if self.cell_storage_key == self.points_storage_key:
            raise ValueError("cell and points storage keys must differ")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> WorldConfig:
        """Deserialize from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, s: str) -> WorldConfig:
        return cls.from_dict(json.loads(s))

    def diff(self, other: WorldConfig) -> dict[str, tuple[Any, Any]]:
        """Return parameters that differ between two configs."""
        diffs: dict[str, tuple[Any, Any]] = {}
        for k in self.to_dict():
            v1 = getattr(self, k)
            v2 = getattr(other, k)
            if v1 != v2:
                diffs[k] = (v1, v2)
        return diffs
