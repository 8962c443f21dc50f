"""
Lat/lon <-> cell index mapping.

Cells tile the plane from a fixed origin in half-open squares of
``tile_degrees`` on each side: cell (i, j) covers latitudes
``[origin_lat + i*tile, origin_lat + (i+1)*tile)`` and the analogous
longitude range. There are no gaps and no overlaps.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

from bitworld.core.cells import CellIndex
from bitworld.core.config import WorldConfig

# Mean Earth radius in meters, as used by common web-map libraries.
EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class LatLng:
    """A geographic point in degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class GeoBounds:
    """An axis-aligned geographic rectangle in degrees."""

    south: float
    west: float
    north: float
    east: float

    def __post_init__(self) -> None:
        if self.north < self.south:
            raise ValueError("north must be >= south")
        if self.east < self.west:
            raise ValueError("east must be >= west")

    @property
    def center(self) -> LatLng:
        return LatLng(
            (self.south + self.north) / 2.0,
            (self.west + self.east) / 2.0,
        )

    def contains(self, point: LatLng) -> bool:
        """Half-open containment: south/west edges in, north/east edges out."""
        return (
            self.south <= point.lat < self.north
            and self.west <= point.lon < self.east
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "south": self.south,
            "west": self.west,
            "north": self.north,
            "east": self.east,
        }


def haversine_meters(a: LatLng, b: LatLng) -> float:
    """Great-circle distance between two points in meters."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.lon - a.lon)
    h = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


class CoordinateMapper:
    """Converts between geographic coordinates and cell indices."""

    def __init__(self, config: WorldConfig) -> None:
        self.origin = LatLng(config.origin_lat, config.origin_lon)
        self.tile_degrees: float = config.tile_degrees

    def _index_along(self, value: float, origin: float) -> int:
        tile = self.tile_degrees
        k = math.floor((value - origin) / tile)
        # Snap to the edges bounds_for_index produces, so an edge computed
        # there always maps back to the cell that owns it.
        if value < origin + k * tile:
            k -= 1
        elif value >= origin + (k + 1) * tile:
            k += 1
        return k

    def index_for_latitude(self, lat: float) -> int:
        return self._index_along(lat, self.origin.lat)

    def index_for_longitude(self, lon: float) -> int:
        return self._index_along(lon, self.origin.lon)

    def index_for_position(self, point: LatLng) -> CellIndex:
        """Return the index of the cell containing ``point``."""
        return CellIndex(
            self.index_for_latitude(point.lat),
            self.index_for_longitude(point.lon),
        )

    def bounds_for_index(self, index: CellIndex) -> GeoBounds:
        """Return the rectangle covered by cell ``index``."""
        tile = self.tile_degrees
        return GeoBounds(
            south=self.origin.lat + index.i * tile,
            west=self.origin.lon + index.j * tile,
            north=self.origin.lat + (index.i + 1) * tile,
            east=self.origin.lon + (index.j + 1) * tile,
        )

    def center_for_index(self, index: CellIndex) -> LatLng:
        return self.bounds_for_index(index).center

    def window_for_viewport(
        self, rect: GeoBounds, padding: int
    ) -> tuple[int, int, int, int]:
        """Index window ``(i_min, i_max, j_min, j_max)`` for a viewport.

        Bounds are inclusive and widened by ``padding`` tiles on every side
        so cells materialize before they reach the visible edge.
        """
        return (
            self.index_for_latitude(rect.south) - padding,
            self.index_for_latitude(rect.north) + padding,
            self.index_for_longitude(rect.west) - padding,
            self.index_for_longitude(rect.east) + padding,
        )

    @staticmethod
    def indices_in_window(
        window: tuple[int, int, int, int],
    ) -> Iterator[CellIndex]:
        """Yield every index in an inclusive window, row-major."""
        i_min, i_max, j_min, j_max = window
        for i in range(i_min, i_max + 1):
            for j in range(j_min, j_max + 1):
                yield CellIndex(i, j)
