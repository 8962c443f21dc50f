"""
Token interaction state machine: pickup, place, merge.

All checks run before any write. On success every field write is applied
and the cell state is committed once; on failure nothing changes on
either the cell or the hand.

    pickup: NoToken -> HandOccupied -> TooFar -> (hand <- cell token)
    place:  HandEmpty -> TooFar -> empty cell:  cell <- hand
                                   equal token: cell <- 2 * token, +points
                                   other token: Mismatch
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from bitworld.core.cell_store import CellStateStore
from bitworld.core.cells import CellIndex, CellState, Hand
from bitworld.core.config import WorldConfig
from bitworld.core.coordinates import CoordinateMapper, LatLng, haversine_meters
from bitworld.core.errors import (
    HandEmptyError,
    HandOccupiedError,
    MismatchError,
    NoTokenError,
    TooFarError,
)
from bitworld.core.world import WorldGenerator


class InteractionAction(str, Enum):
    PICKUP = "pickup"
    PLACE = "place"


@dataclass(frozen=True)
class InteractionResult:
    """Outcome of a successful interaction."""

    action: InteractionAction
    index: CellIndex
    cell: CellState
    hand_value: int | None
    points_delta: int = 0

    @property
    def merged(self) -> bool:
        return self.points_delta > 0


class TokenInteractionEngine:
    """Applies pickup/place actions to one cell and the actor's hand."""

    def __init__(
        self,
        config: WorldConfig,
        mapper: CoordinateMapper,
        generator: WorldGenerator,
        store: CellStateStore,
    ) -> None:
        self.radius_m = config.pickup_radius_meters
        self.mapper = mapper
        self.generator = generator
        self.store = store

    def distance_to_cell(self, index: CellIndex, position: LatLng) -> float:
        """Meters from ``position`` to the center of cell ``index``."""
        return haversine_meters(position, self.mapper.center_for_index(index))

    def _check_reach(self, index: CellIndex, position: LatLng) -> None:
        distance = self.distance_to_cell(index, position)
        if distance > self.radius_m:
            raise TooFarError(distance, self.radius_m)

    def pickup(
        self, index: CellIndex, hand: Hand, position: LatLng
    ) -> InteractionResult:
        """Move the cell's token into the hand."""
        cell = self.generator.materialize(index)
        if not cell.token_present:
            raise NoTokenError()
        if not hand.is_empty:
            raise HandOccupiedError()
        self._check_reach(index, position)

        new_cell = CellState.empty()
        hand.hold(cell.token_value)
        self.store.commit(index, new_cell)
        return InteractionResult(
            InteractionAction.PICKUP, index, new_cell, hand.value,
        )

    def place(
        self, index: CellIndex, hand: Hand, position: LatLng
    ) -> InteractionResult:
        """Drop the hand's token into the cell, merging equal tokens."""
        if hand.is_empty:
            raise HandEmptyError()
        self._check_reach(index, position)
        cell = self.generator.materialize(index)

        if not cell.token_present:
            new_cell = CellState.with_token(hand.value)
            points = 0
        elif cell.token_value == hand.value:
            new_cell = CellState.with_token(cell.token_value * 2)
            points = new_cell.token_value
        else:
            raise MismatchError(cell.token_value, hand.value)

        hand.release()
        self.store.commit(index, new_cell)
        return InteractionResult(
            InteractionAction.PLACE, index, new_cell, hand.value, points,
        )

    def apply(
        self,
        action: InteractionAction,
        index: CellIndex,
        hand: Hand,
        position: LatLng,
    ) -> InteractionResult:
        if InteractionAction(action) is InteractionAction.PICKUP:
            return self.pickup(index, hand, position)
        return self.place(index, hand, position)
