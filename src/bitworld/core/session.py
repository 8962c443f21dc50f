"""
Game session: the single actor's context.

Owns everything that would otherwise be ambient global state (the hand,
the points total, the actor position, the last viewport and the active
cell set) and exposes the actor input surface. Events are processed
strictly one at a time in arrival order.

Interaction failures raised by ``interact`` are user-facing; ``dispatch``
turns them into an ``EventOutcome`` message instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from bitworld.core.cell_store import CellStateStore
from bitworld.core.cells import CellIndex, CellState, Hand
from bitworld.core.config import WorldConfig
from bitworld.core.coordinates import CoordinateMapper, GeoBounds, LatLng
from bitworld.core.errors import InteractionError
from bitworld.core.events import (
    ActorMoved,
    ActorPositionReported,
    InteractRequested,
    ViewportReported,
    WorldResetRequested,
)
from bitworld.core.interaction import (
    InteractionAction,
    InteractionResult,
    TokenInteractionEngine,
)
from bitworld.core.luck import luck as default_luck
from bitworld.core.renderer import OverlayCommand, OverlayRenderer, RecordingRenderer
from bitworld.core.styling import label_for_state
from bitworld.core.viewport import ViewportCellManager
from bitworld.core.world import WorldGenerator
from bitworld.persistence.points import PointsStore
from bitworld.persistence.store import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellView:
    """Snapshot of a cell for an interaction popup.

    Taken at open time; later interactions re-read current state.
    """

    index: CellIndex
    state: CellState
    bounds: GeoBounds
    distance_m: float
    pickup_enabled: bool
    place_enabled: bool

    @property
    def token_text(self) -> str:
        return label_for_state(self.state) or "none"


@dataclass
class EventOutcome:
    """Result of dispatching one input event."""

    ok: bool
    message: str = ""
    error_code: str | None = None
    commands: list[OverlayCommand] = field(default_factory=list)
    result: InteractionResult | None = None
    points_delta: int = 0


class GameSession:
    """One actor, one viewport, one durable store.

    Args:
        config: World parameters; defaults to ``WorldConfig()``.
        kv: Durable key/value backend; defaults to a pure in-memory store.
        renderer: Receives overlay commands; defaults to a RecordingRenderer.
        force_spawn: Spawn a cache in every cell (tests and demos).
        luck: Hash function used by world generation.
        follow_actor: Re-center the viewport on the actor after moves.
    """

    def __init__(
        self,
        config: WorldConfig | None = None,
        kv: KeyValueStore | None = None,
        renderer: OverlayRenderer | None = None,
        force_spawn: bool = False,
        luck: Callable[[str], float] = default_luck,
        follow_actor: bool = True,
    ) -> None:
        self.config = config or WorldConfig()
        self.kv = kv if kv is not None else KeyValueStore(db_path=None)
        self.renderer = renderer if renderer is not None else RecordingRenderer()
        self.follow_actor = follow_actor

        self.mapper = CoordinateMapper(self.config)
        self.store = CellStateStore(self.kv, self.config.cell_storage_key)
        self.points_store = PointsStore(self.kv, self.config.points_storage_key)
        self.generator = WorldGenerator(
            self.config, self.store, force_spawn=force_spawn, luck=luck,
        )
        self.viewport = ViewportCellManager(
            self.mapper, self.generator, self.store, self.renderer,
            padding=self.config.view_padding_tiles,
        )
        self.engine = TokenInteractionEngine(
            self.config, self.mapper, self.generator, self.store,
        )

        self.hand = Hand()
        self.actor_position = LatLng(self.config.origin_lat, self.config.origin_lon)
        self.last_viewport: GeoBounds | None = None

    # ------------------------------------------------------------------
    # HUD
    # ------------------------------------------------------------------

    @property
    def points(self) -> int:
        return self.points_store.value

    def status(self) -> dict[str, Any]:
        """Hand and points snapshot for the score display."""
        return {
            "hand": self.hand.value,
            "points": self.points,
            "actor": {"lat": self.actor_position.lat, "lon": self.actor_position.lon},
            "active_cells": len(self.viewport.active),
        }

    # ------------------------------------------------------------------
    # Actor input surface
    # ------------------------------------------------------------------

    def report_actor_position(self, lat: float, lon: float) -> list[OverlayCommand]:
        """Set the actor position. Recenters the viewport when following."""
        self.actor_position = LatLng(lat, lon)
        if self.follow_actor and self.last_viewport is not None:
            return self.report_viewport(self._recentered(self.last_viewport))
        return []

    teleport = report_actor_position

    def _recentered(self, rect: GeoBounds) -> GeoBounds:
        half_h = (rect.north - rect.south) / 2.0
        half_w = (rect.east - rect.west) / 2.0
        p = self.actor_position
        return GeoBounds(p.lat - half_h, p.lon - half_w, p.lat + half_h, p.lon + half_w)

    def move_actor_by(
        self, d_lat: float = 0.0, d_lon: float = 0.0
    ) -> list[OverlayCommand]:
        """Step the actor by a degree offset."""
        return self.report_actor_position(
            self.actor_position.lat + d_lat, self.actor_position.lon + d_lon,
        )

    def step(self, direction: str) -> list[OverlayCommand]:
        """Step one ``move_step_degrees`` north, south, east or west."""
        s = self.config.move_step_degrees
        offsets = {
            "n": (s, 0.0), "north": (s, 0.0),
            "s": (-s, 0.0), "south": (-s, 0.0),
            "e": (0.0, s), "east": (0.0, s),
            "w": (0.0, -s), "west": (0.0, -s),
        }
        try:
            d_lat, d_lon = offsets[direction.lower()]
        except KeyError:
            raise ValueError(f"Unknown direction: {direction!r}") from None
        return self.move_actor_by(d_lat, d_lon)

    def report_viewport(self, rect: GeoBounds) -> list[OverlayCommand]:
        """Recompute the active cell set for a new viewport ("moveend")."""
        self.last_viewport = rect
        return self.viewport.update(rect)

    def describe_cell(self, index: CellIndex) -> CellView:
        """Popup snapshot of a cell."""
        try:
            state = self.generator.materialize(index)
        finally:
            self._release_inactive(index)
        return CellView(
            index=index,
            state=state,
            bounds=self.mapper.bounds_for_index(index),
            distance_m=self.engine.distance_to_cell(index, self.actor_position),
            pickup_enabled=state.token_present and self.hand.is_empty,
            place_enabled=not self.hand.is_empty,
        )

    def _release_inactive(self, index: CellIndex) -> None:
        # The overlay only holds active cells; anything touched outside the
        # viewport has already been committed and can be dropped.
        if not self.viewport.is_active(index):
            self.store.evict(index)

    def interact(
        self, index: CellIndex, action: InteractionAction | str
    ) -> InteractionResult:
        """Pick up from or place into ``index``.

        Raises an InteractionError subclass if the action is rejected.
        """
        result, _ = self._interact(index, InteractionAction(action))
        return result

    def _interact(
        self, index: CellIndex, action: InteractionAction
    ) -> tuple[InteractionResult, OverlayCommand | None]:
        try:
            result = self.engine.apply(action, index, self.hand, self.actor_position)
        finally:
            self._release_inactive(index)
        if result.points_delta:
            self.points_store.add(result.points_delta)
        return result, self.viewport.refresh(index)

    def pickup(self, index: CellIndex) -> InteractionResult:
        return self.interact(index, InteractionAction.PICKUP)

    def place(self, index: CellIndex) -> InteractionResult:
        return self.interact(index, InteractionAction.PLACE)

    def reset_world(self) -> list[OverlayCommand]:
        """Erase all cell state, points and the hand. Irreversible.

        The last known viewport is re-populated from a clean world.
        """
        logger.info("Resetting world: clearing durable cell and points stores")
        commands = self.viewport.clear()
        self.store.clear_all()
        self.points_store.clear()
        self.hand.clear()
        if self.last_viewport is not None:
            commands.extend(self.viewport.update(self.last_viewport))
        return commands

    # ------------------------------------------------------------------
    # Event dispatch
    # ------------------------------------------------------------------

    def dispatch(self, event: Any) -> EventOutcome:
        """Apply one input event, reporting rejections as messages."""
        if isinstance(event, ActorPositionReported):
            return EventOutcome(True, commands=self.report_actor_position(event.lat, event.lon))
        if isinstance(event, ActorMoved):
            return EventOutcome(True, commands=self.move_actor_by(event.d_lat, event.d_lon))
        if isinstance(event, ViewportReported):
            rect = GeoBounds(event.south, event.west, event.north, event.east)
            return EventOutcome(True, commands=self.report_viewport(rect))
        if isinstance(event, InteractRequested):
            return self._dispatch_interact(event)
        if isinstance(event, WorldResetRequested):
            if not event.confirm:
                return EventOutcome(
                    False,
                    message="Reset must be confirmed; nothing was cleared.",
                    error_code="reset_unconfirmed",
                )
            return EventOutcome(
                True, message="World reset.", commands=self.reset_world(),
            )
        raise TypeError(f"Unsupported event type: {type(event).__name__}")

    def _dispatch_interact(self, event: InteractRequested) -> EventOutcome:
        index = CellIndex(event.i, event.j)
        try:
            result, refreshed = self._interact(index, event.action)
        except InteractionError as exc:
            return EventOutcome(False, message=exc.message, error_code=exc.code)
        commands = [refreshed] if refreshed is not None else []
        if result.merged:
            message = f"Merged to {result.cell.token_value}!"
        elif result.action is InteractionAction.PICKUP:
            message = f"Picked up {result.hand_value}."
        else:
            message = f"Placed {result.cell.token_value}."
        return EventOutcome(
            True,
            message=message,
            commands=commands,
            result=result,
            points_delta=result.points_delta,
        )

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def flush(self) -> None:
        """Best-effort write-through of all in-memory cell state."""
        self.store.flush_all()

    def close(self) -> None:
        """Flush and release the durable backend."""
        self.flush()
        self.kv.close()

    def __enter__(self) -> GameSession:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
