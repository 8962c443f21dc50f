"""
Typed input events delivered to a GameSession.

The host UI (map, buttons, geolocation) translates its own callbacks into
these models; ``parse_event`` validates raw payloads.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from bitworld.core.interaction import InteractionAction


class ActorPositionReported(BaseModel):
    kind: Literal["actor_position"] = "actor_position"
    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)


class ActorMoved(BaseModel):
    """Relative step in degrees (simulated movement controls)."""

    kind: Literal["actor_moved"] = "actor_moved"
    d_lat: float = 0.0
    d_lon: float = 0.0


class ViewportReported(BaseModel):
    kind: Literal["viewport"] = "viewport"
    south: float
    west: float
    north: float
    east: float

    @model_validator(mode="after")
    def _check_orientation(self) -> ViewportReported:
        if self.north < self.south:
            raise ValueError("north must be >= south")
        if self.east < self.west:
            raise ValueError("east must be >= west")
        return self


class InteractRequested(BaseModel):
    kind: Literal["interact"] = "interact"
    i: int
    j: int
    action: InteractionAction


class WorldResetRequested(BaseModel):
    kind: Literal["reset"] = "reset"
    confirm: bool = Field(
        default=False,
        description="Reset is irreversible and must be explicitly confirmed.",
    )


InputEvent = Annotated[
    Union[
        ActorPositionReported,
        ActorMoved,
        ViewportReported,
        InteractRequested,
        WorldResetRequested,
    ],
    Field(discriminator="kind"),
]

_EVENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(InputEvent)


def parse_event(payload: dict[str, Any]) -> InputEvent:
    """Validate a raw payload into an input event.

    Raises pydantic.ValidationError on unknown kinds or bad fields.
    """
    return _EVENT_ADAPTER.validate_python(payload)
