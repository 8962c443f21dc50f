"""
Error taxonomy for the bitworld core.

Interaction errors are user-facing and recoverable: the attempted action
is rejected and no state changes. ``StoreCorruptError`` is internal; the
cell and points stores catch it, log it, and carry on with an empty store.
"""

from __future__ import annotations


class InteractionError(Exception):
    """Base class for rejected pickup/place actions."""

    code: str = "interaction_error"
    default_message: str = "That action is not possible."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NoTokenError(InteractionError):
    code = "no_token"
    default_message = "No token here to pick up."


class HandOccupiedError(InteractionError):
    code = "hand_occupied"
    default_message = "You already have a token in hand. You can only hold one."


class HandEmptyError(InteractionError):
    code = "hand_empty"
    default_message = "You have no token in hand to place."


class TooFarError(InteractionError):
    code = "too_far"
    default_message = "Too far away. Move closer."

    def __init__(self, distance_m: float, radius_m: float) -> None:
        self.distance_m = distance_m
        self.radius_m = radius_m
        super().__init__(
            f"Too far away ({distance_m:.1f} m, limit {radius_m:.0f} m). Move closer."
        )


class MismatchError(InteractionError):
    code = "mismatch"
    default_message = "Cell already has a different token. You can't place here."

    def __init__(self, cell_value: int, hand_value: int) -> None:
        self.cell_value = cell_value
        self.hand_value = hand_value
        super().__init__(
            f"Cell holds {cell_value} but your hand holds {hand_value}. "
            "You can't place here."
        )


class StoreCorruptError(Exception):
    """Raised when a durable blob cannot be decoded."""
