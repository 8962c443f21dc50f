"""
Cell data model: grid indices, per-cell token state, and the actor's hand.

A CellIndex is relative to the world origin (see WorldConfig). A CellState
either holds a single power-of-two token (>= 2) or is empty; there is no
third state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from bitworld.core.errors import HandEmptyError, HandOccupiedError


def is_token_value(value: Any) -> bool:
    """True if ``value`` is an int power of two >= 2 (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return value >= 2 and (value & (value - 1)) == 0


@dataclass(frozen=True, order=True)
class CellIndex:
    """Integer grid coordinates (i = latitude axis, j = longitude axis)."""

    i: int
    j: int

    @property
    def key(self) -> str:
        """Durable-store key, ``"i,j"``."""
        return f"{self.i},{self.j}"

    @classmethod
    def from_key(cls, key: str) -> CellIndex:
        """Parse an ``"i,j"`` key. Raises ValueError on malformed input."""
        parts = key.split(",")
        if len(parts) != 2:
            raise ValueError(f"Malformed cell key: {key!r}")
        return cls(int(parts[0]), int(parts[1]))

    def offset(self, di: int, dj: int) -> CellIndex:
        return CellIndex(self.i + di, self.j + dj)

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class CellState:
    """Token state of one cell.

    Attributes:
        token_present: Whether the cell currently holds a token.
        token_value: The token's value; set iff ``token_present``.
    """

    token_present: bool
    token_value: int | None = None

    def __post_init__(self) -> None:
        if self.token_present:
            if not is_token_value(self.token_value):
                raise ValueError(
                    f"token_value must be a power of two >= 2, got {self.token_value!r}"
                )
        elif self.token_value is not None:
            raise ValueError("token_value must be None when no token is present")

    @classmethod
    def empty(cls) -> CellState:
        return cls(token_present=False)

    @classmethod
    def with_token(cls, value: int) -> CellState:
        return cls(token_present=True, token_value=value)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the durable record format."""
        if self.token_present:
            return {"tokenPresent": True, "tokenValue": self.token_value}
        return {"tokenPresent": False}

    @classmethod
    def from_dict(cls, d: Any) -> CellState:
        """Deserialize a durable record. Raises ValueError if malformed."""
        if not isinstance(d, dict):
            raise ValueError(f"Cell record must be an object, got {type(d).__name__}")
        present = d.get("tokenPresent")
        if not isinstance(present, bool):
            raise ValueError("Cell record is missing a boolean 'tokenPresent'")
        if present:
            return cls(token_present=True, token_value=d.get("tokenValue"))
        return cls(token_present=False)


@dataclass
class Hand:
    """The actor's single-slot token carry. Holds at most one token."""

    value: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.value is None

    def hold(self, value: int) -> None:
        """Put a token in the hand. Raises HandOccupiedError if full."""
        if self.value is not None:
            raise HandOccupiedError()
        if not is_token_value(value):
            raise ValueError(f"Not a token value: {value!r}")
        self.value = value

    def release(self) -> int:
        """Take the token out of the hand. Raises HandEmptyError if empty."""
        if self.value is None:
            raise HandEmptyError()
        value = self.value
        self.value = None
        return value

    def clear(self) -> None:
        self.value = None
