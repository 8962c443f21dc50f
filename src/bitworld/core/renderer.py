"""
Renderer command surface.

The core never draws anything. It issues create/update/remove commands
keyed by cell index to whatever renderer the host supplies.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from bitworld.core.cells import CellIndex
from bitworld.core.coordinates import GeoBounds
from bitworld.core.styling import OverlayStyle


class OverlayOp(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REMOVE = "remove"


@dataclass(frozen=True)
class OverlayCommand:
    """One renderer command. ``bounds`` is only set for CREATE."""

    op: OverlayOp
    index: CellIndex
    bounds: GeoBounds | None = None
    style: OverlayStyle | None = None
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": self.op.value,
            "cell": self.index.key,
            "bounds": self.bounds.to_dict() if self.bounds else None,
            "style": self.style.to_dict() if self.style else None,
            "label": self.label,
        }


class OverlayRenderer(ABC):
    """Interface the host's map layer implements."""

    @abstractmethod
    def create_overlay(
        self, index: CellIndex, bounds: GeoBounds, style: OverlayStyle, label: str,
    ) -> None: ...

    @abstractmethod
    def update_overlay(
        self, index: CellIndex, style: OverlayStyle, label: str,
    ) -> None: ...

    @abstractmethod
    def remove_overlay(self, index: CellIndex) -> None: ...


class RecordingRenderer(OverlayRenderer):
    """Renderer that records every command it receives.

    Also tracks the overlays it currently shows, which is what a real map
    layer would hold.
    """

    def __init__(self) -> None:
        self.commands: list[OverlayCommand] = []
        self.overlays: dict[CellIndex, OverlayCommand] = {}

    def create_overlay(
        self, index: CellIndex, bounds: GeoBounds, style: OverlayStyle, label: str,
    ) -> None:
        cmd = OverlayCommand(OverlayOp.CREATE, index, bounds, style, label)
        self.commands.append(cmd)
        self.overlays[index] = cmd

    def update_overlay(
        self, index: CellIndex, style: OverlayStyle, label: str,
    ) -> None:
        cmd = OverlayCommand(OverlayOp.UPDATE, index, style=style, label=label)
        self.commands.append(cmd)
        current = self.overlays.get(index)
        if current is not None:
            self.overlays[index] = OverlayCommand(
                OverlayOp.CREATE, index, current.bounds, style, label,
            )

    def remove_overlay(self, index: CellIndex) -> None:
        self.commands.append(OverlayCommand(OverlayOp.REMOVE, index))
        self.overlays.pop(index, None)

    def drain(self) -> list[OverlayCommand]:
        """Return and forget the recorded commands."""
        cmds, self.commands = self.commands, []
        return cmds
