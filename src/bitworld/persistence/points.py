"""Durable scalar points record. Incremented only by merges."""

from __future__ import annotations

import logging

from bitworld.core.errors import StoreCorruptError
from bitworld.persistence.store import KeyValueStore

logger = logging.getLogger(__name__)


def _decode_points(raw: str | None) -> int:
    if raw is None or raw == "":
        return 0
    try:
        value = int(raw)
    except ValueError as exc:
        raise StoreCorruptError(f"Points record is not an integer: {raw!r}") from exc
    if value < 0:
        raise StoreCorruptError(f"Points record is negative: {value}")
    return value


class PointsStore:
    """Integer points total, default 0, persisted on every change."""

    def __init__(self, kv: KeyValueStore, key: str = "wob_points_v1") -> None:
        self._kv = kv
        self.key = key
        self._value = self._load()

    def _load(self) -> int:
        try:
            return _decode_points(self._kv.get_item(self.key))
        except StoreCorruptError:
            logger.warning(
                "Points record under %s is corrupt; starting from 0",
                self.key,
                exc_info=True,
            )
            return 0

    @property
    def value(self) -> int:
        return self._value

    def add(self, delta: int) -> int:
        """Increase the total by ``delta`` and persist. Returns the new total."""
        if delta < 0:
            raise ValueError("Points can only increase")
        if delta == 0:
            return self._value
        self._value += delta
        self._kv.set_item(self.key, str(self._value))
        return self._value

    def clear(self) -> None:
        """Reset to 0 and erase the durable record."""
        self._value = 0
        self._kv.remove_item(self.key)
