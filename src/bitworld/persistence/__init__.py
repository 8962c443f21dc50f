"""Durable storage backends."""

from bitworld.persistence.points import PointsStore
from bitworld.persistence.store import (
    KeyValueStore,
    decode_mapping_blob,
    encode_blob,
)

__all__ = [
    "KeyValueStore",
    "PointsStore",
    "decode_mapping_blob",
    "encode_blob",
]
