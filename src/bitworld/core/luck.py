"""
Deterministic luck: a stable string -> [0, 1) hash.

The same key yields the same value in every process on every run; there
is no seed. Used for both the spawn decision and the initial token value
of a cell, salted with distinct suffixes so the two draws are independent.
"""

from __future__ import annotations

import hashlib

# 53 bits is the full float64 mantissa, so every output is exactly representable.
_MANTISSA_BITS = 53
_SCALE = float(1 << _MANTISSA_BITS)


def luck(key: str) -> float:
    """Map ``key`` to a float in [0, 1)."""
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    bits = int.from_bytes(digest[:8], "big") >> (64 - _MANTISSA_BITS)
    return bits / _SCALE


def luck_key(i: int, j: int, salt: str) -> str:
    """Build the canonical ``"i,j,salt"`` key for a cell draw."""
    return f"{i},{j},{salt}"
