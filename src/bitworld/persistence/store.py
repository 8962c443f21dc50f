"""
SQLite-backed key/value storage for the bitworld durable state.

Plays the role a browser's local storage plays for a web client: a flat
mapping of string keys to string values, each value a whole serialized
blob. Reads of a missing key return ``None``.

Persistence failures are logged as warnings and never crash gameplay;
the store degrades gracefully to in-memory-only operation.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any

from bitworld.core.errors import StoreCorruptError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# JSON blob helpers
# ---------------------------------------------------------------------------

def encode_blob(data: Any) -> str:
    """Serialize a mapping to compact JSON text."""
    return json.dumps(data, separators=(",", ":"), sort_keys=True)


def decode_mapping_blob(raw: str | None) -> dict[str, Any]:
    """Parse a JSON object blob.

    ``None`` (absent) decodes to an empty mapping. Anything that is not
    valid JSON, or valid JSON that is not an object, raises
    StoreCorruptError.
    """
    if raw is None or raw == "":
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise StoreCorruptError(f"Unparsable blob: {exc}") from exc
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise StoreCorruptError(
            f"Expected a JSON object, got {type(parsed).__name__}"
        )
    return parsed


# ---------------------------------------------------------------------------
# SQLite KeyValueStore
# ---------------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class KeyValueStore:
    """Durable string key/value storage.

    ``db_path=None`` runs purely in memory. If the database cannot be
    opened the store logs a warning and also runs in memory, so callers
    never need to handle an unavailable backend.
    """

    def __init__(self, db_path: str | None = "data/bitworld.db"):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._memory: dict[str, str] = {}
        if db_path is not None:
            self._init_db()

    def _init_db(self) -> None:
        """Open connection and create table if needed."""
        try:
            self._conn = sqlite3.connect(
                self.db_path, check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute(_SCHEMA)
            self._conn.commit()
        except Exception:
            logger.warning(
                "Failed to open SQLite database at %s; "
                "falling back to in-memory only",
                self.db_path,
                exc_info=True,
            )
            self._conn = None

    @property
    def available(self) -> bool:
        """True if the database connection is open."""
        return self._conn is not None

    # ---- Read operations ----

    def get_item(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None."""
        if self._conn is not None:
            try:
                cur = self._conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,),
                )
                row = cur.fetchone()
                return row[0] if row else None
            except Exception:
                logger.warning(
                    "Failed to read key %s from database", key, exc_info=True,
                )
                return None
        return self._memory.get(key)

    def keys(self) -> list[str]:
        """All stored keys, sorted."""
        if self._conn is not None:
            try:
                cur = self._conn.execute("SELECT key FROM kv_store ORDER BY key")
                return [r[0] for r in cur.fetchall()]
            except Exception:
                logger.warning("Failed to list keys from database", exc_info=True)
                return []
        return sorted(self._memory)

    # ---- Write operations ----

    def set_item(self, key: str, value: str) -> None:
        """Insert or replace the value under ``key``."""
        if self._conn is not None:
            now = datetime.now(timezone.utc).isoformat()
            try:
                self._conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value, now),
                )
                self._conn.commit()
            except Exception:
                logger.warning(
                    "Failed to write key %s to database", key, exc_info=True,
                )
            return
        self._memory[key] = value

    def remove_item(self, key: str) -> None:
        """Delete ``key`` if present."""
        if self._conn is not None:
            try:
                self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                self._conn.commit()
            except Exception:
                logger.warning(
                    "Failed to delete key %s from database", key, exc_info=True,
                )
            return
        self._memory.pop(key, None)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
