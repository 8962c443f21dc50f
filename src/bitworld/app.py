"""
Session factory for hosts embedding the bitworld core.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from bitworld.core.config import WorldConfig
from bitworld.core.renderer import OverlayRenderer
from bitworld.core.session import GameSession
from bitworld.persistence.store import KeyValueStore

logger = logging.getLogger(__name__)

# Load .env from the project root first, then CWD
_project_root = Path(__file__).resolve().parents[2]  # src/bitworld/app.py -> project root
load_dotenv(_project_root / ".env")
load_dotenv(Path.cwd() / ".env")

DEFAULT_DB_PATH = "data/bitworld.db"


def resolve_db_path() -> str:
    """Durable store location from ``BITWORLD_DB_PATH``."""
    return os.environ.get("BITWORLD_DB_PATH", DEFAULT_DB_PATH)


def load_config() -> WorldConfig:
    """Build a WorldConfig, applying ``BITWORLD_CONFIG_JSON`` if set."""
    raw = os.environ.get("BITWORLD_CONFIG_JSON")
    if not raw:
        return WorldConfig()
    config = WorldConfig.from_json(raw)
    for name, (default, value) in WorldConfig().diff(config).items():
        logger.info("Config override %s: %r -> %r", name, default, value)
    return config


def create_session(
    config: WorldConfig | None = None,
    renderer: OverlayRenderer | None = None,
    db_path: str | None = None,
) -> GameSession:
    """Create a GameSession backed by the SQLite durable store."""
    db_path = db_path or resolve_db_path()
    os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
    logger.info("Opening durable store at %s", db_path)
    return GameSession(
        config=config or load_config(),
        kv=KeyValueStore(db_path),
        renderer=renderer,
    )
