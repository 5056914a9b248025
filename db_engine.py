"""
SQLite engine for the FolioLedger key/value store.
Every slot (user id, profiles, legacy transactions, preferences) is a row of
one table, so the engine is created once and shared by all repositories.
"""

from sqlmodel import SQLModel, create_engine
from typing import Optional
import logging

from config import get_settings

logger = logging.getLogger(__name__)

_engine: Optional[object] = None


def get_engine():
    """Return the shared engine, creating it from the current settings on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(
            settings.database_url,
            echo=settings.db_echo,
            # the refresh scheduler thread reads the store too
            connect_args={"check_same_thread": False},
        )
        _configure_sqlite()
    return _engine


def _configure_sqlite():
    """WAL journal plus a busy timeout so a CLI run and a watch loop can share the file."""
    if _engine is None:
        return

    try:
        with _engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")
            conn.exec_driver_sql("PRAGMA busy_timeout=5000")
    except Exception as e:
        logger.warning(f"Could not configure SQLite journal: {e}")


def reset_engine():
    """Dispose the current engine so the next call picks up fresh settings."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def init_db():
    """Create the storage table if it does not exist yet."""
    from models import StorageEntry  # noqa: F401  (registers the table)

    SQLModel.metadata.create_all(get_engine())
    logger.info(f"Local store ready at {get_settings().database_url}")
