"""
Storage Repository - data access layer for the StorageEntry key/value table.
Values are JSON-encoded. Optimized with optional session parameter so several
keys can be written in one commit.
"""

import json
import logging
from typing import Any, Optional

from sqlmodel import Session

from db_engine import get_engine
from models import StorageEntry
from models.storage_entry import utc_now

logger = logging.getLogger(__name__)


class StorageRepository:
    """Repository for JSON values keyed by name."""

    @staticmethod
    def get(key: str, default: Any = None, session: Optional[Session] = None) -> Any:
        """
        Read and decode a stored value.

        Args:
            key: Storage key
            default: Returned when the key is missing or holds invalid JSON
            session: Optional existing session for transaction reuse

        Returns:
            Decoded JSON value, or default
        """
        def _get(sess: Session) -> Any:
            entry = sess.get(StorageEntry, key)
            if entry is None:
                return default
            try:
                return json.loads(entry.value)
            except json.JSONDecodeError as e:
                logger.error(f"Stored value for '{key}' is not valid JSON: {e}")
                return default

        if session is not None:
            return _get(session)
        else:
            with Session(get_engine()) as session:
                return _get(session)

    @staticmethod
    def set(key: str, value: Any, session: Optional[Session] = None) -> None:
        """
        Encode and store a value, replacing any previous one.
        When a session is passed the caller owns the commit.

        Args:
            key: Storage key
            value: JSON-serializable value
            session: Optional existing session for transaction reuse
        """
        def _set(sess: Session) -> None:
            entry = sess.get(StorageEntry, key)
            encoded = json.dumps(value, ensure_ascii=False)
            if entry:
                entry.value = encoded
                entry.updated_at = utc_now()
            else:
                entry = StorageEntry(key=key, value=encoded)
            sess.add(entry)

        if session is not None:
            _set(session)
        else:
            with Session(get_engine()) as session:
                try:
                    _set(session)
                    session.commit()
                except Exception as e:
                    session.rollback()
                    raise e
