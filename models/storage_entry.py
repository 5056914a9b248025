"""
StorageEntry model - one JSON-encoded value in the local key/value store.
"""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StorageEntry(SQLModel, table=True):
    """Represents a persisted local state slot (e.g. profiles, user id)."""
    key: str = Field(primary_key=True)  # e.g., "user-id", "user-profiles"
    value: str  # JSON-encoded payload
    updated_at: datetime = Field(default_factory=utc_now)  # timezone-aware
