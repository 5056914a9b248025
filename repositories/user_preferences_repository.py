"""
UserPreferences Repository - local identity and refresh preferences.
"""

from typing import Optional
from sqlmodel import Session

from repositories.storage_repository import StorageRepository

USER_ID_KEY = "user-id"
ACTIVE_PROFILE_KEY = "active-profile"
AUTO_REFRESH_KEY = "auto-refresh"
REFRESH_INTERVAL_KEY = "refresh-interval"


class UserPreferencesRepository:
    """Repository for small per-device settings."""

    @staticmethod
    def get_user_id() -> Optional[str]:
        """Retrieve the persisted local user id, if any."""
        value = StorageRepository.get(USER_ID_KEY)
        return value if isinstance(value, str) and value else None

    @staticmethod
    def save_user_id(user_id: str) -> None:
        StorageRepository.set(USER_ID_KEY, user_id)

    @staticmethod
    def get_active_profile_id(session: Optional[Session] = None) -> Optional[str]:
        value = StorageRepository.get(ACTIVE_PROFILE_KEY, session=session)
        return value if isinstance(value, str) and value else None

    @staticmethod
    def save_active_profile_id(profile_id: str, session: Optional[Session] = None) -> None:
        StorageRepository.set(ACTIVE_PROFILE_KEY, profile_id, session=session)

    @staticmethod
    def get_auto_refresh() -> bool:
        """Whether periodic price refresh is enabled (default off)."""
        return StorageRepository.get(AUTO_REFRESH_KEY, default=False) is True

    @staticmethod
    def save_auto_refresh(enabled: bool) -> None:
        StorageRepository.set(AUTO_REFRESH_KEY, bool(enabled))

    @staticmethod
    def get_refresh_interval() -> Optional[int]:
        """
        Stored refresh interval in seconds.
        Older data keeps it as a string ("30"), so both forms are read.
        """
        value = StorageRepository.get(REFRESH_INTERVAL_KEY)
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
        return None

    @staticmethod
    def save_refresh_interval(seconds: int) -> None:
        StorageRepository.set(REFRESH_INTERVAL_KEY, int(seconds))
