"""
Profile Repository - data access layer for the profile registry.
The registry is stored as one JSON array so every write replaces it whole.
"""

import logging
from typing import List, Optional
from pydantic import ValidationError
from sqlmodel import Session

from models import Profile
from repositories.storage_repository import StorageRepository

logger = logging.getLogger(__name__)

PROFILES_KEY = "user-profiles"


class ProfileRepository:
    """Repository for the persisted profile list."""

    @staticmethod
    def get_all(session: Optional[Session] = None) -> List[Profile]:
        """
        Load every stored profile.

        Args:
            session: Optional existing session for transaction reuse

        Returns:
            List of Profile objects (empty if nothing usable is stored)
        """
        raw = StorageRepository.get(PROFILES_KEY, default=[], session=session)
        if not isinstance(raw, list):
            logger.error(f"'{PROFILES_KEY}' does not hold a list, ignoring it")
            return []

        profiles = []
        for item in raw:
            try:
                profiles.append(Profile.model_validate(item))
            except ValidationError as e:
                logger.error(f"Could not load stored profile: {e}")
        return profiles

    @staticmethod
    def save_all(profiles: List[Profile], session: Optional[Session] = None) -> None:
        """
        Replace the stored registry.

        Args:
            profiles: All profiles to keep
            session: Optional existing session for transaction reuse
        """
        StorageRepository.set(
            PROFILES_KEY,
            [profile.to_wire() for profile in profiles],
            session=session
        )
