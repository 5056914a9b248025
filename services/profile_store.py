"""
Profile store for FolioLedger.
Keeps a registry of named transaction logs (the owner's own plus imported
ones), tracks which one is active, and mirrors the owner's log into the
legacy transaction slot.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlmodel import Session

from db_engine import get_engine
from models import Profile, Transaction
from repositories import ProfileRepository, TransactionRepository, UserPreferencesRepository
from services.identity import IdentityProvider, profile_label

logger = logging.getLogger(__name__)


class ProfileStore:
    """
    Registry of profiles with exactly one active profile.
    All operations are total: misuse degrades to a no-op or an empty result.
    """

    def __init__(self, identity: Optional[IdentityProvider] = None):
        self.identity = identity or IdentityProvider()
        self._profiles: Dict[str, Profile] = {}
        self._active_id: str = ""
        self._initialized = False

    @property
    def owner_id(self) -> str:
        return self.identity.get_user_id()

    @property
    def active_profile_id(self) -> str:
        return self._active_id

    def initialize(self) -> Profile:
        """
        Load persisted profiles and make sure the owner profile exists.
        On first run the owner profile is built from the legacy transaction
        slot. Safe to call repeatedly.

        Returns:
            The owner profile
        """
        owner_id = self.owner_id

        with Session(get_engine()) as session:
            profiles = ProfileRepository.get_all(session=session)
            self._profiles = {p.id: p for p in profiles}

            owner = self._profiles.get(owner_id)
            if owner is None:
                transactions = TransactionRepository.get_all(session=session)
                owner = Profile(
                    id=owner_id,
                    label=profile_label(owner_id, owner_id),
                    transactions=transactions,
                    is_owner=True,
                    last_updated=datetime.now(),
                )
                self._profiles[owner_id] = owner
                logger.info(f"Created owner profile with {len(transactions)} transaction(s)")

            # Imported data can never claim ownership
            for profile_id, profile in list(self._profiles.items()):
                expected = profile_id == owner_id
                if profile.is_owner != expected:
                    self._profiles[profile_id] = profile.model_copy(update={"is_owner": expected})

            stored_active = UserPreferencesRepository.get_active_profile_id(session=session)
            self._active_id = stored_active if stored_active in self._profiles else owner_id

            ProfileRepository.save_all(list(self._profiles.values()), session=session)
            session.commit()

        self._initialized = True
        return self._profiles[owner_id]

    def _ensure_initialized(self):
        if not self._initialized:
            self.initialize()

    def list_profiles(self) -> List[Profile]:
        """All profiles, owner first."""
        self._ensure_initialized()
        return sorted(self._profiles.values(), key=lambda p: not p.is_owner)

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        self._ensure_initialized()
        return self._profiles.get(profile_id)

    def get_active_profile(self) -> Optional[Profile]:
        self._ensure_initialized()
        return self._profiles.get(self._active_id)

    def add_profile(self, profile_id: str, transactions: List[Transaction], label: Optional[str] = None) -> Profile:
        """
        Insert a profile, replacing any existing profile with the same id.
        Transactions are not merged: the last write wins.

        Args:
            profile_id: Owner identity of the data
            transactions: The profile's full log
            label: Optional display name

        Returns:
            The stored profile
        """
        self._ensure_initialized()
        owner_id = self.owner_id
        profile = Profile(
            id=profile_id,
            label=label or profile_label(profile_id, owner_id),
            transactions=list(transactions),
            is_owner=profile_id == owner_id,
            last_updated=datetime.now(),
        )
        self._profiles[profile_id] = profile

        with Session(get_engine()) as session:
            ProfileRepository.save_all(list(self._profiles.values()), session=session)
            if profile.is_owner:
                TransactionRepository.save_all(profile.transactions, session=session)
            session.commit()

        logger.info(f"Stored profile {profile.label} ({len(profile.transactions)} transaction(s))")
        return profile

    def switch_profile(self, profile_id: str) -> List[Transaction]:
        """
        Make a profile active and return its transactions.
        Switching to an unknown id yields an empty list.
        """
        self._ensure_initialized()
        self._active_id = profile_id
        UserPreferencesRepository.save_active_profile_id(profile_id)

        profile = self._profiles.get(profile_id)
        if profile is None:
            logger.warning(f"Switched to unknown profile {profile_id[:8]}")
            return []
        return list(profile.transactions)

    def update_active_profile(self, transactions: List[Transaction]) -> None:
        """
        Overwrite the active profile's log and bump its timestamp.
        When the owner profile is active the legacy slot is written in the
        same commit.
        """
        self._ensure_initialized()
        profile = self._profiles.get(self._active_id)
        if profile is None:
            logger.warning(f"No active profile to update ({self._active_id[:8]})")
            return

        self._profiles[profile.id] = profile.model_copy(
            update={"transactions": list(transactions), "last_updated": datetime.now()}
        )

        with Session(get_engine()) as session:
            ProfileRepository.save_all(list(self._profiles.values()), session=session)
            if profile.id == self.owner_id:
                TransactionRepository.save_all(transactions, session=session)
            session.commit()

    def remove_profile(self, profile_id: str) -> bool:
        """
        Delete a profile. The owner profile is protected.

        Returns:
            True if a profile was removed
        """
        self._ensure_initialized()
        owner_id = self.owner_id
        if profile_id == owner_id:
            logger.info("Refusing to remove the owner profile")
            return False
        if profile_id not in self._profiles:
            return False

        del self._profiles[profile_id]
        with Session(get_engine()) as session:
            ProfileRepository.save_all(list(self._profiles.values()), session=session)
            if self._active_id == profile_id:
                self._active_id = owner_id
                UserPreferencesRepository.save_active_profile_id(owner_id, session=session)
            session.commit()

        logger.info(f"Removed profile {profile_id[:8]}")
        return True
