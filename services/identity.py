"""
Local identity for FolioLedger.
Generates and persists a random UUID that names the owner profile.
"""

import logging
import random
import uuid

from repositories import UserPreferencesRepository

logger = logging.getLogger(__name__)

UUID_TEMPLATE = "xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx"


def generate_user_id() -> str:
    """
    Generate a version-4 UUID string.
    Uses the OS cryptographic source; when that is unavailable, falls back to
    the `random` module while keeping the v4 layout (version nibble 4,
    variant nibble 8-b).
    """
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        logger.warning("No OS randomness source, using pseudo-random user id")

    def _nibble(char: str) -> str:
        r = random.randint(0, 15)
        value = r if char == "x" else (r & 0x3) | 0x8
        return format(value, "x")

    return "".join(_nibble(c) if c in "xy" else c for c in UUID_TEMPLATE)


def profile_label(user_id: str, owner_id: str) -> str:
    """Display label for a profile: the owner's own view or someone else's."""
    if user_id == owner_id:
        return f"You ({user_id[:8]})"
    return f"Profile {user_id[:8]}"


class IdentityProvider:
    """Provides the stable local user id."""

    def __init__(self):
        self._user_id = None

    def get_user_id(self) -> str:
        """
        Return the persisted user id, creating and storing one on first use.
        Idempotent across calls and processes sharing the same database.
        """
        if self._user_id:
            return self._user_id

        user_id = UserPreferencesRepository.get_user_id()
        if not user_id:
            user_id = generate_user_id()
            UserPreferencesRepository.save_user_id(user_id)
            logger.info(f"Created local user id {user_id[:8]}...")

        self._user_id = user_id
        return user_id
