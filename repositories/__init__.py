"""
Repositories package for FolioLedger.
Provides data access layer for all local state.
"""

from repositories.storage_repository import StorageRepository
from repositories.transaction_repository import TransactionRepository
from repositories.profile_repository import ProfileRepository
from repositories.user_preferences_repository import UserPreferencesRepository

__all__ = [
    'StorageRepository',
    'TransactionRepository',
    'ProfileRepository',
    'UserPreferencesRepository',
]
