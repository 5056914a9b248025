"""
Data models for FolioLedger.
The storage table is a SQLModel; domain records are pydantic models.
"""

from models.storage_entry import StorageEntry
from models.transaction import AssetType, Transaction, TransactionDraft, TransactionType
from models.profile import Profile
from models.snapshot import Snapshot

__all__ = [
    'StorageEntry',
    'AssetType',
    'Transaction',
    'TransactionDraft',
    'TransactionType',
    'Profile',
    'Snapshot',
]
