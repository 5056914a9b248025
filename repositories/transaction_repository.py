"""
Transaction Repository - the owner's canonical transaction list.
This slot predates profiles and is kept in sync with the owner profile.
"""

import logging
from typing import List, Optional
from pydantic import ValidationError
from sqlmodel import Session

from models import Transaction
from repositories.storage_repository import StorageRepository

logger = logging.getLogger(__name__)

TRANSACTIONS_KEY = "stock-transactions"


class TransactionRepository:
    """Repository for the legacy owner transaction slot."""

    @staticmethod
    def get_all(session: Optional[Session] = None) -> List[Transaction]:
        """
        Retrieve the persisted owner transactions.
        Entries that no longer validate are skipped and logged.

        Args:
            session: Optional existing session for transaction reuse

        Returns:
            List of Transaction objects in stored order
        """
        raw = StorageRepository.get(TRANSACTIONS_KEY, default=[], session=session)
        if not isinstance(raw, list):
            logger.error(f"'{TRANSACTIONS_KEY}' does not hold a list, ignoring it")
            return []

        transactions = []
        for item in raw:
            try:
                transactions.append(Transaction.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable stored transaction: {e}")
        return transactions

    @staticmethod
    def save_all(transactions: List[Transaction], session: Optional[Session] = None) -> None:
        """
        Overwrite the slot with the given transactions.

        Args:
            transactions: Full ordered list to persist
            session: Optional existing session for transaction reuse
        """
        StorageRepository.set(
            TRANSACTIONS_KEY,
            [tx.to_wire() for tx in transactions],
            session=session
        )
