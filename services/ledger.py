"""
Transaction ledger for the active profile.
Adds and removes transactions and applies imports (replace, append, view),
persisting every change through the profile store.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from config import Settings, get_settings
from models import AssetType, Profile, Transaction, TransactionDraft, TransactionType
from services.common import Failure, new_transaction_id
from services.portfolio import PortfolioService
from services.profile_store import ProfileStore
from services.snapshot_codec import validate_payload

logger = logging.getLogger(__name__)


class ImportMode(str, Enum):
    REPLACE = "replace"
    APPEND = "append"
    VIEW = "view"


class ImportStatus(str, Enum):
    APPLIED = "applied"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    REJECTED = "rejected"


@dataclass
class PendingImport:
    """A replace-import waiting for the user to confirm."""
    profile_id: str
    transactions: List[Transaction]
    existing_count: int

    @property
    def incoming_count(self) -> int:
        return len(self.transactions)


@dataclass
class ImportOutcome:
    """What an import did, for the caller to report."""
    status: ImportStatus
    mode: ImportMode
    count: int = 0
    message: str = ""
    pending: Optional[PendingImport] = None
    profile: Optional[Profile] = None

    @property
    def applied(self) -> bool:
        return self.status == ImportStatus.APPLIED


class TransactionLedger:
    """
    Mutations of the active profile's transaction log.
    Every mutation writes the whole log back through ProfileStore.
    """

    def __init__(self, store: ProfileStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()
        self._pending: Optional[PendingImport] = None

    @property
    def transactions(self) -> List[Transaction]:
        """The active profile's log in entry order."""
        profile = self.store.get_active_profile()
        return list(profile.transactions) if profile else []

    @property
    def pending(self) -> Optional[PendingImport]:
        return self._pending

    def _commit(self, transactions: List[Transaction]) -> None:
        self.store.update_active_profile(transactions)

    # ==================== Single transactions ====================

    def add(self, draft: Union[TransactionDraft, Dict[str, Any]]) -> Optional[Transaction]:
        """
        Append a new transaction built from a draft.
        Invalid drafts (missing fields, non-positive numbers, or an equity
        sell larger than the held quantity) are rejected without mutation.

        Args:
            draft: TransactionDraft or a dict with the same fields

        Returns:
            The stored Transaction, or None if rejected
        """
        if not isinstance(draft, TransactionDraft):
            try:
                draft = TransactionDraft.model_validate(draft)
            except ValidationError as e:
                logger.info(f"Rejected transaction draft: {e.error_count()} invalid field(s)")
                return None

        current = self.transactions
        if draft.asset_type == AssetType.STOCK and draft.transaction_type == TransactionType.SELL:
            held = PortfolioService.available_quantity(current, draft.symbol, draft.asset_type)
            if draft.quantity > held:
                logger.info(f"Rejected sell of {draft.quantity:g} {draft.symbol}: only {held:g} held")
                return None

        transaction = Transaction(
            id=new_transaction_id(),
            symbol=draft.symbol,
            symbol_name=draft.symbol_name,
            symbol_details=draft.symbol_details if draft.asset_type == AssetType.STOCK else None,
            asset_type=draft.asset_type,
            quantity=draft.quantity,
            price=draft.price,
            transaction_date=date.today(),
            transaction_type=draft.transaction_type,
            created_at=datetime.now(timezone.utc),
        )
        self._commit(current + [transaction])
        logger.info(f"Added {transaction.transaction_type.value} of {transaction.quantity:g} {transaction.symbol}")
        return transaction

    def remove(self, transaction_id: str) -> bool:
        """Drop one transaction by id. Returns False if it was not in the log."""
        current = self.transactions
        remaining = [tx for tx in current if tx.id != transaction_id]
        if len(remaining) == len(current):
            return False
        self._commit(remaining)
        logger.info(f"Removed transaction {transaction_id}")
        return True

    def clear_all(self, confirmation: str) -> bool:
        """
        Empty the active log. Irreversible, so the caller must pass the
        configured confirmation word (compared case-insensitively).
        """
        expected = self.settings.clear_confirmation_word
        if (confirmation or "").strip().lower() != expected.lower():
            logger.info("Clear-all not confirmed")
            return False
        self._commit([])
        self._pending = None
        logger.info("Cleared all transactions of the active profile")
        return True

    # ==================== Imports ====================

    def import_replace(self, transactions: List[Transaction]) -> ImportOutcome:
        """
        Replace the active log. Applies at once when the log is empty;
        otherwise stages the data until confirm_pending() is called.
        """
        current = self.transactions
        if not current:
            self._commit(list(transactions))
            return ImportOutcome(
                status=ImportStatus.APPLIED,
                mode=ImportMode.REPLACE,
                count=len(transactions),
                message=f"{len(transactions)} transaction(s) imported",
            )

        self._pending = PendingImport(
            profile_id=self.store.active_profile_id,
            transactions=list(transactions),
            existing_count=len(current),
        )
        return ImportOutcome(
            status=ImportStatus.AWAITING_CONFIRMATION,
            mode=ImportMode.REPLACE,
            count=len(transactions),
            message=(
                f"Replace {len(current)} existing transaction(s) "
                f"with {len(transactions)} imported transaction(s)?"
            ),
            pending=self._pending,
        )

    def confirm_pending(self) -> ImportOutcome:
        """Apply the staged replace-import."""
        pending = self._pending
        self._pending = None
        if pending is None:
            return ImportOutcome(status=ImportStatus.REJECTED, mode=ImportMode.REPLACE, message="Nothing to confirm")
        if pending.profile_id != self.store.active_profile_id:
            logger.warning("Active profile changed since the import was staged, discarding it")
            return ImportOutcome(
                status=ImportStatus.REJECTED,
                mode=ImportMode.REPLACE,
                message="Active profile changed, import discarded",
            )

        self._commit(pending.transactions)
        return ImportOutcome(
            status=ImportStatus.APPLIED,
            mode=ImportMode.REPLACE,
            count=pending.incoming_count,
            message=f"{pending.incoming_count} transaction(s) imported",
        )

    def cancel_pending(self) -> bool:
        """Discard a staged import; the log is left unchanged."""
        had_pending = self._pending is not None
        self._pending = None
        return had_pending

    def import_append(self, transactions: List[Transaction]) -> ImportOutcome:
        """Add imported transactions after the existing ones. Non-destructive, no confirmation."""
        self._commit(self.transactions + list(transactions))
        return ImportOutcome(
            status=ImportStatus.APPLIED,
            mode=ImportMode.APPEND,
            count=len(transactions),
            message=f"{len(transactions)} transaction(s) appended",
        )

    def import_view(self, owner_id: str, transactions: List[Transaction]) -> ImportOutcome:
        """
        Register the data as its own profile and switch to it.
        The previously active log is not touched.
        """
        if owner_id == self.store.owner_id:
            return ImportOutcome(
                status=ImportStatus.REJECTED,
                mode=ImportMode.VIEW,
                message="This snapshot belongs to you; use replace or append instead",
            )

        profile = self.store.add_profile(owner_id, transactions)
        self.store.switch_profile(owner_id)
        return ImportOutcome(
            status=ImportStatus.APPLIED,
            mode=ImportMode.VIEW,
            count=len(transactions),
            message=f"Profile {profile.label} added in view mode",
            profile=profile,
        )

    def import_payload(self, text: str, mode: ImportMode = ImportMode.REPLACE) -> ImportOutcome:
        """
        Validate a clipboard/file/URL payload and import it.
        Any validation failure rejects the whole import with no mutation.
        """
        mode = ImportMode(mode)
        result = validate_payload(text)
        if isinstance(result, Failure):
            logger.warning(f"Rejected import: {result.error}")
            return ImportOutcome(status=ImportStatus.REJECTED, mode=mode, message=result.error)

        snapshot = result.value
        if mode == ImportMode.VIEW:
            return self.import_view(snapshot.user, snapshot.transactions)
        elif mode == ImportMode.APPEND:
            return self.import_append(snapshot.transactions)
        return self.import_replace(snapshot.transactions)
