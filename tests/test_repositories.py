"""Tests for the key/value repositories."""

from datetime import datetime

from sqlmodel import Session

from db_engine import get_engine
from models import Profile, StorageEntry
from repositories import ProfileRepository, StorageRepository, TransactionRepository
from repositories.transaction_repository import TRANSACTIONS_KEY


class TestStorageRepository:
    def test_missing_key_returns_default(self) -> None:
        assert StorageRepository.get("nothing") is None
        assert StorageRepository.get("nothing", default=[]) == []

    def test_set_overwrites(self) -> None:
        StorageRepository.set("auto-refresh", True)
        StorageRepository.set("auto-refresh", False)
        assert StorageRepository.get("auto-refresh") is False

    def test_shared_session_commits_together(self) -> None:
        with Session(get_engine()) as session:
            StorageRepository.set("a", 1, session=session)
            StorageRepository.set("b", {"x": [1, 2]}, session=session)
            session.rollback()
        assert StorageRepository.get("a") is None

        with Session(get_engine()) as session:
            StorageRepository.set("a", 1, session=session)
            StorageRepository.set("b", {"x": [1, 2]}, session=session)
            session.commit()
        assert StorageRepository.get("a") == 1
        assert StorageRepository.get("b") == {"x": [1, 2]}


class TestTransactionRepository:
    def test_round_trip_keeps_order(self, make_tx) -> None:
        txs = [make_tx(id="b"), make_tx(id="a")]
        TransactionRepository.save_all(txs)
        assert TransactionRepository.get_all() == txs

    def test_unreadable_entries_skipped(self, make_tx) -> None:
        good = make_tx()
        StorageRepository.set(TRANSACTIONS_KEY, [good.to_wire(), {"id": "broken"}])
        assert TransactionRepository.get_all() == [good]

    def test_non_list_slot_ignored(self) -> None:
        StorageRepository.set(TRANSACTIONS_KEY, {"not": "a list"})
        assert TransactionRepository.get_all() == []


def test_profiles_stored_with_camel_case_keys(make_tx) -> None:
    profile = Profile(id="p1", label="Profile p1", transactions=[make_tx()], is_owner=False,
                      last_updated=datetime(2024, 1, 2, 3, 4))
    ProfileRepository.save_all([profile])
    [stored] = StorageRepository.get("user-profiles")
    assert {"id", "label", "transactions", "isOwner", "lastUpdated"} <= set(stored)
    assert ProfileRepository.get_all() == [profile]


class TestStorageTimestamps:
    def test_insert_and_update_use_aware_timestamps(self) -> None:
        with Session(get_engine()) as session:
            StorageRepository.set("user-id", "abc", session=session)
            session.flush()
            entry = session.get(StorageEntry, "user-id")
            assert entry.updated_at.tzinfo is not None

            StorageRepository.set("user-id", "def", session=session)
            assert session.get(StorageEntry, "user-id").updated_at.tzinfo is not None
            session.commit()

        StorageRepository.set("user-id", "ghi")
        assert StorageRepository.get("user-id") == "ghi"
