"""Shared test fixtures."""

import itertools
from datetime import date, datetime, timezone

import pytest

from config import reload_settings
from db_engine import init_db, reset_engine
from models import Transaction


@pytest.fixture(autouse=True)
def settings(tmp_path, monkeypatch):
    """Fresh SQLite file per test so persisted state never leaks between tests."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'ledger.db'}")
    monkeypatch.setenv("CRYPTO_CONVERSION_RATE", "34")
    reset_engine()
    current = reload_settings()
    init_db()
    yield current
    reset_engine()


@pytest.fixture
def make_tx():
    """Factory for Transaction objects with unique ids and increasing creation times."""
    counter = itertools.count(1)

    def _make(
        symbol: str = "THYAO",
        tx_type: str = "buy",
        quantity: float = 1,
        price: float = 1,
        asset_type: str = "stock",
        symbol_name: str = None,
        **extra
    ) -> Transaction:
        n = next(counter)
        return Transaction(
            id=extra.pop("id", f"tx-{n}"),
            symbol=symbol,
            symbol_name=symbol_name or symbol,
            asset_type=asset_type,
            quantity=quantity,
            price=price,
            transaction_date=extra.pop("transaction_date", date(2024, 1, 1)),
            transaction_type=tx_type,
            created_at=extra.pop("created_at", datetime(2024, 1, 1, 10, n % 60, tzinfo=timezone.utc)),
            **extra
        )

    return _make
