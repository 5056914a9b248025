"""Tests for services.tracker."""

import pytest

from services import snapshot_codec
from services.market_data import MarketDataService, PriceBook
from services.refresh import save_refresh_preferences
from services.tracker import PortfolioTracker

OTHER_ID = "99998888-0000-4000-8000-000000000000"


class FakeMarket(MarketDataService):
    """Serves fixed prices and counts refreshes."""

    def __init__(self, settings):
        super().__init__(settings)
        self.refreshes = 0

    def refresh_prices(self, transactions, book=None):
        self.refreshes += 1
        book = book or PriceBook()
        book.stocks["THYAO"] = 300.0
        return book


@pytest.fixture
def tracker(settings):
    tracker = PortfolioTracker(market=FakeMarket(settings), settings=settings)
    yield tracker
    tracker.close()


def _draft(**overrides):
    draft = {"symbol": "THYAO", "symbolName": "THY", "assetType": "stock", "quantity": 10, "price": 250, "type": "buy"}
    draft.update(overrides)
    return draft


class TestValuation:
    def test_totals_use_refreshed_prices(self, tracker) -> None:
        tracker.ledger.add(_draft())
        tracker.refresh_prices()
        totals = tracker.totals()
        assert totals.total_value == pytest.approx(3000)
        assert totals.total_pnl == pytest.approx(500)
        assert "THYAO" in tracker.report()

    def test_refresh_on_log_size_change_only(self, tracker) -> None:
        tracker.ledger.add(_draft())
        assert tracker.on_log_changed() is True
        assert tracker.on_log_changed() is False
        assert tracker.market.refreshes == 1

    def test_auto_refresh_follows_log(self, tracker) -> None:
        save_refresh_preferences(enabled=True, interval=30, settings=tracker.settings)
        tracker.ledger.add(_draft())
        tracker.on_log_changed()
        assert tracker.auto_refresh.is_scheduled

        tracker.ledger.clear_all("delete")
        tracker.on_log_changed()
        assert not tracker.auto_refresh.is_scheduled


class TestProfiles:
    def test_open_shared_url_adds_profile(self, tracker, make_tx) -> None:
        snapshot = snapshot_codec.make_snapshot(OTHER_ID, [make_tx()])
        url = snapshot_codec.build_share_url("https://example.com/app?x=1", snapshot)

        profile, cleaned = tracker.open_shared_url(url)
        assert profile.id == OTHER_ID
        assert cleaned == "https://example.com/app?x=1"
        assert tracker.store.active_profile_id == tracker.store.owner_id

    def test_own_snapshot_is_ignored(self, tracker, make_tx) -> None:
        tracker.ledger.add(_draft())
        snapshot = snapshot_codec.make_snapshot(tracker.store.owner_id, [])
        profile, _ = tracker.open_shared_url(snapshot_codec.build_share_url("https://example.com/", snapshot))
        assert profile is None
        assert len(tracker.transactions) == 1

    def test_switch_discards_pending_import(self, tracker, make_tx) -> None:
        tracker.ledger.add(_draft())
        tracker.ledger.import_replace([make_tx()])
        tracker.store.add_profile(OTHER_ID, [make_tx()])

        tracker.switch_profile(OTHER_ID)
        assert tracker.ledger.pending is None
        assert tracker.transactions[0].symbol == "THYAO"
