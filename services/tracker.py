"""
Portfolio tracker: the glue between ledger, profiles, prices and valuation.
Refreshes prices on demand, on a timer, and whenever the log's size changes.
"""

import logging
from typing import List, Optional

from config import Settings, get_settings
from models import Profile, Transaction
from services.ledger import TransactionLedger
from services.market_data import MarketDataService, PriceBook, make_price_lookup
from services.portfolio import PortfolioService, PortfolioTotals, PositionSummary
from services.profile_store import ProfileStore
from services.refresh import AutoRefresh, load_refresh_preferences
from services.snapshot_codec import parse_and_clear

logger = logging.getLogger(__name__)


class PortfolioTracker:
    """Owns the latest PriceBook and recomputes summaries from it."""

    def __init__(
        self,
        store: Optional[ProfileStore] = None,
        market: Optional[MarketDataService] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        self.store = store or ProfileStore()
        self.store.initialize()
        self.ledger = TransactionLedger(self.store, self.settings)
        self.market = market or MarketDataService(self.settings)
        self.prices = PriceBook()
        self.auto_refresh = AutoRefresh(self.refresh_prices)
        self._seen_count = len(self.ledger.transactions)

    @property
    def transactions(self) -> List[Transaction]:
        return self.ledger.transactions

    def refresh_prices(self) -> PriceBook:
        """Fetch prices for the active log (explicit or timer-triggered)."""
        self.prices = self.market.refresh_prices(self.transactions, self.prices)
        return self.prices

    def on_log_changed(self) -> bool:
        """
        Refresh when the number of transactions changed since the last check,
        and re-sync the timer (it stops once the log becomes empty).

        Returns:
            True if a refresh ran
        """
        count = len(self.transactions)
        changed = count != self._seen_count
        self._seen_count = count
        if changed and count > 0:
            self.refresh_prices()
        self.sync_auto_refresh()
        return changed and count > 0

    def sync_auto_refresh(self) -> bool:
        enabled, interval = load_refresh_preferences(self.settings)
        return self.auto_refresh.sync(enabled, interval, bool(self.transactions))

    def positions(self) -> List[PositionSummary]:
        lookup = make_price_lookup(self.prices, self.settings.crypto_conversion_rate)
        return PortfolioService.calculate_positions(self.transactions, lookup)

    def totals(self) -> PortfolioTotals:
        return PortfolioService.calculate_totals(self.positions())

    def report(self) -> str:
        return PortfolioService.format_report(
            self.totals(), len(self.transactions), self.settings.local_currency
        )

    def switch_profile(self, profile_id: str) -> List[Transaction]:
        self.ledger.cancel_pending()
        transactions = self.store.switch_profile(profile_id)
        self.on_log_changed()
        return transactions

    def open_shared_url(self, url: str) -> tuple:
        """
        Register a profile from a share link carrying someone else's snapshot.

        Returns:
            (added Profile or None, url with the snapshot stripped)
        """
        snapshot, cleaned = parse_and_clear(url)
        if snapshot is None:
            return None, cleaned
        if snapshot.user in (self.store.active_profile_id, self.store.owner_id):
            logger.info("Shared snapshot is the active or own profile, ignoring it")
            return None, cleaned

        profile: Profile = self.store.add_profile(snapshot.user, snapshot.transactions)
        return profile, cleaned

    def close(self):
        self.auto_refresh.shutdown()
