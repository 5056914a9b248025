"""
Portfolio service for calculating positions, cost basis, and PnL.
Weighted-average cost per (symbol, asset type) position, valued through an
injected price lookup. Pure: nothing here reads or writes storage.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from models import AssetType, Transaction, TransactionType

logger = logging.getLogger(__name__)

PriceLookup = Callable[[Transaction], float]

ASSET_LABELS = {
    AssetType.STOCK: "Stock",
    AssetType.CURRENCY: "Currency",
    AssetType.GOLD: "Gold",
    AssetType.BANK: "Bank FX",
    AssetType.CRYPTO: "Crypto",
}


@dataclass
class CostBasis:
    """Running quantity and deployed capital for one position."""
    total_quantity: float = 0.0
    total_cost: float = 0.0

    @property
    def average_cost(self) -> float:
        if self.total_quantity > 0:
            return self.total_cost / self.total_quantity
        return 0.0


@dataclass
class PositionSummary:
    """Derived view of one position. Price fields are volatile."""
    symbol: str
    symbol_name: str
    asset_type: AssetType
    total_quantity: float
    average_cost: float
    total_cost: float
    current_price: float
    market_value: float
    profit_loss: float
    profit_loss_pct: float
    symbol_details: Optional[Dict[str, Any]] = None

    @property
    def is_active(self) -> bool:
        return self.total_quantity > 0


@dataclass
class PortfolioTotals:
    """Aggregate figures over active holdings only."""
    total_value: float
    total_cost: float
    total_pnl: float
    total_pnl_pct: float
    holdings: List[PositionSummary] = field(default_factory=list)


@dataclass
class TransactionStats:
    buy_count: int
    sell_count: int
    unique_assets: int
    total_value: float


class PortfolioService:
    """
    Service for portfolio calculations.
    Processes transactions in the order given: entry order matters for the
    running average.
    """

    @staticmethod
    def group_positions(transactions: Iterable[Transaction]) -> Dict[Tuple[str, AssetType], List[Transaction]]:
        """
        Partition transactions by (symbol, asset type), keeping first-seen
        order of positions and entry order within each position.
        """
        groups: Dict[Tuple[str, AssetType], List[Transaction]] = {}
        for tx in transactions:
            groups.setdefault(tx.position_key, []).append(tx)
        return groups

    @staticmethod
    def accumulate_cost(transactions: Iterable[Transaction]) -> CostBasis:
        """
        Weighted-average cost accumulation.

        A buy adds q units and q*p capital. A sell removes q units and cost
        proportional to the average before the sell; a sell with nothing held
        leaves cost unchanged.
        """
        basis = CostBasis()
        for tx in transactions:
            if tx.transaction_type == TransactionType.BUY:
                basis.total_quantity += tx.quantity
                basis.total_cost += tx.quantity * tx.price
            else:
                quantity_before = basis.total_quantity
                if quantity_before > 0:
                    basis.total_cost -= tx.quantity * (basis.total_cost / quantity_before)
                basis.total_quantity -= tx.quantity
        return basis

    @staticmethod
    def _safe_price(price_lookup: PriceLookup, tx: Transaction) -> float:
        """Call the lookup; anything unusable counts as price 0."""
        try:
            price = price_lookup(tx)
        except Exception as e:
            logger.error(f"Price lookup failed for {tx.symbol} ({tx.asset_type.value}): {e}")
            return 0.0
        if price is None:
            return 0.0
        try:
            price = float(price)
        except (TypeError, ValueError):
            logger.warning(f"Unusable price {price!r} for {tx.symbol}")
            return 0.0
        return price if math.isfinite(price) else 0.0

    @staticmethod
    def summarize_position(transactions: List[Transaction], price_lookup: PriceLookup) -> PositionSummary:
        """
        Build the summary for one position's transactions.

        Args:
            transactions: Non-empty list sharing one position key, in entry order
            price_lookup: Capability returning the current unit price (0 if unknown)

        Returns:
            PositionSummary with cost basis and live valuation
        """
        first = transactions[0]
        basis = PortfolioService.accumulate_cost(transactions)

        current_price = PortfolioService._safe_price(price_lookup, first)
        market_value = basis.total_quantity * current_price
        profit_loss = market_value - basis.total_cost
        pnl_pct = (profit_loss / basis.total_cost * 100) if basis.total_cost > 0 else 0.0
        if math.isnan(pnl_pct):
            pnl_pct = 0.0

        return PositionSummary(
            symbol=first.symbol,
            symbol_name=first.symbol_name,
            symbol_details=first.symbol_details,
            asset_type=first.asset_type,
            total_quantity=basis.total_quantity,
            average_cost=basis.average_cost,
            total_cost=basis.total_cost,
            current_price=current_price,
            market_value=market_value,
            profit_loss=profit_loss,
            profit_loss_pct=pnl_pct,
        )

    @staticmethod
    def calculate_positions(transactions: Iterable[Transaction], price_lookup: PriceLookup) -> List[PositionSummary]:
        """Summaries for every position that has at least one transaction."""
        groups = PortfolioService.group_positions(transactions)
        return [
            PortfolioService.summarize_position(group, price_lookup)
            for group in groups.values()
        ]

    @staticmethod
    def calculate_totals(summaries: Iterable[PositionSummary]) -> PortfolioTotals:
        """
        Aggregate value, cost and PnL over positions with quantity > 0.
        Closed or oversold positions stay in history but not in totals.
        """
        holdings = [s for s in summaries if s.is_active]
        total_value = sum(s.market_value for s in holdings)
        total_cost = sum(s.total_cost for s in holdings)
        total_pnl = total_value - total_cost
        total_pnl_pct = (total_pnl / total_cost * 100) if total_cost > 0 else 0.0

        return PortfolioTotals(
            total_value=total_value,
            total_cost=total_cost,
            total_pnl=total_pnl,
            total_pnl_pct=total_pnl_pct,
            holdings=holdings,
        )

    @staticmethod
    def calculate_portfolio(transactions: Iterable[Transaction], price_lookup: PriceLookup) -> PortfolioTotals:
        """Positions and totals in one call."""
        return PortfolioService.calculate_totals(
            PortfolioService.calculate_positions(transactions, price_lookup)
        )

    @staticmethod
    def available_quantity(transactions: Iterable[Transaction], symbol: str, asset_type: AssetType) -> float:
        """Net units held for a position (buys minus sells)."""
        total = 0.0
        for tx in transactions:
            if tx.symbol == symbol and tx.asset_type == asset_type:
                total += tx.quantity if tx.is_buy else -tx.quantity
        return total

    @staticmethod
    def transaction_stats(transactions: List[Transaction]) -> TransactionStats:
        """Counts and traded volume for the settings/export screen."""
        return TransactionStats(
            buy_count=sum(1 for tx in transactions if tx.is_buy),
            sell_count=sum(1 for tx in transactions if not tx.is_buy),
            unique_assets=len({tx.position_key for tx in transactions}),
            total_value=sum(tx.quantity * tx.price for tx in transactions),
        )

    @staticmethod
    def sorted_history(transactions: Iterable[Transaction]) -> List[Transaction]:
        """Newest first by creation time; transactions without one sort by date."""
        def _key(tx: Transaction) -> float:
            if tx.created_at is not None:
                created = tx.created_at
            else:
                created = datetime.combine(tx.transaction_date, time.min)
            # naive values are read as local time, aware ones as given
            return created.timestamp()

        return sorted(transactions, key=_key, reverse=True)

    @staticmethod
    def paginate(items: List[Any], page: int = 1, per_page: int = 10) -> Tuple[List[Any], int]:
        """
        Slice a list for display.

        Returns:
            (items on the page, total page count). Out-of-range pages are clamped.
        """
        per_page = max(1, per_page)
        pages = max(1, math.ceil(len(items) / per_page))
        page = min(max(1, page), pages)
        start = (page - 1) * per_page
        return items[start:start + per_page], pages

    @staticmethod
    def format_report(totals: PortfolioTotals, transaction_count: int, currency: str = "TRY") -> str:
        """
        Plain-text portfolio summary suitable for pasting into a chat.

        Args:
            totals: Result of calculate_totals
            transaction_count: Number of transactions in the log
            currency: Currency code appended to amounts

        Returns:
            Multi-line report, or an empty string when nothing is held
        """
        if not totals.holdings:
            return ""

        def _money(amount: float) -> str:
            return f"{amount:,.2f} {currency}"

        blocks = []
        for holding in totals.holdings:
            outcome = "Profit" if holding.profit_loss >= 0 else "Loss"
            sign = "+" if holding.profit_loss_pct >= 0 else ""
            blocks.append("\n".join([
                f"[{ASSET_LABELS.get(holding.asset_type, 'Asset')}] {holding.symbol}",
                f"Quantity: {holding.total_quantity:g}",
                f"Avg. cost: {_money(holding.average_cost)}",
                f"Current price: {_money(holding.current_price)}",
                f"{outcome}: {_money(abs(holding.profit_loss))} ({sign}{holding.profit_loss_pct:.2f}%)",
            ]))

        outcome = "profit" if totals.total_pnl >= 0 else "loss"
        sign = "+" if totals.total_pnl >= 0 else ""
        summary = "\n".join([
            "TOTAL",
            f"Portfolio value: {_money(totals.total_value)}",
            f"Total cost: {_money(totals.total_cost)}",
            f"Total {outcome}: {_money(abs(totals.total_pnl))} ({sign}{totals.total_pnl_pct:.2f}%)",
            f"Transactions: {transaction_count}",
        ])

        return "PORTFOLIO SUMMARY\n\n" + "\n\n".join(blocks) + "\n\n" + summary
