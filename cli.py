#!/usr/bin/env python3
"""
FolioLedger - command line front end.
Portfolio summary, transaction entry, profile switching and sharing.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

import pandas as pd
from dotenv import load_dotenv

from config import get_settings
from db_engine import init_db
from models import AssetType, Transaction, TransactionType
from services import (
    ImportMode,
    ImportStatus,
    PortfolioService,
    PortfolioTracker,
    PositionSummary,
    build_share_url,
    export_filename,
    load_refresh_preferences,
    make_snapshot,
    save_refresh_preferences,
    to_json,
)

logger = logging.getLogger(__name__)


# ==================== TABLES ====================
def holdings_frame(positions: List[PositionSummary]) -> pd.DataFrame:
    """Active holdings as a display table."""
    rows = [
        {
            'Asset': p.asset_type.value,
            'Symbol': p.symbol,
            'Name': p.symbol_name,
            'Quantity': p.total_quantity,
            'Avg Cost': round(p.average_cost, 2),
            'Total Cost': round(p.total_cost, 2),
            'Price': round(p.current_price, 2),
            'Value': round(p.market_value, 2),
            'PnL': round(p.profit_loss, 2),
            'PnL %': round(p.profit_loss_pct, 2),
        }
        for p in positions if p.is_active
    ]
    return pd.DataFrame(rows)


def history_frame(transactions: List[Transaction]) -> pd.DataFrame:
    """Transactions as a display table."""
    rows = [
        {
            'ID': tx.id,
            'Date': tx.transaction_date.isoformat(),
            'Type': tx.transaction_type.value,
            'Asset': tx.asset_type.value,
            'Symbol': tx.symbol,
            'Quantity': tx.quantity,
            'Price': tx.price,
            'Total': round(tx.quantity * tx.price, 2),
        }
        for tx in transactions
    ]
    return pd.DataFrame(rows)


def _print_frame(df: pd.DataFrame, empty_message: str):
    if df.empty:
        print(empty_message)
    else:
        print(df.to_string(index=False))


def _confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N] ").strip().lower()
    return answer in ("y", "yes")


# ==================== COMMANDS ====================
def cmd_summary(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    if not args.no_refresh:
        tracker.refresh_prices()
    profile = tracker.store.get_active_profile()
    totals = tracker.totals()
    currency = tracker.settings.local_currency

    print(f"Profile: {profile.label if profile else '-'}")
    _print_frame(holdings_frame(totals.holdings), "No active holdings.")
    print()
    print(f"Portfolio value: {totals.total_value:,.2f} {currency}")
    print(f"Total cost:      {totals.total_cost:,.2f} {currency}")
    print(f"Total PnL:       {totals.total_pnl:,.2f} {currency} ({totals.total_pnl_pct:+.2f}%)")
    if tracker.prices.updated_at:
        print(f"Prices as of {tracker.prices.updated_at:%H:%M}")
    return 0


def cmd_report(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    tracker.refresh_prices()
    report = tracker.report()
    print(report or "No active holdings.")
    return 0


def cmd_history(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    ordered = PortfolioService.sorted_history(tracker.transactions)
    page, pages = PortfolioService.paginate(ordered, args.page, args.per_page)
    _print_frame(history_frame(page), "No transactions yet.")
    if ordered:
        print(f"Page {min(max(1, args.page), pages)}/{pages} ({len(ordered)} transactions)")
    stats = PortfolioService.transaction_stats(tracker.transactions)
    print(f"Buys: {stats.buy_count}  Sells: {stats.sell_count}  "
          f"Assets: {stats.unique_assets}  Volume: {stats.total_value:,.2f}")
    return 0


def _symbol_name(args: argparse.Namespace, quote_asset: str) -> str:
    """Display name for a new transaction; crypto needs the trading pair the feed is keyed by."""
    if args.name:
        return args.name
    if args.asset == AssetType.CRYPTO.value:
        base = args.symbol.strip().upper()
        return base if base.endswith(quote_asset) else f"{base}{quote_asset}"
    return args.symbol


def cmd_add(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    transaction = tracker.ledger.add({
        'symbol': args.symbol,
        'symbolName': _symbol_name(args, tracker.settings.crypto_quote_asset.upper()),
        'assetType': args.asset,
        'quantity': args.quantity,
        'price': args.price,
        'type': args.type,
    })
    if transaction is None:
        print("Transaction rejected (check fields and held quantity).")
        return 1
    tracker.on_log_changed()
    print(f"Added {transaction.transaction_type.value} {transaction.symbol} (id {transaction.id}).")
    return 0


def cmd_remove(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    if not tracker.ledger.remove(args.id):
        print(f"No transaction with id {args.id}.")
        return 1
    tracker.on_log_changed()
    print("Transaction removed.")
    return 0


def cmd_export(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    snapshot = make_snapshot(tracker.store.active_profile_id, tracker.transactions, with_timestamp=False)
    content = to_json(snapshot)
    if args.output:
        target = Path(args.output)
        if target.is_dir():
            target = target / export_filename(snapshot.user)
        target.write_text(content, encoding='utf-8')
        print(f"Exported {len(snapshot.transactions)} transaction(s) to {target}")
    else:
        print(content)
    return 0


def cmd_share(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    base_url = args.base_url or tracker.settings.share_base_url
    if not base_url:
        print("No base URL given (use --base-url or SHARE_BASE_URL).")
        return 1
    snapshot = make_snapshot(tracker.store.active_profile_id, tracker.transactions)
    print(build_share_url(base_url, snapshot))
    return 0


def cmd_import(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    if args.file:
        text = Path(args.file).read_text(encoding='utf-8')
    elif args.text:
        text = args.text
    else:
        text = sys.stdin.read()

    outcome = tracker.ledger.import_payload(text, ImportMode(args.mode))
    if outcome.status == ImportStatus.AWAITING_CONFIRMATION:
        if args.yes or _confirm(outcome.message):
            outcome = tracker.ledger.confirm_pending()
        else:
            tracker.ledger.cancel_pending()
            print("Import cancelled; existing transactions kept.")
            return 1

    print(outcome.message)
    if not outcome.applied:
        return 1
    tracker.on_log_changed()
    return 0


def cmd_open_url(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    profile, cleaned = tracker.open_shared_url(args.url)
    if profile is None:
        print("No new shared portfolio in this URL.")
    else:
        print(f"Profile {profile.label} added ({len(profile.transactions)} transactions).")
    print(f"Cleaned URL: {cleaned}")
    return 0


def cmd_profiles(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    active = tracker.store.active_profile_id
    for profile in tracker.store.list_profiles():
        marker = "*" if profile.id == active else " "
        owner = " (owner)" if profile.is_owner else ""
        print(f"{marker} {profile.id}  {profile.label}{owner}  "
              f"{len(profile.transactions)} tx, updated {profile.last_updated:%Y-%m-%d %H:%M}")
    return 0


def cmd_switch(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    if tracker.store.get_profile(args.id) is None:
        print(f"Unknown profile {args.id}.")
        return 1
    transactions = tracker.switch_profile(args.id)
    print(f"Switched to {tracker.store.get_active_profile().label} ({len(transactions)} transactions).")
    return 0


def cmd_remove_profile(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    if args.id == tracker.store.owner_id:
        print("Your own profile cannot be removed.")
        return 1
    if not tracker.store.remove_profile(args.id):
        print(f"Unknown profile {args.id}.")
        return 1
    print("Profile removed.")
    return 0


def cmd_clear(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    word = tracker.settings.clear_confirmation_word
    confirmation = args.confirm
    if confirmation is None:
        print(f"This deletes all {len(tracker.transactions)} transaction(s) and cannot be undone.")
        confirmation = input(f"Type '{word}' to confirm: ")
    if not tracker.ledger.clear_all(confirmation):
        print("Not confirmed; nothing deleted.")
        return 1
    tracker.on_log_changed()
    print("All transactions deleted.")
    return 0


def cmd_settings(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    enabled = None if args.auto_refresh is None else args.auto_refresh == 'on'
    if not save_refresh_preferences(enabled=enabled, interval=args.interval, settings=tracker.settings):
        print(f"Interval must be one of {tracker.settings.allowed_refresh_intervals}.")
        return 1
    enabled, interval = load_refresh_preferences(tracker.settings)
    print(f"Auto refresh: {'on' if enabled else 'off'}, every {interval}s")
    return 0


def cmd_watch(tracker: PortfolioTracker, args: argparse.Namespace) -> int:
    enabled, interval = load_refresh_preferences(tracker.settings)
    if not enabled:
        print("Auto refresh is off (enable it with: settings --auto-refresh on).")
        return 1
    if not tracker.sync_auto_refresh():
        print("Nothing to watch: the active portfolio is empty.")
        return 1

    args.no_refresh = True
    tracker.refresh_prices()
    try:
        while True:
            cmd_summary(tracker, args)
            print("-" * 60)
            time.sleep(interval)
    except (KeyboardInterrupt, SystemExit):
        logger.info("Stopping watch...")
    return 0


# ==================== ENTRY POINT ====================
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FolioLedger portfolio tracker")
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('summary', help='Show holdings with live prices and totals')
    p.add_argument('--no-refresh', action='store_true', help='Skip fetching prices')
    p.set_defaults(func=cmd_summary)

    p = sub.add_parser('report', help='Print a copyable text report of active holdings')
    p.set_defaults(func=cmd_report)

    p = sub.add_parser('history', help='List transactions, newest first')
    p.add_argument('--page', type=int, default=1)
    p.add_argument('--per-page', type=int, default=10)
    p.set_defaults(func=cmd_history)

    p = sub.add_parser('add', help='Record a buy or sell')
    p.add_argument('--type', choices=[t.value for t in TransactionType], required=True)
    p.add_argument('--asset', choices=[a.value for a in AssetType], default=AssetType.STOCK.value)
    p.add_argument('--symbol', required=True, help='Ticker, currency code, gold item or crypto base asset')
    p.add_argument('--name', help='Display name (crypto: trading pair, default <symbol>USDT)')
    p.add_argument('--quantity', type=float, required=True)
    p.add_argument('--price', type=float, required=True, help='Unit price in local currency')
    p.set_defaults(func=cmd_add)

    p = sub.add_parser('remove', help='Delete a transaction by id')
    p.add_argument('id')
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser('export', help='Export the active profile as JSON')
    p.add_argument('--output', help='File or directory to write to (default: stdout)')
    p.set_defaults(func=cmd_export)

    p = sub.add_parser('share', help='Print a share URL carrying the active profile')
    p.add_argument('--base-url')
    p.set_defaults(func=cmd_share)

    p = sub.add_parser('import', help='Import a JSON or encoded snapshot')
    p.add_argument('--file')
    p.add_argument('--text')
    p.add_argument('--mode', choices=[m.value for m in ImportMode], default=ImportMode.REPLACE.value)
    p.add_argument('--yes', action='store_true', help='Confirm replacing existing transactions')
    p.set_defaults(func=cmd_import)

    p = sub.add_parser('open-url', help='Add the profile shared in a URL')
    p.add_argument('url')
    p.set_defaults(func=cmd_open_url)

    p = sub.add_parser('profiles', help='List profiles')
    p.set_defaults(func=cmd_profiles)

    p = sub.add_parser('switch', help='Make a profile active')
    p.add_argument('id')
    p.set_defaults(func=cmd_switch)

    p = sub.add_parser('remove-profile', help='Delete an imported profile')
    p.add_argument('id')
    p.set_defaults(func=cmd_remove_profile)

    p = sub.add_parser('clear', help='Delete every transaction of the active profile')
    p.add_argument('--confirm', help='Confirmation word (prompted if omitted)')
    p.set_defaults(func=cmd_clear)

    p = sub.add_parser('settings', help='Show or change auto refresh settings')
    p.add_argument('--auto-refresh', choices=['on', 'off'])
    p.add_argument('--interval', type=int, help='Seconds between refreshes')
    p.set_defaults(func=cmd_settings)

    p = sub.add_parser('watch', help='Refresh prices on the configured interval')
    p.set_defaults(func=cmd_watch)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    args = build_parser().parse_args(argv)
    get_settings()
    init_db()
    tracker = PortfolioTracker()
    try:
        return args.func(tracker, args)
    finally:
        tracker.close()


if __name__ == '__main__':
    sys.exit(main())
