"""
Services package for FolioLedger.
Provides core business logic separated from presentation and data layers.
"""

from services.common import (
    Success,
    Failure,
    Result,
    normalize_symbol,
    new_transaction_id
)
from services.identity import IdentityProvider, generate_user_id, profile_label
from services.snapshot_codec import (
    encode,
    decode,
    validate_payload,
    make_snapshot,
    to_json,
    export_filename,
    build_share_url,
    parse_and_clear
)
from services.profile_store import ProfileStore
from services.portfolio import (
    PortfolioService,
    PositionSummary,
    PortfolioTotals,
    TransactionStats,
    CostBasis
)
from services.market_data import MarketDataService, PriceBook, PriceCache, make_price_lookup
from services.ledger import TransactionLedger, ImportMode, ImportStatus, ImportOutcome, PendingImport
from services.refresh import AutoRefresh, load_refresh_preferences, save_refresh_preferences
from services.tracker import PortfolioTracker

__all__ = [
    # Common utilities
    'Success',
    'Failure',
    'Result',
    'normalize_symbol',
    'new_transaction_id',
    # Identity and sharing
    'IdentityProvider',
    'generate_user_id',
    'profile_label',
    'encode',
    'decode',
    'validate_payload',
    'make_snapshot',
    'to_json',
    'export_filename',
    'build_share_url',
    'parse_and_clear',
    # Services
    'ProfileStore',
    'PortfolioService',
    'PositionSummary',
    'PortfolioTotals',
    'TransactionStats',
    'CostBasis',
    'MarketDataService',
    'PriceBook',
    'PriceCache',
    'make_price_lookup',
    'TransactionLedger',
    'ImportMode',
    'ImportStatus',
    'ImportOutcome',
    'PendingImport',
    # Refresh
    'AutoRefresh',
    'load_refresh_preferences',
    'save_refresh_preferences',
    'PortfolioTracker',
]
