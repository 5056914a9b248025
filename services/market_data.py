"""
Market data service for fetching live prices per asset class.
Equities come from yfinance; currency, gold and bank quotes from the market
JSON feed; crypto from a ticker/price endpoint. Each class is fetched
independently so one failing feed never blocks the others.
Enhanced with tenacity for retry logic and an explicit TTL cache.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

import httpx
import yfinance as yf
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from config import Settings, get_settings
from models import AssetType, Transaction
from services.common import normalize_symbol

logger = logging.getLogger(__name__)


class PriceCache:
    """
    (value, expiry) cache for feed responses.
    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            # another reader may have dropped it already
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self._clock() + self.ttl_seconds)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _to_float(value: Any) -> Optional[float]:
    """Feeds send numbers or numeric strings; anything else is unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


@dataclass
class PriceBook:
    """Latest known prices per asset class, keyed the way the lookup needs them."""
    stocks: Dict[str, float] = field(default_factory=dict)  # symbol -> last
    currencies: Dict[str, float] = field(default_factory=dict)  # name -> value
    gold: Dict[str, float] = field(default_factory=dict)  # name -> buy
    bank: Dict[str, float] = field(default_factory=dict)  # currency code -> buy
    crypto: Dict[str, float] = field(default_factory=dict)  # pair (e.g. BTCUSDT) -> quote price
    updated_at: Optional[datetime] = None

    def price_for(self, tx: Transaction, crypto_rate: float) -> float:
        """Current unit price in local currency for a transaction's asset, 0 if unknown."""
        if tx.asset_type == AssetType.STOCK:
            return self.stocks.get(tx.symbol, 0.0)
        elif tx.asset_type == AssetType.CURRENCY:
            return self.currencies.get(tx.symbol, 0.0)
        elif tx.asset_type == AssetType.GOLD:
            return self.gold.get(tx.symbol, 0.0)
        elif tx.asset_type == AssetType.BANK:
            return self.bank.get(tx.symbol, 0.0)
        elif tx.asset_type == AssetType.CRYPTO:
            quote = self.crypto.get(tx.symbol_name)
            return quote * crypto_rate if quote else 0.0
        return 0.0


def make_price_lookup(book: PriceBook, crypto_rate: Optional[float] = None) -> Callable[[Transaction], float]:
    """
    Build the price lookup capability the valuation engine consumes.

    Args:
        book: Prices from the latest refresh
        crypto_rate: Quote-asset to local currency rate (default from settings)
    """
    rate = crypto_rate if crypto_rate is not None else get_settings().crypto_conversion_rate

    def lookup(tx: Transaction) -> float:
        return book.price_for(tx, rate)

    return lookup


class MarketDataService:
    """
    Service for fetching live prices.
    Network failures are logged and reported as missing prices.
    """

    MARKET_CACHE_KEY = "market"
    CRYPTO_CACHE_KEY = "crypto"

    def __init__(self, settings: Optional[Settings] = None, cache: Optional[PriceCache] = None):
        self.settings = settings or get_settings()
        self.cache = cache or PriceCache(self.settings.price_cache_ttl_seconds)

    # ==================== Raw fetches ====================

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.HTTPError, ValueError)),
        reraise=True
    )
    def _fetch_json(self, url: str) -> Any:
        """GET a JSON document with retry logic."""
        response = httpx.get(url, timeout=self.settings.http_timeout_seconds)
        response.raise_for_status()
        return response.json()

    @staticmethod
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(Exception),
        reraise=True
    )
    def _fetch_ticker_info(yf_symbol: str) -> Dict:
        """Fetch ticker info with retry logic."""
        ticker = yf.Ticker(yf_symbol)
        return ticker.info

    # ==================== Per-class feeds ====================

    def get_stock_price(self, symbol: str) -> Optional[float]:
        """Latest traded price for an equity, cached."""
        cache_key = f"stock:{symbol}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            yf_symbol = normalize_symbol(symbol, self.settings.stock_symbol_suffix)
            info = MarketDataService._fetch_ticker_info(yf_symbol)
            price = _to_float(
                info.get('currentPrice') or info.get('regularMarketPrice') or info.get('lastPrice')
            )
        except Exception as e:
            logger.error(f"Error fetching price for {symbol}: {e}")
            return None

        if price is None:
            logger.warning(f"No price available for {symbol}")
            return None
        self.cache.set(cache_key, price)
        return price

    def fetch_stock_prices(self, symbols: Iterable[str]) -> Dict[str, float]:
        """Latest prices for several equities; missing ones are left out."""
        prices = {}
        unique = sorted(set(symbols))
        if not unique:
            return prices

        with ThreadPoolExecutor(max_workers=self.settings.price_fetch_workers) as executor:
            future_to_symbol = {
                executor.submit(self.get_stock_price, symbol): symbol
                for symbol in unique
            }
            for future in as_completed(future_to_symbol):
                symbol = future_to_symbol[future]
                price = future.result()
                if price is not None:
                    prices[symbol] = price
        return prices

    def fetch_market_quotes(self) -> Dict[str, Dict[str, float]]:
        """
        Currency, gold and bank quotes from the market feed.

        Returns:
            {"currencies": {...}, "gold": {...}, "bank": {...}}; raises on
            network or format errors so the caller can isolate the failure
        """
        cached = self.cache.get(self.MARKET_CACHE_KEY)
        if cached is not None:
            return cached

        data = self._fetch_json(self.settings.market_api_url)
        if not isinstance(data, dict) or data.get("status") != "success":
            raise ValueError("Market feed did not report success")

        datas = data.get("datas") or {}
        quotes = {
            "currencies": self._index(datas.get("doviz"), "name", "value"),
            "gold": self._index(datas.get("manisaKuyum"), "name", "buy"),
            "bank": self._index(datas.get("seninBankan"), "currencyCode", "buy"),
        }
        self.cache.set(self.MARKET_CACHE_KEY, quotes)
        return quotes

    @staticmethod
    def _index(section: Any, key_field: str, price_field: str) -> Dict[str, float]:
        """Turn a feed section {"data": [...]} into {key: price}."""
        if not isinstance(section, dict):
            return {}
        result = {}
        for item in section.get("data") or []:
            if not isinstance(item, dict):
                continue
            key = item.get(key_field)
            price = _to_float(item.get(price_field))
            if key and price is not None:
                result[key] = price
        return result

    def fetch_crypto_prices(self, pairs: Iterable[str]) -> Dict[str, float]:
        """
        Quote-asset prices for the requested trading pairs (e.g. BTCUSDT).
        Raises on network or format errors.
        """
        wanted = set(pairs)
        if not wanted:
            return {}

        table = self.cache.get(self.CRYPTO_CACHE_KEY)
        if table is None:
            data = self._fetch_json(self.settings.crypto_api_url)
            if not isinstance(data, list):
                raise ValueError("Crypto feed did not return a list")
            table = {}
            for item in data:
                if isinstance(item, dict) and item.get("symbol"):
                    price = _to_float(item.get("price"))
                    if price is not None:
                        table[item["symbol"]] = price
            self.cache.set(self.CRYPTO_CACHE_KEY, table)

        return {pair: price for pair, price in table.items() if pair in wanted}

    # ==================== Refresh ====================

    def refresh_prices(self, transactions: List[Transaction], book: Optional[PriceBook] = None) -> PriceBook:
        """
        Fetch prices for every asset class present in the log.
        Feeds run concurrently; a failing feed is logged and its previous
        prices are kept, while successful feeds still update their slots.

        Args:
            transactions: Current log (decides which feeds are needed)
            book: Previous prices to update in place (a new book if None)

        Returns:
            The updated PriceBook
        """
        book = book or PriceBook()
        present: Set[AssetType] = {tx.asset_type for tx in transactions}
        if not present:
            return book

        tasks: Dict[str, Callable[[], Any]] = {}
        stock_symbols = [tx.symbol for tx in transactions if tx.asset_type == AssetType.STOCK]
        if stock_symbols:
            tasks["stocks"] = lambda: self.fetch_stock_prices(stock_symbols)
        if present & {AssetType.CURRENCY, AssetType.GOLD, AssetType.BANK}:
            tasks["market"] = self.fetch_market_quotes
        crypto_pairs = [tx.symbol_name for tx in transactions if tx.asset_type == AssetType.CRYPTO]
        if crypto_pairs:
            tasks["crypto"] = lambda: self.fetch_crypto_prices(crypto_pairs)

        failures = []
        with ThreadPoolExecutor(max_workers=max(1, len(tasks))) as executor:
            future_to_name = {executor.submit(task): name for name, task in tasks.items()}
            for future in as_completed(future_to_name):
                name = future_to_name[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.error(f"Price feed '{name}' failed: {e}")
                    failures.append(name)
                    continue

                if name == "stocks":
                    book.stocks.update(result)
                elif name == "market":
                    book.currencies.update(result["currencies"])
                    book.gold.update(result["gold"])
                    book.bank.update(result["bank"])
                elif name == "crypto":
                    book.crypto.update(result)

        book.updated_at = datetime.now()
        if failures:
            logger.warning(f"Prices refreshed with failures: {', '.join(sorted(failures))}")
        else:
            logger.info(f"Prices refreshed for {len(tasks)} feed(s)")
        return book

    def clear_cache(self):
        """Drop all cached feed responses."""
        self.cache.clear()
        logger.info("Market data cache cleared")
