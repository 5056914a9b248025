"""Tests for services.market_data (feeds are faked, no network)."""

import pytest

from services.market_data import MarketDataService, PriceBook, PriceCache, make_price_lookup

MARKET_FEED = {
    "status": "success",
    "datas": {
        "doviz": {"data": [{"name": "USD", "value": "32.5"}, {"name": "EUR", "value": 35.1}]},
        "manisaKuyum": {"data": [{"name": "Gram Altın", "buy": "2450"}, {"name": "Broken", "buy": "n/a"}]},
        "seninBankan": {"data": [{"currencyCode": "USD", "buy": 32.1}]},
    },
}

CRYPTO_FEED = [
    {"symbol": "BTCUSDT", "price": "60000.5"},
    {"symbol": "ETHUSDT", "price": "3000"},
    {"symbol": "DOGEUSDT", "price": "0.1"},
]


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def service(settings):
    return MarketDataService(settings, cache=PriceCache(30, clock=FakeClock()))


def _fake_feeds(service, monkeypatch, market=MARKET_FEED, crypto=CRYPTO_FEED):
    calls = []

    def fetch(url):
        calls.append(url)
        if url == service.settings.market_api_url:
            if isinstance(market, Exception):
                raise market
            return market
        if isinstance(crypto, Exception):
            raise crypto
        return crypto

    monkeypatch.setattr(service, "_fetch_json", fetch)
    return calls


class TestPriceCache:
    def test_expires_after_ttl(self) -> None:
        clock = FakeClock()
        cache = PriceCache(30, clock=clock)
        cache.set("k", 1.5)
        clock.now += 29
        assert cache.get("k") == 1.5
        clock.now += 1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_clear(self) -> None:
        cache = PriceCache(30)
        cache.set("a", 1)
        cache.clear()
        assert cache.get("a") is None


class TestPriceBook:
    def test_price_per_asset_class(self, make_tx) -> None:
        book = PriceBook(
            stocks={"THYAO": 300.0},
            currencies={"USD": 32.5},
            gold={"Gram Altın": 2450.0},
            bank={"USD": 32.1},
            crypto={"BTCUSDT": 60000.0},
        )
        lookup = make_price_lookup(book, crypto_rate=34.0)
        assert lookup(make_tx(symbol="THYAO")) == 300.0
        assert lookup(make_tx(symbol="USD", asset_type="currency")) == 32.5
        assert lookup(make_tx(symbol="Gram Altın", asset_type="gold")) == 2450.0
        assert lookup(make_tx(symbol="USD", asset_type="bank")) == 32.1
        btc = make_tx(symbol="BTC", symbol_name="BTCUSDT", asset_type="crypto")
        assert lookup(btc) == pytest.approx(60000.0 * 34.0)

    def test_unknown_symbol_is_zero(self, make_tx) -> None:
        lookup = make_price_lookup(PriceBook(), crypto_rate=34.0)
        assert lookup(make_tx(symbol="NOPE")) == 0.0
        assert lookup(make_tx(symbol="X", symbol_name="XUSDT", asset_type="crypto")) == 0.0

    def test_default_rate_comes_from_settings(self, make_tx) -> None:
        lookup = make_price_lookup(PriceBook(crypto={"ETHUSDT": 2.0}))
        assert lookup(make_tx(symbol="ETH", symbol_name="ETHUSDT", asset_type="crypto")) == pytest.approx(68.0)


class TestFeeds:
    def test_market_quotes_are_indexed(self, service, monkeypatch) -> None:
        calls = _fake_feeds(service, monkeypatch)
        quotes = service.fetch_market_quotes()
        assert quotes["currencies"] == {"USD": 32.5, "EUR": 35.1}
        assert quotes["gold"] == {"Gram Altın": 2450.0}
        assert quotes["bank"] == {"USD": 32.1}

        service.fetch_market_quotes()
        assert len(calls) == 1

    def test_market_feed_without_success_raises(self, service, monkeypatch) -> None:
        _fake_feeds(service, monkeypatch, market={"status": "error"})
        with pytest.raises(ValueError):
            service.fetch_market_quotes()

    def test_crypto_prices_filtered_to_wanted_pairs(self, service, monkeypatch) -> None:
        _fake_feeds(service, monkeypatch)
        assert service.fetch_crypto_prices(["BTCUSDT", "ETHUSDT", "MISSINGUSDT"]) == {
            "BTCUSDT": 60000.5,
            "ETHUSDT": 3000.0,
        }
        assert service.fetch_crypto_prices([]) == {}

    def test_stock_price_via_ticker_info(self, service, monkeypatch) -> None:
        requested = []

        def fake_info(yf_symbol):
            requested.append(yf_symbol)
            return {"currentPrice": 301.25}

        monkeypatch.setattr(MarketDataService, "_fetch_ticker_info", staticmethod(fake_info))
        assert service.get_stock_price("thyao") == 301.25
        assert service.get_stock_price("thyao") == 301.25
        assert requested == ["THYAO.IS"]

    def test_stock_price_failure_is_none(self, service, monkeypatch) -> None:
        def broken(_symbol):
            raise RuntimeError("rate limited")

        monkeypatch.setattr(MarketDataService, "_fetch_ticker_info", staticmethod(broken))
        assert service.get_stock_price("THYAO") is None
        assert service.fetch_stock_prices(["THYAO"]) == {}


class TestRefreshPrices:
    def test_fetches_only_needed_feeds(self, service, monkeypatch, make_tx) -> None:
        calls = _fake_feeds(service, monkeypatch)
        book = service.refresh_prices([make_tx(symbol="BTC", symbol_name="BTCUSDT", asset_type="crypto")])
        assert calls == [service.settings.crypto_api_url]
        assert book.crypto == {"BTCUSDT": 60000.5}
        assert book.updated_at is not None

    def test_empty_log_fetches_nothing(self, service, monkeypatch) -> None:
        calls = _fake_feeds(service, monkeypatch)
        book = service.refresh_prices([])
        assert calls == []
        assert book.updated_at is None

    def test_failing_feed_keeps_previous_prices(self, service, monkeypatch, make_tx) -> None:
        _fake_feeds(service, monkeypatch, market=ValueError("feed down"))
        previous = PriceBook(currencies={"USD": 30.0})
        txs = [
            make_tx(symbol="USD", asset_type="currency"),
            make_tx(symbol="ETH", symbol_name="ETHUSDT", asset_type="crypto"),
        ]
        book = service.refresh_prices(txs, previous)
        assert book is previous
        assert book.currencies == {"USD": 30.0}
        assert book.crypto == {"ETHUSDT": 3000.0}


def test_expired_entry_already_dropped_by_another_reader() -> None:
    cache = PriceCache(30, clock=lambda: 0.0)
    cache.set("market", {"USD": 32.5})

    def clock_racing_reader() -> float:
        # another thread evicts the same expired key between lookup and eviction
        cache._entries.pop("market", None)
        return 1000.0

    cache._clock = clock_racing_reader
    assert cache.get("market") is None
    assert len(cache) == 0
