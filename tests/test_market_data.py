"""
Tests for paper_engine/data/market_data.py

The ccxt exchanges are replaced by fakes; no network calls are made.
"""

import ccxt
import pandas as pd

from paper_engine.data.market_data import CcxtMarketData, ohlcv_to_frame

ROWS = [
    [1773561600000, 100.0, 102.0, 99.0, 101.0, 10.0],
    [1773547200000, 98.0, 100.5, 97.5, 100.0, 12.0],
]


class FakeExchange:
    def __init__(self, rows=None):
        self.rows = rows
        self.requests = []

    def fetch_ohlcv(self, symbol, timeframe="4h", limit=60):
        self.requests.append((symbol, timeframe, limit))
        return self.rows


class FakeFutures:
    def __init__(self, rate=None, error=None):
        self.rate = rate
        self.error = error
        self.requests = []

    def fetch_funding_rate(self, symbol):
        self.requests.append(symbol)
        if self.error:
            raise self.error
        return {"fundingRate": self.rate}


class TestOhlcvFrame:
    """Tests for ohlcv_to_frame()."""

    def test_sorted_utc_index(self):
        frame = ohlcv_to_frame(ROWS)
        assert list(frame.columns) == ["open", "high", "low", "close", "volume"]
        assert frame.index.is_monotonic_increasing
        assert str(frame.index.tz) == "UTC"
        assert frame["close"].iloc[-1] == 101.0


class TestCcxtMarketData:
    """Tests for CcxtMarketData."""

    def test_candles_normalize_symbol(self):
        exchange = FakeExchange(ROWS)
        provider = CcxtMarketData(exchange=exchange, futures=FakeFutures())
        frame = provider.get_candles("btc-usdt", "4h", 60)
        assert exchange.requests == [("BTC/USDT", "4h", 60)]
        assert isinstance(frame, pd.DataFrame)
        assert len(frame) == 2

    def test_no_rows_is_none(self):
        provider = CcxtMarketData(exchange=FakeExchange([]), futures=FakeFutures())
        assert provider.get_candles("BTC/USDT") is None

    def test_funding_rate_from_perpetual(self):
        futures = FakeFutures(rate=0.0001)
        provider = CcxtMarketData(exchange=FakeExchange(), futures=futures)
        assert provider.get_funding_rate("ETH/USDT") == 0.0001
        assert futures.requests == ["ETH/USDT:USDT"]

    def test_funding_rate_failure_is_none(self):
        futures = FakeFutures(error=ccxt.NetworkError("unreachable"))
        provider = CcxtMarketData(exchange=FakeExchange(), futures=futures)
        assert provider.get_funding_rate("ETH/USDT") is None
