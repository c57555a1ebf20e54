"""
Market data providers

The engine asks for candles and funding rates through MarketDataProvider.
CcxtMarketData reads public Binance endpoints through ccxt; no API keys
are needed for either call.
"""

from abc import ABC, abstractmethod
from typing import Optional

import ccxt
import pandas as pd
from loguru import logger

from ..utils.helpers import normalize_pair

OHLCV_COLUMNS = ['timestamp', 'open', 'high', 'low', 'close', 'volume']


def ohlcv_to_frame(rows) -> pd.DataFrame:
    """Convert ccxt OHLCV rows to a DataFrame indexed by UTC bar open time."""
    df = pd.DataFrame(rows, columns=OHLCV_COLUMNS)
    df['timestamp'] = pd.to_datetime(df['timestamp'], unit='ms', utc=True)
    df = df.set_index('timestamp').sort_index()
    return df.astype(float)


class MarketDataProvider(ABC):
    """Source of candles and funding rates."""

    @abstractmethod
    def get_candles(self, symbol: str, timeframe: str = '4h', limit: int = 60) -> Optional[pd.DataFrame]:
        """OHLCV DataFrame, oldest bar first. Raises on transport failure."""
        pass

    def get_funding_rate(self, symbol: str) -> Optional[float]:
        """Perpetual funding rate, or None when unavailable."""
        return None


class CcxtMarketData(MarketDataProvider):
    """
    ccxt-backed provider.

    Candles come from the spot exchange; funding rates from the USDT-M
    futures exchange. Funding lookups never raise, a failure just means
    no funding rate this cycle.
    """

    def __init__(
        self,
        exchange_id: str = 'binance',
        exchange: Optional[ccxt.Exchange] = None,
        futures: Optional[ccxt.Exchange] = None,
    ):
        self.exchange_id = exchange_id
        self.exchange = exchange or getattr(ccxt, exchange_id)({'enableRateLimit': True})
        self._futures = futures

    @property
    def futures(self) -> Optional[ccxt.Exchange]:
        if self._futures is None and self.exchange_id == 'binance':
            self._futures = ccxt.binanceusdm({'enableRateLimit': True})
        return self._futures

    def get_candles(self, symbol: str, timeframe: str = '4h', limit: int = 60) -> Optional[pd.DataFrame]:
        symbol = normalize_pair(symbol)
        rows = self.exchange.fetch_ohlcv(symbol, timeframe=timeframe, limit=limit)
        if not rows:
            logger.warning(f"{symbol}: exchange returned no candles")
            return None
        return ohlcv_to_frame(rows)

    def get_funding_rate(self, symbol: str) -> Optional[float]:
        futures = self.futures
        if futures is None:
            return None
        perp = f"{normalize_pair(symbol)}:USDT"
        try:
            info = futures.fetch_funding_rate(perp)
        except ccxt.BaseError as e:
            logger.debug(f"No funding rate for {perp}: {e}")
            return None
        rate = info.get('fundingRate') if info else None
        return float(rate) if rate is not None else None
