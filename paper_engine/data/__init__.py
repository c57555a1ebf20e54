"""Market data access."""

from .market_data import MarketDataProvider, CcxtMarketData, ohlcv_to_frame

__all__ = ['MarketDataProvider', 'CcxtMarketData', 'ohlcv_to_frame']
