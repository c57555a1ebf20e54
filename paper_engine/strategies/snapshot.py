"""
Indicator snapshot: every indicator the evaluator needs for one symbol,
computed once per cycle from that cycle's candles.
"""

from dataclasses import dataclass, asdict, replace
from datetime import datetime
from typing import Dict, Optional

import pandas as pd

from . import indicators

# Bars back used to compare Bollinger bandwidth for squeeze detection
SQUEEZE_LOOKBACK = 5


@dataclass(frozen=True)
class Confluence:
    """Tally of bullish vs bearish indicator votes."""
    score: float        # 0-100, share of bullish votes
    direction: str      # 'bullish', 'bearish' or 'neutral'
    confluence: int     # |bull - bear|
    bull: int
    bear: int


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Immutable per-cycle indicator values for one symbol."""
    symbol: str
    current_price: float
    rsi: Optional[float] = None
    sma20: Optional[float] = None
    sma50: Optional[float] = None
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None
    atr: Optional[float] = None
    bb_upper: Optional[float] = None
    bb_middle: Optional[float] = None
    bb_lower: Optional[float] = None
    bb_percent_b: Optional[float] = None
    bb_bandwidth: Optional[float] = None
    bb_bandwidth_prev: Optional[float] = None
    adx: Optional[float] = None
    plus_di: Optional[float] = None
    minus_di: Optional[float] = None
    vwap: Optional[float] = None
    volume_ratio: Optional[float] = None
    momentum: Optional[float] = None
    momentum_4h: Optional[float] = None
    funding_rate: Optional[float] = None
    confluence: Optional[Confluence] = None
    last_candle_at: Optional[datetime] = None
    bars: int = 0

    @property
    def sma20_distance(self) -> Optional[float]:
        """Fractional distance of price from SMA20"""
        if not self.sma20:
            return None
        return abs(self.current_price - self.sma20) / self.sma20

    @property
    def vwap_deviation(self) -> Optional[float]:
        """Signed percent deviation of price from VWAP"""
        if not self.vwap:
            return None
        return (self.current_price - self.vwap) / self.vwap * 100

    @property
    def is_tradeable(self) -> bool:
        """RSI is the minimum every decision needs"""
        return self.rsi is not None and self.current_price > 0

    def to_dict(self) -> Dict:
        data = asdict(self)
        if self.last_candle_at is not None:
            data['last_candle_at'] = self.last_candle_at.isoformat()
        return data


def confluence_score(snap: IndicatorSnapshot) -> Confluence:
    """
    Multi-timeframe confluence: bullish vs bearish votes.

    Votes: RSI (<40 bull, >60 bear), SMA20/50 cross, MACD histogram sign,
    momentum sign, DI dominance (only when ADX > 25) and %B extremes
    (<0.2 bull, >0.8 bear).
    """
    bull = 0
    bear = 0

    if snap.rsi is not None:
        if snap.rsi < 40:
            bull += 1
        elif snap.rsi > 60:
            bear += 1

    if snap.sma20 is not None and snap.sma50 is not None:
        if snap.sma20 > snap.sma50:
            bull += 1
        elif snap.sma20 < snap.sma50:
            bear += 1

    if snap.macd_histogram is not None:
        if snap.macd_histogram > 0:
            bull += 1
        elif snap.macd_histogram < 0:
            bear += 1

    if snap.momentum is not None:
        if snap.momentum > 0:
            bull += 1
        elif snap.momentum < 0:
            bear += 1

    if snap.adx is not None and snap.adx > 25:
        if snap.plus_di > snap.minus_di:
            bull += 1
        elif snap.minus_di > snap.plus_di:
            bear += 1

    if snap.bb_percent_b is not None:
        if snap.bb_percent_b < 0.2:
            bull += 1
        elif snap.bb_percent_b > 0.8:
            bear += 1

    total = bull + bear
    score = bull / total * 100 if total else 50.0
    if bull > bear:
        direction = 'bullish'
    elif bear > bull:
        direction = 'bearish'
    else:
        direction = 'neutral'

    return Confluence(score=score, direction=direction, confluence=abs(bull - bear), bull=bull, bear=bear)


def build_snapshot(
    symbol: str,
    candles: Optional[pd.DataFrame],
    funding_rate: Optional[float] = None,
) -> Optional[IndicatorSnapshot]:
    """
    Compute the indicator snapshot for one symbol.

    Args:
        symbol: Normalized pair
        candles: OHLCV DataFrame, oldest bar first
        funding_rate: Optional funding rate from the market data provider

    Returns:
        IndicatorSnapshot, or None when there are no candles at all.
        Individual indicators are None when their window is not met.
    """
    if candles is None or len(candles) == 0:
        return None

    close = candles['close']
    current_price = float(close.iloc[-1])

    macd_result = indicators.macd(close)
    bands = indicators.bollinger_bands(close)
    prev_bands = (
        indicators.bollinger_bands(close.iloc[:-SQUEEZE_LOOKBACK])
        if len(close) > SQUEEZE_LOOKBACK else None
    )
    adx_result = indicators.adx(candles)

    last_candle_at = None
    if isinstance(candles.index, pd.DatetimeIndex):
        last_candle_at = candles.index[-1].to_pydatetime()

    snap = IndicatorSnapshot(
        symbol=symbol,
        current_price=current_price,
        rsi=indicators.rsi(close, 14),
        sma20=indicators.sma(close, 20),
        sma50=indicators.sma(close, 50),
        macd=macd_result.macd if macd_result else None,
        macd_signal=macd_result.signal if macd_result else None,
        macd_histogram=macd_result.histogram if macd_result else None,
        atr=indicators.atr(candles, 14),
        bb_upper=bands.upper if bands else None,
        bb_middle=bands.middle if bands else None,
        bb_lower=bands.lower if bands else None,
        bb_percent_b=bands.percent_b if bands else None,
        bb_bandwidth=bands.bandwidth if bands else None,
        bb_bandwidth_prev=prev_bands.bandwidth if prev_bands else None,
        adx=adx_result.adx if adx_result else None,
        plus_di=adx_result.plus_di if adx_result else None,
        minus_di=adx_result.minus_di if adx_result else None,
        vwap=indicators.vwap(candles, 24),
        volume_ratio=indicators.volume_ratio(candles['volume']),
        momentum=indicators.momentum(close, 10),
        momentum_4h=indicators.momentum(close, 1),
        funding_rate=funding_rate,
        last_candle_at=last_candle_at,
        bars=len(candles),
    )

    return replace(snap, confluence=confluence_score(snap))
