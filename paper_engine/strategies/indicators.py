"""
Technical Indicators

Indicator calculations over a candle series for the signal evaluator.

Every function returns the indicator value for the most recent bar, or
None when the series is shorter than the indicator's window. None means
"insufficient data", never zero.
"""

import pandas as pd
import numpy as np
from dataclasses import dataclass
from typing import Optional, Sequence, Union

SeriesLike = Union[pd.Series, Sequence[float], np.ndarray]


def _values(data: SeriesLike) -> np.ndarray:
    if isinstance(data, pd.Series):
        return data.to_numpy(dtype=float)
    return np.asarray(data, dtype=float)


@dataclass(frozen=True)
class MACDResult:
    macd: float
    signal: Optional[float]
    histogram: Optional[float]


@dataclass(frozen=True)
class BollingerResult:
    upper: float
    middle: float
    lower: float
    percent_b: Optional[float]
    bandwidth: Optional[float]


@dataclass(frozen=True)
class ADXResult:
    adx: float
    plus_di: float
    minus_di: float


def sma(data: SeriesLike, period: int) -> Optional[float]:
    """
    Simple Moving Average of the last `period` values.

    Args:
        data: Price series
        period: MA period

    Returns:
        SMA value or None
    """
    values = _values(data)
    if len(values) < period:
        return None
    return float(values[-period:].mean())


def ema_series(data: SeriesLike, period: int) -> Optional[np.ndarray]:
    """
    Exponential Moving Average series.

    Seeded with the simple average of the first `period` values, then
    smoothed with k = 2 / (period + 1). Element i of the result is the
    EMA as of input index `period - 1 + i`.
    """
    values = _values(data)
    if len(values) < period:
        return None
    k = 2.0 / (period + 1)
    out = np.empty(len(values) - period + 1)
    out[0] = values[:period].mean()
    for i, price in enumerate(values[period:], start=1):
        out[i] = price * k + out[i - 1] * (1 - k)
    return out


def ema(data: SeriesLike, period: int) -> Optional[float]:
    """
    Exponential Moving Average (SMA-seeded).

    Args:
        data: Price series
        period: EMA period

    Returns:
        Latest EMA value or None
    """
    series = ema_series(data, period)
    if series is None:
        return None
    return float(series[-1])


def rsi(close: SeriesLike, period: int = 14) -> Optional[float]:
    """
    Relative Strength Index (RSI).

    Simple average of gains and losses over the trailing `period` diffs.
    - RSI < 30: Oversold
    - RSI > 70: Overbought

    Args:
        close: Close prices
        period: RSI period (default: 14)

    Returns:
        RSI (0-100) or None; 100 when there were no losses
    """
    values = _values(close)
    if len(values) < period + 1:
        return None

    diffs = np.diff(values[-(period + 1):])
    avg_gain = diffs[diffs > 0].sum() / period
    avg_loss = -diffs[diffs < 0].sum() / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100 - (100 / (1 + rs)))


def macd(
    close: SeriesLike, fast_period: int = 12, slow_period: int = 26, signal_period: int = 9
) -> Optional[MACDResult]:
    """
    Moving Average Convergence Divergence (MACD).

    Args:
        close: Close prices
        fast_period: Fast EMA period (default: 12)
        slow_period: Slow EMA period (default: 26)
        signal_period: Signal line period (default: 9)

    Returns:
        MACDResult (line, signal, histogram) or None when fewer than
        slow_period + signal_period closes are available
    """
    values = _values(close)
    if len(values) < slow_period + signal_period:
        return None

    fast = ema_series(values, fast_period)
    slow = ema_series(values, slow_period)
    # Align the fast EMA to the slow EMA's first index
    offset = slow_period - fast_period
    macd_series = fast[offset:] - slow

    signal = ema(macd_series, signal_period)
    macd_line = float(macd_series[-1])
    histogram = macd_line - signal if signal is not None else None

    return MACDResult(macd=macd_line, signal=signal, histogram=histogram)


def true_range(candles: pd.DataFrame) -> pd.Series:
    """True range per bar, starting from the second bar."""
    high = candles['high']
    low = candles['low']
    prev_close = candles['close'].shift(1)

    tr1 = high - low
    tr2 = (high - prev_close).abs()
    tr3 = (low - prev_close).abs()

    tr = pd.concat([tr1, tr2, tr3], axis=1).max(axis=1)
    return tr.iloc[1:]


def atr(candles: pd.DataFrame, period: int = 14) -> Optional[float]:
    """
    Average True Range (ATR).

    Simple average of the last `period` true ranges.

    Args:
        candles: OHLCV DataFrame
        period: ATR period (default: 14)

    Returns:
        ATR value or None
    """
    if len(candles) < period + 1:
        return None
    tr = true_range(candles)
    return float(tr.iloc[-period:].mean())


def bollinger_bands(
    close: SeriesLike, period: int = 20, std_dev: float = 2.0
) -> Optional[BollingerResult]:
    """
    Bollinger Bands with %B and bandwidth.

    Uses the population standard deviation of the last `period` closes.

    Args:
        close: Close prices
        period: MA period (default: 20)
        std_dev: Standard deviation multiplier (default: 2.0)

    Returns:
        BollingerResult or None
    """
    values = _values(close)
    if len(values) < period:
        return None

    window = values[-period:]
    middle = float(window.mean())
    std = float(window.std(ddof=0))

    upper = middle + std * std_dev
    lower = middle - std * std_dev

    percent_b = (values[-1] - lower) / (upper - lower) if upper != lower else None
    bandwidth = (2 * std_dev * std) / middle * 100 if middle else None

    return BollingerResult(
        upper=upper, middle=middle, lower=lower,
        percent_b=float(percent_b) if percent_b is not None else None,
        bandwidth=bandwidth,
    )


def _wilder_smooth(raw: np.ndarray, period: int) -> np.ndarray:
    """Wilder smoothing: seed with the sum of the first `period` values."""
    out = np.empty(len(raw) - period + 1)
    out[0] = raw[:period].sum()
    for i, value in enumerate(raw[period:], start=1):
        out[i] = out[i - 1] - out[i - 1] / period + value
    return out


def adx(candles: pd.DataFrame, period: int = 14) -> Optional[ADXResult]:
    """
    Average Directional Index (ADX) with +DI / -DI.

    Measures trend strength (0-100).
    - ADX < 20: Weak trend (ranging)
    - ADX 20-25: Developing trend
    - ADX > 25: Strong trend

    Args:
        candles: OHLCV DataFrame
        period: ADX period (default: 14)

    Returns:
        ADXResult or None when fewer than 2 * period bars are available
    """
    if len(candles) < 2 * period:
        return None

    high = candles['high'].to_numpy(dtype=float)
    low = candles['low'].to_numpy(dtype=float)

    up_move = np.diff(high)
    down_move = -np.diff(low)
    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)
    tr = true_range(candles).to_numpy(dtype=float)

    smoothed_tr = _wilder_smooth(tr, period)
    smoothed_plus = _wilder_smooth(plus_dm, period)
    smoothed_minus = _wilder_smooth(minus_dm, period)

    with np.errstate(divide='ignore', invalid='ignore'):
        plus_di = np.where(smoothed_tr > 0, smoothed_plus / smoothed_tr * 100, 0.0)
        minus_di = np.where(smoothed_tr > 0, smoothed_minus / smoothed_tr * 100, 0.0)
        di_sum = plus_di + minus_di
        dx = np.where(di_sum > 0, np.abs(plus_di - minus_di) / di_sum * 100, 0.0)

    if len(dx) < period:
        return None

    adx_value = dx[:period].mean()
    for value in dx[period:]:
        adx_value = (adx_value * (period - 1) + value) / period

    return ADXResult(adx=float(adx_value), plus_di=float(plus_di[-1]), minus_di=float(minus_di[-1]))


def vwap(candles: pd.DataFrame, period: int = 24) -> Optional[float]:
    """
    Volume-weighted typical price over the last `period` bars.

    Returns:
        VWAP or None when the window is short or carries no volume
    """
    if len(candles) < period:
        return None
    window = candles.iloc[-period:]
    typical = (window['high'] + window['low'] + window['close']) / 3
    volume = window['volume']
    total_volume = float(volume.sum())
    if total_volume <= 0:
        return None
    return float((typical * volume).sum() / total_volume)


def volume_ratio(volume: SeriesLike) -> Optional[float]:
    """
    Last-bar volume relative to the average of all prior bars.

    Returns:
        Ratio, 1.0 when prior volume averages zero, None with < 2 bars
    """
    values = _values(volume)
    if len(values) < 2:
        return None
    avg = values[:-1].mean()
    return float(values[-1] / avg) if avg > 0 else 1.0


def momentum(close: SeriesLike, period: int = 10) -> Optional[float]:
    """
    Percent change over the last `period` bars.

    momentum(close, 1) is the single-bar ("4h") change.
    """
    values = _values(close)
    if len(values) < period + 1:
        return None
    past = values[-1 - period]
    if past <= 0:
        return None
    return float((values[-1] - past) / past * 100)
