"""
Tests for paper_engine/strategies/indicators.py and snapshot.py

Covers:
- RSI extremes on monotonic series
- EMA seeding and MACD alignment
- Bollinger %B / bandwidth
- ADX on trending vs oscillating candles
- None on short input, and snapshots that degrade instead of raising
- Confluence tally
"""

import numpy as np
import pytest

from paper_engine.strategies import indicators
from paper_engine.strategies.snapshot import build_snapshot, confluence_score


class TestRsi:
    """Tests for rsi()."""

    def test_monotonic_rise_is_100(self):
        """No losses in the window gives RSI 100."""
        assert indicators.rsi(list(range(100, 131))) == 100.0

    def test_monotonic_fall_is_zero(self):
        """No gains in the window gives RSI 0."""
        assert indicators.rsi(list(range(130, 99, -1))) == pytest.approx(0.0)

    def test_uses_simple_average_of_last_period_diffs(self):
        """Equal gains and losses give RSI 50."""
        closes = [100, 101] * 8
        assert indicators.rsi(closes, 14) == pytest.approx(50.0)

    def test_short_series_is_none(self):
        assert indicators.rsi(list(range(14)), 14) is None


class TestMovingAverages:
    """Tests for sma(), ema() and macd()."""

    def test_ema_seeded_with_sma(self):
        assert indicators.ema([1, 2, 3, 4, 5], 5) == pytest.approx(3.0)

    def test_ema_smoothing_after_seed(self):
        """k = 2/(5+1): 6 * 1/3 + 3 * 2/3 = 4."""
        assert indicators.ema([1, 2, 3, 4, 5, 6], 5) == pytest.approx(4.0)

    def test_sma_uses_last_window(self):
        assert indicators.sma([1, 2, 3, 10, 20, 30], 3) == pytest.approx(20.0)

    def test_macd_needs_slow_plus_signal_bars(self):
        assert indicators.macd(list(range(34))) is None
        assert indicators.macd(list(range(35))) is not None

    def test_macd_histogram_is_line_minus_signal(self):
        closes = [100 + np.sin(i / 3) * 5 for i in range(60)]
        result = indicators.macd(closes)
        assert result.histogram == pytest.approx(result.macd - result.signal)

    def test_macd_flat_series_is_zero(self):
        result = indicators.macd([50.0] * 40)
        assert result.macd == pytest.approx(0.0)
        assert result.histogram == pytest.approx(0.0)


class TestBollinger:
    """Tests for bollinger_bands()."""

    def test_bands_use_population_std(self):
        closes = np.arange(1, 21, dtype=float)
        result = indicators.bollinger_bands(closes)
        std = closes.std(ddof=0)
        assert result.middle == pytest.approx(10.5)
        assert result.upper == pytest.approx(10.5 + 2 * std)
        assert result.percent_b == pytest.approx((20 - result.lower) / (result.upper - result.lower))
        assert result.bandwidth == pytest.approx(4 * std / 10.5 * 100)

    def test_flat_series_has_no_percent_b(self):
        result = indicators.bollinger_bands([10.0] * 20)
        assert result.percent_b is None
        assert result.bandwidth == pytest.approx(0.0)

    def test_short_series_is_none(self):
        assert indicators.bollinger_bands([1.0] * 19) is None


class TestAdx:
    """Tests for adx()."""

    def test_trending_series_is_strong(self, rising_candles):
        result = indicators.adx(rising_candles)
        assert result.adx > 25
        assert result.plus_di > result.minus_di

    def test_oscillating_series_is_weak(self, oscillating_candles):
        assert indicators.adx(oscillating_candles).adx < 20

    def test_needs_two_periods(self, candles):
        assert indicators.adx(candles(list(range(100, 127)))) is None
        assert indicators.adx(candles(list(range(100, 128)))) is not None


class TestVolumeAndMomentum:
    """Tests for atr(), vwap(), volume_ratio() and momentum()."""

    def test_atr_is_mean_true_range(self, candles):
        # Each bar: open = previous close, high/low 0.5 beyond the body
        frame = candles([100 + i for i in range(20)])
        assert indicators.atr(frame) == pytest.approx(2.0)

    def test_atr_short_series_is_none(self, candles):
        assert indicators.atr(candles([100.0] * 14)) is None

    def test_vwap_of_flat_prices(self, candles):
        frame = candles([50.0] * 30, spread=0.0)
        assert indicators.vwap(frame) == pytest.approx(50.0)

    def test_vwap_without_volume_is_none(self, candles):
        assert indicators.vwap(candles([50.0] * 30, volume=0.0)) is None

    def test_volume_ratio_against_prior_average(self):
        assert indicators.volume_ratio([10, 10, 10, 20]) == pytest.approx(2.0)

    def test_momentum_ten_bars(self):
        closes = [100.0] + [101.0] * 9 + [110.0]
        assert indicators.momentum(closes, 10) == pytest.approx(10.0)

    def test_single_bar_momentum(self):
        assert indicators.momentum([100.0, 95.0], 1) == pytest.approx(-5.0)


class TestSnapshot:
    """Tests for build_snapshot() and confluence_score()."""

    def test_full_snapshot_from_sixty_bars(self, rising_candles):
        snap = build_snapshot("BTC/USDT", rising_candles)
        assert snap.bars == 60
        assert snap.rsi == 100.0
        assert snap.sma20 > snap.sma50
        assert snap.adx > 25
        assert snap.bb_bandwidth_prev is not None
        assert snap.last_candle_at is not None
        assert snap.confluence is not None

    def test_short_series_degrades_to_none(self, candles):
        """Indicators with unmet windows are None; nothing raises."""
        snap = build_snapshot("BTC/USDT", candles([100.0 + i for i in range(10)]))
        assert snap.rsi is None
        assert snap.sma20 is None
        assert snap.macd_histogram is None
        assert snap.adx is None
        assert snap.is_tradeable is False

    def test_no_candles_is_none(self):
        assert build_snapshot("BTC/USDT", None) is None

    def test_confluence_all_bullish(self, snapshot):
        snap = snapshot(
            rsi=30, sma20=101, sma50=100, macd_histogram=0.5, momentum=2.0,
            adx=30, plus_di=25, minus_di=10, bb_percent_b=0.1,
        )
        result = confluence_score(snap)
        assert result.bull == 6
        assert result.bear == 0
        assert result.direction == "bullish"
        assert result.score == pytest.approx(100.0)
        assert result.confluence == 6

    def test_confluence_ignores_di_in_weak_trend(self, snapshot):
        snap = snapshot(adx=15, plus_di=5, minus_di=30)
        result = confluence_score(snap)
        assert result.bull == result.bear == 0
        assert result.direction == "neutral"
        assert result.score == pytest.approx(50.0)
