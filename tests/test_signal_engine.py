"""
Tests for paper_engine/live/signal_engine.py

Covers:
- Watchlist promotion weights per profile
- Staged trailing stop ratchet (long and short)
- Partial profit-take then trailing exit
- Hard stop with trend flip
- RSI and MACD reversal exits
- HOLD on missing data
"""

import pytest

from paper_engine.live.signal_engine import (
    EXIT, HOLD, PARTIAL, SignalEngine, classify_regime, stop_loss_pct, take_profit_pct,
)
from paper_engine.live.trade_record import StrategyMeta, TradeRecord, TradeState
from paper_engine.strategies.profiles import get_profile


def make_trade(direction="LONG", entry=100.0, atr=4.0, **meta):
    return TradeRecord(
        id=1,
        symbol="BTC/USDT",
        direction=direction,
        state=TradeState.ACTIVE,
        entry_price=entry,
        position_size=1000.0,
        meta=StrategyMeta(atr_at_entry=atr, **meta),
    )


@pytest.fixture
def engine():
    return SignalEngine()


class TestLevels:
    """Tests for regime classification and stop/target levels."""

    def test_classify_regime(self):
        assert classify_regime(30) == "trend"
        assert classify_regime(15) == "range"
        assert classify_regime(22) == "transition"
        assert classify_regime(None) is None

    def test_stop_loss_clamped(self):
        assert stop_loss_pct(None, 100) == 5.0
        assert stop_loss_pct(0.5, 100) == 2.0
        assert stop_loss_pct(3, 100) == pytest.approx(6.0)
        assert stop_loss_pct(10, 100) == 8.0

    def test_take_profit_clamped(self):
        assert take_profit_pct(None, 100) == 10.0
        assert take_profit_pct(1, 100) == 4.0
        assert take_profit_pct(2, 100) == pytest.approx(6.0)
        assert take_profit_pct(10, 100) == 15.0


class TestPromotion:
    """Tests for should_move_to_analyzing()."""

    def test_rsi_deviation_promotes_under_balanced(self, engine, snapshot):
        ind = snapshot(rsi=38)
        assert engine.promotion_weight(ind, get_profile("balanced")) == 2
        assert engine.should_move_to_analyzing(ind, get_profile("balanced")) is True

    def test_safe_needs_more_signals(self, engine, snapshot):
        ind = snapshot(rsi=38)
        assert engine.should_move_to_analyzing(ind, get_profile("safe")) is False

    def test_trend_regime_weights_momentum(self, engine, snapshot):
        ind = snapshot(rsi=50, adx=30, momentum=3.0, sma20=120, sma50=110)
        # momentum 1.5 + aligned trend 1
        assert engine.promotion_weight(ind, get_profile("balanced")) == pytest.approx(2.5)

    def test_missing_rsi_never_promotes(self, engine, snapshot):
        assert engine.should_move_to_analyzing(snapshot(volume_ratio=3.0)) is False
        assert engine.should_move_to_analyzing(None) is False


class TestTrailingStop:
    """Tests for update_trailing_stop()."""

    def test_long_ratchets_through_stages(self, engine):
        trade = make_trade()
        stops = []
        for price in (106, 108, 110, 112):
            trade.meta = engine.update_trailing_stop(trade, price, 4.0)
            stops.append(trade.meta.trailing_stop)
        assert stops == [100, 104, 106, 109]
        assert trade.meta.trailing_stage == 3

    def test_long_stop_never_loosens(self, engine):
        trade = make_trade(trailing_stage=3, trailing_stop=109.0)
        meta = engine.update_trailing_stop(trade, 111, 4.0)
        assert meta.trailing_stop == 109.0
        assert meta.trailing_stage == 3

    def test_short_ratchets_downward(self, engine):
        trade = make_trade(direction="SHORT")
        stops = []
        for price in (94, 92, 88):
            trade.meta = engine.update_trailing_stop(trade, price, 4.0)
            stops.append(trade.meta.trailing_stop)
        assert stops == [100, 96, 91]

    def test_below_first_stage_unchanged(self, engine):
        trade = make_trade()
        assert engine.update_trailing_stop(trade, 105, 4.0) == trade.meta


class TestExits:
    """Tests for should_exit_trade()."""

    def test_partial_then_trailing_exit(self, engine, snapshot):
        trade = make_trade()
        first = engine.should_exit_trade(trade, snapshot(current_price=112, rsi=60))
        assert first.action == PARTIAL
        assert first.size_fraction == 0.5
        assert first.meta.partial_exit_taken is True
        assert first.meta.partial_exit_price == 112
        # half of 1000 closed at +12%
        assert first.meta.partial_exit_pnl == pytest.approx(60)
        assert first.meta.trailing_stage == 3
        assert first.meta.trailing_stop == pytest.approx(109)

        trade.meta = first.meta
        second = engine.should_exit_trade(trade, snapshot(current_price=109, rsi=60))
        assert second.action == EXIT
        assert second.win is True
        assert "Trailing stop" in second.reason

    def test_partial_taken_once(self, engine, snapshot):
        trade = make_trade(partial_exit_taken=True)
        decision = engine.should_exit_trade(trade, snapshot(current_price=112, rsi=60))
        assert decision.action == HOLD
        assert decision.meta.trailing_stop == pytest.approx(109)

    def test_hard_stop_flips_short_in_strong_downtrend(self, engine, snapshot):
        ind = snapshot(current_price=91, rsi=40, adx=30, plus_di=10, minus_di=30, macd_histogram=-0.5)
        decision = engine.should_exit_trade(make_trade(), ind, get_profile("balanced"))
        assert decision.action == EXIT
        assert decision.win is False
        assert decision.flip_direction == "SHORT"

    def test_no_flip_under_safe(self, engine, snapshot):
        ind = snapshot(current_price=91, rsi=40, adx=30, plus_di=10, minus_di=30, macd_histogram=-0.5)
        decision = engine.should_exit_trade(make_trade(), ind, get_profile("safe"))
        assert decision.exit
        assert decision.flip_direction is None

    def test_no_flip_in_weak_trend(self, engine, snapshot):
        ind = snapshot(current_price=91, rsi=40, adx=20, plus_di=10, minus_di=30, macd_histogram=-0.5)
        assert engine.should_exit_trade(make_trade(), ind).flip_direction is None

    def test_rsi_overbought_exit_in_profit(self, engine, snapshot):
        decision = engine.should_exit_trade(make_trade(), snapshot(current_price=103, rsi=75))
        assert decision.action == EXIT
        assert decision.win is True
        assert "RSI overbought" in decision.reason

    def test_macd_reversal_exit_at_loss(self, engine, snapshot):
        decision = engine.should_exit_trade(
            make_trade(), snapshot(current_price=97, rsi=50, macd_histogram=-1.5))
        assert decision.exit
        assert decision.win is False

    def test_short_rsi_oversold_exit(self, engine, snapshot):
        decision = engine.should_exit_trade(
            make_trade(direction="SHORT"), snapshot(current_price=97, rsi=25))
        assert decision.exit
        assert decision.win is True

    def test_hold_without_indicators(self, engine, snapshot):
        trade = make_trade()
        assert engine.should_exit_trade(trade, None).action == HOLD
        assert engine.should_exit_trade(trade, snapshot(current_price=50)).action == HOLD
