"""
Tests for paper_engine/strategies/entry_strategies.py and catalog.py

Covers:
- First-match priority order
- Shorts only under profiles that allow them
- Catalog risk-level gating
- Correlation hedge on the hedge symbol only
- Market-regime resolution of the catalog
"""

from paper_engine.strategies.catalog import active_strategies, allowed_for, get_strategy
from paper_engine.strategies.entry_strategies import (
    LONG, SHORT, StrategyContext, first_match, strategies_for,
)
from paper_engine.strategies.profiles import RISK_PROFILES, get_profile

import pytest


class TestFirstMatch:
    """Tests for first_match()."""

    def test_oversold_bounce_end_to_end(self, snapshot):
        ind = snapshot(rsi=28, sma20=101, macd_histogram=0.1, atr=2)
        signal = first_match(ind, get_profile("balanced"))
        assert signal.enter is True
        assert signal.direction == LONG
        assert signal.reason == "oversold_bounce"

    def test_priority_prefers_earlier_strategy(self, snapshot):
        """Both oversold_bounce and deeply_oversold hold; the first wins."""
        ind = snapshot(rsi=25, sma20=100.5, macd_histogram=0.0)
        assert first_match(ind, get_profile("bold")).reason == "oversold_bounce"

    def test_deeply_oversold_when_far_from_sma(self, snapshot):
        ind = snapshot(rsi=25, sma20=120, macd_histogram=0.0)
        assert first_match(ind, get_profile("balanced")).reason == "deeply_oversold"

    def test_deeply_oversold_gated_for_safe(self, snapshot):
        ind = snapshot(rsi=25, sma20=120, macd_histogram=0.0)
        assert first_match(ind, get_profile("safe")).enter is False

    def test_no_rsi_no_decision(self, snapshot):
        assert first_match(snapshot(), get_profile("bold")).enter is False
        assert first_match(None, get_profile("bold")).enter is False


class TestShorts:
    """Short strategies and profile gating."""

    def overbought(self, snapshot):
        return snapshot(rsi=72, sma20=105, macd_histogram=-0.3)

    def test_overbought_reject_under_balanced(self, snapshot):
        signal = first_match(self.overbought(snapshot), get_profile("balanced"))
        assert signal.direction == SHORT
        assert signal.reason == "overbought_reject"

    def test_shorts_excluded_for_safe(self, snapshot):
        assert first_match(self.overbought(snapshot), get_profile("safe")).enter is False

    def test_safe_table_is_long_only(self):
        assert all(s.direction == LONG for s in strategies_for(get_profile("safe")))

    def test_shorts_follow_longs(self):
        directions = [s.direction for s in strategies_for(get_profile("bold"))]
        assert directions.index(SHORT) > max(i for i, d in enumerate(directions) if d == LONG)


class TestCorrelationHedge:
    """Tests for the gold-token hedge entry."""

    def test_hedge_symbol_on_reference_dump(self, snapshot):
        ind = snapshot(symbol="PAXG/USDT", rsi=50)
        ctx = StrategyContext(hedge_symbol="PAXG/USDT", reference_momentum_4h=-3.5)
        signal = first_match(ind, get_profile("safe"), ctx)
        assert signal.reason == "correlation_hedge"

    def test_other_symbols_ignore_reference_dump(self, snapshot):
        ind = snapshot(symbol="ETH/USDT", rsi=50)
        ctx = StrategyContext(hedge_symbol="PAXG/USDT", reference_momentum_4h=-3.5)
        assert first_match(ind, get_profile("safe"), ctx).enter is False

    def test_mild_reference_drop_is_ignored(self, snapshot):
        ind = snapshot(symbol="PAXG/USDT", rsi=50)
        ctx = StrategyContext(reference_momentum_4h=-2.0)
        assert first_match(ind, get_profile("safe"), ctx).enter is False


class TestCatalog:
    """Tests for the strategy catalog."""

    def test_momentum_catch_is_bold_only(self):
        assert allowed_for("momentum_catch", "bold")
        assert not allowed_for("momentum_catch", "balanced")

    def test_unknown_strategy_not_allowed(self):
        assert not allowed_for("martingale", "bold")

    def test_get_strategy_by_name(self):
        assert get_strategy("Trend Flip").id == "trend_reversal_flip"

    def test_resolution_covers_whole_catalog(self):
        statuses = active_strategies("safe", "ranging")
        assert len(statuses) == 14
        by_id = {s.info.id: s for s in statuses}
        assert by_id["death_cross"].active is False
        assert "Requires" in by_id["death_cross"].conditions
        assert by_id["vwap_reversion"].active is True

    def test_regime_rules(self):
        by_id = {s.info.id: s for s in active_strategies("balanced", "bearish")}
        assert by_id["death_cross"].active is True
        assert by_id["golden_cross"].active is False
        assert by_id["trend_reversal_flip"].active is True


class TestProfiles:
    """Tests for risk profile lookup."""

    def test_lookup_is_case_insensitive(self):
        assert get_profile(" Bold ").name == "bold"

    def test_unknown_profile_raises(self):
        with pytest.raises(ValueError):
            get_profile("yolo")

    def test_only_safe_is_long_only(self):
        assert [n for n, p in RISK_PROFILES.items() if not p.allow_shorts] == ["safe"]
