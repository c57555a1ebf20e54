"""
Tests for paper_engine/live/review.py

Covers:
- Market classification of the reference symbol
- News risk windows and severities
- Suggested cycle frequency
- Data freshness
- build_review(): structure and absence of side effects
"""

import copy
import json
from datetime import timedelta

from paper_engine.live.review import (
    classify_market, data_freshness, load_news, news_risk, suggest_frequency,
)
from paper_engine.live.trade_record import StrategyMeta, TradeRecord, TradeState

REVIEW_KEYS = {
    "generated_at", "risk_profile", "drawdown_locked", "market_regime", "active_strategies",
    "trades", "watchlist", "suggested_frequency", "exposure", "news_risk", "data_freshness",
    "loss_streak", "errors",
}


class TestClassifyMarket:
    """Tests for classify_market()."""

    def test_no_adx_is_ranging(self, snapshot):
        assert classify_market(None) == "ranging"
        assert classify_market(snapshot(rsi=50)) == "ranging"

    def test_extreme_bar_is_volatile(self, snapshot):
        assert classify_market(snapshot(adx=30, plus_di=25, minus_di=10, momentum_4h=-7)) == "volatile"

    def test_wide_atr_is_volatile(self, snapshot):
        assert classify_market(snapshot(adx=30, plus_di=25, minus_di=10, atr=5)) == "volatile"

    def test_trend_direction_from_di(self, snapshot):
        assert classify_market(snapshot(adx=30, plus_di=25, minus_di=10)) == "bullish"
        assert classify_market(snapshot(adx=30, plus_di=10, minus_di=25)) == "bearish"
        assert classify_market(snapshot(adx=15, plus_di=10, minus_di=25)) == "ranging"


class TestNewsRisk:
    """Tests for news_risk() and load_news()."""

    def item(self, severity, hours_ago, now, title="headline"):
        return {"title": title, "severity": severity,
                "publishedAt": (now - timedelta(hours=hours_ago)).isoformat()}

    def test_recent_high_severity_pauses(self, now):
        result = news_risk([self.item("high", 1, now, "Exchange hacked")], now)
        assert result == {"adjustment": "pause_entries", "headlines": ["Exchange hacked"]}

    def test_medium_reduces_size(self, now):
        assert news_risk([self.item("medium", 5, now)], now)["adjustment"] == "reduce_size"

    def test_old_news_ignored(self, now):
        result = news_risk([self.item("high", 7, now), self.item("low", 1, now)], now)
        assert result == {"adjustment": "none", "headlines": []}

    def test_load_news_accepts_wrapped_items(self, tmp_path, now):
        path = tmp_path / "news.json"
        path.write_text(json.dumps({"items": [self.item("high", 1, now), "noise"]}))
        assert len(load_news(str(path))) == 1

    def test_load_news_missing_or_bad_file(self, tmp_path):
        assert load_news(None) == []
        assert load_news(str(tmp_path / "absent.json")) == []
        bad = tmp_path / "bad.json"
        bad.write_text("{")
        assert load_news(str(bad)) == []


class TestFrequencyAndFreshness:
    """Tests for suggest_frequency() and data_freshness()."""

    def active(self, **meta):
        return TradeRecord(id=1, symbol="BTC/USDT", state=TradeState.ACTIVE, meta=StrategyMeta(**meta))

    def test_frequency(self, snapshot):
        calm = {"BTC/USDT": snapshot(rsi=50, momentum_4h=1.0)}
        assert suggest_frequency(calm, [])["minutes"] == 240
        assert suggest_frequency(calm, [self.active()])["minutes"] == 120
        assert suggest_frequency(calm, [self.active(trailing_stage=1)])["minutes"] == 60
        wild = {"BTC/USDT": snapshot(rsi=50, momentum_4h=8.0)}
        assert suggest_frequency(wild, [])["minutes"] == 60

    def test_freshness(self, snapshot, now):
        snapshots = {
            "BTC/USDT": snapshot(rsi=50, last_candle_at=now - timedelta(hours=4)),
            "ETH/USDT": snapshot("ETH/USDT", rsi=50, last_candle_at=now - timedelta(hours=12)),
            "SOL/USDT": snapshot("SOL/USDT", last_candle_at=now),
        }
        result = data_freshness(["BTC/USDT", "ETH/USDT", "SOL/USDT", "ADA/USDT"], snapshots, now, "4h")
        assert result["BTC/USDT"] == {"status": "fresh", "age_hours": 4.0}
        assert result["ETH/USDT"]["status"] == "stale"
        assert result["SOL/USDT"]["status"] == "insufficient"
        assert result["ADA/USDT"] == {"status": "missing", "age_hours": None}


class TestBuildReview:
    """Tests for LiveEngine.review()."""

    def test_review_is_read_only(self, make_engine, store, feed, snapshot, tmp_path):
        store.add("BTC/USDT", TradeState.ANALYZING)
        store.add("ETH/USDT", TradeState.ACTIVE, entry_price=100, position_size=1000)
        feed["BTC/USDT"] = snapshot(rsi=28, sma20=101, macd_histogram=0.1, atr=2)
        feed["ETH/USDT"] = snapshot("ETH/USDT", current_price=103, rsi=55)
        before = copy.deepcopy(store.records)

        review = make_engine().review()

        assert set(review) == REVIEW_KEYS
        assert store.records == before
        assert store.journal == []
        assert store.stats == []
        assert store.balance == 10000
        assert not (tmp_path / "engine_state.json").exists()

    def test_review_contents(self, make_engine, store, feed, snapshot):
        store.add("BTC/USDT", TradeState.ANALYZING)
        store.add("ETH/USDT", TradeState.ACTIVE, entry_price=100, position_size=1000)
        feed["BTC/USDT"] = snapshot(rsi=28, sma20=101, macd_histogram=0.1, atr=2)
        feed["ETH/USDT"] = snapshot("ETH/USDT", current_price=103, rsi=55)

        review = make_engine().review()

        assert review["risk_profile"] == "balanced"
        assert review["errors"] == []
        assert review["market_regime"]["market"] == "ranging"
        assert review["watchlist"][0]["entry_signal"] == "oversold_bounce"
        assert review["watchlist"][0]["cooldown_clear"] is True
        assert review["trades"][0]["symbol"] == "ETH/USDT"
        assert review["trades"][0]["next_action"] == "hold"
        assert review["exposure"]["invested"] == 1000
        assert review["exposure"]["by_group"] == {"layer1": {"LONG": 1, "SHORT": 0}}
        assert review["suggested_frequency"]["minutes"] == 120
        assert len(review["active_strategies"]) == 14

    def test_unknown_risk_level_falls_back(self, make_engine, store):
        store.risk_profile = "moderate"
        review = make_engine().review()
        assert review["risk_profile"] == "balanced"
        assert [e["step"] for e in review["errors"]] == ["risk_settings"]
        assert "moderate" in review["errors"][0]["error"]

    def test_review_reports_store_failures(self, make_engine, store, monkeypatch):
        def boom(board_id):
            raise RuntimeError("down")

        monkeypatch.setattr(store, "list_trades", boom)
        review = make_engine().review()
        assert [e["step"] for e in review["errors"]] == ["load_records"]
        assert review["trades"] == []
