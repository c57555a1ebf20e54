"""
Shared test fixtures for the paper trading engine.

Provides reusable fixtures for:
- Candle series (rising, falling, oscillating, trending)
- Hand-built indicator snapshots
- In-memory trade record store
- Stub market data provider and a fixed clock
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from paper_engine.data.market_data import MarketDataProvider
from paper_engine.live import live_engine as live_engine_module
from paper_engine.live.live_engine import EngineSettings, LiveEngine
from paper_engine.live.record_store import InMemoryTradeRecordStore
from paper_engine.live.state_manager import StateManager
from paper_engine.risk.circuit_breaker import CircuitBreaker
from paper_engine.strategies.snapshot import IndicatorSnapshot

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Candles
# ---------------------------------------------------------------------------


def make_candles(closes, spread=0.5, volume=1000.0, end=FIXED_NOW, freq="4h"):
    """OHLCV frame where each bar opens at the previous close."""
    closes = np.asarray(closes, dtype=float)
    opens = np.concatenate([[closes[0]], closes[:-1]])
    volumes = np.full(len(closes), volume) if np.isscalar(volume) else np.asarray(volume, dtype=float)
    index = pd.date_range(end=end, periods=len(closes), freq=freq, tz="UTC")
    return pd.DataFrame(
        {
            "open": opens,
            "high": np.maximum(opens, closes) + spread,
            "low": np.minimum(opens, closes) - spread,
            "close": closes,
            "volume": volumes,
        },
        index=index,
    )


@pytest.fixture
def candles():
    """Factory for candle frames."""
    return make_candles


@pytest.fixture
def rising_candles():
    return make_candles([100 + 2 * i for i in range(60)])


@pytest.fixture
def falling_candles():
    return make_candles([300 - 2 * i for i in range(60)])


@pytest.fixture
def oscillating_candles():
    # Every bar spans the same high/low so no directional movement registers
    frame = make_candles([100, 102] * 30)
    frame.iloc[0, frame.columns.get_loc("high")] = frame["high"].iloc[1]
    return frame


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@pytest.fixture
def snapshot():
    """Factory for hand-built indicator snapshots."""
    def _make(symbol="BTC/USDT", current_price=100.0, **fields):
        return IndicatorSnapshot(symbol=symbol, current_price=current_price, **fields)
    return _make


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class StubMarketData(MarketDataProvider):
    """Returns canned candles; symbols listed in `failing` raise."""

    def __init__(self, candles=None, failing=None):
        self.candles = candles or {}
        self.failing = set(failing or [])
        self.calls = []

    def get_candles(self, symbol, timeframe="4h", limit=60):
        self.calls.append(symbol)
        if symbol in self.failing:
            raise ConnectionError(f"exchange unreachable for {symbol}")
        return self.candles.get(symbol)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def store():
    return InMemoryTradeRecordStore(board_id=1, balance=10000.0, risk_profile="balanced")


@pytest.fixture
def feed(monkeypatch):
    """
    Snapshot feed for engine tests.

    Maps symbol -> IndicatorSnapshot; the engine's snapshot builder is
    patched to serve these so scenarios don't depend on candle shapes.
    """
    snapshots = {}

    def _build(symbol, candles, funding_rate=None):
        return snapshots.get(symbol)

    monkeypatch.setattr(live_engine_module, "build_snapshot", _build)
    return snapshots


@pytest.fixture
def market_data(feed):
    class _FeedMarketData(StubMarketData):
        def get_candles(self, symbol, timeframe="4h", limit=60):
            super().get_candles(symbol, timeframe, limit)
            return symbol if symbol in feed else None

    return _FeedMarketData()


@pytest.fixture
def make_engine(store, market_data, tmp_path, now):
    """Factory for engines wired to the in-memory store and a fixed clock."""
    def _make(settings=None, **overrides):
        kwargs = dict(
            store=store,
            market_data=market_data,
            settings=settings or EngineSettings(),
            state_manager=StateManager(str(tmp_path / "engine_state.json")),
            breaker=CircuitBreaker(),
            clock=lambda: now,
            sleep=lambda seconds: None,
        )
        kwargs.update(overrides)
        return LiveEngine(**kwargs)
    return _make


@pytest.fixture
def stub_market_data():
    """Factory for stub providers with canned candles or failing symbols."""
    return StubMarketData
