"""
Strategy catalog

Descriptive metadata for every strategy the engine can act on, plus the
market-regime rules that decide which of them are currently in play.
The allowed risk levels listed here gate the entry predicates.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

MARKET_REGIMES = ('bullish', 'bearish', 'ranging', 'volatile')


@dataclass(frozen=True)
class StrategyInfo:
    id: str
    name: str
    direction: str          # 'long', 'short' or 'both'
    style: str              # 'swing' or 'day'
    description: str
    indicators: Tuple[str, ...]
    risk_levels: Tuple[str, ...]


@dataclass
class StrategyStatus:
    """A catalog entry resolved against the current market."""
    info: StrategyInfo
    active: bool
    conditions: str

    def to_dict(self) -> Dict:
        return {
            'id': self.info.id,
            'name': self.info.name,
            'direction': self.info.direction,
            'active': self.active,
            'conditions': self.conditions,
        }


ALL_LEVELS = ('safe', 'balanced', 'bold')
ACTIVE_LEVELS = ('balanced', 'bold')

STRATEGY_CATALOG: Dict[str, StrategyInfo] = {s.id: s for s in [
    StrategyInfo('oversold_bounce', 'Oversold Bounce', 'long', 'swing',
                 'Buy when RSI shows oversold near SMA20 support with MACD confirmation',
                 ('RSI', 'SMA20', 'MACD'), ALL_LEVELS),
    StrategyInfo('golden_cross', 'Golden Cross', 'long', 'swing',
                 'Enter when SMA20 is above SMA50 with positive momentum',
                 ('SMA20', 'SMA50', 'MACD', 'Momentum'), ALL_LEVELS),
    StrategyInfo('deeply_oversold', 'Deep Value', 'long', 'swing',
                 'Buy at extreme oversold levels (RSI < 30) with MACD turning',
                 ('RSI', 'MACD'), ACTIVE_LEVELS),
    StrategyInfo('momentum_catch', 'Momentum Catch', 'long', 'day',
                 'Jump on strong pumps: 4%+ move in one bar with high volume',
                 ('4h Momentum', 'Volume Ratio', 'RSI'), ('bold',)),
    StrategyInfo('bollinger_bounce', 'Bollinger Bounce', 'both', 'swing',
                 'Mean reversion at Bollinger Band extremes in ranging markets (ADX < 25)',
                 ('Bollinger Bands', 'RSI', 'ADX'), ALL_LEVELS),
    StrategyInfo('range_breakout', 'Range Breakout', 'both', 'swing',
                 'Bollinger squeeze breakout: bandwidth contracts then expands with volume',
                 ('Bollinger Bands', 'Volume Ratio', 'ADX'), ACTIVE_LEVELS),
    StrategyInfo('vwap_reversion', 'VWAP Reversion', 'both', 'swing',
                 'Price reverts to VWAP when extended more than 2% with RSI confirmation',
                 ('VWAP', 'RSI'), ALL_LEVELS),
    StrategyInfo('trend_surfer', 'Trend Surfer', 'both', 'swing',
                 'Ride strong trends: enter on SMA20 pullback when ADX confirms trend',
                 ('ADX', 'SMA20', 'RSI'), ACTIVE_LEVELS),
    StrategyInfo('correlation_hedge', 'Correlation Hedge', 'long', 'swing',
                 'Buy the gold token when the reference coin dumps more than 3%',
                 ('Reference Momentum', 'RSI'), ALL_LEVELS),
    StrategyInfo('qfl_bounce', 'Quick Fingers (QFL)', 'long', 'day',
                 'Buy the bounce after a flash crash: volume capitulation then MACD flattening',
                 ('Momentum', 'RSI', 'Bollinger Bands', 'Volume Ratio', 'MACD'), ACTIVE_LEVELS),
    StrategyInfo('overbought_reject', 'Overbought Rejection', 'short', 'swing',
                 'Short when price rejects below SMA20 resistance with bearish MACD',
                 ('RSI', 'SMA20', 'MACD'), ACTIVE_LEVELS),
    StrategyInfo('death_cross', 'Death Cross Short', 'short', 'swing',
                 'Short when SMA20 is below SMA50 with negative momentum',
                 ('SMA20', 'SMA50', 'MACD', 'Momentum'), ACTIVE_LEVELS),
    StrategyInfo('bearish_breakdown', 'Bearish Breakdown', 'short', 'day',
                 'Short fast drops: 3%+ dump in one bar with a volume spike',
                 ('4h Momentum', 'Volume Ratio', 'RSI'), ('bold',)),
    StrategyInfo('trend_reversal_flip', 'Trend Flip', 'both', 'swing',
                 'When a trade hits its stop in a strong opposing trend, flip direction',
                 ('ADX', '+DI/-DI', 'MACD', 'RSI'), ACTIVE_LEVELS),
]}


def get_strategy(strategy_id: str) -> Optional[StrategyInfo]:
    """Get a catalog entry by id, falling back to a name match."""
    if strategy_id in STRATEGY_CATALOG:
        return STRATEGY_CATALOG[strategy_id]
    needle = strategy_id.lower()
    return next((s for s in STRATEGY_CATALOG.values() if needle in s.name.lower()), None)


def allowed_for(strategy_id: str, risk_level: str) -> bool:
    info = STRATEGY_CATALOG.get(strategy_id)
    return info is not None and risk_level in info.risk_levels


def _regime_rule(strategy_id: str, market: str, fear_greed: float) -> Tuple[bool, str]:
    if strategy_id == 'oversold_bounce':
        active = fear_greed < 40 or market in ('bearish', 'ranging')
        return active, 'Fear in market, bounces likely' if active else 'Market too bullish for oversold plays'
    if strategy_id == 'golden_cross':
        active = market in ('bullish', 'ranging')
        return active, 'Trend turning positive' if active else 'Bearish trend, no golden crosses forming'
    if strategy_id == 'deeply_oversold':
        active = fear_greed < 25
        return active, f'Extreme fear ({fear_greed:.0f}), deep value entries' if active else 'Not enough fear for deep value'
    if strategy_id == 'momentum_catch':
        active = market in ('volatile', 'bullish')
        return active, 'Volatile conditions, momentum plays available' if active else 'Low volatility, no momentum to catch'
    if strategy_id == 'overbought_reject':
        active = fear_greed > 50 or market == 'bearish'
        return active, 'Overbought conditions detected' if active else 'Market not overbought'
    if strategy_id == 'death_cross':
        active = market == 'bearish'
        return active, 'Bearish trend confirmed' if active else 'No bearish crossovers'
    if strategy_id == 'bearish_breakdown':
        active = market in ('bearish', 'volatile')
        return active, 'Breakdowns in progress' if active else 'Market stable, no breakdowns'
    if strategy_id == 'bollinger_bounce':
        active = market == 'ranging' or fear_greed < 60
        return active, 'Ranging market, band bounces active' if active else 'Strong trend, bounce plays suppressed'
    if strategy_id == 'range_breakout':
        active = market in ('ranging', 'volatile')
        return active, 'Squeeze breakout conditions forming' if active else 'No squeeze detected'
    if strategy_id == 'vwap_reversion':
        return True, 'Universal mean reversion'
    if strategy_id == 'trend_surfer':
        active = market in ('bullish', 'bearish')
        return active, 'Strong trend, surfing pullbacks' if active else 'No clear trend for pullback entries'
    if strategy_id == 'correlation_hedge':
        active = market == 'bearish' or fear_greed < 35
        return active, 'Bearish conditions, gold hedge active' if active else 'Market stable, no hedge needed'
    if strategy_id == 'qfl_bounce':
        active = fear_greed < 30 or market in ('volatile', 'bearish')
        return active, 'Flash crash conditions, QFL bounces active' if active else 'Market stable, no flash crashes to buy'
    if strategy_id == 'trend_reversal_flip':
        active = market != 'ranging'
        return active, 'Strong trend detected, flip armed' if active else 'Ranging market, no clear trend to flip into'
    return True, 'Active'


def active_strategies(
    risk_level: str,
    market: str,
    fear_greed: Optional[float] = None,
) -> List[StrategyStatus]:
    """
    Resolve the catalog against the current market.

    Args:
        risk_level: Active risk profile name
        market: One of MARKET_REGIMES
        fear_greed: Fear & greed index (0-100); neutral 50 when unknown

    Returns:
        One StrategyStatus per catalog entry
    """
    if fear_greed is None:
        fear_greed = 50.0

    statuses = []
    for info in STRATEGY_CATALOG.values():
        if risk_level not in info.risk_levels:
            statuses.append(StrategyStatus(
                info, False, f"Requires {' or '.join(info.risk_levels)} risk level"))
            continue
        active, conditions = _regime_rule(info.id, market, fear_greed)
        statuses.append(StrategyStatus(info, active, conditions))
    return statuses
