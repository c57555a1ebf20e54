"""
Entry strategies

An ordered table of named entry predicates. Evaluation walks the table
top to bottom and the first strategy whose predicate holds is the entry
reason; order is priority. Long-biased strategies come first, shorts
follow and are only considered when the risk profile allows shorting.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

from .catalog import allowed_for
from .profiles import RiskProfile
from .snapshot import IndicatorSnapshot

LONG = 'LONG'
SHORT = 'SHORT'

# Bollinger bandwidth (%) under which the bands count as squeezed
SQUEEZE_BANDWIDTH = 6.0
VWAP_EXTENSION_PCT = 2.0


@dataclass(frozen=True)
class StrategyContext:
    """Cross-symbol inputs some strategies need."""
    hedge_symbol: str = 'PAXG/USDT'
    reference_momentum_4h: Optional[float] = None


Predicate = Callable[[IndicatorSnapshot, RiskProfile, StrategyContext], bool]


@dataclass(frozen=True)
class EntryStrategy:
    name: str
    catalog_id: str
    direction: str
    predicate: Predicate

    def matches(self, ind: IndicatorSnapshot, profile: RiskProfile, ctx: StrategyContext) -> bool:
        if not allowed_for(self.catalog_id, profile.name):
            return False
        return bool(self.predicate(ind, profile, ctx))


@dataclass(frozen=True)
class EntrySignal:
    enter: bool
    direction: Optional[str] = None
    reason: Optional[str] = None


NO_ENTRY = EntrySignal(enter=False)


def _known(*values) -> bool:
    return all(v is not None for v in values)


def _squeeze_release(ind: IndicatorSnapshot) -> bool:
    return (
        _known(ind.bb_bandwidth, ind.bb_bandwidth_prev)
        and ind.bb_bandwidth_prev < SQUEEZE_BANDWIDTH
        and ind.bb_bandwidth > ind.bb_bandwidth_prev
    )


# Long side

def oversold_bounce(ind, profile, ctx):
    return (
        ind.rsi < profile.rsi_oversold
        and ind.sma20_distance is not None and ind.sma20_distance < 0.05
        and (ind.macd_histogram is None or ind.macd_histogram > -0.5)
    )


def golden_cross(ind, profile, ctx):
    return (
        _known(ind.sma20, ind.sma50, ind.momentum)
        and ind.sma20 > ind.sma50
        and ind.momentum > 0
        and (ind.macd_histogram is None or ind.macd_histogram > 0)
    )


def deeply_oversold(ind, profile, ctx):
    return ind.rsi < 30 and (ind.macd_histogram is None or ind.macd_histogram > -1)


def momentum_catch(ind, profile, ctx):
    return (
        _known(ind.momentum_4h, ind.volume_ratio)
        and ind.momentum_4h >= 4
        and ind.volume_ratio > 1.5
        and ind.rsi < 75
    )


def bollinger_bounce(ind, profile, ctx):
    return (
        ind.bb_percent_b is not None
        and (ind.adx is None or ind.adx < 25)
        and ind.bb_percent_b <= 0.05
        and ind.rsi < 45
    )


def range_breakout(ind, profile, ctx):
    return (
        _known(ind.bb_percent_b, ind.volume_ratio)
        and _squeeze_release(ind)
        and ind.bb_percent_b > 1.0
        and ind.volume_ratio > 1.5
    )


def vwap_reversion(ind, profile, ctx):
    deviation = ind.vwap_deviation
    return deviation is not None and deviation < -VWAP_EXTENSION_PCT and ind.rsi < 40


def trend_surfer(ind, profile, ctx):
    return (
        _known(ind.adx, ind.plus_di, ind.minus_di, ind.sma20, ind.sma50)
        and ind.adx > 25
        and ind.plus_di > ind.minus_di
        and ind.sma20 > ind.sma50
        and ind.sma20_distance < 0.015
        and 40 <= ind.rsi <= 60
    )


def correlation_hedge(ind, profile, ctx):
    return (
        ind.symbol == ctx.hedge_symbol
        and ctx.reference_momentum_4h is not None
        and ctx.reference_momentum_4h <= -3
        and ind.rsi < 70
    )


def qfl_bounce(ind, profile, ctx):
    return (
        _known(ind.momentum, ind.volume_ratio, ind.bb_percent_b, ind.macd_histogram)
        and ind.momentum <= -8
        and ind.volume_ratio >= 2.0
        and ind.bb_percent_b <= 0.15
        and ind.macd_histogram > -2
    )


# Short side

def overbought_reject(ind, profile, ctx):
    return (
        ind.rsi > profile.rsi_overbought
        and ind.sma20 is not None and ind.current_price < ind.sma20
        and ind.macd_histogram is not None and ind.macd_histogram < 0
    )


def death_cross(ind, profile, ctx):
    return (
        _known(ind.sma20, ind.sma50, ind.momentum, ind.macd_histogram)
        and ind.sma20 < ind.sma50
        and ind.momentum < profile.short_momentum
        and ind.macd_histogram < 0
    )


def bearish_breakdown(ind, profile, ctx):
    return (
        _known(ind.momentum_4h, ind.volume_ratio)
        and ind.momentum_4h <= -3
        and ind.volume_ratio > 1.5
        and ind.rsi > 25
    )


def bollinger_bounce_short(ind, profile, ctx):
    return (
        ind.bb_percent_b is not None
        and (ind.adx is None or ind.adx < 25)
        and ind.bb_percent_b >= 0.95
        and ind.rsi > 55
    )


def range_breakout_short(ind, profile, ctx):
    return (
        _known(ind.bb_percent_b, ind.volume_ratio)
        and _squeeze_release(ind)
        and ind.bb_percent_b < 0.0
        and ind.volume_ratio > 1.5
    )


def vwap_reversion_short(ind, profile, ctx):
    deviation = ind.vwap_deviation
    return deviation is not None and deviation > VWAP_EXTENSION_PCT and ind.rsi > 60


def trend_surfer_short(ind, profile, ctx):
    return (
        _known(ind.adx, ind.plus_di, ind.minus_di, ind.sma20, ind.sma50)
        and ind.adx > 25
        and ind.minus_di > ind.plus_di
        and ind.sma20 < ind.sma50
        and ind.sma20_distance < 0.015
        and 40 <= ind.rsi <= 60
    )


LONG_STRATEGIES: List[EntryStrategy] = [
    EntryStrategy('oversold_bounce', 'oversold_bounce', LONG, oversold_bounce),
    EntryStrategy('golden_cross', 'golden_cross', LONG, golden_cross),
    EntryStrategy('deeply_oversold', 'deeply_oversold', LONG, deeply_oversold),
    EntryStrategy('momentum_catch', 'momentum_catch', LONG, momentum_catch),
    EntryStrategy('bollinger_bounce', 'bollinger_bounce', LONG, bollinger_bounce),
    EntryStrategy('range_breakout', 'range_breakout', LONG, range_breakout),
    EntryStrategy('vwap_reversion', 'vwap_reversion', LONG, vwap_reversion),
    EntryStrategy('trend_surfer', 'trend_surfer', LONG, trend_surfer),
    EntryStrategy('correlation_hedge', 'correlation_hedge', LONG, correlation_hedge),
    EntryStrategy('qfl_bounce', 'qfl_bounce', LONG, qfl_bounce),
]

SHORT_STRATEGIES: List[EntryStrategy] = [
    EntryStrategy('overbought_reject', 'overbought_reject', SHORT, overbought_reject),
    EntryStrategy('death_cross', 'death_cross', SHORT, death_cross),
    EntryStrategy('bearish_breakdown', 'bearish_breakdown', SHORT, bearish_breakdown),
    EntryStrategy('bollinger_bounce_short', 'bollinger_bounce', SHORT, bollinger_bounce_short),
    EntryStrategy('range_breakout_short', 'range_breakout', SHORT, range_breakout_short),
    EntryStrategy('vwap_reversion_short', 'vwap_reversion', SHORT, vwap_reversion_short),
    EntryStrategy('trend_surfer_short', 'trend_surfer', SHORT, trend_surfer_short),
]

ENTRY_STRATEGIES: List[EntryStrategy] = LONG_STRATEGIES + SHORT_STRATEGIES


def strategies_for(profile: RiskProfile) -> List[EntryStrategy]:
    """Strategies in priority order for a risk profile."""
    if profile.allow_shorts:
        return ENTRY_STRATEGIES
    return LONG_STRATEGIES


def first_match(
    ind: Optional[IndicatorSnapshot],
    profile: RiskProfile,
    ctx: Optional[StrategyContext] = None,
) -> EntrySignal:
    """
    Walk the strategy table and report the first match.

    Args:
        ind: Indicator snapshot; None or missing RSI means no decision
        profile: Active risk profile
        ctx: Cross-symbol inputs

    Returns:
        EntrySignal(enter=True, direction, reason) or NO_ENTRY
    """
    if ind is None or not ind.is_tradeable:
        return NO_ENTRY
    ctx = ctx or StrategyContext()

    for strategy in strategies_for(profile):
        if strategy.matches(ind, profile, ctx):
            return EntrySignal(enter=True, direction=strategy.direction, reason=strategy.name)
    return NO_ENTRY
