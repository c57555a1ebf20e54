"""
Hedge Advisor - non-binding hedge suggestions

When the book is one-sided long (HEDGE_MIN_LONGS or more longs, no
shorts) and the reference symbol shows at least HEDGE_MIN_SIGNALS bearish
signals, suggest a hedge. Suggestions are reported only; nothing is
ever opened from here.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from loguru import logger

from ..strategies.snapshot import IndicatorSnapshot

HEDGE_MIN_LONGS = 3
HEDGE_MIN_SIGNALS = 2


@dataclass
class HedgeSuggestion:
    reference_symbol: str
    hedge_symbol: str
    long_count: int
    signals: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"{self.long_count} longs open with no shorts while {self.reference_symbol} "
            f"turns bearish ({', '.join(self.signals)}). Consider a short or {self.hedge_symbol}."
        )

    def to_dict(self):
        return {
            'reference_symbol': self.reference_symbol,
            'hedge_symbol': self.hedge_symbol,
            'long_count': self.long_count,
            'signals': list(self.signals),
            'message': self.message,
        }


def bearish_signals(ind: Optional[IndicatorSnapshot]) -> List[str]:
    """Bearish signals present on a snapshot."""
    if ind is None:
        return []
    signals = []
    if ind.macd_histogram is not None and ind.macd_histogram < 0:
        signals.append('MACD histogram negative')
    if ind.momentum is not None and ind.momentum < 0:
        signals.append('momentum negative')
    if ind.plus_di is not None and ind.minus_di is not None and ind.minus_di > ind.plus_di:
        signals.append('-DI above +DI')
    return signals


def suggest_hedge(
    active_trades: Iterable,
    reference: Optional[IndicatorSnapshot],
    hedge_symbol: str = 'PAXG/USDT',
) -> Optional[HedgeSuggestion]:
    """
    Check whether the open book warrants a hedge.

    Args:
        active_trades: Active trades (objects with `direction`)
        reference: Snapshot of the reference symbol
        hedge_symbol: Symbol to suggest as a hedge

    Returns:
        HedgeSuggestion or None
    """
    trades = list(active_trades)
    longs = sum(1 for t in trades if t.direction.upper() == 'LONG')
    shorts = sum(1 for t in trades if t.direction.upper() == 'SHORT')
    if longs < HEDGE_MIN_LONGS or shorts > 0 or reference is None:
        return None

    signals = bearish_signals(reference)
    if len(signals) < HEDGE_MIN_SIGNALS:
        return None

    suggestion = HedgeSuggestion(
        reference_symbol=reference.symbol,
        hedge_symbol=hedge_symbol,
        long_count=longs,
        signals=signals,
    )
    logger.warning(f"🛡️ Hedge suggestion: {suggestion.message}")
    return suggestion
