"""
Position Sizer - confidence-scaled fraction of balance

Base size is BASE_FRACTION of the balance. A confidence multiplier
clamped to [MIN_MULTIPLIER, MAX_MULTIPLIER] scales it up for stretched
RSI, volume surges, strong trends and Bollinger extremes, and down for
low-conviction strategies and thin volume. The result is capped at
MAX_FRACTION of the balance, then halved while a loss-streak cooldown
is active.
"""

from typing import Optional

from loguru import logger

from ..strategies.snapshot import IndicatorSnapshot

BASE_FRACTION = 0.20
MAX_FRACTION = 0.25
MIN_MULTIPLIER = 0.5
MAX_MULTIPLIER = 1.25
MIN_TRADE_SIZE = 10.0

# Fast-move strategies with a poorer hit rate
LOW_CONVICTION_STRATEGIES = frozenset({
    'momentum_catch',
    'bearish_breakdown',
    'range_breakout',
    'range_breakout_short',
})


class PositionSizer:
    """Sizes new entries from account balance and signal quality."""

    def __init__(
        self,
        base_fraction: float = BASE_FRACTION,
        max_fraction: float = MAX_FRACTION,
        min_trade_size: float = MIN_TRADE_SIZE,
    ):
        self.base_fraction = base_fraction
        self.max_fraction = max_fraction
        self.min_trade_size = min_trade_size

    @staticmethod
    def confidence_multiplier(ind: Optional[IndicatorSnapshot], strategy: Optional[str] = None) -> float:
        """Signal-quality multiplier in [MIN_MULTIPLIER, MAX_MULTIPLIER]."""
        multiplier = 1.0

        if ind is not None:
            if ind.rsi is not None and (ind.rsi < 25 or ind.rsi > 75):
                multiplier += 0.15
            if ind.volume_ratio is not None:
                if ind.volume_ratio > 2.0:
                    multiplier += 0.1
                elif ind.volume_ratio < 0.7:
                    multiplier -= 0.15
            if ind.adx is not None and ind.adx > 30:
                multiplier += 0.1
            if ind.bb_percent_b is not None and (ind.bb_percent_b < 0.05 or ind.bb_percent_b > 0.95):
                multiplier += 0.05

        if strategy in LOW_CONVICTION_STRATEGIES:
            multiplier -= 0.25

        return max(MIN_MULTIPLIER, min(MAX_MULTIPLIER, multiplier))

    def calculate(
        self,
        balance: float,
        ind: Optional[IndicatorSnapshot] = None,
        strategy: Optional[str] = None,
        loss_cooldown: bool = False,
    ) -> float:
        """
        Calculate the position size for a new entry.

        Args:
            balance: Available account balance
            ind: Indicator snapshot of the symbol being entered
            strategy: Entry strategy name
            loss_cooldown: Whether the loss-streak cooldown is active

        Returns:
            Position size in account currency (0 for a non-positive balance)
        """
        if balance <= 0:
            return 0.0

        multiplier = self.confidence_multiplier(ind, strategy)
        size = min(balance * self.base_fraction * multiplier, balance * self.max_fraction)

        if loss_cooldown:
            size /= 2

        logger.debug(
            f"Position size ${size:,.2f} (balance ${balance:,.2f}, x{multiplier:.2f}"
            f"{', loss cooldown' if loss_cooldown else ''})"
        )
        return size

    def is_tradeable_size(self, size: float) -> bool:
        return size >= self.min_trade_size
