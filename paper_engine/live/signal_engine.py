"""Signal engine: watchlist promotion, entry and exit decisions.

Stateless. Takes an indicator snapshot, the active risk profile and, for
exits, the trade record; returns decisions without touching the record
store. Updated trailing-stop metadata is handed back on every exit
decision so the caller can persist it even when the trade is held.
"""
from dataclasses import dataclass
from typing import Optional

from ..strategies.catalog import allowed_for
from ..strategies.entry_strategies import (
    EntrySignal, StrategyContext, first_match, LONG, SHORT,
)
from ..strategies.profiles import RiskProfile, RISK_PROFILES, DEFAULT_PROFILE
from ..strategies.snapshot import IndicatorSnapshot
from .trade_record import StrategyMeta, TradeRecord

TREND_ADX = 25.0
RANGE_ADX = 20.0

DEFAULT_STOP_LOSS_PCT = 5.0
DEFAULT_TAKE_PROFIT_PCT = 10.0

# (profit in ATR multiples, stage, stop distance behind price in ATRs;
# None means breakeven)
TRAILING_STAGES = (
    (3.0, 3, 0.75),
    (2.0, 2, 1.0),
    (1.5, 1, None),
)

HOLD = 'hold'
PARTIAL = 'partial'
EXIT = 'exit'


def classify_regime(adx: Optional[float]) -> Optional[str]:
    """'trend' above ADX 25, 'range' below 20, 'transition' between."""
    if adx is None:
        return None
    if adx > TREND_ADX:
        return 'trend'
    if adx < RANGE_ADX:
        return 'range'
    return 'transition'


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def stop_loss_pct(atr: Optional[float], entry_price: float) -> float:
    """Dynamic stop: 2x ATR as a percent of entry, clamped to 2-8%."""
    if not atr or entry_price <= 0:
        return DEFAULT_STOP_LOSS_PCT
    return clamp(atr / entry_price * 100 * 2, 2.0, 8.0)


def take_profit_pct(atr: Optional[float], entry_price: float) -> float:
    """Dynamic target: 3x ATR as a percent of entry, clamped to 4-15%."""
    if not atr or entry_price <= 0:
        return DEFAULT_TAKE_PROFIT_PCT
    return clamp(atr / entry_price * 100 * 3, 4.0, 15.0)


@dataclass(frozen=True)
class ExitDecision:
    """Outcome of evaluating an active trade."""
    action: str
    meta: StrategyMeta
    reason: Optional[str] = None
    win: Optional[bool] = None
    size_fraction: float = 0.0
    flip_direction: Optional[str] = None
    pnl_pct: Optional[float] = None

    @property
    def exit(self) -> bool:
        return self.action == EXIT

    @property
    def partial(self) -> bool:
        return self.action == PARTIAL


class SignalEngine:
    """Generates promotion, entry and exit decisions.

    The reference momentum and hedge symbol feed the correlation hedge
    strategy; everything else comes from the snapshot being evaluated.
    """

    def __init__(self, hedge_symbol: str = 'PAXG/USDT'):
        self.hedge_symbol = hedge_symbol

    @staticmethod
    def _profile(profile: Optional[RiskProfile]) -> RiskProfile:
        return profile or RISK_PROFILES[DEFAULT_PROFILE]

    def promotion_weight(self, ind: Optional[IndicatorSnapshot], profile: Optional[RiskProfile] = None) -> float:
        """Weighted count of setup signals for a watchlist symbol.

        Strong RSI deviation beyond the profile thresholds counts double,
        moderate deviation once. The ADX regime re-weights the rest:
        trends favour SMA-cross and momentum, ranges favour Bollinger
        extremes and VWAP deviation.
        """
        if ind is None or not ind.is_tradeable:
            return 0.0
        profile = self._profile(profile)
        regime = classify_regime(ind.adx)
        weight = 0.0

        if ind.rsi < profile.rsi_oversold or ind.rsi > profile.rsi_overbought:
            weight += 2
        elif ind.rsi < 45 or ind.rsi > 55:
            weight += 1

        if ind.sma20_distance is not None and ind.sma20_distance < 0.03:
            weight += 1

        if ind.volume_ratio is not None and ind.volume_ratio > 1.0:
            weight += 1

        if ind.momentum is not None and abs(ind.momentum) > 2:
            if regime == 'trend':
                weight += 1.5
            elif regime == 'range':
                weight += 0.5
            else:
                weight += 1

        if profile.name == 'bold' and ind.momentum_4h is not None and abs(ind.momentum_4h) > 3:
            weight += 1

        if regime == 'trend' and None not in (ind.sma20, ind.sma50, ind.momentum):
            if (ind.sma20 > ind.sma50 and ind.momentum > 0) or (ind.sma20 < ind.sma50 and ind.momentum < 0):
                weight += 1

        if regime == 'range':
            if ind.bb_percent_b is not None and (ind.bb_percent_b < 0.1 or ind.bb_percent_b > 0.9):
                weight += 1
            deviation = ind.vwap_deviation
            if deviation is not None and abs(deviation) > 2:
                weight += 1

        return weight

    def should_move_to_analyzing(self, ind: Optional[IndicatorSnapshot], profile: Optional[RiskProfile] = None) -> bool:
        """Promote a watchlist symbol when its weight meets the profile minimum."""
        if ind is None or not ind.is_tradeable:
            return False
        profile = self._profile(profile)
        return self.promotion_weight(ind, profile) >= profile.min_entry_signals

    def should_move_to_active(
        self,
        ind: Optional[IndicatorSnapshot],
        profile: Optional[RiskProfile] = None,
        reference_momentum_4h: Optional[float] = None,
    ) -> EntrySignal:
        """First matching entry strategy in priority order, if any."""
        ctx = StrategyContext(hedge_symbol=self.hedge_symbol, reference_momentum_4h=reference_momentum_4h)
        return first_match(ind, self._profile(profile), ctx)

    def update_trailing_stop(self, trade: TradeRecord, price: float, atr: Optional[float]) -> StrategyMeta:
        """Ratchet the staged trailing stop. The stop never loosens.

        Stage 1 at 1.5 ATR of profit moves the stop to breakeven, stage 2
        at 2 ATR trails 1 ATR behind price, stage 3 at 3 ATR trails 0.75 ATR.
        """
        meta = trade.meta
        entry = trade.entry_price
        if not atr or atr <= 0 or not entry:
            return meta

        favorable = (entry - price) if trade.is_short else (price - entry)
        multiple = favorable / atr

        for threshold, stage, distance in TRAILING_STAGES:
            if multiple < threshold:
                continue
            if distance is None:
                candidate = entry
            elif trade.is_short:
                candidate = price + distance * atr
            else:
                candidate = price - distance * atr

            current = meta.trailing_stop
            if current is None:
                new_stop = candidate
            elif trade.is_short:
                new_stop = min(current, candidate)
            else:
                new_stop = max(current, candidate)
            return meta.patched(trailing_stage=max(meta.trailing_stage, stage), trailing_stop=new_stop)

        return meta

    def evaluate_flip(
        self,
        trade: TradeRecord,
        ind: IndicatorSnapshot,
        profile: Optional[RiskProfile] = None,
    ) -> Optional[str]:
        """Direction to flip into after a hard stop, or None.

        Needs a strong trend (ADX > 25) whose DI dominance and MACD
        histogram both point against the stopped trade, with RSI not
        already stretched in the new direction.
        """
        profile = self._profile(profile)
        if not allowed_for('trend_reversal_flip', profile.name):
            return None
        if None in (ind.adx, ind.plus_di, ind.minus_di, ind.macd_histogram, ind.rsi):
            return None
        if ind.adx <= TREND_ADX:
            return None

        if trade.is_short:
            if ind.plus_di > ind.minus_di and ind.macd_histogram > 0 and ind.rsi < 70:
                return LONG
            return None

        if not profile.allow_shorts:
            return None
        if ind.minus_di > ind.plus_di and ind.macd_histogram < 0 and ind.rsi > 30:
            return SHORT
        return None

    def should_exit_trade(
        self,
        trade: TradeRecord,
        ind: Optional[IndicatorSnapshot],
        profile: Optional[RiskProfile] = None,
    ) -> ExitDecision:
        """Evaluate an active trade.

        Order, first hit wins: partial profit-take (once per trade),
        trailing stop, hard stop (with optional flip), RSI and MACD
        reversal exits. Trailing-stop metadata is ratcheted before the
        checks run and returned on every decision.
        """
        entry = trade.entry_price
        if ind is None or not ind.is_tradeable or not entry or entry <= 0:
            return ExitDecision(action=HOLD, meta=trade.meta)

        price = ind.current_price
        pnl_pct = (price - entry) / entry * 100
        effective = -pnl_pct if trade.is_short else pnl_pct
        atr = trade.meta.atr_at_entry or ind.atr

        meta = self.update_trailing_stop(trade, price, atr)

        if atr and not meta.partial_exit_taken:
            atr_pct = atr / entry * 100
            if effective >= 2 * atr_pct:
                closed_size = (trade.position_size or 0.0) * 0.5
                return ExitDecision(
                    action=PARTIAL,
                    meta=meta.patched(
                        partial_exit_taken=True,
                        partial_exit_price=price,
                        partial_exit_pnl=round(closed_size * effective / 100, 2),
                    ),
                    reason=f"Partial take profit (+{effective:.1f}%, {effective / atr_pct:.1f}x ATR)",
                    size_fraction=0.5, pnl_pct=effective,
                )

        if meta.trailing_stop is not None:
            stop = meta.trailing_stop
            crossed = price >= stop if trade.is_short else price <= stop
            if crossed:
                return ExitDecision(
                    action=EXIT, meta=meta, win=True, pnl_pct=effective,
                    reason=f"Trailing stop hit (stage {meta.trailing_stage}, stop {stop:.4f})",
                )

        limit = stop_loss_pct(atr, entry)
        if effective <= -limit:
            flip = self.evaluate_flip(trade, ind, profile)
            reason = f"Stop loss ({effective:.1f}%, limit -{limit:.1f}%)"
            if flip:
                reason += f", flipping {flip}"
            return ExitDecision(
                action=EXIT, meta=meta, win=False, pnl_pct=effective,
                reason=reason, flip_direction=flip,
            )

        if trade.is_short:
            if ind.rsi < 30 and effective > 0:
                return ExitDecision(action=EXIT, meta=meta, win=True, pnl_pct=effective,
                                    reason=f"RSI oversold short exit ({ind.rsi:.1f})")
            if ind.macd_histogram is not None and ind.macd_histogram > 1 and effective < 0:
                return ExitDecision(action=EXIT, meta=meta, win=False, pnl_pct=effective,
                                    reason=f"MACD bullish reversal (hist={ind.macd_histogram:.2f})")
        else:
            if ind.rsi > 70 and effective > 0:
                return ExitDecision(action=EXIT, meta=meta, win=True, pnl_pct=effective,
                                    reason=f"RSI overbought ({ind.rsi:.1f})")
            if ind.macd_histogram is not None and ind.macd_histogram < -1 and effective < 0:
                return ExitDecision(action=EXIT, meta=meta, win=False, pnl_pct=effective,
                                    reason=f"MACD bearish reversal (hist={ind.macd_histogram:.2f})")

        return ExitDecision(action=HOLD, meta=meta, pnl_pct=effective)
