"""Per-card analysis fields refreshed every cycle.

Watchlist, Analyzing and Active cards carry the latest price, RSI, a
confidence score, a volume assessment and a short narrative so a human
looking at the board can see why the engine is (or is not) acting.
"""
from typing import Any, Dict, List, Optional

from ..strategies.snapshot import IndicatorSnapshot
from ..utils.helpers import format_price, ticker_of


def confidence_score(ind: IndicatorSnapshot) -> int:
    """Signal-strength score, 50 base, clamped to 0-100."""
    confidence = 50
    if ind.rsi is not None and (ind.rsi < 35 or ind.rsi > 65):
        confidence += 15
    if ind.sma20 and ind.sma50 and ind.sma20 > ind.sma50:
        confidence += 15
    if ind.volume_ratio is not None and ind.volume_ratio > 1.2:
        confidence += 10
    if ind.sma20_distance is not None and ind.sma20_distance < 0.02:
        confidence += 10
    return max(0, min(100, confidence))


def volume_assessment(ratio: Optional[float]) -> str:
    if ratio is None:
        return 'low'
    if ratio > 1.2:
        return 'high'
    if ratio > 0.8:
        return 'normal'
    return 'low'


def _headline(ind: IndicatorSnapshot, ticker: str) -> str:
    rsi = ind.rsi
    if rsi < 30:
        return f"🔥 {ticker} oversold at RSI {rsi:.0f}, prime buy zone"
    if rsi < 35:
        return f"👀 {ticker} nearing oversold (RSI {rsi:.0f}), watching closely"
    if rsi > 70:
        return f"⚠️ {ticker} overbought at RSI {rsi:.0f}, looking to take profit"
    if rsi > 60:
        return f"📈 {ticker} building momentum (RSI {rsi:.0f})"
    return f"{ticker} ranging, no clear signal yet (RSI {rsi:.0f})"


def _observations(ind: IndicatorSnapshot) -> List[str]:
    obs = []
    price = ind.current_price

    if ind.sma20 and ind.sma50:
        if ind.sma20 > ind.sma50:
            obs.append('Trend bullish (SMA20 > SMA50)')
        else:
            gap = (ind.sma50 - ind.sma20) / ind.sma50 * 100
            if gap < 1.5:
                obs.append(f"SMA crossover forming, gap only {gap:.1f}%")
            else:
                obs.append(f"Trend bearish, SMA20 still {gap:.1f}% below SMA50")

    if ind.sma20:
        dist = (price - ind.sma20) / ind.sma20 * 100
        if abs(dist) < 1:
            obs.append(f"Sitting right on SMA20 ({format_price(ind.sma20)}), key decision point")
        elif abs(dist) < 3:
            side = 'above' if dist > 0 else 'below'
            obs.append(f"Near SMA20 bounce zone ({side} by {abs(dist):.1f}%)")
        elif dist < -5:
            obs.append(f"Extended {abs(dist):.1f}% below SMA20, stretched")

    if ind.volume_ratio is not None:
        if ind.volume_ratio > 2.0:
            obs.append('Volume surging (2x+ avg)')
        elif ind.volume_ratio > 1.3:
            obs.append('Above-average volume')
        elif ind.volume_ratio < 0.5:
            obs.append('Volume dried up, wait for participation')

    if ind.momentum is not None:
        if ind.momentum > 3:
            obs.append(f"Strong momentum (+{ind.momentum:.1f}%)")
        elif ind.momentum < -3:
            obs.append(f"Selling pressure ({ind.momentum:.1f}%)")

    return obs


def _action(ind: IndicatorSnapshot) -> str:
    price = ind.current_price
    if ind.rsi < 35 and ind.sma20_distance is not None and ind.sma20_distance < 0.03:
        return f"🎯 Entry zone. Watching for bounce confirmation near {format_price(ind.sma20)}"
    if ind.rsi < 40:
        target = format_price(ind.sma20 * 0.98) if ind.sma20 else format_price(price * 0.97)
        return f"Ideal entry: {target} on RSI dip below 35 with volume"
    if ind.rsi > 65:
        return 'Watching for exit signals above RSI 70'
    return 'Patience, need RSI below 35 or an SMA crossover to act'


def analysis_notes(ind: IndicatorSnapshot) -> str:
    """Three-line narrative: headline, observations, next action."""
    ticker = ticker_of(ind.symbol)
    return f"{_headline(ind, ticker)}\n{' · '.join(_observations(ind))}\n{_action(ind)}"


def analysis_fields(ind: Optional[IndicatorSnapshot]) -> Optional[Dict[str, Any]]:
    """Record fields to patch onto a card, or None without usable indicators."""
    if ind is None or not ind.is_tradeable:
        return None
    return {
        'current_price': ind.current_price,
        'rsi_value': round(ind.rsi, 1),
        'confidence_score': confidence_score(ind),
        'volume_assessment': volume_assessment(ind.volume_ratio),
        'notes': analysis_notes(ind),
    }
