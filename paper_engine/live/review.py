"""Operator review: a read-only snapshot of the engine's view of the market.

Nothing here patches records, moves cards or saves engine state. The
review reads the same collaborators a cycle does and reports what a
cycle would see: market regime, per-trade and watchlist analysis, a
suggested cycle frequency, exposure, news risk and data freshness.
"""
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from ..risk.cooldown import can_move, is_extreme_move
from ..risk.drawdown_breaker import check_drawdown
from ..risk.hedge_advisor import suggest_hedge
from ..strategies.catalog import active_strategies
from ..strategies.profiles import RiskProfile, get_profile
from ..strategies.snapshot import IndicatorSnapshot
from ..utils.helpers import parse_timestamp, timeframe_hours
from .errors import EngineError
from .signal_engine import RANGE_ADX, TREND_ADX, classify_regime
from .trade_record import TradeRecord, TradeState

NEWS_WINDOW = timedelta(hours=6)
VOLATILE_ATR_PCT = 4.0
STALE_BARS = 2


def classify_market(ind: Optional[IndicatorSnapshot]) -> str:
    """Map the reference symbol onto bullish / bearish / ranging / volatile."""
    if ind is None or ind.adx is None:
        return 'ranging'
    if is_extreme_move(ind.momentum_4h):
        return 'volatile'
    if ind.atr and ind.current_price and ind.atr / ind.current_price * 100 > VOLATILE_ATR_PCT:
        return 'volatile'
    if ind.adx < RANGE_ADX:
        return 'ranging'
    return 'bullish' if ind.plus_di >= ind.minus_di else 'bearish'


def load_news(path: Optional[str]) -> List[Dict[str, Any]]:
    """News items from a JSON file; missing or unreadable files give none."""
    if not path:
        return []
    news_path = Path(path)
    if not news_path.exists():
        return []
    try:
        with open(news_path, 'r') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read news file {news_path}: {e}")
        return []
    if isinstance(data, dict):
        data = data.get('items') or data.get('news') or []
    return [item for item in data if isinstance(item, dict)]


def news_risk(items: List[Dict[str, Any]], now: datetime) -> Dict[str, Any]:
    """
    Entry adjustment implied by recent news.

    Args:
        items: News items with 'title', 'severity' and 'publishedAt'
        now: Current time

    Returns:
        {'adjustment': 'pause_entries' | 'reduce_size' | 'none', 'headlines': [...]}
    """
    recent = []
    for item in items:
        published = parse_timestamp(item.get('publishedAt'))
        if published is None or now - published > NEWS_WINDOW:
            continue
        recent.append(item)

    severities = {str(item.get('severity', '')).lower() for item in recent}
    if 'high' in severities:
        adjustment = 'pause_entries'
    elif 'medium' in severities:
        adjustment = 'reduce_size'
    else:
        adjustment = 'none'

    headlines = [item.get('title') for item in recent if str(item.get('severity', '')).lower() in ('high', 'medium')]
    return {'adjustment': adjustment, 'headlines': headlines}


def suggest_frequency(snapshots: Dict[str, IndicatorSnapshot], active: List[TradeRecord]) -> Dict[str, Any]:
    """How often the scheduler should run cycles given current conditions."""
    extreme = sorted(s.symbol for s in snapshots.values() if is_extreme_move(s.momentum_4h))
    if extreme:
        return {'minutes': 60, 'reason': f"Extreme moves on {', '.join(extreme)}"}
    trailing = [t.symbol for t in active if t.meta.trailing_stage > 0]
    if trailing:
        return {'minutes': 60, 'reason': f"Trailing stops armed on {', '.join(trailing)}"}
    if active:
        return {'minutes': 120, 'reason': f"Managing {len(active)} open position(s)"}
    return {'minutes': 240, 'reason': 'No open positions, one check per bar'}


def data_freshness(
    symbols: List[str],
    snapshots: Dict[str, IndicatorSnapshot],
    now: datetime,
    timeframe: str,
) -> Dict[str, Dict[str, Any]]:
    """Per-symbol freshness: fresh, stale (older than two bars), insufficient or missing."""
    limit_hours = timeframe_hours(timeframe) * STALE_BARS
    freshness = {}
    for symbol in symbols:
        snap = snapshots.get(symbol)
        if snap is None:
            freshness[symbol] = {'status': 'missing', 'age_hours': None}
            continue
        if snap.last_candle_at is None:
            freshness[symbol] = {'status': 'fresh', 'age_hours': None}
            continue
        age = (now - snap.last_candle_at).total_seconds() / 3600
        status = 'stale' if age > limit_hours else 'fresh'
        if snap.rsi is None:
            status = 'insufficient'
        freshness[symbol] = {'status': status, 'age_hours': round(age, 2)}
    return freshness


def _trade_analysis(engine, trade: TradeRecord, ind: Optional[IndicatorSnapshot], profile: RiskProfile) -> Dict[str, Any]:
    decision = engine.signal_engine.should_exit_trade(trade, ind, profile)
    return {
        'id': trade.id,
        'symbol': trade.symbol,
        'direction': trade.direction,
        'entry_price': trade.entry_price,
        'current_price': ind.current_price if ind else trade.current_price,
        'pnl_pct': round(decision.pnl_pct, 2) if decision.pnl_pct is not None else None,
        'stop_loss': trade.stop_loss,
        'take_profit': trade.take_profit,
        'entry_reason': trade.meta.entry_reason,
        'trailing_stage': decision.meta.trailing_stage,
        'trailing_stop': decision.meta.trailing_stop,
        'partial_exit_taken': trade.meta.partial_exit_taken,
        'next_action': decision.action,
        'reason': decision.reason,
    }


def _watchlist_analysis(
    engine,
    trade: TradeRecord,
    ind: Optional[IndicatorSnapshot],
    profile: RiskProfile,
    state,
    now: datetime,
    reference_momentum: Optional[float],
) -> Dict[str, Any]:
    row = {
        'id': trade.id,
        'symbol': trade.symbol,
        'state': trade.state.value,
        'rsi': round(ind.rsi, 1) if ind and ind.rsi is not None else None,
        'regime': classify_regime(ind.adx) if ind else None,
    }
    if trade.state == TradeState.WATCHLIST:
        row['promotion_weight'] = engine.signal_engine.promotion_weight(ind, profile)
        row['would_promote'] = engine.signal_engine.should_move_to_analyzing(ind, profile)
        key = trade.symbol
    else:
        signal = engine.signal_engine.should_move_to_active(ind, profile, reference_momentum)
        row['entry_signal'] = signal.reason if signal.enter else None
        row['direction'] = signal.direction if signal.enter else None
        key = f"{trade.symbol}:active"
    momentum_4h = ind.momentum_4h if ind else None
    row['cooldown_clear'] = can_move(state, key, profile.cooldown_hours, now, momentum_4h)
    return row


def build_review(engine) -> Dict[str, Any]:
    """
    Build the operator snapshot.

    Args:
        engine: LiveEngine whose collaborators and settings are used

    Returns:
        Review dict; collaborator failures are listed under 'errors'
    """
    settings = engine.settings
    now = engine.clock()
    state = engine.state_manager.load()
    errors = []

    profile_name = settings.default_profile
    try:
        profile_name = engine.guarded_call('record_store', engine.store.get_risk_profile, settings.board_id) or profile_name
    except EngineError as e:
        errors.append({'step': 'risk_settings', 'error': str(e)})

    balance = None
    drawdown_locked = False
    try:
        account = engine.guarded_call('record_store', engine.store.get_account, settings.board_id)
        balance = float(account['balance'])
        check = check_drawdown(state, balance, profile_name, now)
        profile_name = check.profile
        drawdown_locked = check.locked
    except EngineError as e:
        errors.append({'step': 'account', 'error': str(e)})
    try:
        profile = get_profile(profile_name)
    except ValueError as e:
        errors.append({'step': 'risk_settings', 'error': str(e)})
        profile = get_profile(settings.default_profile)

    trades: List[TradeRecord] = []
    try:
        trades = engine.guarded_call('record_store', engine.store.list_trades, settings.board_id)
    except EngineError as e:
        errors.append({'step': 'load_records', 'error': str(e)})

    tracked = [t for t in trades if t.state in (TradeState.WATCHLIST, TradeState.ANALYZING, TradeState.ACTIVE)]
    symbols = list(dict.fromkeys(
        [t.symbol for t in tracked] + list(settings.pinned_symbols)
        + [settings.reference_symbol, settings.hedge_symbol]
    ))
    snapshots = engine.fetch_snapshots(symbols)

    reference = snapshots.get(settings.reference_symbol)
    reference_momentum = reference.momentum_4h if reference else None
    market = classify_market(reference)
    active = [t for t in trades if t.state == TradeState.ACTIVE]

    invested = sum(t.position_size for t in active)
    by_group: Dict[str, Dict[str, int]] = {}
    for t in active:
        group = engine.guard.group_of(t.symbol) or 'other'
        by_group.setdefault(group, {'LONG': 0, 'SHORT': 0})
        by_group[group][t.direction.upper()] = by_group[group].get(t.direction.upper(), 0) + 1
    total = (balance or 0.0) + invested
    hedge = suggest_hedge(active, reference, settings.hedge_symbol)

    return {
        'generated_at': now.isoformat(),
        'risk_profile': profile.name,
        'drawdown_locked': drawdown_locked,
        'market_regime': {
            'reference_symbol': settings.reference_symbol,
            'market': market,
            'adx_regime': classify_regime(reference.adx) if reference else None,
            'adx': reference.adx if reference else None,
            'confluence': reference.confluence.direction if reference and reference.confluence else None,
            'regime_change_since_last_cycle': (
                reference is not None and reference.adx is not None and state.last_adx is not None
                and (reference.adx > TREND_ADX) != (state.last_adx > TREND_ADX)
            ),
        },
        'active_strategies': [s.to_dict() for s in active_strategies(profile.name, market)],
        'trades': [_trade_analysis(engine, t, snapshots.get(t.symbol), profile) for t in active],
        'watchlist': [
            _watchlist_analysis(engine, t, snapshots.get(t.symbol), profile, state, now, reference_momentum)
            for t in tracked if t.state != TradeState.ACTIVE
        ],
        'suggested_frequency': suggest_frequency(snapshots, active),
        'exposure': {
            'balance': balance,
            'invested': invested,
            'exposure_pct': round(invested / total * 100, 2) if total > 0 else 0.0,
            'longs': sum(1 for t in active if not t.is_short),
            'shorts': sum(1 for t in active if t.is_short),
            'by_group': by_group,
            'hedge_suggestion': hedge.to_dict() if hedge else None,
        },
        'news_risk': news_risk(load_news(settings.news_file), now),
        'data_freshness': data_freshness(symbols, snapshots, now, settings.timeframe),
        'loss_streak': {
            'consecutive_losses': state.consecutive_losses,
            'cooldown_trades_remaining': state.loss_cooldown_remaining,
        },
        'errors': errors,
    }
