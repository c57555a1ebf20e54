"""Live paper trading engine: one evaluation cycle over the trading board.

Orchestrates:
- Risk settings and the monthly drawdown breaker
- Loading board records (seeding pinned symbols)
- Indicator snapshots per symbol (sequential, rate-limited, breaker-guarded)
- Exits, partial profit-takes and direction flips on Active trades
- Entries on Analyzing trades (cooldown, correlation, sizing)
- Watchlist promotion
- Card analysis, cycle stats, live balance and regime transitions

Each step runs in isolation: a failing step is logged and recorded in the
cycle report, and the cycle carries on with whatever it already has.
Engine state is loaded once, saved at the end and saved immediately when
the drawdown breaker trips.
"""
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from ..data.market_data import MarketDataProvider
from ..risk.circuit_breaker import CircuitBreaker
from ..risk.cooldown import can_move, record_move, register_close, consume_entry, loss_cooldown_active
from ..risk.correlation_guard import CorrelationGuard
from ..risk.drawdown_breaker import check_drawdown
from ..risk.hedge_advisor import suggest_hedge
from ..risk.position_sizer import PositionSizer
from ..risk.state import EngineState
from ..strategies.profiles import RiskProfile, RISK_PROFILES, DEFAULT_PROFILE, get_profile
from ..strategies.snapshot import IndicatorSnapshot, build_snapshot
from ..utils.helpers import format_currency, normalize_pair, utc_now
from .card_analysis import analysis_fields
from .errors import CircuitOpenError, CollaboratorError, EngineError
from .record_store import TradeRecordStore
from .signal_engine import SignalEngine, TREND_ADX, stop_loss_pct, take_profit_pct
from .state_manager import StateManager
from .trade_record import StrategyMeta, TradeRecord, TradeState, check_transition, state_fields

MARKET_DATA = 'market_data'
RECORD_STORE = 'record_store'


@dataclass
class EngineSettings:
    """Static settings for a run of the engine."""
    board_id: int = 1
    default_profile: str = DEFAULT_PROFILE
    timeframe: str = '4h'
    candle_limit: int = 60
    fetch_delay_seconds: float = 0.2
    pinned_symbols: List[str] = field(default_factory=list)
    core_symbols: List[str] = field(default_factory=list)
    hedge_symbol: str = 'PAXG/USDT'
    reference_symbol: str = 'BTC/USDT'
    max_positions: int = 5
    correlation_groups: Optional[Dict[str, List[str]]] = None
    news_file: Optional[str] = None

    @classmethod
    def from_config(cls, config) -> "EngineSettings":
        return cls(
            board_id=config.board_id,
            default_profile=config.default_risk_profile,
            timeframe=config.timeframe,
            candle_limit=config.candle_limit,
            fetch_delay_seconds=config.fetch_delay_seconds,
            pinned_symbols=[normalize_pair(s) for s in config.pinned_symbols],
            core_symbols=[normalize_pair(s) for s in config.core_symbols],
            hedge_symbol=normalize_pair(config.hedge_symbol),
            reference_symbol=normalize_pair(config.reference_symbol),
            max_positions=config.max_positions,
            correlation_groups=config.correlation_groups or None,
            news_file=str(config.news_file),
        )


@dataclass
class Cycle:
    """Working set of one cycle."""
    now: datetime
    state: EngineState
    profile: RiskProfile
    balance: Optional[float] = None
    trades: List[TradeRecord] = field(default_factory=list)
    snapshots: Dict[str, IndicatorSnapshot] = field(default_factory=dict)
    exits: int = 0
    partial_exits: int = 0
    flips: int = 0
    entries: int = 0
    promotions: int = 0
    requeued: int = 0
    drawdown: Optional[Dict[str, Any]] = None
    regime_transition: Optional[Dict[str, Any]] = None
    hedge_suggestion: Optional[Dict[str, Any]] = None
    stats: Optional[Dict[str, Any]] = None
    errors: List[Dict[str, str]] = field(default_factory=list)

    def in_state(self, state: TradeState) -> List[TradeRecord]:
        return [t for t in self.trades if t.state == state]

    @property
    def active(self) -> List[TradeRecord]:
        return self.in_state(TradeState.ACTIVE)

    def report(self) -> Dict[str, Any]:
        return {
            'timestamp': self.now.isoformat(),
            'risk_profile': self.profile.name,
            'balance': self.balance,
            'symbols_evaluated': len(self.snapshots),
            'exits': self.exits,
            'partial_exits': self.partial_exits,
            'flips': self.flips,
            'entries': self.entries,
            'promotions': self.promotions,
            'requeued': self.requeued,
            'drawdown': self.drawdown,
            'regime_transition': self.regime_transition,
            'hedge_suggestion': self.hedge_suggestion,
            'stats': self.stats,
            'errors': list(self.errors),
        }


class LiveEngine:
    """Runs evaluation cycles against a trade record store."""

    def __init__(
        self,
        store: TradeRecordStore,
        market_data: MarketDataProvider,
        settings: Optional[EngineSettings] = None,
        state_manager: Optional[StateManager] = None,
        breaker: Optional[CircuitBreaker] = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.market_data = market_data
        self.settings = settings or EngineSettings()
        self.state_manager = state_manager or StateManager()
        self.breaker = breaker or CircuitBreaker()
        self.clock = clock
        self.sleep = sleep

        self.signal_engine = SignalEngine(hedge_symbol=self.settings.hedge_symbol)
        self.sizer = PositionSizer()
        self.guard = CorrelationGuard(self.settings.correlation_groups)

    # ── Collaborator calls ──────────────────────────────────────────────

    def guarded_call(self, source: str, fn: Callable, *args, **kwargs):
        """Call a collaborator through the circuit breaker.

        Raises:
            CircuitOpenError: the breaker refused the call.
            CollaboratorError: the call failed; the failure is recorded.
        """
        if not self.breaker.allow(self.clock()):
            raise CircuitOpenError(f"{source} call refused, circuit breaker open")
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            self.breaker.record_failure(source, str(e), self.clock())
            logger.warning(f"⚠ {source} call failed: {e}")
            if isinstance(e, CollaboratorError):
                raise
            raise CollaboratorError(source, str(e)) from e

    def _fire_and_forget(self, label: str, fn: Callable, *args, **kwargs):
        """Best-effort side call; failures are logged and dropped."""
        try:
            self.guarded_call(RECORD_STORE, fn, *args, **kwargs)
        except EngineError as e:
            logger.warning(f"  ⚠ {label} failed: {e}")

    def _journal(self, trade_id: int, entry_type: str, content: str):
        logger.bind(trade_id=trade_id, entry_type=entry_type).info(f"  📓 {content}")
        self._fire_and_forget('journal', self.store.append_journal, trade_id, entry_type, content)

    # ── Cycle driver ────────────────────────────────────────────────────

    def _run_step(self, cycle: Cycle, name: str, step: Callable[[Cycle], None]):
        """Run one step; a failure is logged and recorded, never raised."""
        logger.info(f"▶ {name}")
        try:
            step(cycle)
        except Exception as e:
            logger.exception(f"Step '{name}' failed: {e}")
            cycle.errors.append({'step': name, 'error': str(e)})

    def run_cycle(self) -> Dict[str, Any]:
        """Run one full evaluation cycle and return its report."""
        cycle = Cycle(
            now=self.clock(),
            state=self.state_manager.load(),
            profile=RISK_PROFILES.get(self.settings.default_profile, RISK_PROFILES[DEFAULT_PROFILE]),
        )
        logger.info(f"🚀 Paper trading cycle @ {cycle.now.strftime('%Y-%m-%d %H:%M UTC')}")

        steps = [
            ('risk_settings', self._load_risk_settings),
            ('drawdown', self._check_drawdown),
            ('load_records', self._load_records),
            ('fetch_indicators', self._fetch_indicators),
            ('exits', self._process_exits),
            ('entries', self._process_entries),
            ('watchlist', self._process_watchlist),
            ('analysis', self._refresh_analysis),
            ('stats', self._update_stats),
            ('live_balance', self._update_live_balance),
            ('regime', self._detect_regime_transition),
            ('hedge_advisory', self._hedge_advisory),
        ]
        for name, step in steps:
            self._run_step(cycle, name, step)

        self.state_manager.save(cycle.state)

        logger.info(
            f"✅ Cycle complete. Exits: {cycle.exits}, Partials: {cycle.partial_exits}, "
            f"Entries: {cycle.entries}, New Analysis: {cycle.promotions}, Errors: {len(cycle.errors)}"
        )
        return cycle.report()

    def review(self) -> Dict[str, Any]:
        """Read-only operator snapshot; performs no mutations."""
        from .review import build_review
        return build_review(self)

    # ── Steps ───────────────────────────────────────────────────────────

    def _load_risk_settings(self, cycle: Cycle):
        name = self.guarded_call(RECORD_STORE, self.store.get_risk_profile, self.settings.board_id)
        cycle.profile = get_profile(name or self.settings.default_profile)
        logger.info(f"🎚 Risk profile: {cycle.profile.name}")

    def _check_drawdown(self, cycle: Cycle):
        account = self.guarded_call(RECORD_STORE, self.store.get_account, self.settings.board_id)
        cycle.balance = float(account['balance'])
        logger.info(f"💰 Balance: {format_currency(cycle.balance)}")

        result = check_drawdown(cycle.state, cycle.balance, cycle.profile.name, cycle.now)
        cycle.state = result.state
        cycle.drawdown = {
            'drawdown_pct': round(result.drawdown * 100, 2),
            'locked': result.locked,
            'tripped': result.tripped,
            'restored': result.restored,
        }

        if result.tripped:
            # Must survive a crash later in the cycle
            self.state_manager.save(cycle.state)
            self._fire_and_forget('risk setting update', self.store.set_risk_profile,
                                  self.settings.board_id, result.profile)
        elif result.restored:
            self._fire_and_forget('risk setting restore', self.store.set_risk_profile,
                                  self.settings.board_id, result.profile)

        if result.profile != cycle.profile.name:
            cycle.profile = get_profile(result.profile)

    def _load_records(self, cycle: Cycle):
        cycle.trades = self.guarded_call(RECORD_STORE, self.store.list_trades, self.settings.board_id)
        if cycle.balance is None:
            account = self.guarded_call(RECORD_STORE, self.store.get_account, self.settings.board_id)
            cycle.balance = float(account['balance'])

        open_symbols = {t.symbol for t in cycle.trades if not t.state.is_closed}
        for pin in self.settings.pinned_symbols:
            if pin in open_symbols:
                continue
            logger.info(f"  📌 Creating watchlist card for {pin}")
            try:
                created = self.guarded_call(RECORD_STORE, self.store.create_trade, {
                    'board_id': self.settings.board_id,
                    'coin_pair': pin,
                    'direction': 'LONG',
                    **state_fields(TradeState.WATCHLIST),
                    'notes': 'Pinned coin: auto-added to watchlist',
                })
            except EngineError as e:
                logger.warning(f"  ⚠ Failed to create watchlist card for {pin}: {e}")
                continue
            cycle.trades.append(created)

        logger.info(
            f"📋 Board {self.settings.board_id}: {len(cycle.trades)} records | "
            f"Watchlist: {len(cycle.in_state(TradeState.WATCHLIST))} | "
            f"Analyzing: {len(cycle.in_state(TradeState.ANALYZING))} | "
            f"Active: {len(cycle.active)}"
        )

    def _symbols_to_fetch(self, cycle: Cycle) -> List[str]:
        symbols = []
        for t in cycle.trades:
            if t.state in (TradeState.WATCHLIST, TradeState.ANALYZING, TradeState.ACTIVE):
                symbols.append(t.symbol)
        symbols.extend(self.settings.pinned_symbols)
        symbols.append(self.settings.reference_symbol)
        symbols.append(self.settings.hedge_symbol)
        return list(dict.fromkeys(s for s in symbols if s))

    def fetch_snapshots(self, symbols: List[str]) -> Dict[str, IndicatorSnapshot]:
        """Sequentially fetch candles and build snapshots.

        A failing symbol is skipped; an open breaker ends the fetch and
        whatever was collected so far is returned.
        """
        snapshots = {}
        for i, symbol in enumerate(symbols):
            if i:
                self.sleep(self.settings.fetch_delay_seconds)
            try:
                candles = self.guarded_call(MARKET_DATA, self.market_data.get_candles,
                                     symbol, self.settings.timeframe, self.settings.candle_limit)
            except CircuitOpenError as e:
                logger.warning(f"⛔ {e}; continuing with {len(snapshots)} snapshots")
                break
            except CollaboratorError:
                continue

            try:
                funding = self.guarded_call(MARKET_DATA, self.market_data.get_funding_rate, symbol)
            except EngineError:
                funding = None
            snap = build_snapshot(symbol, candles, funding_rate=funding)
            if snap is None:
                logger.warning(f"{symbol}: no candles, skipped")
                continue
            if snap.rsi is None:
                logger.info(f"{symbol}: insufficient data ({snap.bars} bars)")
            snapshots[symbol] = snap
        return snapshots

    def _fetch_indicators(self, cycle: Cycle):
        symbols = self._symbols_to_fetch(cycle)
        logger.info(f"📊 Fetching indicators for {len(symbols)} symbols...")
        cycle.snapshots = self.fetch_snapshots(symbols)

    def _reference_momentum(self, cycle: Cycle) -> Optional[float]:
        ref = cycle.snapshots.get(self.settings.reference_symbol)
        return ref.momentum_4h if ref else None

    # ── Exits ───────────────────────────────────────────────────────────

    def _process_exits(self, cycle: Cycle):
        for trade in cycle.active:
            ind = cycle.snapshots.get(trade.symbol)
            decision = self.signal_engine.should_exit_trade(trade, ind, cycle.profile)
            try:
                if decision.partial:
                    self._take_partial(cycle, trade, decision)
                elif decision.exit:
                    self._close_trade(cycle, trade, decision, ind)
                elif trade.meta.diff(decision.meta):
                    self.guarded_call(RECORD_STORE, self.store.patch_trade, trade.id,
                               {'metadata': decision.meta.to_dict()})
                    trade.meta = decision.meta
            except EngineError as e:
                logger.warning(f"  ⚠ Exit handling failed for {trade.symbol}: {e}")
        logger.info(f"🚪 Exits: {cycle.exits} (partials: {cycle.partial_exits}, flips: {cycle.flips})")

    def _take_partial(self, cycle: Cycle, trade: TradeRecord, decision):
        remaining = trade.position_size * (1 - decision.size_fraction)
        logger.info(f"  ✂️ {trade.symbol}: {decision.reason}")
        self.guarded_call(RECORD_STORE, self.store.patch_trade, trade.id, {
            'position_size': remaining,
            'metadata': decision.meta.to_dict(),
        })
        trade.position_size = remaining
        trade.meta = decision.meta
        cycle.partial_exits += 1
        self._journal(trade.id, 'partial_exit',
                      f"{decision.reason}. Closed {decision.size_fraction:.0%} of position, "
                      f"{format_currency(remaining)} still open")

    def _close_trade(self, cycle: Cycle, trade: TradeRecord, decision, ind: IndicatorSnapshot):
        target = TradeState.CLOSED_WIN if decision.win else TradeState.CLOSED_LOSS
        check_transition(trade.state, target)
        price = ind.current_price

        logger.info(f"  🚪 Exiting {trade.symbol}: {decision.reason}")
        # Closed state lands before settlement; a trade is settled at most once
        self.guarded_call(RECORD_STORE, self.store.patch_trade, trade.id, {
            **state_fields(target),
            'exit_price': price,
            'pnl_percent': round(decision.pnl_pct, 2),
            'metadata': decision.meta.to_dict(),
        })
        try:
            self.guarded_call(RECORD_STORE, self.store.exit_trade, trade.id, price)
        except EngineError as e:
            logger.error(f"  ❌ Settlement failed for closed trade #{trade.id} ({trade.symbol}): {e}")
        trade.state = target
        trade.exit_price = price
        trade.pnl_percent = decision.pnl_pct
        trade.meta = decision.meta
        cycle.exits += 1
        cycle.state = register_close(cycle.state, decision.win)

        self._journal(trade.id, 'exit', f"Exit: {decision.reason}. Price: {price}")

        if decision.flip_direction:
            self._flip(cycle, trade, decision.flip_direction, ind)
        elif trade.symbol in self.settings.core_symbols:
            self._requeue_core(cycle, trade.symbol)

    def _entry_levels(self, direction: str, price: float, atr: Optional[float]) -> Dict[str, float]:
        sl = stop_loss_pct(atr, price) / 100
        tp = take_profit_pct(atr, price) / 100
        if direction == 'SHORT':
            return {'stop_loss': price * (1 + sl), 'take_profit': price * (1 - tp)}
        return {'stop_loss': price * (1 - sl), 'take_profit': price * (1 + tp)}

    def _flip(self, cycle: Cycle, closed: TradeRecord, direction: str, ind: IndicatorSnapshot):
        size = self.sizer.calculate(cycle.balance or 0.0, ind, 'trend_reversal_flip',
                                    loss_cooldown_active(cycle.state))
        if not self.sizer.is_tradeable_size(size):
            logger.info(f"  ⚠ Flip on {closed.symbol} skipped: insufficient balance")
            return

        meta = StrategyMeta(
            entry_reason='trend_reversal_flip',
            signal_price=ind.current_price,
            fill_price=ind.current_price,
            slippage_pct=0.0,
            atr_at_entry=ind.atr,
            flipped_from=closed.id,
        )
        created = self.guarded_call(RECORD_STORE, self.store.create_trade, {
            'board_id': self.settings.board_id,
            'coin_pair': closed.symbol,
            'direction': direction,
            **state_fields(TradeState.ACTIVE),
            'entry_price': ind.current_price,
            'position_size': size,
            **self._entry_levels(direction, ind.current_price, ind.atr),
            'notes': f"{direction} trend_reversal_flip (flipped from #{closed.id})",
            'metadata': meta.to_dict(),
        })
        cycle.trades.append(created)
        cycle.flips += 1
        cycle.entries += 1
        cycle.balance = (cycle.balance or 0.0) - size
        cycle.state = consume_entry(record_move(cycle.state, f"{closed.symbol}:active", cycle.now))
        logger.info(f"  🔄 Flipped {closed.symbol} to {direction} ({format_currency(size)})")
        self._fire_and_forget('balance deduct', self.store.deduct_balance, self.settings.board_id, size)
        self._journal(created.id, 'entry',
                      f"{direction} flip entry: {closed.symbol} @ {ind.current_price} "
                      f"(closed #{closed.id} at stop, ADX={ind.adx:.1f})")

    def _requeue_core(self, cycle: Cycle, symbol: str):
        if any(t.symbol == symbol and not t.state.is_closed for t in cycle.trades):
            return
        created = self.guarded_call(RECORD_STORE, self.store.create_trade, {
            'board_id': self.settings.board_id,
            'coin_pair': symbol,
            'direction': 'LONG',
            **state_fields(TradeState.ANALYZING),
            'notes': 'Core coin: re-queued for re-entry',
        })
        cycle.trades.append(created)
        cycle.requeued += 1
        logger.info(f"  ♻️ {symbol} re-queued to Analyzing")

    # ── Entries ─────────────────────────────────────────────────────────

    def _process_entries(self, cycle: Cycle):
        if cycle.balance is None:
            logger.warning("No account balance this cycle, entries skipped")
            return

        reference_momentum = self._reference_momentum(cycle)
        for trade in cycle.in_state(TradeState.ANALYZING):
            if len(cycle.active) >= self.settings.max_positions:
                logger.info(f"  Max positions ({self.settings.max_positions}) reached")
                break

            ind = cycle.snapshots.get(trade.symbol)
            signal = self.signal_engine.should_move_to_active(ind, cycle.profile, reference_momentum)
            if not signal.enter:
                continue

            key = f"{trade.symbol}:active"
            if not can_move(cycle.state, key, cycle.profile.cooldown_hours, cycle.now, ind.momentum_4h):
                logger.info(f"  ⏳ {trade.symbol} {signal.direction} signal ({signal.reason}) "
                            f"but cooldown ({cycle.profile.cooldown_hours:g}h). Skipping.")
                continue
            if not self.guard.allows(trade.symbol, signal.direction, cycle.active):
                continue

            size = self.sizer.calculate(cycle.balance, ind, signal.reason, loss_cooldown_active(cycle.state))
            if not self.sizer.is_tradeable_size(size):
                logger.info(f"  ⚠ Insufficient balance for {trade.symbol}")
                continue

            try:
                self._enter(cycle, trade, signal, ind, size)
            except EngineError as e:
                logger.warning(f"  ⚠ Entry failed for {trade.symbol}: {e}")
        logger.info(f"🎯 Entries: {cycle.entries}")

    def _enter(self, cycle: Cycle, trade: TradeRecord, signal, ind: IndicatorSnapshot, size: float):
        check_transition(trade.state, TradeState.ACTIVE)
        price = ind.current_price
        direction = signal.direction
        levels = self._entry_levels(direction, price, ind.atr)
        meta = trade.meta.patched(
            entry_reason=signal.reason,
            signal_price=price,
            fill_price=price,
            slippage_pct=0.0,
            atr_at_entry=ind.atr,
            trailing_stage=0,
            trailing_stop=None,
            partial_exit_taken=False,
        )
        macd = f"{ind.macd_histogram:.3f}" if ind.macd_histogram is not None else 'n/a'
        atr = f"{ind.atr:.4f}" if ind.atr is not None else 'n/a'

        logger.info(f"  🎯 {direction} entry for {trade.symbol} ({signal.reason}) - "
                    f"{format_currency(size)} | MACD hist={macd} | ATR={atr}")
        self.guarded_call(RECORD_STORE, self.store.patch_trade, trade.id, {
            **state_fields(TradeState.ACTIVE),
            'entry_price': price,
            'position_size': size,
            'direction': direction,
            **levels,
            'notes': f"{direction} {signal.reason} | MACD={macd} ATR={atr}",
            'metadata': meta.to_dict(),
        })
        trade.state = TradeState.ACTIVE
        trade.direction = direction
        trade.entry_price = price
        trade.position_size = size
        trade.stop_loss = levels['stop_loss']
        trade.take_profit = levels['take_profit']
        trade.meta = meta

        cycle.entries += 1
        cycle.balance -= size
        cycle.state = consume_entry(record_move(cycle.state, f"{trade.symbol}:active", cycle.now))

        self._fire_and_forget('balance deduct', self.store.deduct_balance, self.settings.board_id, size)
        rsi = f"{ind.rsi:.1f}"
        volume = f"{ind.volume_ratio:.2f}x" if ind.volume_ratio is not None else 'n/a'
        self._journal(trade.id, 'entry',
                      f"{direction} Entry: {trade.symbol} @ {price} ({signal.reason}). "
                      f"RSI={rsi}, MACD={macd}, ATR={atr}, Vol={volume}")

    # ── Watchlist ───────────────────────────────────────────────────────

    def _process_watchlist(self, cycle: Cycle):
        for trade in cycle.in_state(TradeState.WATCHLIST):
            ind = cycle.snapshots.get(trade.symbol)
            if not self.signal_engine.should_move_to_analyzing(ind, cycle.profile):
                continue
            if not can_move(cycle.state, trade.symbol, cycle.profile.cooldown_hours, cycle.now, ind.momentum_4h):
                logger.info(f"  ⏳ {trade.symbol} signal active but cooldown "
                            f"({cycle.profile.cooldown_hours:g}h). Skipping move.")
                continue
            try:
                check_transition(trade.state, TradeState.ANALYZING)
                self.guarded_call(RECORD_STORE, self.store.patch_trade, trade.id, state_fields(TradeState.ANALYZING))
            except EngineError as e:
                logger.warning(f"  ⚠ Move failed for {trade.symbol}: {e}")
                continue
            logger.info(f"  🔍 Moved {trade.symbol} → Analyzing")
            trade.state = TradeState.ANALYZING
            cycle.state = record_move(cycle.state, trade.symbol, cycle.now)
            cycle.promotions += 1
        logger.info(f"🔍 Moved to Analyzing: {cycle.promotions}")

    # ── Bookkeeping ─────────────────────────────────────────────────────

    def _refresh_analysis(self, cycle: Cycle):
        for trade in cycle.trades:
            if trade.state not in (TradeState.WATCHLIST, TradeState.ANALYZING, TradeState.ACTIVE):
                continue
            fields = analysis_fields(cycle.snapshots.get(trade.symbol))
            if fields is None:
                continue
            self._fire_and_forget(f"analysis update for {trade.symbol}",
                                  self.store.patch_trade, trade.id, fields)

    def _update_stats(self, cycle: Cycle):
        closed = [t for t in cycle.trades if t.state.is_closed]
        wins = [t for t in closed if t.state == TradeState.CLOSED_WIN]
        win_rate = len(wins) / len(closed) * 100 if closed else 0.0
        total_return = sum(t.pnl_percent or 0.0 for t in closed)

        cycle.stats = {
            'last_run': cycle.now.isoformat(),
            'risk_profile': cycle.profile.name,
            'exits': cycle.exits,
            'entries': cycle.entries,
            'promotions': cycle.promotions,
            'closed_trades': len(closed),
            'win_rate': round(win_rate, 2),
            'total_return': round(total_return, 2),
        }
        self._fire_and_forget('stats update', self.store.record_cycle_stats, self.settings.board_id, cycle.stats)
        if closed:
            logger.info(f"🏆 {len(closed)} closed trades, {win_rate:.1f}% win rate, {total_return:.2f}% return")

    def _update_live_balance(self, cycle: Cycle):
        account = self.guarded_call(RECORD_STORE, self.store.get_account, self.settings.board_id)
        cycle.balance = float(account['balance'])
        logger.info(f"💰 Balance after cycle: {format_currency(cycle.balance)}")

    def _detect_regime_transition(self, cycle: Cycle):
        ref = cycle.snapshots.get(self.settings.reference_symbol)
        if ref is None or ref.adx is None:
            return
        previous = cycle.state.last_adx
        if previous is not None and (previous > TREND_ADX) != (ref.adx > TREND_ADX):
            kind = 'range_to_trend' if ref.adx > TREND_ADX else 'trend_to_range'
            cycle.regime_transition = {'from_adx': previous, 'to_adx': ref.adx, 'transition': kind}
            logger.warning(f"🔀 Regime transition on {ref.symbol}: ADX {previous:.1f} → {ref.adx:.1f} ({kind})")
        cycle.state = replace(cycle.state, last_adx=ref.adx)

    def _hedge_advisory(self, cycle: Cycle):
        suggestion = suggest_hedge(
            cycle.active,
            cycle.snapshots.get(self.settings.reference_symbol),
            self.settings.hedge_symbol,
        )
        if suggestion:
            cycle.hedge_suggestion = suggestion.to_dict()
