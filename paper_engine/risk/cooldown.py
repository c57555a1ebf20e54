"""
Cooldown ledger and loss-streak cooldown

The ledger stores, per key (a symbol, or symbol plus target column), the
time of the last state-changing move. A move is blocked until the risk
profile's cooldown has elapsed, unless the current bar moved more than
EXTREME_MOVE_PCT.

The loss streak counts consecutive losing exits. LOSS_STREAK_LIMIT
losses in a row start a cooldown spanning the next LOSS_COOLDOWN_TRADES
entries, during which position sizes are halved.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger

from ..utils.helpers import parse_timestamp
from .state import EngineState

EXTREME_MOVE_PCT = 5.0
LOSS_STREAK_LIMIT = 5
LOSS_COOLDOWN_TRADES = 10


def is_extreme_move(momentum_4h: Optional[float]) -> bool:
    """True when the latest bar moved more than EXTREME_MOVE_PCT."""
    return momentum_4h is not None and abs(momentum_4h) > EXTREME_MOVE_PCT


def last_move(state: EngineState, key: str) -> Optional[datetime]:
    return parse_timestamp(state.last_moves.get(key))


def can_move(
    state: EngineState,
    key: str,
    cooldown_hours: float,
    now: datetime,
    momentum_4h: Optional[float] = None,
) -> bool:
    """
    Check whether a move for `key` is allowed.

    Args:
        state: Engine state holding the ledger
        key: Ledger key
        cooldown_hours: Risk-profile cooldown
        now: Current time
        momentum_4h: Latest single-bar % change; an extreme move overrides

    Returns:
        True if the cooldown elapsed, the key was never moved, or the bar
        was extreme
    """
    if is_extreme_move(momentum_4h):
        return True
    previous = last_move(state, key)
    if previous is None:
        return True
    return now - previous >= timedelta(hours=cooldown_hours)


def record_move(state: EngineState, key: str, now: datetime) -> EngineState:
    """Stamp `key` in the ledger."""
    moves = dict(state.last_moves)
    moves[key] = now.isoformat()
    return replace(state, last_moves=moves)


def loss_cooldown_active(state: EngineState) -> bool:
    return state.loss_cooldown_remaining > 0


def register_close(state: EngineState, win: bool) -> EngineState:
    """Update the loss streak after a trade closes."""
    if win:
        return replace(state, consecutive_losses=0)

    losses = state.consecutive_losses + 1
    if losses >= LOSS_STREAK_LIMIT:
        logger.warning(
            f"🔴 {losses} consecutive losses - halving position size for the next "
            f"{LOSS_COOLDOWN_TRADES} trades"
        )
        return replace(state, consecutive_losses=0, loss_cooldown_remaining=LOSS_COOLDOWN_TRADES)
    return replace(state, consecutive_losses=losses)


def consume_entry(state: EngineState) -> EngineState:
    """Count an entry against an active loss cooldown."""
    if state.loss_cooldown_remaining <= 0:
        return state
    remaining = state.loss_cooldown_remaining - 1
    if remaining == 0:
        logger.info("✅ Loss-streak cooldown finished - full position sizing restored")
    return replace(state, loss_cooldown_remaining=remaining)
