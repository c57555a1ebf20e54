"""
Monthly drawdown breaker

Tracks the balance at the start of each calendar month. A drawdown of
more than DRAWDOWN_LIMIT from that baseline forces the risk profile to
'safe' for LOCKOUT. The trigger time and the profile to restore are kept
in engine state so the lockout survives restarts; when the lockout ends
the stored profile is restored and the baseline is reset to the balance
at that moment.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger

from ..utils.helpers import parse_timestamp
from .state import EngineState

DRAWDOWN_LIMIT = 0.12
LOCKOUT = timedelta(hours=48)
SAFE_PROFILE = 'safe'


@dataclass(frozen=True)
class DrawdownCheck:
    """Result of a drawdown check."""
    profile: str                    # profile to use this cycle
    state: EngineState
    drawdown: float = 0.0
    tripped: bool = False           # tripped during this check
    locked: bool = False            # lockout in force
    restored: Optional[str] = None  # profile restored during this check


def _month_key(now: datetime) -> str:
    return now.strftime('%Y-%m')


def _baseline(state: EngineState, balance: float, now: datetime) -> EngineState:
    key = _month_key(now)
    if not state.month_start or state.month_start.get('month') != key:
        logger.info(f"📅 New month baseline {key}: ${balance:,.2f}")
        return replace(state, month_start={'month': key, 'balance': balance})
    return state


def check_drawdown(state: EngineState, balance: float, profile: str, now: datetime) -> DrawdownCheck:
    """
    Apply the monthly drawdown breaker.

    Args:
        state: Engine state
        balance: Current account balance
        profile: Risk profile currently selected for the account
        now: Current time

    Returns:
        DrawdownCheck with the profile to use and the updated state
    """
    state = _baseline(state, balance, now)
    restored = None

    breaker = state.drawdown_breaker
    if breaker:
        triggered_at = parse_timestamp(breaker.get('triggered_at'))
        if triggered_at is not None and now < triggered_at + LOCKOUT:
            remaining = (triggered_at + LOCKOUT - now).total_seconds() / 3600
            logger.info(f"🔒 Drawdown lockout active ({remaining:.1f}h left) - profile forced to safe")
            return DrawdownCheck(profile=SAFE_PROFILE, state=state, locked=True)

        restored = breaker.get('restore_profile') or profile
        state = replace(
            state,
            drawdown_breaker=None,
            month_start={'month': _month_key(now), 'balance': balance},
        )
        logger.info(f"✅ Drawdown lockout ended - restoring '{restored}' profile")
        profile = restored

    baseline = float(state.month_start.get('balance') or 0)
    drawdown = (baseline - balance) / baseline if baseline > 0 else 0.0

    if drawdown > DRAWDOWN_LIMIT:
        state = replace(state, drawdown_breaker={
            'triggered_at': now.isoformat(),
            'restore_profile': profile,
        })
        logger.error(
            f"🛑 MONTHLY DRAWDOWN BREAKER TRIGGERED - drawdown {drawdown * 100:.2f}% "
            f"(limit {DRAWDOWN_LIMIT * 100:.0f}%)"
        )
        logger.error(f"⛔ Profile forced to safe for {LOCKOUT.total_seconds() / 3600:.0f}h")
        return DrawdownCheck(profile=SAFE_PROFILE, state=state, drawdown=drawdown, tripped=True, locked=True)

    return DrawdownCheck(profile=profile, state=state, drawdown=max(0.0, drawdown), restored=restored)
