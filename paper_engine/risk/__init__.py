"""Risk controls for the paper trading engine."""

from .circuit_breaker import CircuitBreaker, CircuitBreakerState
from .state import EngineState
from .cooldown import can_move, record_move, register_close, consume_entry, loss_cooldown_active
from .correlation_guard import CorrelationGuard
from .position_sizer import PositionSizer
from .drawdown_breaker import DrawdownCheck, check_drawdown
from .hedge_advisor import HedgeSuggestion, suggest_hedge

__all__ = [
    'CircuitBreaker',
    'CircuitBreakerState',
    'EngineState',
    'can_move',
    'record_move',
    'register_close',
    'consume_entry',
    'loss_cooldown_active',
    'CorrelationGuard',
    'PositionSizer',
    'DrawdownCheck',
    'check_drawdown',
    'HedgeSuggestion',
    'suggest_hedge',
]
