"""Paper trading engine: lifecycle orchestration over the trading board.

Modules:
- trade_record: Trade records, lifecycle states and strategy metadata
- signal_engine: Promotion, entry and exit decisions
- record_store: Trade record store interface (HTTP and in-memory)
- state_manager: Engine state persistence
- live_engine: One evaluation cycle
- review: Read-only operator snapshot
"""
from .errors import EngineError, CollaboratorError, CircuitOpenError, ConfigurationError
from .trade_record import TradeRecord, TradeState, StrategyMeta
from .signal_engine import SignalEngine, ExitDecision
from .record_store import TradeRecordStore, HttpTradeRecordStore, InMemoryTradeRecordStore
from .state_manager import StateManager
from .live_engine import LiveEngine, EngineSettings

__all__ = [
    'EngineError', 'CollaboratorError', 'CircuitOpenError', 'ConfigurationError',
    'TradeRecord', 'TradeState', 'StrategyMeta',
    'SignalEngine', 'ExitDecision',
    'TradeRecordStore', 'HttpTradeRecordStore', 'InMemoryTradeRecordStore',
    'StateManager',
    'LiveEngine', 'EngineSettings',
]
