"""Trade records as the engine sees them, and their lifecycle states."""

import json
from dataclasses import dataclass, field, fields, asdict, replace
from enum import Enum
from typing import Any, Dict, Optional

from ..utils.helpers import normalize_pair


class TradeState(Enum):
    """Lifecycle states. Values are the board column names."""
    WATCHLIST = "Watchlist"
    ANALYZING = "Analyzing"
    ACTIVE = "Active"
    CLOSED_WIN = "Wins"
    CLOSED_LOSS = "Losses"
    PARKED = "Parked"

    @property
    def status(self) -> str:
        return STATUS_BY_STATE[self]

    @property
    def is_closed(self) -> bool:
        return self in (TradeState.CLOSED_WIN, TradeState.CLOSED_LOSS)

    @classmethod
    def from_column(cls, column: Optional[str]) -> "TradeState":
        for state in cls:
            if state.value == column:
                return state
        return cls.WATCHLIST


STATUS_BY_STATE = {
    TradeState.WATCHLIST: 'watching',
    TradeState.ANALYZING: 'analyzing',
    TradeState.ACTIVE: 'active',
    TradeState.CLOSED_WIN: 'closed',
    TradeState.CLOSED_LOSS: 'closed',
    TradeState.PARKED: 'parked',
}

ALLOWED_TRANSITIONS = {
    TradeState.WATCHLIST: {TradeState.ANALYZING, TradeState.PARKED},
    TradeState.ANALYZING: {TradeState.ACTIVE, TradeState.WATCHLIST, TradeState.PARKED},
    TradeState.ACTIVE: {TradeState.CLOSED_WIN, TradeState.CLOSED_LOSS},
    TradeState.PARKED: {TradeState.WATCHLIST, TradeState.ANALYZING},
    TradeState.CLOSED_WIN: set(),
    TradeState.CLOSED_LOSS: set(),
}


class InvalidTransition(ValueError):
    pass


def check_transition(current: TradeState, target: TradeState):
    """Raise InvalidTransition unless current -> target is a lifecycle edge."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(f"{current.value} -> {target.value} is not allowed")


def state_fields(state: TradeState) -> Dict[str, str]:
    """Record fields that place a trade in a lifecycle state."""
    return {'column_name': state.value, 'status': state.status}


@dataclass(frozen=True)
class StrategyMeta:
    """Typed strategy metadata carried on a trade record."""
    entry_reason: Optional[str] = None
    signal_price: Optional[float] = None
    fill_price: Optional[float] = None
    slippage_pct: Optional[float] = None
    atr_at_entry: Optional[float] = None
    trailing_stage: int = 0
    trailing_stop: Optional[float] = None
    partial_exit_taken: bool = False
    partial_exit_price: Optional[float] = None
    partial_exit_pnl: Optional[float] = None
    flipped_from: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "StrategyMeta":
        """Build from a stored blob, ignoring keys this engine does not own."""
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError:
                data = {}
        if not isinstance(data, dict):
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def patched(self, **changes) -> "StrategyMeta":
        """Field-level patch; unknown field names are rejected."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise KeyError(f"Unknown metadata fields: {sorted(unknown)}")
        return replace(self, **changes)

    def diff(self, other: "StrategyMeta") -> Dict[str, Any]:
        """Fields whose value differs in `other`."""
        mine = self.to_dict()
        return {k: v for k, v in other.to_dict().items() if mine.get(k) != v}


def _float(value) -> Optional[float]:
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class TradeRecord:
    """One card on the trading board."""
    id: int
    symbol: str
    direction: str = 'LONG'
    state: TradeState = TradeState.WATCHLIST
    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    current_price: Optional[float] = None
    position_size: float = 0.0
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    pnl_percent: Optional[float] = None
    bot_id: Optional[int] = None
    meta: StrategyMeta = field(default_factory=StrategyMeta)

    @property
    def is_short(self) -> bool:
        return self.direction.upper() == 'SHORT'

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "TradeRecord":
        """Parse a record-store payload."""
        size = _float(data.get('position_size')) or 0.0
        return cls(
            id=int(data['id']),
            symbol=normalize_pair(data.get('coin_pair') or data.get('symbol')),
            direction=(data.get('direction') or 'LONG').upper(),
            state=TradeState.from_column(data.get('column_name')),
            entry_price=_float(data.get('entry_price')),
            exit_price=_float(data.get('exit_price')),
            current_price=_float(data.get('current_price')),
            position_size=max(0.0, size),
            stop_loss=_float(data.get('stop_loss')),
            take_profit=_float(data.get('take_profit')),
            pnl_percent=_float(data.get('pnl_percent')),
            bot_id=data.get('bot_id'),
            meta=StrategyMeta.from_dict(data.get('metadata')),
        )

    def to_api(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'coin_pair': self.symbol,
            'direction': self.direction,
            'column_name': self.state.value,
            'status': self.state.status,
            'entry_price': self.entry_price,
            'exit_price': self.exit_price,
            'current_price': self.current_price,
            'position_size': self.position_size,
            'stop_loss': self.stop_loss,
            'take_profit': self.take_profit,
            'pnl_percent': self.pnl_percent,
            'bot_id': self.bot_id,
            'metadata': self.meta.to_dict(),
        }
