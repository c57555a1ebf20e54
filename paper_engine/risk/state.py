"""Engine state carried across cycles.

One explicit snapshot, loaded once at the start of a cycle and saved at
checkpoints. Risk functions take a state and return an updated copy.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class EngineState:
    last_adx: Optional[float] = None
    last_moves: Dict[str, str] = field(default_factory=dict)   # key -> ISO timestamp
    consecutive_losses: int = 0
    loss_cooldown_remaining: int = 0
    drawdown_breaker: Optional[Dict[str, Any]] = None        # triggered_at, restore_profile
    month_start: Optional[Dict[str, Any]] = None             # month 'YYYY-MM', balance

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EngineState":
        """Build from a persisted blob; unknown keys are dropped."""
        if not data:
            return cls()
        return cls(
            last_adx=data.get('last_adx'),
            last_moves=dict(data.get('last_moves') or {}),
            consecutive_losses=int(data.get('consecutive_losses') or 0),
            loss_cooldown_remaining=int(data.get('loss_cooldown_remaining') or 0),
            drawdown_breaker=data.get('drawdown_breaker'),
            month_start=data.get('month_start'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
