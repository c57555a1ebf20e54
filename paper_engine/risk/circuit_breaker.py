"""
Circuit Breaker - stop hammering collaborators that are failing

Counts failed calls to the market data provider and the trade record
store in a sliding window. Enough failures inside the window open the
breaker for a fixed cooldown; while open, callers must treat new
collaborator calls as disallowed and carry on with whatever data they
already have.

Defaults: 3 failures within 60 seconds -> open for 5 minutes.
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Deque, Dict, Optional

from loguru import logger

from ..utils.helpers import utc_now


class CircuitBreakerState(Enum):
    """Circuit breaker states"""
    CLOSED = "CLOSED"   # Calls allowed
    OPEN = "OPEN"       # Calls refused until cooldown ends


@dataclass
class FailureEvent:
    """Record of a collaborator call that failed"""
    timestamp: datetime
    source: str
    error: str


class CircuitBreaker:
    """
    Sliding-window failure breaker.

    How it works:
    - record_failure() appends to the window and prunes old events
    - threshold failures inside the window -> OPEN for cooldown
    - allow() is False while OPEN
    - the first allow() after the cooldown re-closes the breaker and
      clears the failure history
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        window_seconds: float = 60.0,
        cooldown_seconds: float = 300.0,
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Failures inside the window that open the breaker
            window_seconds: Sliding window length
            cooldown_seconds: How long the breaker stays open
        """
        self.failure_threshold = failure_threshold
        self.window = timedelta(seconds=window_seconds)
        self.cooldown = timedelta(seconds=cooldown_seconds)

        self.state = CircuitBreakerState.CLOSED
        self.open_until: Optional[datetime] = None
        self.failures: Deque[FailureEvent] = deque()
        self.trip_count = 0

    def _prune(self, current_time: datetime):
        cutoff = current_time - self.window
        while self.failures and self.failures[0].timestamp < cutoff:
            self.failures.popleft()

    def allow(self, current_time: Optional[datetime] = None) -> bool:
        """
        Check whether a collaborator call may be made.

        Args:
            current_time: Current datetime (for testing, else uses now)

        Returns:
            True when the breaker is closed
        """
        if current_time is None:
            current_time = utc_now()

        if self.state == CircuitBreakerState.OPEN:
            if current_time < self.open_until:
                return False
            self._close(current_time)

        return True

    def record_failure(
        self,
        source: str = "collaborator",
        error: str = "",
        current_time: Optional[datetime] = None,
    ) -> CircuitBreakerState:
        """
        Record a failed call and open the breaker when the window fills.

        Returns:
            State after recording
        """
        if current_time is None:
            current_time = utc_now()

        self.failures.append(FailureEvent(timestamp=current_time, source=source, error=error))
        self._prune(current_time)

        if self.state == CircuitBreakerState.CLOSED and len(self.failures) >= self.failure_threshold:
            self._open(current_time)

        return self.state

    def _open(self, current_time: datetime):
        self.state = CircuitBreakerState.OPEN
        self.open_until = current_time + self.cooldown
        self.trip_count += 1
        sources = sorted({f.source for f in self.failures})
        logger.warning(
            f"🔴 CIRCUIT BREAKER OPEN - {len(self.failures)} failures in "
            f"{self.window.total_seconds():.0f}s ({', '.join(sources)})"
        )
        logger.warning(f"⏰ Collaborator calls refused until {self.open_until.strftime('%Y-%m-%d %H:%M:%S')}")

    def _close(self, current_time: datetime):
        self.state = CircuitBreakerState.CLOSED
        self.open_until = None
        self.failures.clear()
        logger.info(f"✅ Circuit breaker closed at {current_time.strftime('%Y-%m-%d %H:%M:%S')}")

    @property
    def is_open(self) -> bool:
        return self.state == CircuitBreakerState.OPEN

    def get_status(self) -> Dict:
        """Get current circuit breaker status."""
        return {
            'state': self.state.value,
            'recent_failures': len(self.failures),
            'open_until': self.open_until.isoformat() if self.open_until else None,
            'trip_count': self.trip_count,
        }

    def reset(self):
        """Reset circuit breaker (for testing)."""
        self.state = CircuitBreakerState.CLOSED
        self.open_until = None
        self.failures.clear()
        self.trip_count = 0
