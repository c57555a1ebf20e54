"""State persistence for the engine. Saves/loads engine state to JSON.

The state file is read once when a cycle starts and written at the
cycle's checkpoints, so restarts keep cooldowns, loss streaks and the
drawdown breaker.
"""
import json
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from ..risk.state import EngineState


class StateManager:
    """Persists engine state to disk."""

    def __init__(self, state_file: str = "state/engine_state.json"):
        self.state_file = Path(state_file)

    def save(self, state: EngineState):
        """Save full engine state to JSON."""
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        serializable = state.to_dict()
        serializable['saved_at'] = datetime.now(timezone.utc).isoformat()

        # Write then rename so a crash mid-write keeps the previous snapshot
        tmp = self.state_file.with_suffix(self.state_file.suffix + '.tmp')
        with open(tmp, 'w') as f:
            json.dump(serializable, f, indent=2, default=str)
        tmp.replace(self.state_file)

    def load(self) -> EngineState:
        """Load engine state. Missing or unreadable files give a fresh state."""
        if not self.state_file.exists():
            logger.info("No previous engine state found. Starting fresh.")
            return EngineState()
        try:
            with open(self.state_file, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read engine state ({e}). Starting fresh.")
            return EngineState()
        return EngineState.from_dict(data)
