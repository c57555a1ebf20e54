"""
Tests for paper_engine/live/state_manager.py and risk/state.py
"""

from paper_engine.live.state_manager import StateManager
from paper_engine.risk.state import EngineState


class TestStateManager:
    """Tests for engine state persistence."""

    def test_missing_file_gives_fresh_state(self, tmp_path):
        assert StateManager(str(tmp_path / "none.json")).load() == EngineState()

    def test_save_and_load(self, tmp_path):
        manager = StateManager(str(tmp_path / "nested" / "state.json"))
        state = EngineState(
            last_adx=27.5,
            last_moves={"BTC/USDT": "2026-03-15T12:00:00+00:00"},
            consecutive_losses=2,
            drawdown_breaker={"triggered_at": "2026-03-14T00:00:00+00:00", "restore_profile": "bold"},
        )
        manager.save(state)

        assert manager.load() == state
        assert not (tmp_path / "nested" / "state.json.tmp").exists()

    def test_corrupt_file_gives_fresh_state(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        assert StateManager(str(path)).load() == EngineState()

    def test_unknown_keys_dropped(self):
        state = EngineState.from_dict({"last_adx": 10, "saved_at": "x", "legacy": 1})
        assert state.last_adx == 10
        assert state.consecutive_losses == 0
