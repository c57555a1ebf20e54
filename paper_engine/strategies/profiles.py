"""Risk profiles: fixed threshold bundles selected per account."""

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class RiskProfile:
    """Thresholds that shape promotion, entry and cooldown decisions."""
    name: str
    cooldown_hours: float
    allow_shorts: bool
    rsi_oversold: float        # long entries / strong RSI deviation below
    rsi_overbought: float      # short entries / strong RSI deviation above
    short_momentum: float      # momentum (%) a death-cross short needs to be below
    min_entry_signals: float   # promotion weight needed to move Watchlist -> Analyzing
    description: str = ""


RISK_PROFILES: Dict[str, RiskProfile] = {
    'safe': RiskProfile(
        name='safe', cooldown_hours=24, allow_shorts=False,
        rsi_oversold=35, rsi_overbought=70, short_momentum=-3.0,
        min_entry_signals=3, description='Long-only, slow cadence, strict setups',
    ),
    'balanced': RiskProfile(
        name='balanced', cooldown_hours=12, allow_shorts=True,
        rsi_oversold=40, rsi_overbought=65, short_momentum=-2.0,
        min_entry_signals=2, description='Longs and shorts, moderate cadence',
    ),
    'bold': RiskProfile(
        name='bold', cooldown_hours=4, allow_shorts=True,
        rsi_oversold=45, rsi_overbought=60, short_momentum=-1.5,
        min_entry_signals=2, description='All strategies, fast cadence',
    ),
}

DEFAULT_PROFILE = 'balanced'


def get_profile(name: str) -> RiskProfile:
    """Look up a risk profile by name, case-insensitively."""
    key = (name or '').strip().lower()
    if key not in RISK_PROFILES:
        raise ValueError(f"Unknown risk profile: {name}. Use: {list(RISK_PROFILES.keys())}")
    return RISK_PROFILES[key]
