"""Indicators, risk profiles and entry strategies."""

from . import indicators
from .snapshot import IndicatorSnapshot, Confluence, build_snapshot, confluence_score
from .profiles import RiskProfile, RISK_PROFILES, DEFAULT_PROFILE, get_profile
from .entry_strategies import EntrySignal, EntryStrategy, StrategyContext, ENTRY_STRATEGIES, first_match
from .catalog import STRATEGY_CATALOG, active_strategies, get_strategy

__all__ = [
    'indicators',
    'IndicatorSnapshot',
    'Confluence',
    'build_snapshot',
    'confluence_score',
    'RiskProfile',
    'RISK_PROFILES',
    'DEFAULT_PROFILE',
    'get_profile',
    'EntrySignal',
    'EntryStrategy',
    'StrategyContext',
    'ENTRY_STRATEGIES',
    'first_match',
    'STRATEGY_CATALOG',
    'active_strategies',
    'get_strategy',
]
