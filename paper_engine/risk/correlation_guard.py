"""
Correlation Guard - limit stacked exposure to correlated coins

Symbols are grouped by sector (layer-1, DeFi, meme, AI, hedge ...). An
entry is rejected when the account already holds MAX_SAME_DIRECTION
active trades in the same group and the same direction.
"""

from typing import Dict, Iterable, List, Optional

from loguru import logger

from ..utils.helpers import ticker_of

MAX_SAME_DIRECTION = 2

DEFAULT_GROUPS: Dict[str, List[str]] = {
    'layer1': ['BTC', 'ETH', 'SOL', 'ADA', 'AVAX', 'DOT', 'NEAR', 'ATOM', 'SUI', 'APT'],
    'layer2': ['ARB', 'OP', 'MATIC', 'POL', 'STRK'],
    'defi': ['LINK', 'UNI', 'AAVE', 'MKR', 'INJ', 'CRV', 'LDO'],
    'meme': ['DOGE', 'SHIB', 'PEPE', 'WIF', 'BONK', 'FLOKI'],
    'ai': ['FET', 'RENDER', 'TAO', 'AGIX', 'WLD'],
    'hedge': ['PAXG', 'XAUT'],
}


class CorrelationGuard:
    """
    Blocks entries that would over-concentrate one correlation group.

    Active trades are anything with `symbol` and `direction` attributes
    (trade records in practice).
    """

    def __init__(self, groups: Optional[Dict[str, List[str]]] = None, max_same_direction: int = MAX_SAME_DIRECTION):
        self.groups = groups or DEFAULT_GROUPS
        self.max_same_direction = max_same_direction
        self._group_by_ticker = {
            ticker.upper(): name
            for name, tickers in self.groups.items()
            for ticker in tickers
        }

    def group_of(self, symbol: str) -> Optional[str]:
        return self._group_by_ticker.get(ticker_of(symbol))

    def exposure(self, group: str, direction: str, active_trades: Iterable) -> int:
        """Active trades in `group` held in `direction`."""
        return sum(
            1 for t in active_trades
            if self.group_of(t.symbol) == group and t.direction.upper() == direction.upper()
        )

    def allows(self, symbol: str, direction: str, active_trades: Iterable) -> bool:
        """
        Check whether a new entry fits the exposure limit.

        Args:
            symbol: Candidate symbol
            direction: 'LONG' or 'SHORT'
            active_trades: Currently active trades

        Returns:
            False when the group already holds the limit in that direction
        """
        group = self.group_of(symbol)
        if group is None:
            return True

        held = self.exposure(group, direction, active_trades)
        if held >= self.max_same_direction:
            logger.info(
                f"🔗 Correlation guard: {symbol} blocked - already {held} {direction} "
                f"position(s) in '{group}'"
            )
            return False
        return True
