"""
Trade record store

The engine's view of the trading board: trade records, the paper
account balance, journal entries, the account's risk setting and cycle
stats. HttpTradeRecordStore talks to the board's REST API with an API
key; InMemoryTradeRecordStore keeps everything in process for paper runs
without a board and for tests.
"""

from abc import ABC, abstractmethod
from itertools import count
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from .errors import CollaboratorError
from .trade_record import TradeRecord, TradeState, state_fields


class TradeRecordStore(ABC):
    """Collaborator interface for trade records and the paper account."""

    @abstractmethod
    def list_trades(self, board_id: int, status: Optional[str] = None) -> List[TradeRecord]:
        """All trade records on a board, optionally filtered by status."""
        pass

    @abstractmethod
    def create_trade(self, fields: Dict[str, Any]) -> TradeRecord:
        pass

    @abstractmethod
    def patch_trade(self, trade_id: int, fields: Dict[str, Any]):
        """Field-level update of one record."""
        pass

    @abstractmethod
    def exit_trade(self, trade_id: int, exit_price: Optional[float] = None):
        """Settle a trade against the paper account."""
        pass

    @abstractmethod
    def get_account(self, board_id: int) -> Dict[str, Any]:
        """Account summary; always carries 'balance'."""
        pass

    @abstractmethod
    def deduct_balance(self, board_id: int, amount: float):
        pass

    @abstractmethod
    def append_journal(self, trade_id: int, entry_type: str, content: str):
        pass

    @abstractmethod
    def get_risk_profile(self, board_id: int) -> Optional[str]:
        """Risk level selected for the account, None when unset."""
        pass

    @abstractmethod
    def set_risk_profile(self, board_id: int, profile: str):
        pass

    @abstractmethod
    def record_cycle_stats(self, board_id: int, stats: Dict[str, Any]):
        pass

    def close(self):
        """Release any held connections."""
        pass


class HttpTradeRecordStore(TradeRecordStore):
    """
    REST client for the trading board.

    Endpoints:
      GET   /api/trading/trades?boardId=     - list records
      POST  /api/trading/trades              - create record
      PATCH /api/trading/trades              - patch record (trade_id in body)
      POST  /api/trading/trade/exit          - settle a trade
      GET   /api/trading/account?boardId=    - paper account
      POST  /api/trading/trade/deduct        - deduct from paper balance
      POST  /api/v1/trading/journal          - journal entry
      GET   /api/trading/settings?boardId=   - account settings (risk_level)
      POST  /api/trading/settings            - save settings
      POST  /api/trading/trades/stats        - cycle stats
    """

    SOURCE = 'record_store'

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            base_url=base_url.rstrip('/'),
            headers={'X-API-Key': api_key, 'Content-Type': 'application/json'},
            timeout=timeout,
            transport=transport,
        )

    def close(self):
        """Close the underlying httpx client to release connections."""
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Make an API request.

        Raises:
            CollaboratorError: timeout, connection failure or non-2xx status.
        """
        try:
            resp = self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.TimeoutException:
            raise CollaboratorError(self.SOURCE, f"timeout: {method} {path}")
        except httpx.HTTPStatusError as e:
            body = e.response.text[:200]
            raise CollaboratorError(self.SOURCE, f"{method} {path} -> {e.response.status_code}: {body}")
        except httpx.HTTPError as e:
            raise CollaboratorError(self.SOURCE, f"{method} {path} failed: {e}")

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError:
            raise CollaboratorError(self.SOURCE, f"{method} {path} returned non-JSON body")

    def list_trades(self, board_id: int, status: Optional[str] = None) -> List[TradeRecord]:
        params = {'boardId': board_id}
        if status:
            params['status'] = status
        data = self._request('GET', '/api/trading/trades', params=params)
        return [TradeRecord.from_api(t) for t in data.get('trades') or []]

    def create_trade(self, fields: Dict[str, Any]) -> TradeRecord:
        data = self._request('POST', '/api/trading/trades', json=fields)
        trade = data.get('trade')
        if not trade:
            raise CollaboratorError(self.SOURCE, "create returned no trade")
        return TradeRecord.from_api(trade)

    def patch_trade(self, trade_id: int, fields: Dict[str, Any]):
        self._request('PATCH', '/api/trading/trades', json={'trade_id': trade_id, **fields})

    def exit_trade(self, trade_id: int, exit_price: Optional[float] = None):
        body = {'trade_id': trade_id}
        if exit_price is not None:
            body['exit_price'] = exit_price
        self._request('POST', '/api/trading/trade/exit', json=body)

    def get_account(self, board_id: int) -> Dict[str, Any]:
        data = self._request('GET', '/api/trading/account', params={'boardId': board_id})
        account = data.get('account') or {}
        return {**account, 'balance': float(account.get('current_balance') or 0)}

    def deduct_balance(self, board_id: int, amount: float):
        self._request('POST', '/api/trading/trade/deduct', json={'boardId': board_id, 'amount': amount})

    def append_journal(self, trade_id: int, entry_type: str, content: str):
        self._request('POST', '/api/v1/trading/journal', json={
            'trade_id': trade_id,
            'entry_type': entry_type,
            'content': content,
        })

    def get_risk_profile(self, board_id: int) -> Optional[str]:
        data = self._request('GET', '/api/trading/settings', params={'boardId': board_id})
        return (data.get('settings') or {}).get('risk_level')

    def set_risk_profile(self, board_id: int, profile: str):
        self._request('POST', '/api/trading/settings', json={
            'boardId': board_id,
            'settings': {'risk_level': profile},
        })

    def record_cycle_stats(self, board_id: int, stats: Dict[str, Any]):
        self._request('POST', '/api/trading/trades/stats', json={'boardId': board_id, 'stats': stats})


class InMemoryTradeRecordStore(TradeRecordStore):
    """Process-local store with the same semantics as the board API."""

    def __init__(self, board_id: int = 1, balance: float = 10000.0, risk_profile: Optional[str] = None):
        self.board_id = board_id
        self.balance = balance
        self.risk_profile = risk_profile
        self.records: Dict[int, Dict[str, Any]] = {}
        self.journal: List[Dict[str, Any]] = []
        self.stats: List[Dict[str, Any]] = []
        self.exits: List[int] = []
        self._ids = count(1)

    def add(self, symbol: str, state: TradeState = TradeState.WATCHLIST, **fields) -> TradeRecord:
        """Seed a record directly."""
        payload = {'board_id': self.board_id, 'coin_pair': symbol, 'direction': 'LONG', **state_fields(state), **fields}
        return self.create_trade(payload)

    def list_trades(self, board_id: int, status: Optional[str] = None) -> List[TradeRecord]:
        return [
            TradeRecord.from_api(r) for r in self.records.values()
            if r.get('board_id', board_id) == board_id and (status is None or r.get('status') == status)
        ]

    def create_trade(self, fields: Dict[str, Any]) -> TradeRecord:
        trade_id = next(self._ids)
        record = {'column_name': TradeState.WATCHLIST.value, 'status': TradeState.WATCHLIST.status, **fields, 'id': trade_id}
        self.records[trade_id] = record
        return TradeRecord.from_api(record)

    def patch_trade(self, trade_id: int, fields: Dict[str, Any]):
        if trade_id not in self.records:
            raise CollaboratorError('record_store', f"trade {trade_id} not found")
        self.records[trade_id].update(fields)

    def exit_trade(self, trade_id: int, exit_price: Optional[float] = None):
        record = self.records.get(trade_id)
        if record is None:
            raise CollaboratorError('record_store', f"trade {trade_id} not found")
        entry = float(record.get('entry_price') or 0)
        size = float(record.get('position_size') or 0)
        if entry > 0 and exit_price:
            change = (exit_price - entry) / entry
            if str(record.get('direction', 'LONG')).upper() == 'SHORT':
                change = -change
            self.balance += size * (1 + change)
        else:
            self.balance += size
        record['exit_price'] = exit_price
        self.exits.append(trade_id)

    def get_account(self, board_id: int) -> Dict[str, Any]:
        return {'balance': self.balance, 'current_balance': self.balance}

    def deduct_balance(self, board_id: int, amount: float):
        self.balance -= amount

    def append_journal(self, trade_id: int, entry_type: str, content: str):
        self.journal.append({'trade_id': trade_id, 'entry_type': entry_type, 'content': content})
        logger.debug(f"📓 Journal [{entry_type}] #{trade_id}: {content}")

    def get_risk_profile(self, board_id: int) -> Optional[str]:
        return self.risk_profile

    def set_risk_profile(self, board_id: int, profile: str):
        self.risk_profile = profile

    def record_cycle_stats(self, board_id: int, stats: Dict[str, Any]):
        self.stats.append(dict(stats))
