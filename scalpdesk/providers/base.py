from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict

from scalpdesk.models.market import OrderFlowSnapshot


class MarketDataProvider(ABC):
    """
    Provider contract (interface).

    Any provider must implement:
    - stream_ticks(): trade prints as wire dicts (async iterator)
        {"price": "68000.10", "quantity": "0.015", "timestamp": 1717000000000,
         "isMakerSell": False}
    - fetch_order_flow(): order book / liquidations / open interest around price
    """

    @abstractmethod
    def stream_ticks(self, symbol: str) -> AsyncIterator[Dict]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_order_flow(self, symbol: str, price: float) -> OrderFlowSnapshot:
        raise NotImplementedError

    async def close(self) -> None:
        return None
