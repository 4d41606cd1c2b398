from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import AsyncIterator, Dict, Optional

import httpx
import websockets

from scalpdesk.config import Settings
from scalpdesk.errors import FeedError
from scalpdesk.models.market import LiquidationLevels, OrderBook, OrderBookLevel, OrderFlowSnapshot
from scalpdesk.providers.base import MarketDataProvider
from scalpdesk.providers.simulated import simulate_liquidations, volatility_for

log = logging.getLogger("binance_provider")

BOOK_LIMIT = 20


class BinanceProvider(MarketDataProvider):
    """
    Binance spot provider (WS + REST).

    WS:
    - aggTrade stream -> trade ticks

    REST:
    - /api/v3/depth -> order book
    - futures /fapi/v1/openInterest -> open interest
    Liquidation clusters have no public REST source and are simulated around
    the current price.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None) -> None:
        self.ws_url = settings.binance_ws_url
        self.rest_url = settings.binance_rest_url
        self.futures_url = settings.binance_futures_url
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self._rng = random.Random()

    async def close(self) -> None:
        await self._client.aclose()

    def _stream_url(self, symbol: str) -> str:
        return f"{self.ws_url}/{symbol.lower()}@aggTrade"

    # -------------------------
    # WS: ticks
    # -------------------------
    async def stream_ticks(self, symbol: str) -> AsyncIterator[Dict]:
        """
        Connects to the aggTrade stream and yields wire ticks:
          {"price": "...", "quantity": "...", "timestamp": ..., "isMakerSell": ...}
        Reconnects with exponential backoff (1s -> 30s).
        """
        url = self._stream_url(symbol)
        backoff = 1.0

        while True:
            try:
                async with websockets.connect(url, ping_interval=20, ping_timeout=20) as ws:
                    log.info("Binance WS connected url=%s", url)
                    backoff = 1.0
                    async for raw in ws:
                        try:
                            data = json.loads(raw)
                        except json.JSONDecodeError:
                            continue

                        if not isinstance(data, dict) or data.get("e") not in (None, "aggTrade"):
                            continue

                        yield {
                            "price": data.get("p"),
                            "quantity": data.get("q"),
                            "timestamp": data.get("T"),
                            "isMakerSell": bool(data.get("m")),
                        }

            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.warning("Binance WS error symbol=%s: %s", symbol, e)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, 30.0)

    # -------------------------
    # REST: order flow
    # -------------------------
    async def _get_json(self, url: str, params: Dict[str, str]) -> object:
        try:
            resp = await self._client.get(url, params=params)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise FeedError(f"GET {url} failed: {e}") from e
        return resp.json()

    async def fetch_order_book(self, symbol: str) -> OrderBook:
        data = await self._get_json(
            f"{self.rest_url}/api/v3/depth",
            {"symbol": symbol.upper(), "limit": str(BOOK_LIMIT)},
        )
        if not isinstance(data, dict):
            log.warning("Unexpected depth payload symbol=%s type=%s", symbol, type(data))
            return OrderBook()

        def levels(rows) -> tuple:
            out = []
            for row in rows or []:
                try:
                    out.append(OrderBookLevel(price=float(row[0]), size=float(row[1])))
                except (TypeError, ValueError, IndexError):
                    continue
            return tuple(out)

        return OrderBook(bids=levels(data.get("bids")), asks=levels(data.get("asks")))

    async def fetch_open_interest(self, symbol: str) -> Optional[float]:
        try:
            data = await self._get_json(
                f"{self.futures_url}/fapi/v1/openInterest",
                {"symbol": symbol.upper()},
            )
        except FeedError as e:
            # Open interest is optional.
            log.warning("Open interest unavailable symbol=%s: %s", symbol, e)
            return None

        try:
            return float(data["openInterest"])
        except (TypeError, KeyError, ValueError):
            log.warning("Unexpected open interest payload symbol=%s data=%s", symbol, data)
            return None

    async def fetch_order_flow(self, symbol: str, price: float) -> OrderFlowSnapshot:
        book = await self.fetch_order_book(symbol)
        if not price and book.bids:
            price = book.bids[0].price
        # No reference price: no liquidation levels to place.
        liquidations = LiquidationLevels()
        if price > 0:
            liquidations = simulate_liquidations(price, volatility_for(symbol), self._rng)
        return OrderFlowSnapshot(
            order_book=book,
            liquidations=liquidations,
            open_interest=await self.fetch_open_interest(symbol),
        )
