from __future__ import annotations

import asyncio
import logging
import random
import time
from datetime import datetime, timedelta
from typing import AsyncIterator, Dict, List, Optional

from scalpdesk.models.market import (
    Candle,
    FootprintLevel,
    LiquidationLevel,
    LiquidationLevels,
    OrderBook,
    OrderBookLevel,
    OrderFlowSnapshot,
)
from scalpdesk.providers.base import MarketDataProvider

log = logging.getLogger("simulated_provider")

BASE_PRICES: Dict[str, float] = {
    "EURUSD": 1.0850,
    "GBPUSD": 1.2700,
    "USDJPY": 157.00,
    "XAUUSD": 2350.00,
    "XAGUSD": 30.50,
    "BTCUSDT": 68000.00,
    "ETHUSDT": 3800.00,
    "SOLUSDT": 165.00,
}
DEFAULT_BASE_PRICE = 50000.0

# Typical absolute price move per 5-second candle.
VOLATILITY: Dict[str, float] = {
    "EURUSD": 0.0005,
    "GBPUSD": 0.0006,
    "USDJPY": 0.1,
    "XAUUSD": 15,
    "XAGUSD": 0.5,
    "BTCUSDT": 500,
    "ETHUSDT": 50,
    "SOLUSDT": 5,
}
DEFAULT_VOLATILITY = 1000.0

BOOK_DEPTH = 20
LIQUIDATION_LEVELS = 5


def base_price_for(asset: str) -> float:
    return BASE_PRICES.get(asset.upper(), DEFAULT_BASE_PRICE)


def volatility_for(asset: str) -> float:
    return VOLATILITY.get(asset.upper(), DEFAULT_VOLATILITY)


def simulate_book(price: float, volatility: float, rng: random.Random) -> OrderBook:
    step = volatility * 0.2
    bids = tuple(OrderBookLevel(price - i * step, rng.random() * 50) for i in range(1, BOOK_DEPTH + 1))
    asks = tuple(OrderBookLevel(price + i * step, rng.random() * 50) for i in range(1, BOOK_DEPTH + 1))
    return OrderBook(bids=bids, asks=asks)


def simulate_liquidations(price: float, volatility: float, rng: random.Random) -> LiquidationLevels:
    """Long liquidations stacked below price, short liquidations above ($10M-$60M each)."""
    step = volatility * 2
    longs = tuple(
        LiquidationLevel(price - i * step, (rng.random() * 50 + 10) * 1e6)
        for i in range(1, LIQUIDATION_LEVELS + 1)
    )
    shorts = tuple(
        LiquidationLevel(price + i * step, (rng.random() * 50 + 10) * 1e6)
        for i in range(1, LIQUIDATION_LEVELS + 1)
    )
    return LiquidationLevels(longs=longs, shorts=shorts)


def random_candle(prev_close: float, start_ts: datetime, volatility: float, rng: random.Random) -> Candle:
    """One synthetic candle with a multi-bucket footprint that sums to its volume."""
    o = prev_close
    c = o + (rng.random() - 0.5) * volatility * 2
    h = max(o, c) + rng.random() * volatility * 0.5
    l = min(o, c) - rng.random() * volatility * 0.5

    v = rng.random() * 100 + 50
    buy = v * (0.4 + rng.random() * 0.2)
    sell = v - buy

    levels: List[List[float]] = []
    step = (h - l) / (rng.random() * 10 + 5)
    remaining_buy, remaining_sell = buy, sell
    if step > 0:
        price = l
        while price <= h:
            b = rng.random() * remaining_buy * 0.5
            s = rng.random() * remaining_sell * 0.5
            levels.append([round(price, 10), b, s])
            remaining_buy -= b
            remaining_sell -= s
            price += step
    if levels:
        levels[rng.randrange(len(levels))][1] += remaining_buy
        levels[rng.randrange(len(levels))][2] += remaining_sell
    else:
        levels.append([round(c, 10), buy, sell])

    return Candle(
        start_ts=start_ts,
        o=o,
        h=h,
        l=l,
        c=c,
        v=v,
        buy_volume=buy,
        sell_volume=sell,
        footprint=tuple(FootprintLevel(p, b, s) for p, b, s in levels),
    )


class SimulatedProvider(MarketDataProvider):
    """
    Synthetic market for assets without a live feed.

    - random-walk trade ticks (same wire format as the live feed)
    - seed history of 5-second candles with footprints
    - simulated order book, liquidation clusters and open interest
    """

    def __init__(
        self,
        asset: str,
        rng: Optional[random.Random] = None,
        tick_interval_seconds: float = 0.2,
        candle_interval_seconds: float = 5.0,
    ) -> None:
        self.asset = asset.upper()
        self.rng = rng or random.Random()
        self.volatility = volatility_for(self.asset)
        self.price = base_price_for(self.asset)
        self.tick_interval_seconds = tick_interval_seconds
        self.candle_interval_seconds = candle_interval_seconds
        self.open_interest = 50000 + self.rng.random() * 10000

    def seed_history(self, now: datetime, count: int = 100) -> List[Candle]:
        interval = timedelta(seconds=self.candle_interval_seconds)
        start = now - interval * count
        prev_close = self.price * (1 + (self.rng.random() - 0.5) * 0.001)

        candles: List[Candle] = []
        for i in range(count):
            candle = random_candle(prev_close, start + interval * i, self.volatility, self.rng)
            candles.append(candle)
            prev_close = candle.c

        if candles:
            self.price = candles[-1].c
        return candles

    def next_tick(self, t_ms: int) -> Dict:
        ticks_per_candle = max(self.candle_interval_seconds / self.tick_interval_seconds, 1.0)
        self.price += (self.rng.random() - 0.5) * 2 * self.volatility / ticks_per_candle
        quantity = self.rng.random() * 2
        return {
            "price": f"{self.price:.10g}",
            "quantity": f"{quantity:.6f}",
            "timestamp": t_ms,
            "isMakerSell": self.rng.random() < 0.5,
        }

    async def stream_ticks(self, symbol: str) -> AsyncIterator[Dict]:
        log.info("Simulated feed started asset=%s base=%s", self.asset, self.price)
        while True:
            yield self.next_tick(int(time.time() * 1000))
            await asyncio.sleep(self.tick_interval_seconds)

    async def fetch_order_flow(self, symbol: str, price: float) -> OrderFlowSnapshot:
        price = price or self.price
        self.open_interest = max(0.0, self.open_interest + (self.rng.random() - 0.45) * 10)
        return OrderFlowSnapshot(
            order_book=simulate_book(price, self.volatility, self.rng),
            liquidations=simulate_liquidations(price, self.volatility, self.rng),
            open_interest=self.open_interest,
        )
