from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple


def bucket_price(price: float, step: float) -> float:
    """Round a price to the nearest footprint bucket (halves round up)."""
    return round(math.floor(price / step + 0.5) * step, 10)


@dataclass(frozen=True)
class Tick:
    """
    Tick = a single trade print from the feed.

    symbol: which instrument (e.g., BTCUSDT)
    ts: when the trade happened (UTC)
    price: traded price
    quantity: traded size
    is_buy: True when the aggressor was the buyer
    """
    symbol: str
    ts: datetime
    price: float
    quantity: float
    is_buy: bool

    @property
    def signed_quantity(self) -> float:
        return self.quantity if self.is_buy else -self.quantity


@dataclass(frozen=True)
class FootprintLevel:
    """Volume traded at one price bucket, split by aggressor side."""
    price: float
    buy_volume: float
    sell_volume: float

    @property
    def total(self) -> float:
        return self.buy_volume + self.sell_volume


@dataclass(frozen=True)
class Candle:
    """
    Closed candle (OHLCV + footprint) for one fixed-interval bucket.

    start_ts: when the bucket opened
    o/h/l/c: open/high/low/close prices during the bucket
    v: summed volume (always buy_volume + sell_volume)
    footprint: price buckets in the order they first traded
    """
    start_ts: datetime
    o: float
    h: float
    l: float
    c: float
    v: float
    buy_volume: float = 0.0
    sell_volume: float = 0.0
    footprint: Tuple[FootprintLevel, ...] = ()

    @property
    def delta(self) -> float:
        return self.buy_volume - self.sell_volume

    @property
    def typical_price(self) -> float:
        return (self.h + self.l + self.c) / 3.0


@dataclass
class OpenCandle:
    """
    Candle still accepting ticks. Owned by the CandleBuilder and frozen into a
    Candle when the timer closes its bucket.
    """
    start_ts: datetime
    o: float
    h: float
    l: float
    c: float
    v: float = 0.0
    buy_volume: float = 0.0
    sell_volume: float = 0.0
    tick_count: int = 0
    footprint: Dict[float, List[float]] = field(default_factory=dict)

    @classmethod
    def seeded(cls, start_ts: datetime, price: float) -> "OpenCandle":
        return cls(start_ts=start_ts, o=price, h=price, l=price, c=price)

    def update(self, tick: Tick, price_step: float) -> None:
        """Update this candle with a new tick."""
        price = tick.price
        if self.tick_count == 0:
            # First trade in the bucket sets the open.
            self.o = price
            self.h = price
            self.l = price

        self.h = max(self.h, price)
        self.l = min(self.l, price)
        self.c = price
        self.v += tick.quantity
        if tick.is_buy:
            self.buy_volume += tick.quantity
        else:
            self.sell_volume += tick.quantity
        self.tick_count += 1

        entry = self.footprint.setdefault(bucket_price(price, price_step), [0.0, 0.0])
        if tick.is_buy:
            entry[0] += tick.quantity
        else:
            entry[1] += tick.quantity

    def freeze(self) -> Candle:
        return Candle(
            start_ts=self.start_ts,
            o=self.o,
            h=self.h,
            l=self.l,
            c=self.c,
            v=self.v,
            buy_volume=self.buy_volume,
            sell_volume=self.sell_volume,
            footprint=tuple(
                FootprintLevel(price=p, buy_volume=b, sell_volume=s)
                for p, (b, s) in self.footprint.items()
            ),
        )


@dataclass(frozen=True)
class OrderBookLevel:
    price: float
    size: float


@dataclass(frozen=True)
class OrderBook:
    bids: Tuple[OrderBookLevel, ...] = ()
    asks: Tuple[OrderBookLevel, ...] = ()


@dataclass(frozen=True)
class LiquidationLevel:
    price: float
    amount: float  # USD


@dataclass(frozen=True)
class LiquidationLevels:
    longs: Tuple[LiquidationLevel, ...] = ()
    shorts: Tuple[LiquidationLevel, ...] = ()


@dataclass(frozen=True)
class OpenInterestPoint:
    ts: datetime
    value: float


@dataclass(frozen=True)
class OrderFlowSnapshot:
    """Everything a feed adapter refreshes on the order-flow cadence."""
    order_book: OrderBook
    liquidations: LiquidationLevels
    open_interest: Optional[float] = None


@dataclass(frozen=True)
class TradePrint:
    """One row of the recent-trades tape."""
    ts: datetime
    side: str  # "BUY" / "SELL"
    price: float
    size: float


@dataclass(frozen=True)
class Anchor:
    """Starting point for anchored VWAP."""
    ts: datetime
    label: str
