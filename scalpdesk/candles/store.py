from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Deque, Dict, List, Optional

from scalpdesk.indicators.engine import IndicatorSnapshot
from scalpdesk.models.market import (
    Candle,
    LiquidationLevels,
    OpenCandle,
    OpenInterestPoint,
    OrderBook,
    OrderFlowSnapshot,
    TradePrint,
)

TRADE_TAPE_SIZE = 50


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MarketDataStore:
    """
    In-memory market state for the tracked instrument + freshness tracking.

    history        -> closed candles (latest max_history, oldest evicted first)
    current        -> candle still being built
    order_book     -> latest book, replaced wholesale on every refresh
    liquidations   -> latest long/short liquidation clusters
    oi_history     -> open interest samples (same capacity as history)
    trades         -> recent trades tape, newest first
    indicators     -> indicator snapshot as of the last candle close
    last_updated[field] -> when we last wrote that field
      - "candles": on every tick and every close
      - "order_flow": on every order-flow refresh

    Writes are last-writer-wins per field. Readers may see a snapshot where
    one field is newer than another.
    """
    max_history: int = 100
    history: Deque[Candle] = field(init=False)
    current: Optional[OpenCandle] = None
    price: float = 0.0
    order_book: OrderBook = field(default_factory=OrderBook)
    liquidations: LiquidationLevels = field(default_factory=LiquidationLevels)
    open_interest: float = 0.0
    oi_history: Deque[OpenInterestPoint] = field(init=False)
    trades: Deque[TradePrint] = field(init=False)
    trades_per_minute: float = 0.0
    indicators: IndicatorSnapshot = field(default_factory=IndicatorSnapshot)
    trade_counter: int = 0
    last_updated: Dict[str, datetime] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.history = deque(maxlen=self.max_history)
        self.oi_history = deque(maxlen=self.max_history)
        self.trades = deque(maxlen=TRADE_TAPE_SIZE)

    def touch(self, name: str) -> None:
        """Mark this field as updated right now."""
        self.last_updated[name] = utcnow()

    # -------------------------
    # Candles
    # -------------------------
    def append_candle(self, candle: Candle) -> None:
        self.history.append(candle)
        self.touch("candles")

    def replace_history(self, candles: List[Candle]) -> None:
        """Replace stored closed candles in one shot (used for seeding)."""
        self.history = deque(candles[-self.max_history:], maxlen=self.max_history)
        self.touch("candles")

    def get_history(self) -> List[Candle]:
        return list(self.history)

    def last_close(self) -> Optional[float]:
        if not self.history:
            return None
        return self.history[-1].c

    def record_trade(self, trade: TradePrint) -> None:
        self.price = trade.price
        self.trade_counter += 1
        self.trades.appendleft(trade)
        self.touch("candles")

    def roll_trade_rate(self, interval_seconds: float) -> float:
        """Convert the trade counter for the last interval into trades/minute."""
        self.trades_per_minute = self.trade_counter * (60.0 / interval_seconds)
        self.trade_counter = 0
        return self.trades_per_minute

    # -------------------------
    # Order flow
    # -------------------------
    def apply_order_flow(self, snapshot: OrderFlowSnapshot, ts: Optional[datetime] = None) -> None:
        self.order_book = snapshot.order_book
        self.liquidations = snapshot.liquidations
        if snapshot.open_interest is not None:
            self.open_interest = snapshot.open_interest
            self.oi_history.append(OpenInterestPoint(ts=ts or utcnow(), value=snapshot.open_interest))
        self.touch("order_flow")

    # -------------------------
    # Freshness
    # -------------------------
    def get_last_updated(self, name: str) -> Optional[datetime]:
        return self.last_updated.get(name)

    def has_any_data(self) -> bool:
        """True if we have either a current candle or any closed candles."""
        return self.current is not None or len(self.history) > 0

    def is_fresh(self, name: str, max_age_seconds: float) -> bool:
        """
        Freshness check:
        - Must have some data
        - last_updated must be within max_age_seconds
        """
        if not self.has_any_data():
            return False

        last = self.get_last_updated(name)
        if last is None:
            return False

        return (utcnow() - last) <= timedelta(seconds=max_age_seconds)

    def reset(self) -> None:
        """Drop everything (instrument switch)."""
        self.history.clear()
        self.oi_history.clear()
        self.trades.clear()
        self.current = None
        self.price = 0.0
        self.order_book = OrderBook()
        self.liquidations = LiquidationLevels()
        self.open_interest = 0.0
        self.trades_per_minute = 0.0
        self.trade_counter = 0
        self.indicators = IndicatorSnapshot()
        self.last_updated.clear()
