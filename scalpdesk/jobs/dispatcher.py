from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from scalpdesk.candles.builder import CandleBuilder
from scalpdesk.candles.store import MarketDataStore
from scalpdesk.context import SessionContext
from scalpdesk.indicators.engine import advance_emas, compute_indicators
from scalpdesk.models.market import Candle, OrderFlowSnapshot, Tick

log = logging.getLogger("dispatcher")


@dataclass(frozen=True)
class TickEvent:
    epoch: int
    tick: Tick


@dataclass(frozen=True)
class TimerEvent:
    epoch: int
    now: datetime


@dataclass(frozen=True)
class OrderFlowEvent:
    epoch: int
    snapshot: OrderFlowSnapshot
    ts: datetime


Event = Union[TickEvent, TimerEvent, OrderFlowEvent]


class Dispatcher:
    """
    Single consumer for every market event.

    Producers (feed ingest, candle timer, order-flow refresher, dev routes)
    only enqueue. Events are handled one at a time in arrival order, so
    handlers never interleave and the store needs no locking. Events tagged
    with an epoch other than the context's current one were produced for a
    previous instrument and are dropped.
    """

    def __init__(
        self,
        store: MarketDataStore,
        context: SessionContext,
        builder: CandleBuilder,
        interval_seconds: float,
    ) -> None:
        self.store = store
        self.context = context
        self.builder = builder
        self.interval_seconds = interval_seconds
        self.queue: "asyncio.Queue[Event]" = asyncio.Queue()
        self.handled = 0
        self.dropped_stale = 0

    def submit(self, event: Event) -> None:
        self.queue.put_nowait(event)

    def handle(self, event: Event) -> Optional[Candle]:
        """Apply one event. Returns the candle closed by a TimerEvent, if any."""
        if not self.context.is_current(event.epoch):
            self.dropped_stale += 1
            log.debug("Dropping stale %s epoch=%s current=%s",
                      type(event).__name__, event.epoch, self.context.epoch)
            return None

        self.handled += 1

        if isinstance(event, TickEvent):
            self.builder.on_tick(event.tick)
            return None

        if isinstance(event, TimerEvent):
            closed = self.builder.on_timer(event.now)
            if closed is None:
                return None
            history = self.store.get_history()
            advance_emas(self.context, history)
            self.store.roll_trade_rate(self.interval_seconds)
            self.store.indicators = compute_indicators(
                history, self.context, event.now, self.store.price
            )
            return closed

        if isinstance(event, OrderFlowEvent):
            self.store.apply_order_flow(event.snapshot, event.ts)
            return None

        raise TypeError(f"Unknown event type: {type(event).__name__}")

    async def run(self) -> None:
        """Background loop: handle events forever, in order."""
        while True:
            event = await self.queue.get()
            try:
                self.handle(event)
            except Exception:
                # Keep the loop alive; one bad event must not stop the desk.
                log.exception("Event handler failed event=%s", type(event).__name__)
            finally:
                self.queue.task_done()
