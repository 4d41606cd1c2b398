from __future__ import annotations

import logging
from datetime import datetime

from scalpdesk.candles.store import MarketDataStore
from scalpdesk.context import SessionContext
from scalpdesk.models.market import Candle, OpenCandle, Tick, TradePrint

log = logging.getLogger("candle_builder")


class CandleBuilder:
    """
    Builds fixed-interval candles from ticks.

    - ticks update the open candle (OHLCV, buy/sell split, footprint) and CVD
    - the timer closes the open candle on a fixed cadence, independent of
      tick arrival, and immediately opens the next one
    """

    def __init__(self, store: MarketDataStore, context: SessionContext, price_step: float = 0.5):
        self.store = store
        self.context = context
        self.price_step = price_step

    def on_tick(self, tick: Tick) -> None:
        """Process one tick. Out-of-order timestamps are accepted as-is."""
        current = self.store.current

        # Cold start: no bucket open yet.
        if current is None:
            last_close = self.store.last_close()
            seed = last_close if last_close is not None else tick.price
            current = OpenCandle.seeded(tick.ts, seed)
            self.store.current = current

        current.update(tick, self.price_step)
        self.context.cumulative_delta += tick.signed_quantity

        self.store.record_trade(
            TradePrint(
                ts=tick.ts,
                side="BUY" if tick.is_buy else "SELL",
                price=tick.price,
                size=tick.quantity,
            )
        )

    def on_timer(self, now: datetime) -> Candle | None:
        """
        Close the current bucket.

        Returns the closed candle, or None on a cold start with no ticks and
        no previous close (nothing to finalize).
        """
        current = self.store.current
        last_close = self.store.last_close()

        if current is not None and current.tick_count > 0:
            closed = current.freeze()
        else:
            prev = last_close
            if prev is None and current is not None:
                prev = current.c
            if prev is None:
                return None

            # No trading in the interval: carry the price forward.
            start_ts = current.start_ts if current is not None else now
            closed = Candle(start_ts=start_ts, o=prev, h=prev, l=prev, c=prev, v=0.0)

        self.store.append_candle(closed)
        self.store.current = OpenCandle.seeded(now, closed.c)

        log.debug(
            "closed candle start=%s O=%s H=%s L=%s C=%s V=%s",
            closed.start_ts.isoformat(), closed.o, closed.h, closed.l, closed.c, closed.v,
        )
        return closed
