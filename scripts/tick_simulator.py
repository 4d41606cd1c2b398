from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from scalpdesk.candles.builder import CandleBuilder
from scalpdesk.candles.store import MarketDataStore
from scalpdesk.context import SessionContext
from scalpdesk.indicators.engine import advance_emas
from scalpdesk.indicators.profile import volume_profile
from scalpdesk.models.market import Tick


def run(asset: str = "BTCUSDT", seconds: int = 60, interval: int = 5) -> None:
    """
    Generates fake ticks for `seconds` seconds and feeds them into CandleBuilder.

    - We simulate ~4 ticks per second, with occasional silent seconds.
    - Price does a random walk (moves up/down a bit each tick).
    - Every `interval` seconds the timer closes the open candle; we print each
      closed candle with its POC / value area and the EMAs.
    """
    store = MarketDataStore(max_history=100)
    context = SessionContext(asset=asset)
    builder = CandleBuilder(store, context, price_step=0.5)

    ts = datetime.now(timezone.utc).replace(microsecond=0)
    price = 68000.0

    print(f"Simulating ticks for {asset} for {seconds} seconds...\n")

    for second in range(seconds):
        if random.random() > 0.1:
            for _ in range(4):
                price += random.uniform(-2.0, 2.0)
                tick = Tick(
                    symbol=asset,
                    ts=ts,
                    price=round(price, 2),
                    quantity=round(random.uniform(0.001, 0.5), 4),
                    is_buy=random.random() < 0.5,
                )
                builder.on_tick(tick)

        ts += timedelta(seconds=1)

        if (second + 1) % interval == 0:
            closed = builder.on_timer(ts)
            if closed is None:
                continue
            emas = advance_emas(context, store.get_history())
            prof = volume_profile(closed)
            print(
                f"[CLOSED] {closed.start_ts.isoformat()} "
                f"O={closed.o} H={closed.h} L={closed.l} C={closed.c} V={closed.v:.4f} "
                f"POC={prof.poc} VA=[{prof.value_area_low}, {prof.value_area_high}] "
                f"EMA9={emas[9]:.2f}"
            )

    print(f"\nDone.")
    print(f"Closed candles stored: {len(store.history)}")
    print(f"Cumulative volume delta: {context.cumulative_delta:.4f}")


if __name__ == "__main__":
    run()
