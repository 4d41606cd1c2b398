from __future__ import annotations

import asyncio
import logging
import traceback
from typing import Callable

from scalpdesk.candles.store import MarketDataStore, utcnow
from scalpdesk.jobs.dispatcher import OrderFlowEvent
from scalpdesk.providers.base import MarketDataProvider


async def order_flow_loop(
    provider: MarketDataProvider,
    store: MarketDataStore,
    symbol: str,
    epoch: int,
    submit: Callable[[object], None],
    refresh_seconds: float = 5.0,
) -> None:
    """
    Background loop:
    periodically refresh order book / liquidations / open interest around the
    latest price. The result goes through the dispatcher like any other event.
    """
    log = logging.getLogger("order_flow_refresher")

    while True:
        try:
            snapshot = await provider.fetch_order_flow(symbol, store.price)
            log.debug(
                "Fetched order flow symbol=%s bids=%d asks=%d oi=%s",
                symbol,
                len(snapshot.order_book.bids),
                len(snapshot.order_book.asks),
                snapshot.open_interest,
            )
            submit(OrderFlowEvent(epoch=epoch, snapshot=snapshot, ts=utcnow()))

        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Keep loop alive even if provider temporarily fails, but log the error.
            log.error("Order flow refresh failed for symbol=%s error=%s", symbol, repr(e))
            log.error(traceback.format_exc())

        await asyncio.sleep(refresh_seconds)
