import os
import sys

# Add repo root to Python import path so `import scalpdesk...` works
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import asyncio

from scalpdesk.config import get_settings
from scalpdesk.jobs.ws_ingest import parse_tick
from scalpdesk.providers.binance import BinanceProvider


async def main(symbol: str = "BTCUSDT"):
    p = BinanceProvider(get_settings())

    got = 0
    try:
        async for msg in p.stream_ticks(symbol):
            print("TICK:", parse_tick(msg, symbol))
            got += 1
            if got >= 3:
                break

        book = await p.fetch_order_book(symbol)
        print("BOOK: best bid", book.bids[0] if book.bids else None, "best ask", book.asks[0] if book.asks else None)
        print("OI:", await p.fetch_open_interest(symbol))
    finally:
        await p.close()

if __name__ == "__main__":
    try:
        asyncio.run(asyncio.wait_for(main(*sys.argv[1:2]), timeout=15))
    except asyncio.TimeoutError:
        print("Timed out waiting for ticks (check network access to Binance).")
