import asyncio
import dataclasses
import random
import unittest
from datetime import datetime, timedelta, timezone

import httpx

from scalpdesk.config import get_settings
from scalpdesk.errors import FeedError
from scalpdesk.jobs.ws_ingest import parse_tick
from scalpdesk.models.market import LiquidationLevels
from scalpdesk.providers.binance import BinanceProvider
from scalpdesk.providers.loader import get_provider
from scalpdesk.providers.simulated import SimulatedProvider, random_candle

T0 = datetime(2024, 5, 1, 13, 0, 0, tzinfo=timezone.utc)


def settings_for(**overrides):
    base = dict(
        feed="AUTO",
        binance_rest_url="https://api.test",
        binance_futures_url="https://fapi.test",
    )
    base.update(overrides)
    return dataclasses.replace(get_settings(), **base)


class TestSimulatedProvider(unittest.TestCase):
    def test_seed_history_is_continuous(self):
        p = SimulatedProvider("XAUUSD", rng=random.Random(7))
        candles = p.seed_history(T0, count=30)

        self.assertEqual(len(candles), 30)
        self.assertEqual(candles[-1].start_ts, T0 - timedelta(seconds=5))
        for prev, cur in zip(candles, candles[1:]):
            self.assertEqual(cur.o, prev.c)
            self.assertEqual((cur.start_ts - prev.start_ts).total_seconds(), 5.0)
        self.assertEqual(p.price, candles[-1].c)

    def test_random_candle_is_consistent(self):
        rng = random.Random(3)
        for _ in range(50):
            c = random_candle(2350.0, T0, 15.0, rng)
            self.assertGreaterEqual(c.h, max(c.o, c.c))
            self.assertLessEqual(c.l, min(c.o, c.c))
            self.assertAlmostEqual(c.buy_volume + c.sell_volume, c.v)
            self.assertAlmostEqual(sum(fp.total for fp in c.footprint), c.v)

    def test_ticks_use_wire_format(self):
        p = SimulatedProvider("EURUSD", rng=random.Random(1))
        tick = parse_tick(p.next_tick(1714568400000), "EURUSD")
        self.assertEqual(tick.ts, T0)
        self.assertGreater(tick.price, 0)

    def test_order_flow_around_price(self):
        p = SimulatedProvider("BTCUSDT", rng=random.Random(1))
        snap = asyncio.run(p.fetch_order_flow("BTCUSDT", 68000.0))

        self.assertEqual(len(snap.order_book.bids), 20)
        self.assertTrue(all(b.price < 68000.0 for b in snap.order_book.bids))
        self.assertTrue(all(a.price > 68000.0 for a in snap.order_book.asks))
        self.assertEqual(len(snap.liquidations.longs), 5)
        self.assertTrue(all(10e6 <= s.amount <= 60e6 for s in snap.liquidations.shorts))
        self.assertGreater(snap.open_interest, 0)


class TestProviderLoader(unittest.TestCase):
    def test_auto_routes_by_asset(self):
        settings = settings_for()
        live = get_provider(settings, "btcusdt")
        self.assertIsInstance(live, BinanceProvider)
        asyncio.run(live.close())

        self.assertIsInstance(get_provider(settings, "XAUUSD"), SimulatedProvider)

    def test_forced_simulated(self):
        self.assertIsInstance(get_provider(settings_for(feed="SIMULATED"), "BTCUSDT"), SimulatedProvider)

    def test_unknown_feed(self):
        with self.assertRaises(ValueError):
            get_provider(settings_for(feed="NOPE"), "BTCUSDT")


class TestBinanceProvider(unittest.IsolatedAsyncioTestCase):
    def make(self, handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return BinanceProvider(settings_for(), client=client)

    async def test_order_flow_from_rest(self):
        seen = []

        def handler(request):
            seen.append(request.url)
            if request.url.path == "/api/v3/depth":
                return httpx.Response(
                    200,
                    json={
                        "bids": [["68000.10", "1.5"], ["67999.90", "0.2"], ["bad", "1"]],
                        "asks": [["68000.20", "0.7"]],
                    },
                )
            if request.url.path == "/fapi/v1/openInterest":
                return httpx.Response(200, json={"symbol": "BTCUSDT", "openInterest": "81234.5"})
            return httpx.Response(404)

        p = self.make(handler)
        try:
            snap = await p.fetch_order_flow("btcusdt", 0.0)
        finally:
            await p.close()

        self.assertEqual([b.price for b in snap.order_book.bids], [68000.10, 67999.90])
        self.assertEqual(snap.order_book.asks[0].size, 0.7)
        self.assertEqual(snap.open_interest, 81234.5)
        self.assertEqual(len(snap.liquidations.shorts), 5)
        self.assertTrue(all(s.price > 68000.10 for s in snap.liquidations.shorts))
        self.assertEqual(seen[0].params["symbol"], "BTCUSDT")
        self.assertEqual(seen[0].params["limit"], "20")

    async def test_missing_open_interest_is_none(self):
        def handler(request):
            if request.url.path == "/api/v3/depth":
                return httpx.Response(200, json={"bids": [], "asks": []})
            return httpx.Response(503)

        p = self.make(handler)
        try:
            snap = await p.fetch_order_flow("BTCUSDT", 68000.0)
        finally:
            await p.close()

        self.assertIsNone(snap.open_interest)
        self.assertEqual(snap.order_book.bids, ())

    async def test_no_price_and_empty_book_gives_no_liquidations(self):
        def handler(request):
            if request.url.path == "/api/v3/depth":
                return httpx.Response(200, json={"bids": [], "asks": []})
            return httpx.Response(200, json={"openInterest": "1.5"})

        p = self.make(handler)
        try:
            snap = await p.fetch_order_flow("BTCUSDT", 0.0)
        finally:
            await p.close()

        self.assertEqual(snap.liquidations, LiquidationLevels())

    async def test_depth_failure_raises_feed_error(self):
        p = self.make(lambda request: httpx.Response(500))
        try:
            with self.assertRaises(FeedError):
                await p.fetch_order_book("BTCUSDT")
        finally:
            await p.close()

    def test_stream_url(self):
        p = BinanceProvider(settings_for(binance_ws_url="wss://ws.test/ws"), client=httpx.AsyncClient())
        self.assertEqual(p._stream_url("BTCUSDT"), "wss://ws.test/ws/btcusdt@aggTrade")


if __name__ == "__main__":
    unittest.main()
