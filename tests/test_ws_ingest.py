import math
import unittest
from datetime import datetime, timezone

from scalpdesk.errors import MalformedTickError
from scalpdesk.jobs.dispatcher import TickEvent
from scalpdesk.jobs.ws_ingest import parse_tick, ws_ingest_loop
from scalpdesk.models.market import LiquidationLevels, OrderBook, OrderFlowSnapshot
from scalpdesk.providers.base import MarketDataProvider


def wire(price="68000.5", quantity="0.25", timestamp=1714568400000, maker_sell=False):
    return {"price": price, "quantity": quantity, "timestamp": timestamp, "isMakerSell": maker_sell}


class ListProvider(MarketDataProvider):
    def __init__(self, messages):
        self.messages = messages

    async def stream_ticks(self, symbol):
        for msg in self.messages:
            yield msg

    async def fetch_order_flow(self, symbol, price):
        return OrderFlowSnapshot(order_book=OrderBook(), liquidations=LiquidationLevels())


class TestParseTick(unittest.TestCase):
    def test_parses_strings_and_side(self):
        t = parse_tick(wire(maker_sell=True), "BTCUSDT")
        self.assertEqual(t.price, 68000.5)
        self.assertEqual(t.quantity, 0.25)
        self.assertFalse(t.is_buy)
        self.assertEqual(t.ts, datetime(2024, 5, 1, 13, 0, tzinfo=timezone.utc))

        self.assertTrue(parse_tick(wire(), "BTCUSDT").is_buy)

    def test_accepts_numbers(self):
        t = parse_tick(wire(price=101.25, quantity=2), "BTCUSDT")
        self.assertEqual((t.price, t.quantity), (101.25, 2.0))

    def test_malformed_fields(self):
        bad = [
            wire(price="abc"),
            wire(price=None),
            wire(quantity=""),
            wire(timestamp="later"),
            wire(price=True),
            wire(price=math.nan),
            wire(quantity="inf"),
            wire(timestamp=1e20),
            wire(timestamp=-1e20),
            {"quantity": "1", "timestamp": 1},
        ]
        for msg in bad:
            with self.assertRaises(MalformedTickError, msg=msg):
                parse_tick(msg, "BTCUSDT")

    def test_malformed_error_is_value_error(self):
        with self.assertRaises(ValueError) as ctx:
            parse_tick(wire(price="x"), "BTCUSDT")
        self.assertEqual(ctx.exception.field, "price")


class TestIngestLoop(unittest.IsolatedAsyncioTestCase):
    async def test_skips_malformed_and_tags_epoch(self):
        provider = ListProvider([wire(price="100"), wire(price="nope"), wire(price="101")])
        events = []

        await ws_ingest_loop(provider, "BTCUSDT", 7, events.append)

        self.assertEqual(len(events), 2)
        self.assertTrue(all(isinstance(e, TickEvent) and e.epoch == 7 for e in events))
        self.assertEqual([e.tick.price for e in events], [100.0, 101.0])

    async def test_out_of_range_timestamp_skips_only_that_tick(self):
        provider = ListProvider([wire(price="100", timestamp=1e20), wire(price="101")])
        events = []

        await ws_ingest_loop(provider, "BTCUSDT", 0, events.append)

        self.assertEqual([e.tick.price for e in events], [101.0])


if __name__ == "__main__":
    unittest.main()
