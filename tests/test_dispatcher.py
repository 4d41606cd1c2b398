import asyncio
import unittest
from datetime import datetime, timedelta, timezone

from scalpdesk.candles.builder import CandleBuilder
from scalpdesk.candles.store import MarketDataStore
from scalpdesk.context import SessionContext
from scalpdesk.jobs.dispatcher import Dispatcher, OrderFlowEvent, TickEvent, TimerEvent
from scalpdesk.models.market import (
    LiquidationLevel,
    LiquidationLevels,
    OrderBook,
    OrderBookLevel,
    OrderFlowSnapshot,
    Tick,
)

T0 = datetime(2024, 5, 1, 13, 0, 0, tzinfo=timezone.utc)


def make_dispatcher(interval=5.0):
    store = MarketDataStore(max_history=100)
    context = SessionContext(asset="BTCUSDT")
    builder = CandleBuilder(store, context, price_step=0.5)
    return Dispatcher(store, context, builder, interval)


def tick(price, qty=1.0, is_buy=True, offset=0.0):
    return Tick(symbol="BTCUSDT", ts=T0 + timedelta(seconds=offset), price=price, quantity=qty, is_buy=is_buy)


def flow(oi=None):
    return OrderFlowSnapshot(
        order_book=OrderBook(bids=(OrderBookLevel(99.0, 2.0),), asks=(OrderBookLevel(101.0, 3.0),)),
        liquidations=LiquidationLevels(longs=(LiquidationLevel(90.0, 1e7),), shorts=()),
        open_interest=oi,
    )


class TestDispatcherHandle(unittest.TestCase):
    def setUp(self):
        self.d = make_dispatcher()

    def test_tick_then_timer_closes_candle_and_refreshes_indicators(self):
        self.d.handle(TickEvent(0, tick(100.0, 1.0, True, 1)))
        self.d.handle(TickEvent(0, tick(102.0, 3.0, False, 2)))

        closed = self.d.handle(TimerEvent(0, T0 + timedelta(seconds=5)))
        self.assertIsNotNone(closed)
        self.assertEqual(closed.c, 102.0)

        self.assertEqual(self.d.context.ema_state[9], 102.0)
        self.assertEqual(self.d.store.indicators.emas[21], 102.0)
        self.assertEqual(self.d.store.indicators.session, "Overlap")
        self.assertEqual(self.d.store.trades_per_minute, 24.0)
        self.assertEqual(self.d.store.trade_counter, 0)
        self.assertAlmostEqual(self.d.context.cumulative_delta, -2.0)

    def test_timer_on_cold_start_does_nothing(self):
        self.assertIsNone(self.d.handle(TimerEvent(0, T0)))
        self.assertEqual(self.d.store.indicators.emas, {})

    def test_order_flow_event_replaces_book(self):
        self.d.handle(OrderFlowEvent(0, flow(oi=1234.0), T0))
        self.assertEqual(self.d.store.order_book.bids[0].price, 99.0)
        self.assertEqual(self.d.store.open_interest, 1234.0)
        self.assertEqual(len(self.d.store.oi_history), 1)

        self.d.handle(OrderFlowEvent(0, flow(oi=None), T0))
        self.assertEqual(self.d.store.open_interest, 1234.0)
        self.assertEqual(len(self.d.store.oi_history), 1)

    def test_stale_events_are_dropped(self):
        self.d.context.reset("ETHUSDT")

        self.assertIsNone(self.d.handle(TickEvent(0, tick(100.0))))
        self.d.handle(OrderFlowEvent(0, flow(oi=5.0), T0))

        self.assertIsNone(self.d.store.current)
        self.assertEqual(self.d.store.open_interest, 0.0)
        self.assertEqual(self.d.dropped_stale, 2)
        self.assertEqual(self.d.handled, 0)

    def test_unknown_event_type(self):
        class Bogus:
            epoch = 0

        with self.assertRaises(TypeError):
            self.d.handle(Bogus())


class TestDispatcherRun(unittest.IsolatedAsyncioTestCase):
    async def test_run_handles_in_arrival_order(self):
        d = make_dispatcher()
        consumer = asyncio.create_task(d.run())
        try:
            d.submit(TickEvent(0, tick(100.0, offset=1)))
            d.submit(TickEvent(0, tick(101.0, offset=2)))
            d.submit(TimerEvent(0, T0 + timedelta(seconds=5)))
            d.submit(TickEvent(0, tick(99.0, offset=6)))
            await d.queue.join()
        finally:
            consumer.cancel()
            await asyncio.gather(consumer, return_exceptions=True)

        self.assertEqual(d.handled, 4)
        self.assertEqual(d.store.history[-1].c, 101.0)
        self.assertEqual(d.store.current.c, 99.0)

    async def test_failing_handler_does_not_stop_loop(self):
        d = make_dispatcher()

        class Bogus:
            epoch = 0

        consumer = asyncio.create_task(d.run())
        try:
            with self.assertLogs("dispatcher", level="ERROR"):
                d.submit(Bogus())
                d.submit(TickEvent(0, tick(100.0)))
                await d.queue.join()
        finally:
            consumer.cancel()
            await asyncio.gather(consumer, return_exceptions=True)

        self.assertEqual(d.store.price, 100.0)


if __name__ == "__main__":
    unittest.main()
