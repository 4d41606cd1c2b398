import unittest

from scalpdesk.models.market import OrderBook, OrderBookLevel
from scalpdesk.orderflow.depth import depth_ladder, top_levels
from scalpdesk.risk import position_size, price_decimals, risk_amount, trade_plan_metrics


class TestRisk(unittest.TestCase):
    def test_position_size(self):
        risk = risk_amount(10000, 1)
        self.assertEqual(risk, 100.0)
        self.assertAlmostEqual(position_size(risk, 100.0, 99.5), 200.0)
        self.assertAlmostEqual(position_size(risk, 99.5, 100.0), 200.0)

    def test_entry_equals_stop(self):
        self.assertEqual(position_size(100.0, 100.0, 100.0), 0.0)

    def test_price_decimals(self):
        self.assertEqual(price_decimals(68000.0), 2)
        self.assertEqual(price_decimals(1.085), 4)
        self.assertEqual(price_decimals(100.0), 4)

    def test_trade_plan_metrics(self):
        m = trade_plan_metrics(2.0, 100.0, 99.0, 103.0, leverage=10.0)
        self.assertAlmostEqual(m["margin"], 20.0)
        self.assertAlmostEqual(m["stop_loss_distance"], 1.0)
        self.assertAlmostEqual(m["stop_loss_amount"], 2.0)
        self.assertAlmostEqual(m["take_profit_distance"], 3.0)
        self.assertAlmostEqual(m["take_profit_amount"], 6.0)

        short = trade_plan_metrics(0.5, 2000.0, 2010.0, 1970.0, leverage=50.0)
        self.assertAlmostEqual(short["margin"], 20.0)
        self.assertAlmostEqual(short["stop_loss_amount"], 5.0)
        self.assertAlmostEqual(short["take_profit_amount"], 15.0)

    def test_trade_plan_metrics_without_target(self):
        m = trade_plan_metrics(1.0, 100.0, 99.0, None, leverage=1.0)
        self.assertEqual(m["margin"], 100.0)
        self.assertIsNone(m["take_profit_distance"])
        self.assertIsNone(m["take_profit_amount"])

        with self.assertRaises(ValueError):
            trade_plan_metrics(1.0, 100.0, 99.0, None, leverage=0)


class TestDepth(unittest.TestCase):
    def setUp(self):
        self.book = OrderBook(
            bids=(OrderBookLevel(98.0, 1.0), OrderBookLevel(99.0, 2.0), OrderBookLevel(97.0, 4.0)),
            asks=(OrderBookLevel(102.0, 3.0), OrderBookLevel(101.0, 1.0)),
        )

    def test_top_levels_sorted_best_first(self):
        bids, asks = top_levels(self.book, 2)
        self.assertEqual([b.price for b in bids], [99.0, 98.0])
        self.assertEqual([a.price for a in asks], [101.0, 102.0])

    def test_ladder_cumulative(self):
        ladder = depth_ladder(self.book)
        self.assertEqual([r["cumulative"] for r in ladder["bids"]], [2.0, 3.0, 7.0])
        self.assertEqual([r["cumulative"] for r in ladder["asks"]], [1.0, 4.0])
        self.assertEqual(ladder["max_cumulative"], 7.0)

    def test_ladder_limits_levels(self):
        ladder = depth_ladder(self.book, levels=1)
        self.assertEqual(ladder["bids"], [{"price": 99.0, "size": 2.0, "cumulative": 2.0}])
        self.assertEqual(ladder["max_cumulative"], 2.0)

    def test_empty_book(self):
        self.assertEqual(depth_ladder(OrderBook()), {"bids": [], "asks": [], "max_cumulative": 0.0})


if __name__ == "__main__":
    unittest.main()
