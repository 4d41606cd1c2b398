from __future__ import annotations

from typing import Dict, List, Tuple

from scalpdesk.models.market import OrderBook, OrderBookLevel


def sorted_sides(book: OrderBook) -> Tuple[List[OrderBookLevel], List[OrderBookLevel]]:
    """Bids best (highest) first, asks best (lowest) first."""
    bids = sorted(book.bids, key=lambda lvl: lvl.price, reverse=True)
    asks = sorted(book.asks, key=lambda lvl: lvl.price)
    return bids, asks


def top_levels(book: OrderBook, n: int = 5) -> Tuple[List[OrderBookLevel], List[OrderBookLevel]]:
    bids, asks = sorted_sides(book)
    return bids[:n], asks[:n]


def _with_cumulative(levels: List[OrderBookLevel]) -> List[Dict[str, float]]:
    running = 0.0
    rows: List[Dict[str, float]] = []
    for lvl in levels:
        running += lvl.size
        rows.append({"price": lvl.price, "size": lvl.size, "cumulative": running})
    return rows


def depth_ladder(book: OrderBook, levels: int = 15) -> Dict[str, object]:
    """
    Depth ladder for the top `levels` on each side.

    max_cumulative is the larger of the two side totals, so both sides can be
    drawn on one scale.
    """
    bids, asks = top_levels(book, levels)
    bid_rows = _with_cumulative(bids)
    ask_rows = _with_cumulative(asks)

    bid_total = bid_rows[-1]["cumulative"] if bid_rows else 0.0
    ask_total = ask_rows[-1]["cumulative"] if ask_rows else 0.0

    return {
        "bids": bid_rows,
        "asks": ask_rows,
        "max_cumulative": max(bid_total, ask_total),
    }
