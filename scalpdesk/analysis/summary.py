from __future__ import annotations

from typing import Dict, List

from scalpdesk.candles.store import MarketDataStore
from scalpdesk.context import SessionContext
from scalpdesk.indicators.profile import volume_profile
from scalpdesk.models.analysis import TradeConfig
from scalpdesk.orderflow.depth import top_levels
from scalpdesk.risk import price_decimals, risk_amount

RECENT_CANDLES = 5
TOP_BOOK_LEVELS = 5
TOP_LIQUIDATIONS = 3


def build_market_summary(store: MarketDataStore, context: SessionContext, config: TradeConfig) -> Dict:
    """
    Numeric market summary handed to the external analysis service.

    Covers the last few candles (OHLCV + delta), their POCs, CVD, VWAP/EMA
    levels, top of book, nearest liquidation clusters, session and open
    interest, plus the trader's risk budget.
    """
    history = store.get_history()
    recent = history[-RECENT_CANDLES:]
    price = store.price or (history[-1].c if history else 0.0)
    ind = store.indicators

    session_high = max((c.h for c in history), default=price)
    session_low = min((c.l for c in history), default=price)
    average_range = sum(c.h - c.l for c in recent) / len(recent) if recent else 0.0

    recent_pocs: List[Dict] = []
    for i, c in enumerate(recent):
        if not c.footprint:
            continue
        recent_pocs.append({"candle": f"T-{len(recent) - 1 - i}", "poc": volume_profile(c).poc})

    bids, asks = top_levels(store.order_book, TOP_BOOK_LEVELS)

    return {
        "asset": context.asset,
        "epoch": context.epoch,
        "price": price,
        "price_decimals": price_decimals(price),
        "cumulative_volume_delta": context.cumulative_delta,
        "average_range": average_range,
        "recent_candles": [
            {"o": c.o, "h": c.h, "l": c.l, "c": c.c, "v": c.v, "delta": c.delta}
            for c in recent
        ],
        "recent_pocs": recent_pocs,
        "session": ind.session,
        "session_high": session_high,
        "session_low": session_low,
        "vwap_5m": ind.vwap.get("5m", 0.0),
        "vwap_1h": ind.vwap.get("1h", 0.0),
        "ema_21": ind.emas.get(21, 0.0),
        "ema_50": ind.emas.get(50, 0.0),
        "open_interest": store.open_interest,
        "top_bids": [{"price": b.price, "size": b.size} for b in bids],
        "top_asks": [{"price": a.price, "size": a.size} for a in asks],
        "short_liquidations": [
            {"price": lvl.price, "amount": lvl.amount}
            for lvl in store.liquidations.shorts[:TOP_LIQUIDATIONS]
        ],
        "long_liquidations": [
            {"price": lvl.price, "amount": lvl.amount}
            for lvl in store.liquidations.longs[:TOP_LIQUIDATIONS]
        ],
        "account_balance": config.account_balance,
        "leverage": config.leverage,
        "risk_percentage": config.risk_percentage,
        "risk_amount": risk_amount(config.account_balance, config.risk_percentage),
    }
