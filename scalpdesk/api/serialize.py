from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from scalpdesk.desk import Desk
from scalpdesk.indicators.avwap import AvwapPoint
from scalpdesk.indicators.engine import IndicatorSnapshot
from scalpdesk.indicators.profile import CandleProfile
from scalpdesk.models.market import Anchor, Candle, OpenCandle


def iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def candle_dict(c: Candle) -> Dict:
    return {
        "start_ts": iso(c.start_ts),
        "open": c.o,
        "high": c.h,
        "low": c.l,
        "close": c.c,
        "volume": c.v,
        "buy_volume": c.buy_volume,
        "sell_volume": c.sell_volume,
        "footprint": [
            {"price": fp.price, "buy_volume": fp.buy_volume, "sell_volume": fp.sell_volume}
            for fp in c.footprint
        ],
    }


def open_candle_dict(c: Optional[OpenCandle]) -> Optional[Dict]:
    if c is None:
        return None
    return candle_dict(c.freeze()) | {"tick_count": c.tick_count}


def anchor_dict(a: Optional[Anchor]) -> Optional[Dict]:
    if a is None:
        return None
    return {"ts": iso(a.ts), "label": a.label}


def avwap_list(points: List[AvwapPoint]) -> List[Dict]:
    return [
        {
            "start_ts": iso(p.start_ts),
            "avwap": p.avwap,
            "upper_band": p.upper_band,
            "lower_band": p.lower_band,
        }
        for p in points
    ]


def profile_dict(p: CandleProfile) -> Dict:
    return {
        "start_ts": iso(p.start_ts),
        "poc": p.poc,
        "value_area_low": p.value_area_low,
        "value_area_high": p.value_area_high,
        "max_volume": p.max_volume,
    }


def indicators_dict(ind: IndicatorSnapshot) -> Dict:
    return {
        "emas": {str(k): v for k, v in ind.emas.items()},
        "vwap": dict(ind.vwap),
        "support": ind.support,
        "resistance": ind.resistance,
        "market_phase": ind.market_phase,
        "session": ind.session,
        "anchor": anchor_dict(ind.anchor),
        "price_domain": list(ind.price_domain),
    }


def snapshot(desk: Desk) -> Dict:
    """Read-only view of everything the presentation layer draws."""
    store = desk.store
    return {
        "asset": desk.asset,
        "epoch": desk.context.epoch,
        "price": store.price,
        "cumulative_volume_delta": desk.context.cumulative_delta,
        "trades_per_minute": store.trades_per_minute,
        "candles": [candle_dict(c) for c in store.history],
        "current_candle": open_candle_dict(store.current),
        "indicators": indicators_dict(store.indicators),
        "order_book": {
            "bids": [{"price": b.price, "size": b.size} for b in store.order_book.bids],
            "asks": [{"price": a.price, "size": a.size} for a in store.order_book.asks],
        },
        "liquidation_levels": {
            "longs": [{"price": x.price, "amount": x.amount} for x in store.liquidations.longs],
            "shorts": [{"price": x.price, "amount": x.amount} for x in store.liquidations.shorts],
        },
        "open_interest": store.open_interest,
        "open_interest_history": [{"ts": iso(p.ts), "value": p.value} for p in store.oi_history],
        "recent_trades": [
            {"ts": iso(t.ts), "side": t.side, "price": t.price, "size": t.size}
            for t in store.trades
        ],
        "session": store.indicators.session,
        "last_updated": {k: iso(v) for k, v in store.last_updated.items()},
    }
