from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from scalpdesk.context import SessionContext
from scalpdesk.indicators.avwap import AvwapPoint, avwap_series, resolve_anchor
from scalpdesk.indicators.sessions import CLOSED, session_for
from scalpdesk.models.market import Anchor, Candle

VWAP_WINDOWS: Dict[str, int] = {
    "5m": 5 * 60,
    "30m": 30 * 60,
    "1h": 60 * 60,
    "24h": 24 * 60 * 60,
}


@dataclass
class IndicatorSnapshot:
    """Everything derived from the candle history at one point in time."""
    emas: Dict[int, float] = field(default_factory=dict)
    vwap: Dict[str, float] = field(default_factory=dict)
    support: float = 0.0
    resistance: float = 0.0
    market_phase: str = "Consolidation"
    session: str = CLOSED
    anchor: Optional[Anchor] = None
    avwap: List[AvwapPoint] = field(default_factory=list)
    price_domain: Tuple[float, float] = (0.0, 0.0)


# -------------------------
# EMA
# -------------------------
def ema_step(closes: Sequence[float], period: int, last: float) -> float:
    """
    Next EMA value after the latest close in `closes`.

    While the EMA is not warmed up (last == 0) or we have no more than
    `period` closes, the EMA is the simple mean of the last `period` closes.
    After that it is smoothed with k = 2 / (period + 1).
    """
    if not closes:
        return 0.0
    if last == 0 or len(closes) <= period:
        window = closes[-period:]
        return sum(window) / len(window)
    k = 2.0 / (period + 1)
    return closes[-1] * k + last * (1 - k)


def ema_curve(closes: Sequence[float], period: int) -> List[float]:
    """Replay ema_step over a close series, one value per close."""
    out: List[float] = []
    last = 0.0
    for i in range(1, len(closes) + 1):
        last = ema_step(closes[:i], period, last)
        out.append(last)
    return out


def advance_emas(context: SessionContext, candles: Sequence[Candle]) -> Dict[int, float]:
    """Advance the carried EMA state by one closed candle."""
    closes = [c.c for c in candles]
    for period, last in list(context.ema_state.items()):
        context.ema_state[period] = ema_step(closes, period, last)
    return dict(context.ema_state)


# -------------------------
# VWAP (trailing time windows)
# -------------------------
def vwap_for_window(candles: Sequence[Candle], window_seconds: float, now: datetime) -> float:
    """Typical-price VWAP over candles that started within the trailing window."""
    cutoff = now - timedelta(seconds=window_seconds)
    pv_sum = 0.0
    v_sum = 0.0
    for c in candles:
        if c.start_ts < cutoff or c.v <= 0:
            continue
        pv_sum += c.typical_price * c.v
        v_sum += c.v

    if v_sum <= 0:
        return 0.0
    return pv_sum / v_sum


def compute_vwaps(candles: Sequence[Candle], now: datetime) -> Dict[str, float]:
    return {name: vwap_for_window(candles, secs, now) for name, secs in VWAP_WINDOWS.items()}


# -------------------------
# Support / Resistance, phase, chart domain
# -------------------------
def support_resistance(candles: Sequence[Candle]) -> Tuple[float, float]:
    if not candles:
        return 0.0, 0.0
    return min(c.l for c in candles), max(c.h for c in candles)


def market_phase(emas: Dict[int, float], price: float) -> str:
    fast, mid, slow = emas.get(9, 0.0), emas.get(21, 0.0), emas.get(50, 0.0)
    if not (fast and mid and slow and price):
        return "Consolidation"
    if price > fast > mid > slow:
        return "Uptrend"
    if price < fast < mid < slow:
        return "Downtrend"
    return "Consolidation"


def price_domain(candles: Sequence[Candle], buffer_share: float = 0.1) -> Tuple[float, float]:
    """
    Price range for charting the window.

    A flat or empty window gets a synthetic +/-1% range around the last close.
    """
    lo = min((c.l for c in candles), default=math.inf)
    hi = max((c.h for c in candles), default=-math.inf)
    span = hi - lo

    if not math.isfinite(lo) or math.isnan(span) or span <= 0.00001:
        mid = candles[-1].c if candles else 1.0
        offset = mid * 0.01
        lo, hi = mid - offset, mid + offset
        span = hi - lo

    buffer = span * buffer_share
    return lo - buffer, hi + buffer


# -------------------------
# Snapshot
# -------------------------
def compute_indicators(
    candles: Sequence[Candle],
    context: SessionContext,
    now: datetime,
    price: float = 0.0,
) -> IndicatorSnapshot:
    """
    Recompute everything that is a pure function of the window.

    EMAs are read from the context (advanced once per close by advance_emas).
    The AVWAP anchor is re-resolved here and written back to the context.
    """
    candles = list(candles)
    price = price or (candles[-1].c if candles else 0.0)

    emas = dict(context.ema_state)
    support, resistance = support_resistance(candles)

    context.anchor = resolve_anchor(candles, context.anchor)
    anchor_ts = context.anchor.ts if context.anchor is not None else None

    return IndicatorSnapshot(
        emas=emas,
        vwap=compute_vwaps(candles, now),
        support=support,
        resistance=resistance,
        market_phase=market_phase(emas, price),
        session=session_for(now),
        anchor=context.anchor,
        avwap=avwap_series(candles, anchor_ts),
        price_domain=price_domain(candles),
    )
