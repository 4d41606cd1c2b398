from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from scalpdesk.indicators.sessions import session_for
from scalpdesk.models.market import Anchor, Candle


@dataclass(frozen=True)
class AvwapPoint:
    start_ts: datetime
    avwap: Optional[float]
    upper_band: Optional[float]
    lower_band: Optional[float]


# -------------------------
# Anchors
# -------------------------
def session_anchor(candles: List[Candle]) -> Optional[Anchor]:
    """First candle in the window that belongs to the latest candle's session."""
    if not candles:
        return None
    current = session_for(candles[-1].start_ts)
    for c in candles:
        if session_for(c.start_ts) == current:
            return Anchor(ts=c.start_ts, label=f"{current} Session Start")
    return None


def high_anchor(candles: List[Candle]) -> Optional[Anchor]:
    if not candles:
        return None
    best = candles[0]
    for c in candles[1:]:
        if c.h > best.h:
            best = c
    return Anchor(ts=best.start_ts, label="24h High")


def low_anchor(candles: List[Candle]) -> Optional[Anchor]:
    if not candles:
        return None
    best = candles[0]
    for c in candles[1:]:
        if c.l < best.l:
            best = c
    return Anchor(ts=best.start_ts, label="24h Low")


ANCHOR_KINDS = {
    "session": session_anchor,
    "high": high_anchor,
    "low": low_anchor,
}


def resolve_anchor(candles: List[Candle], anchor: Optional[Anchor]) -> Optional[Anchor]:
    """
    Keep `anchor` while its candle is still in the window.

    Falls back to the current session start when there is no anchor yet, when
    the anchor candle has been evicted from the window, or when no candle
    starts at or after the anchor.
    """
    if not candles:
        return anchor
    if anchor is None:
        return session_anchor(candles)
    if anchor.ts < candles[0].start_ts:
        return session_anchor(candles)
    if not any(c.start_ts >= anchor.ts for c in candles):
        return session_anchor(candles)
    return anchor


# -------------------------
# AVWAP + bands
# -------------------------
def avwap_series(candles: List[Candle], anchor_ts: Optional[datetime]) -> List[AvwapPoint]:
    """
    Anchored VWAP with volume-weighted standard deviation bands.

    Accumulation starts at the first candle with start_ts >= anchor_ts.
    Candles before that (or all of them when there is no anchor) get None.
    """
    empty = [AvwapPoint(c.start_ts, None, None, None) for c in candles]
    if anchor_ts is None:
        return empty

    anchor_index = next((i for i, c in enumerate(candles) if c.start_ts >= anchor_ts), None)
    if anchor_index is None:
        return empty

    out: List[AvwapPoint] = empty[:anchor_index]
    cum_pv = 0.0
    cum_v = 0.0
    cum_var = 0.0
    for c in candles[anchor_index:]:
        tp = c.typical_price
        cum_pv += tp * c.v
        cum_v += c.v
        avwap = cum_pv / cum_v if cum_v > 0 else 0.0
        cum_var += (tp - avwap) ** 2 * c.v
        variance = cum_var / cum_v if cum_v > 0 else 0.0
        stdev = math.sqrt(variance)
        out.append(AvwapPoint(c.start_ts, avwap, avwap + stdev, avwap - stdev))
    return out
