from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

from scalpdesk.models.market import Candle

VALUE_AREA_SHARE = 0.7


@dataclass(frozen=True)
class CandleProfile:
    """
    Volume profile of one candle.

    poc: price bucket with the most volume
    value_area_low / value_area_high: contiguous range holding >= 70% of volume
    max_volume: volume at the POC (1 when the candle has no footprint)
    """
    start_ts: datetime
    poc: float
    value_area_low: float
    value_area_high: float
    max_volume: float


def volume_profile(candle: Candle) -> CandleProfile:
    """
    POC + value area from a candle's footprint.

    POC ties go to the first bucket in footprint order, i.e. the bucket that
    traded first during the candle. The value area grows out from the POC one
    level at a time, taking the level above only when it holds strictly more
    volume than the level below.
    """
    footprint = candle.footprint
    if not footprint:
        return CandleProfile(
            start_ts=candle.start_ts,
            poc=candle.c,
            value_area_low=candle.l,
            value_area_high=candle.h,
            max_volume=1.0,
        )

    total = sum(fp.total for fp in footprint)
    target = total * VALUE_AREA_SHARE

    poc = footprint[0]
    for fp in footprint[1:]:
        if fp.total > poc.total:
            poc = fp

    by_price = sorted(footprint, key=lambda fp: fp.price, reverse=True)
    poc_index = next(i for i, fp in enumerate(by_price) if fp.price == poc.price)

    area_volume = poc.total
    area_high = poc.price
    area_low = poc.price
    above = poc_index - 1
    below = poc_index + 1

    while area_volume < target and (above >= 0 or below < len(by_price)):
        above_vol = by_price[above].total if above >= 0 else -1.0
        below_vol = by_price[below].total if below < len(by_price) else -1.0

        if above_vol > below_vol:
            area_volume += above_vol
            area_high = by_price[above].price
            above -= 1
        elif below_vol > -1.0:
            area_volume += below_vol
            area_low = by_price[below].price
            below += 1
        else:
            break

    max_volume = max(fp.total for fp in footprint)
    return CandleProfile(
        start_ts=candle.start_ts,
        poc=poc.price,
        value_area_low=area_low,
        value_area_high=area_high,
        max_volume=max_volume if max_volume > 0 else 1.0,
    )


def profiles_for(candles: List[Candle], limit: int = 40) -> List[CandleProfile]:
    return [volume_profile(c) for c in candles[-limit:]]
