from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Dict

from scalpdesk.errors import MalformedTickError
from scalpdesk.jobs.dispatcher import TickEvent
from scalpdesk.models.market import Tick
from scalpdesk.providers.base import MarketDataProvider

log = logging.getLogger("ws_ingest")


def _number(msg: Dict, key: str) -> float:
    raw = msg.get(key)
    if raw is None or isinstance(raw, bool):
        raise MalformedTickError(key, raw)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise MalformedTickError(key, raw) from None
    if not math.isfinite(value):
        raise MalformedTickError(key, raw)
    return value


def parse_tick(msg: Dict, symbol: str) -> Tick:
    """
    Wire tick -> Tick.

    {"price": "68000.1", "quantity": "0.02", "timestamp": <epoch ms>, "isMakerSell": bool}
    Raises MalformedTickError when a numeric field is missing or does not parse.
    """
    price = _number(msg, "price")
    quantity = _number(msg, "quantity")
    t_ms = _number(msg, "timestamp")
    try:
        ts = datetime.fromtimestamp(t_ms / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise MalformedTickError("timestamp", msg.get("timestamp")) from None
    return Tick(
        symbol=symbol,
        ts=ts,
        price=price,
        quantity=quantity,
        is_buy=not bool(msg.get("isMakerSell")),
    )


async def ws_ingest_loop(
    provider: MarketDataProvider,
    symbol: str,
    epoch: int,
    submit: Callable[[object], None],
) -> None:
    """
    Background loop:
    - reads wire tick dicts from provider.stream_ticks()
    - converts to Tick dataclass
    - submits a TickEvent tagged with the session epoch to the dispatcher
    """
    skipped = 0
    async for msg in provider.stream_ticks(symbol):
        try:
            tick = parse_tick(msg, symbol)
        except MalformedTickError as e:
            # Skip malformed tick messages; the stream keeps going.
            skipped += 1
            log.debug("Skipping malformed tick symbol=%s (%s) skipped=%d", symbol, e, skipped)
            continue

        submit(TickEvent(epoch=epoch, tick=tick))
