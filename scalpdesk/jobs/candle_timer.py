from __future__ import annotations

import asyncio
from typing import Callable

from scalpdesk.candles.store import utcnow
from scalpdesk.jobs.dispatcher import TimerEvent


async def candle_timer_loop(interval_seconds: float, epoch: int, submit: Callable[[object], None]) -> None:
    """
    Background loop:
    emits one TimerEvent per interval, whether or not ticks arrived.
    The next deadline is computed from the previous one so closes stay on a
    fixed cadence even when the loop wakes up late.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + interval_seconds

    while True:
        await asyncio.sleep(max(0.0, deadline - loop.time()))
        submit(TimerEvent(epoch=epoch, now=utcnow()))
        deadline += interval_seconds
