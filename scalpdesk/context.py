from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from scalpdesk.models.market import Anchor

EMA_PERIODS: Tuple[int, ...] = (9, 21, 50)


@dataclass
class SessionContext:
    """
    Per-instrument mutable state that outlives a single candle.

    epoch:
      bumped on every instrument switch; events and analysis tickets carry the
      epoch they were produced under and are dropped if it no longer matches
    cumulative_delta:
      running sum of signed trade volume (CVD) across candles
    ema_state:
      last EMA per period; 0.0 means "not warmed up yet"
    anchor:
      current AVWAP anchor (None until first resolved)
    """

    asset: str
    epoch: int = 0
    cumulative_delta: float = 0.0
    ema_state: Dict[int, float] = field(default_factory=lambda: {p: 0.0 for p in EMA_PERIODS})
    anchor: Optional[Anchor] = None

    def reset(self, asset: str) -> int:
        """Start a fresh session for `asset`. Returns the new epoch."""
        self.asset = asset
        self.epoch += 1
        self.cumulative_delta = 0.0
        self.ema_state = {p: 0.0 for p in EMA_PERIODS}
        self.anchor = None
        return self.epoch

    def is_current(self, epoch: int) -> bool:
        return epoch == self.epoch
