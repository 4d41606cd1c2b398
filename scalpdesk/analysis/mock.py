from __future__ import annotations

import random
from typing import Optional

from scalpdesk.indicators.sessions import ASIA
from scalpdesk.models.analysis import TradeConfig, TradePlan
from scalpdesk.models.market import LiquidationLevels
from scalpdesk.risk import position_size, price_decimals, risk_amount

STOP_DISTANCE_SHARE = 0.001
REWARD_RATIO = 1.5
SL_NOTE = "Mock SL is placed based on a standard volatility factor from the current price."
TP_NOTE = "Mock TP targets a 1.5:1 risk/reward ratio, a common scalping objective."


def mock_trade_plan(
    price: float,
    session: str,
    liquidations: LiquidationLevels,
    config: TradeConfig,
    rng: Optional[random.Random] = None,
) -> TradePlan:
    """
    Fallback plan used while the analysis service is rate limited.

    Asia sessions are NEUTRAL with a speculative direction and two breakout
    plans; otherwise a random LONG/SHORT sized to the configured risk.
    """
    rng = rng or random.Random()
    decimals = price_decimals(price)
    risk = risk_amount(config.account_balance, config.risk_percentage)
    sl_distance = price * STOP_DISTANCE_SHARE
    tp_distance = sl_distance * REWARD_RATIO
    size = position_size(risk, price, price - sl_distance)

    direction = "NEUTRAL" if session == ASIA else ("LONG" if rng.random() > 0.5 else "SHORT")

    if direction == "NEUTRAL":
        speculative = "LONG" if rng.random() > 0.5 else "SHORT"
        if speculative == "LONG":
            stop, target = price - sl_distance, price + tp_distance
            observation = "Market is consolidating, but simulated order flow suggests a potential upward break."
        else:
            stop, target = price + sl_distance, price - tp_distance
            observation = "Range-bound market, but minor rejection at resistance hints at a possible drop."

        def fmt(x: float) -> str:
            return f"{x:.{decimals}f}"

        signal = (
            f"Long breakout: Enter at {fmt(price * 1.002)}, SL at {fmt(price * 0.999)}, "
            f"TP at {fmt(price * 1.005)}. Short breakdown: Enter at {fmt(price * 0.998)}, "
            f"SL at {fmt(price * 1.001)}, TP at {fmt(price * 0.995)}."
        )
        return TradePlan(
            trade_direction="NEUTRAL",
            speculative_direction=speculative,
            key_observation=observation,
            entry_price=round(price, decimals),
            stop_loss=round(stop, decimals),
            take_profit=round(target, decimals),
            position_size=size,
            confidence="Low",
            next_actionable_signal=signal,
            stop_loss_justification=SL_NOTE,
            take_profit_justification=TP_NOTE,
        )

    if direction == "LONG":
        stop, target = price - sl_distance, price + tp_distance
        nearest = liquidations.shorts[0].price if liquidations.shorts else target
        observation = (
            f"In the {session} session, price is showing bullish momentum towards the "
            f"short liquidation level at ${nearest:.2f}."
        )
    else:
        # The short fallback targets 1:1.
        stop, target = price + sl_distance, price - sl_distance
        nearest = liquidations.longs[0].price if liquidations.longs else target
        observation = (
            f"During the volatile {session} session, price is showing bearish pressure towards "
            f"the long liquidation level at ${nearest:.2f}."
        )

    return TradePlan(
        trade_direction=direction,
        key_observation=observation,
        entry_price=round(price, decimals),
        stop_loss=round(stop, decimals),
        take_profit=round(target, decimals),
        position_size=size,
        confidence="Medium",
        next_actionable_signal="Signal derived from simulated price action.",
        stop_loss_justification=SL_NOTE,
        take_profit_justification=TP_NOTE,
    )
