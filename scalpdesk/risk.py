from __future__ import annotations

from typing import Dict, Optional


def risk_amount(account_balance: float, risk_percentage: float) -> float:
    """Dollar amount risked per trade."""
    return account_balance * (risk_percentage / 100.0)


def position_size(risk: float, entry: float, stop: float) -> float:
    """Size so that a stop-out loses exactly `risk`. 0 when entry == stop."""
    distance = abs(entry - stop)
    if distance == 0:
        return 0.0
    return risk / distance


def price_decimals(price: float) -> int:
    return 2 if price > 100 else 4


def trade_plan_metrics(
    units: float,
    entry: float,
    stop: float,
    take_profit: Optional[float],
    leverage: float,
) -> Dict[str, Optional[float]]:
    """
    Dollar and distance figures for a sized trade.

    margin = units * entry / leverage
    stop / take-profit distances are in price units ("pips"), amounts are
    distance * units. Take-profit fields are None when no target is given.
    """
    if leverage <= 0:
        raise ValueError("leverage must be > 0")
    stop_distance = abs(entry - stop)
    tp_distance = abs(take_profit - entry) if take_profit is not None else None
    return {
        "units": units,
        "margin": units * entry / leverage,
        "stop_loss_distance": stop_distance,
        "stop_loss_amount": stop_distance * units,
        "take_profit_distance": tp_distance,
        "take_profit_amount": tp_distance * units if tp_distance is not None else None,
    }
