from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class TradeConfig(BaseModel):
    """
    Trader configuration consumed by position sizing and the market summary.

    risk_percentage:
      percent of account balance risked per trade (1 = 1%)
    """

    asset: str
    account_balance: float = Field(gt=0)
    leverage: float = Field(gt=0)
    risk_percentage: float = Field(ge=0)


class TradePlan(BaseModel):
    """
    Structured trade plan returned by the external analysis service.

    Only type/shape is checked here. The service replies with camelCase keys,
    so each field also accepts its camelCase alias.
    """

    model_config = ConfigDict(populate_by_name=True)

    trade_direction: Literal["LONG", "SHORT", "NEUTRAL"] = Field(alias="tradeDirection")
    speculative_direction: Optional[Literal["LONG", "SHORT"]] = Field(
        default=None, alias="speculativeDirection"
    )
    key_observation: str = Field(alias="keyObservation")
    entry_price: float = Field(alias="entryPrice")
    stop_loss: float = Field(alias="stopLoss")
    take_profit: float = Field(alias="takeProfit")
    position_size: float = Field(alias="positionSize")
    confidence: Literal["Low", "Medium", "High"]
    next_actionable_signal: str = Field(default="", alias="nextActionableSignal")
    stop_loss_justification: str = Field(default="", alias="stopLossJustification")
    take_profit_justification: str = Field(default="", alias="takeProfitJustification")
