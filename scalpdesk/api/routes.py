from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, HTTPException, Query

from scalpdesk.analysis.summary import build_market_summary
from scalpdesk.api.serialize import (
    anchor_dict,
    avwap_list,
    candle_dict,
    indicators_dict,
    iso,
    open_candle_dict,
    profile_dict,
    snapshot as build_snapshot,
)
from scalpdesk.indicators.profile import profiles_for
from scalpdesk.orderflow.depth import depth_ladder
from scalpdesk.risk import position_size, risk_amount, trade_plan_metrics
from scalpdesk.state import desk

router = APIRouter()

# Max age before a field is reported stale.
FRESHNESS_SECONDS = {
    "candles": 30,
    "order_flow": 30,
}


@router.get("/snapshot")
def snapshot():
    """
    Snapshot v1:
    - everything the dashboard draws, as of now
    - freshness flags per field
    """
    data = build_snapshot(desk)
    data["fresh"] = {
        name: desk.store.is_fresh(name, max_age) for name, max_age in FRESHNESS_SECONDS.items()
    }
    return data


@router.get("/candles")
def candles(limit: int = Query(100, ge=1, description="How many closed candles to return")):
    history = desk.store.get_history()[-limit:]
    return {
        "asset": desk.asset,
        "candles": [candle_dict(c) for c in history],
        "current": open_candle_dict(desk.store.current),
    }


@router.get("/indicators")
def indicators():
    return {"asset": desk.asset, **indicators_dict(desk.store.indicators)}


@router.get("/profile")
def profile(limit: int = Query(40, ge=1, description="How many recent candles to profile")):
    return {
        "asset": desk.asset,
        "profiles": [profile_dict(p) for p in profiles_for(desk.store.get_history(), limit)],
    }


@router.get("/avwap")
def avwap():
    ind = desk.store.indicators
    return {"asset": desk.asset, "anchor": anchor_dict(ind.anchor), "series": avwap_list(ind.avwap)}


@router.post("/avwap/anchor")
def set_anchor(kind: str = Query("session", description="session, high or low")):
    try:
        anchor = desk.set_anchor(kind)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if anchor is None:
        raise HTTPException(status_code=404, detail="No candles to anchor to yet")
    return {"ok": True, "anchor": anchor_dict(anchor)}


@router.get("/orderbook/depth")
def orderbook_depth(levels: int = Query(15, ge=1, le=100, description="Levels per side")):
    return {"asset": desk.asset, **depth_ladder(desk.store.order_book, levels)}


@router.post("/instrument")
async def switch_instrument(asset: str = Query(..., description="Instrument, e.g. BTCUSDT or XAUUSD")):
    if not asset.strip():
        raise HTTPException(status_code=400, detail="asset must not be empty")
    epoch = await desk.switch_instrument(asset)
    return {"ok": True, "asset": desk.asset, "epoch": epoch}


@router.post("/config")
def update_config(
    account_balance: Optional[float] = Query(None, gt=0),
    leverage: Optional[float] = Query(None, gt=0),
    risk_percentage: Optional[float] = Query(None, ge=0),
):
    cfg = desk.update_trade_config(
        account_balance=account_balance, leverage=leverage, risk_percentage=risk_percentage
    )
    return {"ok": True, "config": cfg.model_dump()}


@router.get("/analysis/summary")
def analysis_summary():
    """
    Issues a request ticket and returns the market summary for it.
    The caller posts the service's plan back with the same ticket ids.
    """
    ticket = desk.bridge.issue()
    return {
        "ticket": {"epoch": ticket.epoch, "request_id": ticket.request_id, "issued_at": iso(ticket.issued_at)},
        "summary": build_market_summary(desk.store, desk.context, desk.trade_config),
    }


@router.post("/analysis/result")
def analysis_result(
    epoch: int = Query(...),
    request_id: int = Query(...),
    plan: dict = Body(...),
):
    ticket = desk.bridge.ticket_for(epoch, request_id)
    accepted = desk.bridge.accept(ticket, plan)
    return {"accepted": accepted is not None, **desk.bridge.as_dict()}


@router.post("/analysis/error")
def analysis_error(
    epoch: int = Query(...),
    request_id: int = Query(...),
    message: str = Query(...),
    rate_limited: bool = Query(False),
):
    ticket = desk.bridge.ticket_for(epoch, request_id)
    recorded = desk.bridge.report_error(ticket, message, rate_limited=rate_limited)
    return {"recorded": recorded, **desk.bridge.as_dict()}


@router.get("/analysis")
def analysis_status():
    desk.bridge.expire()
    return desk.bridge.as_dict()


@router.get("/analysis/mock")
def analysis_mock():
    if not desk.store.price and desk.store.last_close() is None:
        raise HTTPException(status_code=409, detail="Not enough market data yet")
    return desk.mock_plan().model_dump()


@router.get("/risk/position_size")
def risk_position_size(
    entry: float = Query(..., gt=0),
    stop: float = Query(..., gt=0),
    take_profit: Optional[float] = Query(None, gt=0),
):
    cfg = desk.trade_config
    risk = risk_amount(cfg.account_balance, cfg.risk_percentage)
    units = position_size(risk, entry, stop)
    return {
        "risk_amount": risk,
        "position_size": units,
        "leverage": cfg.leverage,
        **trade_plan_metrics(units, entry, stop, take_profit, cfg.leverage),
    }


@router.post("/dev/simulate_tick")
def dev_simulate_tick(
    price: float = Query(..., gt=0, description="Tick price"),
    quantity: float = Query(1.0, gt=0, description="Tick size/volume"),
    side: str = Query("BUY", description="BUY or SELL aggressor"),
):
    """
    Dev-only helper:
    Enqueues ONE tick for the tracked instrument.
    """
    side = side.upper()
    if side not in ("BUY", "SELL"):
        raise HTTPException(status_code=400, detail="side must be BUY or SELL")
    desk.submit_tick(price=price, quantity=quantity, is_buy=side == "BUY")
    return {"ok": True, "queued": desk.dispatcher.queue.qsize()}
