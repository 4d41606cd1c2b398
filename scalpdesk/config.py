# scalpdesk/config.py
import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Loads variables from a local .env file into environment variables (dev only).
load_dotenv()

# Assets with a public Binance aggTrade stream; everything else is simulated.
BINANCE_ASSETS = ("BTCUSDT", "ETHUSDT", "SOLUSDT")


@dataclass(frozen=True)
class Settings:
    # App config
    app_env: str
    log_level: str
    feed: str
    default_asset: str

    # Candle / indicator config
    candle_interval_seconds: float
    price_step: float
    max_history: int
    order_flow_refresh_seconds: float

    # Provider config (Binance)
    binance_ws_url: str
    binance_rest_url: str
    binance_futures_url: str
    http_timeout_seconds: float

    # Analysis bridge
    analysis_timeout_seconds: float

    # Trader config
    account_balance: float
    leverage: float
    risk_percentage: float


def _float(name: str, default: str) -> float:
    raw = os.getenv(name, default).strip()
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name}={raw!r} is not a number. Fix it in .env") from None


def _int(name: str, default: str) -> int:
    raw = os.getenv(name, default).strip()
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name}={raw!r} is not an integer. Fix it in .env") from None


def get_settings() -> Settings:
    """
    Reads env vars and returns a Settings object.
    """
    max_history = _int("MAX_HISTORY", "100")
    if max_history < 1:
        raise RuntimeError("MAX_HISTORY must be >= 1")

    interval = _float("CANDLE_INTERVAL_SECONDS", "5")
    if interval <= 0:
        raise RuntimeError("CANDLE_INTERVAL_SECONDS must be > 0")

    price_step = _float("PRICE_STEP", "0.5")
    if price_step <= 0:
        raise RuntimeError("PRICE_STEP must be > 0")

    return Settings(
        app_env=os.getenv("APP_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        feed=os.getenv("FEED", "AUTO").strip().upper(),
        default_asset=os.getenv("DEFAULT_ASSET", "BTCUSDT").strip().upper(),
        candle_interval_seconds=interval,
        price_step=price_step,
        max_history=max_history,
        order_flow_refresh_seconds=_float("ORDER_FLOW_REFRESH_SECONDS", "5"),
        binance_ws_url=os.getenv("BINANCE_WS_URL", "wss://stream.binance.com:9443/ws").rstrip("/"),
        binance_rest_url=os.getenv("BINANCE_REST_URL", "https://api.binance.com").rstrip("/"),
        binance_futures_url=os.getenv("BINANCE_FUTURES_URL", "https://fapi.binance.com").rstrip("/"),
        http_timeout_seconds=_float("HTTP_TIMEOUT_SECONDS", "10"),
        analysis_timeout_seconds=_float("ANALYSIS_TIMEOUT_SECONDS", "60"),
        account_balance=_float("ACCOUNT_BALANCE", "10000"),
        leverage=_float("LEVERAGE", "10"),
        risk_percentage=_float("RISK_PERCENTAGE", "1"),
    )
