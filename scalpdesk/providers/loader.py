from scalpdesk.config import BINANCE_ASSETS, Settings
from scalpdesk.providers.base import MarketDataProvider
from scalpdesk.providers.binance import BinanceProvider
from scalpdesk.providers.simulated import SimulatedProvider


def get_provider(settings: Settings, asset: str) -> MarketDataProvider:
    """
    Provider loader / factory.

    Reads FEED from config and returns the provider for `asset`.
    AUTO picks Binance for assets with a public stream and simulates the rest.
    This is the single place that knows about concrete providers.
    """
    feed = settings.feed.strip().upper()
    asset = asset.upper()

    if feed == "AUTO":
        feed = "BINANCE" if asset in BINANCE_ASSETS else "SIMULATED"

    if feed == "BINANCE":
        return BinanceProvider(settings)
    if feed == "SIMULATED":
        return SimulatedProvider(asset, candle_interval_seconds=settings.candle_interval_seconds)

    raise ValueError(f"Unknown FEED='{settings.feed}'. Expected: AUTO, BINANCE, SIMULATED")
