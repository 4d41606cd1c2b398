from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from scalpdesk.analysis.bridge import AnalysisBridge
from scalpdesk.analysis.mock import mock_trade_plan
from scalpdesk.candles.builder import CandleBuilder
from scalpdesk.candles.store import MarketDataStore, utcnow
from scalpdesk.config import Settings
from scalpdesk.context import SessionContext
from scalpdesk.indicators.avwap import ANCHOR_KINDS
from scalpdesk.indicators.engine import compute_indicators
from scalpdesk.jobs.candle_timer import candle_timer_loop
from scalpdesk.jobs.dispatcher import Dispatcher, TickEvent
from scalpdesk.jobs.order_flow_refresher import order_flow_loop
from scalpdesk.jobs.ws_ingest import ws_ingest_loop
from scalpdesk.models.analysis import TradeConfig, TradePlan
from scalpdesk.models.market import Anchor, Tick
from scalpdesk.providers.base import MarketDataProvider
from scalpdesk.providers.loader import get_provider

log = logging.getLogger("desk")

ProviderFactory = Callable[[Settings, str], MarketDataProvider]


class Desk:
    """
    Owns the market state for the tracked instrument and the jobs feeding it.

    - context / store / builder / dispatcher: the market-data pipeline
    - bridge: outstanding analysis request, guarded by the context epoch
    - feed tasks: tick ingest, candle timer, order-flow refresher
    """

    def __init__(
        self,
        settings: Settings,
        provider_factory: ProviderFactory = get_provider,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings
        self.provider_factory = provider_factory
        self.clock = clock

        self.context = SessionContext(asset=settings.default_asset)
        self.store = MarketDataStore(max_history=settings.max_history)
        self.builder = CandleBuilder(self.store, self.context, price_step=settings.price_step)
        self.dispatcher = Dispatcher(
            self.store, self.context, self.builder, settings.candle_interval_seconds
        )
        self.bridge = AnalysisBridge(self.context, timeout_seconds=settings.analysis_timeout_seconds)
        self.trade_config = TradeConfig(
            asset=settings.default_asset,
            account_balance=settings.account_balance,
            leverage=settings.leverage,
            risk_percentage=settings.risk_percentage,
        )

        self.provider: Optional[MarketDataProvider] = None
        self._feed_tasks: List[asyncio.Task] = []
        self._consumer: Optional[asyncio.Task] = None
        # Serialises start / stop / switch so only one feed is ever live.
        self._lifecycle = asyncio.Lock()

    @property
    def asset(self) -> str:
        return self.context.asset

    # -------------------------
    # Lifecycle
    # -------------------------
    async def start(self) -> None:
        async with self._lifecycle:
            if self._consumer is None:
                self._consumer = asyncio.create_task(self.dispatcher.run())
            if self.provider is None:
                await self._start_feed()

    async def stop(self) -> None:
        async with self._lifecycle:
            await self._stop_feed()
            if self._consumer is not None:
                self._consumer.cancel()
                await asyncio.gather(self._consumer, return_exceptions=True)
                self._consumer = None

    async def switch_instrument(self, asset: str) -> int:
        """
        Tear down the current feed and timers, start a fresh session for
        `asset`, then bring the feed back up. Anything still queued or in
        flight for the old instrument carries the old epoch and is dropped.
        """
        asset = asset.strip().upper()
        async with self._lifecycle:
            await self._stop_feed()

            epoch = self.context.reset(asset)
            self.store.reset()
            self.bridge.reset()
            self.trade_config = self.trade_config.model_copy(update={"asset": asset})
            log.info("Switched instrument asset=%s epoch=%d", asset, epoch)

            await self._start_feed()
        return epoch

    async def _start_feed(self) -> None:
        asset = self.context.asset
        epoch = self.context.epoch
        self.provider = self.provider_factory(self.settings, asset)

        seed = getattr(self.provider, "seed_history", None)
        if callable(seed):
            self.seed(seed(self.clock(), self.settings.max_history))
        else:
            self.refresh_indicators()

        submit = self.dispatcher.submit
        self._feed_tasks = [
            asyncio.create_task(ws_ingest_loop(self.provider, asset, epoch, submit)),
            asyncio.create_task(
                candle_timer_loop(self.settings.candle_interval_seconds, epoch, submit)
            ),
            asyncio.create_task(
                order_flow_loop(
                    self.provider,
                    self.store,
                    asset,
                    epoch,
                    submit,
                    refresh_seconds=self.settings.order_flow_refresh_seconds,
                )
            ),
        ]
        log.info("Feed started asset=%s provider=%s", asset, self.provider.__class__.__name__)

    async def _stop_feed(self) -> None:
        tasks, self._feed_tasks = self._feed_tasks, []
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        provider, self.provider = self.provider, None
        if provider is not None:
            await provider.close()

    # -------------------------
    # Writes outside the feed
    # -------------------------
    def seed(self, candles) -> None:
        """Load a starting history (simulated instruments)."""
        self.store.replace_history(list(candles))
        if candles:
            self.store.price = self.store.history[-1].c
        self.refresh_indicators()

    def refresh_indicators(self) -> None:
        self.store.indicators = compute_indicators(
            self.store.get_history(), self.context, self.clock(), self.store.price
        )

    def submit_tick(self, price: float, quantity: float, is_buy: bool = True) -> None:
        tick = Tick(
            symbol=self.asset,
            ts=self.clock(),
            price=price,
            quantity=quantity,
            is_buy=is_buy,
        )
        self.dispatcher.submit(TickEvent(epoch=self.context.epoch, tick=tick))

    def set_anchor(self, kind: str) -> Optional[Anchor]:
        """User anchor action: session start, window high or window low."""
        pick = ANCHOR_KINDS.get(kind)
        if pick is None:
            raise ValueError(f"Unknown anchor kind '{kind}'. Expected: {', '.join(ANCHOR_KINDS)}")

        anchor = pick(self.store.get_history())
        if anchor is not None:
            self.context.anchor = anchor
            self.refresh_indicators()
        return anchor

    def update_trade_config(self, **changes) -> TradeConfig:
        data = self.trade_config.model_dump()
        data.update({k: v for k, v in changes.items() if v is not None})
        self.trade_config = TradeConfig.model_validate(data)
        return self.trade_config

    def mock_plan(self, rng=None) -> TradePlan:
        price = self.store.price or (self.store.last_close() or 0.0)
        return mock_trade_plan(
            price,
            self.store.indicators.session,
            self.store.liquidations,
            self.trade_config,
            rng=rng,
        )
