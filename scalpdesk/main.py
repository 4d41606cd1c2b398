import logging

from fastapi import FastAPI

from scalpdesk.api.routes import router as api_router
from scalpdesk.state import desk, settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("websockets").setLevel(logging.WARNING)

app = FastAPI(title="Scalpdesk API", version="0.1.0")
app.include_router(api_router)


@app.on_event("startup")
async def _startup():
    # Dispatcher + feed jobs for the default asset:
    # - tick ingest (live WS or simulated)
    # - candle timer (fixed-interval closes)
    # - order-flow refresher (book / liquidations / OI)
    await desk.start()


@app.on_event("shutdown")
async def _shutdown():
    await desk.stop()


@app.get("/health")
def health():
    return {
        "status": "ok",
        "app_env": settings.app_env,
        "feed_config": settings.feed,
        "asset": desk.asset,
        "provider_loaded": desk.provider.__class__.__name__ if desk.provider else None,
        "queue_depth": desk.dispatcher.queue.qsize(),
        "stale_events_dropped": desk.dispatcher.dropped_stale,
    }
