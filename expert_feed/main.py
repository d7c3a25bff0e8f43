"""Expert Feed Service - Live question feed for knowledge providers"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

import sentry_sdk
from fastapi import FastAPI, HTTPException

from expert_feed.config import settings
from expert_feed.models import (
    FeedItem,
    FeedResponse,
    HealthResponse,
    ReloadResponse,
    StatsResponse,
)
from expert_feed.services import (
    FeedReconciler,
    FeedState,
    FeedUnavailableError,
    MarketplaceAPIClient,
    SocketIOChannel,
)
from expert_feed.services.matching import score

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize services (will be set in lifespan)
api_client: MarketplaceAPIClient | None = None
channel: SocketIOChannel | None = None
feed_reconciler: FeedReconciler | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan manager for startup/shutdown tasks"""
    global api_client, channel, feed_reconciler

    # Initialize Sentry
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=1.0,
            debug=settings.debug,
        )

    logger.info(
        f"Starting up {settings.service_name}({settings.service_version}) service..."
    )

    api_client = MarketplaceAPIClient(
        base_url=settings.marketplace_api_url,
        token=settings.marketplace_api_token,
        timeout=settings.marketplace_api_timeout,
    )
    channel = SocketIOChannel(
        url=settings.socket_url, token=settings.marketplace_api_token
    )

    try:
        await channel.open()
    except Exception as e:
        # Rooms joined while closed are sent once /feed/reload connects
        logger.error(f"Failed to open realtime channel: {e}")

    feed_reconciler = FeedReconciler(api_client, channel)
    try:
        await feed_reconciler.start()
        logger.info("Expert feed initialized successfully")
    except FeedUnavailableError as e:
        logger.error(f"Expert feed unavailable at startup: {e}")

    try:
        yield
    finally:
        logger.info(
            f"Shutting down {settings.service_name}({settings.service_version}) service..."
        )
        await feed_reconciler.teardown()
        await channel.close()
        await api_client.close()


# Create FastAPI app
app = FastAPI(
    title="Expert Feed",
    description="Live feed of marketplace questions matched to a provider's expertise",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/")
async def root():
    """Root endpoint - service status"""
    return {
        "service": settings.service_name,
        "status": "running",
        "version": settings.service_version,
        "timestamp": datetime.utcnow().isoformat(),
        "description": "Live feed of marketplace questions matched to a provider's expertise",
    }


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    """Health check endpoint"""
    return HealthResponse(status="ok")


@app.get("/feed", response_model=FeedResponse)
async def get_feed(q: str | None = None) -> FeedResponse:
    """Current ranked feed, optionally filtered by a search query"""
    if not feed_reconciler or feed_reconciler.state != FeedState.READY:
        raise HTTPException(status_code=503, detail="Feed unavailable")

    profile = feed_reconciler.profile
    items = [
        FeedItem(question=question, score=score(question, profile))
        for question in feed_reconciler.search(q)
    ]

    return FeedResponse(
        state=feed_reconciler.state.value,
        items=items,
        total=len(items),
        query=q,
    )


@app.post("/feed/reload", response_model=ReloadResponse)
async def reload_feed() -> ReloadResponse:
    """Tear down the current session and load the feed again"""
    if not feed_reconciler:
        raise HTTPException(status_code=503, detail="Service not initialized")

    if channel and not channel.is_open:
        try:
            await channel.open()
        except Exception as e:
            logger.error(f"Failed to reopen realtime channel: {e}")

    try:
        questions = await feed_reconciler.reload()
    except FeedUnavailableError as e:
        logger.error(f"Feed reload failed: {e}")
        raise HTTPException(status_code=503, detail="Feed unavailable")

    return ReloadResponse(
        ok=True,
        message="Feed reloaded",
        total=len(questions),
        topics=feed_reconciler.topics,
    )


@app.get("/debug/stats", response_model=StatsResponse)
async def debug_stats() -> StatsResponse:
    """Debug endpoint to show feed statistics"""
    return StatsResponse(
        service=settings.service_name,
        feed_stats=feed_reconciler.get_feed_stats() if feed_reconciler else {},
        channel_connected=bool(channel and channel.is_open),
        marketplace_api_url=settings.marketplace_api_url,
    )


if __name__ == "__main__":
    import uvicorn

    logger.info(
        f"Starting {settings.service_name}({settings.service_version}) on "
        f"{settings.expert_feed_host}:{settings.expert_feed_port}"
    )
    uvicorn.run(
        "expert_feed.main:app",
        host=settings.expert_feed_host,
        port=settings.expert_feed_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
