import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from exam_relay.api.ingest import (
    INGEST_CORS_HEADERS,
    limiter,
    rate_limit_exceeded_handler,
    router as ingest_router,
)
from exam_relay.api.rooms import router as rooms_router
from exam_relay.api.stream import router as stream_router
from exam_relay.config import settings
from exam_relay.engine.live_event_bus import LiveEventBus
from exam_relay.middleware.body_limit import BodyLimitMiddleware

logger = logging.getLogger(__name__)


def create_app(event_bus: LiveEventBus | None = None) -> FastAPI:
    """Build the application and the single event bus both endpoints share."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    bus = event_bus or LiveEventBus(queue_size=settings.subscriber_queue_size)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # end open streams so the server can shut down
        bus.close()

    app = FastAPI(
        title=settings.app_name,
        description="Live exam leaderboard relay",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.event_bus = bus
    # same limiter as the ingest router, or the middleware would skip its route limits
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        BodyLimitMiddleware,
        max_body_bytes=settings.max_body_bytes,
        extra_headers=INGEST_CORS_HEADERS,
    )
    app.add_middleware(SlowAPIMiddleware)

    app.include_router(ingest_router)
    app.include_router(stream_router)
    app.include_router(rooms_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    logger.info(f"{settings.app_name} ready")
    return app


app = create_app()
