"""FastAPI application factory.

create_app() builds the app and the one BroadcastHub it owns
(app.state.hub). The lifespan wires the optional Redis relay at startup
and tears everything down at shutdown.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cafe_orders import __version__
from cafe_orders.api import api_router
from cafe_orders.config import settings
from cafe_orders.realtime.hub import BroadcastHub

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "cafe.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    redis = None
    relay = None
    if settings.redis_url:
        from cafe_orders.realtime.pubsub import RedisRelay, connect_redis

        try:
            redis = await connect_redis(settings.redis_url)
            relay = RedisRelay(redis, app.state.hub)
            await relay.start()
            logger.info("cafe.redis_connected", url=settings.redis_url)
        except Exception as e:
            # Redis is optional: without it, fan-out stays in this process.
            logger.warning("cafe.redis_unavailable", error=str(e))
            relay = None

    yield

    logger.info("cafe.shutdown")

    if relay is not None:
        await relay.stop()
    if redis is not None:
        await redis.aclose()

    await app.state.hub.close()

    from cafe_orders.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Café Orders",
        description="Café ordering backend with real-time order updates",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.hub = BroadcastHub(max_pending=settings.ws_max_pending)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration:
    # RequestId → Security → CORS → handler

    from cafe_orders.middleware.request_id import RequestIdMiddleware
    from cafe_orders.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)

    from cafe_orders.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: cafe_orders.main:app)
app = create_app()
