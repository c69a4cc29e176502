"""
Main FastAPI Application

Auction bidding service: proxy bidding, offer/settlement workflow and
auction expiry hooks.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import redis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from sqlalchemy.engine import Engine

from auction_bidding.api import admin, auctions, bids, notifications, settlement
from auction_bidding.core.config import Settings, get_settings
from auction_bidding.core.dependencies import create_container
from auction_bidding.core.logging_config import setup_logging
from auction_bidding.core.metrics import get_metrics
from auction_bidding.infrastructure.database import init_db
from auction_bidding.infrastructure.redis_client import check_redis_connection
from auction_bidding.middleware.tracing import TracingMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    container = app.state.container
    settings = container.settings

    logger.info(f"🚀 Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    init_db(container.engine)

    if check_redis_connection(container.redis):
        logger.info("✅ Redis connected")
    else:
        logger.warning("⚠️  Redis not connected: bids will be refused until it is reachable")

    yield

    logger.info("👋 Shutting down")
    container.redis.close()


def create_app(
    settings: Optional[Settings] = None,
    redis_client: Optional[redis.Redis] = None,
    engine: Optional[Engine] = None
) -> FastAPI:
    """
    Build the application

    Collaborators may be injected (tests pass a fakeredis client and a
    throwaway SQLite engine).
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.state.container = create_container(
        settings=settings,
        redis_client=redis_client,
        engine=engine,
    )

    app.add_middleware(TracingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auctions.router)
    app.include_router(bids.router)
    app.include_router(settlement.router)
    app.include_router(notifications.router)
    app.include_router(admin.router)

    @app.get("/metrics", tags=["monitoring"])
    def metrics():
        """Prometheus metrics"""
        data, content_type = get_metrics()
        return Response(content=data, media_type=content_type)

    @app.get("/", tags=["root"])
    def root():
        """Service info"""
        return {
            "message": f"{settings.APP_NAME} v{settings.APP_VERSION}",
            "status": "running",
            "docs": "/docs",
        }

    return app


app = create_app()
