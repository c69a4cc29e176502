"""
FastAPI Dependencies

Services are built once per process by `create_container()` and stored on
`app.state.container`; handlers receive them through the functions below.
"""
from dataclasses import dataclass
from typing import Optional

import redis
from fastapi import Query, Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from auction_bidding.core.config import Settings, get_settings
from auction_bidding.infrastructure.database import create_session_factory, get_engine
from auction_bidding.infrastructure.lock import AuctionLock
from auction_bidding.infrastructure.queue import NotificationQueue, ExpiryJobQueue
from auction_bidding.infrastructure.redis_client import create_redis_client
from auction_bidding.services import (
    AuctionService,
    BidService,
    NotificationDispatcher,
    SettlementService,
)


@dataclass
class ServiceContainer:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    redis: redis.Redis
    lock: AuctionLock
    notification_queue: NotificationQueue
    expiry_queue: ExpiryJobQueue
    dispatcher: NotificationDispatcher
    auction_service: AuctionService
    bid_service: BidService
    settlement_service: SettlementService


def create_container(
    settings: Optional[Settings] = None,
    redis_client: Optional[redis.Redis] = None,
    engine: Optional[Engine] = None
) -> ServiceContainer:
    """Wire infrastructure and services for one process"""
    settings = settings or get_settings()
    redis_client = redis_client or create_redis_client(settings)
    engine = engine or get_engine()

    lock = AuctionLock(redis_client, settings)
    notification_queue = NotificationQueue(redis_client, settings)
    expiry_queue = ExpiryJobQueue(redis_client, settings)
    dispatcher = NotificationDispatcher(notification_queue)

    return ServiceContainer(
        settings=settings,
        engine=engine,
        session_factory=create_session_factory(engine),
        redis=redis_client,
        lock=lock,
        notification_queue=notification_queue,
        expiry_queue=expiry_queue,
        dispatcher=dispatcher,
        auction_service=AuctionService(lock, expiry_queue, settings),
        bid_service=BidService(lock, dispatcher, settings),
        settlement_service=SettlementService(lock, dispatcher),
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_db(request: Request):
    """Get database session"""
    db = get_container(request).session_factory()
    try:
        yield db
    finally:
        db.close()


def get_auction_service(request: Request) -> AuctionService:
    return get_container(request).auction_service


def get_bid_service(request: Request) -> BidService:
    return get_container(request).bid_service


def get_settlement_service(request: Request) -> SettlementService:
    return get_container(request).settlement_service


def get_current_user_id(
    user_id: int = Query(..., description="Acting user ID (supplied by the auth gateway)")
) -> int:
    return user_id
