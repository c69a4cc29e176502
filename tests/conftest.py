"""
Shared fixtures

Each test gets its own SQLite file and its own in-memory Redis server
(fakeredis with Lua support, so the lock's unlock script really runs).
"""
from datetime import datetime, timedelta

import fakeredis
import pytest
from fastapi.testclient import TestClient

from auction_bidding.core.config import Settings
from auction_bidding.infrastructure.database import create_db_engine, create_session_factory, init_db
from auction_bidding.infrastructure.lock import AuctionLock
from auction_bidding.infrastructure.queue import NotificationQueue, ExpiryJobQueue
from auction_bidding.models import Auction, AuctionStatus, AdStatus
from auction_bidding.services import (
    AuctionService,
    BidService,
    NotificationDispatcher,
    SettlementService,
)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'auction_test.db'}",
        LOG_JSON=False,
        LOG_LEVEL="WARNING",
        LOCK_RETRY_DELAY=0.005,
        LOCK_MAX_RETRIES=400,
        BID_MAX_ATTEMPTS=3,
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings=settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def redis_client():
    server = fakeredis.FakeServer()
    client = fakeredis.FakeRedis(server=server, decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def lock(redis_client, settings):
    return AuctionLock(redis_client, settings)


@pytest.fixture
def notification_queue(redis_client, settings):
    return NotificationQueue(redis_client, settings)


@pytest.fixture
def expiry_queue(redis_client, settings):
    return ExpiryJobQueue(redis_client, settings)


@pytest.fixture
def dispatcher(notification_queue):
    return NotificationDispatcher(notification_queue)


@pytest.fixture
def bid_service(lock, dispatcher, settings):
    return BidService(lock, dispatcher, settings)


@pytest.fixture
def auction_service(lock, expiry_queue, settings):
    return AuctionService(lock, expiry_queue, settings)


@pytest.fixture
def settlement_service(lock, dispatcher):
    return SettlementService(lock, dispatcher)


@pytest.fixture
def make_auction(db):
    """Insert a Published, approved auction straight into the database"""

    def _make_auction(
        starting_bid=1.0,
        bid_increment=1.0,
        minimum_bid=None,
        seller_id=100,
        expires_in=timedelta(days=7),
        is_pause=False,
        status=AuctionStatus.PUBLISHED,
        title="Vintage Camera",
    ):
        now = datetime.utcnow()
        auction = Auction(
            seller_id=seller_id,
            title=title,
            description="Test listing",
            starting_bid=starting_bid,
            bid_increment=bid_increment,
            minimum_bid=minimum_bid,
            ad_life=7,
            start_date=now,
            expiry_date=now + expires_in if expires_in is not None else None,
            is_pause=is_pause,
            status=status,
            ad_status=AdStatus.ACCEPTED,
            current_highest_amount=starting_bid,
            total_bids=0,
        )
        db.add(auction)
        db.commit()
        db.refresh(auction)
        return auction

    return _make_auction


@pytest.fixture
def app(settings, redis_client, engine):
    from auction_bidding.main import create_app
    return create_app(settings=settings, redis_client=redis_client, engine=engine)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def drain_jobs(notification_queue):
    """Pop every queued notification job (oldest first)"""

    def _drain():
        jobs = []
        while True:
            job = notification_queue.dequeue(timeout=None)
            if job is None:
                return jobs
            jobs.append(job)

    return _drain
