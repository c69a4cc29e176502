"""
Database Connection
"""
import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from auction_bidding.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def create_db_engine(database_url: Optional[str] = None, settings: Optional[Settings] = None) -> Engine:
    """
    Create SQLAlchemy engine

    SQLite gets a thread-shareable connection and no pool sizing,
    server databases get the configured pool.
    """
    settings = settings or get_settings()
    url = database_url or settings.DATABASE_URL

    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=False,
        )

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        echo=False,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create session factory bound to engine"""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@lru_cache()
def get_engine() -> Engine:
    """Process-wide engine built from settings"""
    return create_db_engine()


def init_db(engine: Engine):
    """Initialize database tables"""
    from auction_bidding.models import Base
    Base.metadata.create_all(bind=engine)
    logger.info("✅ Database tables created")
