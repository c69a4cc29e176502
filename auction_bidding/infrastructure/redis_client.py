"""
Redis Connection
"""
import logging
from typing import Optional

import redis

from auction_bidding.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def create_redis_client(settings: Optional[Settings] = None) -> redis.Redis:
    """Create Redis client (connections are opened lazily)"""
    settings = settings or get_settings()
    return redis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=settings.REDIS_DB,
        decode_responses=True
    )


def check_redis_connection(client: redis.Redis) -> bool:
    """Test Redis connection"""
    try:
        client.ping()
        return True
    except redis.RedisError as e:
        logger.error(f"❌ Redis connection failed: {e}")
        return False
