"""
Per-auction distributed lock with retry tracking

Serializes the read-validate-write sequence of bid placement for one
auction. Different auctions use different keys and never contend.
"""
import time
import uuid
import logging
from contextlib import contextmanager
from typing import Optional, Tuple

import redis

from auction_bidding.core.config import Settings, get_settings
from auction_bidding.core.metrics import lock_acquire_retries_total

logger = logging.getLogger(__name__)


class LockNotAcquiredError(TimeoutError):
    """Raised when the auction lock could not be acquired in time"""
    pass


class AuctionLock:
    # Only the owner (matching token) may delete the key
    UNLOCK_SCRIPT = """
    if redis.call("GET", KEYS[1]) == ARGV[1] then
        return redis.call("DEL", KEYS[1])
    else
        return 0
    end
    """

    def __init__(self, redis_client: redis.Redis, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.redis = redis_client
        self.lock_expire_ms = settings.LOCK_EXPIRE_MS
        self.retry_delay = settings.LOCK_RETRY_DELAY
        self.max_retries = settings.LOCK_MAX_RETRIES

    @staticmethod
    def _lock_key(auction_id: int) -> str:
        return f"auction:lock:{auction_id}"

    def acquire(self, auction_id: int) -> Tuple[str, str, int]:
        """
        Try to acquire lock with retry

        Returns: (lock_key, request_id, retry_count)
        Raises: LockNotAcquiredError if can't acquire
        """
        lock_key = self._lock_key(auction_id)
        request_id = str(uuid.uuid4())

        for attempt in range(self.max_retries):
            acquired = self.redis.set(
                lock_key,
                request_id,
                nx=True,
                px=self.lock_expire_ms
            )

            if acquired:
                if attempt:
                    lock_acquire_retries_total.inc(attempt)
                return lock_key, request_id, attempt

            if attempt < self.max_retries - 1:
                time.sleep(self.retry_delay)

        lock_acquire_retries_total.inc(self.max_retries)
        raise LockNotAcquiredError(f"Could not acquire lock for auction {auction_id}")

    def release(self, lock_key: str, request_id: str):
        """Release lock only if we own it"""
        try:
            self.redis.eval(self.UNLOCK_SCRIPT, 1, lock_key, request_id)
        except redis.RedisError as e:
            # The key still expires on its own after lock_expire_ms
            logger.warning(f"⚠️  Error releasing lock {lock_key}: {e}")

    @contextmanager
    def lock(self, auction_id: int):
        """
        Context manager for easy usage

        Usage:
            with auction_lock.lock(auction_id) as retry_count:
                place_bid()
        """
        lock_key, request_id, retry_count = self.acquire(auction_id)

        try:
            yield retry_count
        finally:
            self.release(lock_key, request_id)
