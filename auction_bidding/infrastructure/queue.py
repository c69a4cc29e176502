"""
Redis-backed job queues

NotificationQueue - Redis list, LPUSH by the API / BRPOP by the worker.
ExpiryJobQueue    - Redis sorted set scored by due time; a job becomes
                    visible to the expiry worker once its score <= now.
"""
import json
import time
import uuid
import logging
from typing import Dict, List, Optional

import redis

from auction_bidding.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

AUCTION_EXPIRY_JOB = "auction-expiry"


class NotificationQueue:
    def __init__(self, redis_client: redis.Redis, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.redis = redis_client
        self.queue_key = settings.NOTIFICATION_QUEUE_KEY

    def enqueue(
        self,
        user_ids: List[int],
        title: str,
        text: str,
        auction_id: Optional[int] = None
    ) -> str:
        """
        Push one notification job addressed to a list of users

        Returns:
            job_id of the queued job
        """
        job_id = str(uuid.uuid4())
        job = {
            "job_id": job_id,
            "user_ids": list(user_ids),
            "auction_id": auction_id,
            "title": title,
            "text": text,
            "enqueued_at": time.time(),
        }

        self.redis.lpush(self.queue_key, json.dumps(job))

        logger.info(f"📥 Queued notification job {job_id} for {len(user_ids)} users",
                    extra={"auction_id": auction_id, "job_id": job_id})
        return job_id

    def dequeue(self, timeout: Optional[int] = 1) -> Optional[Dict]:
        """
        Pop the next job

        timeout=None pops without blocking (used when draining).
        """
        if timeout is None:
            raw = self.redis.rpop(self.queue_key)
        else:
            result = self.redis.brpop(self.queue_key, timeout=timeout)
            raw = result[1] if result else None

        if raw is None:
            return None

        return json.loads(raw)

    def get_queue_length(self) -> int:
        return self.redis.llen(self.queue_key)


class ExpiryJobQueue:
    def __init__(self, redis_client: redis.Redis, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.redis = redis_client
        self.queue_key = settings.EXPIRY_QUEUE_KEY

    def schedule(self, auction_id: int, delay_seconds: float) -> Dict:
        """
        Schedule a one-shot auction-expiry job

        Negative delays (expiry already in the past) run immediately.
        """
        delay_seconds = max(0.0, delay_seconds)
        run_at = time.time() + delay_seconds

        job = {
            "job_id": str(uuid.uuid4()),
            "name": AUCTION_EXPIRY_JOB,
            "auction_id": auction_id,
        }

        self.redis.zadd(self.queue_key, {json.dumps(job): run_at})

        logger.info(f"⏰ Scheduled {AUCTION_EXPIRY_JOB} for auction {auction_id} in {delay_seconds:.0f}s",
                    extra={"auction_id": auction_id, "job_id": job["job_id"]})
        return {**job, "run_at": run_at}

    def pop_due(self, now: Optional[float] = None, limit: int = 50) -> List[Dict]:
        """
        Claim jobs whose due time has passed

        ZREM decides ownership: when several workers see the same member,
        only the one whose ZREM removed it gets to run the job.
        """
        now = time.time() if now is None else now
        members = self.redis.zrangebyscore(self.queue_key, "-inf", now, start=0, num=limit)

        claimed = []
        for member in members:
            if self.redis.zrem(self.queue_key, member):
                claimed.append(json.loads(member))

        return claimed

    def pending_count(self) -> int:
        return self.redis.zcard(self.queue_key)
