"""
Notification Worker

Consumes fan-out jobs from the Redis notification list and persists one
Notification row per recipient.
"""
import asyncio
import logging
from typing import Dict, Optional

import redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from auction_bidding.core.metrics import notification_failures_total
from auction_bidding.infrastructure.queue import NotificationQueue
from auction_bidding.services import NotificationService

logger = logging.getLogger(__name__)


class NotificationWorker:
    """
    Background worker that persists queued notifications

    Responsibilities:
    1. Pop the next job from the queue
    2. Validate its payload
    3. Write one notification per recipient
    """

    def __init__(
        self,
        queue: NotificationQueue,
        session_factory: sessionmaker,
        retry_delay: float = 1.0
    ):
        self.queue = queue
        self.session_factory = session_factory
        self.retry_delay = retry_delay
        self.running = True

        # Statistics
        self.processed_count = 0
        self.notification_count = 0
        self.dropped_count = 0
        self.error_count = 0

    def process_job(self, job: Dict, db: Session) -> int:
        """
        Persist one job

        Returns:
            number of notifications written (0 for a dropped job)
        """
        user_ids = job.get("user_ids")
        title = job.get("title")
        text = job.get("text")

        if not isinstance(user_ids, list) or not title or not text:
            self.dropped_count += 1
            notification_failures_total.labels(stage="persist").inc()
            logger.warning(f"⚠️  Dropping malformed notification job {job.get('job_id')}",
                           extra={"job_id": job.get("job_id")})
            return 0

        try:
            notifications = NotificationService.create_many(
                db, user_ids, title, text, auction_id=job.get("auction_id")
            )
        except SQLAlchemyError:
            db.rollback()
            self.error_count += 1
            notification_failures_total.labels(stage="persist").inc()
            logger.exception("❌ Failed to persist notification job",
                             extra={"job_id": job.get("job_id"), "auction_id": job.get("auction_id")})
            return 0

        self.processed_count += 1
        self.notification_count += len(notifications)
        return len(notifications)

    def drain(self, db: Session, limit: Optional[int] = None) -> int:
        """Process queued jobs without blocking; returns jobs processed"""
        handled = 0
        while limit is None or handled < limit:
            job = self.queue.dequeue(timeout=None)
            if job is None:
                break
            self.process_job(job, db)
            handled += 1
        return handled

    def get_stats(self) -> Dict[str, int]:
        return {
            "processed": self.processed_count,
            "notifications": self.notification_count,
            "dropped": self.dropped_count,
            "errors": self.error_count,
        }

    async def run(self, poll_timeout: int = 1):
        """Main worker loop"""
        logger.info("🚀 Notification worker started")

        db = self.session_factory()
        try:
            while self.running:
                try:
                    job = self.queue.dequeue(timeout=poll_timeout)
                except redis.RedisError as e:
                    self.error_count += 1
                    logger.error(f"❌ Notification queue unavailable: {e}")
                    await asyncio.sleep(self.retry_delay)
                    continue

                if job is None:
                    await asyncio.sleep(0)
                    continue

                self.process_job(job, db)

        finally:
            db.close()
            logger.info(f"🛑 Notification worker stopped: {self.get_stats()}")
