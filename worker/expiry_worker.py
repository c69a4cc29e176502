"""
Expiry Worker

Polls the delayed auction-expiry queue and runs the expiry consumer for
every job that has come due.
"""
import asyncio
import logging
import time
from typing import Dict, Optional

import redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from auction_bidding.infrastructure.queue import ExpiryJobQueue, AUCTION_EXPIRY_JOB
from auction_bidding.services import ExpiryService

logger = logging.getLogger(__name__)


class ExpiryWorker:
    """Background worker for scheduled auction-expiry jobs"""

    def __init__(
        self,
        queue: ExpiryJobQueue,
        session_factory: sessionmaker,
        poll_interval: float = 1.0,
        batch_size: int = 50
    ):
        self.queue = queue
        self.session_factory = session_factory
        self.poll_interval = poll_interval
        self.batch_size = batch_size
        self.running = True

        self.processed_count = 0
        self.notified_count = 0
        self.error_count = 0

    def run_once(self, db: Session, now: Optional[float] = None) -> int:
        """
        Claim and handle every due job

        Returns:
            number of jobs handled
        """
        jobs = self.queue.pop_due(now=now, limit=self.batch_size)

        for job in jobs:
            auction_id = job.get("auction_id")

            if job.get("name") != AUCTION_EXPIRY_JOB or auction_id is None:
                logger.warning(f"⚠️  Skipping unknown job {job}", extra={"job_id": job.get("job_id")})
                continue

            try:
                self.notified_count += ExpiryService.handle_auction_expired(db, auction_id)
                self.processed_count += 1
            except SQLAlchemyError:
                db.rollback()
                self.error_count += 1
                logger.exception("❌ Expiry job failed",
                                 extra={"auction_id": auction_id, "job_id": job.get("job_id")})

        return len(jobs)

    def get_stats(self) -> Dict[str, int]:
        return {
            "processed": self.processed_count,
            "notified": self.notified_count,
            "errors": self.error_count,
        }

    async def run(self):
        """Main worker loop"""
        logger.info(f"🚀 Expiry worker started (poll every {self.poll_interval}s)")

        db = self.session_factory()
        try:
            while self.running:
                try:
                    handled = self.run_once(db, now=time.time())
                except redis.RedisError as e:
                    self.error_count += 1
                    logger.error(f"❌ Expiry queue unavailable: {e}")
                    await asyncio.sleep(self.poll_interval)
                    continue

                if handled:
                    logger.info(f"⌛ Handled {handled} expiry jobs")
                    continue

                await asyncio.sleep(self.poll_interval)

        finally:
            db.close()
            logger.info(f"🛑 Expiry worker stopped: {self.get_stats()}")
