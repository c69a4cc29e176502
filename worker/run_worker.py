"""
Worker Entry Point

Run with:
    python -m worker.run_worker notifications
    python -m worker.run_worker expiry
"""
import asyncio
import logging
import signal
import sys

from auction_bidding.core.config import get_settings
from auction_bidding.core.logging_config import setup_logging
from auction_bidding.infrastructure.database import create_session_factory, get_engine, init_db
from auction_bidding.infrastructure.queue import NotificationQueue, ExpiryJobQueue
from auction_bidding.infrastructure.redis_client import create_redis_client
from worker.expiry_worker import ExpiryWorker
from worker.notification_worker import NotificationWorker

logger = logging.getLogger(__name__)

WORKER_KINDS = ("notifications", "expiry")


def build_worker(kind: str):
    settings = get_settings()
    redis_client = create_redis_client(settings)
    engine = get_engine()
    init_db(engine)
    session_factory = create_session_factory(engine)

    if kind == "notifications":
        return NotificationWorker(NotificationQueue(redis_client, settings), session_factory)

    return ExpiryWorker(
        ExpiryJobQueue(redis_client, settings),
        session_factory,
        poll_interval=settings.WORKER_POLL_INTERVAL,
        batch_size=settings.EXPIRY_BATCH_SIZE,
    )


async def main(kind: str):
    worker = build_worker(kind)

    # Handle graceful shutdown (Ctrl+C)
    def signal_handler(sig, frame):
        logger.info(f"⚠️  [{kind}] Shutdown signal received...")
        worker.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    await worker.run()


if __name__ == "__main__":
    kind = sys.argv[1] if len(sys.argv) > 1 else "notifications"
    if kind not in WORKER_KINDS:
        print(f"Usage: python -m worker.run_worker [{'|'.join(WORKER_KINDS)}]")
        sys.exit(2)

    setup_logging()
    asyncio.run(main(kind))
