"""
Admin API Routes - Monitoring
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auction_bidding.core.dependencies import ServiceContainer, get_container, get_db
from auction_bidding.infrastructure.redis_client import check_redis_connection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health")
def health_check(
    db: Session = Depends(get_db),
    container: ServiceContainer = Depends(get_container)
):
    """Database and Redis reachability"""
    try:
        db.execute(text("SELECT 1"))
        database_ok = True
    except SQLAlchemyError as e:
        logger.error(f"❌ Database health check failed: {e}")
        database_ok = False

    redis_ok = check_redis_connection(container.redis)

    return {
        "status": "healthy" if database_ok and redis_ok else "degraded",
        "service": container.settings.APP_NAME,
        "version": container.settings.APP_VERSION,
        "database": "connected" if database_ok else "unavailable",
        "redis": "connected" if redis_ok else "unavailable",
    }


@router.get("/queue-stats")
def get_queue_stats(container: ServiceContainer = Depends(get_container)):
    """Notification backlog and scheduled expiry jobs"""
    return {
        "notification_queue": {
            "key": container.notification_queue.queue_key,
            "length": container.notification_queue.get_queue_length(),
        },
        "expiry_jobs": {
            "key": container.expiry_queue.queue_key,
            "pending": container.expiry_queue.pending_count(),
        },
    }
