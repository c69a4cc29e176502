"""
Auction expiry handling

Runs when an auction-expiry job comes due: every distinct bidder in the
ledger gets one "Auction Expired" notification. Award of the auction is
left to the settlement workflow.
"""
import logging

from sqlalchemy.orm import Session

from auction_bidding.core.metrics import expiry_jobs_processed_total
from auction_bidding.models import Auction
from auction_bidding.services.notification_service import (
    NotificationService,
    AUCTION_EXPIRED_TITLE,
    AUCTION_EXPIRED_TEXT,
)

logger = logging.getLogger(__name__)


class ExpiryService:

    @staticmethod
    def handle_auction_expired(db: Session, auction_id: int) -> int:
        """
        Notify the auction's bidders that it has expired

        Returns:
            number of notifications written (0 when the auction is gone)
        """
        auction = db.get(Auction, auction_id)

        if not auction:
            expiry_jobs_processed_total.labels(outcome="missing").inc()
            logger.warning(f"⚠️  Expiry job for unknown auction {auction_id}",
                           extra={"auction_id": auction_id})
            return 0

        bidder_ids = NotificationService.bidder_ids(db, auction_id)

        notifications = NotificationService.create_many(
            db,
            bidder_ids,
            AUCTION_EXPIRED_TITLE,
            AUCTION_EXPIRED_TEXT.format(title=auction.title),
            auction_id=auction_id
        )

        expiry_jobs_processed_total.labels(outcome="notified").inc()
        logger.info(f"⌛ Auction {auction_id} expired, {len(notifications)} bidders notified",
                    extra={"auction_id": auction_id})
        return len(notifications)
