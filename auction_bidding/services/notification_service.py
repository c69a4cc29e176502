"""
Notification Service

Two halves:
- NotificationDispatcher: best-effort hand-off onto the notification queue.
  Failures are logged and counted, never raised to the caller.
- NotificationService: reads/writes Notification rows (used by the worker
  and by the notification routes).
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from auction_bidding.core.metrics import (
    notifications_enqueued_total,
    notifications_persisted_total,
    notification_failures_total,
)
from auction_bidding.infrastructure.queue import NotificationQueue
from auction_bidding.models import Auction, Bid, Notification
from auction_bidding.services.exceptions import InvalidRequestError, NotificationNotFoundError

logger = logging.getLogger(__name__)


# ==================== Message templates ====================

BID_SUPERSEDED_TITLE = "Your bid has been superseded"
BID_SUPERSEDED_TEXT = 'A higher bid was placed on auction "{title}". Place a new bid!'

OFFER_RECEIVED_TITLE = "You have received an offer"
OFFER_RECEIVED_TEXT = ('Your bid on auction "{title}" has been marked as an offer. '
                       'Please accept or reject the auction bid you have won.')

OFFER_RESOLVED_TITLE = "Your offer was {status}"
OFFER_RESOLVED_TEXT = 'The winning bidder has {status} your offer on auction "{title}".'

AUCTION_LOST_TITLE = "Auction offer accepted"
AUCTION_LOST_TEXT = 'The auction "{title}" has been accepted. Better luck next time!'

AUCTION_EXPIRED_TITLE = "Auction Expired"
AUCTION_EXPIRED_TEXT = 'The auction "{title}" has expired. Thank you for your participation.'


class NotificationDispatcher:
    """Fire-and-forget notification fan-out"""

    def __init__(self, queue: NotificationQueue):
        self.queue = queue

    def notify(
        self,
        user_ids: Iterable[int],
        title: str,
        text: str,
        auction_id: Optional[int] = None
    ) -> Optional[str]:
        """
        Queue one notification per user

        Returns:
            job_id, or None when nothing was queued
        """
        user_ids = list(user_ids)
        if not user_ids:
            return None

        try:
            job_id = self.queue.enqueue(user_ids, title, text, auction_id=auction_id)
        except Exception:
            notification_failures_total.labels(stage="enqueue").inc()
            logger.exception("❌ Failed to queue notification",
                             extra={"auction_id": auction_id})
            return None

        notifications_enqueued_total.inc()
        return job_id


class NotificationService:
    """Notification persistence and queries"""

    @staticmethod
    def bidder_ids(db: Session, auction_id: int) -> List[int]:
        """Distinct bidders in the auction's ledger, in order of first bid"""
        rows = db.query(Bid.bidder_id).filter(
            Bid.auction_id == auction_id
        ).order_by(Bid.bid_id.asc()).all()

        seen = []
        for (bidder_id,) in rows:
            if bidder_id not in seen:
                seen.append(bidder_id)
        return seen

    @staticmethod
    def other_bidder_ids(
        db: Session,
        auction: Auction,
        exclude_user_ids: Iterable[int],
        include_seller: bool = False
    ) -> List[int]:
        """
        Recipients for an "other bidders" fan-out

        Args:
            auction: Auction the fan-out is about
            exclude_user_ids: users never notified (the actor, the winner)
            include_seller: also notify the auction owner
        """
        excluded = set(exclude_user_ids)
        recipients = [
            user_id for user_id in NotificationService.bidder_ids(db, auction.auction_id)
            if user_id not in excluded
        ]

        if include_seller and auction.seller_id not in excluded and auction.seller_id not in recipients:
            recipients.append(auction.seller_id)

        return recipients

    @staticmethod
    def create_many(
        db: Session,
        user_ids: Iterable[int],
        title: str,
        text: str,
        auction_id: Optional[int] = None
    ) -> List[Notification]:
        """Persist one notification per user"""
        notifications = [
            Notification(user_id=user_id, auction_id=auction_id, title=title, text=text, is_read=False)
            for user_id in user_ids
        ]

        if not notifications:
            return []

        db.add_all(notifications)
        db.commit()

        notifications_persisted_total.inc(len(notifications))
        logger.info(f"🔔 Stored {len(notifications)} notifications",
                    extra={"auction_id": auction_id})
        return notifications

    @staticmethod
    def list_for_user(db: Session, user_id: int) -> List[Notification]:
        return db.query(Notification).filter(
            Notification.user_id == user_id
        ).order_by(Notification.created_at.desc(), Notification.notification_id.desc()).all()

    @staticmethod
    def mark_read(
        db: Session,
        user_id: int,
        notification_id: Optional[int] = None,
        all_read: bool = False
    ):
        """
        Mark a single notification, or all of a user's notifications, as read

        Returns:
            the updated Notification, or the number of rows updated when all_read
        """
        if all_read is True:
            updated = db.query(Notification).filter(
                Notification.user_id == user_id,
                Notification.is_read == False  # noqa: E712
            ).update({Notification.is_read: True}, synchronize_session=False)
            db.commit()
            return updated

        if notification_id is None:
            raise InvalidRequestError("Provide either notification id or all_read=true")

        notification = db.query(Notification).filter(
            Notification.notification_id == notification_id,
            Notification.user_id == user_id
        ).first()

        if not notification:
            raise NotificationNotFoundError("Notification not found")

        notification.is_read = True
        db.commit()
        return notification
