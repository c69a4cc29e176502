"""
Settlement Service - post-expiry offer workflow

offer_status state machine, independent of Leading/Outbid:

    Pending ──promote──> Offered ──resolve──> Accepted | Rejected

At most one bid per auction is Offered at a time: promotion is refused
while an offer is outstanding.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auction_bidding.core.metrics import settlement_transitions_total
from auction_bidding.infrastructure.lock import AuctionLock, LockNotAcquiredError
from auction_bidding.models import Auction, Bid, BidStatus, OfferStatus
from auction_bidding.services.exceptions import (
    BiddingError,
    InvalidRequestError,
    AuctionNotFoundError,
    NoPendingBidError,
    NoOfferedBidError,
    ConcurrencyConflictError,
)
from auction_bidding.services.notification_service import (
    NotificationDispatcher,
    NotificationService,
    OFFER_RECEIVED_TITLE,
    OFFER_RECEIVED_TEXT,
    OFFER_RESOLVED_TITLE,
    OFFER_RESOLVED_TEXT,
    AUCTION_LOST_TITLE,
    AUCTION_LOST_TEXT,
)

logger = logging.getLogger(__name__)

RESOLUTION_STATUSES = (OfferStatus.ACCEPTED, OfferStatus.REJECTED)


class SettlementService:
    """Drives the offer/accept/reject award of an auction"""

    def __init__(self, lock: AuctionLock, dispatcher: NotificationDispatcher):
        self.lock = lock
        self.dispatcher = dispatcher

    def promote_top_bid(self, db: Session, auction_id: int) -> Bid:
        """
        Mark the highest Pending bid as Offered and notify its bidder

        Raises:
            AuctionNotFoundError: auction absent
            NoPendingBidError: nothing to promote (or an offer is outstanding)
        """
        try:
            with self.lock.lock(auction_id):
                auction = db.query(Auction).populate_existing().filter(
                    Auction.auction_id == auction_id
                ).first()

                if not auction:
                    raise AuctionNotFoundError("Auction not found", {"auctionId": auction_id})

                outstanding = db.query(Bid).filter(
                    Bid.auction_id == auction_id,
                    Bid.offer_status == OfferStatus.OFFERED
                ).first()

                if outstanding:
                    raise NoPendingBidError(
                        f"No pending bids found: bid {outstanding.bid_id} is already offered",
                        {"offeredBidId": outstanding.bid_id}
                    )

                top_bid = db.query(Bid).populate_existing().filter(
                    Bid.auction_id == auction_id,
                    Bid.offer_status == OfferStatus.PENDING,
                    Bid.status != BidStatus.CANCELLED
                ).order_by(Bid.current_placed_amount.desc(), Bid.bid_id.asc()).first()

                if not top_bid:
                    raise NoPendingBidError("No pending bids found")

                top_bid.offer_status = OfferStatus.OFFERED
                db.commit()

        except LockNotAcquiredError as e:
            raise ConcurrencyConflictError(str(e), {"auctionId": auction_id})

        except BiddingError:
            db.rollback()
            raise

        settlement_transitions_total.labels(to_status=OfferStatus.OFFERED.value).inc()
        logger.info(f"🏷️  Bid {top_bid.bid_id} offered to user {top_bid.bidder_id}",
                    extra={"auction_id": auction_id, "bid_id": top_bid.bid_id})

        self.dispatcher.notify(
            [top_bid.bidder_id],
            OFFER_RECEIVED_TITLE,
            OFFER_RECEIVED_TEXT.format(title=auction.title or "Untitled"),
            auction_id=auction_id
        )

        return top_bid

    def resolve_offer(
        self,
        db: Session,
        auction_id: int,
        offer_status: Optional[str],
        actor_id: int
    ) -> Bid:
        """
        Accept or reject the outstanding offer

        Accepted: owner is notified, every other bidder hears they lost.
        Rejected: owner is notified.

        Raises:
            InvalidRequestError: offer_status not Accepted/Rejected
            NoOfferedBidError: no outstanding offer
        """
        try:
            status = OfferStatus(offer_status)
        except ValueError:
            status = None

        if status not in RESOLUTION_STATUSES:
            raise InvalidRequestError(
                "Invalid offer_status value",
                {"allowed": [s.value for s in RESOLUTION_STATUSES]}
            )

        try:
            with self.lock.lock(auction_id):
                offered_bid = db.query(Bid).populate_existing().filter(
                    Bid.auction_id == auction_id,
                    Bid.offer_status == OfferStatus.OFFERED
                ).order_by(Bid.current_placed_amount.desc(), Bid.bid_id.asc()).first()

                if not offered_bid:
                    raise NoOfferedBidError("No offered bid found")

                offered_bid.offer_status = status
                db.commit()

        except LockNotAcquiredError as e:
            raise ConcurrencyConflictError(str(e), {"auctionId": auction_id})

        except BiddingError:
            db.rollback()
            raise

        settlement_transitions_total.labels(to_status=status.value).inc()
        logger.info(f"🏁 Offer on bid {offered_bid.bid_id} {status.value.lower()}",
                    extra={"auction_id": auction_id, "bid_id": offered_bid.bid_id, "user_id": actor_id})

        self._notify_resolution(db, auction_id, offered_bid, status, actor_id)

        return offered_bid

    def _notify_resolution(
        self,
        db: Session,
        auction_id: int,
        offered_bid: Bid,
        status: OfferStatus,
        actor_id: int
    ):
        try:
            auction = db.get(Auction, auction_id)
            losers = []
            if auction and status == OfferStatus.ACCEPTED:
                losers = NotificationService.other_bidder_ids(
                    db, auction, exclude_user_ids=[actor_id, offered_bid.bidder_id]
                )
        except SQLAlchemyError:
            db.rollback()
            logger.exception("❌ Could not resolve settlement recipients",
                             extra={"auction_id": auction_id})
            return

        if not auction:
            return

        self.dispatcher.notify(
            [auction.seller_id],
            OFFER_RESOLVED_TITLE.format(status=status.value),
            OFFER_RESOLVED_TEXT.format(status=status.value.lower(), title=auction.title),
            auction_id=auction_id
        )

        if losers:
            self.dispatcher.notify(
                losers,
                AUCTION_LOST_TITLE,
                AUCTION_LOST_TEXT.format(title=auction.title),
                auction_id=auction_id
            )
