"""
Bid Service - Business Logic

Handles:
- Bid validation
- Bid placement (locked, version-checked, all-or-nothing)
- Proxy resolution and leader demotion
- Superseded-bid notification fan-out
- Bid cancellation and history
"""
import math
import time
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

import redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from auction_bidding.core.config import Settings, get_settings
from auction_bidding.core.metrics import (
    bids_placed_total,
    bids_rejected_total,
    bid_placement_duration_seconds,
    bid_conflict_retries_total,
    bids_cancelled_total,
)
from auction_bidding.infrastructure.lock import AuctionLock, LockNotAcquiredError
from auction_bidding.models import Auction, AuctionStatus, Bid, BidType, BidStatus, OfferStatus
from auction_bidding.models.bid import ACTIVE_BID_STATUSES
from auction_bidding.services.exceptions import (
    BiddingError,
    BidValidationError,
    AuctionNotFoundError,
    AuctionNotOpenError,
    AuctionExpiredError,
    AuctionPausedError,
    BidBelowFloorError,
    BidTooLowError,
    AlreadyLeadingError,
    BidNotFoundError,
    BidNotCancellableError,
    ConcurrencyConflictError,
)
from auction_bidding.services.notification_service import (
    NotificationDispatcher,
    NotificationService,
    BID_SUPERSEDED_TITLE,
    BID_SUPERSEDED_TEXT,
)
from auction_bidding.services.resolver import resolve_winner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BidPlacementResult:
    auction_id: int
    bid_id: int
    current_highest_amount: float
    current_highest_bidder: int
    is_leading: bool
    your_bid_type: BidType
    minimum_bid: Optional[float]
    next_valid_bid: float
    attempts: int = 1


class BidService:
    """
    Service for bid-related business logic

    One placement is serialized per auction by the auction lock; the
    auction row's version column catches any write that slipped past it,
    and such conflicts are retried with a fresh read.
    """

    def __init__(
        self,
        lock: AuctionLock,
        dispatcher: NotificationDispatcher,
        settings: Optional[Settings] = None
    ):
        settings = settings or get_settings()
        self.lock = lock
        self.dispatcher = dispatcher
        self.max_attempts = settings.BID_MAX_ATTEMPTS
        self.min_floor = settings.MIN_BID_FLOOR

    @staticmethod
    def validate_bid_request(
        price: Optional[float],
        max_bid_amount: Optional[float],
        bid_type: Optional[BidType]
    ) -> Tuple[BidType, float]:
        """
        Validate a bid submission before touching any state

        Returns:
            (bid_type, proxy ceiling)

        Raises:
            BidValidationError: with the violated rule
        """
        try:
            bid_type = BidType(bid_type) if bid_type else BidType.MANUAL
        except ValueError:
            raise BidValidationError("Invalid bid type: expected Manual or Automatic")

        if price is None or not math.isfinite(price) or price <= 0:
            raise BidValidationError("Invalid bid price: price must be greater than 0")

        if bid_type == BidType.AUTOMATIC:
            if max_bid_amount is None:
                raise BidValidationError("Max bid amount is required for automatic bids")

            if not math.isfinite(max_bid_amount):
                raise BidValidationError("Invalid max bid amount: must be a finite number")

            if max_bid_amount < price:
                raise BidValidationError(
                    f"Max bid amount (${max_bid_amount:.2f}) must be greater than or equal to "
                    f"your initial bid amount (${price:.2f}). "
                    f"Please set your max bid to at least ${price:.2f}",
                    {"nextValidMaxBid": price}
                )

            return bid_type, max_bid_amount

        # Manual bids have no proxy: the ceiling is the placed amount
        return bid_type, price

    def place_bid(
        self,
        db: Session,
        auction_id: int,
        bidder_id: int,
        price: Optional[float],
        max_bid_amount: Optional[float] = None,
        bid_type: Optional[BidType] = None
    ) -> BidPlacementResult:
        """
        Place a bid end-to-end

        Raises:
            BidValidationError: malformed submission
            NotFoundError / StateConflictError: precondition failed
            ConcurrencyConflictError: retries exhausted
        """
        start_time = time.perf_counter()

        try:
            bid_type, ceiling = self.validate_bid_request(price, max_bid_amount, bid_type)
        except BidValidationError:
            bids_rejected_total.labels(reason="BidValidationError").inc()
            raise

        result = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                with self.lock.lock(auction_id) as lock_retries:
                    if lock_retries > 0:
                        logger.info(f"🔒 Lock acquired after {lock_retries} retries",
                                    extra={"auction_id": auction_id})

                    result = self._place_bid_locked(
                        db, auction_id, bidder_id, price, ceiling, bid_type, attempt
                    )

            except (StaleDataError, LockNotAcquiredError) as e:
                db.rollback()
                bid_conflict_retries_total.inc()
                logger.warning(f"⚠️  Bid conflict on attempt {attempt}/{self.max_attempts}: {e}",
                               extra={"auction_id": auction_id, "user_id": bidder_id})
                continue

            except BiddingError as e:
                db.rollback()
                bids_rejected_total.labels(reason=type(e).__name__).inc()
                logger.info(f"❌ Bid rejected: {e.message}",
                            extra={"auction_id": auction_id, "user_id": bidder_id})
                raise

            except SQLAlchemyError:
                db.rollback()
                logger.exception("❌ Bid placement failed", extra={"auction_id": auction_id})
                raise

            except redis.RedisError:
                db.rollback()
                logger.exception("❌ Auction lock unavailable", extra={"auction_id": auction_id})
                raise

            break

        if result is None:
            bids_rejected_total.labels(reason="ConcurrencyConflictError").inc()
            raise ConcurrencyConflictError(
                "The auction is receiving too many bids right now, please retry",
                {"auctionId": auction_id}
            )

        duration = time.perf_counter() - start_time
        bid_placement_duration_seconds.observe(duration)
        bids_placed_total.labels(bid_type=bid_type.value).inc()

        logger.info(
            f"💰 Bid {result.bid_id} placed: leader={result.current_highest_bidder} "
            f"amount={result.current_highest_amount}",
            extra={
                "auction_id": auction_id,
                "bid_id": result.bid_id,
                "user_id": bidder_id,
                "duration_ms": round(duration * 1000, 2),
            }
        )

        self._notify_superseded(db, auction_id, bidder_id)

        return result

    def _place_bid_locked(
        self,
        db: Session,
        auction_id: int,
        bidder_id: int,
        price: float,
        ceiling: float,
        bid_type: BidType,
        attempt: int
    ) -> BidPlacementResult:
        """Read, validate, append, resolve, write back and commit"""
        now = datetime.utcnow()

        auction = db.query(Auction).populate_existing().filter(
            Auction.auction_id == auction_id
        ).first()

        if not auction:
            raise AuctionNotFoundError("Auction not found", {"auctionId": auction_id})

        if auction.status != AuctionStatus.PUBLISHED:
            raise AuctionNotOpenError("Auction is not open for bidding", {"status": auction.status.value})

        if auction.is_expired(now):
            raise AuctionExpiredError(
                "Auction has expired",
                {"expiryDate": auction.expiry_date.isoformat()}
            )

        if auction.is_pause:
            raise AuctionPausedError("Auction is paused")

        floor = auction.floor(self.min_floor)
        if price < floor:
            raise BidBelowFloorError(
                f"Bid cannot be less than minimum bid. Bidding starts from ${floor:.2f}",
                {"floor": floor}
            )

        next_valid_bid = auction.next_valid_bid(self.min_floor)
        if price < next_valid_bid:
            raise BidTooLowError(
                f"Your bid (${price:.2f}) is too low. Next valid bid is ${next_valid_bid:.2f}",
                {"nextValidBid": next_valid_bid}
            )

        if auction.current_highest_bidder == bidder_id:
            raise AlreadyLeadingError("You are already the highest bidder")

        # Provisionally Leading; resolution below settles the ranking
        bid = Bid(
            auction_id=auction_id,
            bidder_id=bidder_id,
            bid_type=bid_type,
            current_placed_amount=price,
            max_bid_amount=ceiling,
            status=BidStatus.LEADING,
            offer_status=OfferStatus.PENDING,
            created_at=now,
        )
        db.add(bid)
        db.flush()

        active_bids = db.query(Bid).filter(
            Bid.auction_id == auction_id,
            Bid.status.in_(ACTIVE_BID_STATUSES)
        ).all()

        resolution = resolve_winner(active_bids, auction.bid_increment, floor)

        for other in active_bids:
            if other.bid_id == resolution.winning_bid_id:
                other.status = BidStatus.LEADING
                other.current_placed_amount = resolution.winning_amount
            elif other.status == BidStatus.LEADING:
                other.status = BidStatus.OUTBID

        auction.current_highest_amount = resolution.winning_amount
        auction.current_highest_bidder = resolution.winning_user_id
        auction.total_bids = (auction.total_bids or 0) + 1

        result = BidPlacementResult(
            auction_id=auction_id,
            bid_id=bid.bid_id,
            current_highest_amount=resolution.winning_amount,
            current_highest_bidder=resolution.winning_user_id,
            is_leading=resolution.winning_user_id == bidder_id,
            your_bid_type=bid_type,
            minimum_bid=auction.minimum_bid,
            next_valid_bid=max(resolution.winning_amount + auction.bid_increment, floor),
            attempts=attempt,
        )

        # Version check on the auction row happens here
        db.commit()

        return result

    def _notify_superseded(self, db: Session, auction_id: int, bidder_id: int):
        """Tell everyone else in the ledger that the price moved"""
        try:
            auction = db.get(Auction, auction_id)
            recipients = NotificationService.other_bidder_ids(
                db, auction, exclude_user_ids=[bidder_id], include_seller=True
            )
        except SQLAlchemyError:
            db.rollback()
            logger.exception("❌ Could not resolve notification recipients",
                             extra={"auction_id": auction_id})
            return

        self.dispatcher.notify(
            recipients,
            BID_SUPERSEDED_TITLE,
            BID_SUPERSEDED_TEXT.format(title=auction.title),
            auction_id=auction_id
        )

    def cancel_bid(self, db: Session, auction_id: int, bid_id: int, user_id: int) -> Bid:
        """
        Cancel one of the caller's non-leading bids

        The current price is left untouched.
        """
        try:
            with self.lock.lock(auction_id):
                bid = db.query(Bid).populate_existing().filter(
                    Bid.bid_id == bid_id,
                    Bid.auction_id == auction_id
                ).first()

                if not bid or bid.bidder_id != user_id:
                    raise BidNotFoundError("Bid not found", {"bidId": bid_id})

                if bid.status == BidStatus.CANCELLED:
                    raise BidNotCancellableError("Bid is already cancelled")

                if bid.status == BidStatus.LEADING:
                    raise BidNotCancellableError("The leading bid cannot be cancelled")

                auction = db.get(Auction, auction_id)
                if auction.is_expired():
                    raise BidNotCancellableError("Bids cannot be cancelled after the auction has expired")

                bid.status = BidStatus.CANCELLED
                db.commit()

        except LockNotAcquiredError as e:
            raise ConcurrencyConflictError(str(e), {"auctionId": auction_id})

        except BiddingError:
            db.rollback()
            raise

        bids_cancelled_total.inc()
        logger.info(f"🚫 Bid {bid_id} cancelled",
                    extra={"auction_id": auction_id, "bid_id": bid_id, "user_id": user_id})
        return bid

    @staticmethod
    def get_bid_history(db: Session, auction_id: int, limit: int = 50) -> List[Bid]:
        """Bids for an auction, newest first"""
        return db.query(Bid).filter(
            Bid.auction_id == auction_id
        ).order_by(Bid.created_at.desc(), Bid.bid_id.desc()).limit(limit).all()

    @staticmethod
    def get_user_bids(
        db: Session,
        user_id: int,
        offer_status: Optional[OfferStatus] = None
    ) -> List[Bid]:
        """A user's bids across all auctions, newest first"""
        query = db.query(Bid).filter(Bid.bidder_id == user_id)

        if offer_status:
            query = query.filter(Bid.offer_status == offer_status)

        return query.order_by(Bid.created_at.desc(), Bid.bid_id.desc()).all()
