"""
Auction Service - Business Logic

Handles:
- Auction creation and allow-listed updates
- Publishing (start/expiry dates)
- Moderation (approve / pause) and expiry scheduling
- Auction reads with the caller's ledger rank and top bids
"""
import logging
import math
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from auction_bidding.core.config import Settings, get_settings
from auction_bidding.core.metrics import expiry_jobs_scheduled_total
from auction_bidding.infrastructure.lock import AuctionLock, LockNotAcquiredError
from auction_bidding.infrastructure.queue import ExpiryJobQueue
from auction_bidding.models import Auction, AuctionStatus, AdStatus, Bid, OfferStatus
from auction_bidding.schemas.auction import AuctionCreate, AuctionUpdate, AuctionModerationUpdate
from auction_bidding.services.exceptions import (
    BiddingError,
    InvalidRequestError,
    AuctionNotFoundError,
    AuctionUpdateError,
    BidNotFoundError,
    ConcurrencyConflictError,
)

logger = logging.getLogger(__name__)

PRICING_FIELDS = ("starting_bid", "bid_increment", "minimum_bid")
AMOUNT_FIELDS = PRICING_FIELDS + ("reserve_price", "buy_now_price")
REQUIRED_FIELDS = ("title", "starting_bid", "bid_increment")
TOP_BID_LABELS = ["Leading", "Runner-up", "Third Place"]


def rank_label(index: int) -> str:
    if index == 0:
        return "Leading"
    if index == 1:
        return "Runner-up"
    return f"Rank {index + 1}"


class AuctionService:
    """
    Service for auction-related business logic

    Writes take the same per-auction lock as bid placement so that
    moderation never races a bid on the auction row.
    """

    def __init__(
        self,
        lock: AuctionLock,
        expiry_queue: ExpiryJobQueue,
        settings: Optional[Settings] = None
    ):
        settings = settings or get_settings()
        self.lock = lock
        self.expiry_queue = expiry_queue
        self.default_ad_life = settings.DEFAULT_AD_LIFE_DAYS

    @staticmethod
    def _validate_pricing(values: Dict):
        for field in AMOUNT_FIELDS:
            value = values.get(field)
            if value is not None and not math.isfinite(value):
                raise InvalidRequestError(f"{field} must be a finite number", {"field": field})

        starting_bid = values.get("starting_bid")
        bid_increment = values.get("bid_increment")
        minimum_bid = values.get("minimum_bid")

        if starting_bid is not None and starting_bid <= 0:
            raise InvalidRequestError("Starting bid must be positive")

        if bid_increment is not None and bid_increment <= 0:
            raise InvalidRequestError("Bid increment must be positive")

        if minimum_bid is not None and minimum_bid < 0:
            raise InvalidRequestError("Minimum bid cannot be negative")

    def _apply_publish(self, auction: Auction, ad_life: Optional[int], now: datetime):
        ad_life = ad_life or auction.ad_life or self.default_ad_life
        if ad_life <= 0:
            raise InvalidRequestError("Ad life must be positive")

        auction.ad_life = ad_life
        auction.start_date = now
        auction.expiry_date = now + timedelta(days=ad_life)
        auction.status = AuctionStatus.PUBLISHED

    def create_auction(self, db: Session, seller_id: int, data: AuctionCreate) -> Auction:
        """
        Create a new auction (Draft, or Published with an expiry date)

        Raises:
            InvalidRequestError: If validation fails
        """
        self._validate_pricing(data.model_dump())

        auction = Auction(
            seller_id=seller_id,
            title=data.title,
            description=data.description,
            starting_bid=data.starting_bid,
            bid_increment=data.bid_increment,
            minimum_bid=data.minimum_bid,
            reserve_price=data.reserve_price,
            buy_now_price=data.buy_now_price,
            ad_life=data.ad_life,
            status=AuctionStatus.DRAFT,
            ad_status=AdStatus.PENDING,
            is_pause=False,
            current_highest_amount=data.starting_bid,
            current_highest_bidder=None,
            total_bids=0,
        )

        if data.status == AuctionStatus.PUBLISHED:
            self._apply_publish(auction, data.ad_life, datetime.utcnow())

        db.add(auction)
        db.commit()
        db.refresh(auction)

        logger.info(f"✅ Created auction {auction.auction_id}: {auction.title}",
                    extra={"auction_id": auction.auction_id, "user_id": seller_id})
        return auction

    def get_auction(self, db: Session, auction_id: int) -> Auction:
        auction = db.query(Auction).filter(Auction.auction_id == auction_id).first()
        if not auction:
            raise AuctionNotFoundError("Auction not found", {"auctionId": auction_id})
        return auction

    def update_auction(
        self,
        db: Session,
        auction_id: int,
        seller_id: int,
        data: AuctionUpdate
    ) -> Auction:
        """
        Apply an allow-listed update

        Pricing rules are frozen once the first bid is in the ledger.
        """
        changes = data.model_dump(exclude_unset=True)
        for field in REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise InvalidRequestError(f"{field} cannot be null", {"field": field})
        self._validate_pricing(changes)

        with self._locked(db, auction_id):
            auction = self._load_for_update(db, auction_id)

            if auction.seller_id != seller_id:
                raise AuctionUpdateError("Only the seller can update this auction")

            touches_pricing = any(field in changes for field in PRICING_FIELDS)
            if touches_pricing and auction.total_bids:
                raise AuctionUpdateError("Pricing cannot change once bidding has started")

            for field, value in changes.items():
                setattr(auction, field, value)

            if touches_pricing:
                auction.current_highest_amount = auction.starting_bid

            db.commit()

        logger.info(f"✏️  Updated auction {auction_id}: {sorted(changes)}",
                    extra={"auction_id": auction_id, "user_id": seller_id})
        return auction

    def publish_auction(
        self,
        db: Session,
        auction_id: int,
        seller_id: int,
        ad_life: Optional[int] = None
    ) -> Auction:
        """Publish a Draft: expiry = now + ad life (days)"""
        with self._locked(db, auction_id):
            auction = self._load_for_update(db, auction_id)

            if auction.seller_id != seller_id:
                raise AuctionUpdateError("Only the seller can publish this auction")

            if auction.status == AuctionStatus.PUBLISHED:
                raise AuctionUpdateError("Auction is already published")

            self._apply_publish(auction, ad_life, datetime.utcnow())
            db.commit()

        logger.info(f"📣 Published auction {auction_id} until {auction.expiry_date.isoformat()}",
                    extra={"auction_id": auction_id})
        return auction

    def moderate_auction(
        self,
        db: Session,
        auction_id: int,
        data: AuctionModerationUpdate
    ) -> Auction:
        """
        Approve/reject (ad_status) or pause/resume (is_pause) an auction

        Exactly one of the two fields per request. Accepting an auction
        with an expiry date schedules its expiry job.
        """
        if (data.ad_status is None) == (data.is_pause is None):
            raise InvalidRequestError("Provide only one field: either ad_status or is_pause")

        with self._locked(db, auction_id):
            auction = self._load_for_update(db, auction_id)

            if data.ad_status is not None:
                auction.ad_status = data.ad_status
            else:
                auction.is_pause = data.is_pause

            db.commit()

        logger.info(f"🛡️  Moderated auction {auction_id}: "
                    f"{data.model_dump(exclude_none=True, mode='json')}",
                    extra={"auction_id": auction_id})

        if data.ad_status == AdStatus.ACCEPTED and auction.expiry_date:
            self.schedule_expiry(auction)

        return auction

    def schedule_expiry(self, auction: Auction) -> Optional[Dict]:
        """Hand the auction-expiry job to the delayed queue (best effort)"""
        delay = (auction.expiry_date - datetime.utcnow()).total_seconds()
        try:
            job = self.expiry_queue.schedule(auction.auction_id, delay)
        except Exception:
            logger.exception("❌ Failed to schedule auction expiry",
                             extra={"auction_id": auction.auction_id})
            return None

        expiry_jobs_scheduled_total.inc()
        return job

    def get_auction_detail(self, db: Session, auction_id: int, user_id: Optional[int] = None) -> Dict:
        """Auction with bid count and the caller's rank in the ledger"""
        auction = self.get_auction(db, auction_id)

        bids = db.query(Bid).filter(
            Bid.auction_id == auction_id
        ).order_by(Bid.current_placed_amount.desc(), Bid.bid_id.asc()).all()

        user_rank = None
        if user_id is not None:
            for index, bid in enumerate(bids):
                if bid.bidder_id == user_id:
                    user_rank = rank_label(index)
                    break

        data = auction.to_dict()
        data["bid_count"] = len(bids)
        data["user_rank"] = user_rank
        return data

    def get_top_bids(self, db: Session, auction_id: int) -> List[Dict]:
        """
        Accepted bid alone (rank "Winner"), otherwise the top three
        Pending/Offered bids by placed amount

        Raises:
            BidNotFoundError: no bid to show
        """
        self.get_auction(db, auction_id)

        accepted = db.query(Bid).filter(
            Bid.auction_id == auction_id,
            Bid.offer_status == OfferStatus.ACCEPTED
        ).first()

        if accepted:
            return [{**accepted.to_dict(), "rank": "Winner"}]

        top_bids = db.query(Bid).filter(
            Bid.auction_id == auction_id,
            Bid.offer_status.in_([OfferStatus.PENDING, OfferStatus.OFFERED])
        ).order_by(Bid.current_placed_amount.desc(), Bid.bid_id.asc()).limit(3).all()

        if not top_bids:
            raise BidNotFoundError("No bids found for this auction", {"auctionId": auction_id})

        return [
            {**bid.to_dict(), "rank": TOP_BID_LABELS[index]}
            for index, bid in enumerate(top_bids)
        ]

    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self, db: Session, auction_id: int):
        """Auction lock for writes; the session is rolled back on refusal"""
        try:
            with self.lock.lock(auction_id):
                yield
        except LockNotAcquiredError as e:
            raise ConcurrencyConflictError(str(e), {"auctionId": auction_id})
        except BiddingError:
            db.rollback()
            raise

    @staticmethod
    def _load_for_update(db: Session, auction_id: int) -> Auction:
        auction = db.query(Auction).populate_existing().filter(
            Auction.auction_id == auction_id
        ).first()
        if not auction:
            raise AuctionNotFoundError("Auction not found", {"auctionId": auction_id})
        return auction


