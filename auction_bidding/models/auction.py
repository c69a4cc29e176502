"""
Auction Model
"""
import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Enum as SQLEnum

from auction_bidding.models import Base


class AuctionStatus(str, enum.Enum):
    """Listing lifecycle"""
    DRAFT = "Draft"
    PUBLISHED = "Published"


class AdStatus(str, enum.Enum):
    """Moderation status"""
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class Auction(Base):
    """
    Auction listing with its denormalized current-price projection

    current_highest_amount / current_highest_bidder are derived from the
    bid ledger and rewritten on every accepted bid. `version` is bumped on
    every update; a write based on a stale read fails at flush time.
    """

    __tablename__ = "auctions"

    auction_id = Column(Integer, primary_key=True, index=True)
    seller_id = Column(Integer, nullable=False, index=True)
    title = Column(String(80), nullable=False)
    description = Column(String)

    # Pricing rules
    starting_bid = Column(Float, nullable=False, default=1.0)
    bid_increment = Column(Float, nullable=False, default=1.0)
    minimum_bid = Column(Float, nullable=True)
    reserve_price = Column(Float, nullable=True)
    buy_now_price = Column(Float, nullable=True)

    # Lifecycle
    ad_life = Column(Integer, nullable=True)  # days
    start_date = Column(DateTime, nullable=True)
    expiry_date = Column(DateTime, nullable=True, index=True)
    is_pause = Column(Boolean, nullable=False, default=False)
    status = Column(SQLEnum(AuctionStatus), nullable=False, default=AuctionStatus.DRAFT)
    ad_status = Column(SQLEnum(AdStatus), nullable=False, default=AdStatus.PENDING)

    # Current price projection
    current_highest_amount = Column(Float, nullable=False)
    current_highest_bidder = Column(Integer, nullable=True)
    total_bids = Column(Integer, nullable=False, default=0)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    def floor(self, min_floor: float = 1.0) -> float:
        """Lowest acceptable bid: max(starting bid, minimum bid, global floor)"""
        return max(self.starting_bid or 0, self.minimum_bid or 0, min_floor)

    def next_valid_bid(self, min_floor: float = 1.0) -> float:
        """Smallest price a new bid must offer"""
        floor = self.floor(min_floor)
        if self.current_highest_bidder is None:
            return floor
        return max(self.current_highest_amount + self.bid_increment, floor)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expiry_date is None:
            return False
        now = now or datetime.utcnow()
        return now > self.expiry_date

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "auction_id": self.auction_id,
            "seller_id": self.seller_id,
            "title": self.title,
            "description": self.description,
            "starting_bid": self.starting_bid,
            "bid_increment": self.bid_increment,
            "minimum_bid": self.minimum_bid,
            "reserve_price": self.reserve_price,
            "buy_now_price": self.buy_now_price,
            "ad_life": self.ad_life,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "is_pause": self.is_pause,
            "status": self.status.value if isinstance(self.status, AuctionStatus) else self.status,
            "ad_status": self.ad_status.value if isinstance(self.ad_status, AdStatus) else self.ad_status,
            "current_highest_amount": self.current_highest_amount,
            "current_highest_bidder": self.current_highest_bidder,
            "total_bids": self.total_bids,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
