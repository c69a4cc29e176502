"""
Bid Model

Two independent status axes:
- status:       Leading / Outbid / Cancelled  (live ranking)
- offer_status: Pending / Offered / Accepted / Rejected  (post-expiry award)
"""
import enum
from datetime import datetime

from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, Index, CheckConstraint, Enum as SQLEnum

from auction_bidding.models import Base


class BidType(str, enum.Enum):
    MANUAL = "Manual"
    AUTOMATIC = "Automatic"


class BidStatus(str, enum.Enum):
    LEADING = "Leading"
    OUTBID = "Outbid"
    CANCELLED = "Cancelled"


class OfferStatus(str, enum.Enum):
    PENDING = "Pending"
    OFFERED = "Offered"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


ACTIVE_BID_STATUSES = (BidStatus.LEADING, BidStatus.OUTBID)


class Bid(Base):
    """Bid ledger entry"""

    __tablename__ = "bids"

    bid_id = Column(Integer, primary_key=True, index=True)
    auction_id = Column(Integer, ForeignKey("auctions.auction_id"), nullable=False, index=True)
    bidder_id = Column(Integer, nullable=False, index=True)
    bid_type = Column(SQLEnum(BidType), nullable=False, default=BidType.MANUAL)
    current_placed_amount = Column(Float, nullable=False)
    max_bid_amount = Column(Float, nullable=False)
    status = Column(SQLEnum(BidStatus), nullable=False, default=BidStatus.LEADING)
    offer_status = Column(SQLEnum(OfferStatus), nullable=False, default=OfferStatus.PENDING)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_bids_auction_status", "auction_id", "status"),
        Index("ix_bids_auction_offer_status", "auction_id", "offer_status"),
        CheckConstraint("current_placed_amount >= 1", name="ck_bids_placed_amount_min"),
        CheckConstraint("max_bid_amount >= current_placed_amount", name="ck_bids_ceiling_covers_amount"),
    )

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "bid_id": self.bid_id,
            "auction_id": self.auction_id,
            "bidder_id": self.bidder_id,
            "bid_type": self.bid_type.value if isinstance(self.bid_type, BidType) else self.bid_type,
            "current_placed_amount": self.current_placed_amount,
            "max_bid_amount": self.max_bid_amount,
            "status": self.status.value if isinstance(self.status, BidStatus) else self.status,
            "offer_status": self.offer_status.value if isinstance(self.offer_status, OfferStatus) else self.offer_status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
