"""
Database Models
"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import models after Base is defined
from auction_bidding.models.auction import Auction, AuctionStatus, AdStatus  # noqa: E402
from auction_bidding.models.bid import Bid, BidType, BidStatus, OfferStatus  # noqa: E402
from auction_bidding.models.notification import Notification  # noqa: E402

__all__ = [
    "Base",
    "Auction",
    "AuctionStatus",
    "AdStatus",
    "Bid",
    "BidType",
    "BidStatus",
    "OfferStatus",
    "Notification",
]
