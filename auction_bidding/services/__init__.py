"""
Business logic layer
"""
from auction_bidding.services.auction_service import AuctionService
from auction_bidding.services.bid_service import BidService, BidPlacementResult
from auction_bidding.services.expiry_service import ExpiryService
from auction_bidding.services.notification_service import NotificationDispatcher, NotificationService
from auction_bidding.services.settlement_service import SettlementService

__all__ = [
    "AuctionService",
    "BidService",
    "BidPlacementResult",
    "ExpiryService",
    "NotificationDispatcher",
    "NotificationService",
    "SettlementService",
]
