"""Pydantic request/response schemas"""
from auction_bidding.schemas.auction import (
    AuctionCreate,
    AuctionUpdate,
    AuctionModerationUpdate,
    AuctionPublish,
)
from auction_bidding.schemas.bid import (
    PlaceBidRequest,
    BidPlacementResponse,
    BidResponse,
    OfferResolutionRequest,
)
from auction_bidding.schemas.notification import MarkReadRequest

__all__ = [
    "AuctionCreate",
    "AuctionUpdate",
    "AuctionModerationUpdate",
    "AuctionPublish",
    "PlaceBidRequest",
    "BidPlacementResponse",
    "BidResponse",
    "OfferResolutionRequest",
    "MarkReadRequest",
]
