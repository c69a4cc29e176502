"""Pydantic schemas for Bid resources"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from auction_bidding.models.bid import BidType


class PlaceBidRequest(BaseModel):
    """
    Bid submission

    Amount rules are checked by the bid service so that every violation
    comes back as a 400 with its own message.
    """
    model_config = ConfigDict(populate_by_name=True)

    price: Optional[float] = None
    max_bid_amount: Optional[float] = Field(None, alias="maxBidAmount")
    bid_type: Optional[str] = Field(None, alias="bidType")


class BidPlacementResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auction_id: int = Field(..., alias="auctionId")
    bid_id: int = Field(..., alias="bidId")
    current_highest_amount: float = Field(..., alias="currentHighestAmount")
    current_highest_bidder: int = Field(..., alias="currentHighestBidder")
    is_leading: bool = Field(..., alias="isLeading")
    your_bid_type: BidType = Field(..., alias="yourBidType")
    minimum_bid: Optional[float] = Field(None, alias="minimumBid")
    next_valid_bid: float = Field(..., alias="nextValidBid")

    @classmethod
    def from_result(cls, result):
        """Convert BidPlacementResult to response"""
        return cls(
            auction_id=result.auction_id,
            bid_id=result.bid_id,
            current_highest_amount=result.current_highest_amount,
            current_highest_bidder=result.current_highest_bidder,
            is_leading=result.is_leading,
            your_bid_type=result.your_bid_type,
            minimum_bid=result.minimum_bid,
            next_valid_bid=result.next_valid_bid,
        )


class BidResponse(BaseModel):
    bid_id: int
    auction_id: int
    bidder_id: int
    bid_type: str
    current_placed_amount: float
    max_bid_amount: float
    status: str
    offer_status: str
    created_at: Optional[str] = None

    @classmethod
    def from_bid(cls, bid):
        return cls(**bid.to_dict())


class OfferResolutionRequest(BaseModel):
    # Free-form so an unknown value is reported as a 400 by the service
    offer_status: Optional[str] = None
