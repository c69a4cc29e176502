"""Pydantic schemas for Auction resources"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from auction_bidding.models.auction import AuctionStatus, AdStatus


class AuctionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=80)
    description: Optional[str] = None
    starting_bid: float = 1.0
    bid_increment: float = 1.0
    minimum_bid: Optional[float] = None
    reserve_price: Optional[float] = None
    buy_now_price: Optional[float] = None
    ad_life: Optional[int] = None  # days
    status: AuctionStatus = AuctionStatus.DRAFT


class AuctionUpdate(BaseModel):
    """
    Fields a seller may change

    Anything not listed here is rejected instead of copied onto the auction.
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=80)
    description: Optional[str] = None
    starting_bid: Optional[float] = None
    bid_increment: Optional[float] = None
    minimum_bid: Optional[float] = None
    reserve_price: Optional[float] = None
    buy_now_price: Optional[float] = None


class AuctionPublish(BaseModel):
    ad_life: Optional[int] = None  # days


class AuctionModerationUpdate(BaseModel):
    """Exactly one of ad_status / is_pause per request"""
    model_config = ConfigDict(extra="forbid")

    ad_status: Optional[AdStatus] = None
    is_pause: Optional[bool] = None
