"""
Auction API Routes

Handles:
- Creating, updating and publishing auctions
- Moderation (approve / pause)
- Auction detail with the caller's rank, top bids
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auction_bidding.api.errors import SERVICE_ERRORS, to_http_exception
from auction_bidding.core.dependencies import get_db, get_auction_service, get_current_user_id
from auction_bidding.schemas import AuctionCreate, AuctionUpdate, AuctionPublish, AuctionModerationUpdate
from auction_bidding.services import AuctionService

router = APIRouter(prefix="/auctions", tags=["auctions"])


@router.post("", status_code=201)
def create_auction(
    request: AuctionCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: AuctionService = Depends(get_auction_service)
):
    """Create a new auction (the caller is the seller)"""
    try:
        auction = service.create_auction(db, seller_id=user_id, data=request)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e)

    return {
        "success": True,
        "message": "Auction created successfully",
        "auction": auction.to_dict()
    }


@router.get("/{auction_id}")
def get_auction(
    auction_id: int,
    user_id: Optional[int] = Query(None, description="Caller, to report their rank"),
    db: Session = Depends(get_db),
    service: AuctionService = Depends(get_auction_service)
):
    """Get auction with bid count and the caller's ledger rank"""
    try:
        return service.get_auction_detail(db, auction_id, user_id=user_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e)


@router.patch("/{auction_id}")
def update_auction(
    auction_id: int,
    request: AuctionUpdate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: AuctionService = Depends(get_auction_service)
):
    """Update allow-listed auction fields"""
    try:
        auction = service.update_auction(db, auction_id, seller_id=user_id, data=request)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e)

    return {
        "success": True,
        "message": "Auction updated successfully",
        "auction": auction.to_dict()
    }


@router.post("/{auction_id}/publish")
def publish_auction(
    auction_id: int,
    request: Optional[AuctionPublish] = None,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: AuctionService = Depends(get_auction_service)
):
    """Publish a Draft auction"""
    ad_life = request.ad_life if request else None
    try:
        auction = service.publish_auction(db, auction_id, seller_id=user_id, ad_life=ad_life)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e)

    return {
        "success": True,
        "message": "Auction published successfully",
        "auction": auction.to_dict()
    }


@router.patch("/{auction_id}/moderation")
def moderate_auction(
    auction_id: int,
    request: AuctionModerationUpdate,
    db: Session = Depends(get_db),
    service: AuctionService = Depends(get_auction_service)
):
    """
    Approve/reject or pause/resume an auction

    Body must carry exactly one of ad_status or is_pause.
    """
    try:
        auction = service.moderate_auction(db, auction_id, request)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e)

    return {
        "success": True,
        "message": "Auction updated successfully",
        "auction": auction.to_dict()
    }


@router.get("/{auction_id}/top-bids")
def get_top_bids(
    auction_id: int,
    db: Session = Depends(get_db),
    service: AuctionService = Depends(get_auction_service)
):
    """Winning bid, or the top three open bids with rank labels"""
    try:
        bids = service.get_top_bids(db, auction_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e)

    return {
        "auction_id": auction_id,
        "bids": bids
    }
