"""
Bid API Routes

Handles:
- Placing bids (manual and proxy)
- Cancelling bids
- Bid history and "my bids"
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auction_bidding.api.errors import SERVICE_ERRORS, to_http_exception
from auction_bidding.core.dependencies import get_db, get_bid_service, get_current_user_id
from auction_bidding.models import OfferStatus
from auction_bidding.schemas import PlaceBidRequest, BidPlacementResponse, BidResponse
from auction_bidding.services import BidService

router = APIRouter(tags=["bids"])


@router.post(
    "/auctions/{auction_id}/bids",
    response_model=BidPlacementResponse,
    status_code=201
)
def place_bid(
    auction_id: int,
    request: PlaceBidRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: BidService = Depends(get_bid_service)
):
    """
    Place a bid

    Automatic bids carry maxBidAmount, the proxy ceiling; the placed
    amount is raised automatically up to it as competitors bid.
    """
    try:
        result = service.place_bid(
            db,
            auction_id=auction_id,
            bidder_id=user_id,
            price=request.price,
            max_bid_amount=request.max_bid_amount,
            bid_type=request.bid_type,
        )
    except SERVICE_ERRORS as e:
        raise to_http_exception(e)

    return BidPlacementResponse.from_result(result)


@router.get("/auctions/{auction_id}/bids")
def get_bid_history(
    auction_id: int,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db)
):
    """Get bid history for auction, newest first"""
    bids = BidService.get_bid_history(db, auction_id, limit=limit)

    return {
        "auction_id": auction_id,
        "total": len(bids),
        "bids": [BidResponse.from_bid(bid) for bid in bids]
    }


@router.delete("/auctions/{auction_id}/bids/{bid_id}")
def cancel_bid(
    auction_id: int,
    bid_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: BidService = Depends(get_bid_service)
):
    """Cancel one of your own non-leading bids"""
    try:
        bid = service.cancel_bid(db, auction_id, bid_id, user_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e)

    return {
        "success": True,
        "message": "Bid cancelled",
        "bid": BidResponse.from_bid(bid)
    }


@router.get("/bids/me")
def get_my_bids(
    offer_status: Optional[OfferStatus] = Query(None),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """The caller's bids across auctions, optionally filtered by offer status"""
    bids = BidService.get_user_bids(db, user_id, offer_status=offer_status)

    return {
        "total": len(bids),
        "bids": [BidResponse.from_bid(bid) for bid in bids]
    }
