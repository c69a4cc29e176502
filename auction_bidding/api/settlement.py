"""
Settlement API Routes - post-expiry award of an auction
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auction_bidding.api.errors import SERVICE_ERRORS, to_http_exception
from auction_bidding.core.dependencies import get_db, get_settlement_service, get_current_user_id
from auction_bidding.schemas import BidResponse, OfferResolutionRequest
from auction_bidding.services import SettlementService

router = APIRouter(prefix="/auctions/{auction_id}/offer", tags=["settlement"])


@router.post("")
def promote_top_bid(
    auction_id: int,
    db: Session = Depends(get_db),
    service: SettlementService = Depends(get_settlement_service)
):
    """Mark the highest Pending bid as Offered"""
    try:
        bid = service.promote_top_bid(db, auction_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e)

    return {
        "success": True,
        "message": "Bid status updated to Offered",
        "bid": BidResponse.from_bid(bid)
    }


@router.post("/resolve")
def resolve_offer(
    auction_id: int,
    request: OfferResolutionRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: SettlementService = Depends(get_settlement_service)
):
    """Accept or reject the outstanding offer"""
    try:
        bid = service.resolve_offer(db, auction_id, request.offer_status, actor_id=user_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e)

    return {
        "success": True,
        "message": f"Offer {bid.offer_status.value.lower()}",
        "bid": BidResponse.from_bid(bid)
    }
