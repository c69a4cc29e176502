"""
Notification API Routes
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auction_bidding.api.errors import SERVICE_ERRORS, to_http_exception
from auction_bidding.core.dependencies import get_db, get_current_user_id
from auction_bidding.schemas import MarkReadRequest
from auction_bidding.services import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def list_notifications(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """The caller's notifications, newest first"""
    notifications = NotificationService.list_for_user(db, user_id)
    unread = sum(1 for n in notifications if not n.is_read)

    return {
        "total": len(notifications),
        "unread": unread,
        "notifications": [n.to_dict() for n in notifications]
    }


@router.patch("/read")
def mark_read(
    request: MarkReadRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Mark one notification (id) or all of them (all_read=true) as read"""
    try:
        result = NotificationService.mark_read(
            db, user_id, notification_id=request.id, all_read=request.all_read
        )
    except SERVICE_ERRORS as e:
        raise to_http_exception(e)

    if request.all_read:
        return {"success": True, "message": "All notifications marked as read", "updated": result}

    return {"success": True, "message": "Notification marked as read", "notification": result.to_dict()}
