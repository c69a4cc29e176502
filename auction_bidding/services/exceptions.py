"""
Bidding service exceptions

Every error carries a human-readable message plus the computed values a
client needs to retry correctly (e.g. nextValidBid).
"""
from typing import Any, Dict, Optional


class BiddingError(Exception):
    """Base exception for bidding service errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_detail(self) -> Dict[str, Any]:
        return {"message": self.message, **self.details}


# ==================== Validation (malformed input) ====================

class InvalidRequestError(BiddingError):
    """Raised when a request is malformed, before any state is read"""
    pass


class BidValidationError(InvalidRequestError):
    """Raised when a bid submission is malformed"""
    pass


# ==================== State conflicts ====================

class StateConflictError(BiddingError):
    """Raised when a request is well-formed but the current state refuses it"""
    pass


class AuctionNotOpenError(StateConflictError):
    """Raised when bidding on an auction that is not published"""
    pass


class AuctionExpiredError(StateConflictError):
    """Raised when bidding after the expiry date"""
    pass


class AuctionPausedError(StateConflictError):
    """Raised when bidding on a paused auction"""
    pass


class BidBelowFloorError(StateConflictError):
    """Raised when the price is below the auction floor"""
    pass


class BidTooLowError(StateConflictError):
    """Raised when the price does not reach the next valid bid"""
    pass


class AlreadyLeadingError(StateConflictError):
    """Raised when the current leader bids again"""
    pass


class BidNotCancellableError(StateConflictError):
    """Raised when a bid cannot be cancelled in its current state"""
    pass


class AuctionUpdateError(StateConflictError):
    """Raised when an auction update is refused"""
    pass


# ==================== Not found ====================

class NotFoundError(BiddingError):
    """Base for missing resources"""
    pass


class AuctionNotFoundError(NotFoundError):
    pass


class BidNotFoundError(NotFoundError):
    pass


class NoPendingBidError(NotFoundError):
    """Raised when there is no Pending bid to promote to Offered"""
    pass


class NoOfferedBidError(NotFoundError):
    """Raised when there is no Offered bid to resolve"""
    pass


class NotificationNotFoundError(NotFoundError):
    pass


# ==================== Concurrency ====================

class ConcurrencyConflictError(BiddingError):
    """Raised when internal retries were exhausted while racing other bidders"""
    pass
