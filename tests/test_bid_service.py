"""
Bid placement tests

Covers every precondition, proxy resolution through the service and the
ledger invariants (single leader, monotonic price).
"""
from datetime import timedelta

import pytest
import redis

from auction_bidding.models import Auction, AuctionStatus, Bid, BidStatus, BidType, OfferStatus
from auction_bidding.services import BidService, NotificationDispatcher
from auction_bidding.services.exceptions import (
    BidValidationError,
    AuctionNotFoundError,
    AuctionNotOpenError,
    AuctionExpiredError,
    AuctionPausedError,
    BidBelowFloorError,
    BidTooLowError,
    AlreadyLeadingError,
    BidNotFoundError,
    BidNotCancellableError,
    StateConflictError,
)
from auction_bidding.services.notification_service import BID_SUPERSEDED_TITLE


def leading_bids(db, auction_id):
    return db.query(Bid).filter(Bid.auction_id == auction_id, Bid.status == BidStatus.LEADING).all()


# ============================================================================
# VALIDATION
# ============================================================================
class TestBidValidation:

    @pytest.mark.parametrize("price", [None, 0, -5, float("inf"), float("-inf"), float("nan")])
    def test_invalid_price(self, price):
        with pytest.raises(BidValidationError, match="Invalid bid price"):
            BidService.validate_bid_request(price, None, "Manual")

    def test_automatic_requires_max(self):
        with pytest.raises(BidValidationError, match="Max bid amount is required"):
            BidService.validate_bid_request(10, None, "Automatic")

    @pytest.mark.parametrize("max_bid_amount", [float("inf"), float("nan")])
    def test_non_finite_max_rejected(self, max_bid_amount):
        with pytest.raises(BidValidationError, match="finite"):
            BidService.validate_bid_request(10, max_bid_amount, "Automatic")

    def test_max_below_price(self):
        with pytest.raises(BidValidationError) as exc_info:
            BidService.validate_bid_request(50, 40, "Automatic")

        assert exc_info.value.details["nextValidMaxBid"] == 50

    def test_unknown_bid_type(self):
        with pytest.raises(BidValidationError, match="Invalid bid type"):
            BidService.validate_bid_request(10, None, "Sealed")

    def test_manual_ceiling_is_price(self):
        bid_type, ceiling = BidService.validate_bid_request(25, 999, None)

        assert bid_type == BidType.MANUAL
        assert ceiling == 25

    def test_automatic_ceiling_is_max(self):
        bid_type, ceiling = BidService.validate_bid_request(25, 60, "Automatic")

        assert bid_type == BidType.AUTOMATIC
        assert ceiling == 60

    def test_validation_happens_before_state_is_read(self, db, bid_service):
        # Auction 999 does not exist: validation must fail first
        with pytest.raises(BidValidationError):
            bid_service.place_bid(db, 999, bidder_id=1, price=0)


# ============================================================================
# PRECONDITIONS
# ============================================================================
class TestPlacementPreconditions:

    def test_auction_not_found(self, db, bid_service):
        with pytest.raises(AuctionNotFoundError):
            bid_service.place_bid(db, 12345, bidder_id=1, price=10)

    def test_draft_auction_rejected(self, db, bid_service, make_auction):
        auction = make_auction(status=AuctionStatus.DRAFT)

        with pytest.raises(AuctionNotOpenError):
            bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)

    def test_expired_auction_rejected_without_ledger_write(self, db, bid_service, make_auction):
        auction = make_auction(expires_in=timedelta(seconds=-1))

        with pytest.raises(AuctionExpiredError):
            bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=1_000_000)

        assert db.query(Bid).count() == 0

    def test_paused_auction_rejected(self, db, bid_service, make_auction):
        auction = make_auction(is_pause=True)

        with pytest.raises(AuctionPausedError):
            bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)

    def test_expired_beats_paused(self, db, bid_service, make_auction):
        auction = make_auction(is_pause=True, expires_in=timedelta(seconds=-1))

        with pytest.raises(AuctionExpiredError):
            bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)

    def test_below_floor_rejected(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=10, minimum_bid=20)

        with pytest.raises(BidBelowFloorError) as exc_info:
            bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=15)

        assert exc_info.value.details["floor"] == 20
        assert db.query(Bid).count() == 0

    def test_next_valid_bid_reported(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=100, bid_increment=10)
        bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=100)

        with pytest.raises(BidTooLowError) as exc_info:
            bid_service.place_bid(db, auction.auction_id, bidder_id=2, price=105)

        assert exc_info.value.details["nextValidBid"] == 110
        assert db.query(Bid).count() == 1

    def test_leader_cannot_outbid_self(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=10, bid_increment=5)
        bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)

        with pytest.raises(AlreadyLeadingError):
            bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=50)

        assert db.query(Bid).count() == 1

    def test_state_conflicts_share_base_class(self, db, bid_service, make_auction):
        auction = make_auction(is_pause=True)

        with pytest.raises(StateConflictError):
            bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)

    def test_rejection_rolls_back_session(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=50)

        with pytest.raises(BidBelowFloorError):
            bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)

        # Session is still usable afterwards
        result = bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=50)
        assert result.is_leading


# ============================================================================
# RESOLUTION THROUGH THE SERVICE
# ============================================================================
class TestPlacementResolution:

    def test_first_bid_may_equal_floor(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=10, bid_increment=5)

        result = bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)

        assert result.is_leading
        assert result.current_highest_amount == 10
        assert result.current_highest_bidder == 1
        assert result.next_valid_bid == 15

    def test_single_bidder_amount(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=10, bid_increment=5)

        result = bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=20)

        assert result.current_highest_amount == 20
        db.refresh(auction)
        assert auction.current_highest_amount == 20
        assert auction.current_highest_bidder == 1
        assert auction.total_bids == 1

    def test_proxy_keeps_higher_ceiling_leading(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=1, bid_increment=5)

        first = bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10,
                                      max_bid_amount=100, bid_type="Automatic")
        second = bid_service.place_bid(db, auction.auction_id, bidder_id=2, price=50,
                                       max_bid_amount=80, bid_type="Automatic")

        assert second.is_leading is False
        assert second.current_highest_bidder == 1
        assert second.current_highest_amount == 85
        assert second.your_bid_type == BidType.AUTOMATIC

        leader = db.get(Bid, first.bid_id)
        challenger = db.get(Bid, second.bid_id)
        assert leader.status == BidStatus.LEADING
        assert leader.current_placed_amount == 85
        assert challenger.status == BidStatus.OUTBID
        assert challenger.current_placed_amount == 50

    def test_new_higher_ceiling_takes_lead(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=1, bid_increment=5)

        bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10,
                              max_bid_amount=60, bid_type="Automatic")
        result = bid_service.place_bid(db, auction.auction_id, bidder_id=2, price=20,
                                       max_bid_amount=200, bid_type="Automatic")

        assert result.is_leading
        assert result.current_highest_amount == 65

    def test_new_bid_is_pending_offer(self, db, bid_service, make_auction):
        auction = make_auction()

        result = bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=5)

        assert db.get(Bid, result.bid_id).offer_status == OfferStatus.PENDING

    def test_single_leader_invariant(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=10, bid_increment=1)

        prices = [(1, 10, 40), (2, 15, 30), (3, 45, 45), (4, 60, 120), (2, 80, 80)]
        for bidder_id, price, ceiling in prices:
            bid_service.place_bid(db, auction.auction_id, bidder_id=bidder_id, price=price,
                                  max_bid_amount=ceiling, bid_type="Automatic")
            assert len(leading_bids(db, auction.auction_id)) == 1

        db.refresh(auction)
        leader = leading_bids(db, auction.auction_id)[0]
        assert leader.bidder_id == auction.current_highest_bidder == 4
        assert auction.current_highest_amount == 81

    def test_price_is_monotonic(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=5, bid_increment=2)

        amounts = []
        sequence = [(1, 5, 50), (2, 7, 20), (3, 30, 49), (2, 53, 53), (1, 70, 200)]
        for bidder_id, price, ceiling in sequence:
            result = bid_service.place_bid(db, auction.auction_id, bidder_id=bidder_id, price=price,
                                           max_bid_amount=ceiling, bid_type="Automatic")
            amounts.append(result.current_highest_amount)

        assert all(later > earlier for earlier, later in zip(amounts, amounts[1:]))

    def test_rebid_keeps_earlier_bids(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=1, bid_increment=1)

        bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)
        bid_service.place_bid(db, auction.auction_id, bidder_id=2, price=20)
        bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=30)

        mine = db.query(Bid).filter(Bid.auction_id == auction.auction_id, Bid.bidder_id == 1).all()
        assert len(mine) == 2
        assert all(bid.status != BidStatus.CANCELLED for bid in mine)


# ============================================================================
# NOTIFICATIONS
# ============================================================================
class TestPlacementNotifications:

    def test_bidder_never_notified_of_own_bid(self, db, bid_service, make_auction, drain_jobs):
        auction = make_auction(seller_id=100)

        for bidder_id, price in [(1, 5), (2, 10), (3, 15)]:
            bid_service.place_bid(db, auction.auction_id, bidder_id=bidder_id, price=price)
            jobs = drain_jobs()

            assert len(jobs) == 1
            assert bidder_id not in jobs[0]["user_ids"]
            assert jobs[0]["title"] == BID_SUPERSEDED_TITLE

        assert sorted(jobs[0]["user_ids"]) == [1, 2, 100]

    def test_seller_notified_of_first_bid(self, db, bid_service, make_auction, drain_jobs):
        auction = make_auction(seller_id=100)

        bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=5)

        jobs = drain_jobs()
        assert jobs[0]["user_ids"] == [100]
        assert jobs[0]["auction_id"] == auction.auction_id

    def test_notification_failure_does_not_fail_bid(self, db, lock, settings, make_auction):
        class BrokenQueue:
            def enqueue(self, *args, **kwargs):
                raise redis.ConnectionError("queue down")

        service = BidService(lock, NotificationDispatcher(BrokenQueue()), settings)
        auction = make_auction()

        result = service.place_bid(db, auction.auction_id, bidder_id=1, price=5)

        assert result.is_leading
        assert db.query(Bid).count() == 1


# ============================================================================
# CANCELLATION AND QUERIES
# ============================================================================
class TestCancellation:

    def test_cancel_outbid_bid(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=1, bid_increment=1)
        outbid = bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)
        bid_service.place_bid(db, auction.auction_id, bidder_id=2, price=20)

        bid = bid_service.cancel_bid(db, auction.auction_id, outbid.bid_id, user_id=1)

        assert bid.status == BidStatus.CANCELLED
        db.refresh(auction)
        assert auction.current_highest_amount == 11
        assert auction.current_highest_bidder == 2

    def test_cancel_leading_bid_refused(self, db, bid_service, make_auction):
        auction = make_auction()
        leading = bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)

        with pytest.raises(BidNotCancellableError):
            bid_service.cancel_bid(db, auction.auction_id, leading.bid_id, user_id=1)

    def test_cancel_someone_elses_bid(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=1, bid_increment=1)
        outbid = bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)
        bid_service.place_bid(db, auction.auction_id, bidder_id=2, price=20)

        with pytest.raises(BidNotFoundError):
            bid_service.cancel_bid(db, auction.auction_id, outbid.bid_id, user_id=2)

    def test_cancel_after_expiry_refused(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=1, bid_increment=1)
        outbid = bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10)
        bid_service.place_bid(db, auction.auction_id, bidder_id=2, price=20)

        auction = db.get(Auction, auction.auction_id)
        auction.expiry_date = auction.start_date - timedelta(seconds=1)
        db.commit()

        with pytest.raises(BidNotCancellableError):
            bid_service.cancel_bid(db, auction.auction_id, outbid.bid_id, user_id=1)

    def test_cancelled_bid_leaves_resolution(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=1, bid_increment=5)
        strong = bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=10,
                                       max_bid_amount=100, bid_type="Automatic")
        weak = bid_service.place_bid(db, auction.auction_id, bidder_id=2, price=40,
                                     max_bid_amount=90, bid_type="Automatic")
        assert weak.current_highest_amount == 95

        bid_service.cancel_bid(db, auction.auction_id, weak.bid_id, user_id=2)
        result = bid_service.place_bid(db, auction.auction_id, bidder_id=3, price=100)

        # Cancelled ceiling of 90 no longer counts; tie at 100 goes to the earlier bid
        assert result.current_highest_bidder == 1
        assert result.current_highest_amount == 100
        assert db.get(Bid, strong.bid_id).status == BidStatus.LEADING


class TestLedgerQueries:

    def test_history_newest_first(self, db, bid_service, make_auction):
        auction = make_auction(starting_bid=1, bid_increment=1)
        ids = [
            bid_service.place_bid(db, auction.auction_id, bidder_id=bidder, price=price).bid_id
            for bidder, price in [(1, 5), (2, 10), (3, 15)]
        ]

        history = BidService.get_bid_history(db, auction.auction_id)

        assert [bid.bid_id for bid in history] == list(reversed(ids))

    def test_user_bids_filter_by_offer_status(self, db, bid_service, make_auction):
        first = make_auction()
        second = make_auction()
        bid_service.place_bid(db, first.auction_id, bidder_id=1, price=5)
        offered = bid_service.place_bid(db, second.auction_id, bidder_id=1, price=5)

        bid = db.get(Bid, offered.bid_id)
        bid.offer_status = OfferStatus.OFFERED
        db.commit()

        assert len(BidService.get_user_bids(db, 1)) == 2
        only_offered = BidService.get_user_bids(db, 1, offer_status=OfferStatus.OFFERED)
        assert [bid.bid_id for bid in only_offered] == [offered.bid_id]
