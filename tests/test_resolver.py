"""
Proxy-bid resolver tests
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

from auction_bidding.models import BidStatus
from auction_bidding.services.resolver import rank_bids, resolve_winner

T0 = datetime(2024, 1, 1, 12, 0, 0)


def make_bid(bid_id, bidder_id, placed, ceiling=None, offset=0, status=BidStatus.OUTBID):
    return SimpleNamespace(
        bid_id=bid_id,
        bidder_id=bidder_id,
        current_placed_amount=placed,
        max_bid_amount=ceiling if ceiling is not None else placed,
        created_at=T0 + timedelta(seconds=offset),
        status=status,
    )


def test_no_bids_no_winner():
    assert resolve_winner([], increment=5, floor=1) is None


def test_only_cancelled_bids_no_winner():
    bids = [make_bid(1, 10, 50, status=BidStatus.CANCELLED)]
    assert resolve_winner(bids, increment=5, floor=1) is None


def test_single_bidder_pays_placed_amount():
    """A(placed=20, ceiling=20) on floor=10 resolves to 20"""
    resolution = resolve_winner([make_bid(1, 10, 20)], increment=5, floor=10)

    assert resolution.winning_bid_id == 1
    assert resolution.winning_user_id == 10
    assert resolution.winning_amount == 20


def test_single_bidder_raised_to_floor():
    resolution = resolve_winner([make_bid(1, 10, 5, ceiling=50)], increment=5, floor=10)
    assert resolution.winning_amount == 10


def test_proxy_pays_one_increment_over_runner_up():
    """A(ceiling=100) then B(ceiling=80, placed=50), increment 5 -> A at 85"""
    bids = [
        make_bid(1, 10, 10, ceiling=100, offset=0),
        make_bid(2, 20, 50, ceiling=80, offset=1),
    ]

    resolution = resolve_winner(bids, increment=5, floor=1)

    assert resolution.winning_user_id == 10
    assert resolution.winning_amount == 85


def test_proxy_capped_at_winner_ceiling():
    bids = [
        make_bid(1, 10, 10, ceiling=100, offset=0),
        make_bid(2, 20, 98, ceiling=98, offset=1),
    ]

    resolution = resolve_winner(bids, increment=5, floor=1)

    assert resolution.winning_user_id == 10
    assert resolution.winning_amount == 100


def test_proxy_never_below_floor():
    bids = [
        make_bid(1, 10, 2, ceiling=3, offset=0),
        make_bid(2, 20, 2, ceiling=2, offset=1),
    ]

    resolution = resolve_winner(bids, increment=1, floor=50)
    assert resolution.winning_amount == 50


def test_equal_ceilings_earliest_wins():
    bids = [
        make_bid(2, 20, 100, ceiling=100, offset=5),
        make_bid(1, 10, 100, ceiling=100, offset=0),
    ]

    resolution = resolve_winner(bids, increment=5, floor=1)

    assert resolution.winning_user_id == 10
    assert resolution.winning_amount == 100


def test_cancelled_bids_ignored():
    bids = [
        make_bid(1, 10, 10, ceiling=500, offset=0, status=BidStatus.CANCELLED),
        make_bid(2, 20, 40, ceiling=60, offset=1),
        make_bid(3, 30, 45, ceiling=45, offset=2),
    ]

    resolution = resolve_winner(bids, increment=5, floor=1)

    assert resolution.winning_user_id == 20
    assert resolution.winning_amount == 50


def test_rank_bids_order():
    bids = [
        make_bid(1, 10, 10, ceiling=30, offset=0),
        make_bid(2, 20, 10, ceiling=90, offset=1),
        make_bid(3, 30, 10, ceiling=90, offset=2),
    ]

    assert [bid.bid_id for bid in rank_bids(bids)] == [2, 3, 1]


def test_resolver_does_not_mutate_bids():
    bids = [
        make_bid(1, 10, 10, ceiling=100, offset=0),
        make_bid(2, 20, 50, ceiling=80, offset=1),
    ]

    resolve_winner(bids, increment=5, floor=1)

    assert bids[0].current_placed_amount == 10
    assert bids[1].current_placed_amount == 50
