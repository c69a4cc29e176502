"""
Proxy-bid resolver

Sealed second-price resolution over the active bid set:
- highest max_bid_amount wins (earliest placement wins ties)
- the winner pays one increment over the runner-up's ceiling, capped at
  their own ceiling and never below the auction floor
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from auction_bidding.models.bid import BidStatus


@dataclass(frozen=True)
class Resolution:
    winning_bid_id: int
    winning_user_id: int
    winning_amount: float


def _ranking_key(bid):
    # Highest ceiling first, then earliest placement, then insertion order
    placed_at = bid.created_at or datetime.max
    return (-bid.max_bid_amount, placed_at, bid.bid_id or 0)


def rank_bids(bids: Iterable) -> list:
    """Order non-cancelled bids from strongest to weakest"""
    active = [bid for bid in bids if bid.status != BidStatus.CANCELLED]
    return sorted(active, key=_ranking_key)


def resolve_winner(bids: Iterable, increment: float, floor: float) -> Optional[Resolution]:
    """
    Compute the leader and the price they pay

    Args:
        bids: bids for one auction (objects exposing bid_id, bidder_id,
              max_bid_amount, current_placed_amount, created_at, status)
        increment: auction bid increment
        floor: max(starting bid, minimum bid)

    Returns:
        Resolution, or None when there is no active bid
    """
    ranked = rank_bids(bids)
    if not ranked:
        return None

    highest = ranked[0]

    if len(ranked) == 1:
        amount = max(floor, highest.current_placed_amount)
    else:
        runner_up = ranked[1]
        amount = max(floor, min(highest.max_bid_amount, runner_up.max_bid_amount + increment))

    return Resolution(
        winning_bid_id=highest.bid_id,
        winning_user_id=highest.bidder_id,
        winning_amount=amount,
    )
