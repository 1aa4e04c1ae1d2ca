"""Settlement math shared by every raffle flavour.

All functions are pure integer arithmetic; rounding remainders always go
to the last party (the creator, or the pot for yolo raffles).
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from itertools import accumulate
from typing import List, Sequence, Tuple

from core.constants import HubDefaults, ONE_UNIT
from core.exceptions import InvalidParameter


@dataclass(frozen=True)
class Payout:
    """Split of a tickets vault balance."""
    treasury_amount: int
    available_amount: int
    beneficiary_amounts: Tuple[int, ...]
    creator_amount: int

    @property
    def total(self) -> int:
        return self.treasury_amount + sum(self.beneficiary_amounts) + self.creator_amount


def treasury_split(balance: int, cut: int) -> Tuple[int, int]:
    """Return ``(treasury_amount, available_amount)`` for a pot."""
    if not 0 <= cut <= HubDefaults.MAX_PERCENTAGE:
        raise InvalidParameter(f"cut {cut} is not a percentage")
    treasury_amount = balance * cut // HubDefaults.MAX_PERCENTAGE
    return treasury_amount, balance - treasury_amount


def compute_payout(balance: int, cut: int, shares: Sequence[int]) -> Payout:
    """Split ``balance`` between treasury, beneficiaries and creator.

    Args:
        balance: Tickets vault balance at settlement
        cut: Treasury percentage
        shares: Beneficiary percentages of the amount left after the cut

    Returns:
        Payout whose parts always add up to ``balance``
    """
    if sum(shares) > HubDefaults.MAX_PERCENTAGE:
        raise InvalidParameter(f"beneficiary shares {list(shares)} exceed 100")
    treasury_amount, available = treasury_split(balance, cut)
    beneficiary_amounts = tuple(available * share // HubDefaults.MAX_PERCENTAGE for share in shares)
    return Payout(
        treasury_amount=treasury_amount,
        available_amount=available,
        beneficiary_amounts=beneficiary_amounts,
        creator_amount=available - sum(beneficiary_amounts),
    )


def ticket_owner_slot(slot_tickets: Sequence[int], ticket_index: int) -> int:
    """Map a zero-based ticket index to the entry slot that bought it.

    Slots hold consecutive ticket ranges in entry order, so every ticket
    has the same chance of being drawn.
    """
    bounds = list(accumulate(slot_tickets))
    if not bounds or not 0 <= ticket_index < bounds[-1]:
        raise InvalidParameter(f"ticket {ticket_index} is out of range")
    return bisect_right(bounds, ticket_index)


def assign_prizes(prize_count: int, winners: Sequence[str]) -> List[str]:
    """Winner of each prize, round-robin over the drawn winners."""
    if not winners:
        raise InvalidParameter("no winners to assign prizes to")
    return [winners[k % len(winners)] for k in range(prize_count)]


def price_fed_amount(ticket_price: int, feed_value: int) -> int:
    """Token amount worth ``ticket_price`` at a feed value of ``feed_value``."""
    if feed_value <= 0:
        raise InvalidParameter(f"feed value {feed_value} cannot price tickets")
    return ticket_price * ONE_UNIT // feed_value
