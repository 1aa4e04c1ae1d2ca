"""Unit tests for the settlement math."""

import pytest

from core.constants import ONE_UNIT
from core.exceptions import InvalidParameter
from raffles.settlement import (
    assign_prizes,
    compute_payout,
    price_fed_amount,
    ticket_owner_slot,
    treasury_split,
)


def test_treasury_split():
    assert treasury_split(1000, 5) == (50, 950)
    assert treasury_split(999, 5) == (49, 950)
    assert treasury_split(10, 0) == (0, 10)
    with pytest.raises(InvalidParameter):
        treasury_split(10, 101)


def test_compute_payout_parts_add_up():
    """Test rounding dust always ends with the creator."""
    payout = compute_payout(1003, 5, [20, 33])
    assert payout.treasury_amount == 50
    assert payout.available_amount == 953
    assert payout.beneficiary_amounts == (190, 314)
    assert payout.creator_amount == 953 - 190 - 314
    assert payout.total == 1003


def test_compute_payout_rejects_excess_shares():
    with pytest.raises(InvalidParameter):
        compute_payout(100, 5, [60, 50])


def test_ticket_owner_slot_ranges():
    """Test every ticket maps to the slot that bought it."""
    slots = [2, 1, 3]
    assert [ticket_owner_slot(slots, index) for index in range(6)] == [0, 0, 1, 2, 2, 2]
    with pytest.raises(InvalidParameter):
        ticket_owner_slot(slots, 6)
    with pytest.raises(InvalidParameter):
        ticket_owner_slot([], 0)


def test_assign_prizes_round_robin():
    assert assign_prizes(3, ["a", "b"]) == ["a", "b", "a"]
    assert assign_prizes(1, ["a", "b"]) == ["a"]
    with pytest.raises(InvalidParameter):
        assign_prizes(1, [])


def test_price_fed_amount():
    """Test a 1 USD ticket with the token at 2 USD costs half a token."""
    assert price_fed_amount(ONE_UNIT, 2 * ONE_UNIT) == ONE_UNIT // 2
    with pytest.raises(InvalidParameter):
        price_fed_amount(ONE_UNIT, 0)
