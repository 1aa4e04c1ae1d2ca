"""Lifecycle tests for traditional raffles."""

import random

import pytest
from eth_abi import encode

from conftest import end, enter
from core.constants import CancelationReason, ONE_UNIT, QrngSignatures, RaffleStatus, TokenType
from core.exceptions import (
    BatchLengthMismatch,
    CallerNotCreator,
    CallerNotOwner,
    FeedNotRegistered,
    InvalidParameter,
    InvalidRaffleStatus,
    ParameterAlreadySet,
    ParameterNotSet,
    RaffleEnded,
    RaffleNotConfigurable,
    RaffleNotEnded,
    RaffleNotStarted,
    RequestNotFulfilled,
)
from ledger import PriceFeed
from raffles import Metadata
from raffles.settlement import ticket_owner_slot
from randomness import function_selector, serve_pending


def settle(market, raffle, rng):
    raffle.close(sender=market.deployer)
    serve_pending(market.provider, market.airnode, rng)
    return raffle.finish(sender=market.deployer)


def test_configuration_before_open(chain, make_raffle, creator, players, collection):
    """Test winners and metadata are editable only by the creator, only before opening."""
    raffle = make_raffle()
    metadata = Metadata(digest="0x" + "ab" * 32, hash_function=18, size=32)

    raffle.update_winners(2, sender=creator)
    raffle.update_metadata(metadata, sender=creator)
    assert raffle.storage.winner_number == 2
    assert raffle.storage.metadata == metadata
    with pytest.raises(CallerNotCreator):
        raffle.update_winners(1, sender=players[0])

    with pytest.raises(RaffleNotStarted):
        raffle.open([collection.address], [1], sender=creator)
    chain.advance(10)
    raffle.open([collection.address, collection.address], [1, 2], sender=creator)

    with pytest.raises(RaffleNotConfigurable):
        raffle.update_winners(1, sender=creator)
    with pytest.raises(RaffleNotConfigurable):
        raffle.update_metadata(metadata, sender=creator)


def test_open_locks_prizes(chain, market, make_raffle, creator, collection):
    """Test opening moves the prizes into a vault owned by the raffle."""
    raffle = make_raffle()
    chain.advance(10)
    with pytest.raises(BatchLengthMismatch):
        raffle.open([collection.address], [1, 2], sender=creator)
    with pytest.raises(InvalidParameter):
        raffle.open([], [], sender=creator)

    raffle.open([collection.address], [1], sender=creator)

    assert raffle.status == RaffleStatus.OPEN
    prizes = market.vault_factory.vault(raffle.storage.prizes_vault_id)
    assert prizes.owner() == raffle.address
    assert collection.owner_of(1) == prizes.address
    assert raffle.tokens(0) == collection.address and raffle.ids(0) == 1
    with pytest.raises(InvalidRaffleStatus):
        raffle.open([collection.address], [2], sender=creator)


def test_enter_rules(chain, market, make_raffle, open_raffle, players):
    """Test entries need an open raffle, the exact price and a running window."""
    pending = make_raffle()
    with pytest.raises(InvalidRaffleStatus):
        enter(pending, players[0], 1)

    raffle = open_raffle()
    with pytest.raises(InvalidParameter):
        raffle.enter(players[0], 2, sender=players[0], value=raffle.ticket_amount())
    with pytest.raises(InvalidParameter):
        enter(raffle, players[0], 0)

    enter(raffle, players[0], 2)
    enter(raffle, players[0], 1)
    # tickets bought for someone else
    raffle.enter(players[1], 1, sender=players[2], value=raffle.ticket_amount())

    assert raffle.entries(players[0]) == 3
    assert raffle.entries(players[1]) == 1
    assert raffle.entries(players[2]) == 0
    assert raffle.total_entries == 4
    assert raffle.total_participants == 3
    assert raffle.pot_balance() == 4 * raffle.ticket_amount()

    end(chain, raffle)
    with pytest.raises(RaffleEnded):
        enter(raffle, players[0], 1)


def test_close_requires_end(chain, open_raffle, players, market):
    raffle = open_raffle()
    enter(raffle, players[0], 1)
    with pytest.raises(RaffleNotEnded):
        raffle.close(sender=market.deployer)


@pytest.mark.parametrize("with_beneficiary", [False, True])
def test_single_winner_native_settlement(
    chain, market, open_raffle, creator, players, collection, rng, with_beneficiary
):
    """Test a 5% cut on 3 units and the 90/10 creator/beneficiary split."""
    raffle = open_raffle(ticket_price=ONE_UNIT)
    beneficiary = chain.create_account("charity")
    if with_beneficiary:
        raffle.set_beneficiaries([beneficiary], [10], sender=creator)
    enter(raffle, players[0], 1)
    enter(raffle, players[1], 2)
    end(chain, raffle)
    treasury_before = chain.balance_of(market.treasury)
    creator_before = chain.balance_of(creator)

    (winner,) = settle(market, raffle, rng)

    assert raffle.status == RaffleStatus.FINISH
    assert winner in players[:2]
    assert collection.owner_of(1) == winner
    assert chain.balance_of(market.treasury) - treasury_before == 15 * ONE_UNIT // 100
    available = 285 * ONE_UNIT // 100
    assert raffle.storage.available_amount == available
    if with_beneficiary:
        assert chain.balance_of(beneficiary) == available // 10
        assert chain.balance_of(creator) - creator_before == available - available // 10
    else:
        assert chain.balance_of(beneficiary) == 0
        assert chain.balance_of(creator) - creator_before == available
    assert raffle.pot_balance() == 0


def test_winner_is_uniform_per_ticket(chain, market, open_raffle, players):
    """Test the drawn index maps to the ticket range of the winning entry."""
    raffle = open_raffle()
    enter(raffle, players[0], 3)
    enter(raffle, players[1], 1)
    enter(raffle, players[2], 6)
    end(chain, raffle)

    word = random.Random(42).getrandbits(256)
    (winner,) = settle(market, raffle, random.Random(42))

    index = word % 10
    assert raffle.storage.winner_indexes == [index]
    assert winner == players[ticket_owner_slot([3, 1, 6], index)]
    (event,) = chain.events_of(raffle.address, "RaffleFinished")
    assert event.args["winners"] == [winner]
    assert event.args["winner_indexes"] == [index]


def test_multiple_winners_share_prizes(chain, market, open_raffle, players, collection, rng):
    """Test prizes go round-robin over the drawn winners."""
    raffle = open_raffle(prize_ids=(1, 2, 3), winner_number=2)
    for player in players:
        enter(raffle, player, 2)
    end(chain, raffle)

    winners = settle(market, raffle, rng)

    assert len(winners) == 2
    assert [collection.owner_of(token_id) for token_id in (1, 2, 3)] == [
        winners[0], winners[1], winners[0]
    ]


def test_short_randomness_answer_keeps_raffle_waiting(chain, market, open_raffle, players, rng):
    """Test a raffle for three winners cannot finish on a single random word."""
    raffle = open_raffle(prize_ids=(1, 2, 3), winner_number=3)
    for player in players:
        enter(raffle, player, 2)
    end(chain, raffle)
    request_id = raffle.close(sender=market.deployer)
    selector = function_selector(QrngSignatures.MULTIPLE_WINNERS)

    with pytest.raises(InvalidParameter):
        market.provider.fulfill(
            request_id,
            market.airnode,
            market.winner_requester.address,
            selector,
            encode(["uint256[]"], [[4]]),
            sender=market.airnode,
        )
    with pytest.raises(RequestNotFulfilled):
        raffle.finish(sender=market.deployer)
    assert raffle.status == RaffleStatus.CLOSE

    serve_pending(market.provider, market.airnode, rng)
    assert len(raffle.finish(sender=market.deployer)) == 3


def test_close_cancels_when_requirements_fail(chain, market, open_raffle, creator, players, collection):
    """Test an under-funded raffle refunds everyone and returns the prizes."""
    raffle = open_raffle(required_balance=10 * ONE_UNIT)
    enter(raffle, players[0], 2)
    before = chain.balance_of(players[0])
    end(chain, raffle)

    assert raffle.close(sender=market.deployer) is None

    assert raffle.status == RaffleStatus.CANCELED
    assert raffle.storage.cancelation_reason == CancelationReason.REQUIREMENTS_NOT_MET
    assert chain.balance_of(players[0]) - before == 2 * raffle.ticket_amount()
    assert collection.owner_of(1) == creator
    factory = market.vault_factory
    assert factory.owner_of(raffle.storage.prizes_vault_id) == creator
    assert factory.owner_of(raffle.storage.tickets_vault_id) == creator


def test_close_without_entries_cancels(chain, market, open_raffle, creator, collection):
    raffle = open_raffle()
    end(chain, raffle)
    raffle.close(sender=market.deployer)
    assert raffle.status == RaffleStatus.CANCELED
    assert collection.owner_of(1) == creator


def test_creator_cancel_refunds_exactly(chain, market, open_raffle, creator, players, collection):
    """Test a creator cancel refunds what each participant paid and returns every prize."""
    raffle = open_raffle(prize_ids=(1, 2), ticket_price=ONE_UNIT)
    enter(raffle, players[0], 1)
    enter(raffle, players[1], 2)
    balances = [chain.balance_of(player) for player in players[:2]]
    fee = market.hub.cancelation_fee
    treasury_before = chain.balance_of(market.treasury)

    with pytest.raises(CallerNotCreator):
        raffle.cancel(sender=players[0], value=fee)
    with pytest.raises(InvalidParameter):
        raffle.cancel(sender=creator, value=fee + 1)
    raffle.cancel(sender=creator, value=fee)

    assert chain.balance_of(players[0]) - balances[0] == ONE_UNIT
    assert chain.balance_of(players[1]) - balances[1] == 2 * ONE_UNIT
    assert collection.owner_of(1) == creator and collection.owner_of(2) == creator
    assert raffle.status == RaffleStatus.CANCELED
    assert raffle.storage.cancelation_reason == CancelationReason.CREATOR_DECISION
    assert chain.balance_of(market.treasury) - treasury_before == fee
    (event,) = chain.events_of(raffle.address, "RaffleCanceled")
    assert event.args["reason"] == CancelationReason.CREATOR_DECISION


def test_cancel_before_open(market, make_raffle, creator):
    raffle = make_raffle()
    raffle.cancel(sender=creator, value=market.hub.cancelation_fee)
    assert raffle.status == RaffleStatus.CANCELED
    with pytest.raises(InvalidRaffleStatus):
        raffle.cancel(sender=creator, value=market.hub.cancelation_fee)


def test_finish_waits_for_randomness(chain, market, open_raffle, players, rng):
    """Test finish reverts until the request is fulfilled and runs once."""
    raffle = open_raffle()
    enter(raffle, players[0], 1)
    end(chain, raffle)
    request_id = raffle.close(sender=market.deployer)

    assert raffle.status == RaffleStatus.CLOSE
    assert raffle.storage.request_id == request_id
    with pytest.raises(RequestNotFulfilled):
        raffle.finish(sender=market.deployer)
    assert raffle.status == RaffleStatus.CLOSE

    serve_pending(market.provider, market.airnode, rng)
    assert raffle.finish(sender=market.deployer) == [players[0]]
    with pytest.raises(InvalidRaffleStatus):
        raffle.finish(sender=market.deployer)


def test_force_recover(chain, market, open_raffle, players):
    """Test operators can take both vaults of a stuck raffle."""
    raffle = open_raffle()
    enter(raffle, players[0], 1)
    with pytest.raises(CallerNotOwner):
        raffle.force_recover(sender=players[0])

    raffle.force_recover(sender=market.deployer)

    factory = market.vault_factory
    assert factory.owner_of(raffle.storage.prizes_vault_id) == market.deployer
    assert factory.owner_of(raffle.storage.tickets_vault_id) == market.deployer
    assert raffle.storage.cancelation_reason == CancelationReason.FORCED_CANCELATION


def test_beneficiary_management(chain, open_raffle, creator, players, market, rng):
    """Test beneficiary shares validation."""
    raffle = open_raffle()
    alice, bob = chain.create_account("alice"), chain.create_account("bob")

    raffle.set_beneficiaries([alice], [30], sender=creator)
    with pytest.raises(ParameterAlreadySet):
        raffle.set_beneficiaries([alice], [10], sender=creator)
    with pytest.raises(InvalidParameter):
        raffle.set_beneficiaries([bob], [80], sender=creator)
    with pytest.raises(ParameterNotSet):
        raffle.update_beneficiary(bob, 10, sender=creator)
    with pytest.raises(CallerNotCreator):
        raffle.update_beneficiary(alice, 10, sender=players[0])

    raffle.update_beneficiary(alice, 40, sender=creator)
    assert raffle.beneficiary_share(alice) == 40
    (event,) = chain.events_of(raffle.address, "UpdateRaffleBeneficiary")
    assert (event.args["old_share"], event.args["new_share"]) == (30, 40)

    enter(raffle, players[0], 1)
    end(chain, raffle)
    raffle.close(sender=market.deployer)
    with pytest.raises(RaffleNotConfigurable):
        raffle.update_beneficiary(alice, 10, sender=creator)


def test_erc20_raffle(chain, market, open_raffle, creator, players, usd, rng):
    """Test tickets paid in a token settle in that token."""
    raffle = open_raffle(ticket_price=10 * ONE_UNIT, token_type=TokenType.ERC20, token_address=usd.address)
    for player in players[:2]:
        usd.approve(market.deposit_router.address, 100 * ONE_UNIT, sender=player)
        raffle.enter(player, 5, sender=player)
    assert raffle.pot_balance() == 100 * ONE_UNIT
    with pytest.raises(InvalidParameter):
        raffle.enter(players[0], 1, sender=players[0], value=1)
    end(chain, raffle)

    settle(market, raffle, rng)

    assert usd.balance_of(market.treasury) == 5 * ONE_UNIT
    assert usd.balance_of(creator) == 95 * ONE_UNIT


def test_price_feed_raffle(chain, market, make_raffle, creator, collection, players, usd):
    """Test ticket prices set in fiat are converted with the registered feed."""
    with pytest.raises(FeedNotRegistered):
        make_raffle(ticket_price=ONE_UNIT, token_type=TokenType.PRICE_FEED, token_address=usd.address)

    feed = PriceFeed(chain, market.deployer, "USD / USD x2")
    market.price_feed_manager.set_feed(usd.address, feed.address, sender=market.deployer)
    feed.update(2 * ONE_UNIT, chain.now, sender=market.deployer)
    raffle = make_raffle(ticket_price=ONE_UNIT, token_type=TokenType.PRICE_FEED, token_address=usd.address)
    chain.advance(10)
    raffle.open([collection.address], [1], sender=creator)

    usd.approve(market.deposit_router.address, ONE_UNIT, sender=players[0])
    raffle.enter(players[0], 2, sender=players[0])

    assert raffle.ticket_amount() == ONE_UNIT // 2
    assert usd.balance_of(raffle.storage.tickets_vault_address) == ONE_UNIT


def test_native_value_is_conserved(chain, market, open_raffle, creator, players, rng):
    """Test settlement moves value around without creating or losing any."""
    raffle = open_raffle(ticket_price=ONE_UNIT // 3)
    charity = chain.create_account("charity")
    raffle.set_beneficiaries([charity], [33], sender=creator)
    for count, player in enumerate(players, start=1):
        enter(raffle, player, count)
    end(chain, raffle)
    holders = [creator, charity, market.treasury, *players] + [
        contract.address for contract in chain.contracts()
    ]
    total_before = sum(chain.balance_of(address) for address in holders)
    pot = raffle.pot_balance()

    settle(market, raffle, rng)

    assert sum(chain.balance_of(address) for address in holders) == total_before
    assert raffle.pot_balance() == 0
    assert raffle.storage.treasury_amount + raffle.storage.available_amount == pot
