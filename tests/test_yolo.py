"""Tests for yolo raffles."""

import pytest

from conftest import enter
from core.constants import ONE_UNIT, RaffleStatus, RaffleType
from core.exceptions import AccessDenied, CallerNotOwner, RaffleNotConfigurable
from randomness import serve_pending


@pytest.fixture
def yolo(market):
    raffle_id, _ = market.hub.create_yolo_raffle(ONE_UNIT // 10, sender=market.deployer)
    return market.raffle(raffle_id)


def test_yolo_opens_immediately(chain, market, yolo):
    """Test the hub launches yolo raffles with a pot vault as the only prize."""
    assert yolo.status == RaffleStatus.OPEN
    assert yolo.storage.raffle_type == RaffleType.YOLO
    assert yolo.storage.end_time == chain.now + market.hub.yolo_raffle_duration
    factory = market.vault_factory
    assert yolo.tokens(0) == factory.address
    assert yolo.ids(0) == yolo.storage.pot_vault_id
    assert factory.owner_of(yolo.storage.pot_vault_id) == yolo.storage.prizes_vault_address
    with pytest.raises(CallerNotOwner):
        yolo.launch(sender=market.deployer)


def test_yolo_has_no_beneficiaries(chain, market, yolo):
    with pytest.raises(RaffleNotConfigurable):
        yolo.set_beneficiaries([market.deployer], [10], sender=market.deployer)


def test_only_managers_create_yolo(market, players):
    with pytest.raises(AccessDenied):
        market.hub.create_yolo_raffle(ONE_UNIT, sender=players[0])


def test_yolo_winner_takes_the_pot(chain, market, yolo, players, rng):
    """Test the winner receives the pot vault and can empty it."""
    enter(yolo, players[0], 4)
    enter(yolo, players[1], 6)
    pot = yolo.pot_balance()
    treasury_before = chain.balance_of(market.treasury)
    chain.advance(market.hub.yolo_raffle_duration)

    yolo.close(sender=market.deployer)
    serve_pending(market.provider, market.airnode, rng)
    (winner,) = yolo.finish(sender=market.deployer)

    cut = pot * market.hub.get_yolo_raffle_cut() // 100
    assert chain.balance_of(market.treasury) - treasury_before == cut
    factory = market.vault_factory
    pot_vault = factory.vault(yolo.storage.pot_vault_id)
    assert factory.owner_of(yolo.storage.pot_vault_id) == winner
    assert pot_vault.native_balance == pot - cut

    loser = players[1] if winner == players[0] else players[0]
    with pytest.raises(CallerNotOwner):
        pot_vault.enable_withdraw(sender=loser)

    before = chain.balance_of(winner)
    pot_vault.enable_withdraw(sender=winner)
    pot_vault.withdraw_native(winner, pot - cut, sender=winner)
    assert chain.balance_of(winner) - before == pot - cut
    assert pot_vault.native_balance == 0
    assert yolo.summary()["pot_vault_address"] == pot_vault.address
