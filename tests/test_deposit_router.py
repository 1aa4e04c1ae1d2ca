"""Unit tests for VaultDepositRouter."""

import pytest

from core.exceptions import AccessDenied, BatchLengthMismatch, CallerNotOwner, InvalidParameter
from ledger import FungibleToken


@pytest.fixture
def vault(market, creator):
    vault_id, address = market.vault_factory.create(creator, sender=creator)
    return market.vault_factory.vault(vault_id)


def test_deposit_native(chain, market, creator, vault):
    """Test native deposits must carry exactly the declared amount."""
    router = market.deposit_router
    router.deposit_native(creator, vault.address, 500, sender=creator, value=500)
    assert vault.native_balance == 500

    with pytest.raises(InvalidParameter):
        router.deposit_native(creator, vault.address, 500, sender=creator, value=400)
    (event,) = chain.events_of(router.address, "DepositNative")
    assert event.args == {"payer": creator, "vault": vault.address, "amount": 500}


def test_deposit_native_cannot_name_another_payer(chain, market, creator, players, vault):
    """Test a native deposit is only credited to its sender unless a raffle forwards it."""
    with pytest.raises(AccessDenied):
        market.deposit_router.deposit_native(
            creator, vault.address, 10, sender=players[0], value=10
        )
    assert vault.native_balance == 0
    assert chain.events_of(market.deposit_router.address, "DepositNative") == []


def test_deposit_erc20_own_assets(chain, market, players, vault):
    """Test a payer can push its own approved tokens."""
    payer = players[0]
    token = FungibleToken(chain, market.deployer, "Dollar", "USD")
    token.mint(payer, 100, sender=market.deployer)
    token.approve(market.deposit_router.address, 60, sender=payer)

    market.deposit_router.deposit_erc20(payer, vault.address, token.address, 60, sender=payer)

    assert token.balance_of(vault.address) == 60
    assert token.balance_of(payer) == 40


def test_deposit_erc721(market, creator, collection, vault):
    """Test NFT batches land in the vault."""
    router = market.deposit_router
    router.deposit_erc721(
        creator, vault.address, [collection.address, collection.address], [1, 2], sender=creator
    )
    assert collection.owner_of(1) == vault.address
    assert collection.owner_of(2) == vault.address

    with pytest.raises(BatchLengthMismatch):
        router.deposit_erc721(creator, vault.address, [collection.address], [3, 3], sender=creator)


def test_third_party_pull_is_denied(market, creator, players, collection, vault):
    """Test only hub raffles may pull someone else's assets."""
    with pytest.raises(AccessDenied):
        market.deposit_router.deposit_erc721(
            creator, vault.address, [collection.address], [1], sender=players[0]
        )
    assert collection.owner_of(1) == creator


def test_unknown_vault_is_rejected(market, creator, players):
    """Test deposits only go to factory vaults."""
    with pytest.raises(InvalidParameter):
        market.deposit_router.deposit_native(creator, players[0], 1, sender=creator, value=1)


def test_only_owner_sets_hub(market, creator):
    with pytest.raises(CallerNotOwner):
        market.deposit_router.set_hub(creator, sender=creator)
