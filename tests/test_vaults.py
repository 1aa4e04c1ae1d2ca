"""Unit tests for asset vaults, the vault factory and the distributor."""

import pytest

from core.constants import TokenType, ZERO_ADDRESS
from core.exceptions import (
    BatchLengthMismatch,
    CallerNotOwner,
    InsufficientBalance,
    InvalidArrayLength,
    InvalidParameter,
    TokenNotFound,
    VaultWithdrawsDisabled,
    VaultWithdrawsEnabled,
)
from ledger import Chain, FungibleToken, NonFungibleToken
from vaults import AssetVault, DelegatedOwner, DirectOwner, Distributor, VaultFactory, resolve_owner


@pytest.fixture
def setup():
    chain = Chain(start_time=0)
    owner = chain.create_account("owner", 1000)
    alice = chain.create_account("alice")
    bob = chain.create_account("bob")
    distributor = Distributor(chain, owner)
    vault = AssetVault(chain, owner, DirectOwner(owner), distributor.address)
    return chain, owner, alice, bob, distributor, vault


def test_vault_locked_until_enabled(setup):
    """Test withdrawals need the one-way unlock."""
    chain, owner, alice, _, _, vault = setup
    vault.receive(sender=owner, value=100)
    assert vault.native_balance == 100

    with pytest.raises(VaultWithdrawsDisabled):
        vault.withdraw_native(alice, 10, sender=owner)
    with pytest.raises(CallerNotOwner):
        vault.enable_withdraw(sender=alice)

    vault.enable_withdraw(sender=owner)
    assert vault.withdraw_enabled
    with pytest.raises(VaultWithdrawsEnabled):
        vault.enable_withdraw(sender=owner)

    vault.withdraw_native(alice, 10, sender=owner)
    assert chain.balance_of(alice) == 10
    with pytest.raises(CallerNotOwner):
        vault.withdraw_native(alice, 10, sender=alice)
    with pytest.raises(InsufficientBalance):
        vault.withdraw_native(alice, 1000, sender=owner)


def test_vault_withdraws_tokens_and_nfts(setup):
    """Test ERC20 and ERC721 withdrawals and their events."""
    chain, owner, alice, _, _, vault = setup
    token = FungibleToken(chain, owner, "Dollar", "USD")
    nft = NonFungibleToken(chain, owner, "Art", "ART")
    token.mint(vault.address, 50, sender=owner)
    nft.mint(vault.address, 1, sender=owner)
    vault.enable_withdraw(sender=owner)

    vault.withdraw_erc20(token.address, alice, 20, sender=owner)
    vault.withdraw_erc721(nft.address, alice, 1, sender=owner)

    assert token.balance_of(alice) == 20
    assert nft.owner_of(1) == alice
    (event,) = chain.events_of(vault.address, "WithdrawERC721")
    assert event.args == {"owner": owner, "recipient": alice, "token": nft.address, "token_id": 1}


def test_batch_amount_withdraw_native(setup):
    """Test native batch payouts go through the distributor."""
    chain, owner, alice, bob, distributor, vault = setup
    vault.receive(sender=owner, value=100)
    vault.enable_withdraw(sender=owner)

    vault.batch_amount_withdraw(TokenType.NATIVE, ZERO_ADDRESS, [alice, bob], [30, 70], sender=owner)

    assert chain.balance_of(alice) == 30
    assert chain.balance_of(bob) == 70
    assert vault.native_balance == 0
    assert distributor.native_balance == 0

    with pytest.raises(BatchLengthMismatch):
        vault.batch_amount_withdraw(TokenType.NATIVE, ZERO_ADDRESS, [alice], [1, 2], sender=owner)


def test_batch_percentage_withdraw_tokens(setup):
    """Test percentage payouts floor each share and leave the dust behind."""
    chain, owner, alice, bob, distributor, vault = setup
    token = FungibleToken(chain, owner, "Dollar", "USD")
    token.mint(vault.address, 101, sender=owner)
    vault.enable_withdraw(sender=owner)

    amounts = vault.batch_percentage_withdraw(
        TokenType.ERC20, token.address, [alice, bob], [50, 25], sender=owner
    )

    assert amounts == [50, 25]
    assert token.balance_of(alice) == 50
    assert token.balance_of(bob) == 25
    assert token.balance_of(vault.address) == 26

    with pytest.raises(InvalidParameter):
        vault.batch_percentage_withdraw(TokenType.ERC20, token.address, [alice, bob], [60, 50], sender=owner)
    with pytest.raises(InvalidParameter):
        vault.batch_percentage_withdraw(TokenType.ERC721, token.address, [alice], [10], sender=owner)


def test_distributor_checks():
    """Test distributor length, value and payer checks."""
    chain = Chain(start_time=0)
    payer = chain.create_account("payer", 100)
    alice = chain.create_account("alice")
    distributor = Distributor(chain, payer)
    token = FungibleToken(chain, payer, "Dollar", "USD")
    token.mint(payer, 100, sender=payer)

    with pytest.raises(InvalidArrayLength):
        distributor.distribute_native([alice], [1, 2], sender=payer, value=3)
    with pytest.raises(InvalidParameter):
        distributor.distribute_native([alice], [5], sender=payer, value=4)
    with pytest.raises(CallerNotOwner):
        distributor.distribute_tokens(token.address, payer, [alice], [5], sender=alice)

    token.approve(distributor.address, 40, sender=payer)
    distributor.distribute_tokens(token.address, payer, [alice, alice], [15, 25], sender=payer)
    assert token.balance_of(alice) == 40
    (event,) = chain.events_of(distributor.address, "TokensDistributed")
    assert event.args["total"] == 40


def test_factory_vault_ownership_follows_token():
    """Test the factory token decides who operates the vault."""
    chain = Chain(start_time=0)
    deployer = chain.create_account("deployer")
    alice = chain.create_account("alice")
    bob = chain.create_account("bob")
    factory = VaultFactory(chain, deployer, Distributor(chain, deployer).address)

    vault_id, address = factory.create(alice, sender=alice)

    assert factory.owner_of(vault_id) == alice
    assert factory.instance_at(vault_id) == address
    assert factory.instance_at_index(0) == address
    assert factory.total_instances() == 1
    assert factory.vault_id_of(address) == vault_id
    vault = factory.vault(vault_id)
    assert vault.storage.owner == DelegatedOwner(factory.address, vault_id)
    assert vault.owner() == alice

    factory.transfer_from(alice, bob, vault_id, sender=alice)
    assert vault.owner() == bob
    with pytest.raises(CallerNotOwner):
        vault.enable_withdraw(sender=alice)
    vault.enable_withdraw(sender=bob)

    assert factory.find_vault(vault_id + 1) is None
    with pytest.raises(TokenNotFound):
        factory.instance_at(vault_id + 1)
    with pytest.raises(InvalidParameter):
        factory.instance_at_index(1)
    (event,) = chain.events_of(factory.address, "VaultCreated")
    assert event.args == {"vault_id": vault_id, "vault": address, "owner": alice}


def test_resolve_direct_owner():
    """Test direct ownership needs no token lookup."""
    chain = Chain(start_time=0)
    alice = chain.create_account("alice")
    assert resolve_owner(chain, DirectOwner(alice)) == alice
