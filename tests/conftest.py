"""Pytest configuration and fixtures."""

import random
from pathlib import Path

import pytest

from config import Config
from core.constants import ONE_UNIT, TokenType, ZERO_ADDRESS
from ledger.assets import FungibleToken, NonFungibleToken
from ledger.chain import Chain
from raffles.hub import EMPTY_METADATA
from services.marketplace import deploy_marketplace

ROOT = Path(__file__).resolve().parent.parent
START_TIME = 1_700_000_000


def make_config(tmp_path, **overrides) -> Config:
    values = dict(
        environment="test",
        debug=False,
        log_level="DEBUG",
        log_folder=str(tmp_path / "logs"),
        database_path=str(tmp_path / "journal.sqlite"),
        db_pool_size=2,
        db_busy_timeout=1000,
        web_host="127.0.0.1",
        web_port=5000,
        raffle_cut=5,
        yolo_raffle_cut=5,
        cancelation_fee=10**9,
        yolo_raffle_duration=3600,
        qrng_file=str(ROOT / "data" / "qrng.json"),
        qrng_network="hardhat",
        addresses_folder=str(tmp_path / "addresses"),
    )
    values.update(overrides)
    return Config(**values)


@pytest.fixture
def config(tmp_path):
    """Configuration pointing every file into a temporary folder."""
    return make_config(tmp_path)


@pytest.fixture
def chain():
    return Chain(start_time=START_TIME)


@pytest.fixture
def deployer(chain):
    return chain.create_account("deployer", 100 * ONE_UNIT)


@pytest.fixture
def market(chain, config, deployer):
    """Fully wired marketplace."""
    return deploy_marketplace(chain, config, deployer)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def creator(chain):
    return chain.create_account("creator", 10 * ONE_UNIT)


@pytest.fixture
def players(chain):
    """Three funded participants."""
    return [chain.create_account(f"player-{n}", 10 * ONE_UNIT) for n in range(3)]


@pytest.fixture
def collection(chain, market, creator):
    """NFT collection with ids 1..3 owned by the creator, approved for the router."""
    nft = NonFungibleToken(chain, market.deployer, "Prize Collection", "PRZ")
    for token_id in (1, 2, 3):
        nft.mint(creator, token_id, sender=market.deployer)
    nft.set_approval_for_all(market.deposit_router.address, True, sender=creator)
    return nft


@pytest.fixture
def usd(chain, market, players):
    """ERC20 ticket currency, 1000 units to every player."""
    token = FungibleToken(chain, market.deployer, "Dollar", "USD")
    for player in players:
        token.mint(player, 1000 * ONE_UNIT, sender=market.deployer)
    return token


@pytest.fixture
def make_raffle(chain, market, creator):
    """Create a raffle starting in 10 seconds and lasting 1000 seconds."""

    def _make(
        ticket_price=ONE_UNIT // 10,
        required_balance=0,
        winner_number=1,
        token_type=TokenType.NATIVE,
        token_address=ZERO_ADDRESS,
        metadata=EMPTY_METADATA,
    ):
        start = chain.now + 10
        raffle_id, _ = market.hub.create_raffle(
            start,
            start + 1000,
            ticket_price,
            required_balance,
            metadata,
            token_type=token_type,
            token_address=token_address,
            winner_number=winner_number,
            sender=creator,
        )
        return market.raffle(raffle_id)

    return _make


@pytest.fixture
def open_raffle(chain, make_raffle, collection, creator):
    """Factory for raffles that are already open with ``prize_ids`` locked."""

    def _open(prize_ids=(1,), **kwargs):
        raffle = make_raffle(**kwargs)
        chain.advance(10)
        raffle.open([collection.address] * len(prize_ids), list(prize_ids), sender=creator)
        return raffle

    return _open


def enter(raffle, participant, tickets):
    """Buy ``tickets`` with native currency for ``participant``."""
    raffle.enter(participant, tickets, sender=participant, value=raffle.ticket_amount() * tickets)


def end(chain, raffle):
    chain.advance(raffle.storage.end_time - chain.now)
