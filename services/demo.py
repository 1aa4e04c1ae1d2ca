"""Scripted raffle lifecycle used by ``main.py demo`` and ``serve``."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core import get_logger
from core.constants import ONE_UNIT
from ledger.assets import NonFungibleToken
from randomness.provider import serve_pending
from raffles.hub import EMPTY_METADATA
from raffles.raffle import Raffle
from services.marketplace import Marketplace

logger = get_logger(__name__)


@dataclass
class DemoActors:
    creator: str
    participants: List[str]
    beneficiary: str
    collection: NonFungibleToken
    prize_ids: List[int] = field(default_factory=lambda: [1, 2])


def create_actors(market: Marketplace, funding: int = 10 * ONE_UNIT) -> DemoActors:
    chain = market.chain
    creator = chain.create_account("creator", funding)
    participants = [chain.create_account(f"participant-{n}", funding) for n in range(1, 4)]
    beneficiary = chain.create_account("beneficiary")
    collection = NonFungibleToken(chain, market.deployer, "Demo Collection", "DEMO")
    actors = DemoActors(creator, participants, beneficiary, collection)
    for token_id in actors.prize_ids:
        collection.mint(creator, token_id, sender=market.deployer)
    collection.set_approval_for_all(market.deposit_router.address, True, sender=creator)
    return actors


def run_demo_raffle(
    market: Marketplace,
    actors: Optional[DemoActors] = None,
    rng: Optional[random.Random] = None,
) -> Raffle:
    """Create, fill, close and finish a two prize raffle paid in native currency.

    Returns:
        The finished raffle
    """
    chain = market.chain
    actors = actors or create_actors(market)
    start = chain.now + 60
    raffle_id, _ = market.hub.create_raffle(
        start,
        start + 3600,
        ONE_UNIT // 10,
        ONE_UNIT // 2,
        EMPTY_METADATA,
        winner_number=2,
        sender=actors.creator,
    )
    raffle = market.raffle(raffle_id)
    raffle.set_beneficiaries([actors.beneficiary], [20], sender=actors.creator)
    chain.advance(60)
    raffle.open(
        [actors.collection.address] * len(actors.prize_ids),
        actors.prize_ids,
        sender=actors.creator,
    )

    tickets: Dict[str, int] = {}
    for count, participant in enumerate(actors.participants, start=1):
        raffle.enter(participant, count * 2, sender=participant, value=raffle.ticket_amount() * count * 2)
        tickets[participant] = count * 2
    logger.info(f"Raffle {raffle_id} sold {raffle.total_entries} tickets to {len(tickets)} participants")

    chain.advance(3600)
    raffle.close(sender=market.deployer)
    serve_pending(market.provider, market.airnode, rng)
    winners = raffle.finish(sender=market.deployer)
    for token_id in actors.prize_ids:
        owner = actors.collection.owner_of(token_id)
        logger.info(f"Prize #{token_id} won by {chain.label(owner)}")
    logger.info(f"Winners: {', '.join(chain.label(winner) for winner in winners)}")
    return raffle


def run_demo_yolo(market: Marketplace, rng: Optional[random.Random] = None) -> Raffle:
    """Open a yolo raffle, let two players in and settle it."""
    chain = market.chain
    players = [chain.create_account(f"yolo-player-{n}", ONE_UNIT) for n in range(1, 3)]
    raffle_id, _ = market.hub.create_yolo_raffle(ONE_UNIT // 100, sender=market.deployer)
    raffle = market.raffle(raffle_id)
    for player in players:
        raffle.enter(player, 5, sender=player, value=raffle.ticket_amount() * 5)
    chain.advance(market.hub.yolo_raffle_duration)
    raffle.close(sender=market.deployer)
    serve_pending(market.provider, market.airnode, rng)
    raffle.finish(sender=market.deployer)
    logger.info(f"Yolo raffle {raffle_id} pot vault went to {chain.label(raffle.winners(0))}")
    return raffle
