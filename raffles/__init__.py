"""Raffle state machines and the hub that creates them."""

from raffles.raffle import Metadata, Raffle
from raffles.yolo import YoloRaffle
from raffles.hub import EMPTY_METADATA, RESTRICTED_OPERATIONS, RaffleHub

__all__ = [
    'Metadata',
    'Raffle',
    'YoloRaffle',
    'RaffleHub',
    'EMPTY_METADATA',
    'RESTRICTED_OPERATIONS',
]
