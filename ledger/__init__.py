"""In-process ledger: chain, token primitives, access control and price feeds."""

from ledger.chain import Chain, Contract, Event, to_address, transactional
from ledger.assets import FungibleToken, NonFungibleToken
from ledger.access import AccessManager
from ledger.price_feed import PriceFeed, PriceFeedManager

__all__ = [
    'Chain',
    'Contract',
    'Event',
    'to_address',
    'transactional',
    'FungibleToken',
    'NonFungibleToken',
    'AccessManager',
    'PriceFeed',
    'PriceFeedManager',
]
