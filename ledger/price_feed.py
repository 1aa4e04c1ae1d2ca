"""Fiat price feeds used to price tickets in a token."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from core.constants import ZERO_ADDRESS
from core.exceptions import (
    CannotCastUint,
    CallerNotOwner,
    FeedNotInitialized,
    FeedNotRegistered,
    ParameterAlreadySet,
    ZeroAddress,
)
from ledger.chain import Chain, Contract, to_address, transactional


@dataclass
class PriceFeedStorage:
    description: str
    updater: str
    value: int = 0
    timestamp: int = 0


class PriceFeed(Contract):
    """A signed 18 decimals value, e.g. the USD price of one token."""

    def __init__(self, chain: Chain, deployer: str, description: str) -> None:
        super().__init__(chain, deployer, label=description)
        self.storage = PriceFeedStorage(description=description, updater=self.deployer)

    def read(self) -> Tuple[int, int]:
        return self.storage.value, self.storage.timestamp

    @transactional
    def update(self, value: int, timestamp: int, *, sender: str) -> None:
        if sender != self.storage.updater:
            raise CallerNotOwner("only the feed updater can push values")
        self.storage.value = value
        self.storage.timestamp = timestamp
        self.emit("FeedUpdated", value=value, timestamp=timestamp)


@dataclass
class PriceFeedManagerStorage:
    owner: str
    feeds: Dict[str, str] = field(default_factory=dict)


class PriceFeedManager(Contract):
    """Registry of one price feed per token."""

    def __init__(self, chain: Chain, deployer: str) -> None:
        super().__init__(chain, deployer)
        self.storage = PriceFeedManagerStorage(owner=self.deployer)

    def get_feed(self, token: str) -> str:
        return self.storage.feeds.get(to_address(token), ZERO_ADDRESS)

    @transactional
    def set_feed(self, token: str, feed: str, *, sender: str) -> None:
        if sender != self.storage.owner:
            raise CallerNotOwner("only the owner can register feeds")
        token, feed = to_address(token), to_address(feed)
        if ZERO_ADDRESS in (token, feed):
            raise ZeroAddress("token and feed must be set")
        if token in self.storage.feeds:
            raise ParameterAlreadySet(f"feed already registered for {token}")
        self.storage.feeds[token] = feed
        self.emit("SetFeed", token=token, feed=feed)

    def read_value(self, token: str) -> Tuple[int, int]:
        """Return ``(value, timestamp)`` of the feed registered for ``token``.

        Raises:
            FeedNotRegistered: No feed for this token
            FeedNotInitialized: The feed never received a value
            CannotCastUint: The feed reports a negative value
        """
        feed_address = self.get_feed(token)
        if feed_address == ZERO_ADDRESS:
            raise FeedNotRegistered(f"no feed registered for {token}")
        value, timestamp = self.chain.contract_at(feed_address, PriceFeed).read()
        if timestamp == 0:
            raise FeedNotInitialized(f"feed {feed_address} has no value yet")
        if value < 0:
            raise CannotCastUint(f"feed {feed_address} reports {value}")
        return value, timestamp
