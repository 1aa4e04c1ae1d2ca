"""Raffle hub: creates raffles and holds the marketplace configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from core import get_logger
from core.constants import HubDefaults, Roles, TokenType, ZERO_ADDRESS
from core.exceptions import (
    AccessDenied,
    FeedNotRegistered,
    HubPaused,
    InvalidParameter,
    InvalidWinnerNumber,
    ZeroAddress,
)
from ledger.access import AccessManager
from ledger.chain import Chain, Contract, to_address, transactional
from ledger.price_feed import PriceFeedManager
from raffles.raffle import Metadata, Raffle
from raffles.yolo import YoloRaffle

logger = get_logger(__name__)

EMPTY_METADATA = Metadata(digest="0x" + "00" * 32, hash_function=0, size=0)


@dataclass
class HubStorage:
    access_manager: str
    treasury: str
    vault_factory: str = ZERO_ADDRESS
    deposit_router: str = ZERO_ADDRESS
    winner_requester: str = ZERO_ADDRESS
    price_feed_manager: str = ZERO_ADDRESS
    raffle_cut: int = HubDefaults.RAFFLE_CUT
    yolo_raffle_cut: int = HubDefaults.YOLO_RAFFLE_CUT
    cancelation_fee: int = HubDefaults.CANCELATION_FEE
    yolo_raffle_duration: int = HubDefaults.YOLO_RAFFLE_DURATION
    raffles: List[str] = field(default_factory=list)


class RaffleHub(Contract):
    """Entry point of the marketplace.

    Anyone can create a traditional raffle while the hub is not paused.
    Yolo raffles and every setter are restricted operations, allowed to
    the roles the access manager assigns to them on this hub.
    """

    def __init__(self, chain: Chain, deployer: str, access_manager: str, treasury: str) -> None:
        super().__init__(chain, deployer)
        self.storage = HubStorage(
            access_manager=to_address(access_manager),
            treasury=to_address(treasury),
        )

    # Configuration read by raffles

    def get_raffle_cut(self) -> int:
        return self.storage.raffle_cut

    def get_yolo_raffle_cut(self) -> int:
        return self.storage.yolo_raffle_cut

    @property
    def treasury(self) -> str:
        return self.storage.treasury

    @property
    def cancelation_fee(self) -> int:
        return self.storage.cancelation_fee

    @property
    def yolo_raffle_duration(self) -> int:
        return self.storage.yolo_raffle_duration

    @property
    def vault_factory(self) -> str:
        return self.storage.vault_factory

    @property
    def deposit_router(self) -> str:
        return self.storage.deposit_router

    @property
    def winner_requester(self) -> str:
        return self.storage.winner_requester

    @property
    def price_feed_manager(self) -> str:
        return self.storage.price_feed_manager

    @property
    def access_manager(self) -> AccessManager:
        return self.chain.contract_at(self.storage.access_manager, AccessManager)

    # Registry

    def raffles(self) -> int:
        return len(self.storage.raffles)

    def get_raffle_address(self, raffle_id: int) -> str:
        if not 1 <= raffle_id <= len(self.storage.raffles):
            raise InvalidParameter(f"no raffle with id {raffle_id}")
        return self.storage.raffles[raffle_id - 1]

    def raffle(self, raffle_id: int) -> Raffle:
        return self.chain.contract_at(self.get_raffle_address(raffle_id), Raffle)

    def find_raffle(self, raffle_id: int) -> Optional[Raffle]:
        try:
            return self.raffle(raffle_id)
        except InvalidParameter:
            return None

    def is_raffle(self, address: str) -> bool:
        return address in self.storage.raffles

    # Access

    def is_paused(self) -> bool:
        return self.access_manager.is_closed(self.address)

    def is_authorized(self, account: str, operation: str) -> bool:
        """Role check for ``operation`` on this hub, regardless of pausing."""
        access = self.access_manager
        role = access.get_target_function_role(self.address, operation)
        return access.has_role(Roles.ADMIN, account) or access.has_role(role, account)

    def _restricted(self, sender: str, operation: str) -> None:
        if not self.is_authorized(sender, operation):
            logger.warning(f"{sender} denied {operation} on hub")
            raise AccessDenied(f"{sender} cannot call {operation}")

    def _not_paused(self) -> None:
        if self.is_paused():
            raise HubPaused("raffle creation is paused")

    # Creation

    def _register(self, raffle: Raffle, creator: str) -> None:
        self.storage.raffles.append(raffle.address)
        self.emit(
            "RaffleCreated",
            raffle_id=raffle.raffle_id,
            raffle=raffle.address,
            creator=creator,
            raffle_type=raffle.RAFFLE_TYPE,
        )
        logger.info(f"Created {raffle.RAFFLE_TYPE.name} raffle {raffle.raffle_id} at {raffle.address}")

    def _check_payment(self, token_type: TokenType, token_address: str) -> str:
        token_type = TokenType(token_type)
        token_address = to_address(token_address)
        if token_type == TokenType.NATIVE:
            return ZERO_ADDRESS
        if token_type not in (TokenType.ERC20, TokenType.PRICE_FEED):
            raise InvalidParameter(f"tickets cannot be paid in {token_type.name}")
        if token_address == ZERO_ADDRESS:
            raise ZeroAddress("ticket token must be set")
        if token_type == TokenType.PRICE_FEED:
            manager = self.chain.contract_at(self.storage.price_feed_manager, PriceFeedManager)
            if manager.get_feed(token_address) == ZERO_ADDRESS:
                raise FeedNotRegistered(f"no feed registered for {token_address}")
        return token_address

    @transactional
    def create_raffle(
        self,
        start_time: int,
        end_time: int,
        ticket_price: int,
        required_balance: int,
        metadata: Metadata,
        token_type: TokenType = TokenType.NATIVE,
        token_address: str = ZERO_ADDRESS,
        winner_number: int = 1,
        *,
        sender: str,
    ) -> Tuple[int, str]:
        """Deploy a traditional raffle owned by ``sender``.

        Returns:
            Tuple of (raffle_id, raffle_address)
        """
        self._not_paused()
        if end_time <= start_time:
            raise InvalidParameter("raffle must end after it starts")
        if ticket_price <= 0 or required_balance < 0:
            raise InvalidParameter("ticket price must be positive")
        if winner_number < 1:
            raise InvalidWinnerNumber("a raffle needs at least one winner")
        token_address = self._check_payment(token_type, token_address)
        raffle = Raffle(
            self.chain,
            self.address,
            raffle_id=len(self.storage.raffles) + 1,
            creator=sender,
            start_time=start_time,
            end_time=end_time,
            ticket_price=ticket_price,
            required_balance=required_balance,
            metadata=metadata,
            token_type=token_type,
            token_address=token_address,
            winner_number=winner_number,
        )
        self._register(raffle, sender)
        return raffle.raffle_id, raffle.address

    @transactional
    def create_yolo_raffle(
        self,
        ticket_price: int,
        token_type: TokenType = TokenType.NATIVE,
        token_address: str = ZERO_ADDRESS,
        *,
        sender: str,
    ) -> Tuple[int, str]:
        """Deploy and open a yolo raffle lasting ``yolo_raffle_duration``."""
        self._restricted(sender, "create_yolo_raffle")
        self._not_paused()
        if ticket_price <= 0:
            raise InvalidParameter("ticket price must be positive")
        token_address = self._check_payment(token_type, token_address)
        now = self.chain.now
        raffle = YoloRaffle(
            self.chain,
            self.address,
            raffle_id=len(self.storage.raffles) + 1,
            creator=sender,
            start_time=now,
            end_time=now + self.storage.yolo_raffle_duration,
            ticket_price=ticket_price,
            required_balance=0,
            metadata=EMPTY_METADATA,
            token_type=token_type,
            token_address=token_address,
            winner_number=1,
        )
        self._register(raffle, sender)
        raffle.launch(sender=self.address)
        return raffle.raffle_id, raffle.address

    # Restricted setters

    def _set_address(self, name: str, value: str, sender: str) -> None:
        self._restricted(sender, f"set_{name}")
        value = to_address(value)
        if value == ZERO_ADDRESS:
            raise ZeroAddress(f"{name} must be set")
        setattr(self.storage, name, value)
        self.emit("SetAddress", setting=name, value=value)

    def _set_percentage(self, name: str, value: int, sender: str) -> None:
        self._restricted(sender, f"set_{name}")
        if not 0 <= value <= HubDefaults.MAX_PERCENTAGE:
            raise InvalidParameter(f"{name} {value} is not a percentage")
        setattr(self.storage, name, value)
        self.emit("SetPercentage", setting=name, value=value)

    @transactional
    def set_winner_requester(self, address: str, *, sender: str) -> None:
        self._set_address("winner_requester", address, sender)

    @transactional
    def set_vault_factory(self, address: str, *, sender: str) -> None:
        self._set_address("vault_factory", address, sender)

    @transactional
    def set_deposit_router(self, address: str, *, sender: str) -> None:
        self._set_address("deposit_router", address, sender)

    @transactional
    def set_price_feed_manager(self, address: str, *, sender: str) -> None:
        self._set_address("price_feed_manager", address, sender)

    @transactional
    def set_treasury(self, address: str, *, sender: str) -> None:
        self._set_address("treasury", address, sender)

    @transactional
    def set_raffle_cut(self, cut: int, *, sender: str) -> None:
        self._set_percentage("raffle_cut", cut, sender)

    @transactional
    def set_yolo_raffle_cut(self, cut: int, *, sender: str) -> None:
        self._set_percentage("yolo_raffle_cut", cut, sender)

    @transactional
    def set_cancelation_fee(self, fee: int, *, sender: str) -> None:
        self._restricted(sender, "set_cancelation_fee")
        if fee < 0:
            raise InvalidParameter("fee cannot be negative")
        self.storage.cancelation_fee = fee
        self.emit("SetCancelationFee", fee=fee)

    @transactional
    def set_yolo_raffle_duration(self, duration: int, *, sender: str) -> None:
        self._restricted(sender, "set_yolo_raffle_duration")
        if duration <= 0:
            raise InvalidParameter("duration must be positive")
        self.storage.yolo_raffle_duration = duration
        self.emit("SetYoloRaffleDuration", duration=duration)

    @transactional
    def pause_raffles(self, *, sender: str) -> None:
        self._restricted(sender, "pause_raffles")
        self.access_manager.close_target(self.address, sender=self.address)
        logger.warning("Raffle creation paused")

    @transactional
    def unpause_raffles(self, *, sender: str) -> None:
        self._restricted(sender, "unpause_raffles")
        self.access_manager.open_target(self.address, sender=self.address)
        logger.info("Raffle creation resumed")


RESTRICTED_OPERATIONS = (
    "create_yolo_raffle",
    "force_recover",
    "set_winner_requester",
    "set_vault_factory",
    "set_deposit_router",
    "set_price_feed_manager",
    "set_treasury",
    "set_raffle_cut",
    "set_yolo_raffle_cut",
    "set_cancelation_fee",
    "set_yolo_raffle_duration",
    "pause_raffles",
    "unpause_raffles",
)
