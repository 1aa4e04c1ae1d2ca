"""Raffle lifecycle: Uninitialized -> Open -> Close -> Finish, or Canceled."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from core import get_logger
from core.constants import (
    CancelationReason,
    HubDefaults,
    QrngSignatures,
    RaffleStatus,
    RaffleType,
    TokenType,
    ZERO_ADDRESS,
)
from core.exceptions import (
    BatchLengthMismatch,
    CallerNotCreator,
    CallerNotOwner,
    InvalidParameter,
    InvalidRaffleStatus,
    InvalidWinnerNumber,
    ParameterAlreadySet,
    ParameterNotSet,
    RaffleEnded,
    RaffleNotConfigurable,
    RaffleNotEnded,
    RaffleNotStarted,
    ZeroAddress,
)
from ledger.assets import FungibleToken
from ledger.chain import Chain, Contract, to_address, transactional
from ledger.price_feed import PriceFeedManager
from randomness.requester import function_selector
from randomness.winner import WinnerRequester
from raffles import settlement
from vaults.asset_vault import AssetVault
from vaults.deposit_router import VaultDepositRouter
from vaults.factory import VaultFactory

logger = get_logger(__name__)


@dataclass(frozen=True)
class Metadata:
    """Multihash of the raffle description stored off-chain."""
    digest: str
    hash_function: int
    size: int


@dataclass
class RaffleStorage:
    raffle_id: int
    raffle_type: RaffleType
    hub: str
    creator: str
    start_time: int
    end_time: int
    ticket_price: int
    required_balance: int
    metadata: Metadata
    token_type: TokenType
    token_address: str
    winner_number: int
    status: RaffleStatus = RaffleStatus.UNINITIALIZED
    cancelation_reason: Optional[CancelationReason] = None
    prizes_vault_id: int = 0
    prizes_vault_address: str = ZERO_ADDRESS
    tickets_vault_id: int = 0
    tickets_vault_address: str = ZERO_ADDRESS
    tokens: List[str] = field(default_factory=list)
    ids: List[int] = field(default_factory=list)
    participants: List[str] = field(default_factory=list)
    # tickets bought by each participants slot, same order
    slot_tickets: List[int] = field(default_factory=list)
    entries: Dict[str, int] = field(default_factory=dict)
    paid: Dict[str, int] = field(default_factory=dict)
    total_entries: int = 0
    beneficiaries: List[str] = field(default_factory=list)
    shares: Dict[str, int] = field(default_factory=dict)
    request_id: Optional[str] = None
    winner_indexes: List[int] = field(default_factory=list)
    winners: List[str] = field(default_factory=list)
    treasury_amount: int = 0
    available_amount: int = 0


class Raffle(Contract):
    """A creator funded raffle.

    The creator locks prize NFTs in a prize vault on :meth:`open`,
    participants pay into a tickets vault on :meth:`enter`, :meth:`close`
    asks the winner requester for randomness and :meth:`finish` hands out
    prizes and splits the tickets vault between treasury, beneficiaries
    and creator. The raffle owns both vault tokens for its whole life, so
    only it can move their contents.
    """

    RAFFLE_TYPE = RaffleType.TRADITIONAL

    def __init__(
        self,
        chain: Chain,
        hub: str,
        raffle_id: int,
        creator: str,
        start_time: int,
        end_time: int,
        ticket_price: int,
        required_balance: int,
        metadata: Metadata,
        token_type: TokenType,
        token_address: str = ZERO_ADDRESS,
        winner_number: int = 1,
    ) -> None:
        super().__init__(chain, hub, label=f"{self.RAFFLE_TYPE.name.title()}Raffle#{raffle_id}")
        self.storage = RaffleStorage(
            raffle_id=raffle_id,
            raffle_type=self.RAFFLE_TYPE,
            hub=self.deployer,
            creator=to_address(creator),
            start_time=start_time,
            end_time=end_time,
            ticket_price=ticket_price,
            required_balance=required_balance,
            metadata=metadata,
            token_type=TokenType(token_type),
            token_address=to_address(token_address),
            winner_number=winner_number,
        )

    # Collaborators

    def _hub(self):
        return self.chain.contract_at(self.storage.hub)

    def _factory(self) -> VaultFactory:
        return self.chain.contract_at(self._hub().vault_factory, VaultFactory)

    def _router(self) -> VaultDepositRouter:
        return self.chain.contract_at(self._hub().deposit_router, VaultDepositRouter)

    def _requester(self) -> WinnerRequester:
        return self.chain.contract_at(self._hub().winner_requester, WinnerRequester)

    def _vault(self, address: str) -> AssetVault:
        return self.chain.contract_at(address, AssetVault)

    # Views

    @property
    def status(self) -> RaffleStatus:
        return self.storage.status

    @property
    def creator(self) -> str:
        return self.storage.creator

    @property
    def raffle_id(self) -> int:
        return self.storage.raffle_id

    @property
    def total_participants(self) -> int:
        return len(self.storage.participants)

    @property
    def total_entries(self) -> int:
        return self.storage.total_entries

    def participants(self, index: int) -> str:
        return self.storage.participants[index]

    def entries(self, account: str) -> int:
        return self.storage.entries.get(to_address(account), 0)

    def winners(self, index: int) -> str:
        return self.storage.winners[index]

    def tokens(self, index: int) -> str:
        return self.storage.tokens[index]

    def ids(self, index: int) -> int:
        return self.storage.ids[index]

    def beneficiary_share(self, account: str) -> int:
        return self.storage.shares.get(to_address(account), 0)

    def _payment_token_type(self) -> TokenType:
        if self.storage.token_type == TokenType.NATIVE:
            return TokenType.NATIVE
        if self.storage.token_type in (TokenType.ERC20, TokenType.PRICE_FEED):
            return TokenType.ERC20
        raise InvalidParameter(f"tickets cannot be paid in {self.storage.token_type.name}")

    def ticket_amount(self) -> int:
        """Price of one ticket in the payment asset."""
        if self.storage.token_type != TokenType.PRICE_FEED:
            return self.storage.ticket_price
        manager = self.chain.contract_at(self._hub().price_feed_manager, PriceFeedManager)
        value, _ = manager.read_value(self.storage.token_address)
        return settlement.price_fed_amount(self.storage.ticket_price, value)

    def pot_balance(self) -> int:
        if self.storage.tickets_vault_address == ZERO_ADDRESS:
            return 0
        if self._payment_token_type() == TokenType.NATIVE:
            return self.chain.balance_of(self.storage.tickets_vault_address)
        token = self.chain.contract_at(self.storage.token_address, FungibleToken)
        return token.balance_of(self.storage.tickets_vault_address)

    def summary(self) -> Dict[str, Any]:
        """Plain data view for reporting."""
        s = self.storage
        return {
            "raffle_id": s.raffle_id,
            "address": self.address,
            "raffle_type": s.raffle_type.name,
            "status": s.status.name,
            "cancelation_reason": s.cancelation_reason.name if s.cancelation_reason is not None else None,
            "creator": s.creator,
            "start_time": s.start_time,
            "end_time": s.end_time,
            "ticket_price": s.ticket_price,
            "required_balance": s.required_balance,
            "token_type": s.token_type.name,
            "token_address": s.token_address,
            "winner_number": s.winner_number,
            "prizes_vault_id": s.prizes_vault_id,
            "tickets_vault_id": s.tickets_vault_id,
            "tokens": list(s.tokens),
            "ids": list(s.ids),
            "participants": list(s.participants),
            "total_participants": len(s.participants),
            "total_entries": s.total_entries,
            "beneficiaries": {address: s.shares[address] for address in s.beneficiaries},
            "request_id": s.request_id,
            "winner_indexes": list(s.winner_indexes),
            "winners": list(s.winners),
            "treasury_amount": s.treasury_amount,
            "available_amount": s.available_amount,
            "pot_balance": self.pot_balance(),
        }

    # Guards

    def _only_creator(self, sender: str) -> None:
        if sender != self.storage.creator:
            raise CallerNotCreator(f"{sender} did not create raffle {self.storage.raffle_id}")

    def _only_status(self, *allowed: RaffleStatus) -> None:
        if self.storage.status not in allowed:
            raise InvalidRaffleStatus(
                f"raffle {self.storage.raffle_id} is {self.storage.status.name}"
            )

    def _only_configurable(self) -> None:
        if self.storage.status not in (RaffleStatus.UNINITIALIZED, RaffleStatus.OPEN):
            raise RaffleNotConfigurable(
                f"raffle {self.storage.raffle_id} is {self.storage.status.name}"
            )

    def _emit_status(self, name: str, **args: Any) -> None:
        self.emit(
            name,
            raffle_id=self.storage.raffle_id,
            raffle_type=self.storage.raffle_type,
            **args,
        )

    # Configuration

    @transactional
    def update_winners(self, winner_number: int, *, sender: str) -> None:
        self._only_creator(sender)
        if self.storage.status != RaffleStatus.UNINITIALIZED:
            raise RaffleNotConfigurable("winners are fixed once the raffle opens")
        if winner_number < 1:
            raise InvalidWinnerNumber("a raffle needs at least one winner")
        self.storage.winner_number = winner_number
        self._emit_status("UpdateWinners", winner_number=winner_number)

    @transactional
    def update_metadata(self, metadata: Metadata, *, sender: str) -> None:
        self._only_creator(sender)
        if self.storage.status != RaffleStatus.UNINITIALIZED:
            raise RaffleNotConfigurable("metadata is fixed once the raffle opens")
        self.storage.metadata = metadata
        self._emit_status("UpdateMetadata", digest=metadata.digest)

    @transactional
    def set_beneficiaries(
        self, beneficiaries: Sequence[str], shares: Sequence[int], *, sender: str
    ) -> None:
        """Register new beneficiaries, each with its share of the net proceeds."""
        self._only_creator(sender)
        self._only_configurable()
        addresses = [to_address(address) for address in beneficiaries]
        if ZERO_ADDRESS in addresses:
            raise ZeroAddress("beneficiary cannot be the zero address")
        if len(addresses) != len(shares):
            raise BatchLengthMismatch(f"{len(addresses)} beneficiaries, {len(shares)} shares")
        if any(share <= 0 for share in shares):
            raise InvalidParameter("beneficiary shares must be positive")
        for address in addresses:
            if address in self.storage.shares:
                raise ParameterAlreadySet(f"beneficiary {address} is already set")
        if len(set(addresses)) != len(addresses):
            raise ParameterAlreadySet("beneficiary listed twice")
        total = sum(self.storage.shares.values()) + sum(shares)
        if total > HubDefaults.MAX_PERCENTAGE:
            raise InvalidParameter(f"beneficiary shares add up to {total}")
        for address, share in zip(addresses, shares):
            self.storage.beneficiaries.append(address)
            self.storage.shares[address] = share
        self.emit(
            "SetRaffleBeneficiaries",
            beneficiaries=addresses,
            shares=list(shares),
            raffle_id=self.storage.raffle_id,
            raffle_type=self.storage.raffle_type,
        )

    @transactional
    def update_beneficiary(self, beneficiary: str, share: int, *, sender: str) -> None:
        self._only_creator(sender)
        self._only_configurable()
        beneficiary = to_address(beneficiary)
        if beneficiary == ZERO_ADDRESS:
            raise ZeroAddress("beneficiary cannot be the zero address")
        if not 0 < share <= HubDefaults.MAX_PERCENTAGE:
            raise InvalidParameter(f"share {share} is not a positive percentage")
        if beneficiary not in self.storage.shares:
            raise ParameterNotSet(f"beneficiary {beneficiary} is not set")
        old_share = self.storage.shares[beneficiary]
        total = sum(self.storage.shares.values()) - old_share + share
        if total > HubDefaults.MAX_PERCENTAGE:
            raise InvalidParameter(f"beneficiary shares add up to {total}")
        self.storage.shares[beneficiary] = share
        self.emit(
            "UpdateRaffleBeneficiary",
            beneficiary=beneficiary,
            old_share=old_share,
            new_share=share,
            raffle_id=self.storage.raffle_id,
            raffle_type=self.storage.raffle_type,
        )

    # Lifecycle

    def _create_vaults(self) -> None:
        factory = self._factory()
        self.storage.prizes_vault_id, self.storage.prizes_vault_address = factory.create(
            self.address, sender=self.address
        )
        self.storage.tickets_vault_id, self.storage.tickets_vault_address = factory.create(
            self.address, sender=self.address
        )

    @transactional
    def open(self, tokens: Sequence[str], ids: Sequence[int], *, sender: str) -> None:
        """Lock the prize NFTs and start accepting entries.

        The creator must have approved the deposit router for every prize.
        """
        self._only_creator(sender)
        self._only_status(RaffleStatus.UNINITIALIZED)
        if self.chain.now < self.storage.start_time:
            raise RaffleNotStarted(f"raffle {self.storage.raffle_id} starts at {self.storage.start_time}")
        if self.chain.now >= self.storage.end_time:
            raise RaffleEnded(f"raffle {self.storage.raffle_id} ended at {self.storage.end_time}")
        if len(tokens) != len(ids):
            raise BatchLengthMismatch(f"{len(tokens)} tokens, {len(ids)} ids")
        if not tokens:
            raise InvalidParameter("a raffle needs at least one prize")
        tokens = [to_address(token) for token in tokens]
        self._create_vaults()
        self._router().deposit_erc721(
            self.storage.creator,
            self.storage.prizes_vault_address,
            tokens,
            list(ids),
            sender=self.address,
        )
        self.storage.tokens = tokens
        self.storage.ids = list(ids)
        self.storage.status = RaffleStatus.OPEN
        self._emit_status("RaffleOpened", prizes_vault_id=self.storage.prizes_vault_id, tokens=tokens, ids=list(ids))
        logger.info(f"Raffle {self.storage.raffle_id} opened with {len(tokens)} prize(s)")

    @transactional(payable=True)
    def enter(self, participant: str, ticket_count: int, *, sender: str, value: int) -> None:
        """Buy ``ticket_count`` tickets for ``participant``, paid by ``sender``."""
        self._only_status(RaffleStatus.OPEN)
        if self.chain.now < self.storage.start_time:
            raise RaffleNotStarted(f"raffle {self.storage.raffle_id} has not started")
        if self.chain.now >= self.storage.end_time:
            raise RaffleEnded(f"raffle {self.storage.raffle_id} ended at {self.storage.end_time}")
        participant = to_address(participant)
        if participant == ZERO_ADDRESS:
            raise ZeroAddress("cannot enter on behalf of the zero address")
        if ticket_count < 1:
            raise InvalidParameter("at least one ticket is required")
        amount = self.ticket_amount() * ticket_count
        router = self._router()
        if self._payment_token_type() == TokenType.NATIVE:
            if value != amount:
                raise InvalidParameter(f"sent {value}, tickets cost {amount}")
            router.deposit_native(
                sender, self.storage.tickets_vault_address, amount, sender=self.address, value=amount
            )
        else:
            if value:
                raise InvalidParameter("tickets are paid in tokens, not native currency")
            router.deposit_erc20(
                sender,
                self.storage.tickets_vault_address,
                self.storage.token_address,
                amount,
                sender=self.address,
            )
        self.storage.participants.append(participant)
        self.storage.slot_tickets.append(ticket_count)
        self.storage.entries[participant] = self.storage.entries.get(participant, 0) + ticket_count
        self.storage.paid[participant] = self.storage.paid.get(participant, 0) + amount
        self.storage.total_entries += ticket_count
        self._emit_status("RaffleEntered", participant=participant, ticket_count=ticket_count, amount=amount)
        logger.debug(f"{participant} bought {ticket_count} ticket(s) in raffle {self.storage.raffle_id}")

    def _requirements_met(self) -> bool:
        return (
            self.storage.total_entries >= self.storage.winner_number
            and self.pot_balance() >= self.storage.required_balance
        )

    @transactional
    def close(self, *, sender: str) -> Optional[str]:
        """Stop entries and request the winners.

        A raffle below its required balance, or with fewer tickets than
        winners, is canceled instead: prizes go back to the creator and
        every participant is refunded.

        Returns:
            The randomness request id, or None when the raffle was canceled
        """
        self._only_status(RaffleStatus.OPEN)
        if self.chain.now < self.storage.end_time:
            raise RaffleNotEnded(f"raffle {self.storage.raffle_id} ends at {self.storage.end_time}")
        if not self._requirements_met():
            logger.warning(
                f"Raffle {self.storage.raffle_id} did not meet its requirements "
                f"({self.storage.total_entries} tickets, pot {self.pot_balance()})"
            )
            self._unwind()
            self._cancel(CancelationReason.REQUIREMENTS_NOT_MET)
            return None
        signature = (
            QrngSignatures.INDIVIDUAL_WINNER
            if self.storage.winner_number == 1
            else QrngSignatures.MULTIPLE_WINNERS
        )
        request_id = self._requester().request_winners(
            function_selector(signature),
            self.storage.winner_number,
            self.storage.total_entries,
            sender=self.address,
        )
        self.storage.request_id = request_id
        self.storage.status = RaffleStatus.CLOSE
        self._emit_status("RaffleClosed", request_id=request_id)
        logger.info(f"Raffle {self.storage.raffle_id} closed, awaiting request {request_id[:10]}...")
        return request_id

    def _draw_winners(self) -> List[str]:
        indexes = self._requester().request_results(self.storage.request_id, sender=self.address)
        self.storage.winner_indexes = indexes
        return [
            self.storage.participants[settlement.ticket_owner_slot(self.storage.slot_tickets, index)]
            for index in indexes
        ]

    def _distribute_prizes(self, winners: Sequence[str]) -> None:
        vault = self._vault(self.storage.prizes_vault_address)
        vault.enable_withdraw(sender=self.address)
        assigned = settlement.assign_prizes(len(self.storage.tokens), winners)
        for token, token_id, winner in zip(self.storage.tokens, self.storage.ids, assigned):
            vault.withdraw_erc721(token, winner, token_id, sender=self.address)

    def _payout_plan(self, balance: int):
        """Recipients and amounts of the tickets vault at finish."""
        hub = self._hub()
        shares = [self.storage.shares[address] for address in self.storage.beneficiaries]
        payout = settlement.compute_payout(balance, hub.get_raffle_cut(), shares)
        recipients = [hub.treasury, *self.storage.beneficiaries, self.storage.creator]
        amounts = [payout.treasury_amount, *payout.beneficiary_amounts, payout.creator_amount]
        return payout, recipients, amounts

    def _settle(self) -> settlement.Payout:
        balance = self.pot_balance()
        payout, recipients, amounts = self._payout_plan(balance)
        vault = self._vault(self.storage.tickets_vault_address)
        vault.enable_withdraw(sender=self.address)
        vault.batch_amount_withdraw(
            self._payment_token_type(),
            self.storage.token_address,
            recipients,
            amounts,
            sender=self.address,
        )
        return payout

    @transactional
    def finish(self, *, sender: str) -> List[str]:
        """Draw the winners, hand out prizes and split the pot.

        Returns:
            Winner address for each drawn index
        """
        self._only_status(RaffleStatus.CLOSE)
        winners = self._draw_winners()
        self._distribute_prizes(winners)
        payout = self._settle()
        self.storage.winners = winners
        self.storage.treasury_amount = payout.treasury_amount
        self.storage.available_amount = payout.available_amount
        self.storage.status = RaffleStatus.FINISH
        self._emit_status(
            "RaffleFinished",
            winner_indexes=list(self.storage.winner_indexes),
            winners=list(winners),
            available_amount=payout.available_amount,
            treasury_amount=payout.treasury_amount,
        )
        logger.info(
            f"Raffle {self.storage.raffle_id} finished: {len(winners)} winner(s), "
            f"treasury {payout.treasury_amount}, available {payout.available_amount}"
        )
        return winners

    def _unwind(self) -> None:
        """Return prizes to the creator and refund every participant."""
        factory = self._factory()
        prizes = self._vault(self.storage.prizes_vault_address)
        prizes.enable_withdraw(sender=self.address)
        for token, token_id in zip(self.storage.tokens, self.storage.ids):
            prizes.withdraw_erc721(token, self.storage.creator, token_id, sender=self.address)
        tickets = self._vault(self.storage.tickets_vault_address)
        tickets.enable_withdraw(sender=self.address)
        refunded = [address for address, amount in self.storage.paid.items() if amount]
        if refunded:
            tickets.batch_amount_withdraw(
                self._payment_token_type(),
                self.storage.token_address,
                refunded,
                [self.storage.paid[address] for address in refunded],
                sender=self.address,
            )
        # Empty vaults go to the creator so nothing is left without an owner
        for vault_id in (self.storage.prizes_vault_id, self.storage.tickets_vault_id):
            factory.transfer_from(self.address, self.storage.creator, vault_id, sender=self.address)

    def _cancel(self, reason: CancelationReason) -> None:
        self.storage.status = RaffleStatus.CANCELED
        self.storage.cancelation_reason = reason
        self._emit_status("RaffleCanceled", reason=reason)
        logger.info(f"Raffle {self.storage.raffle_id} canceled: {reason.name}")

    @transactional(payable=True)
    def cancel(self, *, sender: str, value: int) -> None:
        """Creator exit, paid with the hub cancelation fee."""
        self._only_creator(sender)
        self._only_status(RaffleStatus.UNINITIALIZED, RaffleStatus.OPEN)
        hub = self._hub()
        if value != hub.cancelation_fee:
            raise InvalidParameter(f"cancelation costs {hub.cancelation_fee}, sent {value}")
        if value:
            self.chain.transfer_native(self.address, hub.treasury, value)
        if self.storage.status == RaffleStatus.OPEN:
            self._unwind()
        self._cancel(CancelationReason.CREATOR_DECISION)

    @transactional
    def force_recover(self, *, sender: str) -> None:
        """Operator exit: hand both vaults, contents untouched, to ``sender``."""
        hub = self._hub()
        if not hub.is_authorized(sender, "force_recover"):
            raise CallerNotOwner(f"{sender} cannot force recover raffles")
        self._only_status(RaffleStatus.UNINITIALIZED, RaffleStatus.OPEN, RaffleStatus.CLOSE)
        factory = self._factory()
        for vault_id in (self.storage.prizes_vault_id, self.storage.tickets_vault_id):
            if vault_id:
                factory.transfer_from(self.address, sender, vault_id, sender=self.address)
        logger.warning(f"Raffle {self.storage.raffle_id} force recovered by {sender}")
        self._cancel(CancelationReason.FORCED_CANCELATION)
