"""Escrow account holding any asset type until its owner releases it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from core import get_logger
from core.constants import TokenType, HubDefaults
from core.exceptions import (
    BatchLengthMismatch,
    CallerNotOwner,
    InvalidParameter,
    VaultWithdrawsDisabled,
    VaultWithdrawsEnabled,
)
from ledger.assets import FungibleToken, NonFungibleToken
from ledger.chain import Chain, Contract, to_address, transactional
from vaults.distributor import Distributor
from vaults.ownership import Owner, resolve_owner

logger = get_logger(__name__)


@dataclass
class VaultStorage:
    owner: Owner
    distributor: str
    withdraw_enabled: bool = False


class AssetVault(Contract):
    """Owner-gated escrow with a one-way withdraw switch.

    Every privileged call resolves the owner first; the only authorization
    failure is ``CallerNotOwner``. Withdrawals stay locked until the owner
    calls :meth:`enable_withdraw`, which can never be undone.
    """

    def __init__(self, chain: Chain, deployer: str, owner: Owner, distributor: str) -> None:
        super().__init__(chain, deployer, label="AssetVault")
        self.storage = VaultStorage(owner=owner, distributor=distributor)

    def owner(self) -> str:
        return resolve_owner(self.chain, self.storage.owner)

    @property
    def withdraw_enabled(self) -> bool:
        return self.storage.withdraw_enabled

    def _only_owner(self, sender: str) -> str:
        owner = self.owner()
        if sender != owner:
            raise CallerNotOwner(f"{sender} does not own vault {self.address}")
        return owner

    def _only_enabled(self) -> None:
        if not self.storage.withdraw_enabled:
            raise VaultWithdrawsDisabled(f"vault {self.address} is locked")

    @transactional(payable=True)
    def receive(self, *, sender: str, value: int) -> None:
        """Accept native currency."""

    @transactional
    def enable_withdraw(self, *, sender: str) -> None:
        owner = self._only_owner(sender)
        if self.storage.withdraw_enabled:
            raise VaultWithdrawsEnabled(f"vault {self.address} is already unlocked")
        self.storage.withdraw_enabled = True
        self.emit("WithdrawEnabled", owner=owner)
        logger.info(f"Vault {self.address} unlocked by {owner}")

    @transactional
    def withdraw_erc721(self, token: str, recipient: str, token_id: int, *, sender: str) -> None:
        owner = self._only_owner(sender)
        self._only_enabled()
        nft = self.chain.contract_at(to_address(token), NonFungibleToken)
        recipient = to_address(recipient)
        nft.transfer_from(self.address, recipient, token_id, sender=self.address)
        self.emit(
            "WithdrawERC721", owner=owner, recipient=recipient, token=nft.address, token_id=token_id
        )

    @transactional
    def withdraw_erc20(self, token: str, recipient: str, amount: int, *, sender: str) -> None:
        owner = self._only_owner(sender)
        self._only_enabled()
        erc20 = self.chain.contract_at(to_address(token), FungibleToken)
        recipient = to_address(recipient)
        erc20.transfer(recipient, amount, sender=self.address)
        self.emit("WithdrawERC20", owner=owner, token=erc20.address, recipient=recipient, amount=amount)

    @transactional
    def withdraw_native(self, recipient: str, amount: int, *, sender: str) -> None:
        owner = self._only_owner(sender)
        self._only_enabled()
        recipient = to_address(recipient)
        self.chain.transfer_native(self.address, recipient, amount)
        self.emit("WithdrawNative", owner=owner, recipient=recipient, amount=amount)

    def _balance(self, token_type: TokenType, token: str) -> int:
        if token_type == TokenType.NATIVE:
            return self.native_balance
        if token_type == TokenType.ERC20:
            return self.chain.contract_at(to_address(token), FungibleToken).balance_of(self.address)
        raise InvalidParameter(f"cannot batch withdraw {TokenType(token_type).name}")

    def _distribute(
        self, token_type: TokenType, token: str, recipients: Sequence[str], amounts: List[int]
    ) -> None:
        distributor = self.chain.contract_at(self.storage.distributor, Distributor)
        total = sum(amounts)
        if token_type == TokenType.NATIVE:
            distributor.distribute_native(recipients, amounts, sender=self.address, value=total)
        elif token_type == TokenType.ERC20:
            erc20 = self.chain.contract_at(to_address(token), FungibleToken)
            erc20.approve(distributor.address, total, sender=self.address)
            distributor.distribute_tokens(
                erc20.address, self.address, recipients, amounts, sender=self.address
            )
        else:
            raise InvalidParameter(f"cannot batch withdraw {TokenType(token_type).name}")

    @transactional
    def batch_amount_withdraw(
        self,
        token_type: TokenType,
        token: str,
        recipients: Sequence[str],
        amounts: Sequence[int],
        *,
        sender: str,
    ) -> None:
        """Pay ``amounts[i]`` to ``recipients[i]`` through the distributor."""
        self._only_owner(sender)
        self._only_enabled()
        if len(recipients) != len(amounts):
            raise BatchLengthMismatch(f"{len(recipients)} recipients, {len(amounts)} amounts")
        self._distribute(TokenType(token_type), token, recipients, list(amounts))

    @transactional
    def batch_percentage_withdraw(
        self,
        token_type: TokenType,
        token: str,
        recipients: Sequence[str],
        percentages: Sequence[int],
        *,
        sender: str,
    ) -> List[int]:
        """Pay each recipient its percentage of the current balance.

        Returns:
            The amounts actually paid, in recipient order
        """
        self._only_owner(sender)
        self._only_enabled()
        if len(recipients) != len(percentages):
            raise BatchLengthMismatch(f"{len(recipients)} recipients, {len(percentages)} percentages")
        if any(p < 0 for p in percentages) or sum(percentages) > HubDefaults.MAX_PERCENTAGE:
            raise InvalidParameter(f"percentages {list(percentages)} exceed 100")
        token_type = TokenType(token_type)
        balance = self._balance(token_type, token)
        amounts = [balance * p // HubDefaults.MAX_PERCENTAGE for p in percentages]
        self._distribute(token_type, token, recipients, amounts)
        return amounts
