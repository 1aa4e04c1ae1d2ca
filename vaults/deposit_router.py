"""Pull-based deposits into factory vaults."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from core import get_logger
from core.constants import ZERO_ADDRESS
from core.exceptions import (
    AccessDenied,
    BatchLengthMismatch,
    CallerNotOwner,
    InvalidParameter,
    TokenNotFound,
    ZeroAddress,
)
from ledger.assets import FungibleToken, NonFungibleToken
from ledger.chain import Chain, Contract, to_address, transactional
from vaults.factory import VaultFactory

logger = get_logger(__name__)


@dataclass
class DepositRouterStorage:
    owner: str
    factory: str
    hub: str = ZERO_ADDRESS


class VaultDepositRouter(Contract):
    """Moves pre-approved assets from a payer into a vault.

    A payer always may deposit its own assets. Pulling a third party's
    assets is reserved to raffles registered in the hub, which deposit
    the creator's prizes on its behalf.
    """

    def __init__(self, chain: Chain, deployer: str, factory: str) -> None:
        super().__init__(chain, deployer)
        self.storage = DepositRouterStorage(owner=self.deployer, factory=to_address(factory))

    @transactional
    def set_hub(self, hub: str, *, sender: str) -> None:
        if sender != self.storage.owner:
            raise CallerNotOwner("only the router owner can set the hub")
        hub = to_address(hub)
        if hub == ZERO_ADDRESS:
            raise ZeroAddress("hub must be set")
        self.storage.hub = hub

    def _check_vault(self, vault: str) -> str:
        vault = to_address(vault)
        factory = self.chain.contract_at(self.storage.factory, VaultFactory)
        try:
            factory.owner_of(factory.vault_id_of(vault))
        except TokenNotFound as exc:
            raise InvalidParameter(f"{vault} is not a factory vault") from exc
        return vault

    def _check_payer(self, payer: str, sender: str) -> str:
        payer = to_address(payer)
        if payer == sender:
            return payer
        hub = self.storage.hub
        if hub != ZERO_ADDRESS and self.chain.contract_at(hub).is_raffle(sender):
            return payer
        raise AccessDenied(f"{sender} cannot pull assets of {payer}")

    @transactional(payable=True)
    def deposit_native(self, payer: str, vault: str, amount: int, *, sender: str, value: int) -> None:
        vault = self._check_vault(vault)
        if value != amount:
            raise InvalidParameter(f"sent {value}, declared {amount}")
        payer = self._check_payer(payer, sender)
        self.chain.transfer_native(self.address, vault, amount)
        self.emit("DepositNative", payer=payer, vault=vault, amount=amount)

    @transactional
    def deposit_erc20(
        self, payer: str, vault: str, token: str, amount: int, *, sender: str
    ) -> None:
        vault = self._check_vault(vault)
        payer = self._check_payer(payer, sender)
        erc20 = self.chain.contract_at(to_address(token), FungibleToken)
        erc20.transfer_from(payer, vault, amount, sender=self.address)
        self.emit("DepositERC20", payer=payer, vault=vault, token=erc20.address, amount=amount)

    @transactional
    def deposit_erc721(
        self,
        payer: str,
        vault: str,
        tokens: Sequence[str],
        token_ids: Sequence[int],
        *,
        sender: str,
    ) -> None:
        vault = self._check_vault(vault)
        payer = self._check_payer(payer, sender)
        if len(tokens) != len(token_ids):
            raise BatchLengthMismatch(f"{len(tokens)} tokens, {len(token_ids)} ids")
        for token, token_id in zip(tokens, token_ids):
            nft = self.chain.contract_at(to_address(token), NonFungibleToken)
            nft.transfer_from(payer, vault, token_id, sender=self.address)
            self.emit("DepositERC721", payer=payer, vault=vault, token=nft.address, token_id=token_id)
        logger.debug(f"Deposited {len(tokens)} NFTs from {payer} into {vault}")
