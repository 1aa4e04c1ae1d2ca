"""Fan-out payments to many recipients in one call."""

from __future__ import annotations

from typing import Sequence

from core import get_logger
from core.exceptions import CallerNotOwner, InvalidArrayLength, InvalidParameter
from ledger.assets import FungibleToken
from ledger.chain import Chain, Contract, to_address, transactional

logger = get_logger(__name__)


def _check_lengths(recipients: Sequence[str], amounts: Sequence[int]) -> None:
    if len(recipients) == 0 or len(recipients) != len(amounts):
        raise InvalidArrayLength(
            f"{len(recipients)} recipients for {len(amounts)} amounts"
        )
    if any(amount < 0 for amount in amounts):
        raise InvalidParameter("negative amount")


class Distributor(Contract):
    """Stateless payment splitter.

    Native payments must carry exactly the sum of ``amounts``. Token
    payments are pulled from the payer once, by allowance, and then paid
    out in list order.
    """

    def __init__(self, chain: Chain, deployer: str) -> None:
        super().__init__(chain, deployer)
        self.storage = None

    @transactional(payable=True)
    def distribute_native(
        self,
        recipients: Sequence[str],
        amounts: Sequence[int],
        *,
        sender: str,
        value: int,
    ) -> None:
        _check_lengths(recipients, amounts)
        total = sum(amounts)
        if value != total:
            raise InvalidParameter(f"sent {value}, distributing {total}")
        for recipient, amount in zip(recipients, amounts):
            self.chain.transfer_native(self.address, to_address(recipient), amount)
        self.emit("NativeDistributed", payer=sender, total=total)
        logger.debug(f"Distributed {total} native to {len(recipients)} recipients")

    @transactional
    def distribute_tokens(
        self,
        token: str,
        payer: str,
        recipients: Sequence[str],
        amounts: Sequence[int],
        *,
        sender: str,
    ) -> None:
        payer = to_address(payer)
        if sender != payer:
            raise CallerNotOwner("tokens can only be distributed by their payer")
        _check_lengths(recipients, amounts)
        total = sum(amounts)
        erc20 = self.chain.contract_at(to_address(token), FungibleToken)
        erc20.transfer_from(payer, self.address, total, sender=self.address)
        for recipient, amount in zip(recipients, amounts):
            erc20.transfer(to_address(recipient), amount, sender=self.address)
        self.emit("TokensDistributed", payer=payer, token=erc20.address, total=total)
        logger.debug(f"Distributed {total} {erc20.storage.symbol} to {len(recipients)} recipients")
