"""Yolo raffle: the ticket pot itself is the prize."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from core import get_logger
from core.constants import RaffleStatus, RaffleType, ZERO_ADDRESS
from core.exceptions import CallerNotOwner, RaffleNotConfigurable
from ledger.chain import transactional
from raffles import settlement
from raffles.raffle import Raffle, RaffleStorage

logger = get_logger(__name__)


@dataclass
class YoloStorage(RaffleStorage):
    pot_vault_id: int = 0
    pot_vault_address: str = ZERO_ADDRESS


class YoloRaffle(Raffle):
    """Fixed duration raffle with a single winner and no prize manifest.

    The prize vault holds one thing: the ownership token of the pot
    vault. At finish the pot is filled with the tickets vault balance
    minus the yolo cut and its token goes to the winner, who can then
    unlock and empty it.
    """

    RAFFLE_TYPE = RaffleType.YOLO
    storage: YoloStorage

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.storage = YoloStorage(**vars(self.storage))

    @transactional
    def launch(self, *, sender: str) -> None:
        """Create the vaults and open the raffle. Called by the hub only."""
        if sender != self.storage.hub:
            raise CallerNotOwner("only the hub launches yolo raffles")
        self._only_status(RaffleStatus.UNINITIALIZED)
        self._create_vaults()
        factory = self._factory()
        pot_id, pot_address = factory.create(self.storage.prizes_vault_address, sender=self.address)
        self.storage.pot_vault_id = pot_id
        self.storage.pot_vault_address = pot_address
        self.storage.tokens = [factory.address]
        self.storage.ids = [pot_id]
        self.storage.status = RaffleStatus.OPEN
        self._emit_status(
            "RaffleOpened",
            prizes_vault_id=self.storage.prizes_vault_id,
            tokens=list(self.storage.tokens),
            ids=list(self.storage.ids),
        )
        logger.info(f"Yolo raffle {self.storage.raffle_id} open until {self.storage.end_time}")

    @transactional
    def set_beneficiaries(self, beneficiaries: Sequence[str], shares: Sequence[int], *, sender: str) -> None:
        raise RaffleNotConfigurable("yolo raffles have no beneficiaries")

    @transactional
    def update_beneficiary(self, beneficiary: str, share: int, *, sender: str) -> None:
        raise RaffleNotConfigurable("yolo raffles have no beneficiaries")

    def _payout_plan(self, balance: int):
        hub = self._hub()
        treasury_amount, available = settlement.treasury_split(balance, hub.get_yolo_raffle_cut())
        payout = settlement.Payout(
            treasury_amount=treasury_amount,
            available_amount=available,
            beneficiary_amounts=(),
            creator_amount=available,
        )
        return payout, [hub.treasury, self.storage.pot_vault_address], [treasury_amount, available]

    def summary(self):
        data = super().summary()
        data["pot_vault_id"] = self.storage.pot_vault_id
        data["pot_vault_address"] = self.storage.pot_vault_address
        return data
