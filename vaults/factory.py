"""Vault factory: deploys vaults and mints the token that owns each one."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from core import get_logger
from core.constants import ZERO_ADDRESS
from core.exceptions import CallerNotOwner, InvalidParameter, TokenNotFound, ZeroAddress
from ledger.assets import NonFungibleStorage, NonFungibleToken
from ledger.chain import Chain, to_address, transactional
from vaults.asset_vault import AssetVault
from vaults.ownership import DelegatedOwner

logger = get_logger(__name__)


@dataclass
class FactoryStorage(NonFungibleStorage):
    distributor: str = ZERO_ADDRESS
    instances: List[str] = field(default_factory=list)


class VaultFactory(NonFungibleToken):
    """Non-fungible token whose ids are vaults.

    Vault ``id`` is the integer value of the vault address, so either one
    resolves the other. Holding the token is what makes an address the
    vault owner; transferring it hands over the vault and everything in it.
    """

    def __init__(self, chain: Chain, deployer: str, distributor: str) -> None:
        super().__init__(chain, deployer, name="Asset Vault", symbol="AV")
        self.storage = FactoryStorage(
            name="Asset Vault",
            symbol="AV",
            minter=self.deployer,
            distributor=to_address(distributor),
        )

    @staticmethod
    def vault_id_of(vault: str) -> int:
        return int(to_address(vault), 16)

    def total_instances(self) -> int:
        return len(self.storage.instances)

    def instance_at_index(self, index: int) -> str:
        if not 0 <= index < len(self.storage.instances):
            raise InvalidParameter(f"no vault at index {index}")
        return self.storage.instances[index]

    def instance_at(self, vault_id: int) -> str:
        """Return the vault address for ``vault_id``."""
        self.owner_of(vault_id)
        return to_address("0x" + format(vault_id, "040x"))

    def vault(self, vault_id: int) -> AssetVault:
        return self.chain.contract_at(self.instance_at(vault_id), AssetVault)

    def find_vault(self, vault_id: int) -> Optional[AssetVault]:
        try:
            return self.vault(vault_id)
        except TokenNotFound:
            return None

    @transactional
    def set_distributor(self, distributor: str, *, sender: str) -> None:
        if sender != self.storage.minter:
            raise CallerNotOwner("only the factory owner can change the distributor")
        distributor = to_address(distributor)
        if distributor == ZERO_ADDRESS:
            raise ZeroAddress("distributor must be set")
        self.storage.distributor = distributor
        self.emit("SetDistributor", distributor=distributor)

    @transactional
    def create(self, owner: str, *, sender: str) -> Tuple[int, str]:
        """Deploy a vault and mint its ownership token to ``owner``.

        Returns:
            Tuple of (vault_id, vault_address)
        """
        owner = to_address(owner)
        if owner == ZERO_ADDRESS:
            raise ZeroAddress("vault owner must be set")
        vault = AssetVault(
            self.chain,
            self.address,
            owner=None,
            distributor=self.storage.distributor,
        )
        vault_id = self.vault_id_of(vault.address)
        vault.storage.owner = DelegatedOwner(token_contract=self.address, token_id=vault_id)
        self._mint(owner, vault_id)
        self.storage.instances.append(vault.address)
        self.emit("VaultCreated", vault_id=vault_id, vault=vault.address, owner=owner)
        logger.info(f"Created vault {vault.address} for {self.chain.label(owner)}")
        return vault_id, vault.address
