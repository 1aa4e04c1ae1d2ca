"""Escrow vaults, their factory, the deposit router and the distributor."""

from vaults.ownership import DirectOwner, DelegatedOwner, Owner, resolve_owner
from vaults.distributor import Distributor
from vaults.asset_vault import AssetVault
from vaults.factory import VaultFactory
from vaults.deposit_router import VaultDepositRouter

__all__ = [
    'DirectOwner',
    'DelegatedOwner',
    'Owner',
    'resolve_owner',
    'Distributor',
    'AssetVault',
    'VaultFactory',
    'VaultDepositRouter',
]
