"""Who may operate a vault."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ledger.assets import NonFungibleToken
from ledger.chain import Chain


@dataclass(frozen=True)
class DirectOwner:
    """A fixed address."""
    address: str


@dataclass(frozen=True)
class DelegatedOwner:
    """Whoever currently holds ``token_id`` of ``token_contract``."""
    token_contract: str
    token_id: int


Owner = Union[DirectOwner, DelegatedOwner]


def resolve_owner(chain: Chain, owner: Owner) -> str:
    """Resolve an ownership record to the address allowed to act right now.

    Raises:
        TokenNotFound: The backing token does not exist
        ContractNotFound: The backing token contract is not deployed
    """
    if isinstance(owner, DirectOwner):
        return owner.address
    token = chain.contract_at(owner.token_contract, NonFungibleToken)
    return token.owner_of(owner.token_id)
