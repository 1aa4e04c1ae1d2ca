"""Token primitives: fungible and non-fungible asset contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.constants import ZERO_ADDRESS
from core.exceptions import (
    CallerNotOwner,
    InsufficientAllowance,
    InsufficientBalance,
    InvalidParameter,
    NotTokenOwner,
    TokenNotFound,
    ZeroAddress,
)
from ledger.chain import Chain, Contract, to_address, transactional


@dataclass
class FungibleStorage:
    name: str
    symbol: str
    decimals: int
    minter: str
    total_supply: int = 0
    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[str, Dict[str, int]] = field(default_factory=dict)


class FungibleToken(Contract):
    """ERC20 style token."""

    def __init__(self, chain: Chain, deployer: str, name: str, symbol: str, decimals: int = 18) -> None:
        super().__init__(chain, deployer, label=symbol)
        self.storage = FungibleStorage(
            name=name, symbol=symbol, decimals=decimals, minter=self.deployer
        )

    def balance_of(self, account: str) -> int:
        return self.storage.balances.get(to_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.storage.allowances.get(to_address(owner), {}).get(to_address(spender), 0)

    @property
    def total_supply(self) -> int:
        return self.storage.total_supply

    def _move(self, source: str, destination: str, amount: int) -> None:
        if destination == ZERO_ADDRESS:
            raise ZeroAddress("transfer to the zero address")
        if amount < 0:
            raise InvalidParameter("negative amount")
        balance = self.storage.balances.get(source, 0)
        if balance < amount:
            raise InsufficientBalance(f"{source} holds {balance} {self.storage.symbol}, needs {amount}")
        self.storage.balances[source] = balance - amount
        self.storage.balances[destination] = self.storage.balances.get(destination, 0) + amount
        self.emit("Transfer", source=source, destination=destination, amount=amount)

    @transactional
    def mint(self, account: str, amount: int, *, sender: str) -> None:
        if sender != self.storage.minter:
            raise CallerNotOwner("only the minter can mint")
        account = to_address(account)
        if account == ZERO_ADDRESS:
            raise ZeroAddress("mint to the zero address")
        self.storage.total_supply += amount
        self.storage.balances[account] = self.storage.balances.get(account, 0) + amount
        self.emit("Transfer", source=ZERO_ADDRESS, destination=account, amount=amount)

    @transactional
    def approve(self, spender: str, amount: int, *, sender: str) -> bool:
        spender = to_address(spender)
        self.storage.allowances.setdefault(sender, {})[spender] = amount
        self.emit("Approval", owner=sender, spender=spender, amount=amount)
        return True

    @transactional
    def transfer(self, recipient: str, amount: int, *, sender: str) -> bool:
        self._move(sender, to_address(recipient), amount)
        return True

    @transactional
    def transfer_from(self, owner: str, recipient: str, amount: int, *, sender: str) -> bool:
        owner = to_address(owner)
        if sender != owner:
            allowed = self.allowance(owner, sender)
            if allowed < amount:
                raise InsufficientAllowance(f"{sender} may move {allowed} from {owner}, needs {amount}")
            self.storage.allowances[owner][sender] = allowed - amount
        self._move(owner, to_address(recipient), amount)
        return True


@dataclass
class NonFungibleStorage:
    name: str
    symbol: str
    minter: str
    owners: Dict[int, str] = field(default_factory=dict)
    balances: Dict[str, int] = field(default_factory=dict)
    approvals: Dict[int, str] = field(default_factory=dict)
    operators: Dict[str, List[str]] = field(default_factory=dict)


class NonFungibleToken(Contract):
    """ERC721 style token."""

    def __init__(self, chain: Chain, deployer: str, name: str, symbol: str) -> None:
        super().__init__(chain, deployer, label=symbol)
        self.storage = NonFungibleStorage(name=name, symbol=symbol, minter=self.deployer)

    def owner_of(self, token_id: int) -> str:
        owner = self.storage.owners.get(token_id)
        if owner is None:
            raise TokenNotFound(f"{self.storage.symbol} #{token_id} does not exist")
        return owner

    def balance_of(self, account: str) -> int:
        return self.storage.balances.get(to_address(account), 0)

    def get_approved(self, token_id: int) -> str:
        self.owner_of(token_id)
        return self.storage.approvals.get(token_id, ZERO_ADDRESS)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return to_address(operator) in self.storage.operators.get(to_address(owner), [])

    def _mint(self, account: str, token_id: int) -> None:
        if account == ZERO_ADDRESS:
            raise ZeroAddress("mint to the zero address")
        if token_id in self.storage.owners:
            raise InvalidParameter(f"{self.storage.symbol} #{token_id} already minted")
        self.storage.owners[token_id] = account
        self.storage.balances[account] = self.storage.balances.get(account, 0) + 1
        self.emit("Transfer", source=ZERO_ADDRESS, destination=account, token_id=token_id)

    def _transfer(self, source: str, destination: str, token_id: int) -> None:
        if destination == ZERO_ADDRESS:
            raise ZeroAddress("transfer to the zero address")
        self.storage.approvals.pop(token_id, None)
        self.storage.balances[source] -= 1
        self.storage.balances[destination] = self.storage.balances.get(destination, 0) + 1
        self.storage.owners[token_id] = destination
        self.emit("Transfer", source=source, destination=destination, token_id=token_id)

    @transactional
    def mint(self, account: str, token_id: int, *, sender: str) -> None:
        if sender != self.storage.minter:
            raise CallerNotOwner("only the minter can mint")
        self._mint(to_address(account), token_id)

    @transactional
    def approve(self, spender: str, token_id: int, *, sender: str) -> None:
        owner = self.owner_of(token_id)
        if sender != owner and not self.is_approved_for_all(owner, sender):
            raise NotTokenOwner(f"{sender} cannot approve {self.storage.symbol} #{token_id}")
        spender = to_address(spender)
        self.storage.approvals[token_id] = spender
        self.emit("Approval", owner=owner, spender=spender, token_id=token_id)

    @transactional
    def set_approval_for_all(self, operator: str, approved: bool, *, sender: str) -> None:
        operator = to_address(operator)
        operators = self.storage.operators.setdefault(sender, [])
        if approved and operator not in operators:
            operators.append(operator)
        elif not approved and operator in operators:
            operators.remove(operator)
        self.emit("ApprovalForAll", owner=sender, operator=operator, approved=approved)

    @transactional
    def transfer_from(self, owner: str, recipient: str, token_id: int, *, sender: str) -> None:
        owner = to_address(owner)
        current: Optional[str] = self.owner_of(token_id)
        if current != owner:
            raise NotTokenOwner(f"{owner} does not own {self.storage.symbol} #{token_id}")
        authorized = (
            sender == owner
            or self.storage.approvals.get(token_id) == sender
            or self.is_approved_for_all(owner, sender)
        )
        if not authorized:
            raise NotTokenOwner(f"{sender} is neither owner nor approved for #{token_id}")
        self._transfer(owner, to_address(recipient), token_id)
