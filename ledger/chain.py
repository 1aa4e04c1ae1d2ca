"""In-process ledger the marketplace contracts run on.

The chain keeps the clock, native balances, the contract registry and the
event log. State-changing contract methods run inside
:meth:`Chain.transaction`; the outermost transaction snapshots every
contract's ``storage`` and restores it when the call raises, so a failed
call leaves no partial effect behind.
"""

from __future__ import annotations

import copy
import functools
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, TypeVar

from web3 import Web3

from core import get_logger
from core.constants import ZERO_ADDRESS
from core.exceptions import ContractNotFound, InsufficientBalance, InvalidParameter

logger = get_logger(__name__)

C = TypeVar("C", bound="Contract")


def to_address(value: Any) -> str:
    """Normalise an address to its checksummed form."""
    if isinstance(value, Contract):
        return value.address
    try:
        return Web3.to_checksum_address(value)
    except (TypeError, ValueError) as exc:
        raise InvalidParameter(f"invalid address: {value!r}") from exc


@dataclass(frozen=True)
class Event:
    """A log entry emitted by a contract."""
    name: str
    emitter: str
    args: Dict[str, Any]
    timestamp: int
    tx_index: int


@dataclass
class _Snapshot:
    balances: Dict[str, int]
    storage: Dict[str, Any]
    events: int
    nonce: int
    tx_index: int


class Chain:
    """Sequential ledger with all-or-nothing transactions."""

    def __init__(self, start_time: Optional[int] = None, chain_id: int = 31337) -> None:
        self.chain_id = chain_id
        self._now = int(time.time()) if start_time is None else int(start_time)
        self._balances: Dict[str, int] = {}
        self._contracts: Dict[str, Contract] = {}
        self._labels: Dict[str, str] = {}
        self.events: List[Event] = []
        self._nonce = 0
        self._tx_index = 0
        self._depth = 0
        self._lock = threading.RLock()
        self._listeners: List[Callable[[Event], None]] = []

    # Clock

    @property
    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise InvalidParameter("time only moves forward")
        with self._lock:
            self._now += seconds
        return self._now

    # Addresses

    def new_address(self, seed: str) -> str:
        """Derive a fresh deterministic address from a seed and the chain nonce."""
        self._nonce += 1
        digest = Web3.keccak(text=f"{self.chain_id}:{seed}:{self._nonce}")
        return Web3.to_checksum_address("0x" + bytes(digest[-20:]).hex())

    def create_account(self, label: str, balance: int = 0) -> str:
        address = self.new_address(label)
        self._labels[address] = label
        if balance:
            self.mint_native(address, balance)
        return address

    def label(self, address: str) -> str:
        return self._labels.get(address, address)

    # Contracts

    def register(self, contract: "Contract") -> None:
        self._contracts[contract.address] = contract
        self._labels.setdefault(contract.address, type(contract).__name__)

    def is_contract(self, address: str) -> bool:
        return address in self._contracts

    def contract_at(self, address: str, expected: Optional[Type[C]] = None) -> C:
        contract = self._contracts.get(address)
        if contract is None:
            raise ContractNotFound(f"no contract at {address}")
        if expected is not None and not isinstance(contract, expected):
            raise ContractNotFound(f"{address} is not a {expected.__name__}")
        return contract

    def contracts(self) -> List["Contract"]:
        return list(self._contracts.values())

    # Native currency

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def mint_native(self, address: str, amount: int) -> None:
        if amount < 0:
            raise InvalidParameter("negative amount")
        self._balances[address] = self.balance_of(address) + amount

    def transfer_native(self, source: str, destination: str, amount: int) -> None:
        if amount < 0:
            raise InvalidParameter("negative amount")
        if destination == ZERO_ADDRESS:
            raise InvalidParameter("native transfer to the zero address")
        available = self.balance_of(source)
        if available < amount:
            raise InsufficientBalance(
                f"{self.label(source)} holds {available}, needs {amount}"
            )
        self._balances[source] = available - amount
        self._balances[destination] = self.balance_of(destination) + amount

    # Events

    def emit(self, emitter: str, name: str, **args: Any) -> Event:
        event = Event(
            name=name,
            emitter=emitter,
            args=args,
            timestamp=self._now,
            tx_index=self._tx_index,
        )
        self.events.append(event)
        return event

    def subscribe(self, listener: Callable[[Event], None]) -> None:
        """Call ``listener`` with every event of each committed transaction."""
        self._listeners.append(listener)

    def events_of(self, emitter: Optional[str] = None, name: Optional[str] = None) -> List[Event]:
        return [
            event for event in self.events
            if (emitter is None or event.emitter == emitter)
            and (name is None or event.name == name)
        ]

    # Transactions

    def _snapshot(self) -> _Snapshot:
        return _Snapshot(
            balances=dict(self._balances),
            storage={
                address: copy.deepcopy(contract.storage)
                for address, contract in self._contracts.items()
            },
            events=len(self.events),
            nonce=self._nonce,
            tx_index=self._tx_index,
        )

    def _restore(self, snapshot: _Snapshot) -> None:
        for address in list(self._contracts):
            if address not in snapshot.storage:
                del self._contracts[address]
                self._labels.pop(address, None)
        for address, storage in snapshot.storage.items():
            self._contracts[address].storage = storage
        self._balances = snapshot.balances
        del self.events[snapshot.events:]
        self._nonce = snapshot.nonce
        self._tx_index = snapshot.tx_index

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            outermost = self._depth == 0
            snapshot = self._snapshot() if outermost else None
            first_event = len(self.events)
            if outermost:
                self._tx_index += 1
            self._depth += 1
            try:
                yield
            except Exception as exc:
                self._depth -= 1
                if outermost:
                    self._restore(snapshot)
                    logger.debug(f"Transaction reverted: {exc!r}")
                raise
            self._depth -= 1
            if outermost:
                for event in self.events[first_event:]:
                    for listener in self._listeners:
                        listener(event)


class Contract:
    """Base class for everything deployed on the chain.

    Subclasses keep all mutable state in ``self.storage`` (plain data only)
    and refer to other contracts by address.
    """

    storage: Any = None

    def __init__(self, chain: Chain, deployer: str, label: Optional[str] = None) -> None:
        self.chain = chain
        self.deployer = to_address(deployer)
        self.address = chain.new_address(label or type(self).__name__)
        chain.register(self)

    def emit(self, name: str, **args: Any) -> Event:
        return self.chain.emit(self.address, name, **args)

    @property
    def native_balance(self) -> int:
        return self.chain.balance_of(self.address)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.address}>"


def transactional(func: Optional[Callable] = None, *, payable: bool = False) -> Callable:
    """Run a contract method as a transaction from ``sender``.

    Payable methods receive ``value`` after it has been moved from the sender
    into the contract's native balance.
    """

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(self: Contract, *args: Any, sender: Any, value: int = 0, **kwargs: Any) -> Any:
            sender = to_address(sender)
            if value < 0:
                raise InvalidParameter("negative value")
            if value and not payable:
                raise InvalidParameter(f"{fn.__name__} does not accept native value")
            with self.chain.transaction():
                if value:
                    self.chain.transfer_native(sender, self.address, value)
                if payable:
                    return fn(self, *args, sender=sender, value=value, **kwargs)
                return fn(self, *args, sender=sender, **kwargs)

        wrapper.payable = payable
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
