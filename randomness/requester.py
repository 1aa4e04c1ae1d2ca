"""Contract side of the randomness request/response protocol.

A requester registers the provider endpoints it can be called back on,
issues requests through the provider contract and accepts exactly one
callback per request. Each request moves through two explicit states,
:class:`PendingRequest` and then :class:`FulfilledRequest`; nothing else
is trusted about the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from core import get_logger
from core.constants import ZERO_ADDRESS
from core.exceptions import (
    CallerNotOwner,
    CallerNotProvider,
    InvalidParameter,
    NoEndpointAdded,
    ParameterNotSet,
    RequestIdNotKnown,
    RequestNotFulfilled,
    ZeroAddress,
)
from ledger.chain import Chain, Contract, to_address, transactional
from randomness.provider import RandomnessProvider

logger = get_logger(__name__)


def function_selector(signature: str) -> str:
    """First four bytes of keccak256(signature), as ``0x``-prefixed hex."""
    return "0x" + bytes(Web3.keccak(text=signature)[:4]).hex()


@dataclass(frozen=True)
class Endpoint:
    endpoint_id: str
    selector: str


@dataclass(frozen=True)
class PendingRequest:
    request_id: str
    selector: str


@dataclass(frozen=True)
class FulfilledRequest:
    request_id: str
    endpoint_id: str
    payload: Any


RequestState = Union[PendingRequest, FulfilledRequest]


@dataclass
class RequesterStorage:
    owner: str
    provider: str
    airnode: str = ZERO_ADDRESS
    sponsor: str = ZERO_ADDRESS
    sponsor_wallet: str = ZERO_ADDRESS
    endpoints: List[Endpoint] = field(default_factory=list)
    selector_index: Dict[str, int] = field(default_factory=dict)
    requests: Dict[str, RequestState] = field(default_factory=dict)


class RandomnessRequester(Contract):
    """Base class for contracts consuming the randomness provider.

    Subclasses declare how each callback selector is decoded in
    ``DECODERS`` (selector signature -> ABI type) and react to a delivered
    payload in :meth:`_on_fulfilled`.
    """

    DECODERS: Dict[str, str] = {}
    storage: RequesterStorage

    def __init__(self, chain: Chain, deployer: str, provider: str) -> None:
        super().__init__(chain, deployer)
        self.storage = self._initial_storage(self.deployer, to_address(provider))

    def _initial_storage(self, owner: str, provider: str) -> RequesterStorage:
        return RequesterStorage(owner=owner, provider=provider)

    def _only_owner(self, sender: str) -> None:
        if sender != self.storage.owner:
            raise CallerNotOwner(f"{sender} does not own requester {self.address}")

    # Configuration

    @transactional
    def set_request_parameters(
        self, airnode: str, sponsor: str, sponsor_wallet: str, *, sender: str
    ) -> None:
        """Store the provider address and the sponsorship used for requests.

        Every call re-emits ``SetRequestParameters``, even when unchanged.
        """
        self._only_owner(sender)
        airnode, sponsor, sponsor_wallet = (
            to_address(airnode), to_address(sponsor), to_address(sponsor_wallet)
        )
        if ZERO_ADDRESS in (airnode, sponsor_wallet):
            raise ZeroAddress("airnode and sponsor wallet must be set")
        self.storage.airnode = airnode
        self.storage.sponsor = sponsor
        self.storage.sponsor_wallet = sponsor_wallet
        self.emit(
            "SetRequestParameters",
            airnode=airnode,
            sponsor=sponsor,
            sponsor_wallet=sponsor_wallet,
        )

    @transactional
    def add_new_endpoint(self, endpoint_id: str, signature: str, *, sender: str) -> int:
        self._only_owner(sender)
        selector = function_selector(signature)
        index = len(self.storage.endpoints)
        self.storage.endpoints.append(Endpoint(endpoint_id=endpoint_id, selector=selector))
        self.storage.selector_index[selector] = index
        self.emit(
            "SetAirnodeEndpoint",
            index=index,
            endpoint_id=endpoint_id,
            signature=signature,
            selector=selector,
        )
        logger.info(f"Registered endpoint {signature} ({selector}) at index {index}")
        return index

    # Views

    @property
    def airnode(self) -> str:
        return self.storage.airnode

    def endpoints_ids(self, index: int) -> Endpoint:
        if not 0 <= index < len(self.storage.endpoints):
            raise IndexError(f"no endpoint at index {index}")
        return self.storage.endpoints[index]

    def endpoint_index(self, selector: str) -> Optional[int]:
        return self.storage.selector_index.get(selector)

    def request_state(self, request_id: str) -> Optional[RequestState]:
        return self.storage.requests.get(request_id)

    # Guards

    def valid_request(self, request_id: str) -> PendingRequest:
        state = self.storage.requests.get(request_id)
        if not isinstance(state, PendingRequest):
            raise RequestIdNotKnown(f"request {request_id} is not outstanding")
        return state

    def request_fulfilled(self, request_id: str) -> FulfilledRequest:
        state = self.storage.requests.get(request_id)
        if not isinstance(state, FulfilledRequest):
            raise RequestNotFulfilled(f"request {request_id} has not been fulfilled")
        return state

    def before_fulfillment(self, selector: str) -> str:
        """Return the endpoint id registered for ``selector``."""
        index = self.endpoint_index(selector)
        if index is None:
            raise NoEndpointAdded(f"no endpoint registered for selector {selector}")
        return self.storage.endpoints[index].endpoint_id

    # Protocol

    def _make_request(self, selector: str, parameters: Dict[str, Any]) -> str:
        if self.storage.airnode == ZERO_ADDRESS:
            raise ParameterNotSet("request parameters are not configured")
        endpoint_id = self.before_fulfillment(selector)
        provider = self.chain.contract_at(self.storage.provider, RandomnessProvider)
        request_id = provider.make_full_request(
            self.storage.airnode,
            endpoint_id,
            self.storage.sponsor,
            self.storage.sponsor_wallet,
            self.address,
            selector,
            parameters,
            sender=self.address,
        )
        self.storage.requests[request_id] = PendingRequest(request_id=request_id, selector=selector)
        return request_id

    def _decode(self, selector: str, data: bytes) -> List[int]:
        abi_type = None
        for signature, candidate in self.DECODERS.items():
            if function_selector(signature) == selector:
                abi_type = candidate
                break
        if abi_type is None:
            raise NoEndpointAdded(f"selector {selector} has no decoder")
        try:
            (value,) = decode([abi_type], bytes(data))
        except DecodingError as exc:
            raise InvalidParameter(f"cannot decode {abi_type} payload") from exc
        words = list(value) if isinstance(value, (list, tuple)) else [value]
        if not words:
            raise InvalidParameter("empty random payload")
        return words

    def _words_expected(self, request_id: str) -> int:
        return 1

    def _on_fulfilled(self, request_id: str, payload: List[int]) -> None:
        pass

    @transactional
    def fulfill(self, request_id: str, selector: str, data: bytes, *, sender: str) -> None:
        """Provider callback. Accepted once per outstanding request."""
        if sender != self.storage.provider:
            raise CallerNotProvider(f"{sender} is not the randomness provider")
        self.valid_request(request_id)
        endpoint_id = self.before_fulfillment(selector)
        payload = self._decode(selector, data)
        expected = self._words_expected(request_id)
        if len(payload) < expected:
            raise InvalidParameter(f"{len(payload)} random word(s) delivered, {expected} requested")
        self.storage.requests[request_id] = FulfilledRequest(
            request_id=request_id, endpoint_id=endpoint_id, payload=payload
        )
        self._on_fulfilled(request_id, payload)
        logger.info(f"Request {request_id[:10]}... fulfilled with {len(payload)} word(s)")
