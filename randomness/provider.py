"""Randomness provider protocol contract and the off-chain node that serves it."""

from __future__ import annotations

import os
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from eth_abi import encode
from web3 import Web3

from core import get_logger
from core.exceptions import CallerNotProvider, InvalidParameter, RequestIdNotKnown
from ledger.chain import Chain, Contract, to_address, transactional

logger = get_logger(__name__)


@dataclass(frozen=True)
class FullRequest:
    request_id: str
    requester: str
    airnode: str
    endpoint_id: str
    sponsor: str
    sponsor_wallet: str
    fulfill_address: str
    selector: str
    parameters: Dict[str, Any]


@dataclass
class ProviderStorage:
    requester_nonces: Dict[str, int] = field(default_factory=dict)
    pending: Dict[str, FullRequest] = field(default_factory=dict)
    fulfilled: List[str] = field(default_factory=list)


class RandomnessProvider(Contract):
    """Request/response relay between requesters and airnodes.

    A request is answered at most once, only by the airnode it was
    addressed to, and the answer is forwarded to the requester's
    ``fulfill`` callback in the same transaction.
    """

    def __init__(self, chain: Chain, deployer: str) -> None:
        super().__init__(chain, deployer)
        self.storage = ProviderStorage()

    def _request_id(self, requester: str, nonce: int) -> str:
        digest = Web3.solidity_keccak(
            ["uint256", "address", "address", "uint256"],
            [self.chain.chain_id, self.address, requester, nonce],
        )
        return "0x" + bytes(digest).hex()

    def pending_requests(self, airnode: Optional[str] = None) -> List[FullRequest]:
        return [
            request for request in self.storage.pending.values()
            if airnode is None or request.airnode == to_address(airnode)
        ]

    def is_fulfilled(self, request_id: str) -> bool:
        return request_id in self.storage.fulfilled

    @transactional
    def make_full_request(
        self,
        airnode: str,
        endpoint_id: str,
        sponsor: str,
        sponsor_wallet: str,
        fulfill_address: str,
        selector: str,
        parameters: Dict[str, Any],
        *,
        sender: str,
    ) -> str:
        nonce = self.storage.requester_nonces.get(sender, 0) + 1
        self.storage.requester_nonces[sender] = nonce
        request_id = self._request_id(sender, nonce)
        request = FullRequest(
            request_id=request_id,
            requester=sender,
            airnode=to_address(airnode),
            endpoint_id=endpoint_id,
            sponsor=to_address(sponsor),
            sponsor_wallet=to_address(sponsor_wallet),
            fulfill_address=to_address(fulfill_address),
            selector=selector,
            parameters=dict(parameters),
        )
        self.storage.pending[request_id] = request
        self.emit(
            "MadeFullRequest",
            airnode=request.airnode,
            request_id=request_id,
            requester_nonce=nonce,
            chain_id=self.chain.chain_id,
            requester=sender,
            endpoint_id=endpoint_id,
            sponsor=request.sponsor,
            sponsor_wallet=request.sponsor_wallet,
            fulfill_address=request.fulfill_address,
            selector=selector,
            parameters=request.parameters,
        )
        return request_id

    @transactional
    def fulfill(
        self,
        request_id: str,
        airnode: str,
        fulfill_address: str,
        selector: str,
        data: bytes,
        *,
        sender: str,
    ) -> None:
        request = self.storage.pending.get(request_id)
        if request is None:
            raise RequestIdNotKnown(f"request {request_id} is not pending")
        airnode = to_address(airnode)
        if sender != request.airnode or airnode != request.airnode:
            raise CallerNotProvider(f"{sender} cannot answer request {request_id}")
        if to_address(fulfill_address) != request.fulfill_address or selector != request.selector:
            raise InvalidParameter("callback does not match the request")
        del self.storage.pending[request_id]
        self.storage.fulfilled.append(request_id)
        requester = self.chain.contract_at(request.fulfill_address)
        requester.fulfill(request_id, selector, data, sender=self.address)
        self.emit("FulfilledRequest", airnode=airnode, request_id=request_id, data=bytes(data))


def random_words(count: int, rng: Optional[random.Random] = None) -> List[int]:
    """Draw ``count`` uniformly random 256-bit words."""
    if rng is not None:
        return [rng.getrandbits(256) for _ in range(count)]
    return [int.from_bytes(os.urandom(32), "big") for _ in range(count)]


def encode_response(request: FullRequest, words: List[int]) -> bytes:
    """ABI encode ``words`` the way the request asked for them.

    Requests carrying a ``size`` parameter expect a ``uint256[]``; all
    others expect a single ``uint256``.
    """
    if "size" in request.parameters:
        return encode(["uint256[]"], [words])
    return encode(["uint256"], [words[0]])


def serve_pending(
    provider: RandomnessProvider,
    airnode: str,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Answer every request pending for ``airnode`` with fresh random words.

    Args:
        provider: Provider contract holding the requests
        airnode: Airnode account answering them
        rng: Optional seeded generator for reproducible draws

    Returns:
        Ids of the requests that were answered
    """
    answered = []
    for request in provider.pending_requests(airnode):
        words = random_words(int(request.parameters.get("size", 1)), rng)
        provider.fulfill(
            request.request_id,
            request.airnode,
            request.fulfill_address,
            request.selector,
            encode_response(request, words),
            sender=request.airnode,
        )
        answered.append(request.request_id)
    if answered:
        logger.info(f"Airnode {airnode} answered {len(answered)} request(s)")
    return answered
