"""Requester for plain capped random numbers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from core.constants import QrngSignatures
from core.exceptions import CallerNotOwner, InvalidParameter, RequestIdNotKnown, ResultRetrieved
from ledger.chain import transactional
from randomness.requester import RandomnessRequester, RequesterStorage, function_selector


@dataclass
class PickerResponse:
    number_cap: int
    number_requested: int
    requester: str
    results: List[int] = field(default_factory=list)
    delivered: bool = False


@dataclass
class NumberPickerStorage(RequesterStorage):
    responses: Dict[str, PickerResponse] = field(default_factory=dict)


class NumberPicker(RandomnessRequester):
    DECODERS = {
        QrngSignatures.SINGLE_NUMBER: "uint256",
        QrngSignatures.MULTIPLE_NUMBERS: "uint256[]",
    }
    storage: NumberPickerStorage

    def _initial_storage(self, owner: str, provider: str) -> NumberPickerStorage:
        return NumberPickerStorage(owner=owner, provider=provider)

    def get_picker_response(self, request_id: str) -> PickerResponse:
        response = self.storage.responses.get(request_id)
        if response is None:
            raise RequestIdNotKnown(f"no number request {request_id}")
        return response

    def _words_expected(self, request_id: str) -> int:
        return self.get_picker_response(request_id).number_requested

    @transactional
    def request_numbers(self, selector: str, cap: int, count: int, *, sender: str) -> str:
        if cap < 1 or count < 1:
            raise InvalidParameter(f"cap={cap}, count={count} must both be positive")
        parameters = {}
        if selector == function_selector(QrngSignatures.MULTIPLE_NUMBERS):
            parameters["size"] = count
        elif count > 1:
            raise InvalidParameter(f"selector {selector} delivers a single number, {count} requested")
        request_id = self._make_request(selector, parameters)
        self.storage.responses[request_id] = PickerResponse(
            number_cap=cap,
            number_requested=count,
            requester=sender,
            results=[0] * count,
        )
        self.emit("NewNumberRequest", request_id=request_id, airnode=self.storage.airnode)
        return request_id

    @transactional
    def request_results(self, request_id: str, *, sender: str) -> List[int]:
        response = self.get_picker_response(request_id)
        if response.delivered:
            raise ResultRetrieved(f"results of {request_id} were already retrieved")
        if sender != response.requester:
            raise CallerNotOwner(f"{sender} did not issue request {request_id}")
        words = self.request_fulfilled(request_id).payload
        for position, word in enumerate(words[:response.number_requested]):
            response.results[position] = word % response.number_cap
        response.delivered = True
        self.emit("NumbersRetrieved", request_id=request_id, results=list(response.results))
        return list(response.results)
