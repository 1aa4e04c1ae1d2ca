"""Requester that turns random words into winner indexes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from core import get_logger
from core.constants import QrngSignatures
from core.exceptions import (
    CallerNotOwner,
    InvalidParameter,
    InvalidWinnerNumber,
    RequestIdNotKnown,
    ResultRetrieved,
)
from randomness.requester import RandomnessRequester, RequesterStorage, function_selector
from ledger.chain import transactional

logger = get_logger(__name__)


@dataclass
class WinnerResponse:
    total_entries: int
    total_winners: int
    requester: str
    winner_indexes: List[int] = field(default_factory=list)
    is_finished: bool = False


@dataclass
class WinnerRequesterStorage(RequesterStorage):
    responses: Dict[str, WinnerResponse] = field(default_factory=dict)


class WinnerRequester(RandomnessRequester):
    """Draws ``total_winners`` zero-based indexes out of ``total_entries``.

    Indexes are ``word % total_entries`` and are not deduplicated, so the
    same index may come back more than once.
    """

    DECODERS = {
        QrngSignatures.INDIVIDUAL_WINNER: "uint256",
        QrngSignatures.MULTIPLE_WINNERS: "uint256[]",
    }
    storage: WinnerRequesterStorage

    def _initial_storage(self, owner: str, provider: str) -> WinnerRequesterStorage:
        return WinnerRequesterStorage(owner=owner, provider=provider)

    def get_winner_response(self, request_id: str) -> WinnerResponse:
        response = self.storage.responses.get(request_id)
        if response is None:
            raise RequestIdNotKnown(f"no winner request {request_id}")
        return response

    def is_finished(self, request_id: str) -> bool:
        response = self.storage.responses.get(request_id)
        return response is not None and response.is_finished

    def _words_expected(self, request_id: str) -> int:
        return self.get_winner_response(request_id).total_winners

    @transactional
    def request_winners(
        self, selector: str, total_winners: int, total_entries: int, *, sender: str
    ) -> str:
        """Ask for ``total_winners`` indexes out of ``total_entries``.

        Returns:
            The provider issued request id
        """
        if total_winners < 1 or total_entries < 1:
            raise InvalidParameter(
                f"winners={total_winners}, entries={total_entries} must both be positive"
            )
        if total_winners > total_entries:
            raise InvalidWinnerNumber(f"{total_winners} winners out of {total_entries} entries")
        parameters = {}
        if selector == function_selector(QrngSignatures.MULTIPLE_WINNERS):
            parameters["size"] = total_winners
        elif total_winners > 1:
            raise InvalidParameter(
                f"selector {selector} delivers a single winner, {total_winners} requested"
            )
        request_id = self._make_request(selector, parameters)
        self.storage.responses[request_id] = WinnerResponse(
            total_entries=total_entries,
            total_winners=total_winners,
            requester=sender,
        )
        self.emit("NewWinnerRequest", request_id=request_id, airnode=self.storage.airnode)
        logger.info(
            f"Requested {total_winners} winner(s) out of {total_entries} entries: {request_id[:10]}..."
        )
        return request_id

    @transactional
    def request_results(self, request_id: str, *, sender: str) -> List[int]:
        """Reduce the delivered words to winner indexes, once."""
        response = self.get_winner_response(request_id)
        if response.is_finished:
            raise ResultRetrieved(f"results of {request_id} were already retrieved")
        if sender != response.requester:
            raise CallerNotOwner(f"{sender} did not issue request {request_id}")
        fulfilled = self.request_fulfilled(request_id)
        words = fulfilled.payload[:response.total_winners]
        response.winner_indexes = [word % response.total_entries for word in words]
        response.is_finished = True
        self.emit(
            "WinnerResultsRetrieved",
            request_id=request_id,
            winner_indexes=list(response.winner_indexes),
        )
        return list(response.winner_indexes)
