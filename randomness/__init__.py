"""Randomness request/response protocol and its requesters."""

from randomness.provider import (
    FullRequest,
    RandomnessProvider,
    encode_response,
    random_words,
    serve_pending,
)
from randomness.requester import (
    Endpoint,
    FulfilledRequest,
    PendingRequest,
    RandomnessRequester,
    function_selector,
)
from randomness.winner import WinnerRequester, WinnerResponse
from randomness.picker import NumberPicker, PickerResponse

__all__ = [
    'FullRequest',
    'RandomnessProvider',
    'encode_response',
    'random_words',
    'serve_pending',
    'Endpoint',
    'FulfilledRequest',
    'PendingRequest',
    'RandomnessRequester',
    'function_selector',
    'WinnerRequester',
    'WinnerResponse',
    'NumberPicker',
    'PickerResponse',
]
