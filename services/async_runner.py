"""Run journal coroutines from the synchronous web and contract code."""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from typing import Awaitable, Optional, TypeVar

from core.exceptions import ApplicationError


_loop: Optional[asyncio.AbstractEventLoop] = None
T = TypeVar("T")


def set_main_loop(loop: asyncio.AbstractEventLoop) -> None:
    global _loop
    _loop = loop


def get_main_loop() -> Optional[asyncio.AbstractEventLoop]:
    return _loop


def start_background_loop() -> asyncio.AbstractEventLoop:
    """Start an event loop in a daemon thread and make it the main loop."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, name="journal-loop", daemon=True)
    thread.start()
    set_main_loop(loop)
    return loop


def run_coroutine_sync(coro: Awaitable[T], timeout: Optional[float] = None) -> T:
    if _loop is None:
        raise ApplicationError("Asyncio loop is not initialized")
    future = asyncio.run_coroutine_threadsafe(coro, _loop)
    return future.result(timeout)


def submit_coroutine(coro: Awaitable[T]) -> Future:
    if _loop is None:
        raise ApplicationError("Asyncio loop is not initialized")
    return asyncio.run_coroutine_threadsafe(coro, _loop)
