"""Services package."""

from .async_runner import run_coroutine_sync, set_main_loop, start_background_loop, submit_coroutine
from .event_journal import EventJournal
from .manifest import QrngEndpoints, load_qrng_endpoints, write_json_file
from .marketplace import Marketplace, deploy_marketplace, export_addresses

__all__ = [
    "set_main_loop",
    "start_background_loop",
    "run_coroutine_sync",
    "submit_coroutine",
    "EventJournal",
    "QrngEndpoints",
    "load_qrng_endpoints",
    "write_json_file",
    "Marketplace",
    "deploy_marketplace",
    "export_addresses",
]
