"""Read-only views over raffles, vaults and randomness requests."""

from __future__ import annotations

from flask import Blueprint, abort, current_app, jsonify, request

from core import get_logger
from core.constants import DatabaseDefaults
from randomness.requester import FulfilledRequest
from services.async_runner import run_coroutine_sync
from services.marketplace import Marketplace

logger = get_logger(__name__)

raffles_bp = Blueprint("raffles", __name__)


def _marketplace() -> Marketplace:
    return current_app.config["MARKETPLACE"]


@raffles_bp.route("/raffles")
def list_raffles():
    hub = _marketplace().hub
    status = request.args.get("status")
    items = []
    for raffle_id in range(1, hub.raffles() + 1):
        summary = hub.raffle(raffle_id).summary()
        if status is None or summary["status"] == status.upper():
            items.append(summary)
    return jsonify({"total": hub.raffles(), "raffles": items})


@raffles_bp.route("/raffles/<int:raffle_id>")
def raffle_detail(raffle_id: int):
    raffle = _marketplace().hub.find_raffle(raffle_id)
    if raffle is None:
        abort(404, description=f"raffle {raffle_id} not found")
    return jsonify(raffle.summary())


@raffles_bp.route("/vaults/<int:vault_id>")
def vault_detail(vault_id: int):
    factory = _marketplace().vault_factory
    vault = factory.find_vault(vault_id)
    if vault is None:
        abort(404, description=f"vault {vault_id} not found")
    return jsonify(
        {
            "vault_id": vault_id,
            "address": vault.address,
            "owner": vault.owner(),
            "withdraw_enabled": vault.withdraw_enabled,
            "native_balance": vault.native_balance,
        }
    )


@raffles_bp.route("/requests/<request_id>")
def request_detail(request_id: str):
    if not request_id.startswith("0x") or len(request_id) != 66:
        abort(400, description="request id must be a 32 byte hex string")
    requester = _marketplace().winner_requester
    state = requester.request_state(request_id)
    if state is None:
        abort(404, description=f"request {request_id} not found")
    response = requester.get_winner_response(request_id)
    return jsonify(
        {
            "request_id": request_id,
            "fulfilled": isinstance(state, FulfilledRequest),
            "requester": response.requester,
            "total_entries": response.total_entries,
            "total_winners": response.total_winners,
            "winner_indexes": list(response.winner_indexes),
            "is_finished": response.is_finished,
        }
    )


@raffles_bp.route("/events")
def list_events():
    journal = current_app.config.get("JOURNAL")
    if journal is None:
        abort(404, description="event journal is disabled")
    try:
        after_id = int(request.args.get("after_id", 0))
        limit = int(request.args.get("limit", DatabaseDefaults.JOURNAL_PAGE_SIZE))
    except ValueError:
        abort(400, description="after_id and limit must be integers")
    limit = min(max(limit, 1), DatabaseDefaults.JOURNAL_PAGE_SIZE)
    run_coroutine_sync(journal.flush(), timeout=10)
    events = run_coroutine_sync(
        journal.events(
            emitter=request.args.get("emitter"),
            name=request.args.get("name"),
            after_id=after_id,
            limit=limit,
        ),
        timeout=10,
    )
    return jsonify({"events": events})
