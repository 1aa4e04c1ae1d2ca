"""Health check blueprint."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify


health_bp = Blueprint("health", __name__)


@health_bp.route("/health")
def health_check():
    marketplace = current_app.config["MARKETPLACE"]
    journal = current_app.config.get("JOURNAL")

    data = {
        "status": "ok",
        "chain_id": marketplace.chain.chain_id,
        "block_timestamp": marketplace.chain.now,
        "raffles": marketplace.hub.raffles(),
        "paused": marketplace.hub.is_paused(),
        "journal_pending": journal.pending if journal is not None else None,
    }
    return jsonify(data)
