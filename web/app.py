"""Flask application factory for the marketplace read API."""

from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from werkzeug.exceptions import HTTPException

from core.exceptions import ContractError
from services.event_journal import EventJournal
from services.marketplace import Marketplace
from web.config_middleware import (
    CHAIN_EVENTS,
    CONTRACT_ERRORS,
    RAFFLES,
    configure_app,
    setup_metrics,
)
from web.routes import register_routes


def create_app(
    config,
    marketplace: Marketplace,
    journal: Optional[EventJournal] = None,
    testing: bool = False,
) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Application configuration
        marketplace: Deployed contracts the API reads from
        journal: Event journal backing ``/events``; optional
        testing: Whether running in testing mode

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    configure_app(app, config, testing)
    app.config["MARKETPLACE"] = marketplace
    app.config["JOURNAL"] = journal

    setup_metrics(app)
    register_routes(app)

    _setup_routes(app)
    _setup_error_handlers(app)

    return app


def _setup_routes(app: Flask) -> None:
    @app.route("/metrics")
    def metrics():
        """Expose Prometheus metrics."""
        marketplace: Marketplace = app.config["MARKETPLACE"]
        RAFFLES.set(marketplace.hub.raffles())
        CHAIN_EVENTS.set(len(marketplace.chain.events))
        data = generate_latest()
        return data, 200, {"Content-Type": CONTENT_TYPE_LATEST}


def _setup_error_handlers(app: Flask) -> None:
    """Render every error as JSON ``{"error": ...}``."""

    @app.errorhandler(ContractError)
    def contract_error(error: ContractError):
        CONTRACT_ERRORS.labels(error=error.error_name).inc()
        return jsonify({"error": error.error_name, "message": str(error)}), 400

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({"error": error.description or error.name}), error.code

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Internal server error: {error}")
        return jsonify({"error": "internal server error"}), 500
