"""Application factory for GrowShare."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

import click
from flask import Flask, jsonify
from flask.logging import default_handler
from werkzeug.exceptions import HTTPException

from .config import BaseConfig, get_config
from .controllers.auth import login_manager
from .data_access import reservations_dao, seed as seed_data
from .data_access.db import init_app as init_db_app
from .errors import GrowShareError


def create_app(config_object: type[BaseConfig] | None = None) -> Flask:
    """Create and configure the Flask application instance."""

    app = Flask(__name__)

    config_cls = config_object or get_config()
    app.config.from_object(config_cls)
    app.json.sort_keys = False

    configure_logging(app)
    login_manager.init_app(app)
    init_db_app(app)

    register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


def configure_logging(app: Flask) -> None:
    """Route package loggers through Flask's handler at the configured level."""

    level = app.config.get("LOG_LEVEL", "INFO")
    app.logger.setLevel(level)
    package_logger = logging.getLogger("growshare")
    package_logger.setLevel(level)
    if default_handler not in package_logger.handlers:
        package_logger.addHandler(default_handler)


def register_blueprints(app: Flask) -> None:
    """Import and register application blueprints."""

    from .controllers import (  # pylint: disable=import-outside-toplevel
        accounts,
        admin,
        gamification,
        messaging,
        moderation,
        reservations,
        resources,
        reviews,
    )

    app.register_blueprint(accounts.bp)
    app.register_blueprint(resources.bp)
    app.register_blueprint(reservations.bp)
    app.register_blueprint(messaging.bp)
    app.register_blueprint(reviews.bp)
    app.register_blueprint(gamification.bp)
    app.register_blueprint(moderation.bp)
    app.register_blueprint(admin.bp)


def register_error_handlers(app: Flask) -> None:
    """Render domain and HTTP errors as ``{"error", "kind"}`` JSON bodies."""

    @app.errorhandler(GrowShareError)
    def domain_error(error: GrowShareError):
        if error.status_code >= 500:
            app.logger.error("%s: %s", error.kind, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({"error": error.description, "kind": error.name}), error.code

    @app.errorhandler(500)
    def server_error(error: Exception):
        app.logger.exception("Unhandled error: %s", error)
        return jsonify({"error": "An unexpected error occurred.", "kind": "InternalServerError"}), 500


def register_commands(app: Flask) -> None:
    """CLI commands beyond ``init-db``."""

    @app.cli.command("seed")
    def seed_command() -> None:
        """Load demo accounts, listings, and reservations."""

        seed_data.seed()
        click.echo("Seeded the database.")

    @app.cli.command("advance-reservations")
    @click.option("--today", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
    def advance_reservations_command(today: Optional[datetime]) -> None:
        """Expire unanswered requests, activate started reservations and complete finished ones."""

        result = reservations_dao.advance_reservations(today.date() if today else date.today())
        click.echo(
            f"Expired {result['expired']}, activated {result['activated']}, "
            f"completed {result['completed']}."
        )
