"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances, each with its own ledger
           - Clean separation between app creation and app startup

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging from LOG_LEVEL
  3. Initialise SQLAlchemy and create the snapshot table
  4. Build the LedgerStore, seed it (snapshot or bootstrap), and attach it
     to app.extensions["ledger"]
  5. Register all route blueprints under /api/v1
  6. Register global error handlers (AppError → JSON, Exception → 500)
  7. Register a custom JSON provider to serialise Decimal as string
  8. Add CORS headers in DEBUG/TESTING for local frontends
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from flask.logging import default_handler
from marshmallow import ValidationError

from tabshare.config import ACTIVE_CONFIG_NAME, config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Flask's default JSON encoder does not handle Decimal.
# All monetary amounts are serialised as strings to preserve precision.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str | None = None, persistence=None) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to TABSHARE_ENV, then "development".
        persistence: Snapshot collaborator (load/save). Defaults to a
                     SqlSnapshotStore on the configured database.

    Returns:
        A fully configured Flask app with a started ledger.
    """
    config_name = config_name or ACTIVE_CONFIG_NAME

    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from tabshare.app.extensions import LEDGER_EXTENSION_KEY, db
    db.init_app(app)

    # ── Ledger ─────────────────────────────────────────────────────────────
    from tabshare.app.services.ledger_store import LedgerStore
    from tabshare.app.services.snapshot_store import SqlSnapshotStore

    with app.app_context():
        # Registers the ledger_snapshots table on db.metadata.
        from tabshare.app.models import snapshot  # noqa: F401
        db.create_all()

        if persistence is None:
            persistence = SqlSnapshotStore(key=app.config["LEDGER_SNAPSHOT_KEY"])

        ledger = LedgerStore(
            persistence,
            split_tolerance=app.config["LEDGER_SPLIT_TOLERANCE"],
            current_user_id=app.config["LEDGER_CURRENT_USER_ID"],
        )
        ledger.start()
        for warning in ledger.drain_warnings():
            app.logger.warning("Startup: %s — %s", warning["code"], warning["message"])

    app.extensions[LEDGER_EXTENSION_KEY] = ledger

    # ── Blueprints ─────────────────────────────────────────────────────────
    _register_blueprints(app)

    # ── Error handlers and hooks ───────────────────────────────────────────
    _register_error_handlers(app)
    _register_request_hooks(app)
    _register_cors(app)

    return app


def _configure_logging(app: Flask) -> None:
    """Applies LOG_LEVEL to the app logger and the tabshare package loggers."""
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    app.logger.setLevel(level)
    # app.logger ("tabshare.app") propagates to the package handler below.
    app.logger.removeHandler(default_handler)
    package_logger = logging.getLogger("tabshare")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s"
        ))
        package_logger.addHandler(handler)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    The url_prefix is set here so individual route files only specify
    the path relative to their resource (e.g. "" and "/<string:id>").
    """
    from tabshare.app.routes.balances import balances_bp
    from tabshare.app.routes.expenses import expenses_bp
    from tabshare.app.routes.groups import groups_bp
    from tabshare.app.routes.settlements import settlements_bp
    from tabshare.app.routes.users import users_bp

    app.register_blueprint(users_bp,       url_prefix="/api/v1/users")
    app.register_blueprint(groups_bp,      url_prefix="/api/v1/groups")
    app.register_blueprint(expenses_bp,    url_prefix="/api/v1/expenses")
    app.register_blueprint(balances_bp,    url_prefix="/api/v1/balances")
    app.register_blueprint(settlements_bp, url_prefix="/api/v1/settlements")


def _register_request_hooks(app: Flask) -> None:

    @app.before_request
    def reset_ledger_warnings():
        # Warnings are per thread; drop anything a previous request on this
        # worker thread left behind.
        from tabshare.app.extensions import get_ledger
        get_ledger().drain_warnings()


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true so a frontend served from another
    local port can call the API.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"

        return response


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors formatted as MISSING_FIELD /
                        INVALID_FIELD responses (400)
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Stack traces never leave the server.
    """
    from werkzeug.exceptions import HTTPException

    from tabshare.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        into the standard error envelope. Routes never catch AppError.
        """
        app.logger.info("Rejected request: %r", error)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Only the FIRST field error is returned. If the message is one of our
        registered codes it becomes the error code; otherwise MISSING_FIELD
        or INVALID_FIELD is used.
        """
        messages = error.messages

        field = None
        raw_message = "Invalid input."
        code = ErrorCode.INVALID_FIELD

        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                field = field_name if field_name != "_schema" else None
                raw_message = _first_message(field_errors)

                if raw_message in vars(ErrorCode).values():
                    code = raw_message
                elif raw_message.startswith("Missing data for required field"):
                    code = ErrorCode.MISSING_FIELD
                break
        elif isinstance(messages, list):
            raw_message = _first_message(messages)
            if raw_message in vars(ErrorCode).values():
                code = raw_message
            elif raw_message.startswith("Missing data for required field"):
                code = ErrorCode.MISSING_FIELD

        response_body = {
            "error": {
                "code": code,
                "message": _code_to_message(code) if raw_message == code else raw_message,
            }
        }
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        """404 for unknown routes, 405 for wrong methods, etc., in the same envelope."""
        return jsonify({
            "error": {
                "code": error.name.upper().replace(" ", "_"),
                "message": error.description,
            }
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.
        The full traceback is logged; it never appears in the response body.
        """
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _first_message(errors) -> str:
    """
    Digs the first human message out of a marshmallow messages structure.
    Nested schemas produce dicts ({0: {"amount": [...]}}), lists hold strings.
    """
    while isinstance(errors, (dict, list)):
        if not errors:
            return "Invalid value."
        errors = next(iter(errors.values())) if isinstance(errors, dict) else errors[0]
    return str(errors)


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself.
    """
    _messages = {
        "INVALID_SPLIT_MODE": "split_mode must be 'equal', 'percentage' or 'custom'.",
        "DUPLICATE_SPLIT_USER": "The same user_id appears more than once in the splits array.",
    }
    return _messages.get(code, "Invalid input.")
