"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - `flask db migrate` to work without starting the full server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Initialise SQLAlchemy via init_app()
  3. Build the password hasher and token codec from AuthSettings
  4. Register the auth blueprint under /api/v1/auth
  5. Register global error handlers (AppError → JSON, Exception → 500)
  6. Register the purge-refresh-tokens CLI command
"""

from __future__ import annotations

import traceback

import click
from flask import Flask, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from backend.config import AuthSettings, config_by_name, validate_production_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from backend.app.extensions import PASSWORD_HASHER_KEY, TOKEN_CODEC_KEY, db
    from backend.app.security.passwords import PasswordHasher
    from backend.app.security.tokens import TokenCodec

    db.init_app(app)

    settings = AuthSettings.from_mapping(app.config)
    app.extensions[PASSWORD_HASHER_KEY] = PasswordHasher(settings)
    app.extensions[TOKEN_CODEC_KEY] = TokenCodec(settings)

    # ── Model registration ─────────────────────────────────────────────────
    # Import all models so that SQLAlchemy's MetaData is populated.
    with app.app_context():
        from backend.app.models import member, refresh_token  # noqa: F401

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)
    _register_commands(app)

    return app


def _register_blueprints(app: Flask) -> None:
    from backend.app.routes.auth import auth_bp

    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors as MISSING_FIELD /
                        INVALID_FIELD responses (400)
      HTTPException   → werkzeug errors (404, 405, malformed JSON) in the envelope
      Exception       → generic INTERNAL_ERROR (500); traceback logged only

    Stack traces never leave the server.
    """
    from backend.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Returns the FIRST field error only ("one error, not many").
        Missing required fields map to MISSING_FIELD, everything else to
        INVALID_FIELD.
        """
        messages = error.messages  # e.g. {"email": ["Not a valid email address."]}

        field = None
        raw_message = "Invalid input."
        code = ErrorCode.INVALID_FIELD

        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                field = field_name if field_name != "_schema" else None
                if isinstance(field_errors, list):
                    raw_message = field_errors[0] if field_errors else "Invalid value."
                else:
                    raw_message = str(field_errors)
                break
        elif isinstance(messages, list) and messages:
            raw_message = messages[0]

        if str(raw_message).startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD

        response_body = {"error": {"code": code, "message": str(raw_message)}}
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        code = ErrorCode.INVALID_FIELD if error.code == 400 else error.name.upper().replace(" ", "_")
        return jsonify({
            "error": {"code": code, "message": error.description},
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions (store failures included) and
        returns a generic 500 response. The traceback goes to the app logger.
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


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true so a frontend served from another
    local port can call the API with Authorization headers and the refresh
    cookie.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all and origin:
            # Credentialed requests need the exact origin, not "*".
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response


def _register_commands(app: Flask) -> None:
    """`flask purge-refresh-tokens` — delete expired and revoked refresh tokens."""

    @app.cli.command("purge-refresh-tokens")
    def purge_refresh_tokens():
        from backend.app.extensions import db
        from backend.app.repositories.refresh_token_repository import (
            SqlAlchemyRefreshTokenStore,
        )

        deleted = SqlAlchemyRefreshTokenStore(db.session).purge_expired()
        db.session.commit()
        app.logger.info("Purged %d refresh token(s)", deleted)
        click.echo(f"Purged {deleted} expired or revoked refresh token(s).")
