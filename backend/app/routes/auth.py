"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE auth engine method
  - Return the standard response envelope: {"data": {...}, "warnings": []}

No business logic here. No DB queries. The engine commits; routes never do.
AppError propagates to the global error handler in app/__init__.py — routes
never catch it.

Endpoints (url_prefix=/api/v1/auth):
  POST   /register          → 201
  POST   /login             → 200  (sets refresh cookie)
  POST   /refresh           → 200  (sets refresh cookie)
  POST   /logout            → 200  (clears refresh cookie, never fails)
  POST   /logout-all        → 200  (auth required)
  GET    /sessions          → 200  (auth required)
  DELETE /sessions/<id>     → 200  (auth required)
  GET    /profile           → 200  (auth required)

The refresh token is accepted in the JSON body ("refreshToken") or, when the
body omits it, from the httpOnly refresh cookie.
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from marshmallow import ValidationError

from backend.app.errors import AppError, ErrorCode
from backend.app.extensions import current_auth_engine
from backend.app.middleware.auth_middleware import require_auth
from backend.app.schemas.auth_schema import LoginSchema, RefreshTokenSchema, RegisterSchema

auth_bp = Blueprint("auth", __name__)


# ── Request helpers ────────────────────────────────────────────────────────

def _client_info() -> tuple[str | None, str | None]:
    """(user_agent, ip_address) of the current request."""
    user_agent = request.headers.get("User-Agent")
    forwarded = request.headers.get("X-Forwarded-For", "")
    ip_address = forwarded.split(",")[0].strip() or request.remote_addr
    return user_agent, ip_address


def _submitted_refresh_token() -> str | None:
    data = RefreshTokenSchema().load(request.get_json(silent=True) or {})
    return data["refresh_token"] or request.cookies.get(
        current_app.config["REFRESH_COOKIE_NAME"]
    )


def _with_refresh_cookie(response, refresh_token: str):
    config = current_app.config
    response.set_cookie(
        config["REFRESH_COOKIE_NAME"],
        refresh_token,
        max_age=int(config["JWT_REFRESH_TOKEN_EXPIRES"].total_seconds()),
        httponly=True,
        secure=not (config.get("DEBUG") or config.get("TESTING")),
        samesite="Strict",
        path="/api/v1/auth",
    )
    return response


# ── Endpoints ──────────────────────────────────────────────────────────────

@auth_bp.route("/register", methods=["POST"])
def register():
    """POST /auth/register — Create a member account. Does not log in."""
    data = RegisterSchema().load(request.get_json(force=True) or {})
    member = current_auth_engine().register(data)
    return jsonify({"data": {"member": member}, "warnings": []}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Authenticate; return tokens and start a token family."""
    data = LoginSchema().load(request.get_json(force=True) or {})
    user_agent, ip_address = _client_info()
    result = current_auth_engine().login(
        email=data["email"],
        password=data["password"],
        user_agent=user_agent,
        ip_address=ip_address,
    )
    response = jsonify({"data": result, "warnings": []})
    return _with_refresh_cookie(response, result["refreshToken"]), 200


@auth_bp.route("/refresh", methods=["POST"])
def refresh():
    """POST /auth/refresh — Rotate a refresh token; return a new token pair."""
    refresh_token = _submitted_refresh_token()
    if not refresh_token:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Provide a refresh token in the request body or refresh cookie.",
            401,
        )
    user_agent, ip_address = _client_info()
    result = current_auth_engine().refresh_access_token(
        refresh_token=refresh_token,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    response = jsonify({"data": result, "warnings": []})
    return _with_refresh_cookie(response, result["refreshToken"]), 200


@auth_bp.route("/logout", methods=["POST"])
def logout():
    """POST /auth/logout — Revoke the presented refresh token. Always 200."""
    try:
        refresh_token = _submitted_refresh_token()
    except ValidationError:
        # A malformed body still logs the client out.
        refresh_token = None
    result = current_auth_engine().logout(refresh_token)
    response = jsonify({"data": result, "warnings": []})
    response.delete_cookie(current_app.config["REFRESH_COOKIE_NAME"], path="/api/v1/auth")
    return response, 200


@auth_bp.route("/logout-all", methods=["POST"])
@require_auth
def logout_all():
    """POST /auth/logout-all — Revoke every refresh token of the caller."""
    result = current_auth_engine().logout_all_devices(g.member_id)
    response = jsonify({"data": result, "warnings": []})
    response.delete_cookie(current_app.config["REFRESH_COOKIE_NAME"], path="/api/v1/auth")
    return response, 200


@auth_bp.route("/sessions", methods=["GET"])
@require_auth
def sessions():
    """GET /auth/sessions — List the caller's active sessions."""
    result = current_auth_engine().get_active_sessions(g.member_id)
    return jsonify({"data": {"sessions": result}, "warnings": []}), 200


@auth_bp.route("/sessions/<int:session_id>", methods=["DELETE"])
@require_auth
def revoke_session(session_id: int):
    """DELETE /auth/sessions/<id> — Revoke one of the caller's sessions."""
    result = current_auth_engine().revoke_session(g.member_id, session_id)
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/profile", methods=["GET"])
@require_auth
def profile():
    """GET /auth/profile — Return the caller's member profile."""
    member = current_auth_engine().get_profile(g.member_id)
    return jsonify({"data": {"member": member}, "warnings": []}), 200
