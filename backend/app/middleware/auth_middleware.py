"""
middleware/auth_middleware.py — JWT authentication decorator.

The @require_auth decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Verifies the access token through the auth engine (signature, expiry,
     issuer, audience, type="access")
  3. Attaches member_id, email and token_family to flask.g for the request
  4. Raises the appropriate 401 AppError if any step fails

This middleware authenticates only. It does not look the member up; routes
that need the member record ask the service for it.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  INVALID_TOKEN  (401) — malformed header, bad/expired token, wrong type
"""

from __future__ import annotations

import functools
from typing import Callable

from flask import g, request

from backend.app.errors import AppError, ErrorCode
from backend.app.extensions import current_auth_engine


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces JWT authentication.

    Usage:
        @auth_bp.route("/sessions")
        @require_auth
        def sessions():
            member_id = g.member_id  # always an int when this runs
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def _bearer_token() -> str:
    auth_header = request.headers.get("Authorization", "")

    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.INVALID_TOKEN,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )
    return parts[1]


def _authenticate_request() -> None:
    """
    Verifies the bearer access token and populates flask.g.

    Raises AppError on any authentication failure; the global error handler
    turns it into the JSON envelope.
    """
    claims = current_auth_engine().verify_access_token(_bearer_token())

    member_id = claims.get("memberId")
    if not isinstance(member_id, int) or isinstance(member_id, bool):
        raise AppError(
            ErrorCode.INVALID_TOKEN,
            "The access token does not carry a valid member id.",
            401,
        )

    g.member_id = member_id
    g.email = claims.get("email")
    g.token_family = claims.get("tokenFamily")
