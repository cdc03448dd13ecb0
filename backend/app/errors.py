"""
errors.py — AppError base class and error code registry.

Every error returned by the auth API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Never conflate 401 (unauthenticated) with 403 (known but not allowed).
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    EMAIL_EXISTS               = "EMAIL_EXISTS"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    SESSION_NOT_FOUND          = "SESSION_NOT_FOUND"

    # ── Credential Errors ──────────────────────────────────────────────────
    # Unknown email and wrong password share INVALID_CREDENTIALS so that the
    # response does not reveal whether an account exists.
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    ACCOUNT_INACTIVE           = "ACCOUNT_INACTIVE"       # 403

    # ── Token Validity Errors (401) ────────────────────────────────────────
    # The client must re-authenticate. Never retried automatically.
    TOKEN_MISSING              = "TOKEN_MISSING"
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"
    INVALID_TOKEN              = "INVALID_TOKEN"
    TOKEN_REVOKED              = "TOKEN_REVOKED"
    INVALID_MEMBER             = "INVALID_MEMBER"

    # ── Security Incident (401) ────────────────────────────────────────────
    # Raised only after the whole token family has been revoked.
    TOKEN_REUSE_DETECTED       = "TOKEN_REUSE_DETECTED"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"
