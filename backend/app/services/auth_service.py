"""
services/auth_service.py — Authentication business logic.

Responsibilities:
  - Member registration and credential validation
  - Access + refresh token issuance under a token family
  - Refresh-token rotation with reuse detection
  - Logout (single token, all devices) and session enumeration

Layer rules:
  - No Flask imports. Collaborators (stores, hasher, codec, transaction) are
    injected, so the engine runs unchanged against fake stores in unit tests.
  - The engine owns commit/rollback. Reuse detection must persist the
    family revocation even though the call then fails, which a route-level
    commit could not do.

Refresh rotation (refresh_access_token):
  A refresh token is redeemable exactly once. Redeeming it revokes its record
  and issues a new token in the same family. Presenting an already-rotated
  token while the family is still alive means two parties hold copies of it:
  the whole family is revoked and TOKEN_REUSE_DETECTED is raised, which
  forces both the attacker and the legitimate client to log in again.

  The revoke in step 8 is a compare-and-set. If a concurrent redemption of
  the same token got there first, this call sees nothing revoked and treats
  it as reuse as well.

Transient store failures during refresh fail closed: the SQLAlchemyError
propagates (500) and nothing is retried.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from backend.app.errors import AppError, ErrorCode
from backend.app.repositories.member_repository import MemberStore
from backend.app.repositories.refresh_token_repository import RefreshTokenStore
from backend.app.security.passwords import PasswordHasher
from backend.app.security.tokens import (
    ACCESS,
    REFRESH,
    TokenCodec,
    TokenError,
    TokenErrorKind,
    hash_opaque,
    new_token_family,
)

logger = logging.getLogger(__name__)


class Transaction(Protocol):

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


# ── Private helpers ────────────────────────────────────────────────────────

def _as_utc(value: datetime | None) -> datetime | None:
    """Treats naive datetimes (SQLite drops the offset) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    value = _as_utc(value)
    return value.isoformat() if value is not None else None


def _build_member_dict(member) -> dict:
    """Serialises a Member to a plain dict. Never includes the password hash."""
    return {
        "memberId": member.id,
        "memberName": member.member_name,
        "memberContact": member.member_contact,
        "email": member.email,
        "isRecruiter": member.is_recruiter,
        "isInterviewer": member.is_interviewer,
        "isActive": member.is_active,
        "lastLoginAt": _isoformat(member.last_login_at),
        "createdAt": _isoformat(member.created_at),
    }


def _build_session_dict(record) -> dict:
    return {
        "id": record.id,
        "userAgent": record.user_agent,
        "ipAddress": record.ip_address,
        "issuedAt": _isoformat(record.issued_at),
        "expiresAt": _isoformat(record.expires_at),
        "tokenFamily": record.token_family,
    }


def _token_error(kind: TokenErrorKind) -> AppError:
    if kind is TokenErrorKind.EXPIRED:
        return AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The refresh token has expired. Please login again.",
            401,
        )
    return AppError(
        ErrorCode.INVALID_TOKEN,
        "The token is invalid or has been tampered with.",
        401,
    )


# ── Engine ─────────────────────────────────────────────────────────────────

class AuthEngine:

    def __init__(
            self,
            members: MemberStore,
            refresh_tokens: RefreshTokenStore,
            hasher: PasswordHasher,
            codec: TokenCodec,
            transaction: Transaction,
    ) -> None:
        self._members = members
        self._refresh_tokens = refresh_tokens
        self._hasher = hasher
        self._codec = codec
        self._tx = transaction

    # ── Registration ───────────────────────────────────────────────────────

    def register(self, member_data: dict) -> dict:
        """
        Creates a member account. Does not issue tokens.

        Raises:
          AppError(EMAIL_EXISTS, 409) — a member with this email exists.

        Returns: the member dict (no password field).
        """
        email = member_data["email"]
        if self._members.find_by_email(email) is not None:
            raise AppError(
                ErrorCode.EMAIL_EXISTS,
                "Email already registered, please login.",
                409,
                field="email",
            )

        data = {key: value for key, value in member_data.items() if key != "password"}
        data["password_hash"] = self._hasher.hash(member_data["password"])
        data["is_active"] = True

        member = self._members.create(data)
        self._tx.commit()

        logger.info("Registered member %s", member.id)
        return _build_member_dict(member)

    # ── Login ──────────────────────────────────────────────────────────────

    def login(
            self,
            email: str,
            password: str,
            user_agent: str | None = None,
            ip_address: str | None = None,
    ) -> dict:
        """
        Validates credentials and starts a new token family.

        Raises:
          AppError(INVALID_CREDENTIALS, 401) — unknown email or wrong password.
          AppError(ACCOUNT_INACTIVE, 403)    — member is deactivated.

        Returns: {"member", "accessToken", "refreshToken", "tokenFamily"}
        """
        member = self._members.find_by_email(email)
        if member is None:
            raise AppError(
                ErrorCode.INVALID_CREDENTIALS,
                "Invalid credentials.",
                401,
            )

        if not member.is_active:
            raise AppError(
                ErrorCode.ACCOUNT_INACTIVE,
                "Account is inactive.",
                403,
            )

        if not self._hasher.verify(password, member.password_hash):
            raise AppError(
                ErrorCode.INVALID_CREDENTIALS,
                "Invalid credentials.",
                401,
            )

        token_family = new_token_family()
        tokens = self._issue_tokens(member, token_family, user_agent, ip_address)
        self._tx.commit()

        self._touch_last_login(member.id)

        logger.info("Member %s logged in (family %s)", member.id, token_family)
        return {
            "member": _build_member_dict(member),
            **tokens,
            "tokenFamily": token_family,
        }

    # ── Refresh rotation ───────────────────────────────────────────────────

    def refresh_access_token(
            self,
            refresh_token: str,
            user_agent: str | None = None,
            ip_address: str | None = None,
    ) -> dict:
        """
        Redeems a refresh token: revokes it and issues a new pair in the same family.

        Raises:
          AppError(TOKEN_EXPIRED, 401)        — JWT or stored record expired.
          AppError(INVALID_TOKEN, 401)        — malformed, bad signature, wrong
                                                type, or unknown to the store.
          AppError(TOKEN_REVOKED, 401)        — record exists but is revoked and
                                                its family is already dead.
          AppError(TOKEN_REUSE_DETECTED, 401) — an already-rotated token was
                                                replayed; the family is revoked.
          AppError(INVALID_MEMBER, 401)       — member missing or inactive.

        Returns: {"member", "accessToken", "refreshToken", "tokenFamily"}
        """
        try:
            claims = self._codec.verify(refresh_token, REFRESH)
        except TokenError as exc:
            raise _token_error(exc.kind) from None

        member_id = claims["memberId"]
        token_family = claims["tokenFamily"]
        token_hash = hash_opaque(refresh_token)

        record = self._refresh_tokens.find_by_member_and_hash(member_id, token_hash)

        if record is None:
            if self._refresh_tokens.has_active_in_family(member_id, token_family):
                self._revoke_family_for_reuse(member_id, token_family)

            spent = self._refresh_tokens.find_by_hash(token_hash)
            if spent is not None and spent.member_id == member_id:
                raise AppError(
                    ErrorCode.TOKEN_REVOKED,
                    "The refresh token has been revoked. Please login again.",
                    401,
                )
            raise AppError(
                ErrorCode.INVALID_TOKEN,
                "The refresh token is not recognised.",
                401,
            )

        if record.is_revoked:
            raise AppError(
                ErrorCode.TOKEN_REVOKED,
                "The refresh token has been revoked. Please login again.",
                401,
            )

        if _as_utc(record.expires_at) <= datetime.now(timezone.utc):
            raise AppError(
                ErrorCode.TOKEN_EXPIRED,
                "The refresh token has expired. Please login again.",
                401,
            )

        member = self._members.find_by_id(member_id)
        if member is None or not member.is_active:
            raise AppError(
                ErrorCode.INVALID_MEMBER,
                "Invalid member or inactive account.",
                401,
            )

        try:
            if not self._refresh_tokens.revoke(record.id):
                # A concurrent redemption of the same token rotated it first.
                self._tx.rollback()
                self._revoke_family_for_reuse(member_id, token_family)
            tokens = self._issue_tokens(member, token_family, user_agent, ip_address)
            self._tx.commit()
        except AppError:
            raise
        except Exception:
            self._tx.rollback()
            raise

        logger.info("Rotated refresh token for member %s (family %s)", member_id, token_family)
        return {
            "member": _build_member_dict(member),
            **tokens,
            "tokenFamily": token_family,
        }

    # ── Logout ─────────────────────────────────────────────────────────────

    def logout(self, refresh_token: str | None) -> dict:
        """
        Revokes the record for `refresh_token` if there is one.

        Never fails: garbage, expired, unknown and already-revoked tokens all
        report success, and store errors are logged and swallowed.
        """
        if not refresh_token:
            return {"success": True}
        try:
            self._refresh_tokens.revoke_by_hash(hash_opaque(refresh_token))
            self._tx.commit()
        except Exception:
            logger.warning("Logout revocation failed; reporting success", exc_info=True)
            self._safe_rollback()
        return {"success": True}

    def logout_all_devices(self, member_id: int) -> dict:
        """Revokes every active refresh token of the member, across all families."""
        revoked = self._refresh_tokens.revoke_all_for_member(member_id)
        self._tx.commit()
        logger.info("Revoked %d refresh token(s) for member %s", revoked, member_id)
        return {"success": True}

    # ── Sessions ───────────────────────────────────────────────────────────

    def get_active_sessions(self, member_id: int) -> list[dict]:
        """Unrevoked, unexpired refresh-token records of the member, newest first."""
        return [
            _build_session_dict(record)
            for record in self._refresh_tokens.find_active_for_member(member_id)
        ]

    def revoke_session(self, member_id: int, session_id: int) -> dict:
        """
        Revokes one of the member's own sessions.

        Raises:
          AppError(SESSION_NOT_FOUND, 404) — no active session with this id
                                             belongs to the member.
        """
        if not self._refresh_tokens.revoke_owned(member_id, session_id):
            self._safe_rollback()
            raise AppError(
                ErrorCode.SESSION_NOT_FOUND,
                f"Session {session_id} not found.",
                404,
            )
        self._tx.commit()
        return {"success": True}

    # ── Access tokens ──────────────────────────────────────────────────────

    def verify_access_token(self, token: str) -> dict:
        """
        Returns access-token claims. Any failure, expiry included, is
        INVALID_TOKEN: the client simply refreshes.
        """
        try:
            return self._codec.verify(token, ACCESS)
        except TokenError:
            raise AppError(
                ErrorCode.INVALID_TOKEN,
                "The access token is invalid or has expired.",
                401,
            ) from None

    def get_profile(self, member_id: int) -> dict:
        member = self._members.find_by_id(member_id)
        if member is None:
            raise AppError(
                ErrorCode.INVALID_MEMBER,
                f"Member {member_id} no longer exists.",
                401,
            )
        return _build_member_dict(member)

    # ── Internals ──────────────────────────────────────────────────────────

    def _issue_tokens(self, member, token_family: str, user_agent, ip_address) -> dict:
        """Signs an access + refresh pair and stores the refresh record (flush only)."""
        access_token = self._codec.sign_access_token(member.id, member.email, token_family)
        refresh_token = self._codec.sign_refresh_token(member.id, token_family)
        now = datetime.now(timezone.utc)

        self._refresh_tokens.create({
            "member_id": member.id,
            "token_hash": hash_opaque(refresh_token),
            "token_family": token_family,
            "user_agent": user_agent,
            "ip_address": ip_address,
            "issued_at": now,
            "expires_at": self._codec.refresh_expiry(now),
        })
        return {"accessToken": access_token, "refreshToken": refresh_token}

    def _revoke_family_for_reuse(self, member_id: int, token_family: str) -> None:
        """Kills the whole family, commits, and raises TOKEN_REUSE_DETECTED."""
        revoked = self._refresh_tokens.revoke_family(member_id, token_family)
        self._tx.commit()
        logger.warning(
            "Refresh token reuse detected for member %s (family %s); revoked %d token(s)",
            member_id,
            token_family,
            revoked,
        )
        raise AppError(
            ErrorCode.TOKEN_REUSE_DETECTED,
            "Refresh token reuse detected. All sessions from this login have "
            "been revoked; please login again.",
            401,
        )

    def _touch_last_login(self, member_id: int) -> None:
        # Best effort: a failure here must not undo a successful login.
        try:
            self._members.update_last_login(member_id)
            self._tx.commit()
        except Exception:
            logger.warning("Could not update last login for member %s", member_id, exc_info=True)
            self._safe_rollback()

    def _safe_rollback(self) -> None:
        try:
            self._tx.rollback()
        except Exception:
            logger.warning("Rollback failed", exc_info=True)
