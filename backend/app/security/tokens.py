"""
security/tokens.py — JWT access/refresh token codec.

Token design:
  - Access token:  HS256, signed with JWT_ACCESS_SECRET, short TTL (15 min).
    Claims: memberId, email, tokenFamily, type="access", iat, exp, iss, aud, jti.
  - Refresh token: HS256, signed with JWT_REFRESH_SECRET, long TTL (7 days).
    Claims: memberId, tokenFamily, type="refresh", iat, exp, iss, aud, jti.
  - The two keys are distinct: a token of one type never verifies as the other.
  - jti is a random nonce so two tokens minted in the same second still differ.

PyJWT exceptions never leave this module. verify() translates them into a
TokenError carrying a TokenErrorKind so callers branch on the kind.
"""

from __future__ import annotations

import enum
import hashlib
import secrets
import uuid
from datetime import datetime, timezone

import jwt

from backend.config import AuthSettings

ACCESS = "access"
REFRESH = "refresh"

_REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "memberId", "tokenFamily", "type"]


class TokenErrorKind(enum.Enum):
    EXPIRED = "expired"
    INVALID = "invalid"


class TokenError(Exception):

    def __init__(self, kind: TokenErrorKind, reason: str = "") -> None:
        super().__init__(reason or kind.value)
        self.kind = kind
        self.reason = reason


def hash_opaque(token: str) -> str:
    """SHA-256 hex digest of a raw token string. Used as the store lookup key."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def new_token_family() -> str:
    return str(uuid.uuid4())


class TokenCodec:

    def __init__(self, settings: AuthSettings) -> None:
        self._settings = settings
        self._keys = {
            ACCESS: settings.access_secret,
            REFRESH: settings.refresh_secret,
        }

    # ── Signing ────────────────────────────────────────────────────────────

    def sign_access_token(self, member_id: int, email: str, token_family: str) -> str:
        return self._sign(
            {"memberId": member_id, "email": email, "tokenFamily": token_family},
            ACCESS,
        )

    def sign_refresh_token(self, member_id: int, token_family: str) -> str:
        return self._sign(
            {"memberId": member_id, "tokenFamily": token_family},
            REFRESH,
        )

    def refresh_expiry(self, now: datetime | None = None) -> datetime:
        """expires_at for a refresh-token record issued at `now`."""
        now = now or datetime.now(timezone.utc)
        return now + self._settings.refresh_ttl

    def _sign(self, claims: dict, token_type: str) -> str:
        now = datetime.now(timezone.utc)
        ttl = self._settings.access_ttl if token_type == ACCESS else self._settings.refresh_ttl
        payload = {
            **claims,
            "type": token_type,
            "iat": now,
            "exp": now + ttl,
            "iss": self._settings.issuer,
            "aud": self._settings.audience,
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._keys[token_type], algorithm=self._settings.algorithm)

    # ── Verification ───────────────────────────────────────────────────────

    def verify(self, token: str, expected_type: str) -> dict:
        """
        Returns the claims of a valid token of `expected_type`.

        Raises:
          TokenError(EXPIRED) — the token is valid in every respect except exp.
          TokenError(INVALID) — bad signature, malformed, wrong issuer/audience,
                                missing claims, or wrong type.
        """
        if expected_type not in self._keys:
            raise ValueError(f"unknown token type {expected_type!r}")
        if not isinstance(token, str) or not token:
            raise TokenError(TokenErrorKind.INVALID, "empty token")

        try:
            claims = self._decode(token, expected_type, verify_exp=True)
        except jwt.ExpiredSignatureError:
            # Expired: only report EXPIRED when nothing else is wrong.
            try:
                claims = self._decode(token, expected_type, verify_exp=False)
            except jwt.InvalidTokenError as exc:
                raise TokenError(TokenErrorKind.INVALID, str(exc)) from None
            self._check_type(claims, expected_type)
            raise TokenError(TokenErrorKind.EXPIRED, "token expired") from None
        except jwt.InvalidTokenError as exc:
            raise TokenError(TokenErrorKind.INVALID, str(exc)) from None

        self._check_type(claims, expected_type)
        return claims

    def _decode(self, token: str, expected_type: str, verify_exp: bool) -> dict:
        return jwt.decode(
            token,
            self._keys[expected_type],
            algorithms=[self._settings.algorithm],
            issuer=self._settings.issuer,
            audience=self._settings.audience,
            options={"require": _REQUIRED_CLAIMS, "verify_exp": verify_exp},
        )

    @staticmethod
    def _check_type(claims: dict, expected_type: str) -> None:
        if claims.get("type") != expected_type:
            raise TokenError(
                TokenErrorKind.INVALID,
                f"expected a {expected_type} token, got {claims.get('type')!r}",
            )
