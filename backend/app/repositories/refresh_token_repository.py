"""
repositories/refresh_token_repository.py — Refresh-token record persistence.

RefreshTokenStore is the interface the auth service consumes. Records are
keyed by (member_id, token_hash) and grouped by token_family.

Revocation is one-way: every UPDATE here sets is_revoked = TRUE and is
guarded by "AND is_revoked = FALSE", so the affected row count says how many
records this call actually revoked. For a single record that makes revoke()
a compare-and-set: of two concurrent redemptions of the same token only one
sees rowcount == 1.

Only flushes — commits belong to the caller that owns the unit of work.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import delete, exists, or_, select, update
from sqlalchemy.orm import Session

from backend.app.models.refresh_token import RefreshToken


class RefreshTokenStore(Protocol):

    def create(self, record: dict) -> int: ...

    def find_by_member_and_hash(self, member_id: int, token_hash: str) -> RefreshToken | None: ...

    def find_by_hash(self, token_hash: str) -> RefreshToken | None: ...

    def has_active_in_family(self, member_id: int, token_family: str) -> bool: ...

    def revoke(self, token_id: int) -> bool: ...

    def revoke_owned(self, member_id: int, token_id: int) -> bool: ...

    def revoke_by_hash(self, token_hash: str) -> bool: ...

    def revoke_family(self, member_id: int, token_family: str) -> int: ...

    def revoke_all_for_member(self, member_id: int) -> int: ...

    def find_active_for_member(self, member_id: int) -> list[RefreshToken]: ...

    def purge_expired(self, now: datetime | None = None) -> int: ...


class SqlAlchemyRefreshTokenStore:

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, record: dict) -> int:
        token = RefreshToken(
            member_id=record["member_id"],
            token_hash=record["token_hash"],
            token_family=record["token_family"],
            user_agent=record.get("user_agent"),
            ip_address=record.get("ip_address"),
            issued_at=record.get("issued_at") or datetime.now(timezone.utc),
            expires_at=record["expires_at"],
            is_revoked=False,
        )
        self._session.add(token)
        self._session.flush()
        return token.id

    def find_by_member_and_hash(self, member_id: int, token_hash: str) -> RefreshToken | None:
        """Active (non-revoked) record only."""
        return self._session.execute(
            select(RefreshToken)
            .where(
                RefreshToken.member_id == member_id,
                RefreshToken.token_hash == token_hash,
                RefreshToken.is_revoked.is_(False),
            )
            .order_by(RefreshToken.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def find_by_hash(self, token_hash: str) -> RefreshToken | None:
        """Any state; most recent record first."""
        return self._session.execute(
            select(RefreshToken)
            .where(RefreshToken.token_hash == token_hash)
            .order_by(RefreshToken.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def has_active_in_family(self, member_id: int, token_family: str) -> bool:
        return bool(self._session.execute(
            select(
                exists().where(
                    RefreshToken.member_id == member_id,
                    RefreshToken.token_family == token_family,
                    RefreshToken.is_revoked.is_(False),
                )
            )
        ).scalar())

    def revoke(self, token_id: int) -> bool:
        return self._revoke_where(RefreshToken.id == token_id) == 1

    def revoke_owned(self, member_id: int, token_id: int) -> bool:
        return self._revoke_where(
            RefreshToken.id == token_id,
            RefreshToken.member_id == member_id,
        ) == 1

    def revoke_by_hash(self, token_hash: str) -> bool:
        return self._revoke_where(RefreshToken.token_hash == token_hash) > 0

    def revoke_family(self, member_id: int, token_family: str) -> int:
        return self._revoke_where(
            RefreshToken.member_id == member_id,
            RefreshToken.token_family == token_family,
        )

    def revoke_all_for_member(self, member_id: int) -> int:
        return self._revoke_where(RefreshToken.member_id == member_id)

    def find_active_for_member(self, member_id: int) -> list[RefreshToken]:
        now = datetime.now(timezone.utc)
        return list(self._session.execute(
            select(RefreshToken)
            .where(
                RefreshToken.member_id == member_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > now,
            )
            .order_by(RefreshToken.issued_at.desc(), RefreshToken.id.desc())
        ).scalars().all())

    def purge_expired(self, now: datetime | None = None) -> int:
        """Deletes expired or revoked records. Returns the number deleted."""
        now = now or datetime.now(timezone.utc)
        result = self._session.execute(
            delete(RefreshToken)
            .where(or_(RefreshToken.expires_at < now, RefreshToken.is_revoked.is_(True)))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _revoke_where(self, *criteria) -> int:
        # Pending inserts must reach the DB before the guarded UPDATE runs.
        self._session.flush()
        result = self._session.execute(
            update(RefreshToken)
            .where(*criteria, RefreshToken.is_revoked.is_(False))
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        # Objects already loaded in this session would otherwise keep
        # is_revoked = False until the next commit.
        self._session.expire_all()
        return result.rowcount
