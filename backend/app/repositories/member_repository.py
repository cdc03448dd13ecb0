"""
repositories/member_repository.py — Member persistence.

MemberStore is the interface the auth service consumes. The SQLAlchemy
implementation only flushes; commits belong to the caller that owns the
unit of work.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backend.app.models.member import Member


class MemberStore(Protocol):

    def find_by_email(self, email: str) -> Member | None: ...

    def find_by_id(self, member_id: int) -> Member | None: ...

    def create(self, data: dict) -> Member: ...

    def update_last_login(self, member_id: int) -> None: ...


class SqlAlchemyMemberStore:

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_by_email(self, email: str) -> Member | None:
        return self._session.execute(
            select(Member).where(Member.email == email)
        ).scalar_one_or_none()

    def find_by_id(self, member_id: int) -> Member | None:
        return self._session.get(Member, member_id)

    def create(self, data: dict) -> Member:
        member = Member(
            member_name=data["member_name"],
            member_contact=data["member_contact"],
            email=data["email"],
            password_hash=data["password_hash"],
            is_recruiter=data.get("is_recruiter", False),
            is_interviewer=data.get("is_interviewer", False),
            is_active=data.get("is_active", True),
        )
        self._session.add(member)
        # flush so member.id and created_at are populated before returning
        self._session.flush()
        self._session.refresh(member)
        return member

    def update_last_login(self, member_id: int) -> None:
        self._session.execute(
            update(Member)
            .where(Member.id == member_id)
            .values(last_login_at=datetime.now(timezone.utc))
        )
