"""
In-memory stand-ins for the member and refresh-token stores.

They follow the same contracts as the SQLAlchemy stores (active-only lookups,
guarded one-way revocation) so the auth engine can be exercised DB-free.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace


class FakeTransaction:

    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


class InMemoryMemberStore:

    def __init__(self) -> None:
        self.members: dict[int, SimpleNamespace] = {}
        self.fail_last_login = False

    def add(self, email: str, password_hash: str, is_active: bool = True) -> SimpleNamespace:
        return self.create({
            "member_name": email.split("@")[0],
            "member_contact": "+1 555 0100",
            "email": email,
            "password_hash": password_hash,
            "is_active": is_active,
        })

    def find_by_email(self, email):
        return next((m for m in self.members.values() if m.email == email), None)

    def find_by_id(self, member_id):
        return self.members.get(member_id)

    def create(self, data):
        member = SimpleNamespace(
            id=len(self.members) + 1,
            member_name=data["member_name"],
            member_contact=data["member_contact"],
            email=data["email"],
            password_hash=data["password_hash"],
            is_recruiter=data.get("is_recruiter", False),
            is_interviewer=data.get("is_interviewer", False),
            is_active=data.get("is_active", True),
            last_login_at=None,
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        self.members[member.id] = member
        return member

    def update_last_login(self, member_id):
        if self.fail_last_login:
            raise RuntimeError("store unavailable")
        self.members[member_id].last_login_at = datetime.now(timezone.utc)


class InMemoryRefreshTokenStore:

    def __init__(self) -> None:
        self.records: list[SimpleNamespace] = []

    def create(self, record):
        row = SimpleNamespace(
            id=len(self.records) + 1,
            member_id=record["member_id"],
            token_hash=record["token_hash"],
            token_family=record["token_family"],
            user_agent=record.get("user_agent"),
            ip_address=record.get("ip_address"),
            issued_at=record.get("issued_at") or datetime.now(timezone.utc),
            expires_at=record["expires_at"],
            is_revoked=False,
        )
        self.records.append(row)
        return row.id

    def find_by_member_and_hash(self, member_id, token_hash):
        matches = [
            r for r in self.records
            if r.member_id == member_id and r.token_hash == token_hash and not r.is_revoked
        ]
        return matches[-1] if matches else None

    def find_by_hash(self, token_hash):
        matches = [r for r in self.records if r.token_hash == token_hash]
        return matches[-1] if matches else None

    def has_active_in_family(self, member_id, token_family):
        return any(
            r.member_id == member_id and r.token_family == token_family and not r.is_revoked
            for r in self.records
        )

    def revoke(self, token_id):
        return self._revoke(lambda r: r.id == token_id) == 1

    def revoke_owned(self, member_id, token_id):
        return self._revoke(lambda r: r.id == token_id and r.member_id == member_id) == 1

    def revoke_by_hash(self, token_hash):
        return self._revoke(lambda r: r.token_hash == token_hash) > 0

    def revoke_family(self, member_id, token_family):
        return self._revoke(
            lambda r: r.member_id == member_id and r.token_family == token_family
        )

    def revoke_all_for_member(self, member_id):
        return self._revoke(lambda r: r.member_id == member_id)

    def find_active_for_member(self, member_id):
        now = datetime.now(timezone.utc)
        active = [
            r for r in self.records
            if r.member_id == member_id and not r.is_revoked and r.expires_at > now
        ]
        return sorted(active, key=lambda r: (r.issued_at, r.id), reverse=True)

    def purge_expired(self, now=None):
        now = now or datetime.now(timezone.utc)
        keep = [r for r in self.records if not r.is_revoked and r.expires_at >= now]
        deleted = len(self.records) - len(keep)
        self.records = keep
        return deleted

    def family(self, token_family):
        return [r for r in self.records if r.token_family == token_family]

    def _revoke(self, predicate) -> int:
        count = 0
        for r in self.records:
            if not r.is_revoked and predicate(r):
                r.is_revoked = True
                count += 1
        return count
