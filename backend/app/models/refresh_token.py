"""
models/refresh_token.py — RefreshToken table definition.

No business logic. No imports from services or routes.

FK policy: member_id ON DELETE CASCADE — token is owned by the member;
both are deleted together.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class RefreshToken(db.Model):
    __tablename__ = "refresh_tokens"

    __table_args__ = (
        # Active-record lookup during refresh: (member_id, token_hash).
        Index("idx_refresh_tokens_member_hash", "member_id", "token_hash"),
        # Reuse detection and family-wide revocation.
        Index("idx_refresh_tokens_member_family", "member_id", "token_family"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # ON DELETE CASCADE — token is destroyed when its owning member is deleted.
    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # SHA-256 hex digest of the raw refresh token, never the token itself.
    # Not UNIQUE: the rotation protocol guarantees at most one active row per
    # (member_id, token_hash), revoked rows are kept for reuse detection.
    token_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )

    # UUIDv4 shared by every token descended from one login.
    token_family: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
    )

    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # Set to TRUE on rotation, logout, logout-all or reuse detection.
    # Never set back to FALSE.
    is_revoked: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    # ── Relationships ──────────────────────────────────────────────────────

    member: Mapped["Member"] = relationship(  # noqa: F821
        "Member",
        back_populates="refresh_tokens",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<RefreshToken id={self.id} "
            f"member_id={self.member_id} "
            f"revoked={self.is_revoked}>"
        )
