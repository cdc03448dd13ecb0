"""Initial schema — members and refresh_tokens.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  1. members
  2. refresh_tokens (FK → members, ON DELETE CASCADE)
  3. Indexes for the refresh lookup paths
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration — no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:

    # ── Step 1: members ────────────────────────────────────────────────────

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("member_name", sa.String(100), nullable=False),
        sa.Column("member_contact", sa.String(25), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "is_recruiter",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "is_interviewer",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("TRUE"),
        ),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_members"),
        sa.UniqueConstraint("email", name="uq_members_email"),
    )

    # ── Step 2: refresh_tokens ─────────────────────────────────────────────
    # token_hash is deliberately not UNIQUE: revoked rows stay behind so that
    # a replayed token can be recognised (reuse detection).

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "member_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="CASCADE", name="fk_refresh_tokens_member"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("token_family", sa.String(36), nullable=False),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column(
            "issued_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "is_revoked",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_refresh_tokens"),
    )

    # ── Step 3: indexes ────────────────────────────────────────────────────

    op.create_index("ix_refresh_tokens_member_id", "refresh_tokens", ["member_id"])
    op.create_index("ix_refresh_tokens_token_hash", "refresh_tokens", ["token_hash"])
    op.create_index(
        "idx_refresh_tokens_member_hash",
        "refresh_tokens",
        ["member_id", "token_hash"],
    )
    op.create_index(
        "idx_refresh_tokens_member_family",
        "refresh_tokens",
        ["member_id", "token_family"],
    )


def downgrade() -> None:
    op.drop_index("idx_refresh_tokens_member_family", table_name="refresh_tokens")
    op.drop_index("idx_refresh_tokens_member_hash", table_name="refresh_tokens")
    op.drop_index("ix_refresh_tokens_token_hash", table_name="refresh_tokens")
    op.drop_index("ix_refresh_tokens_member_id", table_name="refresh_tokens")
    op.drop_table("refresh_tokens")
    op.drop_table("members")
