"""
tests/unit/conftest.py — DB-free fixtures for the auth core.

The engine is wired to in-memory stores and a FakeTransaction that counts
commits/rollbacks. bcrypt runs at cost 4 to keep the suite fast.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from backend.app.security.passwords import PasswordHasher
from backend.app.security.tokens import TokenCodec
from backend.app.services.auth_service import AuthEngine
from backend.config import AuthSettings

from .fakes import FakeTransaction, InMemoryMemberStore, InMemoryRefreshTokenStore


@pytest.fixture
def settings() -> AuthSettings:
    return AuthSettings(
        access_secret="unit-access-secret-0123456789abcdef",
        refresh_secret="unit-refresh-secret-0123456789abcdef",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
        bcrypt_rounds=4,
    )


@pytest.fixture
def hasher(settings) -> PasswordHasher:
    return PasswordHasher(settings)


@pytest.fixture
def codec(settings) -> TokenCodec:
    return TokenCodec(settings)


@pytest.fixture
def members() -> InMemoryMemberStore:
    return InMemoryMemberStore()


@pytest.fixture
def refresh_tokens() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture
def tx() -> FakeTransaction:
    return FakeTransaction()


@pytest.fixture
def engine(members, refresh_tokens, hasher, codec, tx) -> AuthEngine:
    return AuthEngine(
        members=members,
        refresh_tokens=refresh_tokens,
        hasher=hasher,
        codec=codec,
        transaction=tx,
    )


@pytest.fixture
def alice(members, hasher):
    """Active member a@x.com / P@ss1234."""
    return members.add("a@x.com", hasher.hash("P@ss1234"))
