"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy as a module-level object so it can be imported
anywhere without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` from here wherever needed.

    from backend.app.extensions import db

The password hasher and token codec are built once per app from
AuthSettings and stored in app.extensions; current_auth_engine() wires them
to request-scoped stores over db.session.
"""

from __future__ import annotations

from flask import current_app
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

PASSWORD_HASHER_KEY = "password_hasher"
TOKEN_CODEC_KEY = "token_codec"


def current_auth_engine():
    """Returns an AuthEngine bound to the current request's DB session."""
    # Imported lazily: the service imports models, which import `db` from here.
    from backend.app.repositories.member_repository import SqlAlchemyMemberStore
    from backend.app.repositories.refresh_token_repository import (
        SqlAlchemyRefreshTokenStore,
    )
    from backend.app.services.auth_service import AuthEngine

    return AuthEngine(
        members=SqlAlchemyMemberStore(db.session),
        refresh_tokens=SqlAlchemyRefreshTokenStore(db.session),
        hasher=current_app.extensions[PASSWORD_HASHER_KEY],
        codec=current_app.extensions[TOKEN_CODEC_KEY],
        transaction=db.session,
    )
