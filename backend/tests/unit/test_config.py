"""
Unit tests for config.py: AuthSettings construction and the production guard.
"""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import pytest

from backend.config import (
    AuthSettings,
    BaseConfig,
    config_by_name,
    validate_production_config,
)


def _app(**config):
    base = {
        "SQLALCHEMY_DATABASE_URI": "postgresql://db/hr",
        "SECRET_KEY": "s" * 32,
        "JWT_ACCESS_SECRET": "a" * 32,
        "JWT_REFRESH_SECRET": "r" * 32,
    }
    base.update(config)
    return SimpleNamespace(config=base)


def test_auth_settings_from_testing_config():
    testing = config_by_name["testing"]
    config = {k: getattr(testing, k) for k in dir(testing) if k.isupper()}

    settings = AuthSettings.from_mapping(config)

    assert settings.access_secret != settings.refresh_secret
    assert settings.access_ttl == timedelta(seconds=60)
    assert settings.refresh_ttl == timedelta(seconds=600)
    assert settings.bcrypt_rounds == 4
    assert settings.algorithm == "HS256"
    assert settings.issuer == BaseConfig.JWT_ISSUER
    assert settings.audience == BaseConfig.JWT_AUDIENCE


def test_auth_settings_is_immutable():
    settings = AuthSettings(access_secret="a", refresh_secret="r")

    with pytest.raises(AttributeError):
        settings.access_secret = "changed"


def test_production_config_accepts_real_secrets():
    validate_production_config(_app())


def test_production_config_requires_database_url():
    with pytest.raises(ValueError, match="DATABASE_URL"):
        validate_production_config(_app(SQLALCHEMY_DATABASE_URI=""))


@pytest.mark.parametrize("key", ["SECRET_KEY", "JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET"])
def test_production_config_rejects_placeholder_secrets(key):
    with pytest.raises(ValueError, match=key):
        validate_production_config(_app(**{key: "change-me-in-production"}))


def test_production_config_requires_distinct_signing_keys():
    with pytest.raises(ValueError, match="must be different"):
        validate_production_config(_app(JWT_REFRESH_SECRET="a" * 32))
