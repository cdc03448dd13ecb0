"""
Unit tests for marshmallow request schemas. No Flask app required.
"""

from __future__ import annotations

import pytest
from marshmallow import ValidationError

from backend.app.schemas.auth_schema import LoginSchema, RefreshTokenSchema, RegisterSchema


def _register_payload(**overrides) -> dict:
    payload = {
        "memberName": "Alice Example",
        "memberContact": "+91 (22) 555-0100",
        "email": "Alice@Example.com",
        "password": "P@ss1234",
    }
    payload.update(overrides)
    return payload


class TestRegisterSchema:

    def test_valid_payload_loads_to_snake_case(self):
        data = RegisterSchema().load(_register_payload(isRecruiter=True))

        assert data == {
            "member_name": "Alice Example",
            "member_contact": "+91 (22) 555-0100",
            "email": "alice@example.com",
            "password": "P@ss1234",
            "is_recruiter": True,
            "is_interviewer": False,
        }

    def test_email_is_trimmed_and_lowercased(self):
        data = RegisterSchema().load(_register_payload(email="  BOB@X.COM "))

        assert data["email"] == "bob@x.com"

    @pytest.mark.parametrize("password", [
        "P@ss12",        # too short
        "p@ssword1",     # no uppercase
        "P@SSWORD1",     # no lowercase
        "P@ssword",      # no digit
        "Passw0rd1",     # no special character
        "P@ss1" + "a" * 80,  # beyond bcrypt's 72 bytes
    ])
    def test_weak_passwords_are_rejected(self, password):
        with pytest.raises(ValidationError) as exc_info:
            RegisterSchema().load(_register_payload(password=password))

        assert "password" in exc_info.value.messages

    @pytest.mark.parametrize("contact", ["555-CALL-NOW", "x" * 26, "12345678901234567890123456"])
    def test_bad_contact_numbers_are_rejected(self, contact):
        with pytest.raises(ValidationError) as exc_info:
            RegisterSchema().load(_register_payload(memberContact=contact))

        assert "memberContact" in exc_info.value.messages

    @pytest.mark.parametrize("name", ["A", "  ", "x" * 101])
    def test_bad_names_are_rejected(self, name):
        with pytest.raises(ValidationError) as exc_info:
            RegisterSchema().load(_register_payload(memberName=name))

        assert "memberName" in exc_info.value.messages

    def test_missing_fields_are_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            RegisterSchema().load({})

        messages = exc_info.value.messages
        for field in ("memberName", "memberContact", "email", "password"):
            assert messages[field] == ["Missing data for required field."]


class TestLoginSchema:

    def test_valid_login(self):
        data = LoginSchema().load({"email": " A@X.com", "password": "P@ss1234"})

        assert data == {"email": "a@x.com", "password": "P@ss1234"}

    def test_invalid_email(self):
        with pytest.raises(ValidationError) as exc_info:
            LoginSchema().load({"email": "not-an-email", "password": "P@ss1234"})

        assert "email" in exc_info.value.messages

    def test_short_password(self):
        with pytest.raises(ValidationError) as exc_info:
            LoginSchema().load({"email": "a@x.com", "password": "short"})

        assert "password" in exc_info.value.messages


class TestRefreshTokenSchema:

    def test_token_is_optional(self):
        assert RefreshTokenSchema().load({}) == {"refresh_token": None}

    def test_token_is_read_from_camel_case_key(self):
        assert RefreshTokenSchema().load({"refreshToken": "abc"}) == {"refresh_token": "abc"}

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(ValidationError):
            RefreshTokenSchema().load({"refresh_token": "abc"})
