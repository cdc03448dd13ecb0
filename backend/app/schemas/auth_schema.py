"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field types, lengths, formats, regex patterns.
  - services/auth_service.py: EMAIL_EXISTS (needs a DB lookup, not a schema
    concern) and credential checks.

Request bodies use the camelCase field names of the public API; load()
returns snake_case keys ready for the service layer.

IMPORTANT: All schemas inherit from marshmallow.Schema directly so they can
be unit-tested without a Flask app context.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, pre_load, validate, validates

_PASSWORD_SPECIALS = "@$!%*?&"


class _EmailNormalisingSchema(Schema):
    """Lowercases and trims `email` before validation."""

    @pre_load
    def normalise_email(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("email"), str):
            data = {**data, "email": data["email"].strip().lower()}
        return data


class RegisterSchema(_EmailNormalisingSchema):
    """
    POST /auth/register

    Field rules:
      memberName    : 2–100 chars
      memberContact : digits, spaces, + - ( ), max 25 chars
      email         : valid email format, stored lowercased
      password      : 8 chars to 72 bytes; upper, lower, digit and one of @$!%*?&
      isRecruiter   : bool, default false
      isInterviewer : bool, default false
    """

    member_name = fields.Str(
        required=True,
        data_key="memberName",
        validate=validate.Length(
            min=2,
            max=100,
            error="Name must be between 2 and 100 characters.",
        ),
    )

    member_contact = fields.Str(
        required=True,
        data_key="memberContact",
        validate=[
            validate.Length(max=25, error="Contact number cannot exceed 25 characters."),
            validate.Regexp(r"^[0-9+\-\s()]+$", error="Invalid contact number format."),
        ],
    )

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    password = fields.Str(required=True, load_only=True)

    is_recruiter = fields.Bool(load_default=False, data_key="isRecruiter")

    is_interviewer = fields.Bool(load_default=False, data_key="isInterviewer")

    @validates("member_name")
    def validate_member_name(self, value: str, **kwargs) -> None:
        if not value.strip():
            raise ValidationError("Member name cannot be blank.")

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")
        # bcrypt only reads the first 72 bytes.
        if len(value.encode("utf-8")) > 72:
            raise ValidationError("Password cannot exceed 72 bytes.")
        if not any(c.islower() for c in value):
            raise ValidationError("Password must contain a lowercase letter.")
        if not any(c.isupper() for c in value):
            raise ValidationError("Password must contain an uppercase letter.")
        if not any(c.isdigit() for c in value):
            raise ValidationError("Password must contain a digit.")
        if not any(c in _PASSWORD_SPECIALS for c in value):
            raise ValidationError(
                f"Password must contain a special character ({_PASSWORD_SPECIALS})."
            )


class LoginSchema(_EmailNormalisingSchema):
    """
    POST /auth/login

    Credential correctness is checked in auth_service.py
    (INVALID_CREDENTIALS, 401).
    """

    email = fields.Email(required=True)
    password = fields.Str(
        required=True,
        load_only=True,
        validate=validate.Length(min=8, error="Password must be at least 8 characters."),
    )


class RefreshTokenSchema(Schema):
    """
    POST /auth/refresh, POST /auth/logout

    The token may instead arrive in the refresh cookie, so the body field is
    optional here; the route decides what a missing token means.
    """

    refresh_token = fields.Str(load_default=None, data_key="refreshToken")
