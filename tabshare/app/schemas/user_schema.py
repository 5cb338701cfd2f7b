"""
schemas/user_schema.py — Marshmallow schemas for user endpoints.

Validation responsibility:
  - This file: field types, lengths, e-mail shape, non-empty after trim.
  - services/ledger_store.py: existence (USER_NOT_FOUND) and ownership of
    profile edits (FORBIDDEN).
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema


def _validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    validate.Length(min=1) alone would accept "   ".
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreateUserSchema(Schema):
    """POST /users"""

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=100, error="Name must be between 1 and 100 characters."),
            _validate_non_empty_after_trim,
        ],
    )

    email = fields.Email(required=True)

    avatar = fields.Str(load_default=None, allow_none=True)


class UpdateUserSchema(Schema):
    """
    PATCH /users/:id

    All fields optional; at least one must be present. `avatar: null`
    clears the avatar.
    """

    name = fields.Str(
        validate=[
            validate.Length(min=1, max=100, error="Name must be between 1 and 100 characters."),
            _validate_non_empty_after_trim,
        ],
    )

    email = fields.Email()

    avatar = fields.Str(allow_none=True)

    @validates_schema
    def validate_not_empty(self, data: dict, **kwargs) -> None:
        if not data:
            raise ValidationError("Provide at least one of name, email or avatar.")
