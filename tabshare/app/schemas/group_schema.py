"""
schemas/group_schema.py — Marshmallow schemas for group and membership endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim),
    the "user_id OR name+email" shape of an add-member request.
  - services/ledger_store.py:
      - GROUP_NOT_FOUND / USER_NOT_FOUND (lookups)
      - ALREADY_MEMBER warning (membership lookup)
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema


def _validate_non_empty_after_trim(value: str) -> None:
    """Raises ValidationError if the string is blank or contains only whitespace."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreateGroupSchema(Schema):
    """
    POST /groups

    name       — non-empty after trim, max 100 chars.
    member_ids — optional initial members, in join order.
    """

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Group name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    member_ids = fields.List(fields.Str(), load_default=list)


class AddMemberSchema(Schema):
    """
    POST /groups/:id/members

    Either an existing user:      {"user_id": "u2"}
    or an invitation of a new one: {"name": "Sam", "email": "sam@example.com"}
    """

    user_id = fields.Str(load_default=None)
    name    = fields.Str(load_default=None, validate=_validate_non_empty_after_trim)
    email   = fields.Email(load_default=None)
    avatar  = fields.Str(load_default=None, allow_none=True)

    @validates_schema
    def validate_target(self, data: dict, **kwargs) -> None:
        has_user = data.get("user_id") is not None
        has_invite = data.get("name") is not None or data.get("email") is not None

        if has_user and has_invite:
            raise ValidationError(
                {"user_id": ["Send either user_id or name and email, not both."]}
            )
        if not has_user and not has_invite:
            raise ValidationError(
                {"user_id": ["Missing data for required field."]}
            )
        if has_invite and (data.get("name") is None or data.get("email") is None):
            raise ValidationError(
                {"email": ["Both name and email are required to invite a member."]}
            )


class SetCurrentGroupSchema(Schema):
    """PUT /groups/current"""

    group_id = fields.Str(required=True, validate=validate.Length(min=1))
