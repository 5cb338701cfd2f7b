"""
schemas/expense_schema.py — Marshmallow schemas for expense endpoints.

Validation responsibility:
  - This file:
      - Field types, lengths, positive amounts (quantized to cents)
      - Exactly one way of describing splits per request:
          splits       — explicit [{user_id, amount, is_paid}] rows
          split_mode   — "equal" | "percentage" | "custom", with
                         percentages / custom_amounts as the mode needs
      - DUPLICATE_SPLIT_USER (400) for explicit splits
  - services/split_service.py:
      - PERCENTAGE_SUM_MISMATCH, SPLIT_SUM_MISMATCH for split_mode requests
  - services/ledger_store.py:
      - SPLIT_SUM_MISMATCH for explicit splits (tolerance check)
      - PAYER_NOT_MEMBER, SPLIT_USER_NOT_MEMBER, *_NOT_FOUND (lookups)
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    validate,
    validates_schema,
)

from tabshare.app.errors import ErrorCode


SPLIT_MODES = ("equal", "percentage", "custom")


def _validate_positive(value: Decimal) -> None:
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")


def _validate_not_negative(value: Decimal) -> None:
    if value < Decimal("0"):
        raise ValidationError("Amount must not be negative.")


def _validate_non_empty_after_trim(value: str) -> None:
    """Raises ValidationError if the string is blank or contains only whitespace."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _money(**kwargs) -> fields.Decimal:
    return fields.Decimal(places=2, rounding=ROUND_HALF_UP, **kwargs)


# ── Sub-schema: one entry in the `splits` array ───────────────────────────

class SplitInputSchema(Schema):

    user_id = fields.Str(required=True, validate=validate.Length(min=1))

    # Zero is allowed: the payee row of a settlement is a zero split.
    amount = _money(required=True, validate=_validate_not_negative)

    is_paid = fields.Bool(load_default=False)


# ── Create expense ─────────────────────────────────────────────────────────

class CreateExpenseSchema(Schema):
    """
    POST /expenses

    paid_by and group_id default to the current user and current group
    (filled in by the route, which knows the ledger).

    participant_ids applies to split_mode="equal" only and defaults to every
    member of the group.
    """

    title = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=255, error="Title must be between 1 and 255 characters."),
            _validate_non_empty_after_trim,
        ],
    )

    amount = _money(required=True, validate=_validate_positive)

    date = fields.DateTime(format="iso", load_default=None)

    paid_by = fields.Str(load_default=None)

    group_id = fields.Str(load_default=None)

    category = fields.Str(load_default=None, validate=validate.Length(max=50))

    splits = fields.List(fields.Nested(SplitInputSchema), load_default=None)

    split_mode = fields.Str(
        load_default=None,
        validate=validate.OneOf(SPLIT_MODES, error=ErrorCode.INVALID_SPLIT_MODE),
    )

    participant_ids = fields.List(fields.Str(), load_default=None)

    percentages = fields.Dict(
        keys=fields.Str(),
        values=fields.Decimal(validate=_validate_not_negative),
        load_default=None,
    )

    custom_amounts = fields.Dict(
        keys=fields.Str(),
        values=_money(validate=_validate_not_negative),
        load_default=None,
    )

    @validates_schema
    def validate_split_source(self, data: dict, **kwargs) -> None:
        """
        1. Exactly one of `splits` / `split_mode`.
        2. split_mode="percentage" needs `percentages`;
           split_mode="custom" needs `custom_amounts`.
        3. DUPLICATE_SPLIT_USER: same user_id twice in `splits`.
        """
        splits = data.get("splits")
        split_mode = data.get("split_mode")

        if splits is None and split_mode is None:
            raise ValidationError({"splits": ["Provide either splits or split_mode."]})
        if splits is not None and split_mode is not None:
            raise ValidationError({"splits": ["Provide either splits or split_mode, not both."]})

        if split_mode == "percentage" and not data.get("percentages"):
            raise ValidationError(
                {"percentages": ["percentages is required when split_mode is 'percentage'."]}
            )
        if split_mode == "custom" and not data.get("custom_amounts"):
            raise ValidationError(
                {"custom_amounts": ["custom_amounts is required when split_mode is 'custom'."]}
            )

        if splits is not None:
            user_ids = [s["user_id"] for s in splits]
            if len(user_ids) != len(set(user_ids)):
                raise ValidationError({"splits": [ErrorCode.DUPLICATE_SPLIT_USER]})


class ListExpensesQuerySchema(Schema):
    """GET /expenses?group_id=..."""

    group_id = fields.Str(load_default=None)
