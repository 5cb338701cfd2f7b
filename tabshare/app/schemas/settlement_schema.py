"""
schemas/settlement_schema.py — Marshmallow schema for settle-up.

Validation responsibility:
  - This file: field types, positive amount (quantized to cents).
  - services/ledger_store.py:
      - SELF_SETTLEMENT (422)
      - NO_CURRENT_GROUP (422)
      - USER_NOT_FOUND / GROUP_NOT_FOUND (404)
      - PAYER_NOT_MEMBER / SPLIT_USER_NOT_MEMBER (422)
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from marshmallow import Schema, ValidationError, fields, validate


def _validate_positive(value: Decimal) -> None:
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")


class SettleUpSchema(Schema):
    """
    POST /settlements

    from_user_id defaults to the current user and group_id to the current
    group; the route fills both in. Overpaying is allowed: the payment is
    recorded as given.
    """

    to_user_id = fields.Str(required=True, validate=validate.Length(min=1))

    amount = fields.Decimal(
        required=True,
        places=2,
        rounding=ROUND_HALF_UP,
        validate=_validate_positive,
    )

    from_user_id = fields.Str(load_default=None)

    group_id = fields.Str(load_default=None)

    date = fields.DateTime(format="iso", load_default=None)
