"""
schemas/snapshot_schema.py — Marshmallow schemas for the persisted snapshot.

Snapshot layout (keys are camelCase on disk):

    { "users":    [{id, name, email, avatar}],
      "groups":   [{id, name, members: [userId, ...]}],
      "expenses": [{id, title, amount, date, paidBy, category, groupId,
                    splits: [{userId, amount, isPaid}]}] }

  - amounts are written as decimal strings ("120.50"); numbers are accepted
    on load and quantized to cents.
  - dates are ISO-8601 strings and load back as aware datetime objects
    (a date without an offset is taken to be UTC), so
    load(dump(x)) == x exactly.

Unknown keys are ignored on load so newer snapshots stay readable. References
to users or groups missing from the snapshot are rejected.
"""

from __future__ import annotations

from datetime import timezone
from decimal import ROUND_HALF_UP

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validates_schema

from tabshare.app.models.expense import DEFAULT_CATEGORY, Expense
from tabshare.app.models.group import Group
from tabshare.app.models.split import Split
from tabshare.app.models.user import User


def _money_field(**kwargs) -> fields.Decimal:
    return fields.Decimal(places=2, rounding=ROUND_HALF_UP, as_string=True, **kwargs)


class UserSnapshotSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id     = fields.Str(required=True)
    name   = fields.Str(required=True)
    email  = fields.Str(required=True)
    avatar = fields.Str(load_default=None, allow_none=True)

    @post_load
    def make_user(self, data: dict, **kwargs) -> User:
        return User(**data)


class GroupSnapshotSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id         = fields.Str(required=True)
    name       = fields.Str(required=True)
    member_ids = fields.List(fields.Str(), data_key="members", load_default=list)

    @post_load
    def make_group(self, data: dict, **kwargs) -> Group:
        # dict.fromkeys de-duplicates while keeping join order.
        data["member_ids"] = tuple(dict.fromkeys(data["member_ids"]))
        return Group(**data)


class SplitSnapshotSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    user_id = fields.Str(required=True, data_key="userId")
    amount  = _money_field(required=True)
    is_paid = fields.Bool(data_key="isPaid", load_default=False)

    @post_load
    def make_split(self, data: dict, **kwargs) -> Split:
        return Split(**data)


class ExpenseSnapshotSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id       = fields.Str(required=True)
    title    = fields.Str(required=True)
    amount   = _money_field(required=True)
    date     = fields.AwareDateTime(format="iso", default_timezone=timezone.utc, required=True)
    paid_by  = fields.Str(required=True, data_key="paidBy")
    category = fields.Str(load_default=DEFAULT_CATEGORY)
    group_id = fields.Str(required=True, data_key="groupId")
    splits   = fields.List(fields.Nested(SplitSnapshotSchema), load_default=list)

    @post_load
    def make_expense(self, data: dict, **kwargs) -> Expense:
        data["splits"] = tuple(data["splits"])
        return Expense(**data)


class LedgerSnapshotSchema(Schema):
    """The full {users, groups, expenses} snapshot."""

    class Meta:
        unknown = EXCLUDE

    users    = fields.List(fields.Nested(UserSnapshotSchema), load_default=list)
    groups   = fields.List(fields.Nested(GroupSnapshotSchema), load_default=list)
    expenses = fields.List(fields.Nested(ExpenseSnapshotSchema), load_default=list)

    @validates_schema
    def validate_references(self, data: dict, **kwargs) -> None:
        """
        Every id a group or expense refers to must exist in the snapshot.
        A dangling reference makes the whole snapshot unusable.
        """
        user_ids = {u.id for u in data.get("users", [])}
        group_ids = {g.id for g in data.get("groups", [])}

        for group in data.get("groups", []):
            missing = [m for m in group.member_ids if m not in user_ids]
            if missing:
                raise ValidationError(
                    {"groups": [f"Group {group.id} lists unknown member {missing[0]}."]}
                )

        for expense in data.get("expenses", []):
            if expense.group_id not in group_ids:
                raise ValidationError(
                    {"expenses": [f"Expense {expense.id} refers to unknown group {expense.group_id}."]}
                )
            referenced = [expense.paid_by, *(s.user_id for s in expense.splits)]
            missing = [u for u in referenced if u not in user_ids]
            if missing:
                raise ValidationError(
                    {"expenses": [f"Expense {expense.id} refers to unknown user {missing[0]}."]}
                )
