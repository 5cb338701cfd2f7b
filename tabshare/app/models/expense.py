"""
models/expense.py — Expense record and money helpers.

Key design points:
  - `amount` is a Decimal quantized to cents. Never float.
  - `date` is a timezone-aware datetime; snapshots store it as ISO-8601.
  - `category` is free-form. SETTLEMENT_CATEGORY marks the synthetic
    expenses created by settle-up.
  - Expenses are never edited. mark-paid replaces the whole record through
    with_split_paid(); nothing mutates an Expense in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from tabshare.app.models.split import Split


CENT = Decimal("0.01")

DEFAULT_CATEGORY = "Other"
SETTLEMENT_CATEGORY = "Settlement"


def to_money(value) -> Decimal:
    """Converts int/str/Decimal to a two-place Decimal (half-up)."""
    if isinstance(value, float):
        # repr() gives the shortest round-tripping literal: 30.13, not 30.129999...
        value = repr(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Expense:
    id: str
    title: str
    amount: Decimal
    date: datetime
    paid_by: str
    group_id: str
    category: str = DEFAULT_CATEGORY
    splits: tuple[Split, ...] = field(default_factory=tuple)

    @property
    def is_settlement(self) -> bool:
        return self.category == SETTLEMENT_CATEGORY

    def split_for(self, user_id: str) -> Split | None:
        """Returns the split belonging to user_id, or None."""
        return next((s for s in self.splits if s.user_id == user_id), None)

    def with_split_paid(self, user_id: str) -> Expense:
        """Returns a copy with user_id's split marked paid. Split order is kept."""
        return replace(
            self,
            splits=tuple(
                s.mark_paid() if s.user_id == user_id else s
                for s in self.splits
            ),
        )

    @property
    def split_total(self) -> Decimal:
        return sum((s.amount for s in self.splits), Decimal("0.00"))

    @property
    def unpaid_total(self) -> Decimal:
        return sum((s.amount for s in self.splits if not s.is_paid), Decimal("0.00"))

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Expense id={self.id} "
            f"group_id={self.group_id} "
            f"amount={self.amount} "
            f"category={self.category!r}>"
        )
