"""
models/split.py — Split record: one member's share of one expense.

Key design points:
  - `amount` is a Decimal with two places. Zero is allowed (the payee side
    of a settlement carries a zero split).
  - `is_paid` is the only field that changes after the owning expense is
    recorded, and it only ever flips from False to True.
  - The payer's own split is marked paid when the expense is created: that
    share never needs a transfer.

The split-sum tolerance check lives in ledger_store.py, not here.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal


@dataclass(frozen=True)
class Split:
    user_id: str
    amount: Decimal
    is_paid: bool = False

    def mark_paid(self) -> Split:
        """Returns a copy of this split with is_paid set."""
        return replace(self, is_paid=True)

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Split user_id={self.user_id} "
            f"amount={self.amount} "
            f"paid={self.is_paid}>"
        )
