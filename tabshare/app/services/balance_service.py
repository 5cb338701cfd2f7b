"""
services/balance_service.py — Balance computation and two-party relations.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
The formula must not be reimplemented elsewhere in the codebase.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - No state. Every function takes the records it needs and returns plain
    dicts / lists, so it is safe to call from any thread with a snapshot.

Balance formula:
  1. Every known user starts at zero.
  2. The payer of each expense is credited the FULL expense amount,
     regardless of which splits have been paid.
  3. Each split that is NOT paid debits its user by the split amount.
     A paid split debits nothing: that member's obligation is discharged.

  Marking a split paid therefore removes the member's debit without moving
  anything through the payer's credit. This asymmetry is deliberate and must
  be preserved: never "correct" the payer when a split is marked paid.

  Consequently sum(balances) == expected_balance_sum(expenses), which is
  zero only while every split is unpaid and splits sum exactly.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from tabshare.app.models.expense import Expense


ZERO = Decimal("0.00")

# Relationship directions, from the point of view of the current user.
OWES_YOU = "owes_you"
YOU_OWE  = "you_owe"
SETTLED  = "settled"


# ── Core algorithm ─────────────────────────────────────────────────────────

def compute_balances(
        expenses: Iterable[Expense],
        user_ids: Iterable[str],
) -> dict[str, Decimal]:
    """
    Canonical balance computation.

    Returns {user_id: net_balance} for every id in `user_ids`, plus any
    payer or split user referenced by an expense but missing from
    `user_ids` (so no money silently disappears from the sum).
    """
    balances: dict[str, Decimal] = defaultdict(lambda: ZERO)

    for user_id in user_ids:
        balances[user_id] = ZERO

    for expense in expenses:
        balances[expense.paid_by] += expense.amount
        for split in expense.splits:
            if not split.is_paid:
                balances[split.user_id] -= split.amount

    return dict(balances)


def expected_balance_sum(expenses: Iterable[Expense]) -> Decimal:
    """
    The value sum(compute_balances(expenses).values()) must equal:
    the sum over expenses of (amount - sum of unpaid split amounts).
    """
    return sum((e.amount - e.unpaid_total for e in expenses), ZERO)


# ── Two-party view ─────────────────────────────────────────────────────────

def relationship_balance(current_balance: Decimal, other_balance: Decimal) -> dict:
    """
    Derives a "who owes whom" relation between the current user and one
    other member from their NET balances.

      current > 0 and other < 0  → other owes current user min(current, -other)
      current < 0 and other > 0  → current user owes other min(-current, other)
      anything else              → settled

    KNOWN APPROXIMATION: net balances aggregate over every member, so for
    groups of three or more this can show "settled" between two members who
    still carry debt routed through a third (or the reverse). It is a display
    heuristic, not a pairwise ledger. Kept as-is on purpose; see DESIGN.md.
    """
    if current_balance > ZERO and other_balance < ZERO:
        return {"direction": OWES_YOU, "amount": min(current_balance, -other_balance)}
    if current_balance < ZERO and other_balance > ZERO:
        return {"direction": YOU_OWE, "amount": min(-current_balance, other_balance)}
    return {"direction": SETTLED, "amount": ZERO}


def relationships_for(
        current_user_id: str,
        member_ids: Iterable[str],
        balances: dict[str, Decimal],
) -> list[dict]:
    """
    Builds the relation between the current user and every other member,
    in member order. Members absent from `balances` count as zero.
    """
    mine = balances.get(current_user_id, ZERO)
    relations = []
    for member_id in member_ids:
        if member_id == current_user_id:
            continue
        relation = relationship_balance(mine, balances.get(member_id, ZERO))
        relations.append({"user_id": member_id, **relation})
    return relations


def settle_up_suggestions(
        current_user_id: str,
        member_ids: Iterable[str],
        balances: dict[str, Decimal],
) -> list[dict]:
    """
    Members the current user owes under relationship_balance(), with the
    suggested payment amount. Empty when the current user owes nothing.
    """
    return [
        {"user_id": r["user_id"], "amount": r["amount"]}
        for r in relationships_for(current_user_id, member_ids, balances)
        if r["direction"] == YOU_OWE
    ]
