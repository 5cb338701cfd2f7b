"""
services/reminder_service.py — Payment reminders for unpaid splits.

A reminder is produced for every expense in which the user still has an
unpaid split and is not the payer. Reminders older than `overdue_after`
are flagged overdue. Results are oldest first, so the most pressing
reminder is always reminders[0].

Layer rules:
  - No Flask imports. Pure functions over Expense records.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from tabshare.app.models.expense import Expense


DEFAULT_OVERDUE_AFTER = timedelta(days=7)


def payment_reminders(
        expenses: Iterable[Expense],
        user_id: str,
        now: datetime,
        overdue_after: timedelta = DEFAULT_OVERDUE_AFTER,
) -> list[dict]:
    """
    Returns [{expense_id, title, group_id, paid_by, amount, date, overdue}]
    for each unpaid split belonging to user_id, oldest expense first.
    """
    cutoff = now - overdue_after
    reminders = []

    for expense in expenses:
        if expense.paid_by == user_id:
            continue
        split = expense.split_for(user_id)
        if split is None or split.is_paid:
            continue
        reminders.append({
            "expense_id": expense.id,
            "title":      expense.title,
            "group_id":   expense.group_id,
            "paid_by":    expense.paid_by,
            "amount":     split.amount,
            "date":       expense.date,
            "overdue":    expense.date < cutoff,
        })

    reminders.sort(key=lambda r: r["date"])
    return reminders
