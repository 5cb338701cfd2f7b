"""
services/bootstrap.py — Fixed seed data used when no snapshot is stored.

Four users, two groups and four expenses. Expense e1 is the reference
balance scenario: 120.50 paid by u1, split 30.13 / 30.13 / 30.12 / 30.12
with u1's own share paid.

bootstrap_dataset() builds fresh records on every call.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from tabshare.app.models.expense import Expense
from tabshare.app.models.group import Group
from tabshare.app.models.split import Split
from tabshare.app.models.user import User


BOOTSTRAP_CURRENT_USER_ID = "u1"

_AVATAR_URL = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


def _user(user_id: str, name: str, seed: str) -> User:
    return User(
        id=user_id,
        name=name,
        email=f"{name.lower()}@example.com",
        avatar=_AVATAR_URL.format(seed=seed),
    )


def _splits(*rows: tuple[str, str, bool]) -> tuple[Split, ...]:
    return tuple(Split(user_id=u, amount=Decimal(a), is_paid=p) for u, a, p in rows)


def bootstrap_dataset() -> dict:
    """Returns {"users": [...], "groups": [...], "expenses": [...]}."""
    users = [
        _user("u1", "You", "Felix"),
        _user("u2", "Alex", "Alex"),
        _user("u3", "Taylor", "Taylor"),
        _user("u4", "Jordan", "Jordan"),
    ]

    groups = [
        Group(id="g1", name="Apartment 2024", member_ids=("u1", "u2", "u3", "u4")),
        Group(id="g2", name="Summer Trip", member_ids=("u1", "u2", "u4")),
    ]

    expenses = [
        Expense(
            id="e1",
            title="Grocery Shopping",
            amount=Decimal("120.50"),
            date=datetime(2024, 4, 22, tzinfo=timezone.utc),
            paid_by="u1",
            category="Food",
            group_id="g1",
            splits=_splits(
                ("u1", "30.13", True),
                ("u2", "30.13", False),
                ("u3", "30.12", False),
                ("u4", "30.12", False),
            ),
        ),
        Expense(
            id="e2",
            title="Internet Bill",
            amount=Decimal("89.99"),
            date=datetime(2024, 4, 20, tzinfo=timezone.utc),
            paid_by="u3",
            category="Utilities",
            group_id="g1",
            splits=_splits(
                ("u1", "22.50", False),
                ("u2", "22.50", False),
                ("u3", "22.49", True),
                ("u4", "22.50", False),
            ),
        ),
        Expense(
            id="e3",
            title="Hotel Reservation",
            amount=Decimal("450.00"),
            date=datetime(2024, 4, 15, tzinfo=timezone.utc),
            paid_by="u4",
            category="Travel",
            group_id="g2",
            splits=_splits(
                ("u1", "150.00", False),
                ("u4", "150.00", True),
                ("u2", "150.00", False),
            ),
        ),
        Expense(
            id="e4",
            title="Dinner",
            amount=Decimal("78.40"),
            date=datetime(2024, 4, 24, tzinfo=timezone.utc),
            paid_by="u2",
            category="Food",
            group_id="g1",
            splits=_splits(
                ("u1", "19.60", False),
                ("u2", "19.60", True),
                ("u3", "19.60", False),
                ("u4", "19.60", False),
            ),
        ),
    ]

    return {"users": users, "groups": groups, "expenses": expenses}
