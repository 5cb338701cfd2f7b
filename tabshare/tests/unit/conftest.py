"""
tests/unit/conftest.py — Fixtures for the pure-Python unit suite.

Unit test constraints:
  - No Flask application, no database.
  - The persistence collaborator is replaced by FakeSnapshotStore, an
    in-memory stand-in that can be told to fail on load or save.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from tabshare.app.models.expense import Expense
from tabshare.app.models.split import Split
from tabshare.app.services.ledger_store import LedgerStore
from tabshare.app.services.snapshot_store import SnapshotStoreError


class FakeSnapshotStore:
    """Keeps the last saved snapshot in memory. Counts saves."""

    def __init__(self, stored: dict | None = None, fail_load: bool = False, fail_save: bool = False):
        self.stored = stored
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.saves = 0

    def load(self) -> dict | None:
        if self.fail_load:
            raise SnapshotStoreError("disk on fire")
        return self.stored

    def save(self, snapshot: dict) -> None:
        if self.fail_save:
            raise SnapshotStoreError("disk full")
        self.saves += 1
        self.stored = snapshot


@pytest.fixture
def store() -> FakeSnapshotStore:
    return FakeSnapshotStore()


@pytest.fixture
def ledger(store) -> LedgerStore:
    """A started ledger seeded from the bootstrap dataset."""
    ledger = LedgerStore(store)
    ledger.start()
    ledger.drain_warnings()
    return ledger


def make_expense(
        expense_id: str,
        paid_by: str,
        amount: str,
        splits: list[tuple[str, str, bool]],
        group_id: str = "g1",
        date: datetime | None = None,
        category: str = "Other",
) -> Expense:
    """Builds an Expense record directly, bypassing ledger validation."""
    return Expense(
        id=expense_id,
        title=f"Expense {expense_id}",
        amount=Decimal(amount),
        date=date or datetime(2024, 4, 22, tzinfo=timezone.utc),
        paid_by=paid_by,
        group_id=group_id,
        category=category,
        splits=tuple(Split(user_id=u, amount=Decimal(a), is_paid=p) for u, a, p in splits),
    )


@pytest.fixture
def expense_factory():
    return make_expense


@pytest.fixture
def fake_store_cls():
    """The FakeSnapshotStore class, for tests that need a custom one."""
    return FakeSnapshotStore
