"""
tests/integration/test_snapshot_persistence.py — SqlSnapshotStore and the
ledger's save/load behaviour against a real (in-memory SQLite) database.

What this file proves:
  - A fresh database has no snapshot; the ledger starts from bootstrap data
  - Every mutation through the API writes the snapshot row
  - A second ledger started on the same database sees the same state
  - A corrupt snapshot row is a warning, never an error
  - Offset-less dates in a stored snapshot are read as UTC
  - A failing save keeps the change and reports SNAPSHOT_SAVE_FAILED
"""

from __future__ import annotations

from decimal import Decimal

from tabshare.app import create_app
from tabshare.app.extensions import db
from tabshare.app.models.snapshot import LedgerSnapshot
from tabshare.app.services.ledger_store import LedgerStore
from tabshare.app.services.snapshot_store import SnapshotStoreError, SqlSnapshotStore


class _ReadOnlyStore:

    def load(self):
        return None

    def save(self, snapshot):
        raise SnapshotStoreError("read-only")


class _StaticStore:

    def __init__(self, snapshot):
        self.snapshot = snapshot

    def load(self):
        return self.snapshot

    def save(self, snapshot):
        self.snapshot = snapshot


def test_fresh_database_has_no_snapshot(app):
    with app.app_context():
        assert SqlSnapshotStore().load() is None


def test_mutation_writes_snapshot(app, client):
    resp = client.post("/api/v1/users", json={"name": "Sam", "email": "sam@example.com"})
    user_id = resp.get_json()["data"]["id"]

    with app.app_context():
        snapshot = SqlSnapshotStore().load()
        assert db.session.get(LedgerSnapshot, "ledger").saved_at is not None

    assert snapshot["users"][-1] == {
        "id": user_id, "name": "Sam", "email": "sam@example.com", "avatar": None,
    }
    assert snapshot["expenses"][0]["paidBy"] == "u1"


def test_second_ledger_restores_state(app, client, ledger):
    client.post("/api/v1/expenses/e1/splits/u2/paid")
    client.post("/api/v1/settlements", json={"to_user_id": "u4", "amount": "12.34"})

    with app.app_context():
        restored = LedgerStore(SqlSnapshotStore())
        restored.start()

    assert restored.drain_warnings() == []
    assert restored.expenses == ledger.expenses
    assert dict(restored.balances) == dict(ledger.balances)
    assert restored.get_expense("e1").split_for("u2").is_paid is True


def test_corrupt_snapshot_falls_back_to_bootstrap(app):
    with app.app_context():
        db.session.add(LedgerSnapshot(key="ledger", payload="{not json"))
        db.session.commit()

        restored = LedgerStore(SqlSnapshotStore())
        restored.start()

    assert [w["code"] for w in restored.drain_warnings()] == ["SNAPSHOT_LOAD_FAILED"]
    assert len(restored.expenses) == 4
    assert restored.balances["u1"] == Decimal("-71.60")


def test_failed_save_is_a_warning():
    app = create_app("testing", persistence=_ReadOnlyStore())
    client = app.test_client()

    resp = client.post("/api/v1/users", json={"name": "Sam", "email": "sam@example.com"})

    assert resp.status_code == 201
    assert [w["code"] for w in resp.get_json()["warnings"]] == ["SNAPSHOT_SAVE_FAILED"]
    assert len(client.get("/api/v1/users").get_json()["data"]) == 5


def test_naive_snapshot_dates_are_served(ledger):
    snapshot = ledger.snapshot()
    for expense in snapshot["expenses"]:
        expense["date"] = expense["date"][:19]

    app = create_app("testing", persistence=_StaticStore(snapshot))
    client = app.test_client()

    created = client.post("/api/v1/settlements", json={"to_user_id": "u4", "amount": "5.00"})
    listed = client.get("/api/v1/expenses")
    reminders = client.get("/api/v1/users/me/reminders")

    assert created.status_code == 201
    assert listed.status_code == 200
    assert listed.get_json()["warnings"] == []
    assert listed.get_json()["data"][0]["category"] == "Settlement"
    assert [r["expense_id"] for r in reminders.get_json()["data"]] == ["e3", "e2", "e4"]
