"""
tests/integration/test_expenses_api.py — /api/v1/expenses endpoints.

  GET    /expenses[?group_id=]                → 200 newest first
  POST   /expenses                            → 201 (explicit splits or split_mode)
  GET    /expenses/:id                        → 200, 404 EXPENSE_NOT_FOUND
  DELETE /expenses/:id                        → 200, idempotent
  POST   /expenses/:id/splits/:user_id/paid   → 200, 404 SPLIT_NOT_FOUND

Balance effects are checked through GET /balances.
"""

from __future__ import annotations

import pytest


def test_list_expenses_newest_first(client):
    resp = client.get("/api/v1/expenses")

    assert resp.status_code == 200
    assert [e["id"] for e in resp.get_json()["data"]] == ["e4", "e1", "e2", "e3"]


def test_list_expenses_for_group(client):
    resp = client.get("/api/v1/expenses?group_id=g2")

    assert [e["id"] for e in resp.get_json()["data"]] == ["e3"]


def test_get_expense(client):
    resp = client.get("/api/v1/expenses/e1")

    assert resp.status_code == 200
    expense = resp.get_json()["data"]
    assert expense["amount"] == "120.50"
    assert expense["paid_by"] == "u1"
    assert expense["is_settlement"] is False
    assert [s["amount"] for s in expense["splits"]] == ["30.13", "30.13", "30.12", "30.12"]


def test_get_unknown_expense(client):
    resp = client.get("/api/v1/expenses/e99")

    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "EXPENSE_NOT_FOUND"


def test_create_equal_split_expense_defaults(client, get_balances):
    before = get_balances(client)

    resp = client.post("/api/v1/expenses", json={
        "title": "Groceries",
        "amount": "120.50",
        "split_mode": "equal",
        "category": "Food",
    })

    assert resp.status_code == 201
    expense = resp.get_json()["data"]
    assert expense["paid_by"] == "u1"
    assert expense["group_id"] == "g1"
    assert [(s["user_id"], s["amount"], s["is_paid"]) for s in expense["splits"]] == [
        ("u1", "30.13", True),
        ("u2", "30.13", False),
        ("u3", "30.12", False),
        ("u4", "30.12", False),
    ]

    after = get_balances(client)
    assert before["u1"] == "-71.60" and after["u1"] == "48.90"
    assert after["u2"] == "-154.36"
    assert after["u3"] == "10.15"
    assert after["u4"] == "347.66"


def test_create_expense_with_explicit_splits(client):
    resp = client.post("/api/v1/expenses", json={
        "title": "Fuel",
        "amount": "60.00",
        "paid_by": "u4",
        "group_id": "g2",
        "date": "2024-05-01T08:00:00+00:00",
        "splits": [
            {"user_id": "u4", "amount": "20.00", "is_paid": True},
            {"user_id": "u1", "amount": "20.00"},
            {"user_id": "u2", "amount": "20.00"},
        ],
    })

    assert resp.status_code == 201
    expense = resp.get_json()["data"]
    assert expense["date"] == "2024-05-01T08:00:00+00:00"
    assert expense["category"] == "Other"


def test_create_percentage_split_expense(client):
    resp = client.post("/api/v1/expenses", json={
        "title": "Rent",
        "amount": "1000.00",
        "split_mode": "percentage",
        "percentages": {"u1": "40", "u2": "30", "u3": "20", "u4": "10"},
    })

    assert resp.status_code == 201
    splits = resp.get_json()["data"]["splits"]
    assert [s["amount"] for s in splits] == ["400.00", "300.00", "200.00", "100.00"]


def test_create_custom_split_expense_for_some_participants(client):
    resp = client.post("/api/v1/expenses", json={
        "title": "Snacks",
        "amount": "9.00",
        "split_mode": "custom",
        "custom_amounts": {"u1": "3.00", "u2": "6.00"},
    })

    assert resp.status_code == 201
    assert [s["user_id"] for s in resp.get_json()["data"]["splits"]] == ["u1", "u2"]


def test_equal_split_over_chosen_participants(client):
    resp = client.post("/api/v1/expenses", json={
        "title": "Coffee",
        "amount": "10.00",
        "split_mode": "equal",
        "participant_ids": ["u1", "u2", "u3"],
    })

    assert resp.status_code == 201
    assert [s["amount"] for s in resp.get_json()["data"]["splits"]] == ["3.34", "3.33", "3.33"]


@pytest.mark.parametrize("payload, status, code", [
    ({"title": "X", "amount": "10.00", "split_mode": "shares"}, 400, "INVALID_SPLIT_MODE"),
    ({"amount": "10.00", "split_mode": "equal"}, 400, "MISSING_FIELD"),
    ({"title": "X", "amount": "-3", "split_mode": "equal"}, 400, "INVALID_FIELD"),
    ({"title": "X", "amount": "10.00", "split_mode": "percentage",
      "percentages": {"u1": "50", "u2": "40"}}, 422, "PERCENTAGE_SUM_MISMATCH"),
    ({"title": "X", "amount": "10.00", "split_mode": "custom",
      "custom_amounts": {"u1": "1.00"}}, 422, "SPLIT_SUM_MISMATCH"),
    ({"title": "X", "amount": "10.00",
      "splits": [{"user_id": "u1", "amount": "5.00"}, {"user_id": "u1", "amount": "5.00"}]},
     400, "DUPLICATE_SPLIT_USER"),
    ({"title": "X", "amount": "10.00", "paid_by": "u3", "group_id": "g2", "split_mode": "equal"},
     422, "PAYER_NOT_MEMBER"),
    ({"title": "X", "amount": "10.00", "group_id": "g2",
      "splits": [{"user_id": "u3", "amount": "10.00"}]}, 422, "SPLIT_USER_NOT_MEMBER"),
    ({"title": "X", "amount": "10.00", "group_id": "g99", "split_mode": "equal"},
     404, "GROUP_NOT_FOUND"),
])
def test_create_expense_rejections(client, ledger, payload, status, code):
    resp = client.post("/api/v1/expenses", json=payload)

    assert resp.status_code == status, resp.get_json()
    assert resp.get_json()["error"]["code"] == code
    assert len(ledger.expenses) == 4


def test_delete_expense_restores_balances(client, get_balances):
    before = get_balances(client)
    created = client.post("/api/v1/expenses", json={
        "title": "Cinema", "amount": "45.00", "split_mode": "equal",
    }).get_json()["data"]

    resp = client.delete(f"/api/v1/expenses/{created['id']}")

    assert resp.status_code == 200
    assert resp.get_json()["data"]["deleted"] is True
    assert get_balances(client) == before


def test_delete_is_idempotent(client):
    first = client.delete("/api/v1/expenses/e2")
    second = client.delete("/api/v1/expenses/e2")

    assert first.get_json()["data"]["deleted"] is True
    assert second.status_code == 200
    assert second.get_json()["data"]["deleted"] is False


def test_mark_split_paid(client, get_balances):
    before = get_balances(client)

    resp = client.post("/api/v1/expenses/e1/splits/u2/paid")

    assert resp.status_code == 200
    assert resp.get_json()["data"]["splits"][1] == {
        "user_id": "u2", "amount": "30.13", "is_paid": True,
    }
    after = get_balances(client)
    assert before["u2"] == "-124.23" and after["u2"] == "-94.10"
    assert after["u1"] == before["u1"]


def test_mark_split_paid_for_non_participant(client):
    resp = client.post("/api/v1/expenses/e3/splits/u3/paid")

    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "SPLIT_NOT_FOUND"


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/v1/nothing-here")

    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "NOT_FOUND"
