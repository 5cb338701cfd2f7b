"""
tests/integration/test_users_api.py — /api/v1/users endpoints.

  GET   /users              → 200
  POST  /users              → 201, 400 MISSING_FIELD / INVALID_FIELD
  GET   /users/me           → 200
  GET   /users/me/reminders → 200 oldest first
  GET   /users/:id          → 200, 404 USER_NOT_FOUND
  PATCH /users/:id          → 200, 403 FORBIDDEN
"""

from __future__ import annotations


def test_list_users(client):
    resp = client.get("/api/v1/users")

    assert resp.status_code == 200
    body = resp.get_json()
    assert [u["name"] for u in body["data"]] == ["You", "Alex", "Taylor", "Jordan"]
    assert body["warnings"] == []


def test_create_user(client, ledger):
    resp = client.post("/api/v1/users", json={"name": "Sam", "email": "sam@example.com"})

    assert resp.status_code == 201
    user = resp.get_json()["data"]
    assert user["name"] == "Sam"
    assert user["avatar"] is None
    assert ledger.get_user(user["id"]).email == "sam@example.com"


def test_create_user_missing_email(client):
    resp = client.post("/api/v1/users", json={"name": "Sam"})

    assert resp.status_code == 400
    error = resp.get_json()["error"]
    assert error["code"] == "MISSING_FIELD"
    assert error["field"] == "email"


def test_create_user_invalid_email(client):
    resp = client.post("/api/v1/users", json={"name": "Sam", "email": "nope"})

    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "INVALID_FIELD"


def test_current_user(client):
    resp = client.get("/api/v1/users/me")

    assert resp.status_code == 200
    assert resp.get_json()["data"]["id"] == "u1"


def test_get_unknown_user(client):
    resp = client.get("/api/v1/users/u99")

    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "USER_NOT_FOUND"


def test_update_own_profile(client):
    resp = client.patch("/api/v1/users/u1", json={"name": "Me"})

    assert resp.status_code == 200
    assert resp.get_json()["data"]["name"] == "Me"
    assert client.get("/api/v1/users/me").get_json()["data"]["name"] == "Me"


def test_update_someone_else_is_forbidden(client):
    resp = client.patch("/api/v1/users/u2", json={"name": "Hacked"})

    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "FORBIDDEN"


def test_reminders_oldest_first(client):
    resp = client.get("/api/v1/users/me/reminders")

    assert resp.status_code == 200
    reminders = resp.get_json()["data"]
    assert [r["expense_id"] for r in reminders] == ["e3", "e2", "e4"]
    assert reminders[0]["amount"] == "150.00"
    assert reminders[0]["paid_by"] == "u4"
    # Bootstrap expenses date from April 2024.
    assert all(r["overdue"] for r in reminders)


def test_reminder_disappears_when_split_paid(client):
    client.post("/api/v1/expenses/e3/splits/u1/paid")

    reminders = client.get("/api/v1/users/me/reminders").get_json()["data"]

    assert [r["expense_id"] for r in reminders] == ["e2", "e4"]


def test_cors_headers_in_testing(client):
    resp = client.get("/api/v1/users", headers={"Origin": "http://localhost:8000"})

    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:8000"
