"""
tests/integration/test_groups_api.py — /api/v1/groups endpoints.

  GET  /groups              → 200
  POST /groups              → 201, becomes current
  GET  /groups/current      → 200
  PUT  /groups/current      → 200, 404 GROUP_NOT_FOUND
  GET  /groups/:id          → 200, 404 GROUP_NOT_FOUND
  POST /groups/:id/members  → 201 added / invited, 200 + ALREADY_MEMBER warning
"""

from __future__ import annotations


def test_list_groups(client):
    resp = client.get("/api/v1/groups")

    assert resp.status_code == 200
    groups = resp.get_json()["data"]
    assert [g["name"] for g in groups] == ["Apartment 2024", "Summer Trip"]
    assert [g["is_current"] for g in groups] == [True, False]
    assert [m["id"] for m in groups[1]["members"]] == ["u1", "u2", "u4"]


def test_create_group_becomes_current(client):
    resp = client.post("/api/v1/groups", json={"name": "Ski Week", "member_ids": ["u1", "u3"]})

    assert resp.status_code == 201
    group = resp.get_json()["data"]
    assert group["is_current"] is True
    assert [m["id"] for m in group["members"]] == ["u1", "u3"]

    current = client.get("/api/v1/groups/current").get_json()["data"]
    assert current["id"] == group["id"]


def test_create_group_with_unknown_member(client):
    resp = client.post("/api/v1/groups", json={"name": "Ghosts", "member_ids": ["u99"]})

    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "USER_NOT_FOUND"


def test_create_group_blank_name(client):
    resp = client.post("/api/v1/groups", json={"name": "   "})

    assert resp.status_code == 400
    assert resp.get_json()["error"]["field"] == "name"


def test_switch_current_group(client):
    resp = client.put("/api/v1/groups/current", json={"group_id": "g2"})

    assert resp.status_code == 200
    assert resp.get_json()["data"]["id"] == "g2"
    assert client.get("/api/v1/groups/current").get_json()["data"]["id"] == "g2"


def test_switch_to_unknown_group(client):
    resp = client.put("/api/v1/groups/current", json={"group_id": "g99"})

    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "GROUP_NOT_FOUND"


def test_get_unknown_group(client):
    resp = client.get("/api/v1/groups/g99")

    assert resp.status_code == 404


def test_add_member_then_add_again(client):
    first = client.post("/api/v1/groups/g2/members", json={"user_id": "u3"})

    assert first.status_code == 201
    assert first.get_json()["data"]["added"] is True
    assert len(first.get_json()["data"]["group"]["members"]) == 4

    second = client.post("/api/v1/groups/g2/members", json={"user_id": "u3"})

    assert second.status_code == 200
    body = second.get_json()
    assert body["data"]["added"] is False
    assert len(body["data"]["group"]["members"]) == 4
    assert [w["code"] for w in body["warnings"]] == ["ALREADY_MEMBER"]


def test_invite_member(client):
    resp = client.post(
        "/api/v1/groups/g2/members",
        json={"name": "Sam", "email": "sam@example.com"},
    )

    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["member"]["name"] == "Sam"
    assert data["group"]["members"][-1]["id"] == data["member"]["id"]


def test_add_member_needs_a_target(client):
    resp = client.post("/api/v1/groups/g2/members", json={})

    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "MISSING_FIELD"
