"""
tests/integration/conftest.py — Fixtures for all integration tests.

Design:
  - Every test gets a fresh app from create_app("testing"). TestingConfig
    points SQLAlchemy at an in-memory SQLite database, so each app starts
    with an empty snapshot table and seeds its ledger from the bootstrap
    dataset (users u1-u4, groups g1/g2, expenses e1-e4).
  - The ledger lives in app.extensions["ledger"]; two apps never share it,
    so no cleanup between tests is needed.

Bootstrap net balances, for reference:
  u1 -71.60   u2 -124.23   u3 40.27   u4 377.78   (sum 222.22)
"""

from __future__ import annotations

import pytest

from tabshare.app import create_app
from tabshare.app.extensions import LEDGER_EXTENSION_KEY


@pytest.fixture
def app():
    """A Flask app in 'testing' mode with a freshly seeded ledger."""
    return create_app("testing")


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def ledger(app):
    """Direct handle on the app's LedgerStore, for assertions."""
    return app.extensions[LEDGER_EXTENSION_KEY]


def balances_by_user(client, **params) -> dict:
    """GET /balances and return {user_id: balance string}."""
    resp = client.get("/api/v1/balances", query_string=params)
    assert resp.status_code == 200, resp.get_json()
    return {b["user_id"]: b["balance"] for b in resp.get_json()["data"]["balances"]}


@pytest.fixture
def get_balances():
    return balances_by_user
