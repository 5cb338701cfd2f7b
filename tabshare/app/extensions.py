"""
extensions.py — Flask extension singletons and app-scoped accessors.

Initialises SQLAlchemy as a module-level object so it can be imported
anywhere without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` from here wherever needed.

The LedgerStore is NOT a module-level object. create_app() builds one per
app and keeps it in app.extensions["ledger"]; routes reach it through
get_ledger(). Two apps (e.g. two tests) never share ledger state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import current_app
from flask_sqlalchemy import SQLAlchemy

if TYPE_CHECKING:
    from tabshare.app.services.ledger_store import LedgerStore

db = SQLAlchemy()

LEDGER_EXTENSION_KEY = "ledger"


def get_ledger() -> LedgerStore:
    """Returns the LedgerStore attached to the current app."""
    return current_app.extensions[LEDGER_EXTENSION_KEY]
