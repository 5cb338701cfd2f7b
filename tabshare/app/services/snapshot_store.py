"""
services/snapshot_store.py — Durable key-value snapshot persistence.

The persistence collaborator of the ledger. It knows nothing about users,
groups or expenses: it stores and returns one JSON document per key.

  load() -> dict | None   the stored snapshot, or None when nothing is stored
  save(snapshot) -> None  replaces the stored snapshot

Any storage or decoding failure is raised as SnapshotStoreError. Deciding
whether a failure is fatal is the caller's business (LedgerStore treats
both directions as warnings).

Layer rules:
  - Requires a Flask application context (uses db.session); calling it
    outside one is a SnapshotStoreError like any other storage failure.
  - Commits its own writes: a snapshot save is not part of any larger
    transaction.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from tabshare.app.extensions import db
from tabshare.app.models.snapshot import LedgerSnapshot


class SnapshotStoreError(Exception):
    """Raised when the snapshot cannot be read, decoded or written."""


class SqlSnapshotStore:

    def __init__(self, key: str = "ledger") -> None:
        self.key = key

    def load(self) -> dict | None:
        try:
            row = db.session.get(LedgerSnapshot, self.key)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise SnapshotStoreError(f"Could not read snapshot {self.key!r}: {exc}") from exc
        except RuntimeError as exc:
            # No application context, so there is no session to roll back.
            raise SnapshotStoreError(f"Could not read snapshot {self.key!r}: {exc}") from exc

        if row is None:
            return None

        try:
            snapshot = json.loads(row.payload)
        except ValueError as exc:
            raise SnapshotStoreError(f"Snapshot {self.key!r} is not valid JSON: {exc}") from exc

        if not isinstance(snapshot, dict):
            raise SnapshotStoreError(f"Snapshot {self.key!r} is not a JSON object.")
        return snapshot

    def save(self, snapshot: dict) -> None:
        payload = json.dumps(snapshot, separators=(",", ":"))
        try:
            row = db.session.get(LedgerSnapshot, self.key)
            if row is None:
                row = LedgerSnapshot(key=self.key, payload=payload)
                db.session.add(row)
            else:
                row.payload = payload
            row.saved_at = datetime.now(timezone.utc)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise SnapshotStoreError(f"Could not write snapshot {self.key!r}: {exc}") from exc
        except RuntimeError as exc:
            raise SnapshotStoreError(f"Could not write snapshot {self.key!r}: {exc}") from exc

    def __repr__(self) -> str:  # pragma: no cover
        return f"SqlSnapshotStore(key={self.key!r})"
