"""
models/snapshot.py — Ledger snapshot table definition.

A durable key-value row: `key` names the ledger, `payload` holds the full
{users, groups, expenses} snapshot as JSON text. The ledger itself lives in
memory; this table only mirrors it.

No business logic. No imports from services or routes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from tabshare.app.extensions import db


class LedgerSnapshot(db.Model):
    __tablename__ = "ledger_snapshots"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)

    payload: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    saved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<LedgerSnapshot key={self.key!r} saved_at={self.saved_at}>"
