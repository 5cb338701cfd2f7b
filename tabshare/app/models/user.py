"""
models/user.py — User record.

Identity (`id`) never changes. Profile fields (`name`, `email`, `avatar`)
are replaced wholesale through LedgerStore.update_user().
No business logic. No imports from services or routes.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    avatar: str | None = None

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} name={self.name!r}>"
