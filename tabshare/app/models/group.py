"""
models/group.py — Group record.

`member_ids` keeps join order and holds each user id at most once.
Membership only ever grows; there is no remove-member operation.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Group:
    id: str
    name: str
    member_ids: tuple[str, ...] = field(default_factory=tuple)

    def has_member(self, user_id: str) -> bool:
        return user_id in self.member_ids

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Group id={self.id} name={self.name!r} members={len(self.member_ids)}>"
