"""
routes/groups.py — Group and membership route handlers.

Layer rules:
  - Parse, validate, call ONE ledger operation, return envelope.
  - No business logic.

Endpoints (url_prefix=/api/v1/groups):
  GET    /groups                 → 200  list groups
  POST   /groups                 → 201  create group (becomes current)
  GET    /groups/current         → 200  current group
  PUT    /groups/current         → 200  switch current group
  GET    /groups/:id             → 200  group + members
  POST   /groups/:id/members     → 201  add existing user or invite a new one
                                   200  with ALREADY_MEMBER warning on a no-op
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from tabshare.app.errors import AppError, ErrorCode
from tabshare.app.extensions import get_ledger
from tabshare.app.models.group import Group
from tabshare.app.routes.users import serialize_user
from tabshare.app.schemas.group_schema import (
    AddMemberSchema,
    CreateGroupSchema,
    SetCurrentGroupSchema,
)

groups_bp = Blueprint("groups", __name__)


def _serialize_group(group: Group) -> dict:
    """Converts a Group record to a plain dict, members in join order."""
    ledger = get_ledger()
    return {
        "id": group.id,
        "name": group.name,
        "members": [serialize_user(ledger.get_user(uid)) for uid in group.member_ids],
        "is_current": ledger.current_group is not None and ledger.current_group.id == group.id,
    }


@groups_bp.route("", methods=["GET"])
def list_groups():
    """GET /groups — Every group, in creation order."""
    return jsonify({
        "data": [_serialize_group(g) for g in get_ledger().groups],
        "warnings": [],
    }), 200


@groups_bp.route("", methods=["POST"])
def create_group():
    """POST /groups — Create a group. It becomes the current group."""
    data = CreateGroupSchema().load(request.get_json(force=True) or {})
    ledger = get_ledger()
    group = ledger.add_group(name=data["name"], member_ids=data["member_ids"])
    return jsonify({"data": _serialize_group(group), "warnings": ledger.drain_warnings()}), 201


@groups_bp.route("/current", methods=["GET"])
def get_current_group():
    """GET /groups/current"""
    group = get_ledger().current_group
    if group is None:
        raise AppError(
            ErrorCode.NO_CURRENT_GROUP,
            "No group is currently selected.",
            422,
        )
    return jsonify({"data": _serialize_group(group), "warnings": []}), 200


@groups_bp.route("/current", methods=["PUT"])
def set_current_group():
    """PUT /groups/current — Switch the active group."""
    data = SetCurrentGroupSchema().load(request.get_json(force=True) or {})
    group = get_ledger().set_current_group(data["group_id"])
    return jsonify({"data": _serialize_group(group), "warnings": []}), 200


@groups_bp.route("/<string:group_id>", methods=["GET"])
def get_group(group_id: str):
    """GET /groups/:id"""
    group = get_ledger().get_group(group_id)
    return jsonify({"data": _serialize_group(group), "warnings": []}), 200


@groups_bp.route("/<string:group_id>/members", methods=["POST"])
def add_member(group_id: str):
    """
    POST /groups/:id/members

    {"user_id": ...}         adds an existing user (no-op if already a member)
    {"name": ..., "email": ...} invites: creates the user, then adds them
    """
    data = AddMemberSchema().load(request.get_json(force=True) or {})
    ledger = get_ledger()

    if data["user_id"] is not None:
        added = ledger.add_member_to_group(group_id, data["user_id"])
        member = ledger.get_user(data["user_id"])
    else:
        member = ledger.invite_member(
            group_id,
            name=data["name"],
            email=data["email"],
            avatar=data["avatar"],
        )
        added = True

    return jsonify({
        "data": {
            "group": _serialize_group(ledger.get_group(group_id)),
            "member": serialize_user(member),
            "added": added,
        },
        "warnings": ledger.drain_warnings(),
    }), (201 if added else 200)
