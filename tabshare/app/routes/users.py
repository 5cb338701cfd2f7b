"""
routes/users.py — User route handlers.

Layer rules:
  - Parse, validate, call ONE ledger operation, return envelope.
  - No business logic.

Endpoints (url_prefix=/api/v1/users):
  GET    /users                 → 200  list users
  POST   /users                 → 201  add user
  GET    /users/me              → 200  the user the ledger acts for
  GET    /users/me/reminders    → 200  unpaid splits of the current user
  GET    /users/:id             → 200  one user
  PATCH  /users/:id             → 200  edit own profile
"""

from __future__ import annotations

from datetime import timedelta

from flask import Blueprint, current_app, jsonify, request

from tabshare.app.errors import AppError, ErrorCode
from tabshare.app.extensions import get_ledger
from tabshare.app.models.user import User
from tabshare.app.schemas.user_schema import CreateUserSchema, UpdateUserSchema

users_bp = Blueprint("users", __name__)


def serialize_user(user: User) -> dict:
    """Converts a User record to a plain dict for JSON output."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar": user.avatar,
    }


@users_bp.route("", methods=["GET"])
def list_users():
    """GET /users — Every known user."""
    ledger = get_ledger()
    return jsonify({
        "data": [serialize_user(u) for u in ledger.users],
        "warnings": [],
    }), 200


@users_bp.route("", methods=["POST"])
def add_user():
    """POST /users — Create a user."""
    data = CreateUserSchema().load(request.get_json(force=True) or {})
    ledger = get_ledger()
    user = ledger.add_user(name=data["name"], email=data["email"], avatar=data["avatar"])
    return jsonify({"data": serialize_user(user), "warnings": ledger.drain_warnings()}), 201


@users_bp.route("/me", methods=["GET"])
def get_current_user():
    """GET /users/me — The user the ledger acts for."""
    ledger = get_ledger()
    user = ledger.current_user
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"Current user {ledger.current_user_id} does not exist.",
            404,
        )
    return jsonify({"data": serialize_user(user), "warnings": []}), 200


@users_bp.route("/me/reminders", methods=["GET"])
def get_reminders():
    """
    GET /users/me/reminders — Unpaid splits of the current user, oldest first.
    Reminders older than LEDGER_REMINDER_OVERDUE_DAYS are flagged overdue.
    """
    ledger = get_ledger()
    overdue_after = timedelta(days=current_app.config["LEDGER_REMINDER_OVERDUE_DAYS"])
    reminders = ledger.payment_reminders(ledger.current_user_id, overdue_after=overdue_after)
    return jsonify({
        "data": [
            {
                **r,
                "amount": str(r["amount"]),
                "date": r["date"].isoformat(),
            }
            for r in reminders
        ],
        "warnings": [],
    }), 200


@users_bp.route("/<string:user_id>", methods=["GET"])
def get_user(user_id: str):
    """GET /users/:id"""
    user = get_ledger().get_user(user_id)
    return jsonify({"data": serialize_user(user), "warnings": []}), 200


@users_bp.route("/<string:user_id>", methods=["PATCH"])
def update_user(user_id: str):
    """
    PATCH /users/:id — Edit name, email or avatar.
    Only the current user's own profile can be edited (FORBIDDEN otherwise).
    """
    data = UpdateUserSchema().load(request.get_json(force=True) or {})
    ledger = get_ledger()
    user = ledger.update_user(user_id, ledger.current_user_id, **data)
    return jsonify({"data": serialize_user(user), "warnings": ledger.drain_warnings()}), 200
