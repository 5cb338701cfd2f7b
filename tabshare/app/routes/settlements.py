"""
routes/settlements.py — Settle-up route handlers.

Layer rules:
  - Parse, validate, call ONE ledger operation, return envelope.
  - No business logic.

A settlement is recorded as a synthetic "Settlement" expense (see
LedgerStore.settle_up). A payment-processor integration, if any, only has
to call POST /settlements once the money has moved.

Endpoints (url_prefix=/api/v1/settlements):
  POST   /settlements              → 201  record a direct payment
  GET    /settlements              → 200  settlement expenses, newest first
  GET    /settlements/suggestions  → 200  who the current user owes, and how much
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from tabshare.app.extensions import get_ledger
from tabshare.app.routes.expenses import serialize_expense
from tabshare.app.schemas.settlement_schema import SettleUpSchema
from tabshare.app.services import balance_service

settlements_bp = Blueprint("settlements", __name__)


@settlements_bp.route("", methods=["POST"])
def settle_up():
    """
    POST /settlements

    from_user_id defaults to the current user; group_id to the current group.
    """
    data = SettleUpSchema().load(request.get_json(force=True) or {})
    ledger = get_ledger()
    expense = ledger.settle_up(
        from_user_id=data["from_user_id"] or ledger.current_user_id,
        to_user_id=data["to_user_id"],
        amount=data["amount"],
        group_id=data["group_id"],
        date=data["date"],
    )
    return jsonify({"data": serialize_expense(expense), "warnings": ledger.drain_warnings()}), 201


@settlements_bp.route("", methods=["GET"])
def list_settlements():
    """GET /settlements — Settlement expenses only, newest first."""
    settlements = [e for e in get_ledger().list_expenses() if e.is_settlement]
    return jsonify({
        "data": [serialize_expense(e) for e in settlements],
        "warnings": [],
    }), 200


@settlements_bp.route("/suggestions", methods=["GET"])
def settle_up_suggestions():
    """
    GET /settlements/suggestions

    Members of the current group the current user owes, with a suggested
    amount, derived from the same two-party heuristic as the balances view.
    """
    ledger = get_ledger()
    group = ledger.current_group
    suggestions = balance_service.settle_up_suggestions(
        ledger.current_user_id,
        list(group.member_ids) if group is not None else [],
        dict(ledger.balances),
    )
    return jsonify({
        "data": [{**s, "amount": str(s["amount"])} for s in suggestions],
        "warnings": [],
    }), 200
