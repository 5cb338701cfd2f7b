"""
routes/expenses.py — Expense route handlers.

Layer rules:
  - Parse, validate, call the ledger, return envelope.
  - Split construction for split_mode requests is delegated to
    split_service; the ledger records whatever splits it is handed.
  - serialize_expense() is a pure data-shape helper — not business logic.

Endpoints (url_prefix=/api/v1/expenses):
  GET    /expenses[?group_id=]                 → 200  newest first
  POST   /expenses                             → 201  record expense
  GET    /expenses/:id                         → 200  expense + splits
  DELETE /expenses/:id                         → 200  idempotent delete
  POST   /expenses/:id/splits/:user_id/paid    → 200  mark one split paid
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from tabshare.app.errors import AppError, ErrorCode
from tabshare.app.extensions import get_ledger
from tabshare.app.models.expense import Expense
from tabshare.app.models.split import Split
from tabshare.app.schemas.expense_schema import CreateExpenseSchema, ListExpensesQuerySchema
from tabshare.app.services import split_service

expenses_bp = Blueprint("expenses", __name__)


# ── Serialization helper ───────────────────────────────────────────────────
# Pure data-shaping. Amounts as strings.

def serialize_expense(expense: Expense) -> dict:
    """Converts an Expense record to a plain dict for JSON output."""
    return {
        "id": expense.id,
        "title": expense.title,
        "amount": str(expense.amount),
        "date": expense.date.isoformat(),
        "paid_by": expense.paid_by,
        "category": expense.category,
        "group_id": expense.group_id,
        "is_settlement": expense.is_settlement,
        "splits": [
            {
                "user_id": s.user_id,
                "amount": str(s.amount),
                "is_paid": s.is_paid,
            }
            for s in expense.splits
        ],
    }


# ── Collection routes ──────────────────────────────────────────────────────

@expenses_bp.route("", methods=["GET"])
def list_expenses():
    """GET /expenses — All expenses, or one group's with ?group_id=."""
    args = ListExpensesQuerySchema().load(request.args)
    expenses = get_ledger().list_expenses(group_id=args["group_id"])
    return jsonify({
        "data": [serialize_expense(e) for e in expenses],
        "warnings": [],
    }), 200


@expenses_bp.route("", methods=["POST"])
def create_expense():
    """
    POST /expenses — Record an expense.

    paid_by defaults to the current user, group_id to the current group.
    Splits come either verbatim from `splits` or are built from `split_mode`.
    """
    data = CreateExpenseSchema().load(request.get_json(force=True) or {})
    ledger = get_ledger()

    paid_by = data["paid_by"] or ledger.current_user_id
    group_id = data["group_id"]
    if group_id is None:
        if ledger.current_group is None:
            raise AppError(
                ErrorCode.NO_CURRENT_GROUP,
                "No group_id given and no current group is selected.",
                422,
                field="group_id",
            )
        group_id = ledger.current_group.id

    if data["splits"] is not None:
        splits = [Split(**s) for s in data["splits"]]
    else:
        splits = split_service.build_splits(
            split_mode=data["split_mode"],
            amount=data["amount"],
            payer_id=paid_by,
            member_ids=data["participant_ids"] or list(ledger.get_group(group_id).member_ids),
            percentages=data["percentages"],
            custom_amounts=data["custom_amounts"],
            tolerance=ledger.split_tolerance,
        )

    expense = ledger.add_expense(
        title=data["title"],
        amount=data["amount"],
        paid_by=paid_by,
        group_id=group_id,
        splits=splits,
        date=data["date"],
        category=data["category"],
    )
    return jsonify({"data": serialize_expense(expense), "warnings": ledger.drain_warnings()}), 201


# ── Expense-ID routes ──────────────────────────────────────────────────────

@expenses_bp.route("/<string:expense_id>", methods=["GET"])
def get_expense(expense_id: str):
    """GET /expenses/:id — Expense detail including splits."""
    expense = get_ledger().get_expense(expense_id)
    return jsonify({"data": serialize_expense(expense), "warnings": []}), 200


@expenses_bp.route("/<string:expense_id>", methods=["DELETE"])
def delete_expense(expense_id: str):
    """
    DELETE /expenses/:id — Remove an expense.
    Deleting an unknown id succeeds with deleted=false.
    """
    ledger = get_ledger()
    deleted = ledger.delete_expense(expense_id)
    return jsonify({
        "data": {
            "deleted": deleted,
            "expense_id": expense_id,
        },
        "warnings": ledger.drain_warnings(),
    }), 200


@expenses_bp.route("/<string:expense_id>/splits/<string:user_id>/paid", methods=["POST"])
def mark_split_paid(expense_id: str, user_id: str):
    """POST /expenses/:id/splits/:user_id/paid — Mark one member's share paid."""
    ledger = get_ledger()
    expense = ledger.mark_expense_as_paid(expense_id, user_id)
    return jsonify({"data": serialize_expense(expense), "warnings": ledger.drain_warnings()}), 200
