"""
routes/balances.py — Balance route handlers.

Layer rules:
  - Parse query params, read the ledger, return envelope.
  - All arithmetic lives in balance_service.

Endpoints (url_prefix=/api/v1/balances):
  GET /balances               → 200  ledger-wide net balances; relationships
                                     against the members of the current group
  GET /balances?group_id=X    → 200  balances from group X's expenses only;
                                     relationships against X's members

Relationships use balance_service.relationship_balance(), a two-party
heuristic over NET balances. It is an approximation for groups of three or
more and is labelled as such in the response.
"""

from __future__ import annotations

from decimal import Decimal

from flask import Blueprint, jsonify, request

from tabshare.app.extensions import get_ledger
from tabshare.app.services import balance_service

balances_bp = Blueprint("balances", __name__)


def _serialize_balances(balances: dict[str, Decimal]) -> list[dict]:
    return [
        {"user_id": user_id, "balance": str(amount)}
        for user_id, amount in balances.items()
    ]


@balances_bp.route("", methods=["GET"])
def get_balances():
    """GET /balances[?group_id=]"""
    ledger = get_ledger()
    group_id = request.args.get("group_id")

    if group_id is not None:
        group = ledger.get_group(group_id)
        balances = ledger.group_balances(group_id)
        expenses = [e for e in ledger.expenses if e.group_id == group_id]
    else:
        group = ledger.current_group
        balances = dict(ledger.balances)
        expenses = list(ledger.expenses)

    member_ids = list(group.member_ids) if group is not None else []
    relationships = balance_service.relationships_for(
        ledger.current_user_id,
        member_ids,
        balances,
    )

    return jsonify({
        "data": {
            "group_id": group.id if group is not None else None,
            "current_user_id": ledger.current_user_id,
            "balances": _serialize_balances(balances),
            "balance_sum": str(sum(balances.values(), Decimal("0.00"))),
            "expected_balance_sum": str(balance_service.expected_balance_sum(expenses)),
            "relationships": [
                {**r, "amount": str(r["amount"])}
                for r in relationships
            ],
            "relationships_are_approximate": len(member_ids) > 2,
        },
        "warnings": [],
    }), 200
