"""
services/split_service.py — Split construction for expense drafts.

The ledger never computes splits: add_expense() only records what it is
given. Callers that build drafts (the HTTP layer, a receipt-capture flow)
use these helpers to turn "split equally", "split by percentage" or
"split by amount" into a list of Split records.

Every helper marks the payer's own split as paid: that share never needs a
transfer.

Layer rules:
  - No Flask imports. Pure Decimal arithmetic.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

from tabshare.app.errors import AppError, ErrorCode
from tabshare.app.models.expense import CENT, to_money
from tabshare.app.models.split import Split


HUNDRED = Decimal("100")
PERCENTAGE_TOLERANCE = Decimal("0.1")


def _require_participants(member_ids: list[str]) -> None:
    if not member_ids:
        raise AppError(
            ErrorCode.MISSING_FIELD,
            "At least one participant is required to split an expense.",
            400,
            field="splits",
        )


def equal_splits(
        amount: Decimal,
        member_ids: list[str],
        payer_id: str,
) -> list[Split]:
    """
    Divides amount evenly among member_ids using ROUND_DOWN.

    The leftover cents are handed out one each to the first members in
    order, so sum(result) == amount exactly:
        120.50 / 4 → 30.13, 30.13, 30.12, 30.12
    """
    _require_participants(member_ids)

    n = len(member_ids)
    base = (amount / Decimal(n)).quantize(CENT, rounding=ROUND_DOWN)
    leftover_cents = int((amount - base * n) / CENT)

    splits = []
    for index, user_id in enumerate(member_ids):
        share = base + CENT if index < leftover_cents else base
        splits.append(Split(user_id=user_id, amount=share, is_paid=(user_id == payer_id)))

    # Sanity check — a failure here is a programming error.
    total = sum(s.amount for s in splits)
    if total != amount:
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Equal split computation produced sum {total} for amount {amount}.",
            500,
        )
    return splits


def percentage_splits(
        amount: Decimal,
        percentages: dict[str, Decimal],
        payer_id: str,
) -> list[Split]:
    """
    Splits amount by per-member percentage.

    Percentages must total 100 within 0.1. Each share is rounded half-up
    to cents independently, so the result may differ from amount by a few
    cents; add_expense() accepts that within its tolerance.

    Raises:
        AppError(PERCENTAGE_SUM_MISMATCH, 422) — percentages do not total 100.
    """
    _require_participants(list(percentages))

    total_percentage = sum(percentages.values(), Decimal("0"))
    if abs(total_percentage - HUNDRED) > PERCENTAGE_TOLERANCE:
        raise AppError(
            ErrorCode.PERCENTAGE_SUM_MISMATCH,
            f"Percentages total {total_percentage}, expected 100.",
            422,
            field="percentages",
        )

    return [
        Split(
            user_id=user_id,
            amount=to_money(amount * percent / HUNDRED),
            is_paid=(user_id == payer_id),
        )
        for user_id, percent in percentages.items()
    ]


def custom_splits(
        amount: Decimal,
        amounts: dict[str, Decimal],
        payer_id: str,
        tolerance: Decimal,
) -> list[Split]:
    """
    Builds splits from explicit per-member amounts.

    Raises:
        AppError(SPLIT_SUM_MISMATCH, 422) — amounts do not total `amount`
                                           within `tolerance`.
    """
    _require_participants(list(amounts))

    total = sum(amounts.values(), Decimal("0.00"))
    if abs(total - amount) > tolerance:
        raise AppError(
            ErrorCode.SPLIT_SUM_MISMATCH,
            f"Split amounts ({total}) do not equal expense amount ({amount}).",
            422,
            field="custom_amounts",
        )

    return [
        Split(user_id=user_id, amount=to_money(value), is_paid=(user_id == payer_id))
        for user_id, value in amounts.items()
    ]


def build_splits(
        split_mode: str,
        amount: Decimal,
        payer_id: str,
        member_ids: list[str],
        percentages: dict[str, Decimal] | None = None,
        custom_amounts: dict[str, Decimal] | None = None,
        tolerance: Decimal = Decimal("0.10"),
) -> list[Split]:
    """
    Dispatches on split_mode ("equal", "percentage", "custom").
    `member_ids` is only used by "equal".
    """
    if split_mode == "equal":
        return equal_splits(amount, member_ids, payer_id)
    if split_mode == "percentage":
        return percentage_splits(amount, percentages or {}, payer_id)
    if split_mode == "custom":
        return custom_splits(amount, custom_amounts or {}, payer_id, tolerance)
    raise AppError(
        ErrorCode.INVALID_SPLIT_MODE,
        f"'{split_mode}' is not a split mode. Use equal, percentage or custom.",
        400,
        field="split_mode",
    )
